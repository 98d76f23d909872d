"""
Main game reducer.
Applies actions to state, enforcing rules and producing new state.
Returns (new_state, events) where events describe what happened.

Rule refusals (rolling after building, building past a cap, acting out of
turn, ...) are not errors: the state comes back unchanged together with a
single action_rejected event. Malformed actions (bad die index, unknown build
kind, unknown action type) raise ValueError because they are caller bugs.
"""

from dice_catan.engine import DICE_SIDES
from dice_catan.engine.actions import ACTION_TYPES, BUILD, END_TURN, ROLL, TOGGLE_LOCK, Action
from dice_catan.engine.definitions import GameConfig, parse_build_kind
from dice_catan.engine.events import (
    REASON_ALREADY_BUILT,
    REASON_GAME_FINISHED,
    REASON_INSUFFICIENT_RESOURCES,
    REASON_MAX_COUNT_REACHED,
    REASON_MAX_ROLLS_REACHED,
    REASON_NOT_YOUR_TURN,
    GameEvent,
    action_rejected,
    build_completed,
    dice_rolled,
    die_lock_toggled,
    game_finished,
    resources_consumed,
    turn_ended,
    turn_started,
)
from dice_catan.engine.resources import available_resources, can_build, select_dice
from dice_catan.engine.scoring import (
    evaluate_bonuses,
    find_goal_winner,
    find_leader,
    recompute_scores,
)
from dice_catan.engine.state import STATUS_FINISHED, GameState

FINISH_VICTORY_POINTS = "victory_points"
FINISH_TURN_LIMIT = "turn_limit"


def _validate_die_index(state: GameState, die_index) -> int:
    if isinstance(die_index, bool) or not isinstance(die_index, int):
        raise ValueError(f"Die index must be an integer, got {die_index!r}")
    if not 0 <= die_index < len(state.dice):
        raise ValueError(f"Invalid die index {die_index} (have {len(state.dice)} dice)")
    return die_index


def _validate_faces(state: GameState, faces) -> list[int]:
    if not isinstance(faces, list) or len(faces) != len(state.dice):
        raise ValueError(f"Roll needs exactly {len(state.dice)} faces, got {faces!r}")
    for face in faces:
        if isinstance(face, bool) or not isinstance(face, int) or not 1 <= face <= DICE_SIDES:
            raise ValueError(f"Invalid die face: {face!r}")
    return faces


def _validate_payload(action: Action, state: GameState) -> None:
    """Fail fast on malformed actions before any rule is checked."""
    if action.type not in ACTION_TYPES:
        raise ValueError(f"Unknown action type: {action.type}")
    if action.type == ROLL:
        _validate_faces(state, action.payload.get("faces"))
    elif action.type == TOGGLE_LOCK:
        _validate_die_index(state, action.payload.get("die_index"))
    elif action.type == BUILD:
        parse_build_kind(action.payload.get("build_kind"))


def apply_action(
    state: GameState,
    action: Action,
    config: GameConfig,
) -> tuple[GameState, list[GameEvent]]:
    """
    Apply a single action to the current state, returning new state and events.

    Refuses (unchanged state + action_rejected event) when:
    - The game is finished
    - The action's player is not the current player
    - A rule of the specific action fails (see the handlers)

    Args:
        state: Current game state (never mutated)
        action: Action to apply
        config: Rules for this game

    Returns:
        Tuple of (new_state, events) where events describe what happened
    """
    _validate_payload(action, state)

    if state.status == STATUS_FINISHED:
        return state.copy(), [action_rejected(
            action.type, action.player_id, REASON_GAME_FINISHED,
            f"Game is over. Winner: {state.winner_id}")]

    if action.player_id != state.current_player_id:
        return state.copy(), [action_rejected(
            action.type, action.player_id, REASON_NOT_YOUR_TURN,
            f"Current player is {state.current_player_id}")]

    new_state = state.copy()

    if action.type == ROLL:
        return _handle_roll(new_state, action, config)
    elif action.type == TOGGLE_LOCK:
        return _handle_toggle_lock(new_state, action)
    elif action.type == BUILD:
        return _handle_build(new_state, action, config)
    elif action.type == END_TURN:
        return _handle_end_turn(new_state, config)

    raise ValueError(f"Unknown action type: {action.type}")


def _handle_roll(
    state: GameState,
    action: Action,
    config: GameConfig,
) -> tuple[GameState, list[GameEvent]]:
    """
    Reroll every unlocked die.
    Refused after a build this turn, or once max_rolls_per_turn is used up.
    Unlocked dice get the supplied face and come back unconsumed; locked dice keep everything.
    """
    if state.has_built_this_turn:
        return state, [action_rejected(
            ROLL, action.player_id, REASON_ALREADY_BUILT, "Cannot roll after building this turn")]
    if state.roll_count >= config.max_rolls_per_turn:
        return state, [action_rejected(
            ROLL, action.player_id, REASON_MAX_ROLLS_REACHED,
            f"Already rolled {state.roll_count} of {config.max_rolls_per_turn} times")]

    faces = action.payload["faces"]
    rerolled = []
    for i, die in enumerate(state.dice):
        if die.locked:
            continue
        die.face = faces[i]
        die.consumed = False
        rerolled.append(i)
    state.roll_count += 1

    return state, [dice_rolled(action.player_id, state.roll_count, [d.face for d in state.dice], rerolled)]


def _handle_toggle_lock(state: GameState, action: Action) -> tuple[GameState, list[GameEvent]]:
    """Flip a die's lock. Allowed at any point of the turn, even before the first roll."""
    die_index = action.payload["die_index"]
    die = state.dice[die_index]
    die.locked = not die.locked
    return state, [die_lock_toggled(action.player_id, die_index, die.locked)]


def _handle_build(
    state: GameState,
    action: Action,
    config: GameConfig,
) -> tuple[GameState, list[GameEvent]]:
    """
    Build one unit for the current player.
    Validates:
    - Player is below the per-player cap for this build kind
    - Unconsumed dice cover the requirement (gold pairs allowed)
    On success: spends dice, bumps the count, re-evaluates bonuses for the
    acting player, recomputes every score and finishes the game at once if
    anyone reached the goal.
    """
    events: list[GameEvent] = []
    kind = parse_build_kind(action.payload["build_kind"])
    build_def = config.build_def(kind)
    player = state.get_player(action.player_id)
    if player is None:
        raise ValueError(f"Unknown player: {action.player_id}")

    if player.count(kind) >= build_def.max_count:
        return state, [action_rejected(
            BUILD, player.id, REASON_MAX_COUNT_REACHED,
            f"{build_def.display_name} limit reached ({build_def.max_count})")]

    if not can_build(build_def.requirement, available_resources(state.dice)):
        return state, [action_rejected(
            BUILD, player.id, REASON_INSUFFICIENT_RESOURCES,
            f"Dice do not cover {build_def.display_name}")]

    exact, gold = select_dice(state.dice, build_def.requirement)
    for i in exact + gold:
        state.dice[i].consumed = True
    events.append(resources_consumed(player.id, kind.value, sorted(exact + gold), len(gold)))

    player.build_counts[kind] = player.count(kind) + 1
    state.has_built_this_turn = True
    events.append(build_completed(player.id, kind.value, player.build_counts[kind]))

    events.extend(evaluate_bonuses(player, state.bonuses, state.players, config))
    events.extend(recompute_scores(state.players, state.bonuses, config))
    events.extend(_check_victory(state, config))

    return state, events


def _handle_end_turn(state: GameState, config: GameConfig) -> tuple[GameState, list[GameEvent]]:
    """
    Pass the turn to the next player in seating order.
    Turn number only advances when play wraps back to the first seat. Rolls,
    the build flag and every die's lock/consumed flags reset; faces stay.
    """
    events: list[GameEvent] = []
    index = state.player_index(state.current_player_id)
    player = state.players[index]
    player.turns_completed += 1
    events.append(turn_ended(state.turn_number, player.id))

    next_index = (index + 1) % len(state.players)
    wrapped = next_index == 0
    state.current_player_id = state.players[next_index].id
    if wrapped:
        state.turn_number += 1
    state.roll_count = 0
    state.has_built_this_turn = False
    for die in state.dice:
        die.locked = False
        die.consumed = False

    victory_events = _check_victory(state, config)
    if victory_events:
        events.extend(victory_events)
        return state, events

    if wrapped and config.max_turns and state.turn_number > config.max_turns:
        leader = find_leader(state.players)
        _finish(state, leader.id if leader else None)
        events.append(game_finished(state.winner_id, FINISH_TURN_LIMIT, _scores(state)))
        return state, events

    events.append(turn_started(state.turn_number, state.current_player_id))
    return state, events


def _scores(state: GameState) -> dict[str, int]:
    return {p.id: p.victory_points for p in state.players}


def _finish(state: GameState, winner_id: str | None) -> None:
    state.status = STATUS_FINISHED
    state.winner_id = winner_id


def _check_victory(state: GameState, config: GameConfig) -> list[GameEvent]:
    """Finish the game if any player reached the victory point goal."""
    if state.status == STATUS_FINISHED:
        return []
    winner = find_goal_winner(state.players, config)
    if winner is None:
        return []
    _finish(state, winner.id)
    return [game_finished(winner.id, FINISH_VICTORY_POINTS, _scores(state))]


def replay_from_actions(
    initial_state: GameState,
    actions: list[Action],
    config: GameConfig,
) -> tuple[GameState, list[GameEvent]]:
    """
    Fold a list of actions over a starting state.
    Rolls carry their faces, so replaying the same actions always gives the same state.
    """
    state = initial_state
    all_events: list[GameEvent] = []
    for action in actions:
        state, events = apply_action(state, action, config)
        all_events.extend(events)
    return state, all_events
