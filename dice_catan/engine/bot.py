"""
Greedy bot policy.

decide() is stateless: it looks at the state and returns one decision. The
decision is carried out through the same actions a human sends, so every
rule of the reducer applies to bots too.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from dice_catan.engine.actions import Action, build, end_turn, roll, toggle_lock
from dice_catan.engine.definitions import BuildKind, GameConfig
from dice_catan.engine.queries import can_afford, is_at_max
from dice_catan.engine.state import GameState

DECISION_ROLL = "roll"
DECISION_LOCK = "lock"  # lock the listed dice, then roll
DECISION_BUILD = "build"
DECISION_END_TURN = "end_turn"

BUILD_PRIORITY = (BuildKind.SETTLEMENT, BuildKind.ROAD, BuildKind.CITY, BuildKind.KNIGHT)


@dataclass
class BotDecision:
    action: str
    indices: list[int] = field(default_factory=list)
    build_kind: BuildKind | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "indices": self.indices,
            "build_kind": self.build_kind.value if self.build_kind else None,
        }


def choose_dice_to_lock(state: GameState) -> list[int]:
    """
    Indices of the unconsumed dice showing the most common face.
    Ties go to the lowest face value.
    """
    counts = Counter(d.face for d in state.dice if not d.consumed)
    if not counts:
        return []
    best_face = min(counts, key=lambda face: (-counts[face], face))
    return [i for i, d in enumerate(state.dice) if not d.consumed and d.face == best_face]


def choose_build(state: GameState, player_id: str, config: GameConfig) -> BuildKind | None:
    """First affordable build under its cap, in BUILD_PRIORITY order."""
    for kind in BUILD_PRIORITY:
        if kind not in config.builds:
            continue
        if is_at_max(state, player_id, kind, config):
            continue
        if can_afford(state, kind, config):
            return kind
    return None


def decide(state: GameState, player_id: str, config: GameConfig) -> BotDecision:
    """
    Pick the next move for player_id. Priority:
    1. Nothing rolled yet -> roll
    2. Not built yet and something is buildable -> build it
    3. Rolls left and not built -> lock the most common face, roll again
    4. Otherwise -> end turn
    """
    if player_id != state.current_player_id:
        raise ValueError(f"Not {player_id}'s turn. Current player: {state.current_player_id}")

    can_roll = not state.has_built_this_turn and state.roll_count < config.max_rolls_per_turn

    if state.roll_count == 0 and can_roll:
        return BotDecision(DECISION_ROLL)

    if not state.has_built_this_turn:
        kind = choose_build(state, player_id, config)
        if kind is not None:
            return BotDecision(DECISION_BUILD, build_kind=kind)

    if can_roll:
        indices = choose_dice_to_lock(state)
        if indices:
            return BotDecision(DECISION_LOCK, indices=indices)
        return BotDecision(DECISION_ROLL)

    return BotDecision(DECISION_END_TURN)


def decision_to_actions(state: GameState, player_id: str, decision: BotDecision, faces: list[int]) -> list[Action]:
    """
    Actions that carry out a decision. A lock decision becomes toggle_lock for
    each chosen die that is not locked yet, followed by a roll with faces.
    """
    if decision.action == DECISION_LOCK:
        toggles = [toggle_lock(player_id, i) for i in decision.indices if not state.dice[i].locked]
        return toggles + [roll(player_id, faces)]
    if decision.action == DECISION_BUILD:
        return [build(player_id, decision.build_kind)]
    if decision.action == DECISION_END_TURN:
        return [end_turn(player_id)]
    return [roll(player_id, faces)]
