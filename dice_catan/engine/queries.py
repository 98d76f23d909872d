"""
Query functions for UI integration.
These functions help the UI (and the bot) understand what actions are
available, and why one would be refused, without mutating game state.
"""

from dataclasses import dataclass
from typing import Any

from dice_catan.engine import resources as ledger
from dice_catan.engine.actions import BUILD, END_TURN, ROLL, TOGGLE_LOCK, Action
from dice_catan.engine.definitions import BuildKind, GameConfig, Resource, parse_build_kind
from dice_catan.engine.state import STATUS_FINISHED, GameState


@dataclass
class ValidationResult:
    """Result of action validation."""
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "error": self.error}


# ===== Resource Queries =====

def get_available_resources(state: GameState) -> dict[Resource, int]:
    """Resources on the current unconsumed dice."""
    return ledger.available_resources(state.dice)


def can_afford(state: GameState, build_kind: BuildKind | str, config: GameConfig) -> bool:
    """True if the current dice pay for build_kind. Ignores caps and turn state."""
    build_def = config.build_def(build_kind)
    return ledger.can_build(build_def.requirement, get_available_resources(state))


def get_missing_resources(state: GameState, build_kind: BuildKind | str, config: GameConfig) -> list[Resource]:
    """Resources still missing for build_kind after gold substitution."""
    build_def = config.build_def(build_kind)
    return ledger.get_missing_resources(build_def.requirement, get_available_resources(state))


def is_at_max(state: GameState, player_id: str, build_kind: BuildKind | str, config: GameConfig) -> bool:
    player = state.get_player(player_id)
    if player is None:
        raise ValueError(f"Unknown player: {player_id}")
    build_def = config.build_def(build_kind)
    return player.count(build_def.id) >= build_def.max_count


def get_buildable_kinds(state: GameState, player_id: str, config: GameConfig) -> list[BuildKind]:
    """Build kinds the player could build right now (affordable and under the cap), in config order."""
    return [
        kind for kind in config.builds
        if not is_at_max(state, player_id, kind, config) and can_afford(state, kind, config)
    ]


def get_build_options(state: GameState, player_id: str, config: GameConfig) -> list[dict[str, Any]]:
    """Per build kind: requirement, count, cap, affordability and what is missing. For the build board."""
    player = state.get_player(player_id)
    if player is None:
        raise ValueError(f"Unknown player: {player_id}")
    available = get_available_resources(state)
    options = []
    for kind, build_def in config.builds.items():
        options.append({
            "build_kind": kind.value,
            "display_name": build_def.display_name,
            "requirement": [r.value for r in build_def.requirement],
            "count": player.count(kind),
            "max_count": build_def.max_count,
            "at_max": player.count(kind) >= build_def.max_count,
            "affordable": ledger.can_build(build_def.requirement, available),
            "missing": [r.value for r in ledger.get_missing_resources(build_def.requirement, available)],
            "victory_points": build_def.victory_points,
        })
    return options


# ===== Turn Queries =====

def get_turn_phase(state: GameState) -> str:
    """not_rolled, can_roll_or_build or must_end_turn."""
    return state.phase


def get_rolls_remaining(state: GameState, config: GameConfig) -> int:
    if state.has_built_this_turn:
        return 0
    return max(0, config.max_rolls_per_turn - state.roll_count)


def get_available_action_types(state: GameState, config: GameConfig) -> list[str]:
    """Action types the current player can take without being refused."""
    if state.status == STATUS_FINISHED:
        return []
    actions = [TOGGLE_LOCK]
    if get_rolls_remaining(state, config) > 0:
        actions.append(ROLL)
    if get_buildable_kinds(state, state.current_player_id, config):
        actions.append(BUILD)
    actions.append(END_TURN)
    return actions


# ===== Action Validation =====

def validate_action(state: GameState, action: Action, config: GameConfig) -> ValidationResult:
    """
    Validate an action without applying it.
    Returns ValidationResult with valid=True or valid=False with a reason the UI can show.
    Mirrors the refusals of the reducer; malformed payloads are reported, not raised.
    """
    if state.status == STATUS_FINISHED:
        return ValidationResult(False, f"Game is over. Winner: {state.winner_id}")

    if action.player_id != state.current_player_id:
        return ValidationResult(
            False,
            f"Not {action.player_id}'s turn. Current player: {state.current_player_id}"
        )

    if action.type == ROLL:
        if state.has_built_this_turn:
            return ValidationResult(False, "Cannot roll after building this turn")
        if state.roll_count >= config.max_rolls_per_turn:
            return ValidationResult(False, f"No rolls left ({config.max_rolls_per_turn} per turn)")
        return ValidationResult(True)

    elif action.type == TOGGLE_LOCK:
        die_index = action.payload.get("die_index")
        if isinstance(die_index, bool) or not isinstance(die_index, int) \
                or not 0 <= die_index < len(state.dice):
            return ValidationResult(False, f"Invalid die index: {die_index!r}")
        return ValidationResult(True)

    elif action.type == BUILD:
        try:
            kind = parse_build_kind(action.payload.get("build_kind"))
            build_def = config.build_def(kind)
        except ValueError as e:
            return ValidationResult(False, str(e))
        if is_at_max(state, action.player_id, kind, config):
            return ValidationResult(False, f"{build_def.display_name} limit reached ({build_def.max_count})")
        missing = get_missing_resources(state, kind, config)
        if missing:
            return ValidationResult(
                False,
                f"Missing for {build_def.display_name}: {', '.join(r.value for r in missing)}"
            )
        return ValidationResult(True)

    elif action.type == END_TURN:
        return ValidationResult(True)

    return ValidationResult(False, f"Unknown action type: {action.type}")


# ===== Standings =====

def get_standings(state: GameState) -> list[dict[str, Any]]:
    """Players by victory points (ties keep seating order), with held bonuses."""
    ranked = sorted(state.players, key=lambda p: -p.victory_points)
    return [
        {
            "player_id": p.id,
            "display_name": p.display_name,
            "victory_points": p.victory_points,
            "bonuses": [b for b, holder in state.bonuses.holders.items() if holder == p.id],
        }
        for p in ranked
    ]


def get_game_summary(state: GameState, config: GameConfig) -> dict[str, Any]:
    """Compact overview for lobby lists and the CLI header."""
    return {
        "turn_number": state.turn_number,
        "current_player_id": state.current_player_id,
        "phase": state.phase,
        "rolls_remaining": get_rolls_remaining(state, config),
        "status": state.status,
        "winner_id": state.winner_id,
        "victory_point_goal": config.victory_point_goal,
        "standings": get_standings(state),
    }
