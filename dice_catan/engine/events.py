"""
Game events for UI hooks and logging.
Events describe what happened during action processing, including refusals.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class GameEvent:
    """Base event class. All events have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameEvent":
        return cls(type=data["type"], payload=data["payload"])


# ===== Event Type Constants =====

# Dice events
DICE_ROLLED = "dice_rolled"
DIE_LOCK_TOGGLED = "die_lock_toggled"

# Build events
RESOURCES_CONSUMED = "resources_consumed"
BUILD_COMPLETED = "build_completed"
BONUS_AWARDED = "bonus_awarded"
SCORE_CHANGED = "score_changed"

# Turn events
TURN_ENDED = "turn_ended"
TURN_STARTED = "turn_started"

# Game events
GAME_FINISHED = "game_finished"
ACTION_REJECTED = "action_rejected"

# Rejection reasons carried by ACTION_REJECTED
REASON_GAME_FINISHED = "game_finished"
REASON_NOT_YOUR_TURN = "not_your_turn"
REASON_MAX_ROLLS_REACHED = "max_rolls_reached"
REASON_ALREADY_BUILT = "already_built"
REASON_MAX_COUNT_REACHED = "max_count_reached"
REASON_INSUFFICIENT_RESOURCES = "insufficient_resources"


# ===== Event Factory Functions =====

def dice_rolled(player: str, roll_number: int, faces: list[int], rerolled: list[int]) -> GameEvent:
    return GameEvent(DICE_ROLLED, {
        "player": player,
        "roll_number": roll_number,
        "faces": faces,  # all faces after the roll
        "rerolled": rerolled,  # indices that were rolled (unlocked)
    })


def die_lock_toggled(player: str, die_index: int, locked: bool) -> GameEvent:
    return GameEvent(DIE_LOCK_TOGGLED, {
        "player": player,
        "die_index": die_index,
        "locked": locked,
    })


def resources_consumed(player: str, build_kind: str, die_indices: list[int], gold_used: int) -> GameEvent:
    return GameEvent(RESOURCES_CONSUMED, {
        "player": player,
        "build_kind": build_kind,
        "die_indices": die_indices,
        "gold_used": gold_used,
    })


def build_completed(player: str, build_kind: str, new_count: int) -> GameEvent:
    return GameEvent(BUILD_COMPLETED, {
        "player": player,
        "build_kind": build_kind,
        "new_count": new_count,
    })


def bonus_awarded(bonus: str, new_holder: str, previous_holder: str | None, count: int) -> GameEvent:
    """Emitted when a bonus is first claimed or taken over by a strictly larger count."""
    return GameEvent(BONUS_AWARDED, {
        "bonus": bonus,
        "new_holder": new_holder,
        "previous_holder": previous_holder,
        "count": count,
    })


def score_changed(player: str, old_value: int, new_value: int) -> GameEvent:
    return GameEvent(SCORE_CHANGED, {
        "player": player,
        "old_value": old_value,
        "new_value": new_value,
        "change": new_value - old_value,
    })


def turn_ended(turn_number: int, player: str) -> GameEvent:
    return GameEvent(TURN_ENDED, {
        "turn_number": turn_number,
        "player": player,
    })


def turn_started(turn_number: int, player: str) -> GameEvent:
    return GameEvent(TURN_STARTED, {
        "turn_number": turn_number,
        "player": player,
    })


def game_finished(winner: str | None, reason: str, scores: dict[str, int]) -> GameEvent:
    """
    Emitted once when the game ends.

    Args:
        winner: player_id of the winner
        reason: "victory_points" or "turn_limit"
        scores: {player_id: victory_points} at the moment the game ended
    """
    return GameEvent(GAME_FINISHED, {
        "winner": winner,
        "reason": reason,
        "scores": scores,
    })


def action_rejected(action_type: str, player: str, reason: str, detail: str = "") -> GameEvent:
    """A rule refusal. State is unchanged; the reason explains why."""
    return GameEvent(ACTION_REJECTED, {
        "action": action_type,
        "player": player,
        "reason": reason,
        "detail": detail,
    })
