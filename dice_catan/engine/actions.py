"""
Action definitions for the game.
Actions are immutable, deterministic instructions.
"""

from dataclasses import dataclass

from dice_catan.engine.definitions import BuildKind, parse_build_kind

ROLL = "roll"
TOGGLE_LOCK = "toggle_lock"
BUILD = "build"
END_TURN = "end_turn"

ACTION_TYPES = (ROLL, TOGGLE_LOCK, BUILD, END_TURN)


@dataclass
class Action:
    """Base action class. All actions have a type, the acting player, and a payload."""
    type: str  # one of ACTION_TYPES
    player_id: str
    payload: dict

    def to_dict(self) -> dict:
        return {"type": self.type, "player_id": self.player_id, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict) -> "Action":
        return cls(
            type=str(data["type"]),
            player_id=str(data["player_id"]),
            payload=dict(data.get("payload") or {}),
        )


def roll(player_id: str, faces: list[int]) -> Action:
    """
    Roll every unlocked die.
    faces holds one value per die (index-aligned); values at locked positions are ignored.
    The caller supplies the randomness so the reducer stays deterministic.

    Example: roll("p1", [3, 1, 6, 6, 2, 5])
    """
    return Action(type=ROLL, player_id=player_id, payload={"faces": list(faces)})


def toggle_lock(player_id: str, die_index: int) -> Action:
    """Flip the locked flag of one die."""
    return Action(type=TOGGLE_LOCK, player_id=player_id, payload={"die_index": die_index})


def build(player_id: str, build_kind: BuildKind | str) -> Action:
    """
    Build one unit of build_kind using the current dice.
    Example: build("p1", BuildKind.ROAD)
    """
    kind = parse_build_kind(build_kind)
    return Action(type=BUILD, player_id=player_id, payload={"build_kind": kind.value})


def end_turn(player_id: str) -> Action:
    """End the current turn and pass the dice to the next player."""
    return Action(type=END_TURN, player_id=player_id, payload={})
