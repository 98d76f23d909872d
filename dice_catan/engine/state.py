"""
Game state representation.
The reducer never mutates its input; it works on copies.
Includes JSON serialization for save/load functionality.
"""

import json
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from dice_catan.engine.definitions import BuildKind, Resource, resource_of

STATUS_IN_PROGRESS = "in_progress"
STATUS_FINISHED = "finished"

# Turn phase is derived from (roll_count, has_built_this_turn), never stored
PHASE_NOT_ROLLED = "not_rolled"
PHASE_CAN_ROLL_OR_BUILD = "can_roll_or_build"
PHASE_MUST_END_TURN = "must_end_turn"


def _int(v: Any, default: int) -> int:
    try:
        return int(v) if v is not None else default
    except (TypeError, ValueError):
        return default


@dataclass
class Die:
    """A single die. Face is only rewritten by a roll; locked and consumed toggle independently."""
    face: int
    locked: bool = False
    consumed: bool = False  # spent on a build this roll

    @property
    def resource(self) -> Resource:
        return resource_of(self.face)

    def to_dict(self) -> dict[str, Any]:
        return {"face": self.face, "locked": self.locked, "consumed": self.consumed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Die":
        if not isinstance(data, dict):
            data = {}
        return cls(
            face=_int(data.get("face"), 1),
            locked=bool(data.get("locked", False)),
            consumed=bool(data.get("consumed", False)),
        )


def empty_build_counts() -> dict[BuildKind, int]:
    return {kind: 0 for kind in BuildKind}


@dataclass
class Player:
    """A seated player. Build counts are cumulative for the whole game."""
    id: str
    display_name: str
    is_bot: bool = False
    build_counts: dict[BuildKind, int] = field(default_factory=empty_build_counts)
    victory_points: int = 0
    turns_completed: int = 0

    def count(self, kind: BuildKind) -> int:
        return self.build_counts.get(kind, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "is_bot": self.is_bot,
            "build_counts": {k.value: v for k, v in self.build_counts.items()},
            "victory_points": self.victory_points,
            "turns_completed": self.turns_completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Player":
        if not isinstance(data, dict):
            data = {}
        counts = empty_build_counts()
        raw_counts = data.get("build_counts")
        if isinstance(raw_counts, dict):
            for k, v in raw_counts.items():
                try:
                    counts[BuildKind(k)] = _int(v, 0)
                except ValueError:
                    continue
        return cls(
            id=str(data.get("id") or ""),
            display_name=str(data.get("display_name") or data.get("id") or ""),
            is_bot=bool(data.get("is_bot", False)),
            build_counts=counts,
            victory_points=_int(data.get("victory_points"), 0),
            turns_completed=_int(data.get("turns_completed"), 0),
        )


@dataclass
class BonusState:
    """Current holders of the contested bonuses (bonus_id -> player_id or None)."""
    holders: dict[str, str | None] = field(default_factory=dict)

    def holder(self, bonus_id: str) -> str | None:
        return self.holders.get(bonus_id)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.holders)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BonusState":
        if not isinstance(data, dict):
            data = {}
        return cls(holders={str(k): (str(v) if v is not None else None) for k, v in data.items()})


@dataclass
class GameState:
    """Complete game state for one game session."""
    players: list[Player]
    dice: list[Die]
    current_player_id: str
    turn_number: int = 1
    roll_count: int = 0
    has_built_this_turn: bool = False
    bonuses: BonusState = field(default_factory=BonusState)
    status: str = STATUS_IN_PROGRESS
    winner_id: str | None = None
    game_id: str | None = None

    @property
    def phase(self) -> str:
        """
        Implicit turn phase:
        - not_rolled: no roll yet this turn
        - can_roll_or_build: rolled, may roll again (if rolls remain) or build
        - must_end_turn: built this turn, rolling is closed
        """
        if self.has_built_this_turn:
            return PHASE_MUST_END_TURN
        if self.roll_count == 0:
            return PHASE_NOT_ROLLED
        return PHASE_CAN_ROLL_OR_BUILD

    @property
    def is_finished(self) -> bool:
        return self.status == STATUS_FINISHED

    def copy(self) -> "GameState":
        """Return a deep copy of this game state."""
        return deepcopy(self)

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    @property
    def current_player(self) -> Player | None:
        return self.get_player(self.current_player_id)

    def player_index(self, player_id: str) -> int:
        for i, p in enumerate(self.players):
            if p.id == player_id:
                return i
        raise ValueError(f"Unknown player: {player_id}")

    # ===== Serialization Methods =====

    def to_dict(self) -> dict[str, Any]:
        """Convert GameState to a dictionary for JSON serialization."""
        return {
            "game_id": self.game_id,
            "players": [p.to_dict() for p in self.players],
            "dice": [d.to_dict() for d in self.dice],
            "current_player_id": self.current_player_id,
            "turn_number": self.turn_number,
            "roll_count": self.roll_count,
            "has_built_this_turn": self.has_built_this_turn,
            "phase": self.phase,
            "bonuses": self.bonuses.to_dict(),
            "status": self.status,
            "winner_id": self.winner_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        """Create GameState from a dictionary (derived keys such as phase are ignored)."""
        if not isinstance(data, dict):
            data = {}
        players_raw = data.get("players") or []
        if not isinstance(players_raw, list):
            players_raw = []
        dice_raw = data.get("dice") or []
        if not isinstance(dice_raw, list):
            dice_raw = []
        status = data.get("status")
        if status not in (STATUS_IN_PROGRESS, STATUS_FINISHED):
            status = STATUS_IN_PROGRESS
        return cls(
            game_id=data.get("game_id"),
            players=[Player.from_dict(p) for p in players_raw if isinstance(p, dict)],
            dice=[Die.from_dict(d) for d in dice_raw if isinstance(d, dict)],
            current_player_id=str(data.get("current_player_id") or ""),
            turn_number=_int(data.get("turn_number"), 1),
            roll_count=_int(data.get("roll_count"), 0),
            has_built_this_turn=bool(data.get("has_built_this_turn", False)),
            bonuses=BonusState.from_dict(data.get("bonuses")),
            status=status,
            winner_id=data.get("winner_id"),
        )

    def to_json(self, indent: int = 2) -> str:
        """Serialize GameState to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> "GameState":
        """Deserialize GameState from a JSON string."""
        return cls.from_dict(json.loads(json_str))
