"""
Static definitions for resources, builds, bonuses and game configuration.
Build recipes, caps and point values are fixed tables; a GameConfig can be
snapshotted to a dict so each stored game keeps the rules it was created with.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dice_catan.engine import DICE_SIDES


class Resource(str, Enum):
    LUMBER = "lumber"
    BRICK = "brick"
    WOOL = "wool"
    WHEAT = "wheat"
    ORE = "ore"
    GOLD = "gold"  # wildcard: 2 gold stand in for 1 of any other resource


class BuildKind(str, Enum):
    ROAD = "road"
    SETTLEMENT = "settlement"
    CITY = "city"
    KNIGHT = "knight"


# Gold is only ever spent as substitution currency, never named in a recipe
REQUIRABLE_RESOURCES = (
    Resource.LUMBER,
    Resource.BRICK,
    Resource.WOOL,
    Resource.WHEAT,
    Resource.ORE,
)

GOLD_PER_SUBSTITUTE = 2

FACE_TO_RESOURCE: dict[int, Resource] = {
    1: Resource.LUMBER,
    2: Resource.BRICK,
    3: Resource.WOOL,
    4: Resource.WHEAT,
    5: Resource.ORE,
    6: Resource.GOLD,
}


def resource_of(face: int) -> Resource:
    """Resource shown by a die face. Raises ValueError for anything outside 1..DICE_SIDES."""
    if isinstance(face, bool) or not isinstance(face, int) or face not in FACE_TO_RESOURCE:
        raise ValueError(f"Invalid die face: {face!r} (expected 1..{DICE_SIDES})")
    return FACE_TO_RESOURCE[face]


def parse_resource(value: Any) -> Resource:
    try:
        return Resource(value)
    except ValueError:
        raise ValueError(f"Unknown resource: {value!r}") from None


def parse_build_kind(value: Any) -> BuildKind:
    try:
        return BuildKind(value)
    except ValueError:
        raise ValueError(f"Unknown build kind: {value!r}") from None


@dataclass(frozen=True)
class BuildDefinition:
    """Recipe, per-player cap and point value of one build kind."""
    id: BuildKind
    display_name: str
    requirement: tuple[Resource, ...]  # duplicates are meaningful: city needs ore x3
    max_count: int
    victory_points: int

    def __post_init__(self):
        for resource in self.requirement:
            if parse_resource(resource) == Resource.GOLD:
                raise ValueError(f"{self.id.value}: gold cannot be a build requirement")
        if self.max_count < 0:
            raise ValueError(f"{self.id.value}: max_count must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id.value,
            "display_name": self.display_name,
            "requirement": [r.value for r in self.requirement],
            "max_count": self.max_count,
            "victory_points": self.victory_points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuildDefinition":
        kind = parse_build_kind(data.get("id"))
        return cls(
            id=kind,
            display_name=str(data.get("display_name") or kind.value.title()),
            requirement=tuple(parse_resource(r) for r in data.get("requirement") or []),
            max_count=int(data.get("max_count", 0)),
            victory_points=int(data.get("victory_points", 0)),
        )


@dataclass(frozen=True)
class BonusDefinition:
    """A contested bonus track (Longest Road, Largest Army)."""
    id: str
    display_name: str
    build_kind: BuildKind  # which build count the bonus is contested on
    threshold: int
    victory_points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "build_kind": self.build_kind.value,
            "threshold": self.threshold,
            "victory_points": self.victory_points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BonusDefinition":
        return cls(
            id=str(data["id"]),
            display_name=str(data.get("display_name") or data["id"]),
            build_kind=parse_build_kind(data.get("build_kind")),
            threshold=int(data.get("threshold", 0)),
            victory_points=int(data.get("victory_points", 0)),
        )


LONGEST_ROAD = "longest_road"
LARGEST_ARMY = "largest_army"

DEFAULT_BUILDS: dict[BuildKind, BuildDefinition] = {
    BuildKind.ROAD: BuildDefinition(
        id=BuildKind.ROAD,
        display_name="Road",
        requirement=(Resource.LUMBER, Resource.BRICK),
        max_count=15,
        victory_points=0,
    ),
    BuildKind.SETTLEMENT: BuildDefinition(
        id=BuildKind.SETTLEMENT,
        display_name="Settlement",
        requirement=(Resource.LUMBER, Resource.BRICK, Resource.WHEAT, Resource.WOOL),
        max_count=5,
        victory_points=1,
    ),
    BuildKind.CITY: BuildDefinition(
        id=BuildKind.CITY,
        display_name="City",
        requirement=(Resource.ORE, Resource.ORE, Resource.ORE, Resource.WHEAT, Resource.WHEAT),
        max_count=4,
        victory_points=2,
    ),
    BuildKind.KNIGHT: BuildDefinition(
        id=BuildKind.KNIGHT,
        display_name="Knight",
        requirement=(Resource.ORE, Resource.WOOL, Resource.WHEAT),
        max_count=14,
        victory_points=0,
    ),
}

DEFAULT_BONUSES: dict[str, BonusDefinition] = {
    LONGEST_ROAD: BonusDefinition(
        id=LONGEST_ROAD,
        display_name="Longest Road",
        build_kind=BuildKind.ROAD,
        threshold=5,
        victory_points=2,
    ),
    LARGEST_ARMY: BonusDefinition(
        id=LARGEST_ARMY,
        display_name="Largest Army",
        build_kind=BuildKind.KNIGHT,
        threshold=3,
        victory_points=2,
    ),
}


def _default_builds() -> dict[BuildKind, BuildDefinition]:
    return dict(DEFAULT_BUILDS)


def _default_bonuses() -> dict[str, BonusDefinition]:
    return dict(DEFAULT_BONUSES)


@dataclass
class GameConfig:
    """Rules for one game. Defaults come from dice_catan.config."""
    max_rolls_per_turn: int = 3
    victory_point_goal: int = 10
    dice_count: int = 6
    # Rounds before the game ends on points; None or 0 disables the limit
    max_turns: int | None = 15
    min_players: int = 1
    max_players: int = 4
    builds: dict[BuildKind, BuildDefinition] = field(default_factory=_default_builds)
    bonuses: dict[str, BonusDefinition] = field(default_factory=_default_bonuses)

    def build_def(self, kind: BuildKind | str) -> BuildDefinition:
        """Definition for a build kind. Raises ValueError for unknown kinds."""
        kind = parse_build_kind(kind)
        if kind not in self.builds:
            raise ValueError(f"Build kind not configured: {kind.value}")
        return self.builds[kind]

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_rolls_per_turn": self.max_rolls_per_turn,
            "victory_point_goal": self.victory_point_goal,
            "dice_count": self.dice_count,
            "max_turns": self.max_turns,
            "min_players": self.min_players,
            "max_players": self.max_players,
            "builds": {k.value: b.to_dict() for k, b in self.builds.items()},
            "bonuses": {k: b.to_dict() for k, b in self.bonuses.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "GameConfig":
        """Create GameConfig from a dict; missing keys fall back to the defaults."""
        if not isinstance(data, dict):
            data = {}
        default = cls()
        builds_raw = data.get("builds")
        builds = default.builds
        if isinstance(builds_raw, dict) and builds_raw:
            builds = {}
            for raw in builds_raw.values():
                b = BuildDefinition.from_dict(raw)
                builds[b.id] = b
        bonuses_raw = data.get("bonuses")
        bonuses = default.bonuses
        if isinstance(bonuses_raw, dict) and bonuses_raw:
            bonuses = {k: BonusDefinition.from_dict(v) for k, v in bonuses_raw.items()}
        max_turns = data.get("max_turns", default.max_turns)
        return cls(
            max_rolls_per_turn=int(data.get("max_rolls_per_turn", default.max_rolls_per_turn)),
            victory_point_goal=int(data.get("victory_point_goal", default.victory_point_goal)),
            dice_count=int(data.get("dice_count", default.dice_count)),
            max_turns=int(max_turns) if max_turns else None,
            min_players=int(data.get("min_players", default.min_players)),
            max_players=int(data.get("max_players", default.max_players)),
            builds=builds,
            bonuses=bonuses,
        )


def default_config() -> GameConfig:
    """GameConfig using the defaults in dice_catan.config (environment overridable)."""
    from dice_catan.config import (
        DEFAULT_DICE_COUNT,
        DEFAULT_MAX_ROLLS,
        DEFAULT_MAX_TURNS,
        DEFAULT_VICTORY_POINT_GOAL,
    )
    return GameConfig(
        max_rolls_per_turn=DEFAULT_MAX_ROLLS,
        victory_point_goal=DEFAULT_VICTORY_POINT_GOAL,
        dice_count=DEFAULT_DICE_COUNT,
        max_turns=DEFAULT_MAX_TURNS or None,
    )
