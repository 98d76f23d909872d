"""
Utility functions for the game engine.
"""

import random

from dice_catan.engine import DICE_SIDES
from dice_catan.engine.definitions import BuildKind, GameConfig
from dice_catan.engine.resources import available_resources, format_resources
from dice_catan.engine.state import Die, GameState, Player


def roll_faces(count: int, rng: random.Random | None = None) -> list[int]:
    """Uniform faces for count dice."""
    rng = rng or random
    return [rng.randint(1, DICE_SIDES) for _ in range(count)]


def initialize_game_state(
    players: list[dict],
    config: GameConfig,
    faces: list[int] | None = None,
    game_id: str | None = None,
) -> GameState:
    """
    Create a fresh game state with every player at zero.

    Args:
        players: Seating order, e.g. [{"name": "Alice", "is_bot": False}, ...].
            An optional "id" is kept as the opaque player id; otherwise ids
            are "player_1", "player_2", ...
        config: Rules for this game (dice count, player limits)
        faces: Starting faces, one per die; defaults to 1..dice_count cycling
            through the faces so the first screen shows every resource once.
        game_id: Opaque id of the owning game, if any
    """
    if not players:
        raise ValueError("A game needs at least one player")
    if not config.min_players <= len(players) <= config.max_players:
        raise ValueError(
            f"Player count {len(players)} outside {config.min_players}..{config.max_players}")

    seated: list[Player] = []
    seen: set[str] = set()
    for i, p in enumerate(players):
        player_id = str(p.get("id") or f"player_{i + 1}")
        if player_id in seen:
            raise ValueError(f"Duplicate player id: {player_id}")
        seen.add(player_id)
        seated.append(Player(
            id=player_id,
            display_name=str(p.get("name") or f"Player {i + 1}"),
            is_bot=bool(p.get("is_bot", False)),
        ))

    if faces is None:
        faces = [(i % DICE_SIDES) + 1 for i in range(config.dice_count)]
    if len(faces) != config.dice_count:
        raise ValueError(f"Expected {config.dice_count} starting faces, got {len(faces)}")

    return GameState(
        players=seated,
        dice=[Die(face=f) for f in faces],
        current_player_id=seated[0].id,
        game_id=game_id,
    )


def print_game_state(state: GameState, config: GameConfig) -> None:
    """Pretty-print the current game state."""
    print(f"\n{'='*60}")
    print(f"TURN {state.turn_number} | {state.current_player_id} | "
          f"rolls {state.roll_count}/{config.max_rolls_per_turn} | {state.phase}")
    print(f"{'='*60}")

    dice_str = "  ".join(
        f"[{i}] {d.face}:{d.resource.value}{'*' if d.locked else ''}{'x' if d.consumed else ''}"
        for i, d in enumerate(state.dice)
    )
    print(f"Dice: {dice_str}")
    print(f"Available: {format_resources(available_resources(state.dice))}")

    print(f"\n{'Players':.<40}")
    for p in state.players:
        builds = ", ".join(f"{k.value}={p.count(k)}" for k in BuildKind)
        bonuses = [b for b, holder in state.bonuses.holders.items() if holder == p.id]
        bonus_str = f" [{', '.join(bonuses)}]" if bonuses else ""
        bot = " (bot)" if p.is_bot else ""
        print(f"  {p.display_name}{bot}: {p.victory_points} VP | {builds}{bonus_str}")
    if state.is_finished:
        print(f"\n*** GAME OVER - winner: {state.winner_id} ***")
    print()
