"""
Main entry point for the Dice Catan rules engine.
Demonstrates core functionality with a seeded all-bot game and a few
scripted refusals.
"""

import sys

from dice_catan.config import configure_logging
from dice_catan.engine.actions import build, end_turn, roll
from dice_catan.engine.definitions import BuildKind, default_config
from dice_catan.engine.events import ACTION_REJECTED
from dice_catan.engine.reducer import apply_action
from dice_catan.engine.session import GameSession
from dice_catan.engine.utils import initialize_game_state, print_game_state


def scripted_turn():
    """Roll a road's worth of dice, build it, then show every refusal the turn can hit."""
    config = default_config()
    state = initialize_game_state([{"name": "Ann"}, {"name": "Ben"}], config)
    ann, ben = state.players[0].id, state.players[1].id

    steps = [
        ("Ann rolls lumber + brick", roll(ann, [1, 2, 6, 6, 3, 4])),
        ("Ben tries to roll out of turn", roll(ben, [1, 1, 1, 1, 1, 1])),
        ("Ann builds a road", build(ann, BuildKind.ROAD)),
        ("Ann tries to roll after building", roll(ann, [5, 5, 5, 5, 5, 5])),
        ("Ann builds a knight, two gold standing in for ore", build(ann, BuildKind.KNIGHT)),
        ("Ann ends the turn", end_turn(ann)),
    ]
    for label, action in steps:
        state, events = apply_action(state, action, config)
        rejected = [e for e in events if e.type == ACTION_REJECTED]
        if rejected:
            print(f"✗ {label}: {rejected[0].payload['reason']}")
        else:
            print(f"✓ {label}: {[e.type for e in events]}")
    print_game_state(state, config)


def bot_game(seed: int):
    """Four bots play until someone reaches the goal or the round limit ends it."""
    session = GameSession.new(
        [{"name": f"Bot {i}", "is_bot": True} for i in range(1, 5)],
        seed=seed,
    )
    while not session.state.is_finished:
        session.play_bot_turn()
        if session.state.current_player_id == session.state.players[0].id:
            print_game_state(session.state, session.config)
    winner = session.state.get_player(session.state.winner_id)
    print(f"Winner after {session.state.turn_number} rounds: "
          f"{winner.display_name if winner else 'nobody'}")


def main():
    configure_logging()
    print("Dice Catan - rules engine demo")
    print("=" * 60)

    print("\n[SCENARIO 1: One scripted turn]")
    scripted_turn()

    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 42
    print(f"\n[SCENARIO 2: Bot game, seed {seed}]")
    bot_game(seed)


if __name__ == "__main__":
    main()
