#!/usr/bin/env python3
"""
Delete a stored game by its 4-character lobby code (or its full id).
Usage: python scripts/delete_game.py <code-or-id>
From repo root: python -m scripts.delete_game <code-or-id>
"""
import logging
import sys

from dice_catan.api.database import SessionLocal
from dice_catan.api.models import Game
from dice_catan.config import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()
    if len(sys.argv) < 2:
        print("Usage: python scripts/delete_game.py <code-or-id>", file=sys.stderr)
        sys.exit(1)
    key = sys.argv[1].strip()
    if not key:
        print("Error: provide a game code or id.", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        game = (
            db.query(Game).filter(Game.game_code == key.upper()).first()
            or db.query(Game).filter(Game.id == key).first()
        )
        if not game:
            print(f"No game found for: {key!r}")
            return
        name, game_id = game.name, game.id
        db.delete(game)
        db.commit()
        logger.info("deleted game %s", game_id)
        print(f"Deleted game {name!r} ({game_id}).")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
