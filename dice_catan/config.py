"""
Single place for default game configuration.
Every value can be overridden from the environment (DICE_CATAN_<NAME>).
"""

import logging
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


DEFAULT_MAX_ROLLS = _env_int("DICE_CATAN_MAX_ROLLS", 3)
DEFAULT_VICTORY_POINT_GOAL = _env_int("DICE_CATAN_VICTORY_POINT_GOAL", 10)
DEFAULT_DICE_COUNT = _env_int("DICE_CATAN_DICE_COUNT", 6)
# 0 disables the round limit
DEFAULT_MAX_TURNS = _env_int("DICE_CATAN_MAX_TURNS", 15)

DEFAULT_DB_FILENAME = "dice_catan.db"


def database_url(environ=None) -> str:
    """
    SQLAlchemy URL for stored games.
    DATABASE_URL wins (Heroku's postgres:// is rewritten to postgresql://);
    otherwise a sqlite file at DICE_CATAN_DB_PATH, or dice_catan.db in the
    working directory.
    """
    environ = os.environ if environ is None else environ
    raw = (environ.get("DATABASE_URL") or "").strip()
    if raw.startswith("postgres://"):
        return raw.replace("postgres://", "postgresql://", 1)
    if raw:
        return raw
    path = environ.get("DICE_CATAN_DB_PATH") or os.path.join(os.getcwd(), DEFAULT_DB_FILENAME)
    return f"sqlite:///{os.path.abspath(path)}"


LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for scripts and the API server."""
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
