"""
SQLAlchemy model for stored games.
Players are opaque ids supplied by the client; there is no account table.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text

from .database import Base

GAME_STATUS_LOBBY = "lobby"
GAME_STATUS_ACTIVE = "active"
GAME_STATUS_FINISHED = "finished"


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)  # uuid
    name = Column(String(128), nullable=False)  # user-defined game name
    game_code = Column(String(8), unique=True, nullable=True, index=True)  # 4-char alphanumeric for multiplayer lobbies
    created_at = Column(DateTime, default=datetime.utcnow)
    created_by = Column(String(64), nullable=True)  # opaque player id of the creator
    status = Column(String(32), nullable=False, default=GAME_STATUS_LOBBY)  # lobby | active | finished
    game_state = Column(Text, nullable=True)  # JSON of GameState; null while in lobby
    players = Column(Text, nullable=False)  # JSON array of {"player_id", "name", "is_bot"} in seating order
    config = Column(Text, nullable=True)  # JSON snapshot of GameConfig
