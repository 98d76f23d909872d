"""
SQLAlchemy wiring for stored games.
The URL comes from dice_catan.config.database_url(): DATABASE_URL in
production, a local sqlite file otherwise.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from dice_catan.config import database_url

DATABASE_URL = database_url()

# sqlite connections are shared across FastAPI's worker threads
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session for FastAPI's Depends."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the games table if it does not exist. Models must be imported first."""
    Base.metadata.create_all(bind=engine)
