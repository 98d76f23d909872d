"""
FastAPI backend for Dice Catan.
Provides lobby endpoints (create, join, add bot, start) and the game commands
(roll, toggle lock, build, end turn, bot step). The rules engine is the source
of truth; this layer loads a game, hands the command to a GameSession and
stores the result.

Rule refusals are not HTTP errors: the response carries the unchanged state
and an action_rejected event. Malformed input is a 400, unknown games a 404,
and players who are not seated in the game, or not on turn, a 403.
"""

import json
import logging
import secrets
import string
import threading
import uuid
from contextlib import contextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .database import get_db, init_db
from .models import (
    GAME_STATUS_ACTIVE,
    GAME_STATUS_FINISHED,
    GAME_STATUS_LOBBY,
    Game as GameModel,
)

from dice_catan.config import configure_logging
from dice_catan.engine import actions as act
from dice_catan.engine.definitions import GameConfig, default_config
from dice_catan.engine.queries import (
    get_available_action_types,
    get_build_options,
    get_game_summary,
    get_rolls_remaining,
)
from dice_catan.engine.session import GameSession
from dice_catan.engine.state import GameState
from dice_catan.engine.utils import roll_faces

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Dice Catan API",
    description="Backend API for Dice Catan - a turn-based dice-and-build game",
    version="1.0.0",
)

# CORS configuration for frontend
CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174", "http://localhost:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[500] %s %s", method, path)
        return response
    except Exception:
        logger.exception("[500] %s %s (exception)", method, path)
        raise


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Return 500 with CORS headers so the frontend can read the error."""
    logger.exception("unhandled error: %s", exc)
    origin = request.headers.get("origin")
    allow_origin = origin if origin in CORS_ORIGINS else CORS_ORIGINS[0]
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc)},
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Credentials": "true",
        },
    )


# Alphanumeric for game codes (uppercase + digits)
GAME_CODE_CHARS = string.ascii_uppercase + string.digits
GAME_CODE_LENGTH = 4

# One lock per game: commands for the same game are applied one at a time
_game_locks: dict[str, threading.Lock] = {}
_game_locks_guard = threading.Lock()


# ===== Pydantic Models =====

class CreateGameRequest(BaseModel):
    name: str
    player_id: str
    player_name: str
    is_multiplayer: bool = False
    # Single-player games start at once with this many bots seated after the creator
    bots: int = Field(default=0, ge=0)
    victory_point_goal: int | None = Field(default=None, ge=1)
    max_rolls_per_turn: int | None = Field(default=None, ge=1)
    max_turns: int | None = Field(default=None, ge=0)


class JoinGameRequest(BaseModel):
    game_code: str
    player_id: str
    player_name: str


class PlayerRequest(BaseModel):
    player_id: str


class ToggleLockRequest(BaseModel):
    player_id: str
    die_index: int


class BuildRequest(BaseModel):
    player_id: str
    build_kind: str


class BotStepRequest(BaseModel):
    player_id: str
    # Run the bot until its turn is over instead of a single decision
    play_turn: bool = False


# ===== Helper Functions =====

@contextmanager
def game_lock(game_id: str):
    with _game_locks_guard:
        lock = _game_locks.setdefault(game_id, threading.Lock())
    with lock:
        yield


def generate_game_code(db: Session) -> str:
    """Generate a unique 4-char alphanumeric game code."""
    for _ in range(20):
        code = "".join(secrets.choice(GAME_CODE_CHARS) for _ in range(GAME_CODE_LENGTH))
        if db.query(GameModel).filter(GameModel.game_code == code).first() is None:
            return code
    raise HTTPException(status_code=500, detail="Could not generate unique game code")


def _load_json(raw: Any, default: Any) -> Any:
    if raw is None:
        return default
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return default


def _get_row(game_id: str, db: Session) -> GameModel:
    row = db.query(GameModel).filter(GameModel.id == game_id).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    return row


def _players_of(row: GameModel) -> list[dict[str, Any]]:
    players = _load_json(row.players, [])
    return players if isinstance(players, list) else []


def _config_of(row: GameModel) -> GameConfig:
    return GameConfig.from_dict(_load_json(row.config, {}))


def _require_seated(row: GameModel, player_id: str) -> None:
    """Raise 403 if this player has no seat in the game."""
    if not any(str(p.get("player_id")) == str(player_id) for p in _players_of(row)):
        raise HTTPException(status_code=403, detail="Not in this game")


def _seating(players: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Lobby seats -> engine player specs."""
    return [
        {"id": p["player_id"], "name": p.get("name") or p["player_id"], "is_bot": bool(p.get("is_bot"))}
        for p in players
    ]


def _session_for(row: GameModel) -> GameSession:
    """GameSession for an active (or finished) game; 400 while still in the lobby."""
    if row.status == GAME_STATUS_LOBBY or not row.game_state:
        raise HTTPException(status_code=400, detail="Game has not started")
    raw = _load_json(row.game_state, None)
    if not isinstance(raw, dict):
        logger.error("game %s has unreadable state", row.id)
        raise HTTPException(status_code=404, detail=f"Game {row.id} not found")
    return GameSession(GameState.from_dict(raw), _config_of(row))


def _save_session(row: GameModel, session: GameSession, db: Session) -> None:
    """Persist game state; a finished engine state closes the game row."""
    row.game_state = json.dumps(session.state.to_dict())
    if session.state.is_finished:
        row.status = GAME_STATUS_FINISHED
    db.commit()


def _can_act(session: GameSession, player_id: str | None) -> bool:
    return (
        player_id is not None
        and not session.state.is_finished
        and session.state.current_player_id == str(player_id)
    )


def _require_can_act(session: GameSession, player_id: str) -> None:
    """Raise 403 if it is not this player's turn. Finished games are left to the engine to refuse."""
    if session.state.is_finished:
        return
    if session.state.current_player_id != str(player_id):
        raise HTTPException(status_code=403, detail="Not your turn")


def state_for_response(session: GameSession) -> dict[str, Any]:
    """State dict plus derived fields the UI shows (resources, rolls left, summary)."""
    out = session.state.to_dict()
    out["available_resources"] = {r.value: n for r, n in session.get_available_resources().items()}
    out["rolls_remaining"] = get_rolls_remaining(session.state, session.config)
    out["summary"] = get_game_summary(session.state, session.config)
    return out


def _command_response(session: GameSession, player_id: str | None) -> dict[str, Any]:
    return {
        "state": state_for_response(session),
        "events": [e.to_dict() for e in session.last_events],
        "can_act": _can_act(session, player_id),
    }


def _run_command(game_id: str, player_id: str, db: Session, command) -> dict[str, Any]:
    """Load, apply command(session), save. ValueError from the engine becomes a 400."""
    with game_lock(game_id):
        row = _get_row(game_id, db)
        _require_seated(row, player_id)
        session = _session_for(row)
        _require_can_act(session, player_id)
        try:
            command(session)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        _save_session(row, session, db)
        return _command_response(session, player_id)


def _game_config_for(request: CreateGameRequest) -> GameConfig:
    config = default_config()
    if request.victory_point_goal is not None:
        config.victory_point_goal = request.victory_point_goal
    if request.max_rolls_per_turn is not None:
        config.max_rolls_per_turn = request.max_rolls_per_turn
    if request.max_turns is not None:
        config.max_turns = request.max_turns or None
    return config


def _bot_seat(players: list[dict[str, Any]]) -> dict[str, Any]:
    bot_number = sum(1 for p in players if p.get("is_bot")) + 1
    return {
        "player_id": f"BOT_{uuid.uuid4().hex[:8].upper()}",
        "name": f"Bot {bot_number}",
        "is_bot": True,
    }


def _start(row: GameModel, players: list[dict[str, Any]], config: GameConfig) -> GameSession:
    try:
        session = GameSession.new(_seating(players), config, game_id=row.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    row.game_state = json.dumps(session.state.to_dict())
    row.status = GAME_STATUS_ACTIVE
    return session


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Dice Catan API", "version": "1.0.0"}


@app.get("/definitions")
def get_definitions():
    """Default rules: build recipes, caps, point values, bonuses and turn limits."""
    return default_config().to_dict()


# ----- Lobby -----

@app.post("/games/create")
def create_game(request: CreateGameRequest, db: Session = Depends(get_db)):
    """
    Create a game. Multiplayer games open a lobby with a 4-char code; single-player
    games seat the creator plus the requested bots and start immediately.
    """
    config = _game_config_for(request)
    game_id = str(uuid.uuid4())
    players = [{"player_id": request.player_id, "name": request.player_name, "is_bot": False}]
    row = GameModel(
        id=game_id,
        name=request.name,
        created_by=request.player_id,
        status=GAME_STATUS_LOBBY,
        players=json.dumps(players),
        config=json.dumps(config.to_dict()),
    )
    if request.is_multiplayer:
        row.game_code = generate_game_code(db)
    else:
        if len(players) + request.bots > config.max_players:
            raise HTTPException(status_code=400, detail=f"At most {config.max_players} players")
        for _ in range(request.bots):
            players.append(_bot_seat(players))
        row.players = json.dumps(players)
        _start(row, players, config)
    db.add(row)
    db.commit()
    logger.info("created game %s (%s, code=%s)", game_id, row.status, row.game_code)
    return {"game_id": game_id, "game_code": row.game_code, "name": request.name, "status": row.status}


@app.post("/games/join")
def join_game(request: JoinGameRequest, db: Session = Depends(get_db)):
    """Join a lobby by 4-char game code."""
    code = request.game_code.strip().upper()
    if len(code) != GAME_CODE_LENGTH:
        raise HTTPException(status_code=400, detail="Game code must be 4 characters")
    found = db.query(GameModel.id).filter(GameModel.game_code == code).first()
    if not found:
        raise HTTPException(status_code=404, detail="Game not found")
    with game_lock(found.id):
        # Re-read under the lock so seats committed by a concurrent join are kept
        row = _get_row(found.id, db)
        db.refresh(row)
        if row.status != GAME_STATUS_LOBBY:
            raise HTTPException(status_code=400, detail="Game already started")
        players = _players_of(row)
        if any(str(p.get("player_id")) == request.player_id for p in players):
            return {"game_id": row.id, "message": "Already in game"}
        if len(players) >= _config_of(row).max_players:
            raise HTTPException(status_code=400, detail="Lobby is full")
        players.append({"player_id": request.player_id, "name": request.player_name, "is_bot": False})
        row.players = json.dumps(players)
        db.commit()
    return {"game_id": row.id, "name": row.name}


@app.post("/games/{game_id}/add-bot")
def add_bot(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    """Seat a bot in the lobby."""
    with game_lock(game_id):
        row = _get_row(game_id, db)
        _require_seated(row, request.player_id)
        if row.status != GAME_STATUS_LOBBY:
            raise HTTPException(status_code=400, detail="Game already started")
        players = _players_of(row)
        if len(players) >= _config_of(row).max_players:
            raise HTTPException(status_code=400, detail="Lobby is full")
        bot = _bot_seat(players)
        players.append(bot)
        row.players = json.dumps(players)
        db.commit()
    return {"game_id": game_id, "bot": bot, "players": players}


@app.post("/games/{game_id}/start")
def start_game(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    """Close the lobby and deal the first turn to the first seat."""
    with game_lock(game_id):
        row = _get_row(game_id, db)
        _require_seated(row, request.player_id)
        if row.status != GAME_STATUS_LOBBY:
            raise HTTPException(status_code=400, detail="Game already started")
        session = _start(row, _players_of(row), _config_of(row))
        db.commit()
        logger.info("started game %s", game_id)
        return {"game_id": game_id, "state": state_for_response(session)}


# ----- Games -----

@app.get("/games/{game_id}")
def get_game_state(game_id: str, player_id: str | None = None, db: Session = Depends(get_db)):
    """Current game state. can_act is true only if player_id is the current player."""
    row = _get_row(game_id, db)
    if row.status == GAME_STATUS_LOBBY:
        return {"game_id": game_id, "status": row.status, "state": None, "can_act": False}
    session = _session_for(row)
    return {
        "game_id": game_id,
        "status": row.status,
        "state": state_for_response(session),
        "config": session.config.to_dict(),
        "can_act": _can_act(session, player_id),
    }


@app.get("/games/{game_id}/meta")
def get_game_meta(game_id: str, db: Session = Depends(get_db)):
    """Get game metadata (name, status, players) for the lobby."""
    row = _get_row(game_id, db)
    return {
        "id": row.id,
        "name": row.name,
        "game_code": row.game_code,
        "status": row.status,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "created_by": row.created_by,
        "players": _players_of(row),
    }


@app.delete("/games/{game_id}")
def delete_game(game_id: str, player_id: str, db: Session = Depends(get_db)):
    """Delete a game. Caller must be seated in it."""
    with game_lock(game_id):
        row = _get_row(game_id, db)
        _require_seated(row, player_id)
        db.delete(row)
        db.commit()
    with _game_locks_guard:
        _game_locks.pop(game_id, None)
    return {"message": f"Game {game_id} deleted"}


@app.get("/games/{game_id}/available-actions")
def get_available_actions(game_id: str, db: Session = Depends(get_db)):
    """What the current player can do now: action types, rolls left, and per-build affordability."""
    row = _get_row(game_id, db)
    session = _session_for(row)
    state = session.state
    return {
        "player_id": state.current_player_id,
        "phase": state.phase,
        "action_types": get_available_action_types(state, session.config),
        "rolls_remaining": get_rolls_remaining(state, session.config),
        "available_resources": {r.value: n for r, n in session.get_available_resources().items()},
        "build_options": get_build_options(state, state.current_player_id, session.config),
    }


# ----- Commands -----

@app.post("/games/{game_id}/roll")
def do_roll(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    """Roll the unlocked dice. Faces are drawn here, not by the client."""
    def command(session: GameSession):
        faces = roll_faces(len(session.state.dice), session.rng)
        session.dispatch(act.roll(request.player_id, faces))
    return _run_command(game_id, request.player_id, db, command)


@app.post("/games/{game_id}/toggle-lock")
def do_toggle_lock(game_id: str, request: ToggleLockRequest, db: Session = Depends(get_db)):
    """Lock or unlock one die so it keeps its face on the next roll."""
    def command(session: GameSession):
        session.dispatch(act.toggle_lock(request.player_id, request.die_index))
    return _run_command(game_id, request.player_id, db, command)


@app.post("/games/{game_id}/build")
def do_build(game_id: str, request: BuildRequest, db: Session = Depends(get_db)):
    """Build road, settlement, city or knight from the current dice."""
    def command(session: GameSession):
        session.dispatch(act.build(request.player_id, request.build_kind))
    return _run_command(game_id, request.player_id, db, command)


@app.post("/games/{game_id}/end-turn")
def do_end_turn(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    """Pass the turn to the next seat."""
    def command(session: GameSession):
        session.dispatch(act.end_turn(request.player_id))
    return _run_command(game_id, request.player_id, db, command)


@app.post("/games/{game_id}/bot-step")
def do_bot_step(game_id: str, request: BotStepRequest, db: Session = Depends(get_db)):
    """
    Advance the current bot: one decision, or its whole turn with play_turn.
    Any seated player may drive the bots; 400 if the current player is not a bot.
    """
    with game_lock(game_id):
        row = _get_row(game_id, db)
        _require_seated(row, request.player_id)
        session = _session_for(row)
        if session.state.is_finished:
            raise HTTPException(status_code=400, detail="Game is over")
        current = session.state.current_player
        if not current.is_bot:
            raise HTTPException(status_code=400, detail=f"{current.display_name} is not a bot")
        if request.play_turn:
            decisions = session.play_bot_turn()
        else:
            decisions = [session.bot_step()]
        _save_session(row, session, db)
        logger.debug("bot %s made %d decision(s) in game %s", current.id, len(decisions), game_id)
        response = _command_response(session, current.id)
        response["decisions"] = [d.to_dict() for d in decisions]
        return response


@app.post("/games/{game_id}/reset")
def reset_game(game_id: str, request: PlayerRequest, db: Session = Depends(get_db)):
    """Start the game over with the same seats and rules."""
    with game_lock(game_id):
        row = _get_row(game_id, db)
        _require_seated(row, request.player_id)
        session = _session_for(row)
        session.reset_game(_seating(_players_of(row)))
        row.status = GAME_STATUS_ACTIVE
        _save_session(row, session, db)
        logger.info("reset game %s", game_id)
        return _command_response(session, request.player_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
