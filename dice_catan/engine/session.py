"""
Game session: the command interface over one game's state.

One GameSession per game; there is no module-level game. The session owns the
state, the rules and a seedable random source. Commands go through the
reducer and always return the full snapshot, unchanged on refusal. Commands
are synchronous; callers serialize access per session.
"""

import logging
import random
from typing import Any

from dice_catan.engine import actions as act
from dice_catan.engine.bot import BotDecision, decide, decision_to_actions
from dice_catan.engine.definitions import BuildKind, GameConfig, Resource, default_config
from dice_catan.engine.events import ACTION_REJECTED, GameEvent
from dice_catan.engine.queries import (
    can_afford,
    get_available_resources,
    get_build_options,
    get_missing_resources,
    ValidationResult,
    validate_action,
)
from dice_catan.engine.reducer import apply_action
from dice_catan.engine.state import GameState
from dice_catan.engine.utils import initialize_game_state, roll_faces

logger = logging.getLogger(__name__)

# A bot turn is at most: max rolls, locks before each reroll, one build, end turn.
# The bound only protects against a misconfigured rule set.
BOT_TURN_STEP_LIMIT = 64


class GameSession:
    """Handle for one game. Pass it explicitly to whoever issues commands."""

    def __init__(self, state: GameState, config: GameConfig | None = None, seed: int | None = None):
        self.state = state
        self.config = config or default_config()
        self.rng = random.Random(seed)
        self.last_events: list[GameEvent] = []

    @classmethod
    def new(
        cls,
        players: list[dict],
        config: GameConfig | None = None,
        seed: int | None = None,
        game_id: str | None = None,
    ) -> "GameSession":
        """Start a game for the given seating order, e.g. [{"name": "Ann", "is_bot": False}]."""
        config = config or default_config()
        session = cls(initialize_game_state(players, config, game_id=game_id), config, seed)
        logger.info("game %s started with %d players", game_id or "-", len(players))
        return session

    # ===== Commands =====

    def dispatch(self, action: act.Action) -> dict[str, Any]:
        """Apply an action and return the snapshot."""
        self.state, self.last_events = apply_action(self.state, action, self.config)
        for event in self.last_events:
            if event.type == ACTION_REJECTED:
                logger.debug("rejected %s for %s: %s", action.type, action.player_id, event.payload["reason"])
            else:
                logger.debug("event %s %s", event.type, event.payload)
        return self.snapshot()

    def roll(self) -> dict[str, Any]:
        """Roll the unlocked dice for the current player."""
        faces = roll_faces(len(self.state.dice), self.rng)
        return self.dispatch(act.roll(self.state.current_player_id, faces))

    def toggle_lock(self, die_index: int) -> dict[str, Any]:
        return self.dispatch(act.toggle_lock(self.state.current_player_id, die_index))

    def build(self, build_kind: BuildKind | str) -> dict[str, Any]:
        return self.dispatch(act.build(self.state.current_player_id, build_kind))

    def end_turn(self) -> dict[str, Any]:
        return self.dispatch(act.end_turn(self.state.current_player_id))

    def reset_game(self, players: list[dict]) -> dict[str, Any]:
        """Throw the current game away and seat players afresh with the same rules."""
        self.state = initialize_game_state(players, self.config, game_id=self.state.game_id)
        self.last_events = []
        logger.info("game %s reset with %d players", self.state.game_id or "-", len(players))
        return self.snapshot()

    # ===== Bot =====

    def bot_decision(self) -> BotDecision:
        return decide(self.state, self.state.current_player_id, self.config)

    def bot_step(self) -> BotDecision:
        """
        Let the bot make one decision for the current player and carry it out.
        A lock decision locks the chosen dice that are not locked yet, then rolls.
        """
        decision = self.bot_decision()
        faces = roll_faces(len(self.state.dice), self.rng)
        events: list[GameEvent] = []
        for action in decision_to_actions(self.state, self.state.current_player_id, decision, faces):
            self.dispatch(action)
            events.extend(self.last_events)
        self.last_events = events
        return decision

    def play_bot_turn(self) -> list[BotDecision]:
        """
        Run bot steps until the turn passes to someone else or the game ends.
        last_events holds the events of the whole turn afterwards.
        """
        player_id = self.state.current_player_id
        decisions: list[BotDecision] = []
        events: list[GameEvent] = []
        while not self.state.is_finished and self.state.current_player_id == player_id:
            if len(decisions) >= BOT_TURN_STEP_LIMIT:
                raise RuntimeError(f"Bot {player_id} did not finish its turn in {BOT_TURN_STEP_LIMIT} steps")
            decisions.append(self.bot_step())
            events.extend(self.last_events)
        self.last_events = events
        return decisions

    # ===== Queries =====

    def get_available_resources(self) -> dict[Resource, int]:
        return get_available_resources(self.state)

    def can_afford(self, build_kind: BuildKind | str) -> bool:
        return can_afford(self.state, build_kind, self.config)

    def get_missing_resources(self, build_kind: BuildKind | str) -> list[Resource]:
        return get_missing_resources(self.state, build_kind, self.config)

    def get_build_options(self) -> list[dict[str, Any]]:
        return get_build_options(self.state, self.state.current_player_id, self.config)

    def validate(self, action: act.Action) -> ValidationResult:
        return validate_action(self.state, action, self.config)

    def snapshot(self) -> dict[str, Any]:
        """Full game state as plain data."""
        return self.state.to_dict()
