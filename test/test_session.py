"""
End-to-end tests through GameSession: seeded rolls, bot turns, full games and
the example game from the rules (settlements, a knight army and the cap).
"""

from unittest.mock import patch

import pytest

from conftest import CITY_FACES, KNIGHT_FACES, NOTHING_FACES, ROAD_FACES, SETTLEMENT_FACES, set_faces
from dice_catan.engine.actions import build
from dice_catan.engine.definitions import LARGEST_ARMY, LONGEST_ROAD, BuildKind, GameConfig
from dice_catan.engine.events import ACTION_REJECTED, REASON_MAX_COUNT_REACHED
from dice_catan.engine.session import GameSession
from dice_catan.engine.state import STATUS_FINISHED
from dice_catan.engine.utils import initialize_game_state


def bots(n):
    return [{"name": f"Bot {i + 1}", "is_bot": True} for i in range(n)]


class TestSession:
    def test_new_assigns_ids_in_seating_order(self):
        session = GameSession.new([{"name": "Ann"}, {"name": "Ben"}], GameConfig())
        assert [p.id for p in session.state.players] == ["player_1", "player_2"]
        assert session.state.current_player_id == "player_1"

    def test_same_seed_same_rolls(self):
        a = GameSession.new([{"name": "Ann"}], GameConfig(), seed=7)
        b = GameSession.new([{"name": "Ann"}], GameConfig(), seed=7)
        assert a.roll() == b.roll()

    def test_roll_returns_snapshot(self):
        session = GameSession.new([{"name": "Ann"}], GameConfig(), seed=1)
        snapshot = session.roll()
        assert snapshot["roll_count"] == 1
        assert snapshot["phase"] == "can_roll_or_build"

    def test_queries_follow_current_dice(self):
        session = GameSession(initialize_game_state([{"name": "Ann"}], GameConfig()), GameConfig())
        set_faces(session.state, SETTLEMENT_FACES)
        assert session.can_afford("settlement")
        assert not session.can_afford(BuildKind.CITY)
        assert session.get_missing_resources("city") == ["ore", "wheat"]
        assert session.validate(build(session.state.current_player_id, "settlement")).valid

    def test_rejection_keeps_snapshot(self):
        session = GameSession.new([{"name": "Ann"}], GameConfig())
        before = session.snapshot()
        after = session.build("city")
        assert after == before
        assert session.last_events[0].type == ACTION_REJECTED

    def test_reset_game(self):
        session = GameSession.new([{"name": "Ann"}], GameConfig(), seed=3)
        session.roll()
        session.reset_game([{"name": "Ann"}, {"name": "Ben", "is_bot": True}])
        assert len(session.state.players) == 2
        assert session.state.roll_count == 0
        assert session.last_events == []

    def test_build_with_unknown_kind_raises(self):
        session = GameSession.new([{"name": "Ann"}], GameConfig())
        with pytest.raises(ValueError):
            session.build("castle")


class TestBots:
    def test_bot_turn_passes_the_dice(self):
        session = GameSession.new(bots(2), GameConfig(), seed=11)
        decisions = session.play_bot_turn()
        assert decisions[-1].action == "end_turn"
        assert session.state.current_player_id == "player_2"
        assert session.state.players[0].turns_completed == 1

    def test_bot_never_rolls_more_than_allowed(self):
        session = GameSession.new(bots(1), GameConfig(), seed=5)
        session.play_bot_turn()
        rolls = [e for e in session.last_events if e.type == "dice_rolled"]
        assert 1 <= len(rolls) <= 3
        assert not any(e.type == ACTION_REJECTED for e in session.last_events)

    @pytest.mark.parametrize("seed", [1, 2, 3, 42])
    def test_bot_game_terminates(self, seed):
        session = GameSession.new(bots(4), GameConfig(), seed=seed)
        for _ in range(4 * 15):
            if session.state.is_finished:
                break
            session.play_bot_turn()
        assert session.state.status == STATUS_FINISHED
        assert session.state.winner_id in {p.id for p in session.state.players}

    def test_bot_reaches_goal_without_turn_limit(self):
        config = GameConfig(victory_point_goal=5, max_turns=None)
        session = GameSession.new(bots(1), config, seed=9)
        for _ in range(500):
            if session.state.is_finished:
                break
            session.play_bot_turn()
        assert session.state.is_finished
        assert session.state.players[0].victory_points >= 5

    def test_bot_turn_limit_guard(self):
        session = GameSession.new(bots(1), GameConfig(), seed=1)
        with patch("dice_catan.engine.session.BOT_TURN_STEP_LIMIT", 0):
            with pytest.raises(RuntimeError):
                session.play_bot_turn()


class TestExampleGame:
    """Two players, goal 10, bonus transfer and the settlement cap."""

    def build_with(self, session, faces, kind):
        set_faces(session.state, faces)
        session.build(kind)
        session.end_turn()

    def test_settlements_and_largest_army(self):
        session = GameSession.new([{"id": "a", "name": "A"}, {"id": "b", "name": "B"}], GameConfig())

        # A builds a settlement each turn, B passes
        for _ in range(4):
            self.build_with(session, SETTLEMENT_FACES, "settlement")
            session.end_turn()
        a, b = session.state.players
        assert a.count(BuildKind.SETTLEMENT) == 4
        assert a.victory_points == 4

        # B builds three knights and claims Largest Army
        for _ in range(3):
            session.end_turn()
            self.build_with(session, KNIGHT_FACES, "knight")
        a, b = session.state.players
        assert session.state.bonuses.holder(LARGEST_ARMY) == "b"
        assert b.victory_points == 2

        # A matches with three knights: ties keep B as holder
        for _ in range(3):
            self.build_with(session, KNIGHT_FACES, "knight")
            session.end_turn()
        assert session.state.bonuses.holder(LARGEST_ARMY) == "b"

        # A's fourth knight is strictly more and takes the bonus
        self.build_with(session, KNIGHT_FACES, "knight")
        a, b = session.state.players
        assert session.state.bonuses.holder(LARGEST_ARMY) == "a"
        assert (a.victory_points, b.victory_points) == (6, 0)
        assert session.state.status != STATUS_FINISHED

    def test_sixth_settlement_is_noop(self):
        session = GameSession.new([{"id": "a", "name": "A"}], GameConfig(victory_point_goal=20))
        session.state.players[0].build_counts[BuildKind.SETTLEMENT] = 5
        set_faces(session.state, SETTLEMENT_FACES)
        before = session.snapshot()
        assert session.build("settlement") == before
        assert session.last_events[0].payload["reason"] == REASON_MAX_COUNT_REACHED

    def test_nothing_affordable_leaves_score(self):
        session = GameSession.new([{"id": "a", "name": "A"}], GameConfig())
        set_faces(session.state, NOTHING_FACES)
        session.build("road")
        assert session.state.players[0].victory_points == 0

    def test_roads_settlements_city_and_army_reach_ten(self):
        session = GameSession.new([{"id": "p1", "name": "P1"}, {"id": "p2", "name": "P2"}], GameConfig())
        plan = (
            [(ROAD_FACES, "road")] * 5
            + [(SETTLEMENT_FACES, "settlement")] * 2
            + [(CITY_FACES, "city")]
            + [(KNIGHT_FACES, "knight")] * 3
            + [(SETTLEMENT_FACES, "settlement"), (CITY_FACES, "city")]
        )

        # P1 builds once per turn, P2 passes
        scores = []
        for faces, kind in plan:
            assert session.state.status != STATUS_FINISHED
            assert session.state.current_player_id == "p1"
            set_faces(session.state, faces)
            session.build(kind)
            scores.append(session.state.players[0].victory_points)
            if session.state.is_finished:
                break
            session.end_turn()
            session.end_turn()

        assert scores == [0, 0, 0, 0, 2, 3, 4, 6, 6, 6, 8, 9, 11]
        assert session.state.bonuses.holder(LONGEST_ROAD) == "p1"
        assert session.state.bonuses.holder(LARGEST_ARMY) == "p1"
        assert session.state.status == STATUS_FINISHED
        assert session.state.winner_id == "p1"
        assert session.state.turn_number == 13
