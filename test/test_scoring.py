"""
Tests for victory point calculation and the Longest Road / Largest Army tracks.
"""

from dice_catan.engine.definitions import LARGEST_ARMY, LONGEST_ROAD, BuildKind, GameConfig
from dice_catan.engine.events import BONUS_AWARDED, SCORE_CHANGED
from dice_catan.engine.scoring import (
    calculate_victory_points,
    evaluate_bonuses,
    find_goal_winner,
    find_leader,
    recompute_scores,
)
from dice_catan.engine.state import BonusState, Player


def player(pid, **counts):
    p = Player(id=pid, display_name=pid)
    for kind, n in counts.items():
        p.build_counts[BuildKind(kind)] = n
    return p


class TestVictoryPoints:
    def test_settlements_and_cities(self):
        config = GameConfig()
        p = player("a", settlement=3, city=2)
        assert calculate_victory_points(p, BonusState(), config) == 7

    def test_roads_and_knights_worth_nothing_alone(self):
        config = GameConfig()
        p = player("a", road=4, knight=2)
        assert calculate_victory_points(p, BonusState(), config) == 0

    def test_bonus_adds_two(self):
        config = GameConfig()
        p = player("a", settlement=1, road=5)
        bonuses = BonusState({LONGEST_ROAD: "a"})
        assert calculate_victory_points(p, bonuses, config) == 3

    def test_recompute_emits_only_changes(self):
        config = GameConfig()
        a, b = player("a", settlement=2), player("b")
        events = recompute_scores([a, b], BonusState(), config)
        assert a.victory_points == 2
        assert [e.type for e in events] == [SCORE_CHANGED]
        assert events[0].payload == {"player": "a", "old_value": 0, "new_value": 2, "change": 2}
        assert recompute_scores([a, b], BonusState(), config) == []


class TestBonuses:
    def test_below_threshold_no_bonus(self):
        config = GameConfig()
        a = player("a", road=4)
        bonuses = BonusState()
        assert evaluate_bonuses(a, bonuses, [a], config) == []
        assert bonuses.holder(LONGEST_ROAD) is None

    def test_first_to_threshold_claims(self):
        config = GameConfig()
        a = player("a", road=5)
        bonuses = BonusState()
        events = evaluate_bonuses(a, bonuses, [a], config)
        assert bonuses.holder(LONGEST_ROAD) == "a"
        assert events[0].type == BONUS_AWARDED
        assert events[0].payload["previous_holder"] is None

    def test_tie_keeps_incumbent(self):
        config = GameConfig()
        a, b = player("a", road=5), player("b", road=5)
        bonuses = BonusState({LONGEST_ROAD: "a"})
        assert evaluate_bonuses(b, bonuses, [a, b], config) == []
        assert bonuses.holder(LONGEST_ROAD) == "a"

    def test_strictly_greater_takes_over(self):
        config = GameConfig()
        a, b = player("a", road=5), player("b", road=6)
        bonuses = BonusState({LONGEST_ROAD: "a"})
        events = evaluate_bonuses(b, bonuses, [a, b], config)
        assert bonuses.holder(LONGEST_ROAD) == "b"
        assert events[0].payload["previous_holder"] == "a"

    def test_transfer_moves_points_between_players(self):
        config = GameConfig()
        a, b = player("a", road=5), player("b", road=6)
        bonuses = BonusState({LONGEST_ROAD: "a"})
        recompute_scores([a, b], bonuses, config)
        assert (a.victory_points, b.victory_points) == (2, 0)
        evaluate_bonuses(b, bonuses, [a, b], config)
        events = recompute_scores([a, b], bonuses, config)
        assert (a.victory_points, b.victory_points) == (0, 2)
        assert {e.payload["player"] for e in events} == {"a", "b"}

    def test_largest_army_at_three_knights(self):
        config = GameConfig()
        a = player("a", knight=3)
        bonuses = BonusState()
        evaluate_bonuses(a, bonuses, [a], config)
        assert bonuses.holder(LARGEST_ARMY) == "a"
        assert bonuses.holder(LONGEST_ROAD) is None

    def test_only_acting_player_is_considered(self):
        config = GameConfig()
        a, b = player("a", road=2), player("b", road=7)
        bonuses = BonusState()
        evaluate_bonuses(a, bonuses, [a, b], config)
        assert bonuses.holder(LONGEST_ROAD) is None


class TestWinner:
    def test_goal_winner_needs_goal(self):
        config = GameConfig(victory_point_goal=3)
        a, b = player("a"), player("b")
        a.victory_points, b.victory_points = 2, 1
        assert find_goal_winner([a, b], config) is None
        b.victory_points = 3
        assert find_goal_winner([a, b], config) is b

    def test_leader_ties_go_to_earliest_seat(self):
        a, b = player("a"), player("b")
        a.victory_points = b.victory_points = 4
        assert find_leader([a, b]) is a
