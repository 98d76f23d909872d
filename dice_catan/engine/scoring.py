"""
Victory points and the contested bonus tracks.

Scores are always recomputed from build counts plus bonus ownership, never
accumulated, so a bonus changing hands moves points between two players in a
single recompute.
"""

from dice_catan.engine.definitions import GameConfig
from dice_catan.engine.events import GameEvent, bonus_awarded, score_changed
from dice_catan.engine.state import BonusState, Player


def calculate_victory_points(player: Player, bonuses: BonusState, config: GameConfig) -> int:
    """Sum of build points plus the value of every bonus the player holds."""
    points = 0
    for kind, count in player.build_counts.items():
        build_def = config.builds.get(kind)
        if build_def:
            points += count * build_def.victory_points
    for bonus_id, bonus_def in config.bonuses.items():
        if bonuses.holder(bonus_id) == player.id:
            points += bonus_def.victory_points
    return points


def recompute_scores(players: list[Player], bonuses: BonusState, config: GameConfig) -> list[GameEvent]:
    """
    Recompute every player's victory points in place.
    Returns a score_changed event for each player whose total moved.
    """
    events: list[GameEvent] = []
    for player in players:
        new_value = calculate_victory_points(player, bonuses, config)
        if new_value != player.victory_points:
            events.append(score_changed(player.id, player.victory_points, new_value))
            player.victory_points = new_value
    return events


def evaluate_bonuses(
    acting_player: Player,
    bonuses: BonusState,
    players: list[Player],
    config: GameConfig,
) -> list[GameEvent]:
    """
    Re-evaluate bonus holders after acting_player built something.

    A bonus goes to acting_player when their count meets the threshold and
    either nobody holds it or their count strictly exceeds the holder's.
    Ties keep the incumbent. Only the acting player can claim; other players
    are never recounted here.
    """
    events: list[GameEvent] = []
    by_id = {p.id: p for p in players}
    for bonus_id, bonus_def in config.bonuses.items():
        count = acting_player.count(bonus_def.build_kind)
        if count < bonus_def.threshold:
            continue
        holder_id = bonuses.holder(bonus_id)
        if holder_id == acting_player.id:
            continue
        holder = by_id.get(holder_id) if holder_id else None
        if holder is not None and count <= holder.count(bonus_def.build_kind):
            continue
        bonuses.holders[bonus_id] = acting_player.id
        events.append(bonus_awarded(bonus_id, acting_player.id, holder_id, count))
    return events


def _best(candidates: list[Player]) -> Player | None:
    # max() keeps the first of equal scores, i.e. the earliest seat
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.victory_points)


def find_goal_winner(players: list[Player], config: GameConfig) -> Player | None:
    """Player at or above the victory point goal (highest score, then earliest seat)."""
    return _best([p for p in players if p.victory_points >= config.victory_point_goal])


def find_leader(players: list[Player]) -> Player | None:
    """Highest score overall, ties to the earliest seat. Used when the round limit ends the game."""
    return _best(list(players))
