from typing import Tuple

from flask import current_app
from sqlalchemy import func, select

from radquest import db
from radquest.models import Attempt, PlayerStats
from radquest.services.locks import player_locks


def apply_delta(player_id: int, points: int, dose: float) -> PlayerStats:
    """Add one submission's points and dose to the player's counters.

    Must be called inside the caller's transaction (nothing is committed
    here) and only by the attempt ledger, which commits the attempt and the
    delta together. Holds the per-player lock and a row lock while reading
    and writing.
    """
    if points < 0:
        raise ValueError(f'negative points delta {points} for player {player_id}')
    with player_locks.hold(player_id):
        stats = db.session.execute(
            select(PlayerStats)
            .filter_by(player_id=player_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if stats is None:
            stats = PlayerStats(player_id=player_id, knowledge_points=0, dose=0.0)
        stats.knowledge_points = (stats.knowledge_points or 0) + points
        stats.dose = (stats.dose or 0.0) + dose
        db.session.add(stats)
        db.session.flush()
        current_app.logger.debug(f"[stats] player={player_id} +{points}wp +{dose}mSv -> {stats.knowledge_points}wp {stats.dose}mSv")
        return stats


def get_stats(player_id: int) -> PlayerStats:
    """The player's counters; a zeroed, unsaved row when nothing was scored yet."""
    stats = db.session.get(PlayerStats, player_id)
    if stats is None:
        return PlayerStats(player_id=player_id, knowledge_points=0, dose=0.0)
    return stats


def recompute_stats(player_id: int) -> Tuple[int, float]:
    """Sum points and dose over the player's attempts."""
    points, dose = db.session.execute(
        select(
            func.coalesce(func.sum(Attempt.points_got), 0),
            func.coalesce(func.sum(Attempt.dose_got), 0.0),
        ).where(Attempt.player_id == player_id)
    ).one()
    return int(points), float(dose)
