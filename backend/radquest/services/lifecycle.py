"""Level lifecycle: not_started -> in_progress -> completed.

A (player, level) pair without a row is not started. Transitions only move
forward; repeating a transition is a no-op. Completing a level that was
never started records an implicit start at the same instant. Inactive
levels are treated like missing ones.
"""
from typing import List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from radquest import db
from radquest.errors import InvalidSubmission
from radquest.models import Level, LevelProgress, LevelState, Player, utcnow
from radquest.services.locks import level_progress_locks


def _check_refs(player_id: int, level_id: int) -> None:
    if db.session.get(Player, player_id) is None:
        raise InvalidSubmission(f'Unknown player {player_id}', status=404)
    level = db.session.get(Level, level_id)
    if level is None or not level.is_active:
        raise InvalidSubmission(f'Unknown level {level_id}', status=404)


def _find(player_id: int, level_id: int):
    return (
        LevelProgress.query.filter_by(player_id=player_id, level_id=level_id)
        .execution_options(populate_existing=True)
        .first()
    )


def _insert(progress: LevelProgress) -> LevelProgress:
    """Insert a new row; if another writer got there first, return theirs."""
    db.session.add(progress)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = _find(progress.player_id, progress.level_id)
        if existing is None:
            raise
        return existing
    return progress


def start(player_id: int, level_id: int) -> LevelProgress:
    _check_refs(player_id, level_id)
    with level_progress_locks.hold((player_id, level_id)):
        progress = _find(player_id, level_id)
        if progress is not None:
            return progress
        progress = _insert(LevelProgress(
            player_id=player_id,
            level_id=level_id,
            state=LevelState.IN_PROGRESS.value,
            started_at=utcnow(),
        ))
        current_app.logger.info(f"[lifecycle] player={player_id} level={level_id} started")
        return progress


def complete(player_id: int, level_id: int) -> LevelProgress:
    _check_refs(player_id, level_id)
    with level_progress_locks.hold((player_id, level_id)):
        progress = _find(player_id, level_id)
        if progress is not None and progress.state == LevelState.COMPLETED.value:
            return progress

        now = utcnow()
        if progress is None:
            progress = _insert(LevelProgress(
                player_id=player_id,
                level_id=level_id,
                state=LevelState.COMPLETED.value,
                started_at=now,
                completed_at=now,
            ))
            current_app.logger.info(f"[lifecycle] player={player_id} level={level_id} completed without start (implicit start)")
            if progress.state == LevelState.COMPLETED.value:
                return progress

        progress.state = LevelState.COMPLETED.value
        progress.completed_at = now
        db.session.add(progress)
        db.session.commit()
        current_app.logger.info(f"[lifecycle] player={player_id} level={level_id} completed")
        return progress


def get_progress(player_id: int) -> List[LevelProgress]:
    return (
        LevelProgress.query.filter_by(player_id=player_id)
        .order_by(LevelProgress.level_id)
        .all()
    )
