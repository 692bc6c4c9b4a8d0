"""Attempt ledger: turns one submission into a stored, scored attempt.

Order of work for ``submit``:

1. validate everything (raises InvalidSubmission, writes nothing)
2. ask the judge for a verdict (best effort, outside any lock)
3. score deterministically
4. insert the attempt and apply the stats delta in one transaction
   under the player's lock

Every call records a new attempt; repeated submissions for the same task
accumulate points and dose.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, assert_never

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from radquest import db
from radquest.errors import InvalidSubmission, PersistenceFailure
from radquest.models import Attempt, Option, Player, TaskKind
from radquest.services import catalog
from radquest.services.evaluation import ReasoningEvaluator, Verdict
from radquest.services.locks import player_locks
from radquest.services.scoring import check_option, score_submission
from radquest.services.stats import apply_delta


@dataclass(frozen=True)
class SubmissionResult:
    correctness: float
    points_awarded: int
    dose_received: float
    verdict: Optional[Verdict]
    attempt_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'correctness': self.correctness,
            'points_awarded': self.points_awarded,
            'dose_received': self.dose_received,
            'verdict': self.verdict.to_dict() if self.verdict else None,
            'attempt_id': self.attempt_id,
        }


def _current_evaluator() -> ReasoningEvaluator:
    return current_app.extensions['radquest.evaluator']


def submit(
    player_id: int,
    level_id: int,
    task_id: int,
    chosen_option_id: Optional[int],
    answer_text: Optional[str],
    reasoning_text: Optional[str],
    evaluator: Optional[ReasoningEvaluator] = None,
) -> SubmissionResult:
    if db.session.get(Player, player_id) is None:
        raise InvalidSubmission(f'Unknown player {player_id}', status=404)
    level = catalog.get_level(level_id)
    if level is None or not level.is_active:
        raise InvalidSubmission(f'Unknown level {level_id}', status=404)
    task = catalog.get_task(task_id)
    if task is None or task.level_id != level.id:
        raise InvalidSubmission(f'Task {task_id} is not part of level {level_id}', status=404)
    if not task.is_active:
        raise InvalidSubmission(f'Task {task_id} is not active')

    option = None
    if chosen_option_id is not None:
        option = db.session.get(Option, chosen_option_id)
        if option is None:
            raise InvalidSubmission(f'Option {chosen_option_id} does not belong to task {task.id}')
    check_option(task, option)

    answer = (answer_text or '').strip()
    reasoning = (reasoning_text or '').strip() or None
    match task.task_kind:
        case TaskKind.MULTIPLE_CHOICE:
            min_len = int(current_app.config.get('MIN_REASONING_LENGTH', 10))
            if reasoning is None or len(reasoning) < min_len:
                raise InvalidSubmission(f'Please explain your answer (at least {min_len} characters)')
            # The chosen option is the answer; its text is stored for the audit trail
            answer = option.option_text
        case TaskKind.FREE_TEXT:
            if not answer:
                raise InvalidSubmission('Please enter an answer')
        case _:
            assert_never(task.task_kind)

    options = catalog.get_task_options(task.id)
    judge = evaluator or _current_evaluator()
    verdict = judge.evaluate(level, task, options, option, answer, reasoning)

    score = score_submission(task, option, verdict)

    attempt = Attempt(
        player_id=player_id,
        level_id=level.id,
        task_id=task.id,
        option_id=option.id if option is not None else None,
        answer=answer,
        reasoning=reasoning,
        correctness=score.correctness,
        points_got=score.points_got,
        dose_got=score.dose_got,
        ai_score=verdict.score if verdict else None,
        ai_summary=verdict.summary if verdict else None,
        ai_strengths=json.dumps(list(verdict.strengths)) if verdict else None,
        ai_weaknesses=json.dumps(list(verdict.weaknesses)) if verdict else None,
    )
    with player_locks.hold(player_id):
        try:
            db.session.add(attempt)
            apply_delta(player_id, score.points_got, score.dose_got)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f"[submit-fail] player={player_id} task={task.id}")
            raise PersistenceFailure(f'Could not store the attempt: {exc.__class__.__name__}') from exc

    current_app.logger.info(
        f"[submit] player={player_id} level={level.id} task={task.id} attempt={attempt.id} "
        f"points={score.points_got} dose={score.dose_got} verdict={'yes' if verdict else 'no'}"
    )
    return SubmissionResult(
        correctness=score.correctness,
        points_awarded=score.points_got,
        dose_received=score.dose_got,
        verdict=verdict,
        attempt_id=attempt.id,
    )


def list_attempts(player_id: int, level_id: Optional[int] = None) -> List[Attempt]:
    query = Attempt.query.filter_by(player_id=player_id)
    if level_id is not None:
        query = query.filter_by(level_id=level_id)
    return query.order_by(Attempt.created_at, Attempt.id).all()
