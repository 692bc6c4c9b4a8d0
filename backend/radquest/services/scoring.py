from dataclasses import dataclass
from typing import Optional, assert_never

from radquest.errors import InvalidSubmission
from radquest.models import Option, Task, TaskKind
from radquest.services.evaluation import Verdict


@dataclass(frozen=True)
class Score:
    correctness: float
    points_got: int
    dose_got: float


def check_option(task: Task, option: Optional[Option]) -> None:
    """Raise InvalidSubmission unless ``option`` fits the task's kind."""
    match task.task_kind:
        case TaskKind.MULTIPLE_CHOICE:
            if option is None:
                raise InvalidSubmission('Please choose an answer option')
            if option.task_id != task.id:
                raise InvalidSubmission(f'Option {option.id} does not belong to task {task.id}')
        case TaskKind.FREE_TEXT:
            if option is not None:
                raise InvalidSubmission(f'Task {task.id} is a free-text task and takes no option')
        case _:
            assert_never(task.task_kind)


def score_submission(task: Task, option: Optional[Option], verdict: Optional[Verdict]) -> Score:
    """Deterministic score for one submission.

    Multiple choice copies the chosen option's values. Free text follows a
    single rule: the verdict score scales ``task.max_points``
    (``round(score / 10 * max_points)``), correctness is ``score / 10`` and
    no dose is received. Without a verdict a free-text answer is ungraded and
    scores zero.
    """
    check_option(task, option)
    match task.task_kind:
        case TaskKind.MULTIPLE_CHOICE:
            return Score(
                correctness=float(option.correctness),
                points_got=int(option.points_awarded),
                dose_got=float(option.dose_delta),
            )
        case TaskKind.FREE_TEXT:
            if verdict is None:
                return Score(correctness=0.0, points_got=0, dose_got=0.0)
            return Score(
                correctness=verdict.score / 10,
                points_got=int(round(verdict.score * (task.max_points or 0) / 10)),
                dose_got=0.0,
            )
        case _:
            assert_never(task.task_kind)
