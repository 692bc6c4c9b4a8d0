from typing import List, Optional, Sequence

from radquest.models import Level, Task, Option


def list_levels() -> List[Level]:
    return Level.query.filter_by(is_active=True).order_by(Level.ordering, Level.id).all()


def get_level(level_id: int) -> Optional[Level]:
    return Level.query.filter_by(id=level_id).first()


def get_level_tasks(level_id: int) -> List[Task]:
    return (
        Task.query.filter_by(level_id=level_id, is_active=True)
        .order_by(Task.ordering, Task.id)
        .all()
    )


def get_task(task_id: int) -> Optional[Task]:
    return Task.query.filter_by(id=task_id).first()


def get_task_options(task_id: int) -> List[Option]:
    return Option.query.filter_by(task_id=task_id).order_by(Option.ordering, Option.id).all()


def best_option(options: Sequence[Option]) -> Optional[Option]:
    """Highest correctness wins; the earlier option wins a tie."""
    best = None
    for opt in options:
        if best is None or opt.correctness > best.correctness:
            best = opt
    return best
