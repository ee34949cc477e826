"""Read-side projection of the task set into ordered columns.

Nothing in this module mutates its input.  Projection is cheap enough to run
on every render.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Optional

from loguru import logger

from ..errors import DataIntegrityError, TaskNotFound
from .model import Task, TaskStatus


def rank_key(task: Task) -> tuple[bool, int, str]:
    # A ranked task without a rank only exists in corrupt data; sort it last
    # rather than crash the render, check_integrity() reports it.
    return (task.rank is None, task.rank or 0, task.id)


def project(tasks: Iterable[Task]) -> dict[TaskStatus, list[Task]]:
    """Group *tasks* by status, each board column sorted by ``(rank, id)``.

    Every status is present in the result.  The backlog keeps input order,
    which for store snapshots is creation order.  Rank ties (transient during
    an optimistic move) are broken by id so the order is reproducible.
    """
    columns: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        columns[task.status].append(task)
    for status in TaskStatus.board_columns():
        columns[status].sort(key=rank_key)
    return columns


def column(tasks: Iterable[Task], status: TaskStatus, exclude: Optional[str] = None) -> list[Task]:
    """Return one projected column, optionally without task *exclude*."""
    members = [t for t in tasks if t.status == status and t.id != exclude]
    if status.is_ranked:
        members.sort(key=rank_key)
    return members


def index_of(tasks: Iterable[Task], task_id: str) -> tuple[TaskStatus, int]:
    """Return ``(status, index)`` of *task_id* in its projected column."""
    task_list = list(tasks)
    for task in task_list:
        if task.id == task_id:
            members = column(task_list, task.status)
            return task.status, next(i for i, t in enumerate(members) if t.id == task_id)
    raise TaskNotFound(task_id)


def check_integrity(tasks: Iterable[Task]) -> None:
    """Raise :class:`DataIntegrityError` if the set violates an at-rest invariant.

    Checked: unique ids, every board task ranked, no backlog task ranked, no
    two tasks of a board status sharing a rank.  Problems are reported, never
    repaired.
    """
    task_list = list(tasks)
    problems: list[str] = []

    id_counts = Counter(t.id for t in task_list)
    for task_id, count in sorted(id_counts.items()):
        if count > 1:
            problems.append(f"id {task_id} appears {count} times")

    for status, members in project(task_list).items():
        if not status.is_ranked:
            for t in members:
                if t.rank is not None:
                    problems.append(f"backlog task {t.id} carries rank {t.rank}")
            continue
        seen: dict[int, str] = {}
        for t in members:
            if t.rank is None:
                problems.append(f"task {t.id} in '{status.value}' has no rank")
                continue
            if t.rank in seen:
                problems.append(
                    f"tasks {seen[t.rank]} and {t.id} share rank {t.rank} in '{status.value}'"
                )
            else:
                seen[t.rank] = t.id

    if problems:
        logger.error("Board integrity check failed: {}", "; ".join(problems))
        raise DataIntegrityError(f"{len(problems)} integrity problem(s): {problems[0]}", problems)


def summarize(tasks: Iterable[Task]) -> dict[str, Any]:
    """Per-column counts plus the share of tasks that are done."""
    columns = project(tasks)
    counts = {status.value: len(members) for status, members in columns.items()}
    total = sum(counts.values())
    done = counts[TaskStatus.DONE.value]
    return {
        "counts": counts,
        "total": total,
        "progress": round(done / total, 4) if total else 0.0,
    }
