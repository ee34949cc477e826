"""Backlog admission rule.

New tasks enter the board only through the backlog.  They get a rank when an
admin first moves them into a board column.  Demoting a task back to the
backlog drops its rank.
"""

from __future__ import annotations

from typing import Optional

from ..errors import BacklogViolation
from .model import MoveResult, RankUpdate, Task, TaskStatus


def admit_new_task(task: Task) -> Task:
    """Check a producer-created task before it is stored."""
    if task.status != TaskStatus.BACKLOG:
        raise BacklogViolation(
            f"New task {task.id} must start in the backlog, not '{task.status.value}'"
        )
    if task.rank is not None:
        raise BacklogViolation(f"New task {task.id} must not carry a rank")
    return task


def gate_move(task: Task, target_status: TaskStatus) -> Optional[MoveResult]:
    """Resolve a move into the backlog directly.

    Returns None for board targets, which need the rank resolver.
    """
    if target_status.is_ranked:
        return None
    if task.status == TaskStatus.BACKLOG:
        return MoveResult(updated=task.position, noop=True)
    return MoveResult(updated=RankUpdate(task.id, TaskStatus.BACKLOG, None))
