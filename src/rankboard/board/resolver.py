"""Rank computation for a single move.

New ranks come from the gap between the destination neighbours:

* between two tasks: the integer midpoint, rounded toward the upper
  neighbour (``before``), so both sides keep headroom;
* at the head or tail: one ``step`` beyond the extreme rank;
* into an empty column: ``step``.

Only when the neighbours leave no free integer (adjacent or tied ranks), or
the candidate would leave the ``±RANK_LIMIT`` range, is the whole destination
column renumbered to ``step, 2*step, ...``.  That is the only path in which
siblings get new ranks.
"""

from __future__ import annotations

from typing import Optional, Sequence

from loguru import logger

from ..constants import DEFAULT_RANK_STEP, RANK_LIMIT
from ..errors import InvalidTargetIndex
from .model import MoveResult, RankUpdate, Task, TaskStatus
from .view import rank_key


def _gap_rank(before: Optional[Task], after: Optional[Task], step: int) -> Optional[int]:
    """Rank for a slot between *before* and *after*, or None if there is none."""
    if (before is not None and before.rank is None) or (after is not None and after.rank is None):
        return None
    if before is not None and after is not None:
        gap = after.rank - before.rank  # type: ignore[operator]
        if gap < 2:
            return None
        rank = before.rank + gap // 2  # type: ignore[operator]
    elif after is not None:
        rank = after.rank - step  # type: ignore[operator]
    elif before is not None:
        rank = before.rank + step
    else:
        rank = step
    if abs(rank) > RANK_LIMIT:
        return None
    return rank


def _current_index(task: Task, column: Sequence[Task]) -> int:
    key = rank_key(task)
    return sum(1 for t in column if rank_key(t) < key)


def resolve_move(
    task: Task,
    target_status: TaskStatus,
    target_index: int,
    column: Sequence[Task],
    step: int = DEFAULT_RANK_STEP,
) -> MoveResult:
    """Compute the ranks that place *task* at *target_index* of *target_status*.

    Args:
        task: The task being moved (its current status/rank are read, never written).
        target_status: Destination board column; the backlog is handled by the gate.
        target_index: Zero-based position in the destination column after the
            move, counted without the moved task.
        column: Current projected order of the destination column.  The moved
            task is ignored if present.
        step: Rank spacing for extremities and renumbering.

    Returns:
        A :class:`MoveResult`.  ``shifted`` is empty unless the column was renumbered.

    Raises:
        InvalidTargetIndex: *target_index* is not in ``0..len(column)``.
        ValueError: *target_status* is the backlog.
    """
    if not target_status.is_ranked:
        raise ValueError("Moves into the backlog carry no rank; use the backlog gate")
    members = [t for t in column if t.id != task.id]
    if isinstance(target_index, bool) or not isinstance(target_index, int) \
            or not 0 <= target_index <= len(members):
        raise InvalidTargetIndex(target_index, len(members), target_status.value)

    if (
        task.status == target_status
        and task.rank is not None
        and _current_index(task, members) == target_index
    ):
        return MoveResult(updated=task.position, noop=True)

    before = members[target_index - 1] if target_index > 0 else None
    after = members[target_index] if target_index < len(members) else None
    rank = _gap_rank(before, after, step)
    if rank is not None:
        return MoveResult(updated=RankUpdate(task.id, target_status, rank))

    ordered = members[:target_index] + [task] + members[target_index:]
    updated: Optional[RankUpdate] = None
    shifted: list[RankUpdate] = []
    for position, member in enumerate(ordered, start=1):
        new_rank = position * step
        if member.id == task.id:
            updated = RankUpdate(task.id, target_status, new_rank)
        elif member.rank != new_rank:
            shifted.append(RankUpdate(member.id, target_status, new_rank))
    assert updated is not None
    logger.warning(
        "No rank gap at index {} of '{}'; renumbering {} task(s)",
        target_index,
        target_status.value,
        len(ordered),
    )
    return MoveResult(updated=updated, shifted=tuple(shifted), renumbered=True)
