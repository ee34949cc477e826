"""Error taxonomy for the board ordering engine.

Validation errors (:class:`TaskNotFound`, :class:`InvalidTargetIndex`,
:class:`BacklogViolation`) are raised before any state is touched.
Persistence errors are raised by the coordinator *after* it has rolled back
and resynced its local model.  :class:`DataIntegrityError` is never repaired
automatically.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .board.model import MoveResult


class BoardError(Exception):
    """Base class for every error raised by rankboard."""


class TaskNotFound(BoardError, KeyError):
    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"Task {self.task_id} not found"


class InvalidTargetIndex(BoardError, ValueError):
    def __init__(self, target_index: Any, column_length: int, status: str) -> None:
        super().__init__(
            f"Target index {target_index!r} out of bounds for column '{status}' "
            f"(valid range 0..{column_length})"
        )
        self.target_index = target_index
        self.column_length = column_length
        self.status = status


class InvalidTargetStatus(BoardError, ValueError):
    """A move request named a column that does not exist."""

    def __init__(self, raw: Any) -> None:
        super().__init__(
            f"Unknown target status {raw!r}; expected one of "
            "backlog, todo, in-progress, testing, done"
        )
        self.raw = raw


class BacklogViolation(BoardError, ValueError):
    """A new task tried to enter the board outside the backlog."""


class DataIntegrityError(BoardError):
    """Stored data violates an ordering invariant (unknown status, tied ranks...)."""

    def __init__(self, message: str, problems: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.problems = list(problems or [])


class PersistenceFailure(BoardError):
    """A commit batch was rejected or errored; the local model has been resynced."""

    def __init__(self, message: str, result: Optional["MoveResult"] = None) -> None:
        super().__init__(message)
        self.result = result


class PersistenceTimeout(PersistenceFailure):
    """The commit did not answer within the bounded wait."""
