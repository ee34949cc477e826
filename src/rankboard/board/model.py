"""Task model for the ranked task board.

A task sits in exactly one :class:`TaskStatus` column.  Board columns order
their tasks by an integer ``rank``; the ``backlog`` pseudo-column is unranked
and keeps creation order.  Everything besides ``id``, ``status`` and ``rank``
is payload carried for the UI and never inspected by the ordering code.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional

from ..errors import DataIntegrityError
from ..utils import _generate_id, _now_iso


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Board column a task occupies."""

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    TESTING = "testing"
    DONE = "done"

    @property
    def is_ranked(self) -> bool:
        return self is not TaskStatus.BACKLOG

    @classmethod
    def board_columns(cls) -> tuple["TaskStatus", ...]:
        return tuple(s for s in cls if s.is_ranked)

    @classmethod
    def parse(cls, raw: Any) -> "TaskStatus":
        """Coerce a stored/transported value, raising on anything unknown.

        Status strings written by older board clients are accepted through
        :data:`LEGACY_STATUS_ALIASES`.
        """
        if isinstance(raw, cls):
            return raw
        value = str(raw).strip() if raw is not None else ""
        value = LEGACY_STATUS_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError:
            raise DataIntegrityError(
                f"Unknown task status {raw!r}; expected one of {[s.value for s in cls]}"
            ) from None


LEGACY_STATUS_ALIASES: dict[str, str] = {
    "pending": "backlog",
    "to-do": "todo",
    "in_progress": "in-progress",
    "completed": "done",
}


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A work item on the board.

    ``rank`` is ``None`` while the task is in the backlog.  Tasks created by
    the generation pipeline always start there.
    """

    # Identity and ordering
    id: str = field(default_factory=_generate_id)
    status: TaskStatus = TaskStatus.BACKLOG
    rank: Optional[int] = None

    # Payload
    title: str = ""
    description: str = ""
    section: str = "Custom"
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: int = 0
    dependencies: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for YAML/JSON persistence."""
        data: dict[str, Any] = {}
        for k, v in asdict(self).items():
            if isinstance(v, Enum):
                data[k] = v.value
            else:
                data[k] = v
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize from a plain dict.

        An unknown ``status`` raises :class:`DataIntegrityError`; it is never
        silently mapped to a default column.  A non-integer ``rank`` on a
        ranked task is rejected the same way.
        """
        d = dict(data)
        if "id" not in d or d["id"] in (None, ""):
            raise DataIntegrityError(f"Task record without id: {data!r}")
        status = TaskStatus.parse(d.pop("status", TaskStatus.BACKLOG.value))

        rank_raw = d.pop("rank", None)
        rank: Optional[int] = None
        if status.is_ranked and rank_raw is not None:
            if isinstance(rank_raw, bool) or not isinstance(rank_raw, int):
                raise DataIntegrityError(f"Task {d['id']} has non-integer rank {rank_raw!r}")
            rank = rank_raw

        try:
            priority = TaskPriority(str(d.pop("priority", TaskPriority.MEDIUM.value)))
        except ValueError:
            priority = TaskPriority.MEDIUM

        return cls(
            id=str(d.pop("id")),
            status=status,
            rank=rank,
            title=str(d.pop("title", "") or ""),
            description=str(d.pop("description", "") or ""),
            section=str(d.pop("section", "Custom") or "Custom"),
            priority=priority,
            estimated_hours=int(d.pop("estimated_hours", 0) or 0),
            dependencies=str(d.pop("dependencies", "") or ""),
            metadata=dict(d.pop("metadata", {}) or {}),
            created_at=str(d.pop("created_at", _now_iso())),
            updated_at=str(d.pop("updated_at", _now_iso())),
        )

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = _now_iso()

    def place(self, status: TaskStatus, rank: Optional[int]) -> None:
        """Set column and rank; entering the backlog always drops the rank."""
        self.status = status
        self.rank = rank if status.is_ranked else None
        self.touch()

    @property
    def position(self) -> "RankUpdate":
        return RankUpdate(id=self.id, status=self.status, rank=self.rank)


# ---------------------------------------------------------------------------
# Move value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RankUpdate:
    """The persistence unit: one ``{id, status, rank}`` triple."""

    id: str
    status: TaskStatus
    rank: Optional[int]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "status": self.status.value, "rank": self.rank}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RankUpdate":
        status = TaskStatus.parse(data.get("status"))
        rank = data.get("rank")
        if status.is_ranked:
            if isinstance(rank, bool) or not isinstance(rank, int):
                raise DataIntegrityError(
                    f"Update for {data.get('id')} needs an integer rank in '{status.value}'"
                )
        else:
            rank = None
        return cls(id=str(data["id"]), status=status, rank=rank)


@dataclass(frozen=True)
class MoveRequest:
    task_id: str
    target_status: TaskStatus
    target_index: int


@dataclass(frozen=True)
class MoveResult:
    """Outcome of resolving a move.

    ``shifted`` is non-empty only when the destination column had to be
    renumbered.
    """

    updated: RankUpdate
    shifted: tuple[RankUpdate, ...] = ()
    noop: bool = False
    renumbered: bool = False

    def batch(self) -> list[RankUpdate]:
        return [self.updated, *self.shifted]

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated": self.updated.to_dict(),
            "shifted": [u.to_dict() for u in self.shifted],
            "noop": self.noop,
            "renumbered": self.renumbered,
        }


def apply_move(tasks: Iterable[Task], result: MoveResult) -> list[Task]:
    """Return a new task list with *result* applied.

    The input tasks are not mutated; touched tasks are replaced by copies.
    Ids missing from *tasks* are ignored.
    """
    updates = {u.id: u for u in result.batch()}
    out: list[Task] = []
    for task in tasks:
        update = updates.get(task.id)
        if update is None:
            out.append(task)
            continue
        moved = replace(task, metadata=dict(task.metadata))
        moved.place(update.status, update.rank)
        out.append(moved)
    return out
