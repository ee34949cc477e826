"""Board service: server-side operations over a :class:`RankStore`.

This is the entry-point used by the HTTP API and the CLI.  It seeds producer
tasks through the backlog gate, commits rank batches, performs direct
(non-optimistic) moves inside a single store transaction and keeps a JSONL
event journal next to the store.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger

from ..constants import DEFAULT_RANK_STEP, EVENTS_FILE
from ..errors import InvalidTargetIndex, TaskNotFound
from ..io_utils import _append_event, _read_events
from .gate import admit_new_task, gate_move
from .model import MoveResult, RankUpdate, Task, TaskPriority, TaskStatus
from .resolver import resolve_move
from .store import RankStore
from .view import check_integrity, column, project, summarize


class BoardService:
    """Manage one board's task set.

    Parameters
    ----------
    project_dir:
        Directory holding ``.rankboard/`` state.
    step:
        Rank spacing for direct moves.
    """

    def __init__(self, project_dir: Path, step: int = DEFAULT_RANK_STEP) -> None:
        self.store = RankStore(project_dir)
        self.step = step
        self._events_path = self.store.state_dir / EVENTS_FILE

    def _emit_event(self, event_type: str, task_id: Optional[str] = None, **details: Any) -> None:
        """Append a board event to the journal."""
        payload: dict[str, Any] = {"type": event_type}
        if task_id is not None:
            payload["task_id"] = task_id
        if details:
            payload["details"] = details
        try:
            _append_event(self._events_path, payload)
        except OSError:
            logger.exception("Failed to append board event {} for {}", event_type, task_id)

    def recent_events(self, limit: int = 100) -> list[dict[str, Any]]:
        return _read_events(self._events_path, limit)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def seed_tasks(self, records: Iterable[dict[str, Any]]) -> list[Task]:
        """Store tasks handed over by the generation pipeline.

        Every record becomes a backlog task without rank; a record asking for
        anything else is refused by the backlog gate before anything is written.
        """
        tasks: list[Task] = []
        for record in records:
            data = dict(record)
            status = TaskStatus.parse(data.pop("status", TaskStatus.BACKLOG))
            priority_raw = data.pop("priority", TaskPriority.MEDIUM.value)
            try:
                priority = TaskPriority(str(priority_raw))
            except ValueError:
                priority = TaskPriority.MEDIUM
            task = Task(
                status=status,
                rank=data.pop("rank", None),
                title=str(data.pop("title", "")),
                description=str(data.pop("description", "") or ""),
                section=str(data.pop("section", "Custom") or "Custom"),
                priority=priority,
                estimated_hours=int(data.pop("estimated_hours", 0) or 0),
                dependencies=str(data.pop("dependencies", "") or ""),
                metadata=dict(data.pop("metadata", {}) or {}),
            )
            if data.get("id"):
                task.id = str(data["id"])
            tasks.append(admit_new_task(task))

        created = self.store.add_many(tasks)
        for task in created:
            self._emit_event("task.seeded", task.id, title=task.title)
        logger.info("Seeded {} backlog task(s)", len(created))
        return created

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_tasks(self) -> list[Task]:
        return self.store.read_all()

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.store.get(task_id)

    def get_board(self) -> dict[str, list[dict[str, Any]]]:
        """Return tasks grouped by column, in display order."""
        return {
            status.value: [t.to_dict() for t in members]
            for status, members in project(self.store.read_all()).items()
        }

    def summary(self) -> dict[str, Any]:
        return summarize(self.store.read_all())

    def check(self) -> list[Task]:
        """Run the integrity check over the stored set and return it."""
        tasks = self.store.read_all()
        check_integrity(tasks)
        return tasks

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def commit(self, batch: list[RankUpdate]) -> list[Task]:
        """Persist a commit batch from an optimistic client, all or nothing."""
        updated = self.store.commit(batch)
        self._emit_event(
            "batch.committed",
            batch[0].id if batch else None,
            updates=[u.to_dict() for u in batch],
        )
        return updated

    def move_task(self, task_id: str, target_status: TaskStatus, target_index: int) -> MoveResult:
        """Resolve and persist a move in one locked transaction.

        Raises :class:`DataIntegrityError` (and writes nothing) when the stored
        set already violates an ordering invariant.
        """
        with self.store.transaction() as tx:
            task = tx.get(task_id)
            if task is None:
                raise TaskNotFound(task_id)
            check_integrity(tx.list_all())
            dest = column(tx.list_all(), target_status, exclude=task_id)
            result = gate_move(task, target_status)
            if result is not None:
                if not 0 <= target_index <= len(dest):
                    raise InvalidTargetIndex(target_index, len(dest), target_status.value)
            else:
                result = resolve_move(task, target_status, target_index, dest, step=self.step)
            if result.noop:
                return result
            tx.apply(result.batch())

        self._emit_event(
            "task.moved",
            task_id,
            status=result.updated.status.value,
            rank=result.updated.rank,
        )
        if result.renumbered:
            self._emit_event(
                "board.renumbered",
                task_id,
                status=target_status.value,
                shifted=[u.to_dict() for u in result.shifted],
            )
        logger.info("Moved {} to '{}' rank {}", task_id, target_status.value, result.updated.rank)
        return result

    def remove_task(self, task_id: str) -> bool:
        removed = self.store.remove(task_id)
        if removed:
            self._emit_event("task.removed", task_id)
        return removed
