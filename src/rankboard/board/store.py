"""File-based rank store with process-safe locking.

Stores the board's tasks in a single YAML file (``tasks.yaml``) inside the
project's ``.rankboard/`` directory.  All reads and writes go through the
exclusive file lock, and every save is atomic (write-tmp-then-rename), so a
commit batch is either fully on disk or not at all.

The store holds ``{id, status, rank}`` plus payload per task.  It has no
ordering logic of its own.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from filelock import FileLock
from loguru import logger

from ..constants import LOCK_FILE, STATE_DIR_NAME, STORE_FILE, STORE_VERSION
from ..errors import DataIntegrityError, TaskNotFound
from ..io_utils import _atomic_write_yaml, _read_yaml_mapping
from .model import RankUpdate, Task


# ---------------------------------------------------------------------------
# Low-level I/O
# ---------------------------------------------------------------------------

def _load_raw(path: Path) -> list[dict[str, Any]]:
    """Load the raw task list from *path*, returning ``[]`` if missing."""
    data, err = _read_yaml_mapping(path)
    if err:
        raise DataIntegrityError(f"Cannot read task store: {err}")
    tasks = data.get("tasks", [])
    if not isinstance(tasks, list):
        raise DataIntegrityError(f"{path.name}: 'tasks' must be a list")
    return [t for t in tasks if isinstance(t, dict)]


def _save_raw(path: Path, tasks: list[dict[str, Any]]) -> None:
    _atomic_write_yaml(path, {"version": STORE_VERSION, "tasks": tasks})


# ---------------------------------------------------------------------------
# RankStore
# ---------------------------------------------------------------------------

class RankStore:
    """Durable record store for one board.

    Parameters
    ----------
    project_dir:
        Project directory; state lives in ``<project_dir>/.rankboard/``.
    """

    def __init__(self, project_dir: Path) -> None:
        self.project_dir = project_dir
        self.state_dir = project_dir / STATE_DIR_NAME
        self._store_path = self.state_dir / STORE_FILE
        self._lock = FileLock(self.state_dir / LOCK_FILE)

    # -- internal helpers ---------------------------------------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        with self._lock:
            yield

    def _load(self) -> list[Task]:
        return [Task.from_dict(d) for d in _load_raw(self._store_path)]

    def _save(self, tasks: list[Task]) -> None:
        _save_raw(self._store_path, [t.to_dict() for t in tasks])

    # -- public API ---------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[_RankTx]:
        """Hold the store lock around one load-modify-save cycle.

        The tasks are written back when the block exits normally and something
        changed; nothing is written when the block raises::

            with store.transaction() as tx:
                tx.apply([RankUpdate("task-1f3a9c2e", TaskStatus.TODO, 1024)])
        """
        with self._locked():
            tx = _RankTx(self._load())
            yield tx
            if tx.dirty:
                self._save(tx.tasks)

    def read_all(self) -> list[Task]:
        """Return the full task set in creation order."""
        with self._locked():
            return self._load()

    def get(self, task_id: str) -> Optional[Task]:
        with self._locked():
            for t in self._load():
                if t.id == task_id:
                    return t
        return None

    def add_many(self, tasks: Iterable[Task]) -> list[Task]:
        with self.transaction() as tx:
            return [tx.add(t) for t in tasks]

    def commit(self, batch: list[RankUpdate]) -> list[Task]:
        """Atomically apply a batch of ``{id, status, rank}`` triples.

        Raises :class:`TaskNotFound` (and writes nothing) if any id is unknown.
        """
        with self.transaction() as tx:
            updated = tx.apply(batch)
        logger.debug("Committed {} rank update(s) to {}", len(batch), self._store_path)
        return updated

    def remove(self, task_id: str) -> bool:
        """Physically delete a task; sibling ranks are left as they are."""
        with self.transaction() as tx:
            return tx.remove(task_id)


class _RankTx:
    """Working copy of the task set inside :meth:`RankStore.transaction`."""

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = tasks
        self.dirty = False
        self._by_id: dict[str, Task] = {t.id: t for t in tasks}

    def get(self, task_id: str) -> Optional[Task]:
        return self._by_id.get(task_id)

    def list_all(self) -> list[Task]:
        return list(self.tasks)

    def add(self, task: Task) -> Task:
        if task.id in self._by_id:
            raise ValueError(f"Task {task.id} already exists")
        self._by_id[task.id] = task
        self.tasks.append(task)
        self.dirty = True
        return task

    def apply(self, batch: list[RankUpdate]) -> list[Task]:
        """Place every task named in *batch*; unknown ids abort before any change."""
        for update in batch:
            if update.id not in self._by_id:
                raise TaskNotFound(update.id)
        touched = []
        for update in batch:
            task = self._by_id[update.id]
            task.place(update.status, update.rank)
            touched.append(task)
        self.dirty = self.dirty or bool(touched)
        return touched

    def remove(self, task_id: str) -> bool:
        task = self._by_id.pop(task_id, None)
        if task is None:
            return False
        self.tasks = [t for t in self.tasks if t.id != task_id]
        self.dirty = True
        return True
