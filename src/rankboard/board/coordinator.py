"""Optimistic move coordination.

The coordinator owns the client-side task model.  A move is applied to that
model immediately, then committed through a :class:`BoardBackend`:

    IDLE -> APPLIED -> CONFIRMED -> IDLE        (commit succeeded)
    IDLE -> APPLIED -> ROLLED_BACK -> IDLE      (commit failed or timed out)

On failure the local model is thrown away and reloaded from the backend; it
is never patched back by hand.  Moves are serialised: while one is APPLIED,
later requests wait their turn in call order.
"""

from __future__ import annotations

import asyncio
import copy
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from loguru import logger

from ..constants import DEFAULT_COMMIT_TIMEOUT_SECONDS, DEFAULT_RANK_STEP
from ..errors import (
    DataIntegrityError,
    InvalidTargetIndex,
    InvalidTargetStatus,
    PersistenceFailure,
    PersistenceTimeout,
    TaskNotFound,
)
from .backend import BoardBackend
from .gate import gate_move
from .model import MoveRequest, MoveResult, Task, TaskStatus, apply_move
from .resolver import resolve_move
from .view import check_integrity, column, project

ChangeHook = Callable[[dict[TaskStatus, list[Task]]], None]


class MoveState(str, Enum):
    IDLE = "idle"
    APPLIED = "applied"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class PendingMove:
    request: MoveRequest
    result: MoveResult
    state: MoveState = MoveState.APPLIED
    started_at: float = field(default_factory=time.monotonic)


class OptimisticCoordinator:
    """Apply board moves locally first, then reconcile with durable storage.

    Parameters
    ----------
    backend:
        Source of the full task set and sink for commit batches.
    step:
        Rank spacing handed to the resolver.
    commit_timeout:
        Seconds to wait for one commit before treating it as failed.
    on_change:
        Called with the projected columns after every local apply, confirm
        and resync.
    """

    def __init__(
        self,
        backend: BoardBackend,
        *,
        step: int = DEFAULT_RANK_STEP,
        commit_timeout: float = DEFAULT_COMMIT_TIMEOUT_SECONDS,
        on_change: Optional[ChangeHook] = None,
    ) -> None:
        self._backend = backend
        self._step = step
        self._commit_timeout = commit_timeout
        self._on_change = on_change
        self._tasks: list[Task] = []
        self._stale = True
        self._lock = asyncio.Lock()
        self._waiting = 0
        self._state = MoveState.IDLE
        self._pending: Optional[PendingMove] = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> MoveState:
        return self._state

    @property
    def pending(self) -> Optional[PendingMove]:
        return self._pending

    @property
    def queued(self) -> int:
        """Number of move requests waiting behind the current one."""
        return self._waiting

    @property
    def tasks(self) -> list[Task]:
        return copy.deepcopy(self._tasks)

    def columns(self) -> dict[TaskStatus, list[Task]]:
        return project(copy.deepcopy(self._tasks))

    # ------------------------------------------------------------------
    # Sync with storage
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Replace the local model with the backend's full task set."""
        tasks = await self._backend.fetch_all()
        check_integrity(tasks)
        self._tasks = tasks
        self._stale = False
        logger.debug("Loaded {} task(s) into the local board model", len(tasks))
        self._notify()

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    async def request_move(
        self,
        task_id: str,
        target_status: Union[TaskStatus, str],
        target_index: int,
    ) -> MoveResult:
        """Move *task_id* to *target_index* of *target_status*.

        Returns the applied :class:`MoveResult` once the commit is confirmed.

        Raises:
            TaskNotFound: *task_id* is not in the local model (nothing changes).
            InvalidTargetIndex: index outside the destination column (nothing changes).
            InvalidTargetStatus: *target_status* is not a board column.
            PersistenceFailure: the commit failed; the model has been resynced.
            PersistenceTimeout: the commit did not answer in time; resynced too.
        """
        try:
            status = TaskStatus.parse(target_status)
        except DataIntegrityError:
            raise InvalidTargetStatus(target_status) from None
        request = MoveRequest(task_id, status, target_index)
        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1
        try:
            if self._stale:
                await self.load()
            result = self._resolve(request)
            if result.noop:
                logger.debug("Move of {} is a no-op", task_id)
                return result
            self._apply(request, result)
            await self._commit(result)
            return result
        finally:
            self._lock.release()

    def _resolve(self, request: MoveRequest) -> MoveResult:
        task = next((t for t in self._tasks if t.id == request.task_id), None)
        if task is None:
            raise TaskNotFound(request.task_id)
        dest = column(self._tasks, request.target_status, exclude=task.id)
        gated = gate_move(task, request.target_status)
        if gated is not None:
            # Backlog order is creation order; the index is only bounds-checked.
            index = request.target_index
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= len(dest):
                raise InvalidTargetIndex(index, len(dest), request.target_status.value)
            return gated
        return resolve_move(task, request.target_status, request.target_index, dest, step=self._step)

    def _apply(self, request: MoveRequest, result: MoveResult) -> None:
        self._tasks = apply_move(self._tasks, result)
        self._pending = PendingMove(request=request, result=result)
        self._state = MoveState.APPLIED
        logger.info(
            "Applied move of {} to '{}' rank {} ({} sibling(s) shifted)",
            request.task_id,
            result.updated.status.value,
            result.updated.rank,
            len(result.shifted),
        )
        self._notify()

    async def _commit(self, result: MoveResult) -> None:
        commit = asyncio.ensure_future(self._backend.commit(result.batch()))
        try:
            ok = await asyncio.wait_for(asyncio.shield(commit), self._commit_timeout)
        except asyncio.TimeoutError:
            # A timed-out write may still land; resync only once it has settled.
            await self._settle(commit, result)
            await self._rollback(f"no answer within {self._commit_timeout:g}s")
            raise PersistenceTimeout(
                f"Commit for {result.updated.id} timed out after {self._commit_timeout:g}s",
                result,
            ) from None
        except Exception as exc:
            await self._rollback(f"{exc.__class__.__name__}: {exc}")
            raise PersistenceFailure(f"Commit for {result.updated.id} errored: {exc}", result) from exc
        if not ok:
            await self._rollback("rejected by backend")
            raise PersistenceFailure(f"Commit for {result.updated.id} was rejected", result)
        self._set_state(MoveState.CONFIRMED)
        logger.info("Move of {} confirmed", result.updated.id)
        self._finish()
        self._notify()

    async def _settle(self, commit: "asyncio.Future[bool]", result: MoveResult) -> None:
        logger.warning(
            "Commit for {} still running after {:g}s; waiting for it to settle",
            result.updated.id,
            self._commit_timeout,
        )
        await asyncio.wait({commit})
        if not commit.cancelled() and commit.exception() is not None:
            logger.warning("Late commit for {} errored: {}", result.updated.id, commit.exception())

    async def _rollback(self, reason: str) -> None:
        self._set_state(MoveState.ROLLED_BACK)
        logger.warning("Rolling back move: {}; reloading board from storage", reason)
        self._tasks = []
        self._stale = True
        try:
            await self.load()
        except Exception:
            # The next request retries the load before resolving anything.
            logger.exception("Resync after failed commit did not complete")
            self._notify()
        finally:
            self._finish()

    def _set_state(self, state: MoveState) -> None:
        self._state = state
        if self._pending is not None:
            self._pending.state = state

    def _finish(self) -> None:
        self._pending = None
        self._state = MoveState.IDLE

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.columns())
        except Exception:
            logger.exception("Board change hook failed")
