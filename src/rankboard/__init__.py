"""Provide the public `rankboard` package exports."""

from __future__ import annotations

from .board.coordinator import MoveState, OptimisticCoordinator
from .board.model import MoveRequest, MoveResult, RankUpdate, Task, TaskStatus
from .board.resolver import resolve_move
from .board.store import RankStore
from .board.view import project

__all__ = [
    "MoveRequest",
    "MoveResult",
    "MoveState",
    "OptimisticCoordinator",
    "RankStore",
    "RankUpdate",
    "Task",
    "TaskStatus",
    "project",
    "resolve_move",
]
