"""Board API endpoints.

This module provides a FastAPI router exposing the task set, the projected
columns, the producer seeding endpoint and the atomic commit endpoint that
optimistic clients persist their moves through.  It is mounted under
``/api/board`` by the main ``create_app`` factory.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import APIRouter, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from ..board.model import RankUpdate, TaskStatus
from ..board.service import BoardService
from ..errors import (
    BacklogViolation,
    DataIntegrityError,
    InvalidTargetIndex,
    InvalidTargetStatus,
    TaskNotFound,
)


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class SeedTaskRequest(BaseModel):
    id: Optional[str] = None
    title: str
    description: str = ""
    section: str = "Custom"
    priority: str = "medium"
    estimated_hours: int = 0
    dependencies: str = ""
    status: Optional[str] = None
    rank: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SeedRequest(BaseModel):
    tasks: list[SeedTaskRequest]


class RankUpdateModel(BaseModel):
    id: str
    status: str
    rank: Optional[int] = None


class CommitRequest(BaseModel):
    updates: list[RankUpdateModel] = Field(min_length=1)


class MoveRequestModel(BaseModel):
    target_status: str
    target_index: int


class TaskListResponse(BaseModel):
    tasks: list[dict[str, Any]]
    total: int


class ColumnsResponse(BaseModel):
    columns: dict[str, list[dict[str, Any]]]


class MoveResponse(BaseModel):
    result: dict[str, Any]


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------

def create_board_router(get_service: Callable[[Optional[str]], BoardService]) -> APIRouter:
    """Create the board API router.

    Parameters
    ----------
    get_service:
        A callable ``(project_dir_param: str | None) -> BoardService`` that
        resolves the board for the current request's project directory.
    """
    router = APIRouter(prefix="/api/board", tags=["board"])

    def _status(raw: Optional[str]) -> TaskStatus:
        try:
            return TaskStatus.parse(raw)
        except DataIntegrityError:
            raise HTTPException(status_code=400, detail=str(InvalidTargetStatus(raw)))

    @router.get("/tasks", response_model=TaskListResponse)
    async def list_tasks(project_dir: Optional[str] = Query(None)) -> TaskListResponse:
        service = get_service(project_dir)
        data = [t.to_dict() for t in service.list_tasks()]
        return TaskListResponse(tasks=data, total=len(data))

    @router.post("/tasks", response_model=TaskListResponse, status_code=201)
    async def seed_tasks(
        body: SeedRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskListResponse:
        service = get_service(project_dir)
        records = [req.model_dump(exclude_none=True) for req in body.tasks]
        try:
            created = service.seed_tasks(records)
        except (BacklogViolation, DataIntegrityError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=409, detail=str(e))
        data = [t.to_dict() for t in created]
        return TaskListResponse(tasks=data, total=len(data))

    @router.get("/columns", response_model=ColumnsResponse)
    async def get_columns(project_dir: Optional[str] = Query(None)) -> ColumnsResponse:
        service = get_service(project_dir)
        return ColumnsResponse(columns=service.get_board())

    @router.get("/summary")
    async def get_summary(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return get_service(project_dir).summary()

    @router.get("/integrity")
    async def get_integrity(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        service = get_service(project_dir)
        try:
            tasks = service.check()
        except DataIntegrityError as e:
            raise HTTPException(status_code=409, detail={"message": str(e), "problems": e.problems})
        return {"status": "ok", "total": len(tasks)}

    @router.get("/events")
    async def get_events(
        project_dir: Optional[str] = Query(None),
        limit: int = Query(100, ge=1, le=1000),
    ) -> dict[str, Any]:
        return {"events": get_service(project_dir).recent_events(limit=limit)}

    @router.post("/commit")
    async def commit(
        body: CommitRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        """Persist a batch of ``{id, status, rank}`` triples atomically."""
        service = get_service(project_dir)
        try:
            batch = [RankUpdate.from_dict(u.model_dump()) for u in body.updates]
        except DataIntegrityError as e:
            raise HTTPException(status_code=400, detail=str(e))
        try:
            updated = service.commit(batch)
        except TaskNotFound as e:
            logger.warning("Rejected commit batch: {}", e)
            raise HTTPException(status_code=404, detail=str(e))
        return {"status": "ok", "tasks": [t.to_dict() for t in updated]}

    @router.post("/tasks/{task_id}/move", response_model=MoveResponse)
    async def move_task(
        task_id: str,
        body: MoveRequestModel,
        project_dir: Optional[str] = Query(None),
    ) -> MoveResponse:
        service = get_service(project_dir)
        target = _status(body.target_status)
        try:
            result = service.move_task(task_id, target, body.target_index)
        except TaskNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidTargetIndex as e:
            raise HTTPException(status_code=400, detail=str(e))
        except DataIntegrityError as e:
            raise HTTPException(status_code=409, detail={"message": str(e), "problems": e.problems})
        return MoveResponse(result=result.to_dict())

    @router.get("/tasks/{task_id}")
    async def get_task(task_id: str, project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        task = get_service(project_dir).get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return {"task": task.to_dict()}

    @router.delete("/tasks/{task_id}")
    async def delete_task(task_id: str, project_dir: Optional[str] = Query(None)) -> dict[str, str]:
        if not get_service(project_dir).remove_task(task_id):
            raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
        return {"status": "deleted"}

    return router
