"""Persistence endpoints the optimistic coordinator talks to.

A backend does two things: hand out the full task set and commit a batch of
``{id, status, rank}`` triples as one unit, reporting success or failure.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from loguru import logger

from ..errors import TaskNotFound
from .model import RankUpdate, Task
from .store import RankStore


class BoardBackend(ABC):
    @abstractmethod
    async def fetch_all(self) -> list[Task]:
        raise NotImplementedError

    @abstractmethod
    async def commit(self, batch: list[RankUpdate]) -> bool:
        """Persist *batch* atomically; False means nothing was written."""
        raise NotImplementedError


class LocalBackend(BoardBackend):
    """Backend over an in-process :class:`RankStore` (file I/O in a worker thread)."""

    def __init__(self, store: RankStore) -> None:
        self.store = store

    async def fetch_all(self) -> list[Task]:
        return await asyncio.to_thread(self.store.read_all)

    async def commit(self, batch: list[RankUpdate]) -> bool:
        try:
            await asyncio.to_thread(self.store.commit, batch)
        except TaskNotFound as exc:
            logger.warning("Commit rejected by store: {}", exc)
            return False
        return True


class HttpBackend(BoardBackend):
    """Backend over the board HTTP API (``/api/board``).

    Parameters
    ----------
    base_url:
        Server root, e.g. ``http://127.0.0.1:8000``.  Ignored when *client*
        is given.
    client:
        Pre-configured ``httpx.AsyncClient`` (tests pass one bound to an ASGI app).
    project_dir:
        Optional board selector forwarded as the ``project_dir`` query parameter.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        client: Optional[httpx.AsyncClient] = None,
        project_dir: Optional[str] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url)
        self._owns_client = client is None
        self._params = {"project_dir": project_dir} if project_dir else {}

    async def fetch_all(self) -> list[Task]:
        resp = await self._client.get("/api/board/tasks", params=self._params)
        resp.raise_for_status()
        return [Task.from_dict(d) for d in resp.json()["tasks"]]

    async def commit(self, batch: list[RankUpdate]) -> bool:
        resp = await self._client.post(
            "/api/board/commit",
            params=self._params,
            json={"updates": [u.to_dict() for u in batch]},
        )
        if resp.is_success:
            return True
        logger.warning("Commit rejected with HTTP {}: {}", resp.status_code, resp.text[:200])
        return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
