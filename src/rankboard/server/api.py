"""FastAPI web server for the rankboard task board."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from ..board.service import BoardService
from ..config import get_rank_step, load_board_config
from .board_api import create_board_router


def create_app(
    project_dir: Optional[Path] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Build the board server.

    Args:
        project_dir: Board served to requests that carry no ``project_dir``
            query parameter (defaults to the working directory).
        enable_cors: Allow any origin, for a browser board on another port.
    """
    app = FastAPI(
        title="Rankboard",
        description="Ranked task board ordering API",
        version="0.1.0",
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.board_dir = project_dir

    def _get_service(project_dir_param: Optional[str] = None) -> BoardService:
        # A per-request ``project_dir`` selects another board on the same server.
        path = Path(project_dir_param) if project_dir_param else (app.state.board_dir or Path.cwd())
        config, err = load_board_config(path)
        if err:
            logger.warning("Ignoring unreadable board config: {}", err)
        return BoardService(path, step=get_rank_step(config))

    @app.get("/")
    async def root():
        return {"name": "Rankboard", "version": "0.1.0", "status": "running"}

    app.include_router(create_board_router(_get_service))
    return app
