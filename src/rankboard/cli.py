#!/usr/bin/env python3
"""Provide the `rankboard` command-line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .board.backend import LocalBackend
from .board.coordinator import OptimisticCoordinator
from .board.model import TaskStatus
from .board.service import BoardService
from .config import get_commit_timeout, get_log_level, get_rank_step, load_board_config
from .errors import BoardError
from .server import create_app

HEADER_TITLES = {
    TaskStatus.BACKLOG: "BACKLOG",
    TaskStatus.TODO: "TO DO",
    TaskStatus.IN_PROGRESS: "IN PROGRESS",
    TaskStatus.TESTING: "TESTING",
    TaskStatus.DONE: "DONE",
}


def _configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan> - "
            "{message}"
        ),
    )


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _ctx(args: argparse.Namespace) -> tuple[Path, dict]:
    path = _resolve_project_dir(args.project_dir)
    config, err = load_board_config(path)
    if err:
        logger.warning("Ignoring unreadable board config: {}", err)
    return path, config


def _show(args: argparse.Namespace) -> int:
    path, config = _ctx(args)
    board = BoardService(path, step=get_rank_step(config)).get_board()
    table = Table(title=f"Board: {path.name}")
    statuses = [s for s in TaskStatus if args.all or s.is_ranked]
    for status in statuses:
        table.add_column(HEADER_TITLES[status], overflow="fold")
    depth = max((len(board[s.value]) for s in statuses), default=0)
    for row in range(depth):
        cells = []
        for status in statuses:
            members = board[status.value]
            if row < len(members):
                t = members[row]
                rank = "" if t["rank"] is None else f" [dim]#{t['rank']}[/dim]"
                cells.append(f"[bold]{t['id']}[/bold] {t['title']}{rank}")
            else:
                cells.append("")
        table.add_row(*cells)
    Console().print(table)
    return 0


def _seed(args: argparse.Namespace) -> int:
    path, config = _ctx(args)
    service = BoardService(path, step=get_rank_step(config))
    created = service.seed_tasks({"title": title, "section": args.section} for title in args.titles)
    sys.stdout.write(json.dumps({"tasks": [t.to_dict() for t in created]}, indent=2) + "\n")
    return 0


def _move(args: argparse.Namespace) -> int:
    path, config = _ctx(args)
    service = BoardService(path, step=get_rank_step(config))
    coordinator = OptimisticCoordinator(
        LocalBackend(service.store),
        step=get_rank_step(config),
        commit_timeout=get_commit_timeout(config),
    )

    async def _run():
        await coordinator.load()
        return await coordinator.request_move(args.task_id, args.status, args.index)

    try:
        result = asyncio.run(_run())
    except BoardError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1
    sys.stdout.write(json.dumps(result.to_dict(), indent=2) + "\n")
    return 0


def _check(args: argparse.Namespace) -> int:
    path, config = _ctx(args)
    try:
        tasks = BoardService(path, step=get_rank_step(config)).check()
    except BoardError as exc:
        sys.stderr.write(f"{exc}\n")
        for problem in getattr(exc, "problems", []):
            sys.stderr.write(f"  - {problem}\n")
        return 1
    sys.stdout.write(json.dumps({"status": "ok", "total": len(tasks)}) + "\n")
    return 0


def _summary(args: argparse.Namespace) -> int:
    path, config = _ctx(args)
    summary = BoardService(path, step=get_rank_step(config)).summary()
    sys.stdout.write(json.dumps(summary, indent=2) + "\n")
    return 0


def _server(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        sys.stderr.write("Install server extras: pip install 'rankboard[server]'\n")
        return 1

    app = create_app(project_dir=_resolve_project_dir(args.project_dir))
    uvicorn.run(app, host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rankboard - ranked task board ordering engine")
    parser.add_argument("--project-dir", default=None, help="Board project directory (default: current working directory)")
    parser.add_argument("--log-level", default=None, help="Log level (default: from config, else INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Render the board columns")
    show.add_argument("--all", action="store_true", help="Include the backlog column")
    show.set_defaults(func=_show)

    seed = subparsers.add_parser("seed", help="Add backlog tasks")
    seed.add_argument("titles", nargs="+")
    seed.add_argument("--section", default="Custom")
    seed.set_defaults(func=_seed)

    move = subparsers.add_parser("move", help="Move a task to a column position")
    move.add_argument("task_id")
    move.add_argument("status", choices=[s.value for s in TaskStatus])
    move.add_argument("index", type=int)
    move.set_defaults(func=_move)

    check = subparsers.add_parser("check", help="Verify ranking invariants")
    check.set_defaults(func=_check)

    summary = subparsers.add_parser("summary", help="Per-column counts and progress")
    summary.set_defaults(func=_summary)

    server = subparsers.add_parser("server", help="Start the web server")
    server.add_argument("--host", default="127.0.0.1")
    server.add_argument("--port", default=8000, type=int)
    server.add_argument("--reload", action="store_true")
    server.set_defaults(func=_server)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config, _ = load_board_config(_resolve_project_dir(args.project_dir))
    _configure_logging(args.log_level or get_log_level(config))
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)


if __name__ == "__main__":
    sys.exit(main())
