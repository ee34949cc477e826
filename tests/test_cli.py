"""Tests for the rankboard command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from rankboard.board.model import RankUpdate, TaskStatus
from rankboard.board.store import RankStore
from rankboard.cli import main


def _run(tmp_path: Path, *argv: str) -> int:
    return main(["--project-dir", str(tmp_path), *argv])


def _seed(tmp_path: Path, capsys: pytest.CaptureFixture[str], *titles: str) -> list[str]:
    assert _run(tmp_path, "seed", *titles) == 0
    return [t["id"] for t in json.loads(capsys.readouterr().out)["tasks"]]


def test_seed_creates_backlog_tasks(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ids = _seed(tmp_path, capsys, "Write docs", "Fix login")
    tasks = RankStore(tmp_path).read_all()
    assert [t.id for t in tasks] == ids
    assert all(t.status == TaskStatus.BACKLOG and t.rank is None for t in tasks)


def test_move_prints_result(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    [a] = _seed(tmp_path, capsys, "a")
    assert _run(tmp_path, "move", a, "todo", "0") == 0
    result = json.loads(capsys.readouterr().out)
    assert result["updated"] == {"id": a, "status": "todo", "rank": 1024}
    assert RankStore(tmp_path).get(a).rank == 1024


def test_move_uses_configured_step(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / ".rankboard").mkdir()
    (tmp_path / ".rankboard" / "config.yaml").write_text("ordering:\n  rank_step: 100\n", encoding="utf-8")
    [a] = _seed(tmp_path, capsys, "a")
    assert _run(tmp_path, "move", a, "done", "0") == 0
    assert json.loads(capsys.readouterr().out)["updated"]["rank"] == 100


def test_move_unknown_task_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "move", "task-ghost", "todo", "0") == 1
    assert "task-ghost" in capsys.readouterr().err


def test_move_rejects_unknown_status(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        _run(tmp_path, "move", "task-x", "review", "0")


def test_check_ok_and_broken(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    a, b = _seed(tmp_path, capsys, "a", "b")
    assert _run(tmp_path, "check") == 0
    assert json.loads(capsys.readouterr().out) == {"status": "ok", "total": 2}

    RankStore(tmp_path).commit([RankUpdate(a, TaskStatus.TODO, 3), RankUpdate(b, TaskStatus.TODO, 3)])
    assert _run(tmp_path, "check") == 1
    assert "share rank 3" in capsys.readouterr().err


def test_summary(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(tmp_path, capsys, "a", "b", "c")
    assert _run(tmp_path, "summary") == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["counts"]["backlog"] == 3
    assert summary["progress"] == 0.0


def test_show_renders_board_columns(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _seed(tmp_path, capsys, "a")
    assert _run(tmp_path, "show") == 0
    out = capsys.readouterr().out
    assert "TO DO" in out
    assert "BACKLOG" not in out

    assert _run(tmp_path, "show", "--all") == 0
    assert "BACKLOG" in capsys.readouterr().out
