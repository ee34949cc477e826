"""Tests for the board task model (board/model.py)."""

from __future__ import annotations

import pytest

from rankboard.board.model import (
    MoveResult,
    RankUpdate,
    Task,
    TaskPriority,
    TaskStatus,
    apply_move,
)
from rankboard.errors import DataIntegrityError


class TestTaskStatus:
    def test_board_columns_exclude_backlog(self) -> None:
        assert TaskStatus.board_columns() == (
            TaskStatus.TODO,
            TaskStatus.IN_PROGRESS,
            TaskStatus.TESTING,
            TaskStatus.DONE,
        )
        assert not TaskStatus.BACKLOG.is_ranked

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("todo", TaskStatus.TODO),
            ("in-progress", TaskStatus.IN_PROGRESS),
            ("pending", TaskStatus.BACKLOG),
            ("to-do", TaskStatus.TODO),
            ("completed", TaskStatus.DONE),
            ("in_progress", TaskStatus.IN_PROGRESS),
            (TaskStatus.TESTING, TaskStatus.TESTING),
        ],
    )
    def test_parse_accepts_known_and_legacy_values(self, raw, expected) -> None:
        assert TaskStatus.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["review", "", None, "DONE"])
    def test_parse_rejects_unknown(self, raw) -> None:
        with pytest.raises(DataIntegrityError, match="Unknown task status"):
            TaskStatus.parse(raw)


class TestTaskSerialization:
    def test_defaults(self) -> None:
        t = Task(title="Landing page copy")
        assert t.status == TaskStatus.BACKLOG
        assert t.rank is None
        assert t.priority == TaskPriority.MEDIUM
        assert t.id.startswith("task-")
        assert len(t.id) == 13

    def test_round_trip_keeps_payload(self) -> None:
        t = Task(
            id="t1",
            status=TaskStatus.TESTING,
            rank=2048,
            title="QA",
            section="Launch",
            priority=TaskPriority.HIGH,
            estimated_hours=3,
            metadata={"source": "ai"},
        )
        d = t.to_dict()
        assert d["status"] == "testing"
        assert d["priority"] == "high"
        restored = Task.from_dict(d)
        assert restored == t

    def test_from_dict_unknown_status_is_integrity_error(self) -> None:
        with pytest.raises(DataIntegrityError):
            Task.from_dict({"id": "t1", "status": "archived", "rank": 1})

    def test_from_dict_requires_id(self) -> None:
        with pytest.raises(DataIntegrityError, match="without id"):
            Task.from_dict({"title": "x"})

    def test_from_dict_rejects_non_integer_rank(self) -> None:
        with pytest.raises(DataIntegrityError, match="non-integer rank"):
            Task.from_dict({"id": "t1", "status": "todo", "rank": "10"})

    def test_from_dict_legacy_pending_drops_rank(self) -> None:
        t = Task.from_dict({"id": "t1", "status": "pending", "rank": 4})
        assert t.status == TaskStatus.BACKLOG
        assert t.rank is None

    def test_place_into_backlog_clears_rank(self) -> None:
        t = Task(id="t1", status=TaskStatus.TODO, rank=10)
        t.place(TaskStatus.BACKLOG, 10)
        assert t.status == TaskStatus.BACKLOG
        assert t.rank is None


class TestRankUpdate:
    def test_from_dict_requires_rank_on_board(self) -> None:
        with pytest.raises(DataIntegrityError):
            RankUpdate.from_dict({"id": "t1", "status": "todo", "rank": None})

    def test_from_dict_backlog_ignores_rank(self) -> None:
        u = RankUpdate.from_dict({"id": "t1", "status": "backlog", "rank": 7})
        assert u == RankUpdate("t1", TaskStatus.BACKLOG, None)


class TestApplyMove:
    def test_returns_new_list_and_leaves_input_untouched(self) -> None:
        a = Task(id="a", status=TaskStatus.TODO, rank=10)
        b = Task(id="b", status=TaskStatus.TODO, rank=11)
        c = Task(id="c")
        tasks = [a, b, c]
        result = MoveResult(
            updated=RankUpdate("c", TaskStatus.TODO, 2048),
            shifted=(RankUpdate("a", TaskStatus.TODO, 1024), RankUpdate("b", TaskStatus.TODO, 3072)),
            renumbered=True,
        )

        out = apply_move(tasks, result)

        assert [t.id for t in out] == ["a", "b", "c"]
        assert [(t.status, t.rank) for t in out] == [
            (TaskStatus.TODO, 1024),
            (TaskStatus.TODO, 3072),
            (TaskStatus.TODO, 2048),
        ]
        assert (a.rank, b.rank, c.status, c.rank) == (10, 11, TaskStatus.BACKLOG, None)

    def test_batch_orders_moved_task_first(self) -> None:
        result = MoveResult(
            updated=RankUpdate("c", TaskStatus.TODO, 2048),
            shifted=(RankUpdate("a", TaskStatus.TODO, 1024),),
        )
        assert [u.id for u in result.batch()] == ["c", "a"]
