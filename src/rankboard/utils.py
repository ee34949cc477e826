"""Timestamp and id helpers."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _generate_id(prefix: str = "task") -> str:
    """Short human-friendly id such as ``task-1f3a9c2e``."""
    return f"{prefix}-{secrets.token_hex(4)}"
