"""Load optional board configuration from `.rankboard/config.yaml`."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .constants import (
    COMMIT_TIMEOUT_ENV_VAR,
    CONFIG_FILE,
    DEFAULT_COMMIT_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RANK_STEP,
    STATE_DIR_NAME,
    VALID_LOG_LEVELS,
)
from .io_utils import _read_yaml_mapping


def load_board_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional board config file.

    Args:
        project_dir: Project directory holding the board state.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    return _read_yaml_mapping(project_dir.resolve() / STATE_DIR_NAME / CONFIG_FILE)


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def get_rank_step(config: dict[str, Any]) -> int:
    """Return the rank spacing used at column extremities and on renumbering.

    Args:
        config: Board configuration dictionary.

    Returns:
        `ordering.rank_step` when it is an integer >= 2, else the default.
    """
    raw = _get_nested(config, "ordering", "rank_step")
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 2:
        return raw
    return DEFAULT_RANK_STEP


def get_commit_timeout(config: dict[str, Any]) -> float:
    """Return the bounded wait (seconds) for one persistence round-trip.

    The `RANKBOARD_COMMIT_TIMEOUT` environment variable wins over the file.
    """
    env = os.environ.get(COMMIT_TIMEOUT_ENV_VAR)
    candidates: list[Any] = [env, _get_nested(config, "coordinator", "commit_timeout")]
    for raw in candidates:
        if raw is None or isinstance(raw, bool):
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if value > 0:
            return value
    return DEFAULT_COMMIT_TIMEOUT_SECONDS


def get_log_level(config: dict[str, Any]) -> str:
    raw = config.get("log_level")
    if isinstance(raw, str) and raw.upper() in VALID_LOG_LEVELS:
        return raw.upper()
    return DEFAULT_LOG_LEVEL
