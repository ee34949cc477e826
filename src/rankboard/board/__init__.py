"""Ranked multi-column task board.

This package provides the task model, the file-backed rank store, the
per-column projection, the rank resolver, the backlog gate and the
optimistic move coordinator.
"""
