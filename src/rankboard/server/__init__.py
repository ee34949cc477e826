"""HTTP server for the rankboard API."""

from .api import create_app

__all__ = ["create_app"]
