"""HTTP surface for the check-in queue."""

from .server import app, create_app

__all__ = ["app", "create_app"]
