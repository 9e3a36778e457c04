"""Class budget web application: SQLite persistence and the FastAPI app."""
from __future__ import annotations

from . import persistence
from .application import app

__all__ = ["app", "persistence"]
