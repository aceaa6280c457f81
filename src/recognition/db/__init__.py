"""Database layer for recognition rules on SQLAlchemy 2.0 async."""

from __future__ import annotations

from recognition.db.base import Base
from recognition.db.engine import DatabaseManager

__all__ = ["Base", "DatabaseManager"]
