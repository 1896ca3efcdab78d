# app/db/base.py
"""
VideoDrop - SQLAlchemy Base registry
====================================

Import all ORM models so their tables are registered on `Base.metadata`.
Alembic autogeneration and test `create_all` both import from here.

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base
from app.db.models.video import Video

__all__ = ["Base", "Video"]
