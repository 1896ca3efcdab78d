# app/db/base_class.py
from __future__ import annotations

"""
# VideoDrop - SQLAlchemy Base

Declarative base shared by the ORM models and Alembic. The naming convention
keeps constraint names stable between `create_all` (tests) and migrations,
e.g. `ck_videos_downloaded_disables` and `uq_videos_object_key`.
"""

from sqlalchemy import MetaData, inspect
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    def __repr__(self) -> str:  # pragma: no cover
        identity = inspect(self).identity
        ident = ", ".join(map(repr, identity)) if identity else "transient"
        return f"<{self.__class__.__name__} {ident}>"


__all__ = ["Base", "NAMING_CONVENTION"]
