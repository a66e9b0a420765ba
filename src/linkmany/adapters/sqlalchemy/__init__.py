"""SQLAlchemy adapter for linkmany."""

from __future__ import annotations

from .host import DetachedOwnerError, SqlAlchemyLinkHost, primary_key_of
from .owner import ReferenceAttribute, ReferenceOwner
from .repositories import SqlAlchemyOwnerRepository, SqlAlchemyRecordRepository
from .unit_of_work import (
    BaseSqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    create_all_tables,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "BaseSqlAlchemyUnitOfWork",
    "DetachedOwnerError",
    "ReferenceAttribute",
    "ReferenceOwner",
    "SqlAlchemyLinkHost",
    "SqlAlchemyOwnerRepository",
    "SqlAlchemyRecordRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "shutdown",
    "startup",
]
