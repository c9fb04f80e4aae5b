"""SQLAlchemy adapter package: the local table emulator."""

from __future__ import annotations

from .mappings import create_all_tables, metadata
from .repositories import SqlAlchemyItemRepository, SqlAlchemyTableDefinitionRepository
from .table_service import SqlAlchemyTableService
from .unit_of_work import (
    SqlAlchemyTableUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyItemRepository",
    "SqlAlchemyTableDefinitionRepository",
    "SqlAlchemyTableService",
    "SqlAlchemyTableUnitOfWork",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
