"""SQLAlchemy Core metadata for the local table emulator."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

table_definition_table = Table(
    "table_definition",
    metadata,
    Column("name", String, primary_key=True),
    Column("arn", String, nullable=False),
    Column("hash_key", String, nullable=False),
    Column("key_schema", JSON, nullable=False),
    Column("indexes", JSON, nullable=False),
    Column("billing_mode", String, nullable=False),
    Column("tags", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
)

table_item_table = Table(
    "table_item",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "table_name",
        String,
        ForeignKey("table_definition.name", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("item_id", String, nullable=False),
    Column("payload", JSON, nullable=False),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    ),
    UniqueConstraint("table_name", "item_id"),
)


def create_all_tables(engine: Engine) -> None:
    log.debug("Creating emulator tables on %s", engine.url)
    metadata.create_all(engine)
