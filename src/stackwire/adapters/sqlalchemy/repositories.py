"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import insert, select, update

from stackwire.adapters.sqlalchemy.mappings import table_definition_table, table_item_table
from stackwire.domain.ports import Table

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.orm import Session


class SqlAlchemyTableDefinitionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, name: str) -> Table | None:
        stmt = select(
            table_definition_table.c.name,
            table_definition_table.c.arn,
            table_definition_table.c.hash_key,
        ).where(table_definition_table.c.name == name)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return Table(name=row.name, arn=row.arn, hash_key=row.hash_key)

    def add(
        self,
        table: Table,
        *,
        key_schema: Mapping[str, str],
        indexes: Sequence[Mapping[str, object]],
        billing_mode: str,
        tags: Mapping[str, str],
    ) -> None:
        self.session.execute(
            insert(table_definition_table).values(
                name=table.name,
                arn=table.arn,
                hash_key=table.hash_key,
                key_schema=dict(key_schema),
                indexes=[dict(index) for index in indexes],
                billing_mode=billing_mode,
                tags=dict(tags),
            )
        )

    def update_settings(
        self,
        name: str,
        *,
        indexes: Sequence[Mapping[str, object]],
        billing_mode: str,
        tags: Mapping[str, str],
    ) -> None:
        self.session.execute(
            update(table_definition_table)
            .where(table_definition_table.c.name == name)
            .values(
                indexes=[dict(index) for index in indexes],
                billing_mode=billing_mode,
                tags=dict(tags),
            )
        )


class SqlAlchemyItemRepository:
    """Items keyed by ``(table_name, item_id)``; ``put`` replaces the full payload."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def exists(self, table_name: str, item_id: str) -> bool:
        stmt = (
            select(table_item_table.c.id)
            .where(table_item_table.c.table_name == table_name)
            .where(table_item_table.c.item_id == item_id)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def put(self, table_name: str, item_id: str, payload: Mapping[str, object]) -> None:
        if self.exists(table_name, item_id):
            self.session.execute(
                update(table_item_table)
                .where(table_item_table.c.table_name == table_name)
                .where(table_item_table.c.item_id == item_id)
                .values(payload=dict(payload))
            )
            return
        self.session.execute(
            insert(table_item_table).values(
                table_name=table_name,
                item_id=item_id,
                payload=dict(payload),
            )
        )

    def scan(self, table_name: str) -> list[dict[str, object]]:
        stmt = (
            select(table_item_table.c.payload)
            .where(table_item_table.c.table_name == table_name)
            .order_by(table_item_table.c.id)
        )
        return [
            dict(cast("dict[str, object]", payload))
            for payload in self.session.execute(stmt).scalars()
        ]
