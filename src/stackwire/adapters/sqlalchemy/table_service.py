"""``TableService`` port implemented on the SQLite emulator."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from stackwire.adapters.sqlalchemy.unit_of_work import SqlAlchemyTableUnitOfWork
from stackwire.domain.errors import ServiceError
from stackwire.domain.ports import Table

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

log = getLogger(__name__)


class SqlAlchemyTableService:
    """Tables and items persisted through short-lived units of work."""

    def __init__(
        self,
        *,
        region: str = "us-east-1",
        account_id: str = "000000000000",
        unit_of_work_factory: Callable[[], SqlAlchemyTableUnitOfWork] = SqlAlchemyTableUnitOfWork,
    ) -> None:
        self.region = region
        self.account_id = account_id
        self._uow_factory = unit_of_work_factory

    async def ensure_table(
        self,
        name: str,
        *,
        key_schema: Mapping[str, str],
        indexes: Sequence[Mapping[str, object]] = (),
        billing_mode: str = "PAY_PER_REQUEST",
        tags: Mapping[str, str] | None = None,
    ) -> Table:
        if not key_schema:
            raise ServiceError("ensure_table", f"table {name} needs a key schema")
        with self._uow_factory() as uow:
            definitions = uow.repositories.definitions
            table = definitions.get(name)
            if table is None:
                table = Table(
                    name=name,
                    arn=f"arn:aws:dynamodb:{self.region}:{self.account_id}:table/{name}",
                    hash_key=next(iter(key_schema)),
                )
                definitions.add(
                    table,
                    key_schema=key_schema,
                    indexes=indexes,
                    billing_mode=billing_mode,
                    tags=tags or {},
                )
                log.info("Created emulated table %s", name)
            else:
                definitions.update_settings(
                    name, indexes=indexes, billing_mode=billing_mode, tags=tags or {}
                )
            uow.commit()
        return table

    async def put_item(self, table_name: str, item: Mapping[str, object]) -> None:
        with self._uow_factory() as uow:
            table = self._require_table(uow, table_name, "put_item")
            key = item.get(table.hash_key)
            if not isinstance(key, str) or not key:
                raise ServiceError("put_item", f"item for {table_name} lacks {table.hash_key}")
            uow.repositories.items.put(table_name, key, item)
            uow.commit()

    async def scan_items(self, table_name: str) -> list[dict[str, object]]:
        with self._uow_factory() as uow:
            self._require_table(uow, table_name, "scan_items")
            return uow.repositories.items.scan(table_name)

    @staticmethod
    def _require_table(uow: SqlAlchemyTableUnitOfWork, table_name: str, operation: str) -> Table:
        table = uow.repositories.definitions.get(table_name)
        if table is None:
            raise ServiceError(operation, f"table {table_name} does not exist")
        return table
