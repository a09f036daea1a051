"""Structured CRUD and schema helpers layered on the connection handle."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .errors import QueryExecutionError
from .handle import ConnectionHandle
from .models import Row
from .statements import (
    build_count,
    build_delete,
    build_insert,
    build_update,
    split_table,
    validate_identifier,
)

LOG = logging.getLogger(__name__)


class DBHandle(ConnectionHandle):
    """Connection handle with table-level helpers.

    Table and column names are validated as plain identifiers before they are
    spliced into SQL; values always travel as binds.

        dbh = DBHandle.open(HandleConfig(host="localhost", database="shop"))
        new_id = dbh.insert_row("people", {"fname": "Bobby", "age": 25})
        dbh.update_by_key("people", "id", new_id, {"age": 26})
        person = dbh.fetch_one_row("SELECT * FROM people WHERE id = :id", {"id": new_id})
    """

    # -- writes -----------------------------------------------------------

    def update_by_key(self, table: str, key_column: str, key_value: Any, fields: Mapping[str, Any]) -> bool:
        """Update every row whose ``key_column`` equals ``key_value``."""

        return self.update_by_keys(table, {key_column: key_value}, fields)

    def update_by_keys(self, table: str, key_pairs: Mapping[str, Any], fields: Mapping[str, Any]) -> bool:
        """Update every row matching all of ``key_pairs``."""

        statement = build_update(table, key_pairs, fields)
        return self.execute(statement.sql, statement.binds)

    def insert_row(self, table: str, fields: Mapping[str, Any], id_column: str | None = None) -> Any:
        """Insert one row and return the id the database generated for it.

        The id comes from ``RETURNING`` on ``id_column``, which defaults to the
        table's sequence or identity column. Returns None when the insert
        fails or the table has no generated key.
        """

        statement = build_insert(table, fields)
        with self._lock:
            key = id_column or self.generated_key_column(table)
            if key is None:
                self.execute(statement.sql, statement.binds)
                return None
            statement = build_insert(table, fields, returning=key)
            try:
                values = self.fetch_column(statement.sql, statement.binds)
            except QueryExecutionError as exc:
                LOG.warning("Insert failed: %s", exc, extra={"table": table})
                self._affected_rows = None
                return None
            self._affected_rows = len(values)
            return values[0] if values else None

    def delete_by_key(self, table: str, key_column: str, key_value: Any) -> bool:
        return self.delete_by_keys(table, {key_column: key_value})

    def delete_by_keys(self, table: str, key_pairs: Mapping[str, Any]) -> bool:
        """Delete rows matching all of ``key_pairs``.

        Empty ``key_pairs`` raise ValidationError instead of emptying the
        table; use ``delete_all_rows`` for that.
        """

        statement = build_delete(table, key_pairs)
        return self.execute(statement.sql, statement.binds)

    def delete_all_rows(self, table: str) -> bool:
        """Remove every row from the table."""

        validate_identifier(table, kind="table name")
        return self.execute(f"DELETE FROM {table}")

    # -- reads ------------------------------------------------------------

    def count_rows(self, table: str, key_pairs: Mapping[str, Any]) -> int | bool:
        """Number of rows matching all of ``key_pairs``; False if either is missing."""

        if not table or not key_pairs:
            return False
        statement = build_count(table, key_pairs)
        return int(self.fetch_scalar(statement.sql, statement.binds) or 0)

    # -- schema -----------------------------------------------------------

    def list_tables(self, schema: str | None = None) -> list[str]:
        """Base tables in ``schema``, or in the connection's current schema."""

        if schema is not None:
            validate_identifier(schema, kind="schema name")
        names = self.fetch_column(self.dialect.tables_query, {"schema": schema})
        return [str(name) for name in names]

    def table_exists(self, table: str) -> bool:
        """Accepts ``table`` or ``schema.table``."""

        schema, name = split_table(table)
        return name in self.list_tables(schema)

    def list_columns(self, table: str) -> list[Row]:
        """Column descriptions (``field``, ``type``, ``null``, ``default``); [] for unknown tables."""

        if not self.table_exists(table):
            return []
        schema, name = split_table(table)
        return self.fetch_rows(self.dialect.columns_query, {"schema": schema, "table": name})

    def generated_key_column(self, table: str) -> str | None:
        """Column the database fills in on insert (serial or identity), if any."""

        schema, name = split_table(table)
        value = self.fetch_scalar(self.dialect.generated_key_query, {"schema": schema, "table": name})
        return str(value) if value else None

    def column_exists(self, column: str, table: str) -> bool:
        if not self.table_exists(table):
            return False
        return column in [col["field"] for col in self.list_columns(table)]


__all__ = ["DBHandle"]
