"""Driver-specific statements used by the handle's schema and id helpers."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import DatabaseConnectionError


@dataclass(frozen=True, slots=True)
class Dialect:
    """Statements that differ between database drivers.

    Every schema query receives a ``:schema`` bind (None for the connection's
    current schema). ``columns_query`` and ``generated_key_query`` also take
    ``:table``. ``columns_query`` must return ``field``, ``type``, ``null`` and
    ``default`` columns; ``generated_key_query`` returns the name of the column
    the database fills in on insert, or no row when there is none.
    """

    name: str
    sqlglot_dialect: str
    tables_query: str
    columns_query: str
    generated_key_query: str
    last_insert_id_query: str


POSTGRES = Dialect(
    name="postgres",
    sqlglot_dialect="postgres",
    tables_query="""
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = COALESCE(CAST(:schema AS text), current_schema())
          AND table_type = 'BASE TABLE'
        ORDER BY table_name
    """,
    columns_query="""
        SELECT column_name AS field,
               data_type AS type,
               is_nullable AS "null",
               column_default AS "default"
        FROM information_schema.columns
        WHERE table_schema = COALESCE(CAST(:schema AS text), current_schema())
          AND table_name = :table
        ORDER BY ordinal_position
    """,
    generated_key_query="""
        SELECT column_name
        FROM information_schema.columns
        WHERE table_schema = COALESCE(CAST(:schema AS text), current_schema())
          AND table_name = :table
          AND (column_default LIKE 'nextval(%' OR is_identity = 'YES')
        ORDER BY ordinal_position
        LIMIT 1
    """,
    last_insert_id_query="SELECT lastval()",
)

DIALECTS: dict[str, Dialect] = {
    "postgres": POSTGRES,
    "postgresql": POSTGRES,
    "pgsql": POSTGRES,
}


def get_dialect(driver_type: str) -> Dialect:
    """Look up the dialect for a configured driver type."""

    try:
        return DIALECTS[driver_type.lower()]
    except KeyError:
        supported = ", ".join(sorted(DIALECTS))
        raise DatabaseConnectionError(
            f"Unsupported driver type '{driver_type}' (supported: {supported})."
        ) from None


__all__ = ["DIALECTS", "Dialect", "POSTGRES", "get_dialect"]
