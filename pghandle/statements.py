"""SQL statement builders and named-placeholder compilation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlglot import exp, parse_one
from sqlglot.errors import ParseError

from .errors import ValidationError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$")

# Literals, quoted identifiers, dollar-quoted bodies and comments are matched
# first so placeholders inside them are left alone; `::` is Postgres' cast
# operator. A colon directly followed by a name is always a placeholder, so
# array slices need a space after the colon (`arr[1: n]`).
_PLACEHOLDER = re.compile(
    r"""
    '(?:[^']|'')*'
    | \$\$.*?\$\$
    | \$(?P<tag>[A-Za-z_][A-Za-z0-9_]*)\$.*?\$(?P=tag)\$
    | "(?:[^"]|"")*"
    | --[^\n]*
    | /\*.*?\*/
    | ::
    | :(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE | re.DOTALL,
)


@dataclass(frozen=True, slots=True)
class Statement:
    """SQL text plus the named bind values it references."""

    sql: str
    binds: dict[str, Any] = field(default_factory=dict)


def validate_identifier(name: object, *, kind: str = "identifier") -> str:
    """Return the name if it is a plain (optionally schema-qualified) identifier."""

    if not isinstance(name, str) or not name:
        raise ValidationError(f"Missing {kind}.")
    if not _IDENTIFIER.match(name):
        raise ValidationError(f"Invalid {kind}: {name!r}")
    return name


def split_table(name: str) -> tuple[str | None, str]:
    """Split ``schema.table`` into its parts; the schema is None when absent."""

    validate_identifier(name, kind="table name")
    schema, _, table = name.rpartition(".")
    return schema or None, table


def bind_name(column: str, prefix: str = "") -> str:
    """Placeholder name for a column, e.g. ``pk_`` + ``public.id`` -> ``pk_public_id``."""

    return f"{prefix}{column.replace('.', '_')}"


def normalize_binds(binds: Mapping[str, Any] | None) -> dict[str, Any]:
    """Strip the optional leading ``:`` from bind names."""

    if not binds:
        return {}
    return {str(name).lstrip(":"): value for name, value in binds.items()}


def compile_named(sql: str, binds: Mapping[str, Any] | None = None) -> tuple[str, tuple[Any, ...]]:
    """Rewrite ``:name`` placeholders to ``$n`` and collect positional arguments.

    A name used more than once maps to the same position. Bind values that the
    statement never references are ignored; a referenced name without a value
    raises ValidationError.
    """

    values = normalize_binds(binds)
    positions: dict[str, int] = {}
    args: list[Any] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group("name")
        if name is None:
            return match.group(0)
        if name not in positions:
            if name not in values:
                raise ValidationError(f"Missing bind value for :{name}")
            args.append(values[name])
            positions[name] = len(args)
        return f"${positions[name]}"

    return _PLACEHOLDER.sub(_replace, sql), tuple(args)


def quote_literal(value: Any, wrap: bool = True) -> Any:
    """Escape a value (or each element of a list/tuple/dict) as a SQL literal.

    Only for legacy code that embeds literals in SQL text; bind values
    instead wherever possible.
    """

    if value is None:
        return "NULL"
    if isinstance(value, dict):
        return {key: quote_literal(item, wrap) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [quote_literal(item, wrap) for item in value]
    text = str(value)
    if "\x00" in text:
        raise ValidationError("Values cannot contain NUL characters.")
    escaped = text.replace("'", "''")
    return f"'{escaped}'" if wrap else escaped


def _where_clause(key_pairs: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
    lines = ["WHERE 1 = 1"]
    binds: dict[str, Any] = {}
    for column, value in key_pairs.items():
        validate_identifier(column, kind="key column")
        name = bind_name(column, "pk_")
        lines.append(f"\tAND {column} = :{name}")
        binds[name] = value
    return "\n".join(lines), binds


def build_update(table: str, key_pairs: Mapping[str, Any], fields: Mapping[str, Any]) -> Statement:
    """``UPDATE table SET col = :col, ... WHERE 1 = 1 AND key = :pk_key ...``"""

    validate_identifier(table, kind="table name")
    if not key_pairs:
        raise ValidationError("Missing key value pairs.")
    if not fields:
        raise ValidationError("Missing fields to update.")
    assignments: list[str] = []
    binds: dict[str, Any] = {}
    for column, value in fields.items():
        validate_identifier(column, kind="column name")
        name = bind_name(column)
        if name in binds:
            raise ValidationError(f"Columns map to the same bind name :{name}")
        assignments.append(f"\t{column} = :{name}")
        binds[name] = value
    where, where_binds = _where_clause(key_pairs)
    clashes = sorted(binds.keys() & where_binds.keys())
    if clashes:
        raise ValidationError(f"SET and WHERE share bind names: {', '.join(clashes)}")
    binds.update(where_binds)
    sql = f"UPDATE {table} SET\n" + ",\n".join(assignments) + "\n" + where
    return Statement(sql=sql, binds=binds)


def build_insert(
    table: str,
    fields: Mapping[str, Any],
    returning: str | None = None,
) -> Statement:
    """``INSERT INTO table (cols) VALUES (:v_col, ...) [RETURNING col]``"""

    validate_identifier(table, kind="table name")
    if not fields:
        raise ValidationError("Missing fields to insert.")
    columns: list[str] = []
    placeholders: list[str] = []
    binds: dict[str, Any] = {}
    for column, value in fields.items():
        validate_identifier(column, kind="column name")
        name = bind_name(column, "v_")
        if name in binds:
            raise ValidationError(f"Columns map to the same bind name :{name}")
        columns.append(column)
        placeholders.append(f":{name}")
        binds[name] = value
    sql = f"INSERT INTO {table} (\n\t{', '.join(columns)}\n) VALUES (\n\t{', '.join(placeholders)}\n)"
    if returning is not None:
        validate_identifier(returning, kind="returning column")
        sql += f"\nRETURNING {returning}"
    return Statement(sql=sql, binds=binds)


def build_delete(table: str, key_pairs: Mapping[str, Any]) -> Statement:
    """``DELETE FROM table WHERE 1 = 1 AND key = :pk_key ...``"""

    validate_identifier(table, kind="table name")
    if not key_pairs:
        raise ValidationError(
            "Missing key value pairs. Use delete_all_rows to delete without conditions."
        )
    where, binds = _where_clause(key_pairs)
    return Statement(sql=f"DELETE FROM {table}\n{where}", binds=binds)


def build_count(table: str, key_pairs: Mapping[str, Any]) -> Statement:
    """``SELECT COUNT(*) FROM table WHERE 1 = 1 AND key = :pk_key ...``"""

    validate_identifier(table, kind="table name")
    if not key_pairs:
        raise ValidationError("Missing key value pairs.")
    where, binds = _where_clause(key_pairs)
    return Statement(sql=f"SELECT COUNT(*)\nFROM {table}\n{where}", binds=binds)


def build_found_rows_query(sql: str, *, dialect: str = "postgres") -> str:
    """Count every row a SELECT would return without its LIMIT/OFFSET.

    ORDER BY is dropped as well since it cannot change the count. Named
    placeholders come back out as ``:name`` whatever the dialect, ready for
    ``compile_named``.
    """

    try:
        tree = parse_one(sql, read=dialect)
    except ParseError as exc:
        raise ValidationError(f"Cannot count rows for an unparsable query: {exc}") from exc
    if not isinstance(tree, exp.Query):
        raise ValidationError("found_rows requires a SELECT query.")
    inner = tree.copy()
    for arg in ("limit", "offset", "order"):
        inner.set(arg, None)
    inner = inner.transform(_keep_named_placeholder)
    counted = exp.select("COUNT(*) AS total").from_(inner.subquery("found_rows"))
    return counted.sql(dialect=dialect)


def _keep_named_placeholder(node: exp.Expression) -> exp.Expression:
    # Dialect generators rewrite :name (postgres prints %(name)s).
    if isinstance(node, exp.Placeholder) and node.name:
        return exp.var(f":{node.name}")
    return node


__all__ = [
    "Statement",
    "bind_name",
    "build_count",
    "build_delete",
    "build_found_rows_query",
    "build_insert",
    "build_update",
    "compile_named",
    "normalize_binds",
    "quote_literal",
    "split_table",
    "validate_identifier",
]
