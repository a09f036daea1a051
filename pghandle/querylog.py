"""Render a handle's query log for diagnostics pages."""

from __future__ import annotations

import html
import pprint
import re
import textwrap
from typing import Any, Sequence

from .models import QueryLogEntry

_BLANK_LINES = re.compile(r"^[ \t]*[\r\n]+", re.MULTILINE)


def render_text(entries: Sequence[QueryLogEntry]) -> str:
    """Plain-text dump of every entry."""

    return pprint.pformat([entry.as_dict() for entry in entries], sort_dicts=False)


def render_html(
    entries: Sequence[QueryLogEntry],
    start_time: float | None,
    *,
    include_results: bool = False,
) -> str:
    """HTML table of the log followed by the total query time.

    Start offsets are relative to ``start_time`` (when profiling was enabled).
    """

    origin = start_time or 0.0
    results_header = "<th>Results</th>" if include_results else ""
    parts = [
        "<table class='dbQueryLogDatatable table table-striped'>",
        "<thead>",
        f"<tr><th>Start</th><th>Duration</th><th>SQL</th><th>Binds</th>{results_header}</tr>",
        "</thead>",
        "<tbody>",
    ]
    total = 0.0
    for index, entry in enumerate(entries, start=1):
        total += entry.duration
        start = round(entry.start_time - origin, 5)
        duration = round(entry.duration, 5)
        sql = html.escape(_clean_sql(entry.sql), quote=True)
        binds = html.escape(_format_binds(entry.binds), quote=True)
        results_cell = ""
        if include_results:
            results_cell = f"<td class='dbQueryLogDatatable-resultsTD'>{_render_results(entry.results, index)}</td>"
        parts.append(
            "<tr>"
            f"<td>{start}</td>"
            f"<td>{duration}</td>"
            f"<td class='dbQueryLogDatatable-sqlTD'>{sql}</td>"
            f"<td class='dbQueryLogDatatable-bindsTD'>{binds}</td>"
            f"{results_cell}"
            "</tr>"
        )
    parts.extend(["</tbody>", "</table>"])
    parts.append(f"<br>\nTotal Query Time: {round(total, 5)} seconds<br>")
    return "\n".join(parts)


def rows_to_table(rows: Sequence[Any], *, null: str = "&nbsp;", table_class: str = "") -> str:
    """HTML table for a list of row mappings; headings come from the first row."""

    if not rows:
        return ""
    first = rows[0]
    if not isinstance(first, dict):
        rows = [{"value": row} for row in rows]
        first = rows[0]
    lines = [f"<table class='{table_class}'>", "<thead><tr>"]
    lines.extend(f"<th>{html.escape(str(heading))}</th>" for heading in first)
    lines.append("</tr></thead>")
    lines.append("<tbody>")
    for row in rows:
        cells = []
        for value in row.values():
            text = "" if value is None else str(value)
            cells.append(f"<td>{html.escape(text) if text else null}</td>")
        lines.append("<tr>" + "".join(cells) + "</tr>")
    lines.append("</tbody>")
    lines.append("</table>")
    return "\n".join(lines)


def _clean_sql(sql: str) -> str:
    return textwrap.dedent(_BLANK_LINES.sub("", sql)).strip("\n")


def _format_binds(binds: dict[str, Any]) -> str:
    return "\n".join(f"[{name}] => {value!r}" for name, value in binds.items())


def _render_results(results: Any, index: int) -> str:
    if results is None:
        return "[no data logged]"
    if isinstance(results, list):
        if not results:
            return "[empty array]"
        div_id = f"dbQueryLogDatatable-resultContentDiv-{index}"
        table = rows_to_table(
            results,
            null="NULL",
            table_class="table-striped table-bordered table-hover table-sm",
        )
        return (
            "<button class='btn btn-sm btn-outline-info' "
            f"onClick=\"modalContentFromWrapperID('{div_id}', 'Result Array')\">View Array</button>"
            f"<div id='{div_id}' style='display: none;'>"
            f"<div class='table-responsive'>{table}</div>"
            "</div>"
        )
    return html.escape(str(results), quote=True)


__all__ = ["render_html", "render_text", "rows_to_table"]
