"""Query pad widget that runs statements through a DBHandle."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.message import Message
from textual.widgets import Button, DataTable, Input, Static

from pghandle.errors import PgHandleError
from pghandle.helpers import DBHandle


class QueryPad(Container):
    """Input + result grid. Row-returning statements are fetched, others executed."""

    DEFAULT_CSS = """
    QueryPad {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    QueryPad .panel-title {
        text-style: bold;
    }

    QueryPad Input {
        border: heavy $primary;
    }

    QueryPad .query-actions {
        margin-top: 1;
        height: auto;
        align-horizontal: left;
    }

    QueryPad .query-actions > * {
        margin-right: 1;
    }

    QueryPad #query-results {
        height: 1fr;
        margin-top: 1;
        border-top: solid $surface-darken-2;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+enter", "run_query", "Run query", show=False, priority=True),
    ]

    class Executed(Message):
        """Posted after every statement the pad runs, successful or not."""

        def __init__(self, sql: str, ok: bool) -> None:
            super().__init__()
            self.sql = sql
            self.ok = ok

    def __init__(self, handle: DBHandle, *, result_limit: int = 200) -> None:
        super().__init__(id="query-pad")
        self._handle = handle
        self._result_limit = result_limit
        self._input: Input | None = None
        self._status_panel: Static | None = None
        self._result_table: DataTable | None = None
        self._status_text = ""

    def compose(self) -> ComposeResult:
        yield Static("Query Pad", classes="panel-title")
        yield Input(
            placeholder="Type SQL, e.g. SELECT * FROM accounts WHERE id = 1",
            id="query-input",
        )
        yield Horizontal(
            Button("Run query", id="run-query", variant="primary"),
            Static("", id="query-status"),
            classes="query-actions",
        )
        yield DataTable(id="query-results", zebra_stripes=True)

    async def on_mount(self) -> None:
        self._input = self.query_one("#query-input", Input)
        self._status_panel = self.query_one("#query-status", Static)
        self._result_table = self.query_one("#query-results", DataTable)
        self._result_table.cursor_type = "row"

    @property
    def status_text(self) -> str:
        """Last status message (testing helper)."""

        return self._status_text

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        await self.run_sql(event.value)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "run-query" and self._input:
            await self.run_sql(self._input.value)

    async def action_run_query(self) -> None:
        if self._input:
            await self.run_sql(self._input.value)

    async def run_sql(self, sql: str) -> None:
        """Run a statement in a worker thread and render its outcome."""

        statement = sql.strip()
        if not statement:
            self._set_status("Enter SQL to run.", severity="warning")
            return
        self._set_status("Executing…", severity="information")
        outcome = await asyncio.to_thread(self._run_statement, statement)
        self._render_rows(outcome.rows)
        self._set_status(outcome.message, severity="success" if outcome.ok else "error")
        self.post_message(self.Executed(statement, outcome.ok))

    def _run_statement(self, statement: str) -> _Outcome:
        # Blocks on the handle; keep off the UI loop.
        try:
            if returns_rows(statement):
                rows = self._handle.fetch_rows(statement)
                return _Outcome(True, f"{len(rows)} row(s)", rows)
            if self._handle.execute(statement):
                affected = self._handle.affected_rows
                detail = f"{affected} row(s) affected" if affected is not None else "OK"
                return _Outcome(True, detail)
            return _Outcome(False, "Statement failed; see the log for details.")
        except PgHandleError as exc:
            return _Outcome(False, f"Error: {exc}")

    def _render_rows(self, rows: list[dict[str, object]]) -> None:
        if not self._result_table:
            return
        self._result_table.clear(columns=True)
        if not rows:
            return
        columns = list(rows[0].keys())
        self._result_table.add_columns(*columns)
        for row in rows[: self._result_limit]:
            self._result_table.add_row(*(self._format_cell(row.get(col)) for col in columns))

    def _set_status(self, message: str, *, severity: str) -> None:
        prefix = {
            "information": "ℹ",
            "warning": "⚠",
            "error": "✖",
            "success": "✔",
        }.get(severity, "•")
        self._status_text = f"{prefix} {message}"
        if not self._status_panel:
            return
        self._status_panel.update(self._status_text)

    @staticmethod
    def _format_cell(value: object) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        return str(value)


@dataclass(slots=True)
class _Outcome:
    ok: bool
    message: str
    rows: list[dict[str, object]] = field(default_factory=list)

def returns_rows(statement: str) -> bool:
    """Guess whether a statement produces a result set from its leading keyword."""

    token = statement.lstrip().split(None, 1)
    if not token:
        return False
    head = token[0].lower()
    return head in {"select", "with", "show", "values", "table"}


__all__ = ["QueryPad", "returns_rows"]
