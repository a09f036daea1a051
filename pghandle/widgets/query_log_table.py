"""Data table mirroring a handle's profiled query log."""

from __future__ import annotations

from textual.widgets import DataTable

from pghandle.handle import ConnectionHandle


class QueryLogTable(DataTable):
    """One row per logged statement, oldest first."""

    DEFAULT_CSS = """
    QueryLogTable {
        height: 12;
        border-top: heavy $primary;
    }
    """

    COLUMNS = ("#", "Start (s)", "Duration (ms)", "SQL", "Binds")

    def __init__(self, handle: ConnectionHandle) -> None:
        super().__init__(id="query-log", zebra_stripes=True)
        self._handle = handle

    def on_mount(self) -> None:
        self.cursor_type = "row"
        self.refresh_log()

    def refresh_log(self) -> None:
        """Rebuild the table from the handle's current log."""

        self.clear(columns=True)
        self.add_columns(*self.COLUMNS)
        origin = self._handle.start_time or 0.0
        for index, entry in enumerate(self._handle.query_log, start=1):
            first_line = next((line.strip() for line in entry.sql.splitlines() if line.strip()), "")
            binds = ", ".join(f"{name}={value!r}" for name, value in entry.binds.items())
            self.add_row(
                str(index),
                f"{entry.start_time - origin:.5f}",
                f"{entry.duration * 1000:.2f}",
                first_line,
                binds,
            )


__all__ = ["QueryLogTable"]
