"""Status bar widget that mirrors handle information."""

from __future__ import annotations

from textual.widgets import Static

from pghandle.handle import ConnectionHandle


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, handle: ConnectionHandle, *, profile_name: str | None = None) -> None:
        super().__init__("", id="status-bar")
        self._handle = handle
        self._profile_name = profile_name
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def on_mount(self) -> None:
        self.refresh_status()

    def refresh_status(self) -> None:
        parts = []
        if self._profile_name:
            parts.append(f"Profile: {self._profile_name}")
        parts.append(f"Connection: {self._handle.connection_details}")
        if self._handle.profiling_enabled:
            parts.append(f"Queries: {len(self._handle.query_log)}")
            parts.append(f"Total: {self._handle.total_query_time() * 1000:.2f} ms")
        else:
            parts.append("Profiling: off")
        self._text = " | ".join(parts)
        self.update(self._text)


__all__ = ["StatusBar"]
