"""Widget library for the query console."""

from __future__ import annotations

from .query_log_table import QueryLogTable
from .query_pad import QueryPad
from .status_bar import StatusBar

__all__ = ["QueryLogTable", "QueryPad", "StatusBar"]
