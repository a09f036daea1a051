"""Blocking convenience helpers over a PostgreSQL connection."""

from __future__ import annotations

from .config import AppConfig, ConnectionProfileConfig, HandleConfig, load_config, save_config
from .dialects import DIALECTS, POSTGRES, Dialect, get_dialect
from .errors import (
    DatabaseConnectionError,
    FoundRowsUnavailableError,
    PgHandleError,
    QueryExecutionError,
    ValidationError,
    simplify_error,
)
from .handle import ConnectionHandle
from .helpers import DBHandle
from .models import QueryLogEntry, Row
from .timestamps import is_valid_timestamp, now_timestamp, parse_timestamp

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "ConnectionHandle",
    "ConnectionProfileConfig",
    "DBHandle",
    "DIALECTS",
    "DatabaseConnectionError",
    "Dialect",
    "FoundRowsUnavailableError",
    "HandleConfig",
    "POSTGRES",
    "PgHandleError",
    "QueryExecutionError",
    "QueryLogEntry",
    "Row",
    "ValidationError",
    "__version__",
    "get_dialect",
    "is_valid_timestamp",
    "load_config",
    "now_timestamp",
    "parse_timestamp",
    "save_config",
    "simplify_error",
]
