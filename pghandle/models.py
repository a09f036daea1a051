"""Shared dataclasses used across the handle and renderer modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Row = dict[str, Any]


@dataclass(frozen=True, slots=True)
class QueryLogEntry:
    """One profiled statement. Times come from ``time.perf_counter()``."""

    sql: str
    binds: dict[str, Any] = field(default_factory=dict)
    start_time: float = 0.0
    end_time: float = 0.0
    results: Any = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def as_dict(self) -> dict[str, Any]:
        return {
            "sql": self.sql,
            "binds": dict(self.binds),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "results": self.results,
        }


__all__ = ["QueryLogEntry", "Row"]
