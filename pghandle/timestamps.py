"""Helpers for the `YYYY-MM-DD HH:MM:SS` timestamp format."""

from __future__ import annotations

from datetime import datetime

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(text: str) -> datetime | None:
    """Parse a timestamp string; return None when it does not match the format."""

    if not isinstance(text, str):
        return None
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def is_valid_timestamp(text: str) -> bool:
    """Return True if the text is a real calendar timestamp in the exact format.

    The parsed value must format back to the identical string, so loosely
    padded input such as ``2018-2-3 4:05:06`` is rejected along with
    impossible dates like ``2018-02-30``.
    """

    parsed = parse_timestamp(text)
    if parsed is None:
        return False
    return parsed.strftime(TIMESTAMP_FORMAT) == text


def now_timestamp() -> str:
    """Return the current local time formatted as a timestamp."""

    return datetime.now().strftime(TIMESTAMP_FORMAT)


__all__ = ["TIMESTAMP_FORMAT", "is_valid_timestamp", "now_timestamp", "parse_timestamp"]
