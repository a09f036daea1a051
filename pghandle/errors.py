"""Exception taxonomy and user-facing error translation."""

from __future__ import annotations

# SQLSTATE codes, see the DB2/Postgres SQLSTATE class 22 and 23 tables.
KNOWN_ERROR_CODES: dict[str, str] = {
    "22001": "The data provided is too large.",
    "22003": "A number provided is out of range (too high or low) for the space allotted in the database.",
    "22004": "A required value is missing.",
    "23502": "A required value is missing.",
}


class PgHandleError(RuntimeError):
    """Base class for errors raised by pghandle."""


class DatabaseConnectionError(PgHandleError):
    """Raised when a handle cannot connect to its database."""


class ValidationError(PgHandleError, ValueError):
    """Raised when a helper is called with missing or malformed arguments."""


class QueryExecutionError(PgHandleError):
    """Raised when a read query fails in the driver."""


class FoundRowsUnavailableError(PgHandleError):
    """Raised when the previous query did not record a found-rows total."""


def error_code(error: BaseException) -> str | None:
    """Return the SQLSTATE carried by a driver exception, if any."""

    for attr in ("sqlstate", "pgcode", "code"):
        value = getattr(error, attr, None)
        if value:
            return str(value)
    return None


def simplify_error(error: BaseException | None) -> str:
    """Translate a driver exception into a message an end user can act on.

    Errors caused by the data the user supplied map to short messages.
    Anything technical (bad SQL, server trouble) keeps the full driver
    message so it can be passed on to a developer.
    """

    if error is None:
        raise ValidationError("Missing exception")
    code = error_code(error)
    if code is not None and code in KNOWN_ERROR_CODES:
        return KNOWN_ERROR_CODES[code]
    return str(error)


__all__ = [
    "DatabaseConnectionError",
    "FoundRowsUnavailableError",
    "KNOWN_ERROR_CODES",
    "PgHandleError",
    "QueryExecutionError",
    "ValidationError",
    "error_code",
    "simplify_error",
]
