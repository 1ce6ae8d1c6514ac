"""
Database and API error codes.

The relational store speaks Postgres SQLSTATE codes and PostgREST codes;
the query layer translates driver exceptions into these so that callers
can branch on a code instead of on exception types.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError


class PGErrors:
    UNIQUE_VIOLATION = "23505"
    FOREIGN_KEY_VIOLATION = "23503"
    NOT_NULL_VIOLATION = "23502"
    CHECK_VIOLATION = "23514"


class PostgrestErrors:
    NO_ROWS_RETURNED = "PGRST116"
    MULTIPLE_ROWS = "PGRST102"


class AppErrors:
    WALLET_NOT_CONNECTED = "wallet_not_connected"
    SIGN_IN_FAILED = "sign_in_failed"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_ADDRESS = "invalid_address"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    DATABASE_ERROR = "database_error"


# Message fragments emitted by drivers that do not expose a SQLSTATE (sqlite)
_INTEGRITY_MARKERS = (
    ("unique", PGErrors.UNIQUE_VIOLATION),
    ("foreign key", PGErrors.FOREIGN_KEY_VIOLATION),
    ("not null", PGErrors.NOT_NULL_VIOLATION),
    ("check constraint", PGErrors.CHECK_VIOLATION),
)


def is_unique_violation(error_code: Optional[str]) -> bool:
    return error_code == PGErrors.UNIQUE_VIOLATION


def is_no_rows_error(error_code: Optional[str]) -> bool:
    return error_code == PostgrestErrors.NO_ROWS_RETURNED


def error_code_from_exception(exc: Exception) -> str:
    """Map a SQLAlchemy exception onto a Postgres / PostgREST style code."""
    if isinstance(exc, NoResultFound):
        return PostgrestErrors.NO_ROWS_RETURNED
    if isinstance(exc, IntegrityError):
        orig = exc.orig
        # asyncpg exposes .sqlstate, psycopg exposes .pgcode
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate:
            return sqlstate
        message = str(orig).lower()
        for marker, code in _INTEGRITY_MARKERS:
            if marker in message:
                return code
    if isinstance(exc, SQLAlchemyError):
        return AppErrors.DATABASE_ERROR
    return AppErrors.DATABASE_ERROR


def get_error_message(error_code: Optional[str]) -> str:
    """Get a user-friendly error message."""
    messages = {
        PGErrors.UNIQUE_VIOLATION: "This record already exists",
        PGErrors.FOREIGN_KEY_VIOLATION: "Referenced record not found",
        PGErrors.NOT_NULL_VIOLATION: "Required field is missing",
        PGErrors.CHECK_VIOLATION: "Value failed a validation check",
        PostgrestErrors.NO_ROWS_RETURNED: "Record not found",
        AppErrors.WALLET_NOT_CONNECTED: "Please connect your wallet",
        AppErrors.INSUFFICIENT_BALANCE: "Insufficient balance",
        AppErrors.INVALID_ADDRESS: "Invalid wallet address",
        AppErrors.INVALID_AMOUNT: "Invalid amount",
        AppErrors.INVALID_STATUS_TRANSITION: "Request is no longer pending",
    }
    return messages.get(error_code, "An error occurred")


class ErrorKind:
    """Where a user-facing error came from; the API maps these onto status codes."""
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    REMOTE = "remote"
    SIGNING = "signing"
