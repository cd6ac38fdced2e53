"""Custom exceptions used by the tcp_instrumentation package."""

from __future__ import annotations

from enum import IntEnum
from typing import Union


class ErrorKind(IntEnum):
    SUCCESS = 0
    SYSTEM = 1
    UNSUPPORTED_TRANSPORT = 2
    OUT_OF_MEMORY = 3
    NO_SUCH_CONNECTION = 4
    INVALID_ARGUMENT = 5
    HEADER = 6
    VARIABLE_NOT_FOUND = 7


_MESSAGES = {
    ErrorKind.SUCCESS: "success",
    ErrorKind.SYSTEM: "system error",
    ErrorKind.UNSUPPORTED_TRANSPORT: "unsupported agent type",
    ErrorKind.OUT_OF_MEMORY: "no memory",
    ErrorKind.NO_SUCH_CONNECTION: "unable to open connection stats",
    ErrorKind.INVALID_ARGUMENT: "invalid arguments",
    ErrorKind.HEADER: "could not parse header",
    ErrorKind.VARIABLE_NOT_FOUND: "variable not found",
}


class InstrumentationError(RuntimeError):
    """Base class for instrumentation errors."""

    kind: ErrorKind = ErrorKind.SYSTEM


class SystemIOError(InstrumentationError):
    """Raised when an underlying read, write or directory walk fails."""

    kind = ErrorKind.SYSTEM


class UnsupportedTransportError(InstrumentationError):
    """Raised when attaching with a transport other than local files."""

    kind = ErrorKind.UNSUPPORTED_TRANSPORT


class OutOfMemoryError(InstrumentationError):
    """Raised when a snapshot buffer or result list cannot be allocated."""

    kind = ErrorKind.OUT_OF_MEMORY


class NoSuchConnectionError(InstrumentationError):
    """Raised when a connection's data file vanished or is unreadable."""

    kind = ErrorKind.NO_SUCH_CONNECTION


class InvalidArgumentError(InstrumentationError):
    """Raised on mismatched group, connection or snapshot pairings."""

    kind = ErrorKind.INVALID_ARGUMENT


class HeaderError(InstrumentationError):
    """Raised when the header schema is missing or malformed."""

    kind = ErrorKind.HEADER


class VariableNotFoundError(InstrumentationError):
    """Raised when a required variable is absent from every group."""

    kind = ErrorKind.VARIABLE_NOT_FOUND


def strerror(code: Union[int, ErrorKind]) -> str:
    """Return the message for an error code, or "unknown error"."""
    try:
        return _MESSAGES[ErrorKind(code)]
    except (ValueError, TypeError, KeyError):
        return "unknown error"


def describe(exc: BaseException) -> str:
    """Render an exception as ``"<kind message>: <detail>"`` for humans."""
    kind = getattr(exc, "kind", None)
    message = strerror(kind) if kind is not None else "unknown error"
    detail = str(exc)
    if detail:
        return f"{message}: {detail}"
    return message


__all__ = [
    "ErrorKind",
    "InstrumentationError",
    "SystemIOError",
    "UnsupportedTransportError",
    "OutOfMemoryError",
    "NoSuchConnectionError",
    "InvalidArgumentError",
    "HeaderError",
    "VariableNotFoundError",
    "strerror",
    "describe",
]
