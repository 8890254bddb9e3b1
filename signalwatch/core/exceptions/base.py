"""Core exception types for signalwatch."""

from __future__ import annotations

from typing import Any, Sequence

from signalwatch.core.exceptions.codes import ErrorCode


class SignalWatchError(Exception):
    """Base exception for every error raised by signalwatch."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GENERAL.value,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the error.

        Args:
            message: human readable message
            error_code: machine readable code, usually an ``ErrorCode`` value
            details: extra structured context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return a serialisable payload describing the error."""

        return {"code": self.error_code, "message": self.message, "details": dict(self.details)}


class ExtractionError(SignalWatchError):
    """Raised when markup does not yield a valid snapshot."""

    def __init__(
        self,
        message: str,
        channel_id: str,
        reason: str,
        attempted: Sequence[str] = (),
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.update({"channel_id": channel_id, "reason": reason, "attempted": list(attempted)})
        super().__init__(message, ErrorCode.EXTRACTION_FAILED.value, super_details)
        self.channel_id = channel_id
        self.reason = reason
        self.attempted = tuple(attempted)


class RateExtractionError(SignalWatchError):
    """Raised when no currency rate could be found in markup."""

    def __init__(
        self,
        message: str,
        symbols: Sequence[str] = (),
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if symbols:
            super_details["symbols"] = list(symbols)
        super().__init__(message, ErrorCode.RATE_NOT_FOUND.value, super_details)
        self.symbols = tuple(symbols)


class MalformedRecordLine(SignalWatchError):
    """A store line could not be decoded."""

    def __init__(
        self,
        message: str,
        line: str,
        field_count: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["line"] = line
        if field_count is not None:
            super_details["field_count"] = field_count
        super().__init__(message, ErrorCode.MALFORMED_RECORD.value, super_details)
        self.line = line
        self.field_count = field_count


class StoreIOError(SignalWatchError):
    """File system failure scoped to a single channel store."""

    def __init__(
        self,
        message: str,
        channel_id: str,
        path: str,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.update({"channel_id": channel_id, "path": path})
        super().__init__(message, ErrorCode.STORE_IO.value, super_details)
        self.channel_id = channel_id
        self.path = path


class SnapshotValidationError(SignalWatchError):
    """A snapshot failed validation before being stored."""

    def __init__(
        self,
        message: str,
        validation_errors: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if validation_errors:
            super_details["validation_errors"] = validation_errors
        super().__init__(message, ErrorCode.INVALID_SNAPSHOT.value, super_details)
        self.validation_errors = validation_errors or {}


class ConfigError(SignalWatchError):
    """Invalid configuration value."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if key:
            super_details["key"] = key
        super().__init__(message, ErrorCode.CONFIG_INVALID.value, super_details)
        self.key = key


__all__ = [
    "ConfigError",
    "ExtractionError",
    "MalformedRecordLine",
    "RateExtractionError",
    "SignalWatchError",
    "SnapshotValidationError",
    "StoreIOError",
]
