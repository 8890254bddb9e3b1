"""Standardised error codes shared across the signalwatch core."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Machine readable error identifiers."""

    GENERAL = "GENERAL_ERROR"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    RATE_NOT_FOUND = "RATE_NOT_FOUND"
    MALFORMED_RECORD = "MALFORMED_RECORD"
    STORE_IO = "STORE_IO_ERROR"
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"
    CONFIG_INVALID = "CONFIG_INVALID"
    DEGENERATE_COMPUTATION = "DEGENERATE_COMPUTATION"


__all__ = ["ErrorCode"]
