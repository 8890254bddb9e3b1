"""Snapshot extraction from provider signal pages."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from signalwatch.core.exceptions import ErrorCode, ExtractionError
from signalwatch.core.extraction.strategies import (
    BALANCE,
    FLOATING_PROFIT,
    FieldMatch,
    FieldStrategy,
    default_balance_strategies,
    default_floating_strategies,
    default_label_strategies,
)
from signalwatch.core.logging import get_logger
from signalwatch.core.models import UNKNOWN_LABEL, Snapshot

Clock = Callable[[], datetime]
LabelLookup = Callable[[str], str | None]

_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
_EXCERPT_TERMS = ("Kontostand", "Balance", "Floating", "Profit")

logger = get_logger(__name__)


class FailureReason(str, Enum):
    """Why markup did not yield a snapshot."""

    EMPTY_MARKUP = "EMPTY_MARKUP"
    BALANCE_NOT_FOUND = "BALANCE_NOT_FOUND"
    FLOATING_PROFIT_NOT_FOUND = "FLOATING_PROFIT_NOT_FOUND"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"


@dataclass(frozen=True, slots=True)
class ExtractionFailure:
    """Diagnostic value returned instead of a snapshot."""

    channel_id: str
    reason: FailureReason
    attempted: tuple[str, ...]
    message: str

    def to_error(self) -> ExtractionError:
        return ExtractionError(self.message, self.channel_id, self.reason.value, self.attempted)


def looks_like_signal_page(markup: str) -> bool:
    """Cheap heuristic telling whether ``markup`` resembles an MQL5 signal page."""

    lowered = markup.lower()
    return (
        "mql5" in lowered
        and ("signal" in lowered or "account" in lowered)
        and ("balance" in lowered or "kontostand" in lowered)
    )


def diagnostic_excerpt(markup: str, limit: int = 500) -> str:
    """Return at most ``limit`` characters of ``markup`` around the first known field label."""

    if limit <= 0:
        return ""
    for term in _EXCERPT_TERMS:
        position = markup.find(term)
        if position >= 0:
            start = max(0, position - limit // 2)
            return markup[start : start + limit]
    return markup[:limit]


class FieldExtractor:
    """Turns raw signal-page markup into a validated :class:`Snapshot`.

    Every logical field has an ordered cascade of strategies. The first
    strategy whose value parses and passes plausibility checks wins; values are
    never merged across strategies.
    """

    def __init__(
        self,
        *,
        balance_strategies: Sequence[FieldStrategy] | None = None,
        floating_strategies: Sequence[FieldStrategy] | None = None,
        label_strategies: Sequence[FieldStrategy] | None = None,
        clock: Clock | None = None,
        label_lookup: LabelLookup | None = None,
        unknown_label: str = UNKNOWN_LABEL,
        excerpt_chars: int = 500,
    ) -> None:
        self._balance_strategies = tuple(balance_strategies or default_balance_strategies())
        self._floating_strategies = tuple(floating_strategies or default_floating_strategies())
        self._label_strategies = tuple(label_strategies or default_label_strategies())
        self._clock = clock or datetime.now
        self._label_lookup = label_lookup
        self._unknown_label = unknown_label
        self._excerpt_chars = excerpt_chars

    def extract(self, markup: str, channel_id: str) -> Snapshot | ExtractionFailure:
        """Extract a snapshot or describe why that was impossible."""

        log = logger.bind(channel_id=channel_id)
        attempted: list[str] = []

        if not markup or not markup.strip():
            return self._fail(channel_id, FailureReason.EMPTY_MARKUP, attempted, "Markup is empty")

        balance = self._first_plausible(self._balance_strategies, markup, attempted)
        if balance is None:
            self._log_excerpt(channel_id, markup)
            return self._fail(channel_id, FailureReason.BALANCE_NOT_FOUND, attempted, "No plausible balance found")

        floating = self._first_plausible(self._floating_strategies, markup, attempted)
        if floating is None:
            self._log_excerpt(channel_id, markup)
            return self._fail(
                channel_id,
                FailureReason.FLOATING_PROFIT_NOT_FOUND,
                attempted,
                "No plausible floating profit found",
            )

        if balance.currency != floating.currency:
            return self._fail(
                channel_id,
                FailureReason.CURRENCY_MISMATCH,
                attempted,
                f"Balance currency {balance.currency} differs from floating profit currency {floating.currency}",
            )

        snapshot = Snapshot(
            channel_id=channel_id,
            balance=float(balance.value),
            floating_profit=float(floating.value),
            currency_code=balance.currency or "",
            observed_at=self._clock(),
            provider_label=self.extract_label(markup, channel_id),
        )
        errors = snapshot.validation_errors()
        if errors:
            details = ", ".join(f"{name}: {problem}" for name, problem in errors.items())
            return self._fail(channel_id, FailureReason.INVALID_SNAPSHOT, attempted, f"Invalid snapshot ({details})")

        log.debug(
            f"Extracted balance via {balance.strategy} and floating profit via {floating.strategy}"
        )
        return snapshot

    def extract_or_raise(self, markup: str, channel_id: str) -> Snapshot:
        """Like :meth:`extract` but raises :class:`ExtractionError` on failure."""

        result = self.extract(markup, channel_id)
        if isinstance(result, ExtractionFailure):
            raise result.to_error()
        return result

    def extract_label(self, markup: str, channel_id: str) -> str:
        """Return the provider label, falling back to the lookup and then the sentinel."""

        for strategy in self._label_strategies:
            found = strategy.match(markup)
            if found is not None:
                return str(found.value)
        if self._label_lookup is not None:
            known = self._label_lookup(channel_id)
            if known:
                return known
        logger.bind(channel_id=channel_id).debug("Provider label not found; using sentinel")
        return self._unknown_label

    def _first_plausible(
        self, strategies: Sequence[FieldStrategy], markup: str, attempted: list[str]
    ) -> FieldMatch | None:
        for strategy in strategies:
            attempted.append(f"{strategy.field}:{strategy.name}")
            found = strategy.match(markup)
            if found is not None and _is_plausible(found):
                return found
        return None

    def _fail(
        self, channel_id: str, reason: FailureReason, attempted: list[str], message: str
    ) -> ExtractionFailure:
        logger.bind(channel_id=channel_id, error_code=ErrorCode.EXTRACTION_FAILED.value).warning(
            f"Extraction failed: {reason.value} ({message})"
        )
        return ExtractionFailure(channel_id, reason, tuple(attempted), message)

    def _log_excerpt(self, channel_id: str, markup: str) -> None:
        if not looks_like_signal_page(markup):
            logger.bind(channel_id=channel_id).debug("Markup does not look like a signal page")
        excerpt = diagnostic_excerpt(markup, self._excerpt_chars)
        logger.bind(channel_id=channel_id, excerpt=excerpt).debug("Markup excerpt around field labels")


def _is_plausible(found: FieldMatch) -> bool:
    if not isinstance(found.value, float) or not math.isfinite(found.value):
        return False
    if found.currency is None or not _CURRENCY_PATTERN.match(found.currency):
        return False
    if found.field == BALANCE and found.value < 0:
        return False
    return found.field in (BALANCE, FLOATING_PROFIT)


__all__ = [
    "ExtractionFailure",
    "FailureReason",
    "FieldExtractor",
    "diagnostic_excerpt",
    "looks_like_signal_page",
]
