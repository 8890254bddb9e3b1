"""Markup extraction: signal snapshots and currency rates."""

from signalwatch.core.extraction.fields import (
    ExtractionFailure,
    FailureReason,
    FieldExtractor,
    diagnostic_excerpt,
    looks_like_signal_page,
)
from signalwatch.core.extraction.numbers import parse_amount
from signalwatch.core.extraction.rates import RateExtractor, RateStrategy, default_rate_strategies, is_plausible_rate
from signalwatch.core.extraction.strategies import (
    DescriptionArrayStrategy,
    FieldMatch,
    FieldStrategy,
    LabelStrategy,
    PatternStrategy,
    clean_label,
)

__all__ = [
    "DescriptionArrayStrategy",
    "ExtractionFailure",
    "FailureReason",
    "FieldExtractor",
    "FieldMatch",
    "FieldStrategy",
    "LabelStrategy",
    "PatternStrategy",
    "RateExtractor",
    "RateStrategy",
    "clean_label",
    "default_rate_strategies",
    "diagnostic_excerpt",
    "is_plausible_rate",
    "looks_like_signal_page",
    "parse_amount",
]
