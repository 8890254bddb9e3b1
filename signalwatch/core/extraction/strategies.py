"""Matching strategies used by the extraction cascades.

Each strategy inspects raw markup for a single logical field and either
returns a :class:`FieldMatch` or ``None``. Strategies keep no mutable state,
so one instance can be shared between extractors and threads.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from re import Pattern
from typing import Protocol

from signalwatch.core.extraction.numbers import parse_amount

BALANCE = "balance"
FLOATING_PROFIT = "floating_profit"
PROVIDER_LABEL = "provider_label"

# Markup between a label and its value: whitespace, &nbsp; or inline tags.
_GAP = r"(?:\s|&nbsp;|<[^>]*>)*"
_AMOUNT = r"(?P<amount>[-+\u2212]?\s?\d(?:[\d,.' \u00a0\u202f]*\d)?)"
_CURRENCY = r"(?:\s|&nbsp;|<[^>]*>)*(?P<currency>(?-i:[A-Z]{3}))\b"

_DESCRIPTION_ARRAY = re.compile(
    r"""["']?description["']?\s*:\s*\[\s*(?P<q1>["'])(?P<first>.*?)(?P=q1)\s*,\s*(?P<q2>["'])(?P<second>.*?)(?P=q2)\s*\]""",
    re.DOTALL,
)
_DESCRIPTION_ITEM = re.compile(
    r"^[^:]*:\s*" + _AMOUNT + r"\s*(?P<currency>[A-Z]{3})\s*$",
    re.DOTALL,
)

_TAGS = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_LABEL_SUFFIX = re.compile(
    r"\s+(?:[-|\u2013\u2014]\s*(?:Trading\s+)?Signal\b.*|[-|]\s*MQL5.*)$",
    re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class FieldMatch:
    """Value found by a strategy together with where it came from."""

    field: str
    value: float | str
    strategy: str
    raw: str
    currency: str | None = None


class FieldStrategy(Protocol):
    """Matcher for one logical field."""

    name: str
    field: str

    def match(self, markup: str) -> FieldMatch | None: ...


@dataclass(frozen=True, slots=True)
class DescriptionArrayStrategy:
    """Reads an embedded ``"description": ["Balance: ...", "Floating profit: ..."]`` array.

    ``index`` picks the array element: 0 carries the balance, 1 the floating profit.
    """

    name: str
    field: str
    index: int

    def match(self, markup: str) -> FieldMatch | None:
        found = _DESCRIPTION_ARRAY.search(markup)
        if found is None:
            return None
        item = html.unescape(found.group("first" if self.index == 0 else "second"))
        parsed = _DESCRIPTION_ITEM.match(item.strip())
        if parsed is None:
            return None
        value = parse_amount(parsed.group("amount"))
        if value is None:
            return None
        return FieldMatch(self.field, value, self.name, item, parsed.group("currency"))


@dataclass(frozen=True, slots=True)
class PatternStrategy:
    """Regex with ``amount`` and ``currency`` groups; first parseable hit wins."""

    name: str
    field: str
    pattern: Pattern[str]

    def match(self, markup: str) -> FieldMatch | None:
        for found in self.pattern.finditer(markup):
            value = parse_amount(found.group("amount"))
            if value is None:
                continue
            return FieldMatch(self.field, value, self.name, found.group(0), found.group("currency"))
        return None


@dataclass(frozen=True, slots=True)
class LabelStrategy:
    """Regex whose ``label`` group holds a provider name."""

    name: str
    pattern: Pattern[str]
    field: str = PROVIDER_LABEL

    def match(self, markup: str) -> FieldMatch | None:
        for found in self.pattern.finditer(markup):
            label = clean_label(found.group("label"))
            if label:
                return FieldMatch(self.field, label, self.name, found.group(0))
        return None


def clean_label(raw: str) -> str | None:
    """Strip tags, decode entities, collapse whitespace and drop page-title suffixes."""

    text = _TAGS.sub(" ", raw)
    text = html.unescape(text)
    text = _WHITESPACE.sub(" ", text).strip()
    text = _LABEL_SUFFIX.sub("", text).strip()
    return text or None


def _amount_pattern(label: str) -> Pattern[str]:
    return re.compile(label + _GAP + _AMOUNT + _CURRENCY, re.IGNORECASE)


def default_balance_strategies() -> tuple[FieldStrategy, ...]:
    return (
        DescriptionArrayStrategy("description_array", BALANCE, 0),
        PatternStrategy("kontostand", BALANCE, _amount_pattern(r"Kontostand:")),
        PatternStrategy("balance", BALANCE, _amount_pattern(r"\bBalance:")),
        PatternStrategy("account_balance", BALANCE, _amount_pattern(r"Account\s*Balance:")),
        PatternStrategy("kontostand_loose", BALANCE, _amount_pattern(r"Kontostand[^:<]{0,40}:")),
    )


def default_floating_strategies() -> tuple[FieldStrategy, ...]:
    return (
        DescriptionArrayStrategy("description_array", FLOATING_PROFIT, 1),
        PatternStrategy("floating_profit", FLOATING_PROFIT, _amount_pattern(r"Floating\s*Profit:")),
        PatternStrategy("floating_loose", FLOATING_PROFIT, _amount_pattern(r"Floating[^:<]{0,40}:")),
        PatternStrategy("current_profit", FLOATING_PROFIT, _amount_pattern(r"Current\s*Profit:")),
        PatternStrategy("unrealized_pnl", FLOATING_PROFIT, _amount_pattern(r"Unrealized\s*P(?:&amp;|&)L:")),
    )


def default_label_strategies() -> tuple[FieldStrategy, ...]:
    return (
        LabelStrategy(
            "h1_title",
            re.compile(r"<h1[^>]*class=[\"'][^\"']*title[^\"']*[\"'][^>]*>(?P<label>.*?)</h1>", re.IGNORECASE | re.DOTALL),
        ),
        LabelStrategy(
            "og_title",
            re.compile(
                r"<meta(?=[^>]*property=[\"']og:title[\"'])[^>]*content=[\"'](?P<label>[^\"']*)[\"']",
                re.IGNORECASE,
            ),
        ),
        LabelStrategy("title_tag", re.compile(r"<title[^>]*>(?P<label>.*?)</title>", re.IGNORECASE | re.DOTALL)),
    )


__all__ = [
    "BALANCE",
    "DescriptionArrayStrategy",
    "FLOATING_PROFIT",
    "FieldMatch",
    "FieldStrategy",
    "LabelStrategy",
    "PROVIDER_LABEL",
    "PatternStrategy",
    "clean_label",
    "default_balance_strategies",
    "default_floating_strategies",
    "default_label_strategies",
]
