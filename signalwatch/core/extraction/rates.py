"""Currency rate extraction for the rate side channel."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from re import Pattern

from signalwatch.core.exceptions import RateExtractionError
from signalwatch.core.extraction.numbers import parse_amount
from signalwatch.core.logging import get_logger
from signalwatch.core.models import RateQuote

Clock = Callable[[], datetime]

_PRICE = r"(?P<price>\d[\d,.']*\d)"
_LOOSE_PRICE = r"(?P<price>\d+(?:[,']\d{3})*[.,]\d+)"

DEFAULT_SYMBOLS: tuple[str, ...] = ("XAUUSD", "BTCUSD")

PLAUSIBLE_RANGES: dict[str, tuple[float, float]] = {
    "XAUUSD": (500.0, 6000.0),
    "BTCUSD": (1000.0, 200000.0),
}
DEFAULT_RANGE = (0.0, 1_000_000.0)

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RateStrategy:
    """Regex with a ``price`` group tied to one symbol."""

    name: str
    symbol: str
    pattern: Pattern[str]

    def match(self, markup: str) -> float | None:
        for found in self.pattern.finditer(markup):
            value = parse_amount(found.group("price"), three_digit_comma_is_decimal=True)
            if value is not None:
                return value
        return None


def is_plausible_rate(symbol: str, price: float) -> bool:
    """Whether ``price`` lies strictly inside the plausible band for ``symbol``."""

    if not math.isfinite(price):
        return False
    low, high = PLAUSIBLE_RANGES.get(symbol.upper(), DEFAULT_RANGE)
    if symbol.upper() in PLAUSIBLE_RANGES:
        return low <= price <= high
    return low < price < high


def _generic_strategies(symbol: str) -> list[RateStrategy]:
    escaped = re.escape(symbol)
    slashed = re.escape(f"{symbol[:3]}/{symbol[3:]}")
    return [
        RateStrategy(
            "json_bid",
            symbol,
            re.compile(r"\"symbol\"\s*:\s*\"" + escaped + r"\"[^}]*?\"bid\"\s*:\s*\"?" + _PRICE),
        ),
        RateStrategy(
            "data_attributes",
            symbol,
            re.compile(r"data-symbol=[\"']" + escaped + r"[\"'][^>]*?data-bid=[\"']" + _PRICE),
        ),
        RateStrategy("symbol_loose", symbol, re.compile(escaped + r"[^>]{0,100}?" + _LOOSE_PRICE)),
        RateStrategy("symbol_slash", symbol, re.compile(slashed + r"[^>]{0,100}?" + _LOOSE_PRICE)),
    ]


def _ticker_strategies(symbol: str, ticker_id: str, display_name: str) -> list[RateStrategy]:
    return [
        RateStrategy(
            "ticker_bid",
            symbol,
            re.compile(r"id=[\"']ticker_bid_" + ticker_id + r"[\"'][^>]*>\s*" + _PRICE),
        ),
        RateStrategy(
            "ticker_ask",
            symbol,
            re.compile(r"id=[\"']ticker_ask_" + ticker_id + r"[\"'][^>]*>\s*" + _PRICE),
        ),
        RateStrategy(
            "quote_widget",
            symbol,
            re.compile(
                re.escape(display_name) + r".{0,400}?navigator-overview-all__quote-val[^>]*>\s*" + _PRICE,
                re.DOTALL,
            ),
        ),
    ]


def default_rate_strategies(symbol: str) -> tuple[RateStrategy, ...]:
    """Return the ordered cascade for ``symbol``, most specific first."""

    symbol = symbol.upper()
    if symbol == "XAUUSD":
        ladder = _ticker_strategies(symbol, "375", "Gold vs US Dollar") + _generic_strategies(symbol)
        ladder.append(RateStrategy("name_loose", symbol, re.compile(r"\bGold\b.{0,200}?" + _LOOSE_PRICE, re.DOTALL)))
        return tuple(ladder)
    if symbol == "BTCUSD":
        ladder = _ticker_strategies(symbol, "4467", "Bitcoin vs US Dollar") + _generic_strategies(symbol)
        ladder.append(
            RateStrategy("name_loose", symbol, re.compile(r"\bBitcoin\b.{0,200}?" + _LOOSE_PRICE, re.DOTALL))
        )
        return tuple(ladder)
    return tuple(_generic_strategies(symbol))


class RateExtractor:
    """Extracts :class:`RateQuote` values for a set of symbols."""

    def __init__(
        self,
        symbols: Iterable[str] = DEFAULT_SYMBOLS,
        *,
        strategies: Mapping[str, Sequence[RateStrategy]] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.symbols = tuple(symbol.upper() for symbol in symbols)
        ladders = {symbol: default_rate_strategies(symbol) for symbol in self.symbols}
        ladders.update({symbol.upper(): tuple(ladder) for symbol, ladder in (strategies or {}).items()})
        self._strategies = ladders
        self._clock = clock or datetime.now

    def strategies_for(self, symbol: str) -> tuple[RateStrategy, ...]:
        """Ladder for ``symbol``; symbols outside the configured set get the default cascade."""

        symbol = symbol.upper()
        ladder = self._strategies.get(symbol)
        return ladder if ladder is not None else default_rate_strategies(symbol)

    def extract_symbol(self, markup: str, symbol: str) -> RateQuote | None:
        """Return the first plausible quote for ``symbol`` or ``None``."""

        symbol = symbol.upper()
        for strategy in self.strategies_for(symbol):
            price = strategy.match(markup)
            if price is None:
                continue
            if not is_plausible_rate(symbol, price):
                logger.debug(f"Rejected implausible {symbol} price {price} from {strategy.name}")
                continue
            logger.debug(f"Found {symbol} price {price} via {strategy.name}")
            return RateQuote(symbol=symbol, price=price, observed_at=self._clock())
        return None

    def extract(self, markup: str) -> list[RateQuote]:
        """Return quotes for every configured symbol found in ``markup``.

        Raises:
            RateExtractionError: when no configured symbol yields a quote.
        """

        quotes: list[RateQuote] = []
        for symbol in self.symbols:
            quote = self.extract_symbol(markup, symbol)
            if quote is None:
                logger.info(f"No plausible {symbol} rate in markup")
                continue
            quotes.append(quote)
        if not quotes:
            raise RateExtractionError("No currency rate found in markup", self.symbols)
        return quotes


__all__ = [
    "DEFAULT_SYMBOLS",
    "PLAUSIBLE_RANGES",
    "RateExtractor",
    "RateStrategy",
    "default_rate_strategies",
    "is_plausible_rate",
]
