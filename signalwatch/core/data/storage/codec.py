"""Line codec for tick and rate store files.

Tick lines::

    dd.MM.yyyy,HH:mm:ss,balance,floating_profit               (legacy)
    dd.MM.yyyy,HH:mm:ss,balance,floating_profit,period_profit  (current)

Rate lines::

    yyyy-MM-dd HH:mm:ss,SYMBOL,price
"""

from __future__ import annotations

import math
import re
from datetime import datetime

from signalwatch.core.exceptions import ErrorCode, MalformedRecordLine
from signalwatch.core.logging import get_logger
from signalwatch.core.models import UNKNOWN_LABEL, RateQuote, Snapshot

TICK_TIMESTAMP_FORMAT = "%d.%m.%Y %H:%M:%S"
RATE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

LEGACY_TICK_FIELDS = 4
CURRENT_TICK_FIELDS = 5
RATE_FIELDS = 3

_DECIMAL = re.compile(r"^[-+]?\d+(?:\.\d+)?$")
_DIGITS = re.compile(r"^-?\d+$")
_FRACTION = re.compile(r"^\d+$")
_RATE_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_SYMBOL = re.compile(r"^[A-Za-z]+$")

Record = Snapshot | RateQuote

logger = get_logger(__name__)


def _number(text: str, line: str) -> float:
    cleaned = text.strip()
    if not _DECIMAL.match(cleaned):
        raise MalformedRecordLine(f"Not a decimal number: {cleaned!r}", line)
    value = float(cleaned)
    if not math.isfinite(value):
        raise MalformedRecordLine(f"Non-finite number: {cleaned!r}", line)
    return value


def _timestamp(text: str, fmt: str, line: str) -> datetime:
    try:
        return datetime.strptime(text.strip(), fmt)
    except ValueError as exc:
        raise MalformedRecordLine(f"Bad timestamp {text.strip()!r}", line) from exc


def _is_split_rate(fields: list[str]) -> bool:
    return (
        len(fields) == 4
        and bool(_RATE_TIMESTAMP.match(fields[0].strip()))
        and bool(_SYMBOL.match(fields[1].strip()))
        and bool(_DIGITS.match(fields[2].strip()))
        and bool(_FRACTION.match(fields[3].strip()))
    )


def _join_decimal(whole: str, fraction: str) -> str:
    return f"{whole.strip()}.{fraction.strip()}"


def format_amount(value: float) -> str:
    """Two decimals with ``.`` as decimal mark regardless of locale."""

    return f"{value:.2f}"


def format_price(value: float) -> str:
    return f"{value:.5f}"


class RecordCodec:
    """Encodes and decodes store lines for one channel.

    Tick lines carry no channel or currency, so decoded snapshots take them
    from the codec.
    """

    def __init__(
        self,
        channel_id: str,
        currency_code: str = "USD",
        provider_label: str = UNKNOWN_LABEL,
    ) -> None:
        self.channel_id = channel_id
        self.currency_code = currency_code
        self.provider_label = provider_label

    def parse_line(self, line: str) -> Record:
        """Decode ``line`` strictly.

        Raises:
            MalformedRecordLine: if the field count or any field is invalid.
        """

        text = line.strip()
        if not text:
            raise MalformedRecordLine("Empty line", line, 0)
        fields = text.split(",")
        count = len(fields)

        if count == RATE_FIELDS:
            return self._rate(fields[0], fields[1], fields[2], line)
        if count == LEGACY_TICK_FIELDS:
            if _is_split_rate(fields):
                return self._rate(fields[0], fields[1], _join_decimal(fields[2], fields[3]), line)
            return self._tick(fields, line)
        if count == CURRENT_TICK_FIELDS:
            return self._tick(fields, line)
        raise MalformedRecordLine(f"Unsupported field count {count}", line, count)

    def decode_line(self, line: str) -> Record | None:
        """Decode ``line`` or return ``None`` after logging why it failed."""

        try:
            return self.parse_line(line)
        except MalformedRecordLine as exc:
            logger.bind(channel_id=self.channel_id, error_code=ErrorCode.MALFORMED_RECORD.value).warning(
                f"Skipping undecodable line {line.strip()!r}: {exc.message}"
            )
            return None

    def encode_line(self, snapshot: Snapshot) -> str:
        timestamp = snapshot.observed_at.strftime(TICK_TIMESTAMP_FORMAT).replace(" ", ",")
        return ",".join(
            (
                timestamp,
                format_amount(snapshot.balance),
                format_amount(snapshot.floating_profit),
                format_amount(snapshot.period_profit),
            )
        )

    def encode_rate(self, quote: RateQuote) -> str:
        return ",".join(
            (quote.observed_at.strftime(RATE_TIMESTAMP_FORMAT), quote.symbol, format_price(quote.price))
        )

    def encode(self, record: Record) -> str:
        if isinstance(record, RateQuote):
            return self.encode_rate(record)
        return self.encode_line(record)

    def migrate_line(self, line: str) -> str | None:
        """Re-encode ``line`` in the current schema; current lines come back unchanged.

        Lines broken by a decimal comma are repaired first. ``None`` means the
        line could not be understood.
        """

        try:
            record = self.parse_line(line)
        except MalformedRecordLine:
            repaired = self.repair_line(line)
            if repaired is None:
                return None
            record = self.decode_line(repaired)
            if record is None:
                return None
        return self.encode(record)

    def repair_line(self, line: str) -> str | None:
        """Rejoin numbers that a locale decimal comma split into two fields.

        Handles 4-field rate rows and 6/7/8-field tick rows; returns ``None``
        for any other shape.
        """

        fields = [field.strip() for field in line.strip().split(",")]
        count = len(fields)
        if _is_split_rate(fields):
            return ",".join((fields[0], fields[1], _join_decimal(fields[2], fields[3])))
        if count not in (6, 7, 8):
            return None
        if not all(_DIGITS.match(field) for field in fields[2:]):
            return None
        if not all(_FRACTION.match(fields[index]) for index in (3, 5)):
            return None

        repaired = [fields[0], fields[1], _join_decimal(fields[2], fields[3]), _join_decimal(fields[4], fields[5])]
        if count == 7:
            repaired.append(fields[6])
        elif count == 8:
            if not _FRACTION.match(fields[7]):
                return None
            repaired.append(_join_decimal(fields[6], fields[7]))
        return ",".join(repaired)

    def _tick(self, fields: list[str], line: str) -> Snapshot:
        observed_at = _timestamp(f"{fields[0].strip()} {fields[1].strip()}", TICK_TIMESTAMP_FORMAT, line)
        period_profit = _number(fields[4], line) if len(fields) == CURRENT_TICK_FIELDS else 0.0
        return Snapshot(
            channel_id=self.channel_id,
            balance=_number(fields[2], line),
            floating_profit=_number(fields[3], line),
            currency_code=self.currency_code,
            observed_at=observed_at,
            provider_label=self.provider_label,
            period_profit=period_profit,
        )

    def _rate(self, timestamp: str, symbol: str, price: str, line: str) -> RateQuote:
        observed_at = _timestamp(timestamp, RATE_TIMESTAMP_FORMAT, line)
        symbol = symbol.strip()
        if not _SYMBOL.match(symbol):
            raise MalformedRecordLine(f"Bad symbol {symbol!r}", line)
        quote = RateQuote(symbol=symbol, price=_number(price, line), observed_at=observed_at)
        if not quote.is_valid:
            raise MalformedRecordLine(f"Implausible price {price.strip()!r}", line)
        return quote


__all__ = [
    "CURRENT_TICK_FIELDS",
    "LEGACY_TICK_FIELDS",
    "RATE_FIELDS",
    "RATE_TIMESTAMP_FORMAT",
    "Record",
    "RecordCodec",
    "TICK_TIMESTAMP_FORMAT",
    "format_amount",
    "format_price",
]
