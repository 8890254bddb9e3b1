"""Parsing of human formatted amounts found in provider pages."""

from __future__ import annotations

import math
import re

_NUMBER = re.compile(r"[-+]?\d+(?:\.\d+)?")
_GROUP_SEPARATORS = (" ", "\u00a0", "\u202f", "'")


def parse_amount(text: str, *, three_digit_comma_is_decimal: bool = False) -> float | None:
    """Parse ``text`` into a finite float or return ``None``.

    Thousands separators (comma, space, no-break space, apostrophe) are removed.
    A single comma without a decimal point is read as the decimal mark when it
    is followed by one to five digits. Exactly three digits after such a comma
    are read as a thousands group unless ``three_digit_comma_is_decimal`` is set.
    ``1.234,56`` style input uses the comma as decimal mark.
    """

    cleaned = text.strip().replace("\u2212", "-")
    for separator in _GROUP_SEPARATORS:
        cleaned = cleaned.replace(separator, "")

    if "," in cleaned:
        if "." in cleaned and cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        elif "." not in cleaned and cleaned.count(",") == 1:
            whole, fraction = cleaned.split(",")
            is_decimal = fraction.isdigit() and 1 <= len(fraction) <= 5
            if len(fraction) == 3 and not three_digit_comma_is_decimal:
                is_decimal = False
            cleaned = f"{whole}.{fraction}" if is_decimal else whole + fraction
        else:
            cleaned = cleaned.replace(",", "")

    if not _NUMBER.fullmatch(cleaned):
        return None
    value = float(cleaned)
    if not math.isfinite(value):
        return None
    return value


__all__ = ["parse_amount"]
