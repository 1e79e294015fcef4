from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from application.engine import MONTH_ABBR

Number = Union[Decimal, int, float, str]

NARROW_NBSP = "\u202f"


@dataclass(frozen=True)
class CurrencyStyle:
    group_separator: str
    decimal_separator: str
    prefix: str = ""
    suffix: str = ""


CURRENCY_STYLES: dict[str, CurrencyStyle] = {
    "en-US": CurrencyStyle(group_separator=",", decimal_separator=".", prefix="$"),
    "fr-MA": CurrencyStyle(group_separator=NARROW_NBSP, decimal_separator=",", suffix=" د.م."),
}
DEFAULT_LOCALE = "en-US"


def default_locale() -> str:
    return os.getenv("LEDGER_LOCALE", DEFAULT_LOCALE)


def currency_style(locale: str | None = None) -> CurrencyStyle:
    name = locale or default_locale()
    try:
        return CURRENCY_STYLES[name]
    except KeyError:
        raise ValueError(f"Unsupported locale: {name}") from None


def _round(amount: Number, decimals: int) -> Decimal:
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def _group(digits: str, separator: str) -> str:
    head = len(digits) % 3 or 3
    parts = [digits[:head]] + [digits[i:i + 3] for i in range(head, len(digits), 3)]
    return separator.join(parts)


def format_currency(amount: Number, decimals: int = 2, locale: str | None = None) -> str:
    """Grouped, fixed-decimal currency string, e.g. `$1,234.50` or `1 234,50 د.م.`.

    Summary figures are usually shown with decimals=0, single transactions with 2.
    """
    style = currency_style(locale)
    value = _round(amount, decimals)
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):f}".partition(".")
    body = _group(integer, style.group_separator)
    if decimals > 0:
        body += style.decimal_separator + fraction
    return f"{sign}{style.prefix}{body}{style.suffix}"


def format_compact(amount: Number) -> str:
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"{sign}{_round(magnitude / 1_000_000, 1)}M"
    if magnitude >= 1_000:
        return f"{sign}{_round(magnitude / 1_000, 1)}K"
    rounded = _round(magnitude, 0)
    return f"{sign if rounded else ''}{rounded}"


def format_percentage(value: Number, decimals: int = 1) -> str:
    return f"{_round(value, decimals)}%"


def format_transaction_date(value: datetime) -> str:
    return f"{MONTH_ABBR[value.month - 1]} {value.day}, {value.year}"


def format_time_label(value: datetime) -> str:
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{MONTH_ABBR[value.month - 1]} {value.day}, {hour}:{value.minute:02d} {meridiem}"
