"""Amount, date and name normalization shared by validation and the store.

Money is carried as integer minor units everywhere in the core. Conversion to
and from decimal text happens only here, at the input/presentation boundary.
The number of fractional digits (the currency exponent) defaults to 2 and can
be overridden with ``WT_CURRENCY_EXPONENT``; the original deployment used JPY
(exponent 0).
"""

from __future__ import annotations

import os
import re
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

DEFAULT_CURRENCY_EXPONENT = 2
DEFAULT_CURRENCY_SYMBOL = "$"

# ASCII digits with an optional fractional part. No signs, separators or symbols.
AMOUNT_RE = re.compile(r"^[0-9]+(?:\.[0-9]+)?$")


# ---------------------------------------------------------------------------
# Currency settings
# ---------------------------------------------------------------------------


def currency_exponent() -> int:
    """Return the configured currency exponent (``WT_CURRENCY_EXPONENT``)."""

    raw = os.getenv("WT_CURRENCY_EXPONENT")
    if raw is None or not raw.strip():
        return DEFAULT_CURRENCY_EXPONENT
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"WT_CURRENCY_EXPONENT must be an integer, got {raw!r}") from exc
    if not 0 <= value <= 4:
        raise RuntimeError(f"WT_CURRENCY_EXPONENT must be within 0..4, got {value}")
    return value


def currency_symbol() -> str:
    raw = os.getenv("WT_CURRENCY_SYMBOL")
    return raw if raw else DEFAULT_CURRENCY_SYMBOL


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def fractional_digits(text: str) -> int:
    """Number of digits after the decimal point in a validated amount string."""

    _, _, frac = text.partition(".")
    return len(frac)


def parse_amount(text: str, *, exponent: int | None = None) -> int:
    """Convert a decimal amount string into integer minor units.

    Raises ``ValueError`` when ``text`` is not a plain non-negative decimal or
    carries more fractional digits than the currency allows.
    """

    exp = currency_exponent() if exponent is None else exponent
    s = text.strip()
    if not AMOUNT_RE.fullmatch(s):
        raise ValueError(f"invalid amount: {text!r}")
    if fractional_digits(s) > exp:
        raise ValueError(f"amount {text!r} has more than {exp} decimal places")
    return int(Decimal(s).scaleb(exp))


def to_minor_units(raw: Any, *, exponent: int | None = None) -> int:
    """Coerce an amount from a store or form payload into minor units.

    ``int`` values are taken as minor units already; strings and decimals are
    parsed as major-unit decimal text.
    """

    if isinstance(raw, bool):
        raise ValueError(f"invalid amount: {raw!r}")
    if isinstance(raw, int):
        if raw < 0:
            raise ValueError(f"amount must be non-negative, got {raw}")
        return raw
    if isinstance(raw, Decimal):
        return parse_amount(format(raw, "f"), exponent=exponent)
    if isinstance(raw, str):
        return parse_amount(raw, exponent=exponent)
    raise ValueError(f"unsupported amount type: {type(raw).__name__}")


def format_amount(
    minor: int,
    *,
    exponent: int | None = None,
    symbol: str | None = None,
) -> str:
    """Render minor units for display, e.g. ``123456 -> '$1,234.56'``."""

    exp = currency_exponent() if exponent is None else exponent
    sym = currency_symbol() if symbol is None else symbol
    major = Decimal(minor).scaleb(-exp)
    sign = "-" if minor < 0 else ""
    return f"{sign}{sym}{abs(major):,.{exp}f}"


def percent_of(amount: int, percentage: Decimal) -> int:
    """Return ``amount * percentage / 100`` rounded half-up to whole minor units."""

    exact = Decimal(amount) * percentage / Decimal(100)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_decimal(raw: Any) -> Decimal | None:
    """Best-effort numeric coercion for user-entered split values.

    Returns ``None`` for anything that is not a finite number (including
    booleans, blank strings, ``NaN`` and infinities).
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        raw = repr(raw)
    try:
        d = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _mmddyyyy(s: str) -> date | None:
    # US-style exports may carry a time after the date: "MM/DD/YYYY HH:MM"
    first = s.split()[0]
    try:
        return datetime.strptime(first, "%m/%d/%Y").date()
    except ValueError:
        return None


def parse_date(raw: Any) -> date | None:
    """Parse a calendar date from a date, datetime or text.

    Accepts ``YYYY-MM-DD``, ISO timestamps (``YYYY-MM-DDTHH:MM:SS[.fff]``
    with an optional ``Z``/offset) and ``MM/DD/YYYY`` with an optional
    trailing time. Aware timestamps are converted to UTC before taking the
    date. Returns ``None`` when nothing parses.
    """

    if raw is None:
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        return raw
    else:
        s = str(raw).strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            pass
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return _mmddyyyy(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.date()


def normalize_date(raw: Any) -> str:
    """Return ``raw`` as ``YYYY-MM-DD``; raises ``ValueError`` when unparseable."""

    d = parse_date(raw)
    if d is None:
        raise ValueError(f"invalid date: {raw!r}")
    return d.isoformat()


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


def first_name(full_name: str | None) -> str:
    """Return the part of ``full_name`` before the first space."""

    if not full_name:
        return ""
    return full_name.strip().split(" ", 1)[0]


__all__ = [
    "AMOUNT_RE",
    "DEFAULT_CURRENCY_EXPONENT",
    "currency_exponent",
    "currency_symbol",
    "first_name",
    "format_amount",
    "fractional_digits",
    "normalize_date",
    "parse_amount",
    "parse_date",
    "percent_of",
    "to_decimal",
    "to_minor_units",
]
