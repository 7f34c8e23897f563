"""Date normalisation for report payloads.

The report store emits dates in three shapes: ISO ``"YYYY-MM-DD"`` strings,
compact ``"YYYYMMDD"`` strings and ``[year, month, day]`` arrays (Java
``LocalDate`` serialised without a format). Every caller goes through
:func:`normalize`, which returns a :class:`DateResult` instead of raising so
the caller can pick the failure policy explicitly.
"""
from __future__ import annotations

import logging
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import pandas as pd

from .errors import DateNormalizationError

logger = logging.getLogger(__name__)

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
COMPACT_DATE_RE = re.compile(r"^\d{8}$")
RELATIVE_KEYWORDS = frozenset({"now", "today", "tomorrow", "yesterday"})

DISPLAY_STYLES = ("MM/DD/YYYY", "DD-MM-YYYY", "YYYY-MM-DD", "long")

_MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class DateResult:
    """Outcome of :func:`normalize`: either ``value`` or ``error`` is set."""

    value: Optional[date] = None
    error: Optional[DateNormalizationError] = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    def unwrap(self) -> date:
        if self.value is None:
            raise self.error or DateNormalizationError(None, "empty result")
        return self.value


def _failure(value: object, reason: str) -> DateResult:
    return DateResult(error=DateNormalizationError(value, reason))


def _is_int(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _from_parts(raw: object, year: int, month: int, day: int) -> DateResult:
    if year <= 1900 or not 1 <= month <= 12 or not 1 <= day <= 31:
        return _failure(raw, f"components out of range: {year}-{month}-{day}")
    try:
        return DateResult(value=date(year, month, day))
    except ValueError as exc:
        return _failure(raw, str(exc))


def _parse_free_text(raw: str) -> DateResult:
    # pandas resolves "now"/"today"/"tomorrow" against the clock; a stored
    # date always carries a day number.
    if raw.casefold() in RELATIVE_KEYWORDS or not any(ch.isdigit() for ch in raw):
        return _failure(raw, "no calendar date in text")
    try:
        parsed = pd.to_datetime(raw, errors="coerce", dayfirst=False)
    except (ValueError, TypeError, OverflowError):
        return _failure(raw, "unparseable text")
    if parsed is None or pd.isna(parsed):
        return _failure(raw, "unparseable text")
    parsed = pd.Timestamp(parsed)
    if parsed.year <= 1900:
        return _failure(raw, f"year {parsed.year} out of range")
    return DateResult(value=parsed.date())


def normalize(value: object) -> DateResult:
    """Convert any accepted date encoding into a ``datetime.date``."""

    if value is None:
        return _failure(value, "no value")
    if isinstance(value, datetime):
        return DateResult(value=value.date())
    if isinstance(value, date):
        return DateResult(value=value)
    if isinstance(value, (list, tuple)):
        if len(value) != 3 or not all(_is_int(part) for part in value):
            return _failure(value, "expected [year, month, day]")
        year, month, day = (int(part) for part in value)
        return _from_parts(value, year, month, day)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return _failure(value, "empty string")
        if ISO_DATE_RE.match(text):
            return _from_parts(value, int(text[:4]), int(text[5:7]), int(text[8:10]))
        if COMPACT_DATE_RE.match(text):
            return _from_parts(value, int(text[:4]), int(text[4:6]), int(text[6:8]))
        return _parse_free_text(text)
    return _failure(value, f"unsupported type {type(value).__name__}")


def coerce_date(value: object, policy: str = "reject") -> date:
    """Normalize ``value`` and apply the caller's failure ``policy``.

    ``"reject"`` raises :class:`DateNormalizationError`. ``"today"`` keeps the
    legacy behaviour of substituting the current date and logs a warning.
    """

    result = normalize(value)
    if result.ok:
        return result.unwrap()
    if policy == "today":
        logger.warning("Substituting today's date for unparseable value %r", value)
        return date.today()
    raise result.error


def to_iso(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def to_display(value: date, style: str = "MM/DD/YYYY", locale: str = "en-US") -> str:
    if style == "MM/DD/YYYY":
        return f"{value.month:02d}/{value.day:02d}/{value.year:04d}"
    if style == "DD-MM-YYYY":
        return f"{value.day:02d}-{value.month:02d}-{value.year:04d}"
    if style == "YYYY-MM-DD":
        return to_iso(value)
    if style == "long":
        weekday = _DAY_NAMES[value.weekday()]
        month = _MONTH_NAMES[value.month - 1]
        if locale.lower().replace("_", "-") == "en-us":
            return f"{weekday}, {month} {value.day}, {value.year}"
        return f"{weekday}, {value.day} {month} {value.year}"
    raise ValueError(f"Unknown display style {style!r}; choose one of {DISPLAY_STYLES}")
