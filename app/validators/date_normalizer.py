"""
app/validators/date_normalizer.py

Invoice date normalization into canonical ``YYYY-MM-DD`` day keys.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta

from app.domain.invoice_aggregate import CellValue, EmptyCell, NumberCell, TextCell, cell_text

# Last serial a 1900-system workbook can express (9999-12-31).
MAX_SPREADSHEET_SERIAL = 2958465
# Day 60 is the 1900-02-29 that the 1900 date system counts but the calendar lacks.
PHANTOM_LEAP_SERIAL = 60
# Days between the spreadsheet epoch (1899-12-30) and 1970-01-01.
SPREADSHEET_EPOCH_OFFSET_DAYS = 25569
SECONDS_PER_DAY = 86400

_UNIX_EPOCH = datetime(1970, 1, 1)
_SERIAL_BASE = date(1899, 12, 30)
_SERIAL_BASE_BEFORE_LEAP = date(1899, 12, 31)

TEXT_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%y %H:%M",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a %b %d %Y",
)

_YMD_PATTERN = re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})")


def format_day(year: int, month: int, day: int) -> str:
    """
    Render a zero-padded day key.
    """

    return f"{year:04d}-{month:02d}-{day:02d}"


class DateNormalizer:
    """
    Converts one raw cell into a canonical day key, or ``None``.

    Resolution order, first success wins:

    1. empty cell -> ``None``
    2. number -> 1900 date-system serial, then the Unix-epoch offset fallback
    3. general date/time text parse
    4. ``YYYY[/-]M[M][/-]D[D]`` pattern anywhere in the text
    """

    def __init__(self, *, text_formats: tuple[str, ...] = TEXT_DATE_FORMATS) -> None:
        self._text_formats = text_formats

    def normalize(self, cell: CellValue) -> str | None:
        if isinstance(cell, EmptyCell):
            return None
        if isinstance(cell, TextCell) and cell.value.strip() == "":
            return None

        if isinstance(cell, NumberCell):
            day = self.from_serial(cell.value)
            if day is None:
                day = self.from_epoch_offset(cell.value)
            if day is not None:
                return day

        raw = cell_text(cell).strip()
        day = self.from_text(raw)
        if day is not None:
            return day
        return self.from_pattern(raw)

    # ------------------------------------------------------------------
    # Numeric paths
    # ------------------------------------------------------------------

    @staticmethod
    def from_serial(value: int | float) -> str | None:
        """
        Decompose a 1900 date-system serial into year/month/day.
        """

        if not math.isfinite(value) or value < 0 or value > MAX_SPREADSHEET_SERIAL:
            return None

        serial = int(value)
        seconds = (value - serial) * SECONDS_PER_DAY
        whole_seconds = math.floor(seconds)
        if seconds - whole_seconds > 0.9999 and whole_seconds + 1 == SECONDS_PER_DAY:
            serial += 1

        if serial == 0:
            return None
        if serial == PHANTOM_LEAP_SERIAL:
            return format_day(1900, 2, 29)

        base = _SERIAL_BASE_BEFORE_LEAP if serial < PHANTOM_LEAP_SERIAL else _SERIAL_BASE
        try:
            resolved = base + timedelta(days=serial)
        except OverflowError:
            return None
        return format_day(resolved.year, resolved.month, resolved.day)

    @staticmethod
    def from_epoch_offset(value: int | float) -> str | None:
        """
        Treat the serial as days since 1899-12-30 and resolve it in UTC.
        """

        if not math.isfinite(value):
            return None
        try:
            milliseconds = round((value - SPREADSHEET_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY * 1000)
            resolved = _UNIX_EPOCH + timedelta(milliseconds=milliseconds)
        except (OverflowError, ValueError):
            # Finite serials can still overflow the product or the calendar.
            return None
        return format_day(resolved.year, resolved.month, resolved.day)

    # ------------------------------------------------------------------
    # Text paths
    # ------------------------------------------------------------------

    def from_text(self, raw: str) -> str | None:
        if not raw:
            return None

        normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
            return format_day(parsed.year, parsed.month, parsed.day)
        except ValueError:
            pass

        for fmt in self._text_formats:
            try:
                parsed = datetime.strptime(raw, fmt)
            except ValueError:
                continue
            return format_day(parsed.year, parsed.month, parsed.day)
        return None

    @staticmethod
    def from_pattern(raw: str) -> str | None:
        match = _YMD_PATTERN.search(raw)
        if match is None:
            return None
        year, month, day = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"


_DEFAULT_NORMALIZER = DateNormalizer()


def normalize_invoice_date(cell: CellValue) -> str | None:
    """
    Normalize one invoice date cell with the default fallback chain.
    """

    return _DEFAULT_NORMALIZER.normalize(cell)
