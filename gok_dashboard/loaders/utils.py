"""
Shared utilities for workbook ingestion: workbook access, Excel serial
dates and times, loose numeric parsing, Russian date and label parsing.
"""

import io
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any, BinaryIO

import openpyxl
from openpyxl.utils.datetime import to_excel

from ..config import RUSSIAN_MONTH_STEMS

logger = logging.getLogger(__name__)

EXCEL_EPOCH = date(1899, 12, 30)

_RUSSIAN_DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{2,4})")
_SHEET_LABEL_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{2,4})см(\d)", re.IGNORECASE)
_YEAR_RE = re.compile(r"(\d{4})")
_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Workbook access
# ---------------------------------------------------------------------------

def open_workbook(source: str | bytes | BinaryIO):
    """Open a workbook from a path, raw bytes, or a binary file object.

    Cached formula results are read (data_only=True). Failures propagate:
    a workbook that cannot be opened aborts the whole upload.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        return openpyxl.load_workbook(source, data_only=True)
    except Exception:
        logger.exception("Failed to open workbook")
        raise


def sheet_grid(ws) -> list[list[Any]]:
    """Materialise a worksheet as a list of rows.

    Empty cells become "". Date and time typed cells are turned back into
    Excel serials/day fractions so every loader sees raw spreadsheet values.
    """
    grid = []
    for row in ws.iter_rows(values_only=True):
        grid.append([_raw_cell(v) for v in row])
    # Trailing empty rows carry nothing
    while grid and all(v == "" for v in grid[-1]):
        grid.pop()
    return grid


def _raw_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (datetime, date, time)):
        return to_excel(value)
    if isinstance(value, timedelta):
        return value.total_seconds() / 86400.0
    return value


def cell(row: list[Any] | None, idx: int) -> Any:
    """Cell value by 0-based index; "" past the end of a short row."""
    if row is None or idx >= len(row):
        return ""
    return row[idx]


def is_number(val: Any) -> bool:
    """True for real numeric cell values (bools excluded)."""
    return isinstance(val, (int, float)) and not isinstance(val, bool)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def excel_serial_to_date(serial: float) -> date:
    """Convert an Excel serial number to a calendar date.

    Serials count days from the 1899-12-30 epoch; the fractional part is a
    time of day and is dropped.
    """
    return EXCEL_EPOCH + timedelta(days=math.floor(serial))


def excel_fraction_to_time(fraction: Any) -> str:
    """Convert an Excel day fraction to "HH:MM" (0.5 -> "12:00").

    Rounds to the nearest minute; hours wrap at 24. Returns "" for
    non-numeric input.
    """
    value = parse_loose_numeric(fraction)
    if value is None:
        return ""
    total_minutes = int(round(value * 24 * 60))
    hours = (total_minutes // 60) % 24
    minutes = total_minutes % 60
    return f"{hours:02d}:{minutes:02d}"


def parse_loose_numeric(val: Any) -> float | None:
    """Coerce a cell value to float, returning None for non-numeric values.

    Empty strings, spreadsheet error markers ("#DIV/0!", "#REF!", ...),
    "NaN", "Infinity" and anything not finite are rejected.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, str):
        stripped = val.strip()
        if not stripped or val.startswith("#") or val in ("NaN", "Infinity"):
            return None
        try:
            num = float(stripped)
        except ValueError:
            return None
    else:
        try:
            num = float(val)
        except (ValueError, TypeError):
            return None
    if not math.isfinite(num):
        return None
    return num


def clean_text(val: Any) -> str:
    """Trim and collapse whitespace runs; None becomes ""."""
    if val is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(val).strip())


def parse_russian_date(text: Any) -> date | None:
    """Parse "D.M.Y" ("01.01.2026", "1.1.26") to a date.

    Two-digit years pivot at 50: 26 -> 2026, 87 -> 1987.
    """
    if not text:
        return None
    match = _RUSSIAN_DATE_RE.search(str(text))
    if not match:
        return None

    day, month, year = (int(g) for g in match.groups())
    if year < 100:
        year += 2000 if year < 50 else 1900
    try:
        return date(year, month, day)
    except ValueError:
        logger.warning("Invalid calendar date: %s", text)
        return None


def parse_sheet_label(name: str) -> tuple[date, int] | None:
    """Extract (date, shift number) from a sheet name like "01.01.26см1"."""
    match = _SHEET_LABEL_RE.search(name)
    if not match:
        return None

    day, month, year, shift = (int(g) for g in match.groups())
    if year < 100:
        year += 2000
    try:
        return date(year, month, day), shift
    except ValueError:
        logger.warning("Sheet %r has an invalid calendar date", name)
        return None


def parse_month_year(text: str) -> tuple[int, int] | None:
    """Return (month, year) from a label such as "Январь 2026".

    Month names are matched by stem so declined forms work. The year falls
    back to the current year when no 4-digit number is present.
    """
    lower = str(text).lower()

    month = None
    for stem, number in RUSSIAN_MONTH_STEMS.items():
        if stem in lower:
            month = number
            break
    if month is None:
        return None

    year_match = _YEAR_RE.search(lower)
    year = int(year_match.group(1)) if year_match else date.today().year
    return month, year
