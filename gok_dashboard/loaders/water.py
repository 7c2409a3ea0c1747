"""
Loader for the water consumption workbook.

Source: water_consumption.xlsx, first sheet.

Structure:
    Row 0: month labels ("Январь 2026 г."), one per month group
    Row 1: column headers; each month group starts with a "Дата" column
           followed by meter reading, daily/hourly actual and nominal columns
    Row 2 onward: one row per day, date as an Excel serial number

Month groups sit side by side and may overlap at month boundaries, so the
same date can appear in two groups.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..records import ParseResult, WaterDailyRecord
from .utils import (
    cell,
    clean_text,
    excel_serial_to_date,
    is_number,
    open_workbook,
    parse_loose_numeric,
    sheet_grid,
)

logger = logging.getLogger(__name__)

_DATE_HEADER = "дата"
_FIRST_DATA_ROW = 2


@dataclass(frozen=True)
class MonthColumnGroup:
    month_label: str
    date_col: int
    meter_col: int | None = None
    daily_col: int | None = None
    hourly_col: int | None = None
    nominal_col: int | None = None


def discover_month_groups(month_row: list[Any], header_row: list[Any]) -> list[MonthColumnGroup]:
    """Discovery pass: one column group per "Дата" header in row 1.

    A group is kept only if it has a meter-reading or daily-actual column.
    """
    groups = []

    for col, header in enumerate(header_row):
        if clean_text(header).lower() != _DATE_HEADER:
            continue

        # Nearest month label at or left of the date column
        month_label = ""
        for mc in range(min(col, len(month_row) - 1), -1, -1):
            label = clean_text(month_row[mc])
            if label and ("г" in label or "20" in label):
                month_label = label
                break

        cols: dict[str, int] = {}
        for sc in range(col + 1, len(header_row)):
            sub = clean_text(header_row[sc]).lower()
            if sub == _DATE_HEADER:
                break  # next month group

            if "показание" in sub or "счетч" in sub:
                cols["meter_col"] = sc
            elif ("расход" in sub and "сутки" in sub) or "фактический расход" in sub:
                cols["daily_col"] = sc
            elif "расход" in sub and "час" in sub:
                cols["hourly_col"] = sc
            elif "номинальн" in sub:
                cols["nominal_col"] = sc

        if "meter_col" in cols or "daily_col" in cols:
            groups.append(MonthColumnGroup(month_label or "Unknown", col, **cols))
        else:
            logger.warning("Date column %d has no meter or daily column, skipped", col)

    return groups


def extract_group_rows(group: MonthColumnGroup, rows: list[list[Any]]) -> list[WaterDailyRecord]:
    """Extraction pass for one month group over the data rows."""
    records = []
    for row in rows:
        date_value = cell(row, group.date_col)
        if not is_number(date_value) or not date_value:
            continue

        meter = _field(row, group.meter_col)
        daily = _field(row, group.daily_col)
        hourly = _field(row, group.hourly_col)
        nominal = _field(row, group.nominal_col)

        if meter is None and daily is None and hourly is None:
            continue

        records.append(WaterDailyRecord(
            date=excel_serial_to_date(date_value),
            meter_reading=meter,
            actual_daily=daily,
            actual_hourly=hourly,
            nominal_daily=nominal,
            month_label=group.month_label,
        ))
    return records


def _field(row: list[Any], col: int | None) -> float | None:
    if col is None:
        return None
    return parse_loose_numeric(cell(row, col))


def merge_by_date(records: list[WaterDailyRecord]) -> list[WaterDailyRecord]:
    """One record per date; the first non-null value of each field wins.

    A later scan only fills gaps left by an earlier one.
    """
    merged: dict[date, WaterDailyRecord] = {}
    for record in records:
        existing = merged.get(record.date)
        if existing is None:
            merged[record.date] = record
            continue
        merged[record.date] = WaterDailyRecord(
            date=record.date,
            meter_reading=_first(existing.meter_reading, record.meter_reading),
            actual_daily=_first(existing.actual_daily, record.actual_daily),
            actual_hourly=_first(existing.actual_hourly, record.actual_hourly),
            nominal_daily=_first(existing.nominal_daily, record.nominal_daily),
            month_label=_first(existing.month_label, record.month_label),
        )
    return list(merged.values())


def _first(a, b):
    return a if a is not None else b


def parse_water(source) -> ParseResult[WaterDailyRecord]:
    """Load daily water consumption.

    Assumptions
    -----------
    - Only the first sheet carries data.
    - Dates are Excel serial numbers; rows with text dates are skipped.
    - Rows with no meter, daily or hourly value are blank and skipped.

    Returns
    -------
    ParseResult with one WaterDailyRecord per unique date. rows_parsed
    counts the rows read before merging duplicates.
    """
    wb = open_workbook(source)
    ws = wb.worksheets[0]
    grid = sheet_grid(ws)
    wb.close()

    result: ParseResult[WaterDailyRecord] = ParseResult()

    if len(grid) < 3:
        logger.warning("Water sheet '%s' has insufficient data", ws.title)
        result.warn("Sheet has insufficient data", sheet=ws.title)
        return result

    groups = discover_month_groups(grid[0], grid[1])
    if not groups:
        logger.warning("No month groups found on water sheet '%s'", ws.title)

    scanned: list[WaterDailyRecord] = []
    for group in groups:
        scanned.extend(extract_group_rows(group, grid[_FIRST_DATA_ROW:]))

    result.data = merge_by_date(scanned)
    result.rows_parsed = len(scanned)

    logger.info(
        "Loaded %d water rows (%d unique dates) from %d month groups",
        len(scanned), len(result.data), len(groups),
    )
    return result
