"""
Loader for the shift technical journal.

Source: technical_journal.xlsx, one sheet per shift, named "dd.mm.yyсмN"
(e.g. "01.01.26см1"). Sheets with other names (summaries, charts) are
ignored.

Structure per shift sheet:
    U17:            total mill throughput for the shift (t/h)
    Rows 4-16:      hourly productivity, col A = hour, cols B-F = mills 1-5 (%)
    "Простой мельниц" row: header of the mill downtime section
    Downtime rows:  col A = "№N" equipment, C/D = from/to, F = minutes,
                    H = reason; rows without "№" continue the reason text
    "Остаток"/"Загрузка" row: end of the downtime section
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..config import (
    AVERAGE_ROW_LABEL,
    DOWNTIME_FROM_COL,
    DOWNTIME_MINUTES_COL,
    DOWNTIME_REASON_COL,
    DOWNTIME_SECTION_MARKER,
    DOWNTIME_SECTION_TERMINATORS,
    DOWNTIME_TO_COL,
    EQUIPMENT_ROW_PREFIX,
    MILL_LINES,
    PRODUCTIVITY_FIRST_ROW,
    PRODUCTIVITY_LAST_ROW,
    THROUGHPUT_CELL,
    THROUGHPUT_COLUMN,
    THROUGHPUT_ROW,
)
from ..records import (
    MillThroughputRecord,
    ParseResult,
    ProductivityRecord,
    ShiftDowntimeRecord,
    ShiftJournalResult,
)
from .utils import (
    cell,
    clean_text,
    excel_fraction_to_time,
    is_number,
    open_workbook,
    parse_loose_numeric,
    parse_sheet_label,
    sheet_grid,
)

logger = logging.getLogger(__name__)

_HOURS_RE = re.compile(r"(\d+)\s*час", re.IGNORECASE)


@dataclass(frozen=True)
class ShiftSheetLayout:
    """Where the data lives on one shift sheet."""
    sheet: str
    date: date
    shift_number: int
    downtime_start: int | None  # 0-based first row after the section header


def locate_shift_layout(sheet_name: str, grid: list[list[Any]]) -> ShiftSheetLayout | None:
    """Discovery pass: None for non-shift sheets."""
    label = parse_sheet_label(sheet_name)
    if label is None:
        return None
    shift_date, shift_number = label

    downtime_start = None
    for row_idx, row in enumerate(grid):
        if any(DOWNTIME_SECTION_MARKER in str(v) for v in row):
            downtime_start = row_idx + 1
            break

    return ShiftSheetLayout(sheet_name, shift_date, shift_number, downtime_start)


def parse_shift_journal(source) -> ShiftJournalResult:
    """Load productivity, mill throughput and downtime from a shift journal.

    Parameters
    ----------
    source : Path, raw bytes, or binary file object of the workbook.

    Returns
    -------
    ShiftJournalResult with three independent ParseResult streams.
    """
    wb = open_workbook(source)

    result = ShiftJournalResult(
        productivity=ParseResult(),
        mill_throughput=ParseResult(),
        downtime=ParseResult(),
    )

    for ws in wb.worksheets:
        grid = sheet_grid(ws)
        layout = locate_shift_layout(ws.title, grid)
        if layout is None:
            continue

        throughput_raw = ws[THROUGHPUT_CELL].value
        _extract_throughput(layout, throughput_raw, result.mill_throughput)
        _extract_productivity(layout, grid, result.productivity)
        if layout.downtime_start is not None:
            _extract_downtime(layout, grid, result.downtime)

    wb.close()

    logger.info(
        "Loaded shift journal: %d productivity, %d throughput, %d downtime rows",
        result.productivity.rows_parsed,
        result.mill_throughput.rows_parsed,
        result.downtime.rows_parsed,
    )
    return result


def _extract_throughput(
    layout: ShiftSheetLayout, raw: Any, out: ParseResult[MillThroughputRecord]
) -> None:
    present = raw is not None and raw != ""
    value = parse_loose_numeric(raw)
    if present and value is None:
        out.warn(
            f"Invalid mill productivity value: {raw}",
            sheet=layout.sheet, row=THROUGHPUT_ROW, column=THROUGHPUT_COLUMN,
        )
    if present or value is not None:
        out.add(MillThroughputRecord(layout.date, layout.shift_number, value))


def _extract_productivity(
    layout: ShiftSheetLayout,
    grid: list[list[Any]],
    out: ParseResult[ProductivityRecord],
) -> None:
    last_row = min(PRODUCTIVITY_LAST_ROW, len(grid) - 1)
    for row_idx in range(PRODUCTIVITY_FIRST_ROW, last_row + 1):
        row = grid[row_idx]
        if len(row) < 2:
            continue

        hour_raw = row[0]
        if isinstance(hour_raw, str) and clean_text(hour_raw).lower() == AVERAGE_ROW_LABEL:
            continue

        hour_value = parse_loose_numeric(hour_raw)
        if hour_value is None or hour_value < 0 or hour_value > 24:
            continue
        # Fractional labels like 8.5 are not hour rows
        if hour_value != int(hour_value):
            continue
        hour = int(hour_value) % 24

        for mill_line in range(1, MILL_LINES + 1):
            raw = cell(row, mill_line)
            value = parse_loose_numeric(raw)
            if value is not None:
                out.add(ProductivityRecord(
                    layout.date, layout.shift_number, hour, mill_line, value,
                ))
            elif raw and str(raw).startswith("#"):
                out.warn(
                    f"Formula error: {raw}",
                    sheet=layout.sheet, row=row_idx + 1, column=mill_line + 1,
                )


class _DowntimeSection:
    """Accumulator for the downtime section: idle, or one open record.

    A "№" row opens a record (flushing the previous one), continuation rows
    append reason lines, and a terminator row or the sheet end flushes.
    """

    def __init__(self, layout: ShiftSheetLayout, out: ParseResult[ShiftDowntimeRecord]):
        self.layout = layout
        self.out = out
        self.equipment: str | None = None
        self.time_from: str | None = None
        self.time_to: str | None = None
        self.minutes: float | None = None
        self.reason = ""

    @property
    def is_open(self) -> bool:
        return self.equipment is not None

    def open(self, equipment: str, row: list[Any]) -> None:
        self.flush()
        self.equipment = equipment
        self.time_from = _time_cell(cell(row, DOWNTIME_FROM_COL))
        self.time_to = _time_cell(cell(row, DOWNTIME_TO_COL))
        self.minutes = _minutes_cell(cell(row, DOWNTIME_MINUTES_COL))
        self.reason = clean_text(cell(row, DOWNTIME_REASON_COL))

    def append(self, row: list[Any]) -> None:
        text = clean_text(cell(row, DOWNTIME_REASON_COL))
        if text:
            self.reason += "\n" + text

    def flush(self) -> None:
        # Zero minutes with no reason is a blank template row
        if self.is_open and (self.reason or self.minutes):
            self.out.add(ShiftDowntimeRecord(
                date=self.layout.date,
                shift_number=self.layout.shift_number,
                equipment=self.equipment,
                time_from=self.time_from,
                time_to=self.time_to,
                minutes=self.minutes,
                reason_text=self.reason.strip() or None,
            ))
        self.equipment = None
        self.reason = ""


def _extract_downtime(
    layout: ShiftSheetLayout,
    grid: list[list[Any]],
    out: ParseResult[ShiftDowntimeRecord],
) -> None:
    section = _DowntimeSection(layout, out)

    for row in grid[layout.downtime_start:]:
        if len(row) < 2:
            continue

        first = clean_text(row[0])
        if any(t in first for t in DOWNTIME_SECTION_TERMINATORS):
            break

        if first.startswith(EQUIPMENT_ROW_PREFIX):
            section.open(first, row)
        elif section.is_open:
            section.append(row)

    section.flush()


def _time_cell(raw: Any) -> str | None:
    if is_number(raw) and 0 < raw < 1:
        return excel_fraction_to_time(raw)
    return clean_text(raw) or None


def _minutes_cell(raw: Any) -> float | None:
    """Minutes as a number, or "12 часов" style text converted to minutes."""
    match = _HOURS_RE.search(clean_text(raw))
    if match:
        return float(int(match.group(1)) * 60)
    return parse_loose_numeric(raw)
