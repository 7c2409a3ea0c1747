"""
Loader for the downtime history workbook.

Source: downtime.xlsx, one sheet per month, named after the month
("Январь 2026").

Structure per sheet:
    Row 0: section headers ("Причины простоя", "Время простоя, мин",
           "Классификация простоя")
    Row 1: "Дата" followed by the equipment headers of each section
    Row 2 onward: a row with a date starts a new day; rows without a date
           continue the previous day (long reasons wrap over several rows)

Columns: [Дата | reasons x6 | minutes x6 | classification x6].
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..config import (
    CLASSIFICATION_CODES,
    CLASSIFICATION_START_COL,
    EQUIPMENT_COLUMNS,
    MINUTES_START_COL,
    REASON_START_COL,
)
from ..records import DowntimeDailyRecord, ParseResult
from .utils import (
    cell,
    clean_text,
    excel_serial_to_date,
    is_number,
    open_workbook,
    parse_loose_numeric,
    parse_month_year,
    sheet_grid,
)

logger = logging.getLogger(__name__)

_FIRST_DATA_ROW = 2


@dataclass(frozen=True)
class DowntimeLayout:
    date_col: int
    equipment: tuple[str, ...]
    reason_start: int = REASON_START_COL
    minutes_start: int = MINUTES_START_COL
    class_start: int = CLASSIFICATION_START_COL


def discover_downtime_layout(header_row: list[Any]) -> DowntimeLayout:
    """Discovery pass: locate the date column; equipment zones are fixed."""
    date_col = 0
    for col, header in enumerate(header_row):
        if clean_text(header).lower() == "дата":
            date_col = col
            break
    return DowntimeLayout(date_col=date_col, equipment=tuple(EQUIPMENT_COLUMNS))


def normalise_classification(raw: Any) -> str | None:
    """Map a Cyrillic or Latin М/Э/Т/П code to M/E/T/P; anything else to None."""
    return CLASSIFICATION_CODES.get(clean_text(raw).upper())


@dataclass
class _Pending:
    date: date
    equipment: str
    reason_text: str | None
    minutes: float | None
    classification: str | None

    @property
    def emittable(self) -> bool:
        # A classification on its own does not make a downtime record
        return bool(self.reason_text) or bool(self.minutes)

    def freeze(self) -> DowntimeDailyRecord:
        return DowntimeDailyRecord(
            self.date, self.equipment, self.reason_text, self.minutes, self.classification,
        )


def extract_downtime_rows(
    layout: DowntimeLayout, rows: list[list[Any]]
) -> list[DowntimeDailyRecord]:
    """Extraction pass over the data rows of one sheet.

    Pending records are keyed by (date, equipment). A new date cell flushes
    every pending record of the previous date, including slots that have not
    seen a continuation row yet.
    """
    records: list[DowntimeDailyRecord] = []
    pending: dict[tuple[date, str], _Pending] = {}
    last_date: date | None = None

    def flush() -> None:
        records.extend(p.freeze() for p in pending.values() if p.emittable)
        pending.clear()

    for row in rows:
        if len(row) < 2:
            continue

        date_value = cell(row, layout.date_col)
        row_date = None
        if is_number(date_value) and date_value:
            row_date = excel_serial_to_date(date_value)
            last_date = row_date
            flush()

        current = row_date or last_date
        if current is None:
            continue

        for idx, equipment in enumerate(layout.equipment):
            reason = clean_text(cell(row, layout.reason_start + idx))
            minutes = parse_loose_numeric(cell(row, layout.minutes_start + idx))
            classification = normalise_classification(cell(row, layout.class_start + idx))

            if not reason and minutes is None and classification is None:
                continue

            key = (current, equipment)
            if row_date is not None:
                pending[key] = _Pending(current, equipment, reason or None, minutes, classification)
                continue

            existing = pending.get(key)
            if existing is not None:
                if reason:
                    existing.reason_text = (
                        f"{existing.reason_text}\n{reason}" if existing.reason_text else reason
                    )
                if minutes is not None:
                    existing.minutes = minutes
                if classification is not None:
                    existing.classification = classification
            elif reason or minutes is not None:
                pending[key] = _Pending(current, equipment, reason or None, minutes, classification)

    flush()
    return records


def parse_downtime_history(source) -> ParseResult[DowntimeDailyRecord]:
    """Load daily downtime per equipment from every month sheet.

    Assumptions
    -----------
    - Sheet names carry the month ("Январь 2026"); unrecognised names are
      warned about but the sheet is still read.
    - Six equipment slots in the order of config.EQUIPMENT_COLUMNS.
    - Classification codes are М/Э/Т/П (or Latin M/E/T/P).

    Returns
    -------
    ParseResult of DowntimeDailyRecord.
    """
    wb = open_workbook(source)
    result: ParseResult[DowntimeDailyRecord] = ParseResult()

    for ws in wb.worksheets:
        if parse_month_year(ws.title) is None:
            logger.warning("Could not parse month/year from sheet name '%s'", ws.title)
            result.warn("Could not parse month/year from sheet name", sheet=ws.title)

        grid = sheet_grid(ws)
        if len(grid) < 3:
            continue

        layout = discover_downtime_layout(grid[1])
        for record in extract_downtime_rows(layout, grid[_FIRST_DATA_ROW:]):
            result.add(record)

    wb.close()

    logger.info("Loaded %d downtime history rows", result.rows_parsed)
    return result
