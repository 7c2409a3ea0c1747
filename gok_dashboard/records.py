"""
Record types produced by the workbook loaders and consumed downstream.

Parser outputs are frozen dataclasses. HazardRecord is the one mutable type:
its status (and, when explicitly patched, description/severity) changes after
creation.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Generic, TypeVar

import pandas as pd

from .config import HAZARD_SOURCE_TYPES, HAZARD_STATUSES, SEVERITY_ORDER

T = TypeVar("T")


@dataclass(frozen=True)
class ProductivityRecord:
    date: date
    shift_number: int
    hour: int
    mill_line: int
    value_pct: float | None

    @property
    def key(self) -> tuple[date, int, int, int]:
        return (self.date, self.shift_number, self.hour, self.mill_line)


@dataclass(frozen=True)
class MillThroughputRecord:
    date: date
    shift_number: int
    value_tph: float | None


@dataclass(frozen=True)
class ShiftDowntimeRecord:
    date: date
    shift_number: int
    equipment: str
    time_from: str | None
    time_to: str | None
    minutes: float | None
    reason_text: str | None


@dataclass(frozen=True)
class WaterDailyRecord:
    date: date
    meter_reading: float | None
    actual_daily: float | None
    actual_hourly: float | None
    nominal_daily: float | None
    month_label: str | None


@dataclass(frozen=True)
class DowntimeDailyRecord:
    date: date
    equipment: str
    reason_text: str | None
    minutes: float | None
    classification: str | None  # M | E | T | P | None


@dataclass(frozen=True)
class DetectedHazard:
    description: str
    severity: str
    matched_keyword: str


@dataclass
class HazardRecord:
    """Persisted hazard.

    source_ref_id is a weak back-reference to the downtime row the hazard was
    detected in; manual and photo hazards carry None.
    """
    id: str
    date: date
    source_type: str
    description: str
    severity: str
    status: str = "open"
    tags: str | None = None
    source_ref_id: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.source_type not in HAZARD_SOURCE_TYPES:
            raise ValueError(f"Unknown hazard source type: {self.source_type!r}")
        _check_severity(self.severity)
        _check_status(self.status)

    def set_status(self, status: str) -> None:
        _check_status(status)
        self.status = status
        self.updated_at = datetime.now()

    def patch(
        self,
        status: str | None = None,
        severity: str | None = None,
        description: str | None = None,
    ) -> None:
        """Apply an explicit edit; empty values leave the field unchanged."""
        if status:
            _check_status(status)
            self.status = status
        if severity:
            _check_severity(severity)
            self.severity = severity
        if description:
            self.description = description
        self.updated_at = datetime.now()


def _check_status(status: str) -> None:
    if status not in HAZARD_STATUSES:
        raise ValueError(f"Invalid hazard status: {status!r}")


def _check_severity(severity: str) -> None:
    if severity not in SEVERITY_ORDER:
        raise ValueError(f"Invalid hazard severity: {severity!r}")


@dataclass(frozen=True)
class ParseWarning:
    message: str
    sheet: str | None = None
    row: int | None = None
    column: int | None = None


@dataclass
class ParseResult(Generic[T]):
    data: list[T] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    rows_parsed: int = 0

    def add(self, record: T) -> None:
        self.data.append(record)
        self.rows_parsed += 1

    def warn(self, message: str, sheet: str | None = None,
             row: int | None = None, column: int | None = None) -> None:
        self.warnings.append(ParseWarning(message, sheet=sheet, row=row, column=column))

    def to_frame(self) -> pd.DataFrame:
        """Records as a DataFrame, one column per dataclass field."""
        return pd.DataFrame([asdict(r) for r in self.data])


@dataclass
class ShiftJournalResult:
    productivity: ParseResult[ProductivityRecord]
    mill_throughput: ParseResult[MillThroughputRecord]
    downtime: ParseResult[ShiftDowntimeRecord]


def dedupe_productivity(records: list[ProductivityRecord]) -> list[ProductivityRecord]:
    """Collapse duplicates on (date, shift, hour, mill line); last one wins."""
    by_key: dict[tuple, ProductivityRecord] = {}
    for record in records:
        by_key[record.key] = record
    return list(by_key.values())
