"""
Upload ingestion: parse a workbook, replace the affected days, store the
new records and register the hazards found in their reason text.

Re-importing a workbook is idempotent. Before inserting, every stored record
(and every hazard derived from one) on the dates present in the upload is
deleted. Manual and photo hazards are never touched by an import.

RecordStore is an in-memory implementation of the persistence contract
(upsert by natural key, create-and-link, delete by date set). A database
backed store only needs the same methods.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Iterator, TypeVar

from .config import DEFAULT_THRESHOLDS, UPLOAD_TYPES, HazardKeywords
from .hazards import HazardDetector, hazards_from_text, new_hazard_id
from .loaders import parse_downtime_history, parse_shift_journal, parse_water
from .photo import PhotoDetection
from .records import (
    DowntimeDailyRecord,
    HazardRecord,
    MillThroughputRecord,
    ProductivityRecord,
    ShiftDowntimeRecord,
    WaterDailyRecord,
    dedupe_productivity,
)

logger = logging.getLogger(__name__)

INSERT_CHUNK_SIZE = 500

T = TypeVar("T")


def chunked(items: list[T], size: int = INSERT_CHUNK_SIZE) -> Iterator[list[T]]:
    """Yield consecutive slices of at most `size` items."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class UploadLog:
    id: str
    type: str
    filename: str
    status: str = "processing"  # processing | completed | failed
    uploaded_at: datetime = field(default_factory=datetime.now)
    rows_parsed: int = 0
    warnings_count: int = 0
    error_message: str | None = None


@dataclass(frozen=True)
class StoredRow:
    """A created record with its store id and originating upload."""
    id: str
    record: object
    source_upload_id: str | None


@dataclass(frozen=True)
class UploadOutcome:
    success: bool
    upload_id: str | None = None
    rows_parsed: int = 0
    warnings_count: int = 0
    error: str | None = None
    details: str | None = None

    def as_dict(self) -> dict:
        if self.success:
            return {
                "success": True,
                "uploadId": self.upload_id,
                "rowsParsed": self.rows_parsed,
                "warningsCount": self.warnings_count,
            }
        return {"error": self.error, "details": self.details}


class RecordStore:
    """In-memory record store."""

    def __init__(self) -> None:
        self.uploads: dict[str, UploadLog] = {}
        self.productivity: dict[tuple, ProductivityRecord] = {}
        self.throughput: dict[tuple[date, int], MillThroughputRecord] = {}
        self.shift_downtime: dict[str, StoredRow] = {}
        self.water: dict[date, WaterDailyRecord] = {}
        self.daily_downtime: dict[str, StoredRow] = {}
        self.hazards: dict[str, HazardRecord] = {}

    # -- transactions ------------------------------------------------------

    @contextmanager
    def transaction(self):
        """Restore every table if the block raises."""
        tables = ("productivity", "throughput", "shift_downtime", "water",
                  "daily_downtime", "hazards")
        snapshot = {name: dict(getattr(self, name)) for name in tables}
        try:
            yield self
        except Exception:
            for name, saved in snapshot.items():
                setattr(self, name, saved)
            raise

    # -- uploads -----------------------------------------------------------

    def create_upload(self, upload_type: str, filename: str) -> UploadLog:
        upload = UploadLog(id=_new_id(), type=upload_type, filename=filename)
        self.uploads[upload.id] = upload
        return upload

    def complete_upload(self, upload_id: str, rows_parsed: int, warnings_count: int) -> None:
        upload = self.uploads[upload_id]
        upload.status = "completed"
        upload.rows_parsed = rows_parsed
        upload.warnings_count = warnings_count

    def fail_upload(self, upload_id: str, message: str) -> None:
        upload = self.uploads[upload_id]
        upload.status = "failed"
        upload.error_message = message

    # -- replace by date set ----------------------------------------------

    def replace_dates(self, kind: str, dates: set[date]) -> int:
        """Delete stored records of `kind` on `dates` and their derived hazards.

        Returns the number of deleted records (hazards excluded).
        """
        if kind == "tech_journal":
            removed = _drop(self.productivity, lambda r: r.date in dates)
            removed += _drop(self.shift_downtime, lambda s: s.record.date in dates)
        elif kind == "downtime":
            removed = _drop(self.daily_downtime, lambda s: s.record.date in dates)
        else:
            raise ValueError(f"Replace is not defined for {kind!r} records")

        hazards = _drop(self.hazards, lambda h: h.source_type == kind and h.date in dates)
        logger.info("Replaced %d %s records and %d hazards on %d dates",
                    removed, kind, hazards, len(dates))
        return removed

    # -- writes ------------------------------------------------------------

    def upsert_productivity(self, records: Iterable[ProductivityRecord]) -> None:
        for r in records:
            self.productivity[r.key] = r

    def upsert_throughput(self, records: Iterable[MillThroughputRecord]) -> None:
        for r in records:
            self.throughput[(r.date, r.shift_number)] = r

    def upsert_water(self, records: Iterable[WaterDailyRecord]) -> None:
        for r in records:
            self.water[r.date] = r

    def create_shift_downtime(self, record: ShiftDowntimeRecord, upload_id: str | None) -> str:
        row = StoredRow(_new_id(), record, upload_id)
        self.shift_downtime[row.id] = row
        return row.id

    def create_daily_downtime(self, record: DowntimeDailyRecord, upload_id: str | None) -> str:
        row = StoredRow(_new_id(), record, upload_id)
        self.daily_downtime[row.id] = row
        return row.id

    def add_hazards(self, hazards: Iterable[HazardRecord]) -> None:
        for h in hazards:
            self.hazards[h.id] = h

    # -- reads -------------------------------------------------------------

    def productivity_records(self) -> list[ProductivityRecord]:
        return list(self.productivity.values())

    def throughput_records(self) -> list[MillThroughputRecord]:
        return list(self.throughput.values())

    def shift_downtime_records(self) -> list[ShiftDowntimeRecord]:
        return [row.record for row in self.shift_downtime.values()]

    def daily_downtime_records(self) -> list[DowntimeDailyRecord]:
        return [row.record for row in self.daily_downtime.values()]

    def water_records(self) -> list[WaterDailyRecord]:
        return sorted(self.water.values(), key=lambda r: r.date)

    def hazard_records(self) -> list[HazardRecord]:
        return list(self.hazards.values())

    def open_hazard_count(self) -> int:
        return sum(1 for h in self.hazards.values() if h.status == "open")


def _drop(table: dict, predicate) -> int:
    doomed = [key for key, value in table.items() if predicate(value)]
    for key in doomed:
        del table[key]
    return len(doomed)


# ---------------------------------------------------------------------------
# Upload pipeline
# ---------------------------------------------------------------------------

def ingest_workbook(
    store: RecordStore,
    source,
    upload_type: str,
    filename: str,
    keywords: HazardKeywords = DEFAULT_THRESHOLDS.hazard_keywords,
) -> UploadOutcome:
    """Parse and store one uploaded workbook.

    Returns
    -------
    UploadOutcome: success with row and warning counts, or failure with the
    error message. A failed upload leaves the stored records unchanged.
    """
    if upload_type not in UPLOAD_TYPES:
        raise ValueError(f"Invalid file type: {upload_type!r}")

    upload = store.create_upload(upload_type, filename)
    detector = HazardDetector(keywords)
    handlers = {
        "tech_journal": _ingest_tech_journal,
        "water": _ingest_water,
        "downtime": _ingest_downtime,
    }

    try:
        with store.transaction():
            rows_parsed, warnings_count = handlers[upload_type](store, source, upload.id, detector)
    except Exception as exc:
        logger.exception("Upload %s (%s) failed", filename, upload_type)
        store.fail_upload(upload.id, str(exc) or type(exc).__name__)
        return UploadOutcome(
            success=False,
            upload_id=upload.id,
            error="Failed to parse file",
            details=str(exc) or type(exc).__name__,
        )

    store.complete_upload(upload.id, rows_parsed, warnings_count)
    logger.info("Upload %s (%s): %d rows, %d warnings",
                filename, upload_type, rows_parsed, warnings_count)
    return UploadOutcome(
        success=True,
        upload_id=upload.id,
        rows_parsed=rows_parsed,
        warnings_count=warnings_count,
    )


def _ingest_tech_journal(store: RecordStore, source, upload_id: str,
                         detector: HazardDetector) -> tuple[int, int]:
    result = parse_shift_journal(source)
    productivity = dedupe_productivity(result.productivity.data)
    downtime = result.downtime.data

    dates = {r.date for r in productivity} | {r.date for r in downtime}
    store.replace_dates("tech_journal", dates)

    for chunk in chunked(productivity):
        store.upsert_productivity(chunk)
    store.upsert_throughput(result.mill_throughput.data)

    for record in downtime:
        row_id = store.create_shift_downtime(record, upload_id)
        store.add_hazards(
            hazards_from_text(record.reason_text, record.date, "tech_journal", row_id, detector)
        )

    streams = (result.productivity, result.mill_throughput, result.downtime)
    return sum(s.rows_parsed for s in streams), sum(len(s.warnings) for s in streams)


def _ingest_water(store: RecordStore, source, upload_id: str,
                  detector: HazardDetector) -> tuple[int, int]:
    result = parse_water(source)
    for chunk in chunked(result.data):
        store.upsert_water(chunk)
    return result.rows_parsed, len(result.warnings)


def _ingest_downtime(store: RecordStore, source, upload_id: str,
                     detector: HazardDetector) -> tuple[int, int]:
    result = parse_downtime_history(source)
    store.replace_dates("downtime", {r.date for r in result.data})

    for record in result.data:
        row_id = store.create_daily_downtime(record, upload_id)
        store.add_hazards(
            hazards_from_text(record.reason_text, record.date, "downtime", row_id, detector)
        )
    return result.rows_parsed, len(result.warnings)


# ---------------------------------------------------------------------------
# Hazard register
# ---------------------------------------------------------------------------

def create_manual_hazard(
    store: RecordStore,
    hazard_date: date,
    description: str,
    severity: str,
    tags: str | None = None,
) -> HazardRecord:
    """Register an operator-reported hazard (status open)."""
    if not hazard_date or not description or not severity:
        raise ValueError("Missing required fields")
    hazard = HazardRecord(
        id=new_hazard_id(),
        date=hazard_date,
        source_type="manual",
        description=description,
        severity=severity,
        tags=tags or None,
    )
    store.add_hazards([hazard])
    return hazard


def create_photo_hazard(
    store: RecordStore,
    hazard_date: date,
    detection: PhotoDetection,
    description: str = "",
) -> HazardRecord:
    """Register a hazard from a classified photo.

    The detected labels become the tags and are appended to the description.
    """
    if detection.severity is None:
        raise ValueError("No hazard class detected on the photo")

    labels = ", ".join(detection.detected)
    auto = f"Авто-детекция: {labels}"
    hazard = HazardRecord(
        id=new_hazard_id(),
        date=hazard_date,
        source_type="photo",
        description=f"{description}\n{auto}" if description else auto,
        severity=detection.severity,
        tags=labels,
    )
    store.add_hazards([hazard])
    return hazard


def update_hazard(
    store: RecordStore,
    hazard_id: str,
    status: str | None = None,
    severity: str | None = None,
    description: str | None = None,
) -> HazardRecord:
    """Patch a stored hazard. Unknown ids raise KeyError."""
    if hazard_id not in store.hazards:
        raise KeyError(f"Hazard {hazard_id} not found")
    hazard = store.hazards[hazard_id]
    hazard.patch(status=status, severity=severity, description=description)
    return hazard
