"""
Dashboard-ready output functions.

Entry points for a web front end: each reads the record store for a date
range and returns plain dicts or DataFrames ready for cards, charts and
tables.
"""

import logging
from datetime import date

import pandas as pd

from .config import UPLOAD_TYPES, Thresholds
from .ingest import RecordStore
from .signals import SignalSummary, compute_signals
from .transforms import (
    build_daily_downtime,
    build_daily_productivity,
    build_daily_throughput,
    build_daily_water,
    build_hourly_productivity,
    shift_days,
)

logger = logging.getLogger(__name__)

RECENT_UPLOADS_LIMIT = 20


def _within(records: list, date_from: date | None, date_to: date | None) -> list:
    """Records whose date lies in [date_from, date_to]; each bound is optional."""
    return [
        r for r in records
        if (date_from is None or r.date >= date_from)
        and (date_to is None or r.date <= date_to)
    ]


def get_dashboard_data(
    store: RecordStore,
    date_from: date | None,
    date_to: date | None,
    shift: int | None = None,
    equipment: str | None = None,
) -> dict:
    """Single entry point a front end would call to populate its charts.

    Parameters
    ----------
    store : RecordStore with imported data.
    date_from, date_to : Inclusive date range; either bound may be None.
    shift : Restrict productivity, throughput and shift downtime to one shift.
    equipment : Restrict downtime to one equipment label.

    Returns
    -------
    Dict with structure:
    {
        "productivity": DataFrame(date, avg_pct),
        "productivity_by_hour": DataFrame(date, hour, avg_pct),
        "mill_throughput": DataFrame(date, avg_tph),
        "downtime": DataFrame(date, total_minutes, by_equipment, ...),
        "water": DataFrame(date, actual, nominal, meter_reading, hourly),
        "open_hazards": 4,
    }
    """
    productivity = _within(store.productivity_records(), date_from, date_to)
    throughput = _within(store.throughput_records(), date_from, date_to)
    shift_downtime = _within(store.shift_downtime_records(), date_from, date_to)
    daily_downtime = _within(store.daily_downtime_records(), date_from, date_to)
    water = _within(store.water_records(), date_from, date_to)
    # Every shift-journal day counts, quiet days as 0
    days = shift_days(productivity, throughput, shift_downtime, shift)

    data = {
        "productivity": build_daily_productivity(productivity, shift, days),
        "productivity_by_hour": build_hourly_productivity(productivity, shift),
        "mill_throughput": build_daily_throughput(throughput, shift),
        "downtime": build_daily_downtime(
            shift_downtime, daily_downtime, equipment, shift, days,
        ),
        "water": build_daily_water(water),
        "open_hazards": store.open_hazard_count(),
    }

    logger.info(
        "Dashboard data %s..%s: %d productivity days, %d downtime days, %d water days",
        date_from, date_to,
        len(data["productivity"]), len(data["downtime"]), len(data["water"]),
    )
    return data


def get_signal_summary(
    store: RecordStore,
    cfg: Thresholds,
    date_from: date | None,
    date_to: date | None,
) -> SignalSummary:
    """Signal cards and priority list for the range, over all shifts and equipment."""
    data = get_dashboard_data(store, date_from, date_to)
    return compute_signals(
        data["productivity"], data["downtime"], data["water"], cfg, date_from, date_to,
    )


def get_upload_overview(store: RecordStore) -> dict:
    """Recent upload history and the last successful upload of each type.

    Returns
    -------
    Dict with structure:
    {
        "uploads": DataFrame of the last 20 uploads, newest first,
        "last_uploads": {"tech_journal": UploadLog | None, ...},
    }
    """
    # Insertion order is upload order
    uploads = list(store.uploads.values())[::-1]

    last_uploads = {}
    for upload_type in UPLOAD_TYPES:
        last_uploads[upload_type] = next(
            (u for u in uploads if u.type == upload_type and u.status == "completed"),
            None,
        )

    columns = ["id", "type", "filename", "status", "uploaded_at",
               "rows_parsed", "warnings_count", "error_message"]
    recent = pd.DataFrame(
        [{c: getattr(u, c) for c in columns} for u in uploads[:RECENT_UPLOADS_LIMIT]],
        columns=columns,
    )
    return {"uploads": recent, "last_uploads": last_uploads}
