"""
Data transforms: aggregate loader records into daily, dashboard-ready
DataFrames consumed by the signal engine.
"""

import logging
from datetime import date
from typing import Iterable

import pandas as pd

from .records import (
    DowntimeDailyRecord,
    MillThroughputRecord,
    ProductivityRecord,
    ShiftDowntimeRecord,
    WaterDailyRecord,
)

logger = logging.getLogger(__name__)

DAILY_PRODUCTIVITY_COLS = ["date", "avg_pct"]
HOURLY_PRODUCTIVITY_COLS = ["date", "hour", "avg_pct"]
DAILY_THROUGHPUT_COLS = ["date", "avg_tph"]
DAILY_DOWNTIME_COLS = ["date", "total_minutes", "by_equipment", "by_classification", "reasons"]
DAILY_WATER_COLS = ["date", "actual", "nominal", "meter_reading", "hourly"]


def shift_days(
    productivity: list[ProductivityRecord],
    throughput: list[MillThroughputRecord],
    shift_downtime: list[ShiftDowntimeRecord],
    shift: int | None = None,
) -> list[date]:
    """Dates covered by the shift journal, i.e. with any shift-sheet record."""
    days = set()
    for records in (productivity, throughput, shift_downtime):
        days.update(r.date for r in records if shift is None or r.shift_number == shift)
    return sorted(days)


def _productivity_frame(
    records: list[ProductivityRecord], shift: int | None = None
) -> pd.DataFrame:
    rows = [
        {"date": r.date, "shift_number": r.shift_number, "hour": r.hour, "value_pct": r.value_pct}
        for r in records
        if r.value_pct is not None and (shift is None or r.shift_number == shift)
    ]
    df = pd.DataFrame(rows, columns=["date", "shift_number", "hour", "value_pct"])
    df["date"] = pd.to_datetime(df["date"])
    return df


def build_daily_productivity(
    records: list[ProductivityRecord],
    shift: int | None = None,
    days: Iterable[date] = (),
) -> pd.DataFrame:
    """Mean mill-line productivity per day, over both shifts unless `shift` is set.

    Null readings are ignored. Each of `days` without a reading gets avg_pct 0.

    Returns
    -------
    DataFrame with columns: date, avg_pct (sorted by date)
    """
    df = _productivity_frame(records, shift)
    averages = df.groupby("date")["value_pct"].mean()
    index = averages.index.union(pd.to_datetime(sorted(set(days))))
    if index.empty:
        return pd.DataFrame(columns=DAILY_PRODUCTIVITY_COLS)

    result = (
        averages.reindex(index, fill_value=0.0)
        .rename("avg_pct")
        .rename_axis("date")
        .reset_index()
    )
    logger.info("Built daily productivity with %d rows", len(result))
    return result


def build_hourly_productivity(
    records: list[ProductivityRecord], shift: int | None = None
) -> pd.DataFrame:
    """Mean productivity per (date, hour) for hourly trend charts."""
    df = _productivity_frame(records, shift)
    if df.empty:
        return pd.DataFrame(columns=HOURLY_PRODUCTIVITY_COLS)

    return (
        df.groupby(["date", "hour"], as_index=False)["value_pct"].mean()
        .rename(columns={"value_pct": "avg_pct"})
        .sort_values(["date", "hour"])
        .reset_index(drop=True)
    )


def build_daily_throughput(
    records: list[MillThroughputRecord], shift: int | None = None
) -> pd.DataFrame:
    """Mean total mill throughput (t/h) per day; 0 for days with only null cells."""
    rows = [
        {"date": r.date, "value_tph": r.value_tph}
        for r in records
        if shift is None or r.shift_number == shift
    ]
    if not rows:
        return pd.DataFrame(columns=DAILY_THROUGHPUT_COLS)

    df = pd.DataFrame(rows)
    df["date"] = pd.to_datetime(df["date"])
    df["value_tph"] = pd.to_numeric(df["value_tph"], errors="coerce")
    result = (
        df.groupby("date")["value_tph"].mean()
        .fillna(0.0)
        .rename("avg_tph")
        .reset_index()
        .sort_values("date")
        .reset_index(drop=True)
    )
    return result


def build_daily_downtime(
    shift_rows: list[ShiftDowntimeRecord],
    daily_rows: list[DowntimeDailyRecord],
    equipment: str | None = None,
    shift: int | None = None,
    days: Iterable[date] = (),
) -> pd.DataFrame:
    """Combine shift-journal and downtime-history rows into one row per day.

    Each of `days` gets a row even without downtime (total_minutes 0), so a
    quiet shift day counts in the daily mean. Null minutes count as 0.
    Classification totals come from the downtime history only; the shift
    journal does not classify.

    Returns
    -------
    DataFrame with columns:
        date, total_minutes, by_equipment (dict), by_classification (dict),
        reasons (list of {"reason", "minutes"})
    """
    by_date: dict = {}

    def entry(day) -> dict:
        if day not in by_date:
            by_date[day] = {
                "date": day,
                "total_minutes": 0.0,
                "by_equipment": {},
                "by_classification": {},
                "reasons": [],
            }
        return by_date[day]

    for day in days:
        entry(day)

    for r in shift_rows:
        if shift is not None and r.shift_number != shift:
            continue
        if equipment and r.equipment != equipment:
            continue
        _accumulate(entry(r.date), r.equipment, r.minutes, r.reason_text, None)

    for r in daily_rows:
        if equipment and r.equipment != equipment:
            continue
        _accumulate(entry(r.date), r.equipment, r.minutes, r.reason_text, r.classification)

    if not by_date:
        return pd.DataFrame(columns=DAILY_DOWNTIME_COLS)

    df = pd.DataFrame(list(by_date.values()), columns=DAILY_DOWNTIME_COLS)
    df["date"] = pd.to_datetime(df["date"])
    df = df.sort_values("date").reset_index(drop=True)

    logger.info("Built daily downtime with %d rows", len(df))
    return df


def _accumulate(
    day: dict,
    equipment: str,
    minutes: float | None,
    reason: str | None,
    classification: str | None,
) -> None:
    minutes = minutes or 0.0
    day["total_minutes"] += minutes
    day["by_equipment"][equipment] = day["by_equipment"].get(equipment, 0.0) + minutes
    if classification:
        day["by_classification"][classification] = (
            day["by_classification"].get(classification, 0.0) + minutes
        )
    if reason:
        day["reasons"].append({"reason": reason, "minutes": minutes})


def build_daily_water(records: list[WaterDailyRecord]) -> pd.DataFrame:
    """Daily water actual vs nominal (m3); missing values read as 0.

    Returns
    -------
    DataFrame with columns: date, actual, nominal, meter_reading, hourly
    """
    if not records:
        return pd.DataFrame(columns=DAILY_WATER_COLS)

    df = pd.DataFrame({
        "date": pd.to_datetime([r.date for r in records]),
        "actual": [r.actual_daily or 0.0 for r in records],
        "nominal": [r.nominal_daily or 0.0 for r in records],
        "meter_reading": [r.meter_reading or 0.0 for r in records],
        "hourly": [r.actual_hourly or 0.0 for r in records],
    })
    df = df.sort_values("date").reset_index(drop=True)

    logger.info("Built daily water with %d rows", len(df))
    return df
