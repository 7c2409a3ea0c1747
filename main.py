"""
GOK Mill Operations: end-to-end analytics pipeline.

Imports the operator workbooks into a fresh record store, then prints the
dashboard aggregates, signal summary and hazard register as a smoke test.

Usage:
    python main.py            # case_data/*.xlsx
    python main.py --demo     # simulated workbooks
"""

import argparse
import logging
from collections import Counter
from datetime import date

from gok_dashboard.config import (
    CLASSIFICATION_LABELS,
    DOWNTIME_FILE,
    TECH_JOURNAL_FILE,
    WATER_FILE,
    load_thresholds,
)
from gok_dashboard.dashboard import (
    get_dashboard_data,
    get_signal_summary,
    get_upload_overview,
)
from gok_dashboard.hazards import severity_label, summarise_hazards
from gok_dashboard.ingest import RecordStore, ingest_workbook
from gok_dashboard.simulator import (
    generate_downtime_workbook,
    generate_shift_journal,
    generate_water_workbook,
)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _sources(demo: bool) -> list[tuple[str, str, object]]:
    """(upload_type, filename, source) triples in import order."""
    if demo:
        return [
            ("tech_journal", "technical_journal.xlsx", generate_shift_journal()),
            ("water", "water_consumption.xlsx", generate_water_workbook()),
            ("downtime", "downtime.xlsx", generate_downtime_workbook()),
        ]

    sources = []
    for upload_type, path in (
        ("tech_journal", TECH_JOURNAL_FILE),
        ("water", WATER_FILE),
        ("downtime", DOWNTIME_FILE),
    ):
        if path.exists():
            sources.append((upload_type, path.name, str(path)))
        else:
            logger.warning("Source file not found, skipped: %s", path)
    return sources


def _date_span(store: RecordStore) -> tuple[date | None, date | None]:
    dates = [r.date for r in store.productivity_records()]
    dates += [r.date for r in store.water_records()]
    dates += [r.date for r in store.daily_downtime_records()]
    dates += [r.date for r in store.shift_downtime_records()]
    if not dates:
        return None, None
    return min(dates), max(dates)


def main() -> None:
    """Run the full analytics pipeline and print smoke-test outputs."""
    parser = argparse.ArgumentParser(description="GOK mill dashboard pipeline")
    parser.add_argument("--demo", action="store_true", help="use simulated workbooks")
    parser.add_argument("--thresholds", default=None, help="path to thresholds.json")
    args = parser.parse_args()

    print("=" * 70)
    print("  GOK MILL OPERATIONS | Signals & Hazards Dashboard")
    print("  Analytics Pipeline Smoke Test")
    print("=" * 70)
    print()

    thresholds = load_thresholds(args.thresholds)
    store = RecordStore()

    # ------------------------------------------------------------------
    # 1. Import workbooks
    # ------------------------------------------------------------------
    print("[ 1 ] IMPORTING WORKBOOKS")
    print("-" * 40)

    for upload_type, filename, source in _sources(args.demo):
        outcome = ingest_workbook(
            store, source, upload_type, filename, thresholds.hazard_keywords,
        )
        print(f"  {upload_type:13s} | {filename:28s} | {outcome.as_dict()}")

    # Importing the same journal twice leaves the record set unchanged
    if args.demo:
        before = len(store.productivity)
        ingest_workbook(store, generate_shift_journal(), "tech_journal",
                        "technical_journal.xlsx", thresholds.hazard_keywords)
        check = len(store.productivity) == before
        print(f"\n  [{'PASS' if check else 'FAIL'}] Re-import is idempotent "
              f"({before} productivity records)")

    date_from, date_to = _date_span(store)
    if date_from is None:
        print("\nNo records imported.")
        return

    # ------------------------------------------------------------------
    # 2. Daily aggregates
    # ------------------------------------------------------------------
    print("\n")
    print(f"[ 2 ] DAILY AGGREGATES {date_from} .. {date_to}")
    print("-" * 40)

    data = get_dashboard_data(store, date_from, date_to)
    for name in ("productivity", "mill_throughput", "water"):
        frame = data[name]
        print(f"\n{name}: {len(frame)} rows")
        if not frame.empty:
            print(frame.head(10).to_string(index=False))

    downtime = data["downtime"]
    print(f"\ndowntime: {len(downtime)} rows")
    if not downtime.empty:
        print(downtime[["date", "total_minutes", "by_classification"]].head(10).to_string(index=False))
        by_class: Counter = Counter()
        for totals in downtime["by_classification"]:
            by_class.update(totals)
        for code, minutes in by_class.most_common():
            print(f"  {CLASSIFICATION_LABELS[code]:18s} {minutes:7.0f} min")
    print(f"\nOpen hazards: {data['open_hazards']}")

    # ------------------------------------------------------------------
    # 3. Signals
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] SIGNALS")
    print("-" * 40)

    summary = get_signal_summary(store, thresholds, date_from, date_to)
    print(f"\n  productivity | {summary.productivity.signal:6s} | "
          f"{summary.productivity.current_pct:.1f}% (target {summary.productivity.target_pct:g}%)")
    print(f"  downtime     | {summary.downtime.signal:6s} | "
          f"{summary.downtime.average_minutes:.0f} min/day, {summary.downtime.total_minutes:.0f} min total")
    print(f"  water        | {summary.water.signal:6s} | "
          f"{summary.water.actual:.1f} / {summary.water.nominal:.1f} m3 ({summary.water.over_pct:+.1f}%)")

    print("\nTop downtime reasons:")
    for reason in summary.downtime.top_reasons:
        print(f"  {reason.minutes:7.0f} min | {reason.reason}")

    print("\nPriority items:")
    for item in summary.priority_items:
        print(f"  {item.score:8.1f} | {item.signal:6s} | {item.description}")

    # ------------------------------------------------------------------
    # 4. Hazards
    # ------------------------------------------------------------------
    print("\n")
    print("[ 4 ] HAZARD REGISTER")
    print("-" * 40)

    hazards = summarise_hazards(store.hazard_records(), today=date_to)
    print(f"\n  Days since last severe hazard: {hazards['days_since_last_severe']}")
    print(f"  By severity: {hazards['severity_counts']}")
    print(f"  Recurring: {hazards['recurring_hazards']}")
    for h in hazards["hazards"][:10]:
        first_line = h.description.splitlines()[0]
        print(f"  {h.date} | {severity_label(h.severity):8s} | {h.tags} | {first_line}")

    # ------------------------------------------------------------------
    # 5. Upload log
    # ------------------------------------------------------------------
    print("\n")
    print("[ 5 ] UPLOAD LOG")
    print("-" * 40)

    overview = get_upload_overview(store)
    print(overview["uploads"][["type", "filename", "status", "rows_parsed",
                               "warnings_count"]].to_string(index=False))

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
