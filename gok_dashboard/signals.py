"""
Signal computation. Pure functions, no I/O.

Provides green/yellow/red classification for productivity, downtime and
water, the cross-metric priority ranking, and the signal summary behind the
dashboard cards.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date

import pandas as pd

from .config import (
    PRIORITY_ITEMS_LIMIT,
    REASON_KEY_LENGTH,
    TOP_REASONS_LIMIT,
    Thresholds,
)

logger = logging.getLogger(__name__)

# green < yellow < red
SIGNAL_RANK = {"green": 0, "yellow": 1, "red": 2}


def productivity_signal(current_pct: float, cfg: Thresholds) -> str:
    """Return the signal for a productivity level.

    Logic
    -----
    drop_pct = (target - current) / target * 100
        red     if drop_pct > red_threshold_pct
        yellow  if drop_pct > yellow_threshold_pct
        green   otherwise (including any level above target)
    """
    p = cfg.productivity
    drop_pct = (p.target_pct - current_pct) / p.target_pct * 100
    if drop_pct > p.red_threshold_pct:
        return "red"
    if drop_pct > p.yellow_threshold_pct:
        return "yellow"
    return "green"


def downtime_signal(minutes: float, cfg: Thresholds) -> str:
    """red above the yellow ceiling, yellow above the green ceiling."""
    d = cfg.downtime
    if minutes > d.yellow_max_minutes:
        return "red"
    if minutes > d.green_max_minutes:
        return "yellow"
    return "green"


def water_over_pct(actual: float, nominal: float) -> float:
    """Overconsumption in percent of nominal; 0 when nominal is not positive."""
    if nominal <= 0:
        return 0.0
    return (actual - nominal) / nominal * 100


def water_signal(actual: float, nominal: float, cfg: Thresholds) -> str:
    """Signal for one day's water use. A non-positive nominal is always green."""
    if nominal <= 0:
        return "green"
    over = water_over_pct(actual, nominal)
    if over > cfg.water.red_over_pct:
        return "red"
    if over > cfg.water.yellow_over_pct:
        return "yellow"
    return "green"


@dataclass(frozen=True)
class PriorityItem:
    id: str
    type: str  # downtime | water | productivity
    score: float
    description: str
    signal: str
    value: float
    unit: str
    date: date


@dataclass(frozen=True)
class ReasonTotal:
    reason: str
    minutes: float


@dataclass(frozen=True)
class ProductivitySummary:
    signal: str
    current_pct: float
    target_pct: float


@dataclass(frozen=True)
class DowntimeSummary:
    signal: str
    total_minutes: float
    average_minutes: float
    top_reasons: list[ReasonTotal] = field(default_factory=list)


@dataclass(frozen=True)
class WaterSummary:
    signal: str
    actual: float
    nominal: float
    over_pct: float


@dataclass(frozen=True)
class SignalSummary:
    productivity: ProductivitySummary
    downtime: DowntimeSummary
    water: WaterSummary
    priority_items: list[PriorityItem]

    def as_dict(self) -> dict:
        return asdict(self)


def _in_range(df: pd.DataFrame, date_from, date_to) -> pd.DataFrame:
    if df.empty or date_from is None or date_to is None:
        return df
    dates = pd.to_datetime(df["date"])
    mask = (dates >= pd.Timestamp(date_from)) & (dates <= pd.Timestamp(date_to))
    return df[mask]


def top_reasons(downtime: pd.DataFrame, limit: int = TOP_REASONS_LIMIT) -> list[ReasonTotal]:
    """Sum minutes per reason (keyed on its first characters), largest first."""
    totals: dict[str, float] = {}
    for reasons in downtime.get("reasons", []):
        for r in reasons:
            if not r["reason"]:
                continue
            key = r["reason"][:REASON_KEY_LENGTH]
            totals[key] = totals.get(key, 0.0) + r["minutes"]

    ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [ReasonTotal(reason, minutes) for reason, minutes in ranked[:limit]]


def priority_items(
    productivity: pd.DataFrame,
    downtime: pd.DataFrame,
    water: pd.DataFrame,
    cfg: Thresholds,
    limit: int = PRIORITY_ITEMS_LIMIT,
) -> list[PriorityItem]:
    """Every day breaching a threshold, scored by metric x weight.

    Items of all three metrics share one score space; the top `limit` of the
    merged list are returned.
    """
    items: list[PriorityItem] = []
    weights = cfg.priority

    for _, row in downtime.iterrows():
        minutes = float(row["total_minutes"])
        if minutes > cfg.downtime.green_max_minutes:
            day = pd.Timestamp(row["date"]).date()
            items.append(PriorityItem(
                id=f"downtime-{day.isoformat()}",
                type="downtime",
                score=minutes * weights.downtime_weight,
                description=f"Простой {minutes:g} мин ({day.isoformat()})",
                signal=downtime_signal(minutes, cfg),
                value=minutes,
                unit="мин",
                date=day,
            ))

    for _, row in water.iterrows():
        actual, nominal = float(row["actual"]), float(row["nominal"])
        if nominal <= 0:
            continue
        over = water_over_pct(actual, nominal)
        if over > cfg.water.yellow_over_pct:
            day = pd.Timestamp(row["date"]).date()
            items.append(PriorityItem(
                id=f"water-{day.isoformat()}",
                type="water",
                score=over * weights.water_over_weight,
                description=f"Перерасход воды {over:.1f}% ({day.isoformat()})",
                signal=water_signal(actual, nominal, cfg),
                value=over,
                unit="%",
                date=day,
            ))

    target = cfg.productivity.target_pct
    for _, row in productivity.iterrows():
        avg = float(row["avg_pct"])
        drop = (target - avg) / target * 100
        if drop > cfg.productivity.yellow_threshold_pct:
            day = pd.Timestamp(row["date"]).date()
            items.append(PriorityItem(
                id=f"productivity-{day.isoformat()}",
                type="productivity",
                score=drop * weights.productivity_drop_weight,
                description=f"Производительность {avg:.1f}% (цель: {target:g}%)",
                signal=productivity_signal(avg, cfg),
                value=drop,
                unit="%",
                date=day,
            ))

    items.sort(key=lambda i: i.score, reverse=True)
    return items[:limit]


def compute_signals(
    productivity: pd.DataFrame,
    downtime: pd.DataFrame,
    water: pd.DataFrame,
    cfg: Thresholds,
    date_from: date | None = None,
    date_to: date | None = None,
) -> SignalSummary:
    """Signal summary over daily aggregates from transforms.

    Parameters
    ----------
    productivity : build_daily_productivity() output (date, avg_pct).
    downtime : build_daily_downtime() output (date, total_minutes, reasons, ...).
    water : build_daily_water() output (date, actual, nominal), sorted by date.
    cfg : Thresholds.
    date_from, date_to : Inclusive range; applied only when both are given.

    Notes
    -----
    - Productivity is judged on the mean of daily averages.
    - Downtime is judged on the mean daily total, not the sum.
    - Water is judged on the most recent day only.
    """
    productivity = _in_range(productivity, date_from, date_to)
    downtime = _in_range(downtime, date_from, date_to)
    water = _in_range(water, date_from, date_to)

    avg_pct = float(productivity["avg_pct"].mean()) if not productivity.empty else 0.0

    total_minutes = float(downtime["total_minutes"].sum()) if not downtime.empty else 0.0
    avg_minutes = total_minutes / len(downtime) if not downtime.empty else 0.0

    if not water.empty:
        latest = water.sort_values("date").iloc[-1]
        actual, nominal = float(latest["actual"]), float(latest["nominal"])
    else:
        actual, nominal = 0.0, 0.0

    summary = SignalSummary(
        productivity=ProductivitySummary(
            signal=productivity_signal(avg_pct, cfg),
            current_pct=avg_pct,
            target_pct=cfg.productivity.target_pct,
        ),
        downtime=DowntimeSummary(
            signal=downtime_signal(avg_minutes, cfg),
            total_minutes=total_minutes,
            average_minutes=avg_minutes,
            top_reasons=top_reasons(downtime),
        ),
        water=WaterSummary(
            signal=water_signal(actual, nominal, cfg),
            actual=actual,
            nominal=nominal,
            over_pct=water_over_pct(actual, nominal),
        ),
        priority_items=priority_items(productivity, downtime, water, cfg),
    )

    logger.info(
        "Signals: productivity=%s downtime=%s water=%s, %d priority items",
        summary.productivity.signal,
        summary.downtime.signal,
        summary.water.signal,
        len(summary.priority_items),
    )
    return summary
