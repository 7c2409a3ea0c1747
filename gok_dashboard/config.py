"""
Configuration: source file paths, workbook layout constants, thresholds.

The threshold document (thresholds.json) drives the signal engine and the
hazard detector. Both receive a Thresholds instance explicitly; nothing reads
module globals at evaluation time, so tests can pass synthetic thresholds.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Source workbook locations
# ---------------------------------------------------------------------------
DATA_DIR = Path(__file__).resolve().parent.parent
CASE_DATA_DIR = DATA_DIR / "case_data"

TECH_JOURNAL_FILE = CASE_DATA_DIR / "technical_journal.xlsx"
WATER_FILE = CASE_DATA_DIR / "water_consumption.xlsx"
DOWNTIME_FILE = CASE_DATA_DIR / "downtime.xlsx"
THRESHOLDS_FILE = DATA_DIR / "config" / "thresholds.json"

# ---------------------------------------------------------------------------
# Upload / source types
# ---------------------------------------------------------------------------
UPLOAD_TYPES = ("tech_journal", "water", "downtime")
HAZARD_SOURCE_TYPES = ("tech_journal", "downtime", "manual", "photo")
HAZARD_STATUSES = ("open", "closed")
SEVERITY_ORDER = {"high": 3, "medium": 2, "low": 1}

# ---------------------------------------------------------------------------
# Shift technical journal layout (one sheet per "dd.mm.yyсмN")
# ---------------------------------------------------------------------------
# Total mill throughput (t/h) for the shift
THROUGHPUT_CELL = "U17"
THROUGHPUT_ROW = 17
THROUGHPUT_COLUMN = 21

# Hourly productivity block, 0-indexed rows, inclusive
PRODUCTIVITY_FIRST_ROW = 4
PRODUCTIVITY_LAST_ROW = 16
MILL_LINES = 5
AVERAGE_ROW_LABEL = "среднее"

DOWNTIME_SECTION_MARKER = "Простой мельниц"
DOWNTIME_SECTION_TERMINATORS = ("Остаток", "Загрузка")
EQUIPMENT_ROW_PREFIX = "№"
DOWNTIME_FROM_COL = 2
DOWNTIME_TO_COL = 3
DOWNTIME_MINUTES_COL = 5
DOWNTIME_REASON_COL = 7

# ---------------------------------------------------------------------------
# Downtime history layout (one sheet per month)
# ---------------------------------------------------------------------------
# Equipment columns in the standard layout, left to right
EQUIPMENT_COLUMNS = ["МШР №1", "МШЦ №2", "МШР №3", "МШЦ №4", "ОФ", "ДСК"]
REASON_START_COL = 1
MINUTES_START_COL = 7
CLASSIFICATION_START_COL = 13

# Cyrillic and Latin single-letter codes -> canonical Latin code
CLASSIFICATION_CODES: dict[str, str] = {
    "М": "M", "Э": "E", "Т": "T", "П": "P",
    "M": "M", "E": "E", "T": "T", "P": "P",
}
CLASSIFICATION_LABELS: dict[str, str] = {
    "M": "Механическая",
    "E": "Электрическая",
    "T": "Технологическая",
    "P": "Погодные условия",
}

# Month-name stems tolerate declension ("января", "январь", ...)
RUSSIAN_MONTH_STEMS: dict[str, int] = {
    "январ": 1, "феврал": 2, "март": 3, "апрел": 4,
    "май": 5, "мая": 5, "июн": 6, "июл": 7, "август": 8,
    "сентябр": 9, "октябр": 10, "ноябр": 11, "декабр": 12,
}

# ---------------------------------------------------------------------------
# Signals / dashboard
# ---------------------------------------------------------------------------
PRIORITY_ITEMS_LIMIT = 10
TOP_REASONS_LIMIT = 5
REASON_KEY_LENGTH = 50

# ---------------------------------------------------------------------------
# Photo classifier
# ---------------------------------------------------------------------------
ROBOFLOW_URL = "https://detect.roboflow.com"
PHOTO_CONFIDENCE_DEFAULT = 0.4
PHOTO_TIMEOUT_SECONDS = 30.0

# Detector class label -> hazard severity
CLASS_SEVERITY: dict[str, str] = {
    "fire": "high",
    "car accident": "high",
    "slop failure": "high",
    "electricity": "medium",
    "boulder": "low",
    "cattle": "low",
}


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ProductivityThresholds:
    """Drop below target, percent of target."""
    target_pct: float = 85.0
    yellow_threshold_pct: float = 5.0
    red_threshold_pct: float = 15.0


@dataclass(frozen=True)
class DowntimeThresholds:
    """Daily downtime ceilings, minutes."""
    green_max_minutes: float = 60.0
    yellow_max_minutes: float = 180.0


@dataclass(frozen=True)
class WaterThresholds:
    """Overconsumption above nominal, percent."""
    yellow_over_pct: float = 5.0
    red_over_pct: float = 15.0


@dataclass(frozen=True)
class PriorityWeights:
    downtime_weight: float = 1.0
    water_over_weight: float = 2.0
    productivity_drop_weight: float = 3.0


@dataclass(frozen=True)
class HazardKeywords:
    """Cyrillic substrings per severity tier, scanned in list order."""
    high: tuple[str, ...] = ("травм", "взрыв", "пожар", "газ", "авар", "возгоран")
    medium: tuple[str, ...] = ("утечк", "искр", "дым", "обрыв", "перегрев", "обрушен")
    low: tuple[str, ...] = ("шум", "вибрац", "износ", "запах", "протечк", "скольз")


@dataclass(frozen=True)
class Thresholds:
    productivity: ProductivityThresholds = field(default_factory=ProductivityThresholds)
    downtime: DowntimeThresholds = field(default_factory=DowntimeThresholds)
    water: WaterThresholds = field(default_factory=WaterThresholds)
    priority: PriorityWeights = field(default_factory=PriorityWeights)
    hazard_keywords: HazardKeywords = field(default_factory=HazardKeywords)


DEFAULT_THRESHOLDS = Thresholds()


def thresholds_from_dict(doc: dict) -> Thresholds:
    """Build Thresholds from the camelCase threshold document.

    Missing sections or keys keep their defaults.
    """
    prod = doc.get("productivity", {})
    down = doc.get("downtime", {})
    water = doc.get("water", {})
    prio = doc.get("priority", {})
    keywords = doc.get("hazardKeywords", {})

    d = DEFAULT_THRESHOLDS
    return Thresholds(
        productivity=ProductivityThresholds(
            target_pct=float(prod.get("targetPct", d.productivity.target_pct)),
            yellow_threshold_pct=float(
                prod.get("yellowThresholdPct", d.productivity.yellow_threshold_pct)
            ),
            red_threshold_pct=float(
                prod.get("redThresholdPct", d.productivity.red_threshold_pct)
            ),
        ),
        downtime=DowntimeThresholds(
            green_max_minutes=float(down.get("greenMaxMinutes", d.downtime.green_max_minutes)),
            yellow_max_minutes=float(down.get("yellowMaxMinutes", d.downtime.yellow_max_minutes)),
        ),
        water=WaterThresholds(
            yellow_over_pct=float(water.get("yellowOverPct", d.water.yellow_over_pct)),
            red_over_pct=float(water.get("redOverPct", d.water.red_over_pct)),
        ),
        priority=PriorityWeights(
            downtime_weight=float(prio.get("downtimeWeight", d.priority.downtime_weight)),
            water_over_weight=float(prio.get("waterOverWeight", d.priority.water_over_weight)),
            productivity_drop_weight=float(
                prio.get("productivityDropWeight", d.priority.productivity_drop_weight)
            ),
        ),
        hazard_keywords=HazardKeywords(
            high=tuple(keywords.get("high", d.hazard_keywords.high)),
            medium=tuple(keywords.get("medium", d.hazard_keywords.medium)),
            low=tuple(keywords.get("low", d.hazard_keywords.low)),
        ),
    )


def load_thresholds(path: str | Path | None = None) -> Thresholds:
    """Read the threshold document; defaults when the file does not exist."""
    path = Path(path) if path is not None else THRESHOLDS_FILE
    if not path.exists():
        logger.warning("Thresholds file %s not found, using defaults", path)
        return DEFAULT_THRESHOLDS

    try:
        with open(path, encoding="utf-8") as fh:
            doc = json.load(fh)
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to read thresholds file: %s", path)
        raise

    logger.info("Loaded thresholds from %s", path)
    return thresholds_from_dict(doc)
