"""
Hazard detection from free text and hazard register summaries.

Detection is strictly tiered: the first high-severity keyword wins on its
own; otherwise every matching medium keyword is reported; low keywords are
only scanned when nothing above matched.
"""

import logging
import uuid
from collections import Counter
from datetime import date

from .config import HazardKeywords
from .records import DetectedHazard, HazardRecord

logger = logging.getLogger(__name__)

_SEVERITY_COLORS = {"high": "red", "medium": "yellow", "low": "green"}
_SEVERITY_LABELS = {"high": "Высокий", "medium": "Средний", "low": "Низкий"}


def detect_hazards(text: str | None, keywords: HazardKeywords) -> list[DetectedHazard]:
    """Return hazards found in `text`, all from a single severity tier."""
    if not text:
        return []

    lower = text.lower()

    for keyword in keywords.high:
        if keyword.lower() in lower:
            return [DetectedHazard(text, "high", keyword)]

    for severity, tier in (("medium", keywords.medium), ("low", keywords.low)):
        hazards = []
        seen: set[str] = set()
        for keyword in tier:
            if keyword in seen:
                continue
            if keyword.lower() in lower:
                seen.add(keyword)
                hazards.append(DetectedHazard(text, severity, keyword))
        if hazards:
            return hazards

    return []


class HazardDetector:
    """Keyword detector bound to one keyword configuration."""

    def __init__(self, keywords: HazardKeywords):
        self.keywords = keywords

    def detect(self, text: str | None) -> list[DetectedHazard]:
        return detect_hazards(text, self.keywords)


def new_hazard_id() -> str:
    return uuid.uuid4().hex


def hazards_from_text(
    text: str | None,
    record_date: date,
    source_type: str,
    source_ref_id: str | None,
    detector: HazardDetector,
) -> list[HazardRecord]:
    """Hazard register entries for one stored downtime row."""
    return [
        HazardRecord(
            id=new_hazard_id(),
            date=record_date,
            source_type=source_type,
            source_ref_id=source_ref_id,
            description=h.description,
            severity=h.severity,
            tags=h.matched_keyword,
        )
        for h in detector.detect(text)
    ]


def summarise_hazards(
    hazards: list[HazardRecord],
    today: date | None = None,
    days: int = 30,
) -> dict:
    """Hazard register overview for the last `days` days.

    Returns
    -------
    Dict with structure:
    {
        "hazards": [...],                 # in window, newest first
        "days_since_last_severe": 12,     # over all hazards; None if none
        "severity_counts": {"high": 1, "medium": 3},
        "status_counts": {"open": 3, "closed": 1},
        "recurring_hazards": [{"tag": "дым", "count": 3}, ...],  # top 5
    }
    """
    today = today or date.today()
    window = [h for h in hazards if (today - h.date).days <= days]
    window.sort(key=lambda h: h.date, reverse=True)

    severe_dates = [h.date for h in hazards if h.severity == "high"]
    days_since = (today - max(severe_dates)).days if severe_dates else None

    tag_counts: Counter[str] = Counter()
    for h in window:
        if h.tags:
            tag_counts.update(t.strip() for t in h.tags.split(",") if t.strip())

    return {
        "hazards": window,
        "days_since_last_severe": days_since,
        "severity_counts": dict(Counter(h.severity for h in window)),
        "status_counts": dict(Counter(h.status for h in window)),
        "recurring_hazards": [
            {"tag": tag, "count": count} for tag, count in tag_counts.most_common(5)
        ],
    }


def severity_color(severity: str) -> str:
    return _SEVERITY_COLORS[severity]


def severity_label(severity: str) -> str:
    """Russian display label for a severity."""
    return _SEVERITY_LABELS[severity]
