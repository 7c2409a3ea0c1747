from datetime import timedelta

import pytest

from builders import d
from gok_dashboard.config import DEFAULT_THRESHOLDS, HazardKeywords
from gok_dashboard.hazards import (
    HazardDetector,
    detect_hazards,
    hazards_from_text,
    severity_color,
    severity_label,
    summarise_hazards,
)
from gok_dashboard.records import DetectedHazard, HazardRecord

KEYWORDS = DEFAULT_THRESHOLDS.hazard_keywords


def _keywords_of(text, keywords=KEYWORDS):
    return [(h.severity, h.matched_keyword) for h in detect_hazards(text, keywords)]


def test_fire_is_high() -> None:
    text = "произошел пожар на складе"
    assert detect_hazards(text, KEYWORDS) == [DetectedHazard(text, "high", "пожар")]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        # First high keyword in list order wins alone
        ("взрыв и пожар", [("high", "взрыв")]),
        ("ПОЖАР в цехе", [("high", "пожар")]),
        ("утечка масла, дым из редуктора", [("medium", "утечк"), ("medium", "дым")]),
        # Tiers never mix
        ("дым и шум", [("medium", "дым")]),
        ("травма при утечке", [("high", "травм")]),
        ("повышенный шум и вибрация", [("low", "шум"), ("low", "вибрац")]),
        ("плановый ремонт", []),
        ("", []),
        (None, []),
    ],
)
def test_detection_tiers(text, expected) -> None:
    assert _keywords_of(text) == expected


def test_duplicate_keywords_reported_once() -> None:
    keywords = HazardKeywords(high=(), medium=("дым", "дым"), low=())
    assert _keywords_of("дым, снова дым", keywords) == [("medium", "дым")]


def test_custom_keywords_are_used() -> None:
    keywords = HazardKeywords(high=("затоплен",), medium=(), low=())
    detector = HazardDetector(keywords)

    assert [h.severity for h in detector.detect("затопление насосной")] == ["high"]
    assert detector.detect("пожар") == []


def test_hazards_from_text() -> None:
    [hazard] = hazards_from_text(
        "искрение в щите", d(5), "downtime", "row-1", HazardDetector(KEYWORDS),
    )

    assert hazard.source_type == "downtime"
    assert hazard.source_ref_id == "row-1"
    assert hazard.severity == "medium"
    assert hazard.tags == "искр"
    assert hazard.status == "open"
    assert hazard.date == d(5)
    assert hazard.description == "искрение в щите"


def _hazard(id_, day, severity="medium", status="open", tags=None, source="manual"):
    return HazardRecord(id=id_, date=day, source_type=source, description="x",
                        severity=severity, status=status, tags=tags)


def test_summarise_hazards() -> None:
    today = d(31)
    hazards = [
        _hazard("a", today - timedelta(days=2), tags="дым"),
        _hazard("b", today - timedelta(days=10), severity="high", tags="пожар, дым"),
        _hazard("c", today - timedelta(days=5), status="closed", tags="шум"),
        _hazard("d", today - timedelta(days=45), severity="high", tags="дым"),
    ]

    summary = summarise_hazards(hazards, today=today)

    assert [h.id for h in summary["hazards"]] == ["a", "c", "b"]
    assert summary["days_since_last_severe"] == 10
    assert summary["severity_counts"] == {"medium": 2, "high": 1}
    assert summary["status_counts"] == {"open": 2, "closed": 1}
    assert summary["recurring_hazards"][0] == {"tag": "дым", "count": 2}


def test_summarise_without_severe_hazards() -> None:
    summary = summarise_hazards([_hazard("a", d(1))], today=d(2))
    assert summary["days_since_last_severe"] is None


def test_hazard_record_validation() -> None:
    hazard = _hazard("a", d(1))

    hazard.set_status("closed")
    assert hazard.status == "closed"

    with pytest.raises(ValueError):
        hazard.set_status("archived")
    with pytest.raises(ValueError):
        _hazard("b", d(1), source="email")
    with pytest.raises(ValueError):
        _hazard("c", d(1), severity="critical")


def test_patch_ignores_empty_values() -> None:
    hazard = _hazard("a", d(1))

    hazard.patch(status=None, severity="", description="уточнено")

    assert (hazard.status, hazard.severity, hazard.description) == ("open", "medium", "уточнено")


def test_severity_presentation() -> None:
    assert severity_color("high") == "red"
    assert severity_color("low") == "green"
    assert severity_label("medium") == "Средний"
