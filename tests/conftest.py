import pytest

from builders import (
    HISTORY_HEADER,
    JAN_1,
    downtime_entry,
    history_row,
    shift_rows,
    workbook_bytes,
)
from gok_dashboard.config import DEFAULT_THRESHOLDS
from gok_dashboard.ingest import RecordStore


@pytest.fixture
def store() -> RecordStore:
    return RecordStore()


@pytest.fixture
def thresholds():
    return DEFAULT_THRESHOLDS


@pytest.fixture
def journal_bytes() -> bytes:
    """Two shifts of 2026-01-01; shift 1 has a fire-related downtime entry."""
    shift1 = shift_rows(
        hours=[[8, 80, 82, 84, 86, 88], [9, 70, "#DIV/0!", 75, 77, 79]],
        throughput=515.5,
        downtime=[
            downtime_entry("№1", 0.5, "13:30", 90, "пожар в кабельном канале"),
            [None, None, None, None, None, None, None, "вызвана бригада"],
            downtime_entry("№2", None, None, 0, None),
            ["Остаток шаров"],
        ],
    )
    shift2 = shift_rows(hours=[[20, 90, 91, 92, 93, 94]], throughput=530)
    return workbook_bytes({
        "Сводка": [["Итоги"]],
        "01.01.26см1": shift1,
        "01.01.26см2": shift2,
    })


@pytest.fixture
def history_bytes() -> bytes:
    rows = HISTORY_HEADER + [
        history_row(JAN_1, 0, "Замена футеровки", 120, "М"),
        history_row(None, 0, "ожидание запчастей"),
        history_row(JAN_1 + 1, 4, "Утечка пульпы", 45, "Т"),
    ]
    return workbook_bytes({"Январь 2026": rows})


@pytest.fixture
def water_bytes() -> bytes:
    rows = [
        ["Январь 2026 г."],
        ["Дата", "Показание счетчика", "Расход за сутки", "Расход в час", "Номинальный расход"],
        [JAN_1, 1000, 1250, 52.1, 1200],
        [JAN_1 + 1, 2200, 1180, 49.2, 1200],
    ]
    return workbook_bytes({"Вода": rows})
