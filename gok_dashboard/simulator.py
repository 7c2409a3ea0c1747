"""
Simulated workbook generator for the GOK mill dashboard.

Writes the three operator workbooks (shift journal, water consumption,
downtime history) in the same layout as the real reports, so the pipeline
can run end to end without plant data. All values are synthetic.
"""

import io
import logging
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import openpyxl

from .config import (
    DOWNTIME_FROM_COL,
    DOWNTIME_SECTION_MARKER,
    DOWNTIME_TO_COL,
    EQUIPMENT_COLUMNS,
    MILL_LINES,
    THROUGHPUT_CELL,
)

logger = logging.getLogger(__name__)

_RUSSIAN_MONTHS = [
    "Январь", "Февраль", "Март", "Апрель", "Май", "Июнь",
    "Июль", "Август", "Сентябрь", "Октябрь", "Ноябрь", "Декабрь",
]

# ---------------------------------------------------------------------------
# Typical plant parameters
# ---------------------------------------------------------------------------
_PRODUCTIVITY_MEAN = 84.0
_PRODUCTIVITY_STD = 6.0
_THROUGHPUT_TPH = 520.0
_WATER_NOMINAL_M3 = 1200.0

_SHIFT_START_HOUR = {1: 8, 2: 20}

_REASONS = [
    ("Замена футеровки", "М"),
    ("Перегрев подшипника редуктора", "М"),
    ("Обрыв конвейерной ленты", "М"),
    ("Отключение электроэнергии", "Э"),
    ("Искрение в щите управления", "Э"),
    ("Забивка течки", "Т"),
    ("Повышенная вибрация мельницы", "М"),
    ("Пожар в кабельном канале", "Э"),
    ("Плановый ремонт", "Т"),
    ("Гололед на подъездных путях", "П"),
]


def _to_bytes(wb) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def generate_shift_journal(
    start: date = date(2026, 1, 1),
    days: int = 7,
    seed: int = 42,
) -> bytes:
    """Shift technical journal with two sheets ("dd.mm.yyсмN") per day."""
    rng = np.random.default_rng(seed)
    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    # Non-shift sheets are ignored by the loader
    summary = wb.create_sheet("Сводка")
    summary["A1"] = "Сводка по сменам"

    for offset in range(days):
        day = start + timedelta(days=offset)
        for shift in (1, 2):
            ws = wb.create_sheet(f"{day:%d.%m.%y}см{shift}")
            _fill_shift_sheet(ws, day, shift, rng)

    return _to_bytes(wb)


def _fill_shift_sheet(ws, day: date, shift: int, rng: np.random.Generator) -> None:
    ws["A1"] = f"Технический журнал {day:%d.%m.%Y}, смена {shift}"
    ws["A4"] = "Час"
    for line in range(1, MILL_LINES + 1):
        ws.cell(row=4, column=line + 1, value=f"Мельница {line}")

    # Hourly block: 0-based rows 4..15, average row at 16
    start_hour = _SHIFT_START_HOUR[shift]
    for i in range(12):
        row = 5 + i
        ws.cell(row=row, column=1, value=(start_hour + i) % 24)
        for line in range(1, MILL_LINES + 1):
            value = rng.normal(_PRODUCTIVITY_MEAN, _PRODUCTIVITY_STD)
            ws.cell(row=row, column=line + 1, value=round(float(min(value, 100.0)), 1))
    ws.cell(row=17, column=1, value="Среднее")

    ws[THROUGHPUT_CELL] = round(float(rng.normal(_THROUGHPUT_TPH, 15.0)), 1)

    ws.cell(row=20, column=1, value=DOWNTIME_SECTION_MARKER)
    row = 21
    for _ in range(int(rng.integers(0, 3))):
        mill = int(rng.integers(1, MILL_LINES + 1))
        reason, _code = _REASONS[int(rng.integers(0, len(_REASONS)))]
        hour = start_hour + int(rng.integers(0, 10))
        minutes = int(rng.integers(10, 150))

        ws.cell(row=row, column=1, value=f"№{mill}")
        start_min = (hour % 24) * 60 + 15
        ws.cell(row=row, column=DOWNTIME_FROM_COL + 1, value=start_min / 1440)
        ws.cell(row=row, column=DOWNTIME_TO_COL + 1, value=(start_min + minutes) % 1440 / 1440)
        ws.cell(row=row, column=6, value=minutes)
        ws.cell(row=row, column=8, value=reason)
        row += 1
        # Long reasons wrap onto a continuation row
        if rng.random() < 0.3:
            ws.cell(row=row, column=8, value="вызван дежурный слесарь")
            row += 1

    ws.cell(row=row + 1, column=1, value="Остаток шаров")


def generate_water_workbook(
    year: int = 2026,
    month: int = 1,
    seed: int = 42,
) -> bytes:
    """Water consumption workbook with two side-by-side month groups.

    The second group repeats the last day of the first month, the overlap
    seen in the real report.
    """
    rng = np.random.default_rng(seed)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Водопотребление"

    first = date(year, month, 1)
    second = (first + timedelta(days=32)).replace(day=1)
    last_of_first = second - timedelta(days=1)

    groups = [
        (first, [first + timedelta(days=d) for d in range((second - first).days)]),
        (second, [last_of_first] + [second + timedelta(days=d) for d in range(14)]),
    ]

    meter = 150_000.0
    readings: dict[date, tuple[float, float]] = {}
    for start_col, (month_start, days) in zip((1, 7), groups):
        ws.cell(row=1, column=start_col,
                value=f"{_RUSSIAN_MONTHS[month_start.month - 1]} {month_start.year} г.")
        headers = ["Дата", "Показание счетчика", "Расход за сутки, м3",
                   "Расход в час, м3", "Номинальный расход, м3"]
        for i, header in enumerate(headers):
            ws.cell(row=2, column=start_col + i, value=header)

        for i, day in enumerate(days):
            if day not in readings:
                actual = float(rng.normal(_WATER_NOMINAL_M3 * 1.03, _WATER_NOMINAL_M3 * 0.07))
                meter += actual
                readings[day] = (round(meter, 1), round(actual, 1))
            reading, actual = readings[day]

            row = 3 + i
            ws.cell(row=row, column=start_col, value=day)
            ws.cell(row=row, column=start_col + 1, value=reading)
            ws.cell(row=row, column=start_col + 2, value=actual)
            ws.cell(row=row, column=start_col + 3, value=round(actual / 24, 2))
            ws.cell(row=row, column=start_col + 4, value=_WATER_NOMINAL_M3)

    return _to_bytes(wb)


def generate_downtime_workbook(
    year: int = 2026,
    month: int = 1,
    days: int = 31,
    seed: int = 42,
) -> bytes:
    """Downtime history with one month sheet in the standard 19-column layout."""
    rng = np.random.default_rng(seed)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = f"{_RUSSIAN_MONTHS[month - 1]} {year}"

    n = len(EQUIPMENT_COLUMNS)
    ws.cell(row=1, column=2, value="Причины простоя")
    ws.cell(row=1, column=2 + n, value="Время простоя, мин")
    ws.cell(row=1, column=2 + 2 * n, value="Классификация простоя")
    ws.cell(row=2, column=1, value="Дата")
    for zone in range(3):
        for i, equipment in enumerate(EQUIPMENT_COLUMNS):
            ws.cell(row=2, column=2 + zone * n + i, value=equipment)

    row = 3
    for d in range(days):
        ws.cell(row=row, column=1, value=date(year, month, 1) + timedelta(days=d))
        if rng.random() < 0.45:
            slot = int(rng.integers(0, n))
            reason, code = _REASONS[int(rng.integers(0, len(_REASONS)))]
            ws.cell(row=row, column=2 + slot, value=reason)
            ws.cell(row=row, column=2 + n + slot, value=int(rng.integers(15, 300)))
            ws.cell(row=row, column=2 + 2 * n + slot, value=code)
            if rng.random() < 0.3:
                row += 1
                ws.cell(row=row, column=2 + slot, value="ожидание запчастей")
        row += 1

    return _to_bytes(wb)


def write_demo_workbooks(directory: str | Path) -> dict[str, Path]:
    """Write all three demo workbooks to `directory`; returns path per upload type."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    files = {
        "tech_journal": (directory / "technical_journal.xlsx", generate_shift_journal()),
        "water": (directory / "water_consumption.xlsx", generate_water_workbook()),
        "downtime": (directory / "downtime.xlsx", generate_downtime_workbook()),
    }
    paths = {}
    for upload_type, (path, content) in files.items():
        path.write_bytes(content)
        paths[upload_type] = path
        logger.info("Wrote demo %s workbook: %s", upload_type, path)
    return paths
