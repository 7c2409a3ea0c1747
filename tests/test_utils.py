from datetime import date

import openpyxl
import pytest

from builders import JAN_1
from gok_dashboard.loaders.utils import (
    cell,
    clean_text,
    excel_fraction_to_time,
    excel_serial_to_date,
    is_number,
    open_workbook,
    parse_loose_numeric,
    parse_month_year,
    parse_russian_date,
    parse_sheet_label,
    sheet_grid,
)


def test_excel_serial_to_date_known_values() -> None:
    assert excel_serial_to_date(JAN_1) == date(2026, 1, 1)
    assert excel_serial_to_date(45658) == date(2025, 1, 1)
    # Time of day is discarded
    assert excel_serial_to_date(JAN_1 + 0.75) == date(2026, 1, 1)


def test_excel_serial_to_date_is_monotonic() -> None:
    dates = [excel_serial_to_date(s) for s in range(45000, 45400, 7)]
    assert dates == sorted(dates)
    assert len(set(dates)) == len(dates)


@pytest.mark.parametrize(
    ("fraction", "expected"),
    [
        (0.5, "12:00"),
        (0.25, "06:00"),
        ((8 * 60 + 15) / 1440, "08:15"),
        (0.9999999, "00:00"),
        ("0.75", "18:00"),
        ("abc", ""),
        (None, ""),
    ],
)
def test_excel_fraction_to_time(fraction, expected) -> None:
    assert excel_fraction_to_time(fraction) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("82.3", 82.3),
        (" 5 ", 5.0),
        (7, 7.0),
        (0, 0.0),
        ("", None),
        ("   ", None),
        ("#DIV/0!", None),
        ("#REF!", None),
        ("NaN", None),
        ("Infinity", None),
        (float("inf"), None),
        (True, None),
        (None, None),
        ("н/д", None),
    ],
)
def test_parse_loose_numeric(raw, expected) -> None:
    assert parse_loose_numeric(raw) == expected


def test_is_number_excludes_bool_and_text() -> None:
    assert is_number(3)
    assert is_number(2.5)
    assert not is_number(True)
    assert not is_number("3")


def test_clean_text_collapses_whitespace() -> None:
    assert clean_text("  Замена \n  футеровки ") == "Замена футеровки"
    assert clean_text(None) == ""
    assert clean_text(12) == "12"


def test_cell_past_end_of_row() -> None:
    assert cell([1, 2], 1) == 2
    assert cell([1, 2], 5) == ""
    assert cell(None, 0) == ""


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("01.01.2026", date(2026, 1, 1)),
        ("1.1.26", date(2026, 1, 1)),
        ("5.6.87", date(1987, 6, 5)),
        ("отчет за 15.03.2026", date(2026, 3, 15)),
        ("31.02.2026", None),
        ("", None),
        ("январь", None),
    ],
)
def test_parse_russian_date(text, expected) -> None:
    assert parse_russian_date(text) == expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("01.01.26см1", (date(2026, 1, 1), 1)),
        ("15.03.2026СМ2", (date(2026, 3, 15), 2)),
        ("Сводка", None),
        ("01.01.26", None),
        ("32.01.26см1", None),
    ],
)
def test_parse_sheet_label(name, expected) -> None:
    assert parse_sheet_label(name) == expected


def test_parse_month_year() -> None:
    assert parse_month_year("Январь 2026") == (1, 2026)
    assert parse_month_year("января 2025") == (1, 2025)
    assert parse_month_year("Май 2026") == (5, 2026)
    assert parse_month_year("Sheet1") is None
    assert parse_month_year("Март") == (3, date.today().year)


def test_sheet_grid_turns_dates_into_serials() -> None:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws["A1"] = date(2026, 1, 1)
    ws["B2"] = "текст"

    grid = sheet_grid(ws)

    assert grid[0][0] == JAN_1
    assert grid[0][1] == ""
    assert grid[1] == ["", "текст"]


def test_open_workbook_accepts_bytes_and_rejects_garbage(journal_bytes) -> None:
    wb = open_workbook(journal_bytes)
    assert "01.01.26см1" in wb.sheetnames

    with pytest.raises(Exception):
        open_workbook(b"not a workbook")
