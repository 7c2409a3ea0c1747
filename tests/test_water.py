from builders import JAN_1, d, workbook_bytes
from gok_dashboard.loaders import parse_water
from gok_dashboard.loaders.water import (
    MonthColumnGroup,
    discover_month_groups,
    extract_group_rows,
    merge_by_date,
)
from gok_dashboard.records import WaterDailyRecord

MONTH_ROW = ["Январь 2026 г.", "", "", "", "", "", "Февраль 2026 г."]
HEADER_ROW = [
    "Дата", "Показание счетчика", "Расход за сутки", "Расход в час", "Номинальный расход",
    "", "Дата", "Показание", "Фактический расход",
]


def _water(date_, meter=None, daily=None, hourly=None, nominal=None, label="Январь 2026 г."):
    return WaterDailyRecord(date_, meter, daily, hourly, nominal, label)


def test_discover_month_groups() -> None:
    january, february = discover_month_groups(MONTH_ROW, HEADER_ROW)

    assert january == MonthColumnGroup("Январь 2026 г.", 0, 1, 2, 3, 4)
    assert february.month_label == "Февраль 2026 г."
    assert (february.date_col, february.meter_col, february.daily_col) == (6, 7, 8)
    assert february.nominal_col is None


def test_group_without_meter_or_daily_is_skipped() -> None:
    assert discover_month_groups(["Январь 2026 г."], ["Дата", "Примечание"]) == []


def test_extract_group_rows_skips_text_dates_and_blank_rows() -> None:
    group = MonthColumnGroup("Январь 2026 г.", 0, 1, 2, 3, 4)
    rows = [
        [JAN_1, 1000, 1250, 52.1, 1200],
        ["Итого", 0, 30000, None, None],
        [JAN_1 + 1, None, None, None, 1200],
        [JAN_1 + 2, "", "1300", "", ""],
    ]

    records = extract_group_rows(group, rows)

    assert records == [
        _water(d(1), 1000.0, 1250.0, 52.1, 1200.0),
        _water(d(3), None, 1300.0, None, None),
    ]


def test_merge_fills_gaps_from_later_groups() -> None:
    merged = merge_by_date([
        _water(d(31), meter=500),
        _water(d(31), daily=80, label="Февраль 2026 г."),
    ])

    assert len(merged) == 1
    assert merged[0].meter_reading == 500
    assert merged[0].actual_daily == 80
    assert merged[0].month_label == "Январь 2026 г."


def test_merge_keeps_first_non_null_value() -> None:
    [merged] = merge_by_date([_water(d(1), meter=500), _water(d(1), meter=600)])
    assert merged.meter_reading == 500


def test_parse_water_overlapping_month_groups() -> None:
    rows = [
        MONTH_ROW,
        HEADER_ROW,
        [JAN_1 + 30, 500, None, None, 1200, "", JAN_1 + 30, None, 80],
        [JAN_1 + 29, 400, 90, None, 1200, "", JAN_1 + 31, 600, 95],
    ]

    result = parse_water(workbook_bytes({"Вода": rows}))
    by_date = {r.date: r for r in result.data}

    assert result.rows_parsed == 4
    assert len(result.data) == 3
    assert by_date[d(31)].meter_reading == 500
    assert by_date[d(31)].actual_daily == 80
    assert by_date[d(1, 2)].meter_reading == 600


def test_parse_water_reads_first_sheet_only(water_bytes) -> None:
    result = parse_water(water_bytes)

    assert [r.date for r in result.data] == [d(1), d(2)]
    assert result.data[0].nominal_daily == 1200
    assert result.warnings == []


def test_parse_water_insufficient_data() -> None:
    result = parse_water(workbook_bytes({"Вода": [["Январь 2026 г."], ["Дата"]]}))

    assert result.data == []
    assert len(result.warnings) == 1


def test_records_as_frame(water_bytes) -> None:
    frame = parse_water(water_bytes).to_frame()

    assert list(frame.columns) == [
        "date", "meter_reading", "actual_daily", "actual_hourly", "nominal_daily", "month_label",
    ]
    assert len(frame) == 2
