import pytest

from builders import d, downtime_entry, shift_rows, workbook_bytes
from gok_dashboard.loaders import parse_shift_journal
from gok_dashboard.loaders.shift_journal import locate_shift_layout
from gok_dashboard.records import MillThroughputRecord, ProductivityRecord


def _parse(rows, sheet="01.01.26см1"):
    return parse_shift_journal(workbook_bytes({sheet: rows}))


def test_single_productivity_cell_from_text_value() -> None:
    result = _parse(shift_rows(hours=[[5, "82.3"]]))

    assert result.productivity.data == [ProductivityRecord(d(1), 1, 5, 1, 82.3)]
    assert result.productivity.warnings == []


def test_productivity_block_rules() -> None:
    rows = shift_rows(hours=[
        [24, 80, None, None, None, None],          # hour 24 wraps to 0
        ["Среднее", 81, 82, 83, 84, 85],            # summary row
        [25, 90],                                   # out of range
        ["x", 90],                                  # not an hour
        [10, "#DIV/0!", 77, None, None, None],
    ])

    result = _parse(rows)
    records = result.productivity.data

    assert ProductivityRecord(d(1), 1, 0, 1, 80.0) in records
    assert ProductivityRecord(d(1), 1, 10, 2, 77.0) in records
    assert len(records) == 2

    [warning] = result.productivity.warnings
    assert "#DIV/0!" in warning.message
    assert warning.sheet == "01.01.26см1"
    assert (warning.row, warning.column) == (9, 2)


def test_fractional_hour_rows_are_skipped() -> None:
    result = _parse(shift_rows(hours=[[8, 80], [8.5, 95], ["9.0", 90]]))

    assert [(r.hour, r.value_pct) for r in result.productivity.data] == [(8, 80.0), (9, 90.0)]
    assert result.productivity.warnings == []


def test_throughput_cell() -> None:
    ok = _parse(shift_rows(throughput=512.5), sheet="02.01.26см2")
    assert ok.mill_throughput.data == [MillThroughputRecord(d(2), 2, 512.5)]

    bad = _parse(shift_rows(throughput="н/д"))
    assert bad.mill_throughput.data == [MillThroughputRecord(d(1), 1, None)]
    assert len(bad.mill_throughput.warnings) == 1

    empty = _parse(shift_rows())
    assert empty.mill_throughput.data == []


CONTINUATION = [None] * 7


@pytest.mark.parametrize(
    ("section", "expected"),
    [
        pytest.param(
            [downtime_entry("№1", None, None, 30, "Замена футеровки"),
             CONTINUATION + ["продолжение работ"]],
            [("№1", 30.0, "Замена футеровки\nпродолжение работ")],
            id="continuation-appends-reason",
        ),
        pytest.param(
            [downtime_entry("№2", None, None, 0, None)],
            [],
            id="blank-template-row-dropped",
        ),
        pytest.param(
            [downtime_entry("№3", None, None, 45, None)],
            [("№3", 45.0, None)],
            id="minutes-without-reason",
        ),
        pytest.param(
            [downtime_entry("№3", None, None, "12 часов", "Ремонт")],
            [("№3", 720.0, "Ремонт")],
            id="hours-text",
        ),
        pytest.param(
            [downtime_entry("№1", None, None, 10, "a"),
             downtime_entry("№2", None, None, 20, "b")],
            [("№1", 10.0, "a"), ("№2", 20.0, "b")],
            id="new-equipment-flushes",
        ),
        pytest.param(
            [CONTINUATION + ["без оборудования"],
             downtime_entry("№4", None, None, 15, "c")],
            [("№4", 15.0, "c")],
            id="continuation-before-any-record-ignored",
        ),
        pytest.param(
            [downtime_entry("№1", None, None, 10, "a"),
             ["Загрузка шаров"],
             downtime_entry("№2", None, None, 20, "b")],
            [("№1", 10.0, "a")],
            id="terminator-ends-section",
        ),
    ],
)
def test_downtime_section_state_machine(section, expected) -> None:
    result = _parse(shift_rows(downtime=section))

    got = [(r.equipment, r.minutes, r.reason_text) for r in result.downtime.data]
    assert got == expected


def test_downtime_times() -> None:
    rows = shift_rows(downtime=[downtime_entry("№1", 0.5, "13:30", 90, "a")])

    [record] = _parse(rows).downtime.data

    assert record.time_from == "12:00"
    assert record.time_to == "13:30"
    assert (record.date, record.shift_number) == (d(1), 1)


def test_sheet_without_downtime_marker_has_no_downtime() -> None:
    rows = shift_rows(hours=[[8, 80]])
    rows.append(["№1", None, None, None, None, 30, None, "Ремонт"])

    assert _parse(rows).downtime.data == []


def test_non_shift_sheets_are_ignored() -> None:
    rows = shift_rows(hours=[[8, 80]], throughput=500)
    result = parse_shift_journal(workbook_bytes({"Сводка": rows, "Графики": rows}))

    assert result.productivity.data == []
    assert result.mill_throughput.data == []
    assert result.productivity.warnings == []


def test_journal_fixture_counts(journal_bytes) -> None:
    result = parse_shift_journal(journal_bytes)

    assert result.productivity.rows_parsed == 14
    assert {r.shift_number for r in result.productivity.data} == {1, 2}
    assert result.mill_throughput.rows_parsed == 2
    [downtime] = result.downtime.data
    assert downtime.reason_text == "пожар в кабельном канале\nвызвана бригада"


def test_locate_shift_layout() -> None:
    grid = [["x"], ["Простой мельниц"], ["№1"]]

    layout = locate_shift_layout("03.02.26см2", grid)

    assert (layout.date, layout.shift_number, layout.downtime_start) == (d(3, 2), 2, 2)
    assert locate_shift_layout("Лист1", grid) is None
