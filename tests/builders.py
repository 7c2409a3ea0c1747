import io
from datetime import date

import openpyxl


def write_rows(ws, rows: list[list]) -> None:
    """Write a 0-indexed grid into a worksheet, skipping empty cells."""
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is None or value == "":
                continue
            ws.cell(row=r + 1, column=c + 1, value=value)


def workbook_bytes(sheets: dict[str, list[list]]) -> bytes:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        write_rows(wb.create_sheet(title), rows)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def shift_rows(
    hours: list[list] | None = None,
    throughput=None,
    downtime: list[list] | None = None,
) -> list[list]:
    """Grid of one shift sheet.

    hours: rows for the hourly block starting at row 4 ([hour, mill1..mill5]).
    downtime: rows after the "Простой мельниц" header at row 18.
    """
    rows: list[list] = [[] for _ in range(18)]
    rows[0] = ["Технический журнал"]
    rows[3] = ["Час", "Мельница 1", "Мельница 2", "Мельница 3", "Мельница 4", "Мельница 5"]
    for i, hour_row in enumerate(hours or []):
        rows[4 + i] = list(hour_row)
    if throughput is not None:
        rows[16] = list(rows[16]) + [None] * (21 - len(rows[16]))
        rows[16][20] = throughput
    if downtime is not None:
        rows.append(["Простой мельниц"])
        rows.extend(list(r) for r in downtime)
    return rows


def downtime_entry(equipment, time_from=None, time_to=None, minutes=None, reason=None) -> list:
    """Downtime section row: A=equipment, C/D=from/to, F=minutes, H=reason."""
    return [equipment, None, time_from, time_to, None, minutes, None, reason]


def history_row(serial=None, slot: int = 0, reason=None, minutes=None, code=None) -> list:
    """Downtime history row: [date | reasons x6 | minutes x6 | classification x6]."""
    row = [None] * 19
    row[0] = serial
    row[1 + slot] = reason
    row[7 + slot] = minutes
    row[13 + slot] = code
    return row


HISTORY_HEADER = [
    ["", "Причины простоя", "", "", "", "", "", "Время простоя, мин", "", "", "", "", "",
     "Классификация простоя"],
    ["Дата"] + ["МШР №1", "МШЦ №2", "МШР №3", "МШЦ №4", "ОФ", "ДСК"] * 3,
]

# Excel serial of 2026-01-01
JAN_1 = 46023


def d(day: int, month: int = 1, year: int = 2026) -> date:
    return date(year, month, day)
