"""Workbook loaders for the plant operator Excel reports."""

from .downtime_history import parse_downtime_history
from .shift_journal import parse_shift_journal
from .water import parse_water

__all__ = [
    "parse_shift_journal",
    "parse_water",
    "parse_downtime_history",
]
