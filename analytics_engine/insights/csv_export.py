"""
CSV rendering for business reports.

Rows are built as lists of fields and rendered by one function,
``format_row``, which owns all quoting. A field wrapped in ``Quoted`` is
always enclosed in double quotes; any other field is quoted only when it
contains a delimiter, quote or line break. Embedded quotes are doubled.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Sequence

from analytics_engine.insights.schemas import Report

REPORT_HEADER = ("Type", "Date", "Value", "Details")

_NEEDS_QUOTING = (",", '"', "\n", "\r")


class Quoted(str):
    """Marks a field that is always written inside quotes."""


def escape_field(value: object) -> str:
    """Render one field, quoting and doubling embedded quotes as needed."""
    if value is None:
        text = ""
    elif isinstance(value, Enum):
        text = str(value.value)
    else:
        text = str(value)

    if isinstance(value, Quoted) or any(ch in text for ch in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def format_row(fields: Iterable[object]) -> str:
    return ",".join(escape_field(field) for field in fields)


def format_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-03-01T09:30:00.000Z"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class CsvDocument:
    """
    Header plus data rows, rendered with a trailing newline per row.

    Example:
        doc = CsvDocument(REPORT_HEADER)
        doc.add_row("Review", "2024-03-01T09:30:00.000Z", 5, Quoted("Great"))
        text = doc.render()
    """

    def __init__(self, header: Sequence[str]):
        self.header = list(header)
        self.rows: List[List[object]] = []

    def add_row(self, *fields: object) -> "CsvDocument":
        if len(fields) != len(self.header):
            raise ValueError(f"Expected {len(self.header)} fields, got {len(fields)}")
        self.rows.append(list(fields))
        return self

    def render(self) -> str:
        lines = [format_row(self.header)] + [format_row(row) for row in self.rows]
        return "".join(line + "\n" for line in lines)


def report_to_csv(report: Report) -> str:
    """
    Flatten a report to ``Type,Date,Value,Details`` rows.

    All review rows come first, then all appointment rows, each group in
    the order the report lists them.
    """
    doc = CsvDocument(REPORT_HEADER)
    for review in report.reviews:
        doc.add_row(
            "Review",
            format_timestamp(review.created_at),
            review.rating,
            Quoted(review.comment or ""),
        )
    for appointment in report.appointments:
        doc.add_row(
            "Appointment",
            format_timestamp(appointment.date),
            appointment.status,
            Quoted(f"{appointment.duration} minutes"),
        )
    return doc.render()
