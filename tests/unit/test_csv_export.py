"""
Unit Tests - CSV Rendering
"""
from datetime import datetime, timezone, timedelta

import pytest

from analytics_engine.database.models import AppointmentStatus
from analytics_engine.insights.csv_export import (
    REPORT_HEADER,
    CsvDocument,
    Quoted,
    escape_field,
    format_timestamp,
)


class TestEscapeField:
    """Tests for field quoting"""

    def test_plain_text_unquoted(self):
        assert escape_field("Review") == "Review"
        assert escape_field(5) == "5"

    def test_none_is_empty(self):
        assert escape_field(None) == ""

    def test_quoted_marker_always_quotes(self):
        assert escape_field(Quoted("Great")) == '"Great"'
        assert escape_field(Quoted("")) == '""'

    def test_embedded_quotes_doubled(self):
        assert escape_field(Quoted('say "hi"')) == '"say ""hi"""'

    @pytest.mark.parametrize("text", ["a,b", 'a"b', "a\nb", "a\rb"])
    def test_special_characters_force_quoting(self, text):
        assert escape_field(text).startswith('"')

    def test_enum_renders_value(self):
        assert escape_field(AppointmentStatus.NO_SHOW) == "NO_SHOW"


class TestFormatTimestamp:
    """Tests for UTC millisecond timestamps"""

    def test_naive_is_utc(self):
        assert format_timestamp(datetime(2024, 3, 1, 9, 30, 0, 123456)) == "2024-03-01T09:30:00.123Z"

    def test_aware_converted(self):
        ts = datetime(2024, 3, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(ts) == "2024-03-01T09:30:00.000Z"


class TestCsvDocument:
    """Tests for CsvDocument"""

    def test_render_header_only(self):
        assert CsvDocument(REPORT_HEADER).render() == "Type,Date,Value,Details\n"

    def test_rows_end_with_newline(self):
        doc = CsvDocument(REPORT_HEADER)
        doc.add_row("Review", "2024-03-01T09:30:00.000Z", 5, Quoted("Great, thanks"))
        doc.add_row("Appointment", "2024-03-02T10:00:00.000Z", "CONFIRMED", Quoted("30 minutes"))

        assert doc.render().splitlines(keepends=True) == [
            "Type,Date,Value,Details\n",
            'Review,2024-03-01T09:30:00.000Z,5,"Great, thanks"\n',
            'Appointment,2024-03-02T10:00:00.000Z,CONFIRMED,"30 minutes"\n',
        ]

    def test_wrong_field_count(self):
        with pytest.raises(ValueError):
            CsvDocument(REPORT_HEADER).add_row("Review", "2024-03-01")
