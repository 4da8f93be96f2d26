"""Tests for time filter and bucketing expressions."""

from datetime import timedelta

import pytest

from pinotql.compiler.time_expression import (
    TimeExpressionBuilder,
    unquote_object_name,
    unquote_string_literal,
)
from pinotql.errors import ConfigurationError, UnsupportedFormatError
from pinotql.models.query import TimeRange
from pinotql.models.schema import TableSchema


class TestTimeFilter:
    def test_millis_filter(self, table_schema: TableSchema, time_range: TimeRange):
        """Both bounds are inclusive."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts")
        assert (
            builder.time_filter_expr(time_range)
            == '"ts" >= 1388534400000 AND "ts" <= 1391212800000'
        )

    def test_seconds_filter(self, table_schema: TableSchema, time_range: TimeRange):
        """Bounds are encoded in the column's own unit."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts_secs")
        assert builder.time_filter_expr(time_range) == '"ts_secs" >= 1388534400 AND "ts_secs" <= 1391212800'

    def test_simple_date_filter(self, table_schema: TableSchema, time_range: TimeRange):
        """String columns compare against formatted literals."""
        builder = TimeExpressionBuilder.for_column(table_schema, "day")
        assert builder.time_filter_expr(time_range) == "\"day\" >= '2014-01-01' AND \"day\" <= '2014-02-01'"

    def test_bucket_aligned_filter_on_boundary(self, table_schema: TableSchema, time_range: TimeRange):
        """A `to` already on a bucket boundary is kept, inclusive."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts")
        assert (
            builder.time_filter_bucket_aligned_expr(time_range, timedelta(days=1))
            == '"ts" >= 1388534400000 AND "ts" <= 1391212800000'
        )

    def test_bucket_aligned_truncates_from(self, table_schema: TableSchema):
        """A mid-bucket start is pulled back; a mid-bucket end closes its bucket exclusively."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts")
        time_range = TimeRange.model_validate(
            {"from": "2014-01-01T00:30:00Z", "to": "2014-01-01T01:30:00Z"}
        )
        assert (
            builder.time_filter_bucket_aligned_expr(time_range, timedelta(hours=1))
            == '"ts" >= 1388534400000 AND "ts" < 1388541600000'
        )

    def test_bucket_aligned_seconds_column(self, table_schema: TableSchema):
        """Widened bounds are encoded in the column's unit."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts_secs")
        time_range = TimeRange.model_validate(
            {"from": "2014-01-01T00:00:00Z", "to": "2014-01-01T00:07:00Z"}
        )
        assert (
            builder.time_filter_bucket_aligned_expr(time_range, timedelta(minutes=5))
            == '"ts_secs" >= 1388534400 AND "ts_secs" < 1388535000'
        )

    def test_zero_bucket_is_plain_filter(self, table_schema: TableSchema, time_range: TimeRange):
        """Without a bucket size the filter is not widened."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts")
        assert builder.time_filter_bucket_aligned_expr(time_range, timedelta(0)) == builder.time_filter_expr(
            time_range
        )


class TestTimeGroup:
    def test_time_group(self, table_schema: TableSchema):
        """Buckets convert to epoch millis."""
        builder = TimeExpressionBuilder.for_column(table_schema, "ts")
        assert builder.time_group_expr(timedelta(minutes=5)) == (
            "DATETIMECONVERT(\"ts\", '1:MILLISECONDS:EPOCH', '1:MILLISECONDS:EPOCH', '5:MINUTES')"
        )

    def test_time_group_simple_date(self, table_schema: TableSchema):
        """Simple date columns pass their canonical input format."""
        builder = TimeExpressionBuilder.for_column(table_schema, "day")
        assert builder.time_group_expr_for_granularity("1:DAYS") == (
            "DATETIMECONVERT(\"day\", '1:DAYS:SIMPLE_DATE_FORMAT:yyyy-MM-dd', "
            "'1:MILLISECONDS:EPOCH', '1:DAYS')"
        )

    def test_time_group_timestamp(self, table_schema: TableSchema):
        """Timestamp columns keep the TIMESTAMP input format."""
        builder = TimeExpressionBuilder.for_column(table_schema, "created_at")
        assert "'1:MILLISECONDS:TIMESTAMP'" in builder.time_group_expr(timedelta(hours=1))


class TestBuilderConstruction:
    def test_quoted_column(self, table_schema: TableSchema):
        """Quotes around the column name are ignored."""
        assert TimeExpressionBuilder.for_column(table_schema, '"ts"').time_column == "ts"
        assert TimeExpressionBuilder.for_column(table_schema, "`ts`").time_column == "ts"

    def test_empty_column(self, table_schema: TableSchema):
        """An empty time column is a configuration error."""
        with pytest.raises(ConfigurationError, match="cannot be empty"):
            TimeExpressionBuilder.for_column(table_schema, '""')

    def test_not_a_time_column(self, table_schema: TableSchema):
        """Columns that aren't date-time columns are rejected."""
        with pytest.raises(ConfigurationError, match="not a date-time column"):
            TimeExpressionBuilder.for_column(table_schema, "region")

    def test_unsupported_format(self):
        """A declared but unsupported format fails construction."""
        with pytest.raises(UnsupportedFormatError):
            TimeExpressionBuilder("ts", "EPOCH|FORTNIGHTS")

    def test_unquote_helpers(self):
        """One pair of quotes is stripped."""
        assert unquote_object_name('"ts"') == "ts"
        assert unquote_object_name("ts") == "ts"
        assert unquote_string_literal("'1:HOURS'") == "1:HOURS"
        assert unquote_string_literal("1:HOURS") == "1:HOURS"
