"""Time filter and time bucketing expressions for one time column."""

from datetime import datetime, timedelta

from pinotql.compiler.granularity import granularity_expr_from, timedelta_to_nanos
from pinotql.compiler.time_format import (
    FORMAT_MILLISECONDS_EPOCH,
    TimeExprFormat,
    TimeFormatCatalog,
    from_unix_micros,
    unix_micros,
)
from pinotql.errors import ConfigurationError
from pinotql.models.query import TimeRange
from pinotql.models.schema import TableSchema

# every bucketed query is converted to millis so results decode the same way
TIME_GROUP_OUTPUT_FORMAT = FORMAT_MILLISECONDS_EPOCH


def unquote_object_name(name: str) -> str:
    """Strip one pair of surrounding double quotes or backticks."""
    if len(name) >= 2 and name[0] == name[-1] and name[0] in ('"', "`"):
        return name[1:-1]
    return name


def unquote_string_literal(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    return value


def object_expr(name: str) -> str:
    return f'"{name}"'


class TimeExpressionBuilder:
    """Builds time sql for a single time column.

    construct with for_column() when you have a schema; the constructor
    takes the declared format directly, which is handy for the code editor's
    explicit timeColumnFormat and for tests.
    """

    def __init__(
        self,
        time_column: str,
        time_column_format: str,
        catalog: TimeFormatCatalog | None = None,
    ) -> None:
        catalog = catalog or TimeFormatCatalog()
        self.time_column = time_column
        self.time_column_format = time_column_format
        self.format: TimeExprFormat = catalog.resolve(time_column_format, column=time_column)

    @classmethod
    def for_column(
        cls,
        schema: TableSchema,
        time_column: str,
        catalog: TimeFormatCatalog | None = None,
    ) -> "TimeExpressionBuilder":
        """Look up the column in the schema and resolve its format.

        the editor sometimes hands us a quoted name ("ts" or `ts`), so quotes
        are stripped before the lookup.
        """
        time_column = time_column.strip('"`')
        if not time_column:
            raise ConfigurationError("time column cannot be empty")
        return cls(time_column, schema.time_column_format(time_column), catalog)

    def time_expr(self, ts: datetime) -> str:
        return self.format.encode(ts)

    def time_filter_expr(self, time_range: TimeRange) -> str:
        return self._range_expr(time_range.from_, time_range.to, "<=")

    def time_filter_bucket_aligned_expr(self, time_range: TimeRange, bucket_size: timedelta) -> str:
        """Time filter widened to whole buckets.

        `from` is floored to its bucket. a `to` inside a bucket is pushed to
        the end of that bucket and compared exclusively, so the last bucket is
        complete and nothing past it is read. a `to` already on a bucket
        boundary stays as it is, inclusive like the plain filter.
        """
        bucket = timedelta_to_nanos(bucket_size) // 1000
        if bucket <= 0:
            return self.time_filter_expr(time_range)

        from_micros = unix_micros(time_range.from_)
        to_micros = unix_micros(time_range.to)
        from_ = from_unix_micros(from_micros - from_micros % bucket)
        if to_micros % bucket == 0:
            return self._range_expr(from_, time_range.to, "<=")
        return self._range_expr(from_, from_unix_micros(to_micros - to_micros % bucket + bucket), "<")

    def _range_expr(self, from_: datetime, to: datetime, upper_op: str) -> str:
        col = object_expr(self.time_column)
        return f"{col} >= {self.time_expr(from_)} AND {col} {upper_op} {self.time_expr(to)}"

    def time_group_expr(self, bucket_size: timedelta) -> str:
        return self.time_group_expr_for_granularity(granularity_expr_from(bucket_size))

    def time_group_expr_for_granularity(self, granularity_expr: str) -> str:
        return (
            f"DATETIMECONVERT({object_expr(self.time_column)}, "
            f"'{self.format.input_format}', '{TIME_GROUP_OUTPUT_FORMAT}', '{granularity_expr}')"
        )
