"""Driver for the visual query builder.

the builder produces one of two shapes:
  - aggregation NONE: raw metric values over time (single-metric template)
  - anything else: metric aggregated per time bucket and group-by columns

render_sql_with_macros() renders the same statement with macros in place
of the concrete table/time expressions. the editor uses it when someone
switches from builder to code mode, so they start from working code.
"""

import logging

from pinotql.compiler.filters import filter_exprs_from, order_by_exprs, query_options_expr
from pinotql.compiler.granularity import GRANULARITY_AUTO, time_granularity_from
from pinotql.compiler.macros import (
    MACRO_METRIC_ALIAS,
    MACRO_TABLE,
    MACRO_TIME_ALIAS,
    MACRO_TIME_FILTER,
    MACRO_TIME_GROUP,
    macro_expr_for,
)
from pinotql.compiler.templates import (
    SingleMetricSqlParams,
    TimeSeriesSqlParams,
    render_single_metric_sql,
    render_time_series_sql,
)
from pinotql.compiler.time_expression import (
    TIME_GROUP_OUTPUT_FORMAT,
    TimeExpressionBuilder,
    object_expr,
)
from pinotql.compiler.time_format import TimeFormatCatalog, string_literal_expr
from pinotql.drivers.base import Driver, DriverKind
from pinotql.errors import ConfigurationError
from pinotql.extract.timeseries import TimeSeriesExtractorParams, extract_time_series_frame
from pinotql.models.frame import Frame
from pinotql.models.query import AGGREGATION_COUNT, AGGREGATION_NONE, PinotDataQuery, TimeRange
from pinotql.models.result import ResultTable
from pinotql.models.schema import TableSchema
from pinotql.settings import EngineSettings

logger = logging.getLogger(__name__)


class BuilderDriver(Driver):
    kind = DriverKind.BUILDER

    def __init__(
        self,
        query: PinotDataQuery,
        table_schema: TableSchema,
        time_range: TimeRange,
        settings: EngineSettings | None = None,
        catalog: TimeFormatCatalog | None = None,
    ) -> None:
        self.query = query
        self.time_range = time_range
        self.settings = settings or EngineSettings()
        self.aggregation = query.aggregation_function.strip()

        if not query.table_name:
            raise ConfigurationError("table name is required")
        if not query.time_column:
            raise ConfigurationError("time column is required")
        if not query.metric_column and not self.is_count:
            raise ConfigurationError("metric column is required")
        if not self.aggregation:
            raise ConfigurationError("aggregation function is required")

        self.time_builder = TimeExpressionBuilder.for_column(table_schema, query.time_column, catalog)
        self.granularity = time_granularity_from(query.granularity, query.interval_size)
        if not self.is_raw and self.granularity.size.total_seconds() <= 0:
            raise ConfigurationError("interval size is required when granularity is auto")

        self.time_column_alias = self.settings.default_time_column_alias
        self.metric_column_alias = self.settings.default_metric_column_alias

    @property
    def is_count(self) -> bool:
        return self.aggregation.upper() == AGGREGATION_COUNT

    @property
    def is_raw(self) -> bool:
        return self.aggregation.upper() == AGGREGATION_NONE

    @property
    def has_explicit_granularity(self) -> bool:
        return self.query.granularity.strip().lower() not in ("", GRANULARITY_AUTO)

    def resolve_limit(self) -> int:
        if self.query.limit >= 1:
            return self.query.limit
        if not self.is_raw and self.query.group_by_columns:
            # TODO: estimate series count x buckets instead of the flat default
            return self.settings.default_limit
        if self.query.max_data_points > 0:
            return self.query.max_data_points
        return self.settings.default_limit

    def resolve_metric_column_expr(self) -> str:
        return "*" if self.is_count else object_expr(self.query.metric_column)

    def resolve_metric_name(self) -> str:
        return "count" if self.is_count else self.query.metric_column

    def render_sql(self) -> str:
        time_column = self.time_builder.time_column
        if self.is_raw:
            sql = render_single_metric_sql(
                self._single_metric_params(
                    table_name_expr=object_expr(self.query.table_name),
                    time_column_alias_expr=object_expr(self.time_column_alias),
                    metric_column_alias_expr=object_expr(self.metric_column_alias),
                    time_filter_expr=self.time_builder.time_filter_expr(self.time_range),
                )
            )
        else:
            sql = render_time_series_sql(
                self._time_series_params(
                    table_name_expr=object_expr(self.query.table_name),
                    time_group_expr=self.time_builder.time_group_expr_for_granularity(
                        self.granularity.expr
                    ),
                    time_column_alias_expr=object_expr(self.time_column_alias),
                    metric_column_alias_expr=object_expr(self.metric_column_alias),
                    time_filter_expr=self.time_builder.time_filter_bucket_aligned_expr(
                        self.time_range, self.granularity.size
                    ),
                )
            )
        logger.debug("rendered builder sql for %s.%s", self.query.table_name, time_column)
        return sql

    def render_sql_with_macros(self) -> str:
        time_column_expr = object_expr(self.time_builder.time_column)
        if self.is_raw:
            return render_single_metric_sql(
                self._single_metric_params(
                    table_name_expr=macro_expr_for(MACRO_TABLE),
                    time_column_alias_expr=macro_expr_for(MACRO_TIME_ALIAS),
                    metric_column_alias_expr=macro_expr_for(MACRO_METRIC_ALIAS),
                    time_filter_expr=macro_expr_for(MACRO_TIME_FILTER, time_column_expr),
                )
            )

        # only pin the group granularity when the user chose one; auto stays auto.
        # the filter always gets it so the rendered query reads whole buckets
        # like render_sql does
        group_args = [time_column_expr]
        if self.has_explicit_granularity:
            group_args.append(string_literal_expr(self.granularity.expr))
        return render_time_series_sql(
            self._time_series_params(
                table_name_expr=macro_expr_for(MACRO_TABLE),
                time_group_expr=macro_expr_for(MACRO_TIME_GROUP, *group_args),
                time_column_alias_expr=macro_expr_for(MACRO_TIME_ALIAS),
                metric_column_alias_expr=macro_expr_for(MACRO_METRIC_ALIAS),
                time_filter_expr=macro_expr_for(
                    MACRO_TIME_FILTER, time_column_expr, string_literal_expr(self.granularity.expr)
                ),
            )
        )

    def _single_metric_params(self, **exprs: str) -> SingleMetricSqlParams:
        return SingleMetricSqlParams(
            time_column=self.time_builder.time_column,
            metric_column_expr=self.resolve_metric_column_expr(),
            dimension_filter_exprs=filter_exprs_from(self.query.filters),
            limit=self.resolve_limit(),
            query_options_expr=query_options_expr(self.query.query_options),
            **exprs,
        )

    def _time_series_params(self, **exprs: str) -> TimeSeriesSqlParams:
        return TimeSeriesSqlParams(
            aggregation_function=self.aggregation,
            metric_column_expr=self.resolve_metric_column_expr(),
            group_by_column_exprs=[object_expr(c) for c in self.query.group_by_columns if c],
            dimension_filter_exprs=filter_exprs_from(self.query.filters),
            order_by_exprs=order_by_exprs(self.query.order_by),
            limit=self.resolve_limit(),
            query_options_expr=query_options_expr(self.query.query_options),
            **exprs,
        )

    def extract_results(self, table: ResultTable) -> Frame:
        # raw values come back in the column's own format, buckets always in millis
        time_format = self.time_builder.format if self.is_raw else TIME_GROUP_OUTPUT_FORMAT
        return extract_time_series_frame(
            table,
            TimeSeriesExtractorParams(
                metric_name=self.resolve_metric_name(),
                time_column_alias=self.time_column_alias,
                time_column_format=time_format,
                metric_column_alias=self.metric_column_alias,
                legend=self.query.legend,
            ),
        )
