"""Log listing queries.

renders log lines (plus any metadata columns) for a time range, oldest
first, and decodes them into the labels/Line/Time frame log panels expect.
"""

import json
import logging
from dataclasses import dataclass, field

from pinotql.compiler.filters import complex_field_expr, filter_exprs_from, query_options_expr
from pinotql.compiler.templates import ExprWithAlias, LogSqlParams, render_log_sql
from pinotql.compiler.time_expression import TimeExpressionBuilder, object_expr
from pinotql.compiler.time_format import TimeFormatCatalog
from pinotql.errors import ConfigurationError, ExtractionError
from pinotql.extract.columns import extract_string_column, extract_time_column, get_column_idx
from pinotql.models.frame import Frame, FrameField
from pinotql.models.query import DimensionFilter, QueryOption, TimeRange
from pinotql.models.result import ResultTable
from pinotql.models.schema import TableSchema
from pinotql.settings import EngineSettings

logger = logging.getLogger(__name__)

LABELS_FIELD = "labels"
LINE_FIELD = "Line"
TIME_FIELD = "Time"


@dataclass
class ComplexField:
    name: str
    key: str = ""

    @property
    def alias(self) -> str:
        return f"{self.name}[{self.key}]" if self.key else self.name


@dataclass
class LogsQuery:
    table_name: str
    time_column: str
    log_column: ComplexField
    log_column_alias: str = ""
    metadata_columns: list[ComplexField] = field(default_factory=list)
    filters: list[DimensionFilter] = field(default_factory=list)
    query_options: list[QueryOption] = field(default_factory=list)
    limit: int = 0


class LogsBuilder:
    def __init__(
        self,
        query: LogsQuery,
        table_schema: TableSchema,
        time_range: TimeRange,
        settings: EngineSettings | None = None,
        catalog: TimeFormatCatalog | None = None,
    ) -> None:
        settings = settings or EngineSettings()
        if not query.table_name:
            raise ConfigurationError("table name is required")
        if not query.log_column.name:
            raise ConfigurationError("log column name is required")
        if not query.time_column:
            raise ConfigurationError("time column is required")

        self.query = query
        self.time_range = time_range
        self.limit = query.limit if query.limit > 0 else settings.default_limit
        self.log_column_alias = query.log_column_alias or query.log_column.alias
        self.time_builder = TimeExpressionBuilder.for_column(table_schema, query.time_column, catalog)

    def render_sql(self) -> str:
        return render_log_sql(
            LogSqlParams(
                table_name_expr=object_expr(self.query.table_name),
                time_column=self.time_builder.time_column,
                log_column_expr=complex_field_expr(self.query.log_column.name, self.query.log_column.key),
                log_column_alias=self.log_column_alias,
                metadata_columns=[
                    ExprWithAlias(expr=complex_field_expr(c.name, c.key), alias=c.alias)
                    for c in self.query.metadata_columns
                ],
                time_filter_expr=self.time_builder.time_filter_expr(self.time_range),
                dimension_filter_exprs=filter_exprs_from(self.query.filters),
                limit=self.limit,
                query_options_expr=query_options_expr(self.query.query_options),
            )
        )

    def extract_results(self, table: ResultTable) -> Frame:
        """labels (json per row), Line, Time.

        every column that isn't the line or the time becomes a label.
        """
        try:
            line_idx = get_column_idx(table, self.log_column_alias)
        except ExtractionError as e:
            raise ExtractionError(f"could not extract log lines column: {e}") from e
        try:
            time_idx = get_column_idx(table, self.time_builder.time_column)
        except ExtractionError as e:
            raise ExtractionError(f"could not extract time column: {e}") from e

        lines = extract_string_column(table, line_idx)
        times = extract_time_column(table, time_idx, self.time_builder.format)
        dims = {
            table.column_name(col): extract_string_column(table, col)
            for col in range(table.column_count)
            if col not in (line_idx, time_idx)
        }
        labels = [
            json.dumps({name: values[row] for name, values in dims.items()}, sort_keys=True)
            for row in range(table.row_count)
        ]

        logger.debug("extracted %d log lines", len(lines))
        return Frame(
            fields=[
                FrameField(name=LABELS_FIELD, values=labels),
                FrameField(name=LINE_FIELD, values=lines),
                FrameField(name=TIME_FIELD, values=times),
            ],
            meta={"frameType": "LabeledTimeValues"},
        )
