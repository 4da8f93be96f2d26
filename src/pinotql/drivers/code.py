"""Driver for hand-written PinotQL with macros."""

import logging

from pinotql.compiler.macros import MacroEngine
from pinotql.compiler.time_format import FORMAT_MILLISECONDS_EPOCH, TimeFormatCatalog
from pinotql.drivers.base import Driver, DriverKind
from pinotql.errors import ConfigurationError, ExtractionError
from pinotql.extract.columns import extract_column_to_field, extract_time_column, get_column_idx
from pinotql.extract.timeseries import TimeSeriesExtractorParams, extract_time_series_frame
from pinotql.models.frame import Frame, FrameField
from pinotql.models.query import DisplayType, PinotDataQuery, TimeRange
from pinotql.models.result import ResultTable
from pinotql.models.schema import TableSchema
from pinotql.settings import EngineSettings

logger = logging.getLogger(__name__)


class CodeDriver(Driver):
    """Runs the user's sql through the macro engine.

    the user names their own time/metric columns via aliases; when they
    don't, the defaults match what $__timeAlias() and $__metricAlias() expand
    to, so queries written with the macros just work.
    """

    kind = DriverKind.CODE

    def __init__(
        self,
        query: PinotDataQuery,
        table_schema: TableSchema,
        time_range: TimeRange,
        settings: EngineSettings | None = None,
        catalog: TimeFormatCatalog | None = None,
    ) -> None:
        settings = settings or EngineSettings()
        if not query.table_name:
            raise ConfigurationError("table name is required")
        if query.interval_size.total_seconds() <= 0:
            raise ConfigurationError("interval size is required")
        if not query.pinot_ql_code.strip():
            raise ConfigurationError("code is required")

        self.query = query
        self.catalog = catalog or TimeFormatCatalog()
        self.time_column_alias = query.time_column_alias or settings.default_time_column_alias
        self.metric_column_alias = query.metric_column_alias or settings.default_metric_column_alias
        self.time_column_format = query.time_column_format or FORMAT_MILLISECONDS_EPOCH

        self.macro_engine = MacroEngine(
            table_name=query.table_name,
            time_range=time_range,
            interval_size=query.interval_size,
            table_schema=table_schema,
            time_alias=self.time_column_alias,
            metric_alias=self.metric_column_alias,
            catalog=self.catalog,
        )

    def render_sql(self) -> str:
        return self.macro_engine.expand(self.query.pinot_ql_code)

    def extract_results(self, table: ResultTable) -> Frame:
        if self.query.display_type == DisplayType.TABLE.value:
            return self.extract_table_results(table)
        return self.extract_time_series_results(table)

    def extract_time_series_results(self, table: ResultTable) -> Frame:
        return extract_time_series_frame(
            table,
            TimeSeriesExtractorParams(
                metric_name=self.metric_column_alias,
                time_column_alias=self.time_column_alias,
                time_column_format=self.time_column_format,
                metric_column_alias=self.metric_column_alias,
                legend=self.query.legend,
            ),
        )

    def extract_table_results(self, table: ResultTable) -> Frame:
        """Every column as-is, with the time column (if we can decode it) first."""
        frame = Frame()
        time_idx = -1
        try:
            time_idx = get_column_idx(table, self.time_column_alias)
            times = extract_time_column(table, time_idx, self.time_column_format, self.catalog)
            frame.fields.append(FrameField(name=self.time_column_alias, values=times))
        except ExtractionError as e:
            # no usable time column is fine for a table, it's just another column then
            logger.debug("table result has no decodable time column: %s", e)
            time_idx = -1

        for col in range(table.column_count):
            if col != time_idx:
                frame.fields.append(extract_column_to_field(table, col))
        return frame
