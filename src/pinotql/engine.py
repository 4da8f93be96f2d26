"""Main QueryEngine interface for pinotql."""

import logging
from pathlib import Path

from pinotql.compiler.time_expression import TimeExpressionBuilder
from pinotql.compiler.time_format import TimeFormatCatalog
from pinotql.drivers.base import Driver, DriverKind
from pinotql.drivers.factory import new_driver
from pinotql.executor.duckdb_executor import DuckDBExecutor
from pinotql.logs import LogsBuilder, LogsQuery
from pinotql.models.frame import Frame
from pinotql.models.query import DimensionFilter, PinotDataQuery, TimeRange
from pinotql.models.schema import TableSchema
from pinotql.parser.loader import SchemaRegistry
from pinotql.preview import extract_distinct_value_exprs, render_distinct_values_sql
from pinotql.settings import EngineSettings

logger = logging.getLogger(__name__)


class QueryEngine:
    """Schemas from disk, sql from the drivers, rows from duckdb.

    the same flow a datasource runs per panel query: look up the table schema,
    pick a driver, render, execute, extract.
    """

    def __init__(
        self,
        schemas_path: str | Path,
        database_path: str | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.catalog = TimeFormatCatalog()
        self.registry = SchemaRegistry()
        self.executor = DuckDBExecutor(database_path, catalog=self.catalog)

        # fail fast on broken schema files
        self.registry.load_directory(Path(schemas_path))

    def schema_for(self, database: str, table: str) -> TableSchema:
        if not table:
            return TableSchema.empty()
        return self.registry.get_schema(database, table)

    def driver_for(self, query: PinotDataQuery, time_range: TimeRange) -> Driver:
        schema = self.schema_for(query.database_name, query.table_name)
        return new_driver(query, schema, time_range, self.settings, self.catalog)

    def render_sql(self, query: PinotDataQuery, time_range: TimeRange) -> str:
        return self.driver_for(query, time_range).render_sql()

    def run(self, query: PinotDataQuery, time_range: TimeRange) -> Frame:
        driver = self.driver_for(query, time_range)
        if driver.kind == DriverKind.NOOP:
            # nothing to run yet
            return Frame()
        # code queries without a table may read anything, so only check named ones
        if query.table_name and not self.executor.table_exists(query.table_name):
            raise ValueError(f"No data loaded for table: {query.table_name}")

        sql = driver.render_sql()
        logger.debug("executing:\n%s", sql)
        return driver.extract_results(self.executor.execute(sql))

    def distinct_values(
        self,
        database: str,
        table: str,
        column: str,
        time_range: TimeRange | None = None,
        time_column: str = "",
        filters: list[DimensionFilter] | None = None,
    ) -> list[str]:
        """Values of a column as sql literals, for the filter editor."""
        time_filter_expr = ""
        if time_range is not None and time_column:
            schema = self.schema_for(database, table)
            builder = TimeExpressionBuilder.for_column(schema, time_column, self.catalog)
            time_filter_expr = builder.time_filter_expr(time_range)

        sql = render_distinct_values_sql(
            table,
            column,
            time_filter_expr=time_filter_expr,
            filters=filters,
            limit=self.settings.distinct_values_limit,
        )
        return extract_distinct_value_exprs(self.executor.execute(sql))

    def logs(self, query: LogsQuery, time_range: TimeRange, database: str = "") -> Frame:
        schema = self.schema_for(database, query.table_name)
        builder = LogsBuilder(query, schema, time_range, self.settings, self.catalog)
        return builder.extract_results(self.executor.execute(builder.render_sql()))

    def list_schemas(self) -> list[dict]:
        """One summary per registered table.

        time columns whose format we can't render sql for are listed separately,
        since any query on them fails at render time.
        """
        summaries = []
        for database in self.registry.databases():
            for table in self.registry.tables(database):
                schema = self.registry.get_schema(database, table)
                summaries.append(
                    {
                        "database": database,
                        "table": table,
                        "dimensions": len(schema.dimension_field_specs),
                        "metrics": len(schema.metric_field_specs),
                        "time_columns": [f.name for f in schema.date_time_field_specs],
                        "unsupported_time_columns": [
                            f.name
                            for f in schema.date_time_field_specs
                            if not self.catalog.is_supported(f.format)
                        ],
                    }
                )
        return summaries

    def close(self) -> None:
        self.executor.close()

    def __enter__(self) -> "QueryEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
