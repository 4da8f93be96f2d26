"""Local query execution on DuckDB.

stands in for a pinot broker when you want to actually run what the drivers
render without a cluster: demos, the cli's `run`, end-to-end tests.

pinot sql and duckdb sql overlap a lot for what we render, with two gaps:
  - query options (`SET name=value;`) are pinot-only, so we drop them
  - DATETIMECONVERT doesn't exist, so we register a udf that buckets with
    the same format catalog the renderer uses
the udf only takes numeric (epoch) time columns.
"""

import logging
import re
from datetime import datetime
from typing import Any

import duckdb
from duckdb.sqltypes import BIGINT, VARCHAR

from pinotql.compiler.granularity import parse_granularity_expr, timedelta_to_nanos
from pinotql.compiler.time_format import TimeFormatCatalog, from_unix_micros, unix_micros
from pinotql.models.result import ColumnType, DataSchema, ResultTable

logger = logging.getLogger(__name__)

_QUERY_OPTION_RE = re.compile(r"^\s*SET\s+[^;]*;", re.IGNORECASE)

_DUCKDB_TYPES = {
    "TINYINT": ColumnType.INT,
    "SMALLINT": ColumnType.INT,
    "INTEGER": ColumnType.INT,
    "UTINYINT": ColumnType.INT,
    "USMALLINT": ColumnType.INT,
    "BIGINT": ColumnType.LONG,
    "UINTEGER": ColumnType.LONG,
    "UBIGINT": ColumnType.LONG,
    "HUGEINT": ColumnType.LONG,
    "FLOAT": ColumnType.FLOAT,
    "DOUBLE": ColumnType.DOUBLE,
}


def column_type_for(duckdb_type: str) -> ColumnType:
    """Map a duckdb type name onto the types extraction understands."""
    if duckdb_type.startswith("DECIMAL"):
        return ColumnType.DOUBLE
    return _DUCKDB_TYPES.get(duckdb_type, ColumnType.STRING)


def strip_query_options(sql: str) -> str:
    """Drop the leading SET statements pinot uses for query options."""
    sql = sql.lstrip()
    while match := _QUERY_OPTION_RE.match(sql):
        logger.debug("ignoring query option: %s", match.group(0).strip())
        sql = sql[match.end() :].lstrip()
    return sql


class DuckDBExecutor:
    """Execute rendered queries against DuckDB and hand back ResultTables."""

    def __init__(self, database_path: str | None = None, catalog: TimeFormatCatalog | None = None) -> None:
        self.database_path = database_path
        self.catalog = catalog or TimeFormatCatalog()
        self._conn: duckdb.DuckDBPyConnection | None = None  # lazy init

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = duckdb.connect(self.database_path or ":memory:")
            self._conn.create_function(
                "DATETIMECONVERT",
                self._datetime_convert,
                [BIGINT, VARCHAR, VARCHAR, VARCHAR],
                BIGINT,
            )
        return self._conn

    def _datetime_convert(self, value: int, input_format: str, output_format: str, granularity: str) -> int:
        ts = self.catalog.resolve(input_format).decode_long(value)
        bucket_micros = timedelta_to_nanos(parse_granularity_expr(granularity)) // 1000
        micros = unix_micros(ts)
        bucketed = from_unix_micros(micros - micros % bucket_micros)
        return int(self.catalog.resolve(output_format).encode(bucketed))

    def execute(self, sql: str) -> ResultTable:
        """Run one statement and return it the way the broker would."""
        relation = self.conn.sql(strip_query_options(sql))
        if relation is None:
            return ResultTable()

        column_types = [column_type_for(str(t)) for t in relation.types]
        rows = [
            [_cell(value, column_types[i]) for i, value in enumerate(row)]
            for row in relation.fetchall()
        ]
        logger.debug("duckdb returned %d rows", len(rows))
        return ResultTable(
            data_schema=DataSchema(
                column_names=list(relation.columns),
                column_data_types=[t.value for t in column_types],
            ),
            rows=rows,
        )

    def create_table_from_data(
        self, table_name: str, columns: list[str], data: list[tuple[Any, ...]]
    ) -> None:
        """Create a table from in-memory rows.

        columns are full definitions, e.g. "ts BIGINT".
        """
        if not data:
            raise ValueError("Cannot create table from empty data")

        placeholders = ", ".join(["?"] * len(columns))
        col_defs = ", ".join(columns)

        self.conn.execute(f'CREATE OR REPLACE TABLE "{table_name}" ({col_defs})')
        self.conn.executemany(f'INSERT INTO "{table_name}" VALUES ({placeholders})', data)

    def table_exists(self, table_name: str) -> bool:
        result = self.conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        )
        return result.fetchone()[0] > 0

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DuckDBExecutor":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def _cell(value: Any, column_type: ColumnType) -> Any:
    """Loose python value, shaped like the broker's json."""
    if value is None or column_type != ColumnType.STRING:
        return value
    if isinstance(value, (str, bool)):
        return value
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return str(value)
