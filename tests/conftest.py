"""Pytest fixtures for pinotql tests."""

from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from pinotql.engine import QueryEngine
from pinotql.executor.duckdb_executor import DuckDBExecutor
from pinotql.models.query import TimeRange
from pinotql.models.result import DataSchema, ResultTable
from pinotql.models.schema import TableSchema
from pinotql.parser.loader import SchemaRegistry

BASE_MS = 1704067200000  # 2024-01-01T00:00:00Z
MINUTE_MS = 60_000

EVENTS_COLUMNS = [
    "ts BIGINT",
    "region VARCHAR",
    "host VARCHAR",
    "latency DOUBLE",
    "bytes BIGINT",
    "message VARCHAR",
]


@pytest.fixture
def sample_schema_yaml() -> str:
    """A pinot schema with one time column per supported format family."""
    return """
schemaName: events
dimensionFieldSpecs:
  - name: region
    dataType: STRING
  - name: host
    dataType: STRING
  - name: message
    dataType: STRING
  - name: labels
    dataType: JSON
metricFieldSpecs:
  - name: latency
    dataType: DOUBLE
  - name: bytes
    dataType: LONG
dateTimeFieldSpecs:
  - name: ts
    dataType: LONG
    format: "1:MILLISECONDS:EPOCH"
    granularity: "1:MILLISECONDS"
  - name: ts_secs
    dataType: LONG
    format: "EPOCH|SECONDS|1"
    granularity: "1:SECONDS"
  - name: day
    dataType: STRING
    format: "SIMPLE_DATE_FORMAT|yyyy-MM-dd"
    granularity: "1:DAYS"
  - name: created_at
    dataType: TIMESTAMP
    format: "TIMESTAMP"
    granularity: "1:MILLISECONDS"
"""


@pytest.fixture
def table_schema(sample_schema_yaml: str) -> TableSchema:
    return TableSchema.model_validate(yaml.safe_load(sample_schema_yaml))


@pytest.fixture
def schemas_dir(tmp_path: Path, sample_schema_yaml: str) -> Path:
    """Create a temporary schemas directory with the events schema."""
    path = tmp_path / "schemas"
    path.mkdir()
    (path / "events.yaml").write_text(sample_schema_yaml)
    return path


@pytest.fixture
def registry(schemas_dir: Path) -> SchemaRegistry:
    reg = SchemaRegistry()
    reg.load_directory(schemas_dir)
    return reg


@pytest.fixture
def time_range() -> TimeRange:
    """January 2014, the range used in most rendering tests."""
    return TimeRange.model_validate(
        {
            "from": datetime(2014, 1, 1, tzinfo=timezone.utc),
            "to": datetime(2014, 2, 1, tzinfo=timezone.utc),
        }
    )


@pytest.fixture
def data_range() -> TimeRange:
    """The first two hours of 2024, covering sample_events_data."""
    return TimeRange.model_validate(
        {
            "from": datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc),
            "to": datetime(2024, 1, 1, 2, 0, tzinfo=timezone.utc),
        }
    )


@pytest.fixture
def make_table() -> Callable[..., ResultTable]:
    """Factory for result tables: make_table([("name", "TYPE"), ...], rows)."""

    def _make(columns: list[tuple[str, str]], rows: list[list]) -> ResultTable:
        return ResultTable(
            data_schema=DataSchema(
                column_names=[name for name, _ in columns],
                column_data_types=[data_type for _, data_type in columns],
            ),
            rows=rows,
        )

    return _make


@pytest.fixture
def sample_events_data() -> list[tuple]:
    """Five events over two hours, two regions."""
    return [
        (BASE_MS, "us", "h1", 10.0, 100, "GET /a"),
        (BASE_MS + 10 * MINUTE_MS, "eu", "h2", 20.0, 200, "GET /b"),
        (BASE_MS + 30 * MINUTE_MS, "us", "h1", 30.0, 300, "POST /c"),
        (BASE_MS + 65 * MINUTE_MS, "us", "h2", 40.0, 400, "GET /d"),
        (BASE_MS + 90 * MINUTE_MS, "eu", "h1", 50.0, 500, "DELETE /e"),
    ]


@pytest.fixture
def db_with_data(sample_events_data: list[tuple]) -> Generator[DuckDBExecutor, None, None]:
    """Create a DuckDB executor with the events table."""
    executor = DuckDBExecutor()
    executor.create_table_from_data("events", EVENTS_COLUMNS, sample_events_data)
    yield executor
    executor.close()


@pytest.fixture
def db_file(tmp_path: Path, sample_events_data: list[tuple]) -> Path:
    """A DuckDB file with the events table, for cli tests."""
    path = tmp_path / "events.duckdb"
    with DuckDBExecutor(str(path)) as executor:
        executor.create_table_from_data("events", EVENTS_COLUMNS, sample_events_data)
    return path


@pytest.fixture
def engine_with_data(
    schemas_dir: Path, sample_events_data: list[tuple]
) -> Generator[QueryEngine, None, None]:
    """Create a QueryEngine with the events table loaded."""
    engine = QueryEngine(schemas_dir)
    engine.executor.create_table_from_data("events", EVENTS_COLUMNS, sample_events_data)
    yield engine
    engine.close()
