"""End-to-end tests: render with the drivers, run on DuckDB, extract."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from pinotql.engine import QueryEngine
from pinotql.logs import ComplexField, LogsQuery
from pinotql.models.query import DimensionFilter, PinotDataQuery, TimeRange
from pinotql.settings import EngineSettings

T0 = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc)
HOUR_MS = 3_600_000
EVENTS_COLUMNS = ["ts BIGINT", "region VARCHAR", "host VARCHAR", "latency DOUBLE", "bytes BIGINT", "message VARCHAR"]


def builder_query(**overrides) -> PinotDataQuery:
    data = {
        "editorMode": "Builder",
        "tableName": "events",
        "timeColumn": "ts",
        "metricColumn": "latency",
        "aggregationFunction": "MAX",
        "intervalMs": HOUR_MS,
    }
    data.update(overrides)
    return PinotDataQuery.model_validate(data)


class TestQueryEngineRun:
    def test_builder_grouped(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Max latency per region per hour."""
        frame = engine_with_data.run(builder_query(groupByColumns=["region"]), data_range)

        assert frame.field_names == ["latency{region=eu}", "latency{region=us}", "time"]
        assert frame.get_field("time").values == [T1, T0]
        assert frame.get_field("latency{region=eu}").values == [50.0, 20.0]
        assert frame.get_field("latency{region=us}").values == [40.0, 30.0]

    def test_builder_filtered(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Dimension filters reach the store."""
        query = builder_query(
            aggregationFunction="SUM",
            metricColumn="bytes",
            filters=[{"columnName": "host", "operator": "=", "valueExprs": ["'h2'"]}],
        )
        frame = engine_with_data.run(query, data_range)
        assert frame.get_field("bytes").values == [400.0, 200.0]

    def test_builder_raw(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Raw values, newest first."""
        frame = engine_with_data.run(builder_query(aggregationFunction="NONE"), data_range)
        assert frame.get_field("latency").values == [50.0, 40.0, 30.0, 20.0, 10.0]
        assert frame.get_field("time").values[-1] == T0

    def test_builder_count(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """COUNT needs no metric column."""
        frame = engine_with_data.run(builder_query(aggregationFunction="COUNT", metricColumn=""), data_range)
        assert frame.get_field("count").values == [2.0, 3.0]

    def test_code(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Hand-written sql with macros."""
        query = PinotDataQuery.model_validate(
            {
                "editorMode": "Code",
                "tableName": "events",
                "intervalMs": HOUR_MS,
                "pinotQlCode": (
                    'SELECT $__timeGroup("ts") AS $__timeAlias(), SUM("bytes") AS $__metricAlias()\n'
                    "FROM $__table()\n"
                    'WHERE $__timeFilter("ts")\n'
                    'GROUP BY $__timeGroup("ts")\n'
                    "ORDER BY $__timeAlias() ASC"
                ),
            }
        )
        frame = engine_with_data.run(query, data_range)
        assert frame.get_field("time").values == [T0, T1]
        assert frame.get_field("metric").values == [600.0, 900.0]

    def test_code_table(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Table display keeps the columns as they come."""
        query = PinotDataQuery.model_validate(
            {
                "editorMode": "Code",
                "tableName": "events",
                "intervalMs": HOUR_MS,
                "displayType": "TABLE",
                "pinotQlCode": 'SELECT "host", COUNT(*) AS n FROM $__table() GROUP BY "host" ORDER BY "host"',
            }
        )
        frame = engine_with_data.run(query, data_range)
        assert frame.field_names == ["host", "n"]
        assert frame.get_field("host").values == ["h1", "h2"]
        assert frame.get_field("n").values == [3, 2]

    def test_noop(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Queries that aren't ready return an empty frame."""
        frame = engine_with_data.run(builder_query(queryType="PromQL"), data_range)
        assert frame.fields == []

    def test_unknown_table(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Tables need a schema."""
        with pytest.raises(KeyError, match="Unknown table: nope"):
            engine_with_data.run(builder_query(tableName="nope"), data_range)

    def test_table_without_data(self, schemas_dir: Path, data_range: TimeRange):
        """A schema with nothing loaded behind it is reported by name."""
        with QueryEngine(schemas_dir) as engine:
            with pytest.raises(ValueError, match="No data loaded for table: events"):
                engine.run(builder_query(), data_range)

    @pytest.mark.parametrize("minutes", [60, 45])
    def test_builder_grouped_stops_at_range_end(self, engine_with_data: QueryEngine, minutes: int):
        """No bucket starts after the range end, even when the end isn't on a boundary."""
        time_range = TimeRange.model_validate({"from": T0, "to": T0 + timedelta(minutes=minutes)})
        frame = engine_with_data.run(builder_query(), time_range)
        # the 65 minute event sits in the next bucket and must not show up
        assert frame.get_field("time").values == [T0]
        assert frame.get_field("latency").values == [30.0]

    def test_render_sql(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Rendering alone doesn't touch the store."""
        sql = engine_with_data.render_sql(builder_query(), data_range)
        assert sql.startswith("SELECT\n")
        assert 'MAX("latency") AS "metric"' in sql


class TestQueryEngineHelpers:
    def test_distinct_values(self, engine_with_data: QueryEngine):
        """Distinct values as sql literals."""
        assert engine_with_data.distinct_values("", "events", "region") == ["'eu'", "'us'"]

    def test_distinct_values_in_range(self, engine_with_data: QueryEngine):
        """A time range narrows the values."""
        time_range = TimeRange.model_validate(
            {
                "from": datetime(2024, 1, 1, 0, 20, tzinfo=timezone.utc),
                "to": datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc),
            }
        )
        values = engine_with_data.distinct_values("", "events", "region", time_range, "ts")
        assert values == ["'us'"]

    def test_distinct_values_filtered(self, engine_with_data: QueryEngine):
        """Other filters narrow the values."""
        filters = [DimensionFilter(column_name="region", operator="=", value_exprs=["'eu'"])]
        assert engine_with_data.distinct_values("", "events", "host", filters=filters) == ["'h1'", "'h2'"]
        filters = [DimensionFilter(column_name="latency", operator=">", value_exprs=["35"])]
        assert engine_with_data.distinct_values("", "events", "region", filters=filters) == ["'eu'", "'us'"]

    def test_distinct_values_limit(self, schemas_dir: Path, sample_events_data: list[tuple]):
        """The preview limit comes from the settings."""
        with QueryEngine(schemas_dir, settings=EngineSettings(distinct_values_limit=1)) as engine:
            engine.executor.create_table_from_data("events", EVENTS_COLUMNS, sample_events_data)
            assert engine.distinct_values("", "events", "region") == ["'eu'"]

    def test_logs_unknown_table(self, engine_with_data: QueryEngine, data_range: TimeRange):
        """Log queries need a schema too."""
        query = LogsQuery(table_name="nope", time_column="ts", log_column=ComplexField("message"))
        with pytest.raises(KeyError, match="Unknown table"):
            engine_with_data.logs(query, data_range)

    def test_list_schemas(self, engine_with_data: QueryEngine):
        """Summary of every registered schema."""
        assert engine_with_data.list_schemas() == [
            {
                "database": "",
                "table": "events",
                "dimensions": 4,
                "metrics": 2,
                "time_columns": ["ts", "ts_secs", "day", "created_at"],
                "unsupported_time_columns": [],
            }
        ]

    def test_list_schemas_flags_unsupported_formats(self, schemas_dir: Path):
        """Time columns we can't render sql for are called out, per database."""
        (schemas_dir / "analytics.yaml").write_text(
            "database: analytics\n"
            "schemas:\n"
            "  - schemaName: visits\n"
            "    dateTimeFieldSpecs:\n"
            "      - {name: ts, dataType: LONG, format: '1:SECONDS:EPOCH'}\n"
            "      - {name: week, dataType: STRING, format: 'SIMPLE_DATE_FORMAT|yyyy-ww'}\n"
        )
        with QueryEngine(schemas_dir) as engine:
            summaries = engine.list_schemas()
        assert [(s["database"], s["table"]) for s in summaries] == [("", "events"), ("analytics", "visits")]
        assert summaries[1]["time_columns"] == ["ts", "week"]
        assert summaries[1]["unsupported_time_columns"] == ["week"]

    def test_missing_schemas_dir(self, tmp_path: Path):
        """The engine fails fast without schemas."""
        with pytest.raises(FileNotFoundError):
            QueryEngine(tmp_path / "missing")
