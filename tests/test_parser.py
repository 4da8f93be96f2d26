"""Tests for the schema file loader and SchemaRegistry."""

import json
from pathlib import Path

import pytest

from pinotql.models.schema import TableSchema
from pinotql.parser.loader import SchemaRegistry


class TestSchemaRegistry:
    def test_load_directory(self, registry: SchemaRegistry):
        """Can load schemas from a directory."""
        assert registry.tables() == ["events"]
        schema = registry.get_schema("", "events")
        assert schema.time_column_format("ts") == "1:MILLISECONDS:EPOCH"

    def test_load_nonexistent_directory(self, tmp_path: Path):
        """Raises error for nonexistent directory."""
        registry = SchemaRegistry()
        with pytest.raises(FileNotFoundError, match="Schemas directory not found"):
            registry.load_directory(tmp_path / "nonexistent")

    def test_load_empty_directory(self, tmp_path: Path):
        """Raises error when there are no schema files."""
        empty_dir = tmp_path / "empty"
        empty_dir.mkdir()
        (empty_dir / "README.md").write_text("nothing here")

        registry = SchemaRegistry()
        with pytest.raises(ValueError, match="No schema files"):
            registry.load_directory(empty_dir)

    def test_load_json(self, tmp_path: Path):
        """Controller json is read as-is."""
        (tmp_path / "clicks.json").write_text(
            json.dumps(
                {
                    "schemaName": "clicks",
                    "dimensionFieldSpecs": [{"name": "page", "dataType": "STRING"}],
                    "dateTimeFieldSpecs": [
                        {"name": "ts", "dataType": "LONG", "format": "1:SECONDS:EPOCH", "granularity": "1:SECONDS"}
                    ],
                }
            )
        )
        registry = SchemaRegistry()
        registry.load_directory(tmp_path)
        assert registry.get_schema("", "clicks").column_names() == ["page", "ts"]

    def test_multiple_schemas_with_database(self, tmp_path: Path):
        """A file can list several schemas under one database."""
        (tmp_path / "analytics.yml").write_text(
            "database: analytics\n"
            "schemas:\n"
            "  - schemaName: views\n"
            "  - schemaName: sessions\n"
        )
        registry = SchemaRegistry()
        registry.load_directory(tmp_path)

        assert registry.databases() == ["analytics"]
        assert registry.tables("analytics") == ["sessions", "views"]
        assert registry.tables() == []

    def test_empty_file_skipped(self, schemas_dir: Path):
        """Empty files are ignored."""
        (schemas_dir / "blank.yaml").write_text("")
        registry = SchemaRegistry()
        registry.load_directory(schemas_dir)
        assert registry.tables() == ["events"]

    def test_duplicate_schema(self, registry: SchemaRegistry):
        """The same table can't be registered twice."""
        with pytest.raises(ValueError, match="Duplicate schema: events"):
            registry.add(TableSchema.empty("events"))

    def test_same_table_in_other_database(self, registry: SchemaRegistry):
        """Tables are keyed per database."""
        registry.add(TableSchema.empty("events"), "other")
        assert registry.get_schema("other", "events").schema_name == "events"

    def test_get_unknown_table_raises(self, registry: SchemaRegistry):
        """Raises KeyError for unknown tables."""
        with pytest.raises(KeyError, match="Unknown table: nope"):
            registry.get_schema("", "nope")
        with pytest.raises(KeyError, match="Unknown table: db.events"):
            registry.get_schema("db", "events")
