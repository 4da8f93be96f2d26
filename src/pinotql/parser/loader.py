"""Schema registry backed by a directory of Pinot schema files.

in production the schema comes from the controller's /schemas endpoint. for
local work, demos and tests we read the same documents from disk instead -
either the json the controller hands out, or yaml if you want comments.

a file holds one schema document, or a list of them under `schemas`.
an optional top-level `database` puts everything in the file under that
database; without it tables live in the default ("") database.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from pinotql.models.schema import TableSchema

logger = logging.getLogger(__name__)

_SCHEMA_SUFFIXES = (".yaml", ".yml", ".json")


class SchemaRegistry:
    """Lookup of table schemas by (database, table)."""

    def __init__(self) -> None:
        self.schemas: dict[tuple[str, str], TableSchema] = {}

    def load_directory(self, path: Path) -> None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Schemas directory not found: {path}")

        files = sorted(p for p in path.glob("**/*") if p.suffix in _SCHEMA_SUFFIXES)
        if not files:
            raise ValueError(f"No schema files found in {path}")

        for schema_file in files:
            self._load_file(schema_file)
        logger.debug("loaded %d schemas from %s", len(self.schemas), path)

    def _load_file(self, path: Path) -> None:
        with open(path) as f:
            data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)

        if data is None:
            return  # empty file

        database = data.get("database", "")
        documents: list[dict[str, Any]] = data.get("schemas", [data])
        for doc in documents:
            self.add(TableSchema.model_validate(doc), database)

    def add(self, schema: TableSchema, database: str = "") -> None:
        key = (database, schema.schema_name)
        if key in self.schemas:
            raise ValueError(f"Duplicate schema: {self._qualified(*key)}")
        self.schemas[key] = schema

    def get_schema(self, database: str, table: str) -> TableSchema:
        key = (database, table)
        if key not in self.schemas:
            raise KeyError(f"Unknown table: {self._qualified(*key)}")
        return self.schemas[key]

    def tables(self, database: str = "") -> list[str]:
        return sorted(table for db, table in self.schemas if db == database)

    def databases(self) -> list[str]:
        return sorted({db for db, _ in self.schemas})

    @staticmethod
    def _qualified(database: str, table: str) -> str:
        return f"{database}.{table}" if database else table
