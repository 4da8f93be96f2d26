"""The broker's tabular result, as pinotql sees it.

pinot returns {"resultTable": {"dataSchema": {...}, "rows": [[...], ...]}}.
we keep the rows as loose python values and only coerce when a typed getter
is called - same contract as the official clients.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ColumnType(str, Enum):
    """The physical column types extraction knows how to decode."""

    INT = "INT"
    LONG = "LONG"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    STRING = "STRING"


class DataSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    column_names: list[str] = Field(default_factory=list, alias="columnNames")
    # plain strings - the broker can send types we don't handle (BOOLEAN, BYTES, ...)
    column_data_types: list[str] = Field(default_factory=list, alias="columnDataTypes")


class ResultTable(BaseModel):
    """Read-only result of a sql query."""

    model_config = ConfigDict(populate_by_name=True)

    data_schema: DataSchema = Field(default_factory=DataSchema, alias="dataSchema")
    rows: list[list[Any]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_shape(self) -> "ResultTable":
        schema = self.data_schema
        if len(schema.column_names) != len(schema.column_data_types):
            raise ValueError("dataSchema has mismatched columnNames and columnDataTypes")
        width = len(schema.column_names)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"row {i} has {len(row)} cells, expected {width}")
        return self

    @classmethod
    def from_broker_response(cls, response: dict[str, Any]) -> "ResultTable":
        """Build from a full broker json response."""
        table = response.get("resultTable")
        if table is None:
            return cls()
        return cls.model_validate(table)

    @property
    def column_names(self) -> list[str]:
        return self.data_schema.column_names

    @property
    def column_data_types(self) -> list[str]:
        return self.data_schema.column_data_types

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.data_schema.column_names)

    def column_name(self, col: int) -> str:
        return self.data_schema.column_names[col]

    def column_data_type(self, col: int) -> str:
        return self.data_schema.column_data_types[col]

    def get(self, row: int, col: int) -> Any:
        return self.rows[row][col]

    def get_long(self, row: int, col: int) -> int:
        return int(self.rows[row][col])

    def get_double(self, row: int, col: int) -> float:
        return float(self.rows[row][col])

    def get_string(self, row: int, col: int) -> str:
        value = self.rows[row][col]
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            # match the broker's json spelling
            return "true" if value else "false"
        return str(value)
