"""Pydantic models for pinotql."""

from pinotql.models.frame import Frame, FrameField
from pinotql.models.query import (
    AGGREGATION_COUNT,
    AGGREGATION_NONE,
    DimensionFilter,
    DisplayType,
    EditorMode,
    FilterOperator,
    OrderByClause,
    PinotDataQuery,
    QueryOption,
    QueryType,
    TimeRange,
)
from pinotql.models.result import ColumnType, DataSchema, ResultTable
from pinotql.models.schema import DateTimeFieldSpec, FieldSpec, TableSchema

__all__ = [
    "AGGREGATION_COUNT",
    "AGGREGATION_NONE",
    "ColumnType",
    "DataSchema",
    "DateTimeFieldSpec",
    "DimensionFilter",
    "DisplayType",
    "EditorMode",
    "FieldSpec",
    "FilterOperator",
    "Frame",
    "FrameField",
    "OrderByClause",
    "PinotDataQuery",
    "QueryOption",
    "QueryType",
    "ResultTable",
    "TableSchema",
    "TimeRange",
]
