"""Pydantic models for dashboard queries.

PinotDataQuery is what the query editor serializes. it covers both editor
modes (builder and code) in one flat model since the editor keeps the fields
of the mode you're not using around - switching back shouldn't lose work.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AGGREGATION_COUNT = "COUNT"
AGGREGATION_NONE = "NONE"


class QueryType(str, Enum):
    PINOT_QL = "PinotQL"
    PROM_QL = "PromQL"
    PINOT_VARIABLE_QUERY = "PinotVariableQuery"


class EditorMode(str, Enum):
    BUILDER = "Builder"
    CODE = "Code"


class DisplayType(str, Enum):
    """How the code editor wants its results shaped."""

    TABLE = "TABLE"
    TIMESERIES = "TIMESERIES"
    LOGS = "LOGS"


class FilterOperator(str, Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    CONTAINS = "contains"
    NOT_CONTAINS = "not contains"
    LIKE = "like"
    NOT_LIKE = "not like"
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_THAN_OR_EQUAL = ">="
    LESS_THAN_OR_EQUAL = "<="


class _EditorModel(BaseModel):
    # editor json is camelCase, python side is snake_case
    model_config = ConfigDict(populate_by_name=True)


class TimeRange(_EditorModel):
    """Dashboard time range. both bounds are inclusive.

    naive datetimes are assumed to be utc - grafana always sends utc anyway
    and mixing naive/aware datetimes blows up arithmetic later.
    """

    from_: datetime = Field(alias="from")
    to: datetime

    @field_validator("from_", "to")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeRange":
        if self.to < self.from_:
            raise ValueError("time range `to` must not be before `from`")
        return self

    @property
    def duration(self) -> timedelta:
        return self.to - self.from_


class DimensionFilter(_EditorModel):
    """A per-column filter from the builder.

    value_exprs are already sql literals (quoted strings, bare numbers), the
    editor gets them from the distinct-values preview so we don't requote.
    operator stays a plain string - the editor can send anything and unknown
    operators degrade to 1=1 rather than failing validation.
    """

    column_name: str = Field(default="", alias="columnName")
    column_key: str = Field(default="", alias="columnKey")
    operator: str = ""
    value_exprs: list[str] = Field(default_factory=list, alias="valueExprs")


class QueryOption(_EditorModel):
    name: str = ""
    value: str = ""


class OrderByClause(_EditorModel):
    column_name: str = Field(default="", alias="columnName")
    column_key: str = Field(default="", alias="columnKey")
    direction: str = "ASC"


class PinotDataQuery(_EditorModel):
    """A single dashboard query as serialized by the editor."""

    query_type: QueryType | str = Field(default=QueryType.PINOT_QL, alias="queryType")
    editor_mode: EditorMode | str = Field(default=EditorMode.BUILDER, alias="editorMode")
    database_name: str = Field(default="", alias="databaseName")
    table_name: str = Field(default="", alias="tableName")
    display_type: str = Field(default=DisplayType.TIMESERIES.value, alias="displayType")
    interval_ms: int = Field(default=0, alias="intervalMs", ge=0)
    max_data_points: int = Field(default=0, alias="maxDataPoints")

    # builder mode
    time_column: str = Field(default="", alias="timeColumn")
    metric_column: str = Field(default="", alias="metricColumn")
    group_by_columns: list[str] = Field(default_factory=list, alias="groupByColumns")
    aggregation_function: str = Field(default="", alias="aggregationFunction")
    limit: int = 0
    filters: list[DimensionFilter] = Field(default_factory=list)
    granularity: str = ""
    order_by: list[OrderByClause] = Field(default_factory=list, alias="orderBy")
    query_options: list[QueryOption] = Field(default_factory=list, alias="queryOptions")
    legend: str = ""

    # code mode
    pinot_ql_code: str = Field(default="", alias="pinotQlCode")
    time_column_alias: str = Field(default="", alias="timeColumnAlias")
    time_column_format: str = Field(default="", alias="timeColumnFormat")
    metric_column_alias: str = Field(default="", alias="metricColumnAlias")

    @field_validator("query_type", mode="before")
    @classmethod
    def _coerce_query_type(cls, value: object) -> object:
        # unknown query types are kept as raw strings, they just select the no-op driver
        try:
            return QueryType(value)
        except ValueError:
            return value

    @field_validator("editor_mode", mode="before")
    @classmethod
    def _coerce_editor_mode(cls, value: object) -> object:
        try:
            return EditorMode(value)
        except ValueError:
            return value

    @property
    def interval_size(self) -> timedelta:
        return timedelta(milliseconds=self.interval_ms)
