"""Pydantic models for Pinot table schemas.

these mirror the json the pinot controller hands back from /schemas/{name}.
the camelCase keys are aliases so a raw controller response validates as-is,
but python code gets to use snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field

from pinotql.errors import ConfigurationError


class FieldSpec(BaseModel):
    """A dimension or metric column."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    data_type: str = Field(alias="dataType")
    single_value_field: bool = Field(default=True, alias="singleValueField")


class DateTimeFieldSpec(FieldSpec):
    """A date-time column.

    format is the interesting bit - things like "1:MILLISECONDS:EPOCH" or
    "SIMPLE_DATE_FORMAT|yyyy-MM-dd". granularity is informational only, we
    never read it when building sql.
    """

    format: str
    granularity: str | None = None


class TableSchema(BaseModel):
    """Snapshot of a table schema, immutable for the lifetime of a query."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    schema_name: str = Field(alias="schemaName")
    dimension_field_specs: list[FieldSpec] = Field(default_factory=list, alias="dimensionFieldSpecs")
    metric_field_specs: list[FieldSpec] = Field(default_factory=list, alias="metricFieldSpecs")
    date_time_field_specs: list[DateTimeFieldSpec] = Field(
        default_factory=list, alias="dateTimeFieldSpecs"
    )

    @classmethod
    def empty(cls, name: str = "") -> "TableSchema":
        return cls(schema_name=name)

    def time_column_format(self, column: str) -> str:
        """Get the declared format of a date-time column."""
        for spec in self.date_time_field_specs:
            if spec.name == column:
                return spec.format
        raise ConfigurationError(f"column `{column}` is not a date-time column")

    def column_names(self) -> list[str]:
        # dimensions, metrics, then time columns - same order the controller uses
        specs = [*self.dimension_field_specs, *self.metric_field_specs, *self.date_time_field_specs]
        return [s.name for s in specs]
