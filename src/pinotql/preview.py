"""Distinct-value previews for the filter editor.

the editor shows a dropdown of values for a dimension; whatever the user
picks goes straight back into DimensionFilter.value_exprs, so values come
out of here already as sql literals.
"""

import logging

from pinotql.compiler.filters import complex_field_expr, filter_exprs_from
from pinotql.compiler.templates import SingleColumnSqlParams, render_single_column_sql
from pinotql.compiler.time_expression import object_expr
from pinotql.errors import ConfigurationError
from pinotql.extract.columns import extract_column_as_literal_exprs
from pinotql.models.query import DimensionFilter
from pinotql.models.result import ResultTable

logger = logging.getLogger(__name__)


def render_distinct_values_sql(
    table_name: str,
    column: str,
    time_filter_expr: str = "",
    filters: list[DimensionFilter] | None = None,
    limit: int = 0,
    column_key: str = "",
) -> str:
    if not table_name:
        raise ConfigurationError("table name is required")
    if not column:
        raise ConfigurationError("column name is required")

    sql = render_single_column_sql(
        SingleColumnSqlParams(
            column_expr=complex_field_expr(column, column_key),
            table_name_expr=object_expr(table_name),
            distinct=True,
            time_filter_expr=time_filter_expr,
            dimension_filter_exprs=filter_exprs_from(filters or []),
            limit=limit,
        )
    )
    logger.debug("rendered distinct values sql for %s.%s", table_name, column)
    return sql


def extract_distinct_value_exprs(table: ResultTable) -> list[str]:
    """Literal expressions from the first column; empty result, empty list."""
    if table.column_count == 0:
        return []
    return extract_column_as_literal_exprs(table, 0)
