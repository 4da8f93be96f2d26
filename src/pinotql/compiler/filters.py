"""Dimension filters, query options and order-by expressions for the builder."""

import logging

from pinotql.compiler.time_expression import object_expr
from pinotql.compiler.time_format import string_literal_expr
from pinotql.models.query import DimensionFilter, FilterOperator, OrderByClause, QueryOption

logger = logging.getLogger(__name__)

TAUTOLOGY = "1=1"

# {col} and {val} get filled per value expression
_OPERATOR_TEMPLATES = {
    FilterOperator.EQUALS: "{col} = {val}",
    FilterOperator.NOT_EQUALS: "{col} != {val}",
    FilterOperator.CONTAINS: "{col} contains {val}",
    FilterOperator.NOT_CONTAINS: "not {col} contains {val}",
    FilterOperator.LIKE: "{col} like {val}",
    FilterOperator.NOT_LIKE: "not {col} like {val}",
    FilterOperator.GREATER_THAN: "{col} > {val}",
    FilterOperator.LESS_THAN: "{col} < {val}",
    FilterOperator.GREATER_THAN_OR_EQUAL: "{col} >= {val}",
    FilterOperator.LESS_THAN_OR_EQUAL: "{col} <= {val}",
}


def complex_field_expr(column: str, key: str = "") -> str:
    """Column reference, with an optional map key: "labels"['env']."""
    if not key:
        return object_expr(column)
    return f"{object_expr(column)}[{string_literal_expr(key)}]"


def dimension_filter_expr(dimension_filter: DimensionFilter) -> str:
    """Compile one filter into a parenthesized predicate.

    value expressions are OR-ed: ("dim" = 'a' OR "dim" = 'b'). a filter the
    editor hasn't finished (no column or no values) compiles to "". an
    operator we don't know compiles to 1=1 so a half-edited panel keeps
    rendering instead of erroring.
    """
    if not dimension_filter.column_name or not dimension_filter.value_exprs:
        return ""

    try:
        template = _OPERATOR_TEMPLATES[FilterOperator(dimension_filter.operator)]
    except ValueError:
        logger.warning(
            "unknown filter operator %r on column %r, ignoring filter",
            dimension_filter.operator,
            dimension_filter.column_name,
        )
        return TAUTOLOGY

    col = complex_field_expr(dimension_filter.column_name, dimension_filter.column_key)
    exprs = [template.format(col=col, val=val) for val in dimension_filter.value_exprs]
    return f"({' OR '.join(exprs)})"


def filter_exprs_from(filters: list[DimensionFilter]) -> list[str]:
    """Compile a list of filters, dropping incomplete ones.

    the caller joins them with AND.
    """
    exprs = []
    for f in filters:
        if not f.operator:
            continue
        expr = dimension_filter_expr(f)
        if expr:
            exprs.append(expr)
    return exprs


def query_option_expr(name: str, value: str) -> str:
    return f"SET {name}={value};"


def query_options_expr(options: list[QueryOption]) -> str:
    """Render the SET prologue, one statement per line."""
    return "\n".join(
        query_option_expr(o.name, o.value) for o in options if o.name and o.value
    )


def order_by_expr(column_expr: str, direction: str) -> str:
    # anything that isn't DESC sorts ascending
    return f"{column_expr} {'DESC' if direction.upper() == 'DESC' else 'ASC'}"


def order_by_exprs(clauses: list[OrderByClause]) -> list[str]:
    return [
        order_by_expr(complex_field_expr(c.column_name, c.column_key), c.direction)
        for c in clauses
        if c.column_name
    ]
