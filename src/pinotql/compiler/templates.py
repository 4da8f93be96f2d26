"""SQL templates.

four fixed query shapes. every parameter is an already-rendered sql
expression (quoted identifiers, literals, macro calls) - the templates only
do layout. output is compared byte-for-byte in tests and in the editor's
"show sql" view, so whitespace here is part of the contract:

  - query options come first as SET statements, then a blank line
  - clause keywords start a line, their items are indented four spaces
  - each dimension filter is its own "AND ..." line, and only ever follows
    a time filter (no time filter, no dimension filters)
  - the result is stripped of leading/trailing whitespace
"""

from dataclasses import dataclass, field

INDENT = "    "
DEFAULT_SINGLE_COLUMN_LIMIT = 100


@dataclass
class ExprWithAlias:
    expr: str
    alias: str = ""


@dataclass
class SingleMetricSqlParams:
    """Raw metric values over time, no aggregation."""

    table_name_expr: str
    time_column: str
    time_column_alias_expr: str
    metric_column_expr: str
    metric_column_alias_expr: str
    time_filter_expr: str
    limit: int
    dimension_filter_exprs: list[str] = field(default_factory=list)
    query_options_expr: str = ""


@dataclass
class TimeSeriesSqlParams:
    """Aggregated metric bucketed by time, optionally grouped by dimensions."""

    table_name_expr: str
    time_group_expr: str
    time_column_alias_expr: str
    aggregation_function: str
    metric_column_expr: str
    metric_column_alias_expr: str
    limit: int
    time_filter_expr: str = ""
    group_by_column_exprs: list[str] = field(default_factory=list)
    dimension_filter_exprs: list[str] = field(default_factory=list)
    order_by_exprs: list[str] = field(default_factory=list)
    query_options_expr: str = ""


@dataclass
class SingleColumnSqlParams:
    """Values of one column - used for variable queries and filter previews."""

    column_expr: str
    table_name_expr: str
    distinct: bool = False
    time_filter_expr: str = ""
    dimension_filter_exprs: list[str] = field(default_factory=list)
    limit: int = 0


@dataclass
class LogSqlParams:
    """Log lines with metadata, oldest first."""

    table_name_expr: str
    time_column: str
    log_column_expr: str
    limit: int
    log_column_alias: str = ""
    metadata_columns: list[ExprWithAlias] = field(default_factory=list)
    time_filter_expr: str = ""
    dimension_filter_exprs: list[str] = field(default_factory=list)
    query_options_expr: str = ""


def _filter_lines(time_filter_expr: str, dimension_filter_exprs: list[str]) -> list[str]:
    """The "AND ..." continuation lines after a time filter."""
    if not time_filter_expr:
        return []
    return [f"{INDENT}AND {expr}" for expr in dimension_filter_exprs]


def _finish(parts: list[str], query_options_expr: str) -> str:
    sql = "\n".join(parts)
    if query_options_expr:
        sql = f"{query_options_expr}\n\n{sql}"
    return sql.strip()


def render_single_metric_sql(params: SingleMetricSqlParams) -> str:
    parts = [
        "SELECT",
        f"{INDENT}{params.metric_column_expr} AS {params.metric_column_alias_expr},",
        f'{INDENT}"{params.time_column}" AS {params.time_column_alias_expr}',
        "FROM",
        f"{INDENT}{params.table_name_expr}",
        "WHERE",
        f"{INDENT}{params.metric_column_expr} IS NOT NULL",
    ]
    if params.time_filter_expr:
        parts.append(f"{INDENT}AND {params.time_filter_expr}")
    parts.extend(_filter_lines(params.time_filter_expr, params.dimension_filter_exprs))
    parts.append(f"ORDER BY {params.time_column_alias_expr} DESC")
    parts.append(f"LIMIT {params.limit};")
    return _finish(parts, params.query_options_expr)


def render_time_series_sql(params: TimeSeriesSqlParams) -> str:
    parts = ["SELECT"]
    parts.extend(f"{INDENT}{expr}," for expr in params.group_by_column_exprs)
    parts.append(f"{INDENT}{params.time_group_expr} AS {params.time_column_alias_expr},")
    parts.append(
        f"{INDENT}{params.aggregation_function}({params.metric_column_expr})"
        f" AS {params.metric_column_alias_expr}"
    )
    parts.append("FROM")
    parts.append(f"{INDENT}{params.table_name_expr}")

    if params.time_filter_expr:
        parts.append("WHERE")
        parts.append(f"{INDENT}{params.time_filter_expr}")
        parts.extend(_filter_lines(params.time_filter_expr, params.dimension_filter_exprs))

    parts.append("GROUP BY")
    parts.extend(f"{INDENT}{expr}," for expr in params.group_by_column_exprs)
    parts.append(f"{INDENT}{params.time_group_expr}")

    parts.append("ORDER BY")
    if params.order_by_exprs:
        parts.append(",\n".join(f"{INDENT}{expr}" for expr in params.order_by_exprs))
    else:
        parts.append(f"{INDENT}{params.time_column_alias_expr} DESC")

    parts.append(f"LIMIT {params.limit};")
    return _finish(parts, params.query_options_expr)


def render_single_column_sql(params: SingleColumnSqlParams) -> str:
    limit = params.limit if params.limit >= 1 else DEFAULT_SINGLE_COLUMN_LIMIT
    distinct = " DISTINCT" if params.distinct else ""

    parts = [
        f"SELECT{distinct} {params.column_expr}",
        f"FROM {params.table_name_expr}",
    ]
    if params.time_filter_expr:
        parts.append(f"WHERE {params.time_filter_expr}")
        parts.extend(_filter_lines(params.time_filter_expr, params.dimension_filter_exprs))
    parts.append(f"ORDER BY {params.column_expr} ASC")
    parts.append(f"LIMIT {limit};")
    return _finish(parts, "")


def render_log_sql(params: LogSqlParams) -> str:
    def aliased(expr: str, alias: str) -> str:
        return f"{expr} AS '{alias}'" if alias else expr

    parts = [
        "SELECT",
        f"{INDENT}{aliased(params.log_column_expr, params.log_column_alias)},",
    ]
    parts.extend(f"{INDENT}{aliased(c.expr, c.alias)}," for c in params.metadata_columns)
    parts.append(f'{INDENT}"{params.time_column}"')
    parts.append(f"FROM {params.table_name_expr}")
    parts.append(f"WHERE {params.log_column_expr} IS NOT NULL")
    if params.time_filter_expr:
        parts.append(f"{INDENT}AND {params.time_filter_expr}")
    parts.extend(_filter_lines(params.time_filter_expr, params.dimension_filter_exprs))

    log_order = f'"{params.log_column_alias}"' if params.log_column_alias else params.log_column_expr
    parts.append("ORDER BY")
    parts.append(f'{INDENT}"{params.time_column}" ASC,')
    parts.append(f"{INDENT}{log_order} ASC")
    parts.append(f"LIMIT {params.limit};")
    return _finish(parts, params.query_options_expr)
