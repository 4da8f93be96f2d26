"""Macro expansion for hand-written PinotQL.

the code editor lets people write sql with placeholders like
$__timeFilter("ts") that we fill in from the dashboard's time range, panel
interval and table schema. syntax is `$__name` optionally followed by a
parenthesized, comma separated argument list.

expansion is one left-to-right pass over the input. at each `$__` the
macros are tried in a fixed order (longer names that share a prefix first,
so $__timeFilterMillis never gets eaten by $__timeFilter). rendered text is
written to the output and never scanned again, so a macro can't expand into
another macro.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable

from pinotql.compiler.granularity import parse_granularity_expr, time_granularity_from
from pinotql.compiler.time_expression import (
    TimeExpressionBuilder,
    object_expr,
    unquote_object_name,
    unquote_string_literal,
)
from pinotql.compiler.time_format import FORMAT_MILLISECONDS_EPOCH, TimeFormatCatalog, unix_millis
from pinotql.errors import MacroError, PinotQLError
from pinotql.models.query import TimeRange
from pinotql.models.schema import TableSchema

logger = logging.getLogger(__name__)

MACRO_TABLE = "table"
MACRO_TIME_FILTER = "timeFilter"
MACRO_TIME_GROUP = "timeGroup"
MACRO_TIME_TO = "timeTo"
MACRO_TIME_FROM = "timeFrom"
MACRO_TIME_ALIAS = "timeAlias"
MACRO_METRIC_ALIAS = "metricAlias"
MACRO_TIME_FILTER_MILLIS = "timeFilterMillis"
MACRO_TIME_FROM_MILLIS = "timeFromMillis"
MACRO_TIME_TO_MILLIS = "timeToMillis"
MACRO_GRANULARITY_MILLIS = "granularityMillis"
MACRO_PANEL_MILLIS = "panelMillis"

# priority order; name -> (min args, max args)
MACROS: dict[str, tuple[int, int]] = {
    MACRO_TIME_FILTER_MILLIS: (1, 2),
    MACRO_TIME_FROM_MILLIS: (0, 0),
    MACRO_TIME_TO_MILLIS: (0, 0),
    MACRO_TABLE: (0, 0),
    MACRO_TIME_FILTER: (1, 2),
    MACRO_TIME_GROUP: (1, 2),
    MACRO_TIME_TO: (1, 1),
    MACRO_TIME_ALIAS: (0, 0),
    MACRO_METRIC_ALIAS: (0, 0),
    MACRO_TIME_FROM: (1, 1),
    MACRO_GRANULARITY_MILLIS: (0, 1),
    MACRO_PANEL_MILLIS: (0, 0),
}

# python's regex alternation is ordered, which gives us the priority for free
_MACRO_RE = re.compile(r"\$__(" + "|".join(MACROS) + r")(\([^)]*\))?")


def macro_expr_for(name: str, *args: str) -> str:
    """Render a macro invocation, e.g. macro_expr_for("timeGroup", '"ts"')."""
    return f"$__{name}({', '.join(args)})"


def parse_macro_args(group: str | None) -> list[str]:
    if not group:
        return []
    inner = group.strip()[1:-1]
    if not inner.strip():
        return []
    return [arg.strip() for arg in inner.split(",")]


def invocation_coords(text: str, index: int) -> tuple[int, int]:
    """1-based (line, column) of a character offset."""
    line = text.count("\n", 0, index) + 1
    line_start = text.rfind("\n", 0, index) + 1
    return line, index - line_start + 1


def _check_arg_count(name: str, args: list[str]) -> None:
    lo, hi = MACROS[name]
    if lo <= len(args) <= hi:
        return
    if lo == hi:
        noun = "argument" if lo == 1 else "arguments"
        raise ValueError(f"expected {lo} {noun}, got {len(args)}")
    raise ValueError(f"expected {lo} to {hi} arguments, got {len(args)}")


@dataclass
class MacroEngine:
    """Expands macros against one query's context."""

    table_name: str
    time_range: TimeRange
    interval_size: timedelta
    table_schema: TableSchema = field(default_factory=TableSchema.empty)
    time_alias: str = "time"
    metric_alias: str = "metric"
    catalog: TimeFormatCatalog = field(default_factory=TimeFormatCatalog)

    def expand(self, code: str) -> str:
        renderers: dict[str, Callable[[list[str]], str]] = {
            MACRO_TIME_FILTER_MILLIS: self._time_filter_millis,
            MACRO_TIME_FROM_MILLIS: lambda _: str(unix_millis(self.time_range.from_)),
            MACRO_TIME_TO_MILLIS: lambda _: str(unix_millis(self.time_range.to)),
            MACRO_TABLE: lambda _: object_expr(self.table_name),
            MACRO_TIME_FILTER: self._time_filter,
            MACRO_TIME_GROUP: self._time_group,
            MACRO_TIME_TO: lambda args: self._builder(args[0]).time_expr(self.time_range.to),
            MACRO_TIME_ALIAS: lambda _: object_expr(self.time_alias),
            MACRO_METRIC_ALIAS: lambda _: object_expr(self.metric_alias),
            MACRO_TIME_FROM: lambda args: self._builder(args[0]).time_expr(self.time_range.from_),
            MACRO_GRANULARITY_MILLIS: self._granularity_millis,
            MACRO_PANEL_MILLIS: lambda _: str(
                unix_millis(self.time_range.to) - unix_millis(self.time_range.from_)
            ),
        }

        out: list[str] = []
        last = 0
        for match in _MACRO_RE.finditer(code):
            name = match.group(1)
            args = parse_macro_args(match.group(2))
            try:
                _check_arg_count(name, args)
                rendered = renderers[name](args)
            except (ValueError, PinotQLError) as e:
                line, col = invocation_coords(code, match.start())
                raise MacroError(name, line, col, str(e)) from e
            out.append(code[last : match.start()])
            out.append(f" {rendered} ")
            last = match.end()
        out.append(code[last:])

        expanded = "".join(out).strip()
        logger.debug("expanded macros for table %s", self.table_name)
        return expanded

    def _builder(self, column_arg: str) -> TimeExpressionBuilder:
        return TimeExpressionBuilder.for_column(
            self.table_schema, unquote_object_name(column_arg), self.catalog
        )

    def _filter(self, builder: TimeExpressionBuilder, args: list[str]) -> str:
        # a granularity argument widens the range to whole buckets
        if len(args) > 1:
            bucket = parse_granularity_expr(unquote_string_literal(args[1]))
            return builder.time_filter_bucket_aligned_expr(self.time_range, bucket)
        return builder.time_filter_expr(self.time_range)

    def _time_filter(self, args: list[str]) -> str:
        return self._filter(self._builder(args[0]), args)

    def _time_filter_millis(self, args: list[str]) -> str:
        builder = TimeExpressionBuilder(
            unquote_object_name(args[0]), FORMAT_MILLISECONDS_EPOCH, self.catalog
        )
        return self._filter(builder, args)

    def _time_group(self, args: list[str]) -> str:
        granularity_expr = unquote_string_literal(args[1]) if len(args) > 1 else ""
        granularity = time_granularity_from(granularity_expr, self.interval_size)
        return self._builder(args[0]).time_group_expr_for_granularity(granularity.expr)

    def _granularity_millis(self, args: list[str]) -> str:
        size = self.interval_size
        if args:
            size = parse_granularity_expr(unquote_string_literal(args[0]))
        return str(size // timedelta(milliseconds=1))
