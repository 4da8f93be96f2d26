"""Typed column extraction from broker results.

the broker tells us each column's physical type; we decode a whole column at
a time into plain python lists. unknown types degrade to a column of zeros
(and an error log) instead of failing the whole panel - the rest of the
frame is usually still useful.
"""

import logging
import math
from datetime import datetime
from typing import Any

from pinotql.compiler.time_format import TimeExprFormat, TimeFormatCatalog, string_literal_expr
from pinotql.errors import ExtractionError, UnsupportedFormatError
from pinotql.models.frame import FrameField
from pinotql.models.result import ColumnType, ResultTable

logger = logging.getLogger(__name__)

_INTEGER_TYPES = {ColumnType.INT.value, ColumnType.LONG.value}
_FLOAT_TYPES = {ColumnType.FLOAT.value, ColumnType.DOUBLE.value}


def get_column_idx(table: ResultTable, name: str) -> int:
    """Index of a column by exact (case-sensitive) name."""
    try:
        return table.column_names.index(name)
    except ValueError:
        raise ExtractionError(f"column `{name}` not found") from None


def extract_column(table: ResultTable, col: int) -> list[Any]:
    data_type = table.column_data_type(col)
    rows = range(table.row_count)
    if data_type in _INTEGER_TYPES:
        return [table.get_long(r, col) for r in rows]
    if data_type in _FLOAT_TYPES:
        return [table.get_double(r, col) for r in rows]
    if data_type == ColumnType.STRING.value:
        return [table.get_string(r, col) for r in rows]

    logger.error(
        "column `%s` has unsupported type %s, filling with zeros", table.column_name(col), data_type
    )
    return [0] * table.row_count


def float_literal_expr(value: float) -> str:
    if math.isfinite(value) and value.is_integer():
        return str(int(value))
    return repr(value)


def extract_column_as_literal_exprs(table: ResultTable, col: int) -> list[str]:
    """Decode a column into sql literals, ready to drop into a filter."""
    data_type = table.column_data_type(col)
    values = extract_column(table, col)
    if data_type == ColumnType.STRING.value:
        return [string_literal_expr(v) for v in values]
    if data_type in _FLOAT_TYPES:
        return [float_literal_expr(v) for v in values]
    return [str(v) for v in values]


def extract_string_column(table: ResultTable, col: int) -> list[str]:
    """Any column as text; used for labels."""
    return [table.get_string(r, col) for r in range(table.row_count)]


def extract_double_column(table: ResultTable, col: int) -> list[float]:
    try:
        return [table.get_double(r, col) for r in range(table.row_count)]
    except (TypeError, ValueError) as e:
        raise ExtractionError(f"column `{table.column_name(col)}` is not numeric: {e}") from e


def extract_time_column(
    table: ResultTable,
    col: int,
    time_format: TimeExprFormat | str,
    catalog: TimeFormatCatalog | None = None,
) -> list[datetime]:
    """Decode a time column.

    simple date formats parse each cell as a string; everything else is an
    epoch count in the format's unit. one bad cell fails the whole column.
    """
    if isinstance(time_format, str):
        try:
            time_format = (catalog or TimeFormatCatalog()).resolve(time_format, table.column_name(col))
        except UnsupportedFormatError as e:
            raise ExtractionError(str(e)) from e

    decoded = []
    for r in range(table.row_count):
        cell = table.get(r, col)
        try:
            if time_format.is_simple_date or isinstance(cell, str):
                decoded.append(time_format.decode_string(table.get_string(r, col)))
            else:
                decoded.append(time_format.decode_long(table.get_long(r, col)))
        except (TypeError, ValueError, OverflowError) as e:
            raise ExtractionError(
                f"failed to parse time value {cell!r} in column `{table.column_name(col)}`: {e}"
            ) from e
    return decoded


def extract_column_to_field(table: ResultTable, col: int) -> FrameField:
    return FrameField(name=table.column_name(col), values=extract_column(table, col))
