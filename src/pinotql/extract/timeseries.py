"""Long-to-wide pivot for time series results.

the broker gives us one row per (timestamp, label set) - a long table. the
dashboard wants one column per series plus a shared time column, so:

  1. collect distinct timestamps in the order they first appear (the query's
     own ORDER BY decides, we don't re-sort)
  2. name each row's series: the metric name, plus sorted labels in braces
  3. one column per series, as long as the time domain, None by default
  4. write each value at its timestamp's slot - last write wins
  5. series fields sorted by name, then the time field last
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime

from pinotql.compiler.time_format import TimeExprFormat
from pinotql.extract.columns import (
    extract_double_column,
    extract_string_column,
    extract_time_column,
    get_column_idx,
)
from pinotql.models.frame import Frame, FrameField
from pinotql.models.result import ResultTable

logger = logging.getLogger(__name__)

TIME_FIELD_NAME = "time"


@dataclass
class TimeSeriesMetric:
    timestamp: datetime
    value: float
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class TimeSeriesExtractorParams:
    metric_name: str
    time_column_alias: str
    time_column_format: TimeExprFormat | str
    metric_column_alias: str
    legend: str = ""


def extract_metrics(
    table: ResultTable,
    time_column_alias: str,
    time_column_format: TimeExprFormat | str,
    metric_column_alias: str,
) -> list[TimeSeriesMetric]:
    """Decode rows into metrics; every other column becomes a label."""
    time_idx = get_column_idx(table, time_column_alias)
    times = extract_time_column(table, time_idx, time_column_format)

    metric_idx = get_column_idx(table, metric_column_alias)
    values = extract_double_column(table, metric_idx)

    dimensions = {
        table.column_name(col): extract_string_column(table, col)
        for col in range(table.column_count)
        if col not in (time_idx, metric_idx)
    }

    return [
        TimeSeriesMetric(
            timestamp=times[row],
            value=values[row],
            labels={name: column[row] for name, column in dimensions.items()},
        )
        for row in range(table.row_count)
    ]


def series_key(metric_name: str, labels: dict[str, str]) -> str:
    """metric or metric{a=1,b=2} - label keys sorted."""
    if not labels:
        return metric_name
    formatted = ",".join(f"{k}={labels[k]}" for k in sorted(labels))
    return f"{metric_name}{{{formatted}}}"


def format_series_name(legend: str, labels: dict[str, str]) -> str | None:
    """Apply a legend template like "{{ region }} latency".

    returns None for a blank legend, meaning "use the series key".
    """
    legend = legend.strip()
    if not legend:
        return None
    if "{{" not in legend:
        return legend
    for key, value in labels.items():
        pattern = r"\{\{\s*" + re.escape(key) + r"\s*\}\}"
        legend = re.sub(pattern, lambda _: value, legend)
    return legend


def time_domain(metrics: list[TimeSeriesMetric]) -> list[datetime]:
    """Distinct timestamps in first-seen order."""
    # dicts keep insertion order, so this is an ordered set
    return list(dict.fromkeys(m.timestamp for m in metrics))


def pivot(metrics: list[TimeSeriesMetric], metric_name: str, legend: str = "") -> Frame:
    times = time_domain(metrics)
    index = {ts: i for i, ts in enumerate(times)}

    series: dict[str, list[float | None]] = {}
    series_labels: dict[str, dict[str, str]] = {}
    for m in metrics:
        key = series_key(metric_name, m.labels)
        if key not in series:
            series[key] = [None] * len(times)
            series_labels[key] = dict(m.labels)
        series[key][index[m.timestamp]] = m.value

    fields = [
        FrameField(
            name=key,
            values=series[key],
            labels=series_labels[key],
            display_name=format_series_name(legend, series_labels[key]),
        )
        for key in sorted(series)
    ]
    fields.append(FrameField(name=TIME_FIELD_NAME, values=times))

    logger.debug("pivoted %d rows into %d series", len(metrics), len(series))
    return Frame(fields=fields)


def extract_time_series_frame(table: ResultTable, params: TimeSeriesExtractorParams) -> Frame:
    metrics = extract_metrics(
        table, params.time_column_alias, params.time_column_format, params.metric_column_alias
    )
    return pivot(metrics, params.metric_name, params.legend)
