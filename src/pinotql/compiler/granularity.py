"""Time units and bucket granularities.

pinot spells a bucket size as "<size>:<UNIT>", e.g. "5:MINUTES". python's
timedelta only goes down to microseconds, so nanosecond granularities get
rounded - nobody buckets dashboards by the nanosecond anyway.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from pinotql.errors import ConfigurationError

logger = logging.getLogger(__name__)

GRANULARITY_AUTO = "auto"


class TimeUnit(str, Enum):
    NANOSECONDS = "NANOSECONDS"
    MICROSECONDS = "MICROSECONDS"
    MILLISECONDS = "MILLISECONDS"
    SECONDS = "SECONDS"
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"

    @property
    def nanos(self) -> int:
        return _UNIT_NANOS[self]

    def to_timedelta(self, size: int = 1) -> timedelta:
        return timedelta(microseconds=size * self.nanos // 1000)

    @classmethod
    def parse(cls, value: str) -> "TimeUnit":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ConfigurationError(f"unknown time unit `{value}`") from None


_UNIT_NANOS = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
    TimeUnit.SECONDS: 1_000_000_000,
    TimeUnit.MINUTES: 60 * 1_000_000_000,
    TimeUnit.HOURS: 3600 * 1_000_000_000,
    TimeUnit.DAYS: 86400 * 1_000_000_000,
}

# largest unit first; days are deliberately absent so day buckets read as N:HOURS
_EXPR_UNITS = [
    TimeUnit.HOURS,
    TimeUnit.MINUTES,
    TimeUnit.SECONDS,
    TimeUnit.MILLISECONDS,
    TimeUnit.MICROSECONDS,
]


def timedelta_to_nanos(d: timedelta) -> int:
    return ((d.days * 86400 + d.seconds) * 1_000_000 + d.microseconds) * 1000


def granularity_expr_from(bucket_size: timedelta) -> str:
    """Render a bucket size as "<size>:<UNIT>".

    picks the largest unit the bucket is at least one of and truncates to it,
    so 90 minutes becomes "1:HOURS". units are never mixed.
    """
    nanos = timedelta_to_nanos(bucket_size)
    for unit in _EXPR_UNITS:
        if nanos >= unit.nanos:
            return f"{nanos // unit.nanos}:{unit.value}"
    return f"{nanos}:{TimeUnit.NANOSECONDS.value}"


def parse_granularity_expr(expr: str) -> timedelta:
    """Parse "<size>:<UNIT>" (or a bare "<UNIT>") into a timedelta.

    a missing, unparseable or non-positive size is treated as 1. the unit is
    case-insensitive; an unknown unit is an error.
    """
    fields = expr.strip().split(":", 1)
    if len(fields) == 1:
        size_str, unit_str = "1", fields[0]
    else:
        size_str, unit_str = fields

    try:
        size = int(size_str.strip())
    except ValueError:
        logger.debug("granularity %r has an invalid size, using 1", expr)
        size = 1
    if size < 1:
        size = 1

    return TimeUnit.parse(unit_str).to_timedelta(size)


@dataclass(frozen=True)
class TimeGranularity:
    """A resolved bucket: the expression pinot sees plus its size."""

    expr: str
    size: timedelta


def time_granularity_from(expr: str, default_size: timedelta) -> TimeGranularity:
    """Resolve the builder's granularity field.

    empty or "auto" means "whatever the panel interval is".
    """
    if expr.strip() == "" or expr.strip().lower() == GRANULARITY_AUTO:
        return TimeGranularity(expr=granularity_expr_from(default_size), size=default_size)

    return TimeGranularity(expr=expr.strip(), size=parse_granularity_expr(expr))
