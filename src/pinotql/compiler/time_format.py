"""Time column formats.

pinot lets a date-time column be stored seven different ways (epoch counts in
nanos through days, plus timestamps) or as a formatted string. every one of
them has a handful of spellings, e.g. "EPOCH_MILLIS", "1:MILLISECONDS:EPOCH"
and "EPOCH|MILLISECONDS|1" all mean the same thing. the catalog maps any of
those spellings onto one encoder/decoder.

simple date formats use java SimpleDateFormat patterns ("yyyy-MM-dd"). we
translate those to strftime and refuse pattern letters we can't honour,
rather than silently producing literals pinot won't match.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pinotql.compiler.granularity import TimeUnit
from pinotql.errors import UnsupportedFormatError

logger = logging.getLogger(__name__)

FORMAT_MILLISECONDS_EPOCH = "1:MILLISECONDS:EPOCH"
SIMPLE_DATE_FORMAT = "SIMPLE_DATE_FORMAT"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def unix_micros(ts: datetime) -> int:
    """Microseconds since the epoch, in exact integer math."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = ts - EPOCH
    return (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds


def unix_millis(ts: datetime) -> int:
    return unix_micros(ts) // 1000


def from_unix_micros(micros: int) -> datetime:
    return EPOCH + timedelta(microseconds=micros)


class TimeExprFormat(ABC):
    """How instants are written to and read from one time column."""

    input_format: str

    @abstractmethod
    def encode(self, ts: datetime) -> str:
        """Render an instant as a sql literal in this format."""

    @abstractmethod
    def decode_long(self, value: int) -> datetime:
        """Decode a LONG/TIMESTAMP result cell."""

    @abstractmethod
    def decode_string(self, value: str) -> datetime:
        """Decode a STRING result cell."""

    @property
    def is_simple_date(self) -> bool:
        return False


@dataclass(frozen=True)
class EpochTimeFormat(TimeExprFormat):
    """An integer count of units since the epoch (or a TIMESTAMP, stored as millis)."""

    unit: TimeUnit
    input_format: str

    def encode(self, ts: datetime) -> str:
        # floor division truncates to the unit, same as the store does
        return str(unix_micros(ts) * 1000 // self.unit.nanos)

    def decode_long(self, value: int) -> datetime:
        # nanos lose their last three digits here; datetime stops at micros
        return from_unix_micros(value * self.unit.nanos // 1000)

    def decode_string(self, value: str) -> datetime:
        value = value.strip()
        try:
            return self.decode_long(int(value))
        except ValueError:
            pass
        # timestamp columns come back from the broker as "2024-01-01 00:00:00.0"
        ts = datetime.fromisoformat(value)
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class SimpleDateTimeFormat(TimeExprFormat):
    """A string column formatted with a java date pattern."""

    pattern: str
    strftime_format: str
    tz: str = "UTC"
    input_format: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_format", f"1:DAYS:{SIMPLE_DATE_FORMAT}:{self.pattern}")

    @property
    def is_simple_date(self) -> bool:
        return True

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.tz)

    def format(self, ts: datetime) -> str:
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        local = ts.astimezone(self.zone)
        # strftime has no millisecond directive, so fill those in by hand
        millis = f"{local.microsecond // 1000:03d}"
        return millis.join(local.strftime(part) for part in self.strftime_format.split("%f"))

    def encode(self, ts: datetime) -> str:
        return string_literal_expr(self.format(ts))

    def decode_long(self, value: int) -> datetime:
        # numeric cells for a date-only pattern like "yyyyMMdd"
        return self.decode_string(str(value))

    def decode_string(self, value: str) -> datetime:
        parsed = datetime.strptime(value, self.strftime_format)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self.zone)
        return parsed.astimezone(timezone.utc)


def string_literal_expr(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


# java pattern letter -> strftime directive, keyed on letter and run length.
# runs not listed for a letter fall back to the longest entry below them.
_JAVA_DIRECTIVES: dict[str, dict[int, str]] = {
    "y": {1: "%Y", 2: "%y", 3: "%Y"},
    "M": {1: "%m", 3: "%b", 4: "%B"},
    "d": {1: "%d"},
    "H": {1: "%H"},
    "h": {1: "%I"},
    "m": {1: "%M"},
    "s": {1: "%S"},
    "S": {1: "%f"},
    "a": {1: "%p"},
    "E": {1: "%a", 4: "%A"},
    "D": {1: "%j"},
    "Z": {1: "%z"},
}


def java_pattern_to_strftime(pattern: str) -> str:
    """Translate a java SimpleDateFormat pattern into a strftime format.

    raises ValueError for pattern letters we don't support.
    """
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "'":
            # quoted literal; '' is an escaped quote
            end = pattern.find("'", i + 1)
            if end == -1:
                raise ValueError(f"unterminated quote in pattern `{pattern}`")
            literal = pattern[i + 1 : end] or "'"
            out.append(literal.replace("%", "%%"))
            i = end + 1
            continue
        if ch.isalpha():
            run = 1
            while i + run < len(pattern) and pattern[i + run] == ch:
                run += 1
            directives = _JAVA_DIRECTIVES.get(ch)
            if directives is None:
                raise ValueError(f"unsupported pattern letter `{ch}` in `{pattern}`")
            key = max(k for k in directives if k <= run)
            out.append(directives[key])
            i += run
            continue
        out.append("%%" if ch == "%" else ch)
        i += 1
    return "".join(out)


_LEGACY_SDF = re.compile(r"^([0-9]+:[A-Z]+:)?SIMPLE_DATE_FORMAT:")

_EPOCH_ALIASES: dict[str, tuple[TimeUnit, str]] = {}
for _unit, _short in [
    (TimeUnit.NANOSECONDS, "NANOS"),
    (TimeUnit.MICROSECONDS, "MICROS"),
    (TimeUnit.MILLISECONDS, "MILLIS"),
    (TimeUnit.SECONDS, "SECONDS"),
    (TimeUnit.MINUTES, "MINUTES"),
    (TimeUnit.HOURS, "HOURS"),
    (TimeUnit.DAYS, "DAYS"),
]:
    _canonical = f"1:{_unit.value}:EPOCH"
    for _alias in (
        f"EPOCH_{_short}",
        _canonical,
        f"EPOCH|{_unit.value}",
        f"EPOCH|{_unit.value}|1",
    ):
        _EPOCH_ALIASES[_alias] = (_unit, _canonical)
_EPOCH_ALIASES["EPOCH"] = (TimeUnit.MILLISECONDS, FORMAT_MILLISECONDS_EPOCH)
_EPOCH_ALIASES["TIMESTAMP"] = (TimeUnit.MILLISECONDS, "1:MILLISECONDS:TIMESTAMP")
_EPOCH_ALIASES["1:MILLISECONDS:TIMESTAMP"] = (TimeUnit.MILLISECONDS, "1:MILLISECONDS:TIMESTAMP")


class TimeFormatCatalog:
    """Resolves declared column formats to TimeExprFormats.

    stateless apart from a small memo - the same handful of formats show up
    on every query for a table.
    """

    def __init__(self) -> None:
        self._cache: dict[str, TimeExprFormat] = {}

    def resolve(self, format_string: str, column: str = "") -> TimeExprFormat:
        cached = self._cache.get(format_string)
        if cached is not None:
            return cached

        resolved = self._resolve(format_string)
        if resolved is None:
            raise UnsupportedFormatError(column, format_string)
        self._cache[format_string] = resolved
        return resolved

    def is_supported(self, format_string: str) -> bool:
        try:
            self.resolve(format_string)
        except UnsupportedFormatError:
            return False
        return True

    def _resolve(self, format_string: str) -> TimeExprFormat | None:
        epoch = _EPOCH_ALIASES.get(format_string)
        if epoch is not None:
            unit, canonical = epoch
            return EpochTimeFormat(unit=unit, input_format=canonical)

        parsed = _split_simple_date_format(format_string)
        if parsed is None:
            return None
        pattern, tz = parsed
        return _simple_date_format(pattern, tz)


def _split_simple_date_format(format_string: str) -> tuple[str, str] | None:
    if format_string.startswith(SIMPLE_DATE_FORMAT + "|"):
        fields = format_string.split("|", 2)
        pattern = fields[1]
        tz = fields[2] if len(fields) > 2 and fields[2] else "UTC"
        return pattern, tz

    match = _LEGACY_SDF.match(format_string)
    if match:
        return format_string[match.end() :], "UTC"
    return None


def _simple_date_format(pattern: str, tz: str) -> SimpleDateTimeFormat | None:
    if not pattern:
        return None
    try:
        fmt = SimpleDateTimeFormat(pattern=pattern, strftime_format=java_pattern_to_strftime(pattern), tz=tz)
        # round trip the current instant: a pattern we can format but not read
        # back would produce filters that silently match nothing
        formatted = fmt.format(datetime.now(timezone.utc))
        if fmt.format(fmt.decode_string(formatted)) != formatted:
            raise ValueError("pattern does not round trip")
    except (ValueError, ZoneInfoNotFoundError) as e:
        logger.debug("rejecting simple date pattern %r: %s", pattern, e)
        return None
    return fmt
