"""Exception types raised by pinotql.

everything derives from PinotQLError so callers (the cli, a host datasource)
can catch one thing. the value-ish ones also subclass ValueError since that's
what they are from the caller's point of view.
"""


class PinotQLError(Exception):
    """Base class for all pinotql errors."""


class ConfigurationError(PinotQLError, ValueError):
    """A required query field is missing or holds an invalid value."""


class UnsupportedFormatError(PinotQLError, ValueError):
    """A time column declares a format we don't know how to encode."""

    def __init__(self, column: str, format_string: str) -> None:
        self.column = column
        self.format_string = format_string
        super().__init__(f"time column `{column}` has unsupported format `{format_string}`")


class MacroError(PinotQLError):
    """A macro invocation could not be expanded.

    carries the macro name and where the invocation starts in the raw code
    (1-based line/col), which is what the query editor needs to point at it.
    """

    def __init__(self, macro: str, line: int, column: int, reason: str) -> None:
        self.macro = macro
        self.line = line
        self.column = column
        self.reason = reason
        super().__init__(
            f"failed to expand macro `{macro}` (line {line}, col {column}): {reason}"
        )


class ExtractionError(PinotQLError):
    """The result table could not be decoded into a frame."""
