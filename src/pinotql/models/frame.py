"""Output frames handed back to the dashboard.

a frame is just a named list of equal-length columns ("fields"). missing
cells are None. kept as dataclasses rather than pydantic models since they're
built internally and never validated from user input.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FrameField:
    name: str
    values: list[Any]
    labels: dict[str, str] = field(default_factory=dict)
    display_name: str | None = None  # legend-formatted series name, if any


@dataclass
class Frame:
    name: str = "response"
    fields: list[FrameField] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def get_field(self, name: str) -> FrameField:
        """Look up a field by name, or by display name for pivoted series."""
        for f in self.fields:
            if f.name == name or f.display_name == name:
                return f
        raise KeyError(f"Unknown field: {name}")

    @property
    def field_names(self) -> list[str]:
        return [f.display_name or f.name for f in self.fields]

    @property
    def row_count(self) -> int:
        return len(self.fields[0].values) if self.fields else 0

    def to_records(self) -> list[dict[str, Any]]:
        """Row-oriented view, mostly for printing and json output."""
        names = self.field_names
        return [
            {name: f.values[i] for name, f in zip(names, self.fields)}
            for i in range(self.row_count)
        ]
