"""Driver selection.

a driver turns one PinotDataQuery into sql and turns the broker's answer
back into a frame. which driver runs is decided once, up front, from plain
query fields - see select_driver_kind.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from pinotql.models.frame import Frame
from pinotql.models.query import EditorMode, PinotDataQuery, QueryType
from pinotql.models.result import ResultTable

logger = logging.getLogger(__name__)


class DriverKind(str, Enum):
    NOOP = "noop"
    BUILDER = "builder"
    CODE = "code"


def select_driver_kind(query: PinotDataQuery) -> DriverKind:
    """Pick a driver from the query type, editor mode, table and code.

    anything not fully filled in yet gets the no-op driver so the editor
    stays responsive while someone is still picking a table.
    """
    if query.query_type != QueryType.PINOT_QL:
        return DriverKind.NOOP
    if not query.table_name:
        return DriverKind.NOOP
    if query.editor_mode == EditorMode.BUILDER:
        return DriverKind.BUILDER
    if query.editor_mode == EditorMode.CODE:
        return DriverKind.CODE if query.pinot_ql_code.strip() else DriverKind.NOOP
    return DriverKind.NOOP


class Driver(ABC):
    kind: DriverKind

    @abstractmethod
    def render_sql(self) -> str:
        """Render the query as executable sql."""

    @abstractmethod
    def extract_results(self, table: ResultTable) -> Frame:
        """Decode the broker's result table into a frame."""


class NoOpDriver(Driver):
    """Placeholder for queries that aren't ready to run."""

    kind = DriverKind.NOOP

    def render_sql(self) -> str:
        return "SELECT 1;"

    def extract_results(self, table: ResultTable) -> Frame:
        return Frame()
