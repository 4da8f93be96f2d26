"""Build the right driver for a query."""

import logging

from pinotql.compiler.time_format import TimeFormatCatalog
from pinotql.drivers.base import Driver, DriverKind, NoOpDriver, select_driver_kind
from pinotql.drivers.builder import BuilderDriver
from pinotql.drivers.code import CodeDriver
from pinotql.models.query import PinotDataQuery, TimeRange
from pinotql.models.schema import TableSchema
from pinotql.settings import EngineSettings

logger = logging.getLogger(__name__)


def new_driver(
    query: PinotDataQuery,
    table_schema: TableSchema,
    time_range: TimeRange,
    settings: EngineSettings | None = None,
    catalog: TimeFormatCatalog | None = None,
) -> Driver:
    kind = select_driver_kind(query)
    logger.debug("selected %s driver for table %r", kind.value, query.table_name)

    if kind == DriverKind.BUILDER:
        return BuilderDriver(query, table_schema, time_range, settings, catalog)
    if kind == DriverKind.CODE:
        return CodeDriver(query, table_schema, time_range, settings, catalog)
    return NoOpDriver()
