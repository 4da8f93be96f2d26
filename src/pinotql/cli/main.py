"""CLI for pinotql."""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated, Any

import sqlglot
import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table
from sqlglot.errors import ParseError, TokenError

from pinotql.compiler.filters import dimension_filter_expr
from pinotql.compiler.granularity import granularity_expr_from, parse_granularity_expr
from pinotql.compiler.time_format import EpochTimeFormat, TimeFormatCatalog
from pinotql.drivers.builder import BuilderDriver
from pinotql.engine import QueryEngine
from pinotql.models.frame import Frame
from pinotql.models.query import DimensionFilter, PinotDataQuery, TimeRange
from pinotql.settings import EngineSettings

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="pinotql",
    help="pinotql - render and run Apache Pinot dashboard queries",
    no_args_is_help=True,
)
console = Console()

SchemasOption = Annotated[Path, typer.Option("--schemas", "-s", help="Schemas directory")]
FromOption = Annotated[
    str | None, typer.Option("--from", help="Range start, ISO 8601 (default: an hour ago)")
]
ToOption = Annotated[str | None, typer.Option("--to", help="Range end, ISO 8601 (default: now)")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    settings = EngineSettings()
    logging.basicConfig(
        level="DEBUG" if verbose else settings.log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_query(path: Path) -> PinotDataQuery:
    """Read a query from json or yaml (yaml is a superset, so one loader)."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return PinotDataQuery.model_validate(data)


def parse_time_range(from_: str | None, to: str | None) -> TimeRange:
    end = datetime.fromisoformat(to) if to else datetime.now(timezone.utc)
    start = datetime.fromisoformat(from_) if from_ else end - timedelta(hours=1)
    return TimeRange.model_validate({"from": start, "to": end})


def pretty_sql(sql: str) -> str:
    """Reformat with sqlglot; pinot-only syntax it can't parse comes back as-is."""
    try:
        statements = sqlglot.transpile(sql, pretty=True)
    except (ParseError, TokenError) as e:
        logger.debug("not pretty printing: %s", e)
        return sql
    return ";\n\n".join(statements) + ";"


@app.command()
def render(
    query_file: Annotated[Path, typer.Argument(help="Query json/yaml file")],
    schemas_dir: SchemasOption = Path("./schemas"),
    from_: FromOption = None,
    to: ToOption = None,
    pretty: Annotated[bool, typer.Option("--pretty", help="Reformat with sqlglot")] = False,
    macros: Annotated[
        bool, typer.Option("--macros", help="Builder queries: render with macros for code mode")
    ] = False,
) -> None:
    """Render a query to sql without running it."""
    try:
        engine = QueryEngine(schemas_dir)
    except Exception as e:
        console.print(f"[red]Error loading schemas: {e}[/red]")
        raise typer.Exit(1)

    try:
        query = load_query(query_file)
        driver = engine.driver_for(query, parse_time_range(from_, to))
        if macros:
            if not isinstance(driver, BuilderDriver):
                raise ValueError("--macros only applies to builder queries")
            sql = driver.render_sql_with_macros()
        else:
            sql = driver.render_sql()
    except Exception as e:
        console.print(f"[red]Error rendering query: {e}[/red]")
        raise typer.Exit(1)

    # plain echo so the output pipes cleanly
    typer.echo(pretty_sql(sql) if pretty else sql)


@app.command()
def run(
    query_file: Annotated[Path, typer.Argument(help="Query json/yaml file")],
    schemas_dir: SchemasOption = Path("./schemas"),
    db_path: Annotated[str | None, typer.Option("--db", help="DuckDB database path")] = None,
    from_: FromOption = None,
    to: ToOption = None,
    show_sql: Annotated[bool, typer.Option("--sql", help="Show the sql before running")] = False,
    output: Annotated[str, typer.Option("--output", "-o", help="Output format: table, json")] = "table",
) -> None:
    """Run a query against DuckDB and print the resulting frame."""
    try:
        engine = QueryEngine(schemas_dir, db_path)
    except Exception as e:
        console.print(f"[red]Error loading schemas: {e}[/red]")
        raise typer.Exit(1)

    with engine:
        try:
            query = load_query(query_file)
            time_range = parse_time_range(from_, to)
            if show_sql:
                console.print(Syntax(engine.render_sql(query, time_range), "sql", theme="monokai"))
                console.print()
            frame = engine.run(query, time_range)
        except Exception as e:
            console.print(f"[red]Query error: {e}[/red]")
            raise typer.Exit(1)

    _output_frame(frame, output)


def _cell_text(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _output_frame(frame: Frame, output_format: str) -> None:
    if output_format == "json":
        typer.echo(json.dumps(frame.to_records(), indent=2, default=_cell_text))
        return

    table = Table(title=f"Results ({frame.row_count} rows)")
    for name in frame.field_names:
        table.add_column(name)
    for record in frame.to_records():
        table.add_row(*[_cell_text(v) for v in record.values()])
    console.print(table)


@app.command()
def granularity(
    expr: Annotated[str | None, typer.Argument(help="Granularity, e.g. 5:MINUTES")] = None,
    interval_ms: Annotated[
        int | None, typer.Option("--interval-ms", help="Derive a granularity from an interval")
    ] = None,
) -> None:
    """Parse a granularity, or derive one from a panel interval."""
    if (expr is None) == (interval_ms is None):
        console.print("[red]Pass either a granularity expression or --interval-ms[/red]")
        raise typer.Exit(1)

    try:
        if interval_ms is not None:
            size = timedelta(milliseconds=interval_ms)
            expr = granularity_expr_from(size)
        else:
            size = parse_granularity_expr(expr)
    except ValueError as e:
        console.print(f"[red]Invalid granularity: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Granularity")
    table.add_column("Expression", style="cyan")
    table.add_column("Size", style="green")
    table.add_column("Millis")
    table.add_row(expr, str(size), str(size // timedelta(milliseconds=1)))
    console.print(table)


@app.command("filter")
def filter_(
    column: Annotated[str, typer.Argument(help="Column name")],
    operator: Annotated[str, typer.Argument(help="Operator, e.g. = or 'not like'")],
    values: Annotated[list[str], typer.Argument(help="Value expressions, already quoted")],
    key: Annotated[str, typer.Option("--key", "-k", help="Map column key")] = "",
) -> None:
    """Compile a dimension filter into its sql predicate."""
    predicate = dimension_filter_expr(
        DimensionFilter(column_name=column, column_key=key, operator=operator, value_exprs=values)
    )
    typer.echo(predicate)


@app.command("format")
def format_(
    format_string: Annotated[str, typer.Argument(help="Time column format, e.g. 1:MILLISECONDS:EPOCH")],
) -> None:
    """Check whether a time column format is supported and show how it encodes."""
    try:
        fmt = TimeFormatCatalog().resolve(format_string)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    now = datetime.now(timezone.utc)
    table = Table(title="Time Format")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("kind", "simple date" if fmt.is_simple_date else "epoch")
    if isinstance(fmt, EpochTimeFormat):
        table.add_row("unit", fmt.unit.value)
    table.add_row("input format", fmt.input_format)
    table.add_row("now", fmt.encode(now))
    console.print(table)


@app.command()
def schemas(
    schemas_dir: SchemasOption = Path("./schemas"),
) -> None:
    """List the loaded table schemas."""
    try:
        engine = QueryEngine(schemas_dir)
    except Exception as e:
        console.print(f"[red]Error loading schemas: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Schemas")
    table.add_column("Database", style="yellow")
    table.add_column("Table", style="cyan")
    table.add_column("Dimensions")
    table.add_column("Metrics")
    table.add_column("Time Columns", style="green")
    table.add_column("Unsupported", style="red")
    for info in engine.list_schemas():
        table.add_row(
            info["database"] or "-",
            info["table"],
            str(info["dimensions"]),
            str(info["metrics"]),
            ", ".join(info["time_columns"]) or "-",
            ", ".join(info["unsupported_time_columns"]) or "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
