"""
Main CLI application for the atomic knowledge graph.

Provides the primary command-line interface for:
- Exploring branches, paths and neighborhoods
- Detecting and managing relationships
- Loading units
- Managing configuration
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, NoReturn, Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from atomic_graph import __version__
from atomic_graph.config import Settings, get_default_config_path, load_config
from atomic_graph.core.exceptions import AtomicGraphError
from atomic_graph.graph_store import (
    BranchDirection,
    GraphService,
    RelationshipEdge,
    RelationshipSource,
    parse_relationship_type,
)
from atomic_graph.storage import Database, KnowledgeUnit, UnitFilter, UnitType
from atomic_graph.storage.models import parse_datetime
from atomic_graph.utils.logging import setup_logging, get_logger

app = typer.Typer(
    name="atomic-graph",
    help="Atomic Graph - Explore relationships between knowledge units",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)

# Raised to DEBUG by --verbose
_log_level = "WARNING"

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file",
    exists=True,
    dir_okay=False,
)
DatabaseOption = typer.Option(
    None,
    "--db",
    help="Path to SQLite database (overrides configuration)",
)
JsonOption = typer.Option(
    False,
    "--json",
    help="Print JSON instead of tables",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]Atomic Graph[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging",
    ),
) -> None:
    """
    Atomic Graph - Explore relationships between knowledge units.

    Use 'atomic-graph --help' for command list.
    """
    global _log_level
    _log_level = "DEBUG" if verbose else "WARNING"


def _load_settings(config_file: Optional[Path], db_path: Optional[Path]) -> Settings:
    settings = load_config(config_file or get_default_config_path())
    setup_logging(settings.logging, level=_log_level)
    if db_path is not None:
        storage = settings.storage.model_copy(update={"database_path": db_path})
        settings = settings.model_copy(update={"storage": storage})
    return settings


@contextmanager
def _open_service(
    config_file: Optional[Path],
    db_path: Optional[Path],
) -> Iterator[GraphService]:
    """Open a service on its own database connection and close it afterwards."""
    settings = _load_settings(config_file, db_path)
    database = Database.create(settings)
    try:
        yield GraphService(database, settings)
    finally:
        database.close()


def _fail(message: str, error: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {error}")
    logger.debug(f"{message}: {error}")
    raise typer.Exit(1)


def _print_json(data: object) -> None:
    typer.echo(json.dumps(data, indent=2))


def _fmt_confidence(value: float | None) -> str:
    return f"{value:.2f}" if value is not None else "-"


def _edges_table(title: str, edges: list[RelationshipEdge]) -> Table:
    table = Table(title=title, show_header=True)
    table.add_column("From", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("To", style="cyan")
    table.add_column("Source", style="dim")
    table.add_column("Confidence", justify="right")

    for edge in edges:
        table.add_row(
            edge.from_id,
            edge.relationship_type.value,
            edge.to_id,
            edge.source.value,
            _fmt_confidence(edge.confidence),
        )
    return table


@app.command()
def branches(
    root_id: str = typer.Argument(..., help="Unit to expand"),
    depth: Optional[int] = typer.Option(
        None,
        "--depth",
        "-d",
        help="Levels to expand (1-4)",
    ),
    direction: Optional[str] = typer.Option(
        None,
        "--direction",
        help="Edges to follow: out, in or both",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        help="Maximum edges kept per unit",
    ),
    types: Optional[List[str]] = typer.Option(
        None,
        "--type",
        "-t",
        help="Relationship types to follow (repeatable or comma separated)",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
    as_json: bool = JsonOption,
) -> None:
    """
    Expand a unit's branches column by column.

    Examples:
        atomic-graph branches unit-1 --depth 3 --direction both
        atomic-graph branches unit-1 --type builds_on,references
    """
    try:
        with _open_service(config_file, db_path) as service:
            result = service.get_branches(
                root_id,
                depth=depth,
                direction=direction,
                limit_per_node=limit,
                relationship_type=types,
            )
    except AtomicGraphError as e:
        _fail("Branch traversal failed", e)

    if as_json:
        _print_json(result.to_dict())
        return

    meta = result.meta
    console.print(Panel(
        f"[bold]{result.root.title}[/bold] ({result.root.id})\n"
        f"depth={meta.depth} direction={meta.direction.value} "
        f"limitPerNode={meta.limit_per_node}",
        border_style="blue",
    ))

    for column in result.columns[1:]:
        table = Table(title=f"Depth {column.depth}", show_header=True)
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Type")
        table.add_column("Category", style="dim")
        for unit in column.units:
            table.add_row(unit.id, unit.title, unit.type, unit.category)
        console.print(table)

    if not result.edges:
        console.print("[yellow]No related units found[/yellow]")

    summary = Table(show_header=False, box=None)
    summary.add_column("Metric", style="dim")
    summary.add_column("Value", style="bold")
    summary.add_row("Visited", str(meta.visited_count))
    summary.add_row("Edges", str(meta.edge_count))
    summary.add_row("Back edges filtered", str(meta.filtered_back_edges))
    summary.add_row("Truncated", "yes" if meta.truncated else "no")
    console.print(summary)


@app.command()
def path(
    source_id: str = typer.Argument(..., help="Start unit"),
    target_id: str = typer.Argument(..., help="End unit"),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
    as_json: bool = JsonOption,
) -> None:
    """Find the shortest path between two units (edges taken both ways)."""
    try:
        with _open_service(config_file, db_path) as service:
            result = service.get_shortest_path(source_id, target_id)
    except AtomicGraphError as e:
        _fail("Path query failed", e)

    if as_json:
        _print_json(result.to_dict())
        return

    if not result.found:
        console.print(f"[yellow]{result.path_description}[/yellow]")
        return

    console.print(f"[bold]Path[/bold] ({result.hops} hops): {result.path_description}")


@app.command()
def neighborhood(
    unit_id: str = typer.Argument(..., help="Center unit"),
    hops: Optional[int] = typer.Option(
        None,
        "--hops",
        help="Hop radius",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
    as_json: bool = JsonOption,
) -> None:
    """List units within a hop radius of a unit."""
    try:
        with _open_service(config_file, db_path) as service:
            result = service.get_neighborhood(unit_id, max_hops=hops)
    except AtomicGraphError as e:
        _fail("Neighborhood query failed", e)

    if as_json:
        _print_json(result.to_dict())
        return

    if not result.nodes:
        console.print(f"[yellow]Unit not found in snapshot:[/yellow] {unit_id}")
        return

    table = Table(
        title=f"Neighborhood of {unit_id} ({result.node_count} units)",
        show_header=True,
    )
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    for unit in result.nodes:
        table.add_row(unit.id, unit.title, unit.type.value)
    console.print(table)
    console.print(_edges_table("Edges", result.edges))


@app.command()
def stats(
    unit_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Only include units of this type",
    ),
    category: Optional[str] = typer.Option(
        None,
        "--category",
        help="Only include units in this category",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
    as_json: bool = JsonOption,
) -> None:
    """Show statistics for the current snapshot window."""
    try:
        unit_filter = None
        if unit_type or category:
            unit_filter = UnitFilter(
                type=UnitType(unit_type) if unit_type else None,
                category=category,
            )
    except ValueError:
        console.print(f"[red]Error:[/red] Unknown unit type: {unit_type}")
        raise typer.Exit(1)

    try:
        with _open_service(config_file, db_path) as service:
            statistics = service.get_statistics(unit_filter)
    except AtomicGraphError as e:
        _fail("Statistics failed", e)

    if as_json:
        _print_json(statistics.to_dict())
        return

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")
    table.add_row("Units", str(statistics.node_count))
    table.add_row("Relationships", str(statistics.edge_count))
    table.add_row("Density", f"{statistics.density:.4f}")
    table.add_row("Average degree", f"{statistics.avg_degree:.2f}")
    table.add_row("Max degree", str(statistics.max_degree))
    table.add_row("Components", str(statistics.components))
    console.print(Panel("[bold]Graph Statistics[/bold]", border_style="blue"))
    console.print(table)

    for title, histogram in (
        ("Unit types", statistics.types),
        ("Categories", statistics.categories),
        ("Relationship types", statistics.relationship_types),
    ):
        if not histogram:
            continue
        hist_table = Table(title=title, show_header=False)
        hist_table.add_column("Value", style="cyan")
        hist_table.add_column("Count", justify="right")
        for key, count in sorted(histogram.items(), key=lambda kv: (-kv[1], kv[0])):
            hist_table.add_row(key or "(none)", str(count))
        console.print(hist_table)


@app.command()
def detect(
    threshold: Optional[float] = typer.Option(
        None,
        "--threshold",
        help="Minimum keyword similarity (0-1)",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        help="Newest units to compare",
    ),
    save: bool = typer.Option(
        False,
        "--save",
        help="Store the detected relationships",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
    as_json: bool = JsonOption,
) -> None:
    """
    Detect related units by shared keywords.

    Example:
        atomic-graph detect --threshold 0.5 --save
    """
    try:
        with _open_service(config_file, db_path) as service:
            units = None
            if limit is not None:
                units = service.units.list_units(limit=limit)
            candidates = service.detect_relationships(
                units, threshold=threshold, save=save)
    except AtomicGraphError as e:
        _fail("Detection failed", e)

    if as_json:
        _print_json([c.to_dict() for c in candidates])
        return

    if not candidates:
        console.print("[yellow]No related units found[/yellow]")
        return

    table = Table(title=f"Candidates ({len(candidates)} found)", show_header=True)
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Shared keywords", style="dim")
    for candidate in candidates:
        table.add_row(
            candidate.from_id,
            candidate.to_id,
            f"{candidate.score:.2f}",
            ", ".join(candidate.shared_keywords),
        )
    console.print(table)

    if save:
        console.print(f"[green]✓[/green] Saved {len(candidates)} relationships")


@app.command()
def link(
    from_id: str = typer.Argument(..., help="Source unit"),
    to_id: str = typer.Argument(..., help="Target unit"),
    relationship_type: str = typer.Option(
        "related",
        "--type",
        "-t",
        help="Relationship type",
    ),
    confidence: Optional[float] = typer.Option(
        None,
        "--confidence",
        help="Confidence between 0 and 1",
    ),
    explanation: Optional[str] = typer.Option(
        None,
        "--explanation",
        "-e",
        help="Why the units are related",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
) -> None:
    """Create or update a manual relationship."""
    try:
        edge = RelationshipEdge(
            from_id=from_id,
            to_id=to_id,
            relationship_type=parse_relationship_type(relationship_type, strict=True),
            source=RelationshipSource.MANUAL,
            confidence=confidence,
            explanation=explanation,
        )
        with _open_service(config_file, db_path) as service:
            service.relationships.upsert(edge)
    except AtomicGraphError as e:
        _fail("Link failed", e)

    console.print(
        f"[green]✓[/green] {from_id} -[{edge.relationship_type.value}]-> {to_id}")


@app.command()
def unlink(
    from_id: str = typer.Argument(..., help="Source unit"),
    to_id: str = typer.Argument(..., help="Target unit"),
    relationship_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Only remove this type (default: every type)",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
) -> None:
    """Remove relationships from one unit to another."""
    try:
        with _open_service(config_file, db_path) as service:
            removed = service.relationships.delete(from_id, to_id, relationship_type)
    except AtomicGraphError as e:
        _fail("Unlink failed", e)

    if removed:
        console.print(f"[green]✓[/green] Removed {removed} relationship(s)")
    else:
        console.print("[yellow]No matching relationships[/yellow]")


@app.command()
def relationships(
    unit_id: str = typer.Argument(..., help="Unit to inspect"),
    direction: str = typer.Option(
        "both",
        "--direction",
        help="out, in or both",
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
    as_json: bool = JsonOption,
) -> None:
    """List stored relationships of a unit."""
    try:
        parsed = BranchDirection.parse(direction)
        with _open_service(config_file, db_path) as service:
            edges: list[RelationshipEdge] = []
            if parsed in (BranchDirection.OUT, BranchDirection.BOTH):
                edges.extend(service.relationships.outgoing(unit_id))
            if parsed in (BranchDirection.IN, BranchDirection.BOTH):
                edges.extend(service.relationships.incoming(unit_id))
    except AtomicGraphError as e:
        _fail("Listing relationships failed", e)

    if as_json:
        _print_json([e.to_dict() for e in edges])
        return

    if not edges:
        console.print(f"[yellow]No relationships for {unit_id}[/yellow]")
        return

    console.print(_edges_table(f"Relationships of {unit_id}", edges))


@app.command("import-units")
def import_units(
    source: Path = typer.Argument(
        ...,
        help="YAML or JSON file holding a list of units",
        exists=True,
        dir_okay=False,
    ),
    config_file: Optional[Path] = ConfigOption,
    db_path: Optional[Path] = DatabaseOption,
) -> None:
    """
    Load units into the unit store.

    Each entry needs id and title; type, category, keywords and
    timestamp are optional.
    """
    try:
        with open(source, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
    except yaml.YAMLError as e:
        console.print(f"[red]Error:[/red] Invalid file {source}: {e}")
        raise typer.Exit(1)

    if isinstance(data, dict):
        data = data.get("units", [])

    try:
        units = [
            KnowledgeUnit(
                id=str(entry["id"]),
                title=str(entry["title"]),
                type=entry.get("type", UnitType.INSIGHT.value),
                category=entry.get("category", ""),
                keywords=list(entry.get("keywords") or []),
                timestamp=parse_datetime(entry.get("timestamp")),
            )
            for entry in data
        ]
    except (KeyError, TypeError, ValueError) as e:
        console.print(f"[red]Error:[/red] Invalid unit entry: {e}")
        raise typer.Exit(1)

    try:
        with _open_service(config_file, db_path) as service:
            count = service.units.upsert_many(units)
    except AtomicGraphError as e:
        _fail("Import failed", e)

    console.print(f"[green]✓[/green] Imported {count} units")


@app.command()
def config(
    show: bool = typer.Option(
        False,
        "--show",
        "-s",
        help="Show current configuration",
    ),
    init: bool = typer.Option(
        False,
        "--init",
        help="Create default configuration file",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output path for config file",
    ),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """
    Configuration management.

    Examples:
        atomic-graph config --show
        atomic-graph config --init --output ./my-config.yaml
    """
    if init:
        _init_config(output)
    elif show:
        try:
            _show_config(config_file)
        except AtomicGraphError as e:
            _fail("Loading configuration failed", e)
    else:
        console.print(
            "Use --show to view config or --init to create default config")


def _show_config(config_file: Optional[Path]) -> None:
    """Show current configuration."""
    settings = load_config(config_file or get_default_config_path())
    config_dict = settings.model_dump(mode="json")

    console.print(Panel(
        "[bold]Current Configuration[/bold]",
        border_style="blue",
    ))

    for section, values in config_dict.items():
        console.print(f"\n[bold cyan]{section}:[/bold cyan]")
        if isinstance(values, dict):
            for key, value in values.items():
                console.print(f"  {key}: [dim]{value}[/dim]")
        else:
            console.print(f"  {values}")


def _init_config(output: Optional[Path]) -> None:
    """Create default configuration file."""
    config_dict = Settings().model_dump(mode="json")
    output_path = output or Path("config.yaml")

    if output_path.exists():
        if not typer.confirm(f"File {output_path} exists. Overwrite?"):
            raise typer.Exit(0)

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    console.print(f"[green]✓[/green] Configuration saved to: {output_path}")


if __name__ == "__main__":
    app()
