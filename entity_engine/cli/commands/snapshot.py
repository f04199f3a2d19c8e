"""
Snapshot commands: fetch, materialize
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ...core.clock import ORIGIN_OF_TIME, previous_instant
from ...core.envelope import EventEnvelope
from ...core.errors import EntityEngineError
from ...snapshot.store import unfolded_events
from ..context import open_store

app = typer.Typer()
console = Console()

CONFIG_HELP = "AppConfig import path, e.g. shop.entities:app_config"


def _render(snapshot: Optional[EventEnvelope], json_output: bool) -> None:
    if json_output:
        print(json.dumps({"snapshot": snapshot.to_dict() if snapshot else None}, indent=2))
        return

    if snapshot is None:
        console.print("[yellow]No snapshot: entity has no events[/yellow]")
        return

    table = Table(show_header=False, box=None)
    table.add_row("[bold]Entity[/bold]", f"{snapshot.entity_type_name}/{snapshot.entity_id}")
    table.add_row("Version", str(snapshot.version))
    table.add_row("Cursor", snapshot.snapshotted_event_created_at or "-")
    table.add_row("Created at", snapshot.created_at)
    console.print(table)
    console.print(Syntax(json.dumps(snapshot.value, indent=2, default=str), "json", theme="monokai"))


@app.command()
def fetch(
    entity_type: str = typer.Argument(..., help="Entity type name"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    config: str = typer.Option(..., "--config", "-c", help=CONFIG_HELP),
    at: Optional[str] = typer.Option(None, "--at", help="Point in time (ISO-8601)"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", "-d", help="File provider directory"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Compute current snapshot (read-only, nothing is stored).

    Examples:
        entity-engine snapshot fetch Cart cart-42 -c shop.entities:app_config
        entity-engine snapshot fetch Cart cart-42 -c shop.entities:app_config --at 2024-05-01T00:00:00Z
    """
    try:
        store = open_store(config, data_dir)
        snapshot = store.fetch_entity_snapshot(entity_type, entity_id, at=at)
    except (EntityEngineError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    _render(snapshot, json_output)


@app.command()
def materialize(
    entity_type: str = typer.Argument(..., help="Entity type name"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    config: str = typer.Option(..., "--config", "-c", help=CONFIG_HELP),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", "-d", help="File provider directory"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Fold events recorded since the stored snapshot and store the result.

    Example:
        entity-engine snapshot materialize Cart cart-42 -c shop.entities:app_config
    """
    try:
        store = open_store(config, data_dir)
        latest = store.provider.load_latest_snapshot(entity_type, entity_id)
        cursor = latest.snapshotted_event_created_at if latest else None
        since = previous_instant(cursor) if cursor else ORIGIN_OF_TIME
        pending = unfolded_events(latest, store.provider.load_events_since(entity_type, entity_id, since))
        snapshot = store.calculate_and_store_entity_snapshot(entity_type, entity_id, pending)
    except EntityEngineError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if not json_output:
        console.print(f"[green]✓ Folded {len(pending)} pending events[/green]")
    _render(snapshot, json_output)
