"""
Event log commands: list, append
"""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ...core.clock import ORIGIN_OF_TIME, to_iso
from ...core.envelope import EventEnvelope
from ...core.errors import EntityEngineError
from ..context import open_provider

app = typer.Typer()
console = Console()


@app.command("list")
def list_events(
    entity_type: str = typer.Argument(..., help="Entity type name"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    since: Optional[str] = typer.Option(None, "--since", help="Only events after this ISO-8601 time"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", "-d", help="File provider directory"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List events recorded for an entity.

    Examples:
        entity-engine events list Cart cart-42
        entity-engine events list Cart cart-42 --since 2024-05-01T00:00:00Z --json
    """
    try:
        provider = open_provider(data_dir)
        cursor = to_iso(since) if since else ORIGIN_OF_TIME
        events = provider.load_events_since(entity_type, entity_id, cursor)
    except (EntityEngineError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if json_output:
        print(json.dumps({"events": [e.to_dict() for e in events], "count": len(events)}, indent=2))
        return

    if not events:
        console.print("[yellow]No events[/yellow]")
        return

    table = Table(title=f"Events: {entity_type}/{entity_id}")
    table.add_column("Created at", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Request ID", style="dim")
    for e in events:
        table.add_row(e.created_at, e.type_name, e.request_id)
    console.print(table)


@app.command("append")
def append_event(
    entity_type: str = typer.Argument(..., help="Entity type name"),
    entity_id: str = typer.Argument(..., help="Entity ID"),
    event_type: str = typer.Argument(..., help="Event type name"),
    value: str = typer.Option("null", "--value", "-v", help="Event payload as JSON"),
    request_id: str = typer.Option("", "--request-id", help="Correlating request ID"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", "-d", help="File provider directory"),
):
    """
    Append one event (for local testing of reducers).

    Example:
        entity-engine events append Cart cart-42 ItemAdded --value '{"sku": "A1", "qty": 2}'
    """
    try:
        payload = json.loads(value)
        event = EventEnvelope.event(entity_type, entity_id, event_type, payload, request_id=request_id)
        open_provider(data_dir).store_events([event])
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid --value JSON:[/red] {e}")
        raise typer.Exit(2)
    except EntityEngineError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    console.print(f"[green]✓ Appended {event_type} at {event.created_at}[/green]")
