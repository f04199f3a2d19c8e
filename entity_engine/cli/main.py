#!/usr/bin/env python3
"""
entity-engine CLI

Main entrypoint for the entity-engine command-line tool.
"""

import os

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..logging_config import setup_logging
from .commands import events, snapshot

app = typer.Typer(
    name="entity-engine",
    help="Entity snapshot inspection and materialization",
    add_completion=False,
)

console = Console()

app.add_typer(snapshot.app, name="snapshot", help="Snapshot operations")
app.add_typer(events.app, name="events", help="Event log operations")


@app.command()
def version():
    """Show version information."""
    table = Table(show_header=False, box=None)
    table.add_row("[bold]entity-engine[/bold]", f"v{__version__}")
    console.print(table)


def main():
    """Main entrypoint."""
    setup_logging(level=os.getenv("ENTITY_ENGINE_LOG_LEVEL", "WARNING"))
    app()


if __name__ == "__main__":
    main()
