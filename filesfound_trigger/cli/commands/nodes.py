"""CLI — Inspect the configured nodes."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from filesfound_trigger.cli.common import load_settings
from filesfound_trigger.triggers.nodes import NodeRegistry

app = typer.Typer(help="List the nodes searches can run on.")
console = Console()


@app.command("list")
def list_nodes(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    probe: bool = typer.Option(False, "--probe", help="Check whether each node is reachable."),
) -> None:
    """List the built-in node and every configured remote node."""
    settings = load_settings(config)
    registry = NodeRegistry.from_settings(settings)

    table = Table(title="Nodes")
    table.add_column("Name", style="cyan")
    table.add_column("Agent URL")
    if probe:
        table.add_column("Status")

    local = ["built-in", "(this host)"] + (["[green]online[/green]"] if probe else [])
    table.add_row(*local)
    for name in registry.names():
        row = [name, settings.nodes[name].url]
        if probe:
            target = registry.locate(name)
            online = target is not None and target.is_reachable()
            row.append("[green]online[/green]" if online else "[red]offline[/red]")
        table.add_row(*row)
    console.print(table)
