"""CLI — Test a search configuration without creating a job."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from filesfound_trigger.cli.common import load_settings
from filesfound_trigger.exceptions import FilesFoundError
from filesfound_trigger.triggers.models import SearchConfig, Severity
from filesfound_trigger.triggers.nodes import NodeRegistry
from filesfound_trigger.triggers.search import test_configuration

console = Console()

_STYLES = {Severity.OK: "green", Severity.WARNING: "yellow", Severity.ERROR: "red"}


def check(
    directory: str = typer.Option("", "--directory", "-d", help="Directory to search."),
    files: str = typer.Option("", "--files", "-f", help="Comma-separated Ant patterns to find."),
    ignored_files: str = typer.Option("", "--ignored-files", "-i", help="Patterns to ignore."),
    node: str = typer.Option("", "--node", "-n", help="Node to search on (empty = this host)."),
    trigger_number: str = typer.Option("1", "--trigger-number", help="Minimum number of files."),
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    json_output: bool = typer.Option(False, "--json"),
) -> None:
    """Run a search once and report what it finds."""
    settings = load_settings(config)
    search = SearchConfig(
        node=node,
        directory=directory,
        include_pattern=files,
        exclude_pattern=ignored_files,
        minimum_match_count=trigger_number,
    )
    try:
        result = test_configuration(
            search, NodeRegistry.from_settings(settings), settings.triggers.global_properties
        )
    except (FilesFoundError, OSError) as exc:
        console.print(f"[red]Error: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "outcome": result.outcome.value,
                    "severity": result.severity.value,
                    "message": result.message,
                    "files": list(result.files),
                },
                indent=2,
            )
        )
    else:
        style = _STYLES[result.severity]
        console.print(f"[{style}]{escape(result.message)}[/{style}]")
        if len(result.files) > 1:
            table = Table(title="Matched files")
            table.add_column("Path", style="cyan")
            for path in result.files:
                table.add_row(escape(path))
            console.print(table)
        if result.severity is Severity.OK:
            fires = len(result.files) >= search.expand(settings.triggers.global_properties).threshold
            console.print("Trigger would fire." if fires else "Trigger would not fire.")

    if result.severity is Severity.ERROR:
        raise typer.Exit(1)
