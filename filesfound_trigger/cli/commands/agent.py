"""CLI — Run and probe the remote scan agent."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import httpx
import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from filesfound_trigger.agent.schemas import HEADER_API_TOKEN
from filesfound_trigger.cli.common import load_settings

app = typer.Typer(help="Run the scan agent on a remote node.")
console = Console()


@app.command("start")
def start(
    host: str | None = typer.Option(None, help="Host to bind to (default from config)."),
    port: int | None = typer.Option(None, help="Port to listen on (default from config)."),
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Start the scan agent."""
    from filesfound_trigger.agent.app import create_agent_app

    settings = load_settings(config)
    if host:
        settings.agent.host = host
    if port:
        settings.agent.port = port

    console.print(
        f"[bold green]Starting scan agent on {settings.agent.host}:{settings.agent.port}[/bold green]"
    )
    uvicorn.run(
        create_agent_app(settings),
        host=settings.agent.host,
        port=settings.agent.port,
        log_level=settings.agent.log_level,
    )


@app.command("status")
def status(
    url: str = typer.Option("http://127.0.0.1:40100", help="Base URL of the agent."),
    token: str | None = typer.Option(None, help="API token, if the agent requires one."),
) -> None:
    """Check that an agent answers."""
    headers = {HEADER_API_TOKEN: token} if token else {}
    try:
        resp = httpx.get(f"{url.rstrip('/')}/health", headers=headers, timeout=5.0)
        resp.raise_for_status()
        data = resp.json()
    except Exception as exc:
        console.print(f"[red]Agent unreachable: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Scan agent status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for k, v in data.items():
        table.add_row(str(k), str(v))
    console.print(table)
