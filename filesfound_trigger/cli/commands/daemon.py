"""CLI — Run the trigger daemon in the foreground."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from filesfound_trigger.cli.common import load_settings, open_store
from filesfound_trigger.config import Settings

app = typer.Typer(help="Run the trigger daemon.")
console = Console()


async def _serve(settings: Settings) -> None:
    from filesfound_trigger.daemon.service import TriggerDaemon
    from filesfound_trigger.triggers.nodes import NodeRegistry

    async with open_store(settings) as store:
        daemon = TriggerDaemon(store, NodeRegistry.from_settings(settings), settings.triggers)
        await daemon.start()
        console.print(
            f"[bold green]Trigger daemon running[/bold green] ({len(daemon.armed_jobs)} jobs armed)"
        )
        try:
            await asyncio.Event().wait()
        finally:
            await daemon.stop()


@app.command("start")
def start(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: str | None = typer.Option(None, help="Log level."),
) -> None:
    """Start the daemon and poll every enabled job until interrupted."""
    settings = load_settings(config, log_level)
    try:
        asyncio.run(_serve(settings))
    except KeyboardInterrupt:
        console.print("Trigger daemon stopped.")
