"""CLI — Job management commands.

These commands work directly on the job store.  A running daemon picks up
changes on its next restart.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from filesfound_trigger.builds.queue import BuildQueue
from filesfound_trigger.builds.runner import BuildRunner
from filesfound_trigger.cli.common import load_settings, open_store
from filesfound_trigger.config import Settings
from filesfound_trigger.exceptions import FilesFoundError, JobNotFoundError
from filesfound_trigger.jobs.models import JobDefinition
from filesfound_trigger.triggers.nodes import NodeRegistry
from filesfound_trigger.triggers.trigger import TriggerContext

app = typer.Typer(help="Add, inspect, and poll jobs.")
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
]


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error: {escape(str(exc))}[/red]")
    raise typer.Exit(1)


def _read_job_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FilesFoundError(f"File not found: {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise FilesFoundError(f"Invalid job file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise FilesFoundError(f"Invalid job file {path}: expected a mapping")
    return data


def _timestamp(ts: float | None) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S") if ts else ""


@app.command("add")
def add_job(
    job_file: Path = typer.Argument(help="YAML or JSON job definition."),
    replace: bool = typer.Option(False, "--replace", help="Overwrite an existing job."),
    config: ConfigOption = None,
) -> None:
    """Validate a job definition and store it."""
    settings = load_settings(config)

    async def _add() -> JobDefinition:
        job = JobDefinition.from_dict(_read_job_file(job_file))
        job.trigger.parse_schedule(hash_id=job.name)
        async with open_store(settings) as store:
            if not replace and await store.get_job(job.name) is not None:
                raise FilesFoundError(f"Job '{job.name}' already exists (use --replace)")
            await store.save_job(job)
        return job

    try:
        job = asyncio.run(_add())
    except FilesFoundError as exc:
        _fail(exc)
    console.print(f"[green]Job saved:[/green] {job.name}")


@app.command("list")
def list_jobs(config: ConfigOption = None) -> None:
    """List stored jobs."""
    settings = load_settings(config)

    async def _list() -> list[JobDefinition]:
        async with open_store(settings) as store:
            return await store.list_jobs()

    jobs = asyncio.run(_list())
    table = Table(title="Jobs")
    table.add_column("Name", style="cyan")
    table.add_column("Enabled")
    table.add_column("Schedule")
    table.add_column("Searches")
    table.add_column("Command")
    for job in jobs:
        table.add_row(
            job.name,
            "yes" if job.enabled else "no",
            escape(job.trigger.schedule.replace("\n", "; ")),
            str(len(job.trigger.configs)),
            escape(" ".join(job.command)),
        )
    console.print(table)


@app.command("show")
def show_job(
    name: str = typer.Argument(),
    json_output: bool = typer.Option(False, "--json"),
    config: ConfigOption = None,
) -> None:
    """Print a stored job definition."""
    settings = load_settings(config)

    async def _get() -> JobDefinition:
        async with open_store(settings) as store:
            return await store.require_job(name)

    try:
        job = asyncio.run(_get())
    except FilesFoundError as exc:
        _fail(exc)
    if json_output:
        typer.echo(json.dumps(job.to_dict(), indent=2))
    else:
        console.print(Syntax(yaml.safe_dump(job.to_dict(), sort_keys=False), "yaml"))


@app.command("remove")
def remove_job(name: str = typer.Argument(), config: ConfigOption = None) -> None:
    """Delete a job and its build history."""
    settings = load_settings(config)

    async def _remove() -> bool:
        async with open_store(settings) as store:
            return await store.delete_job(name)

    if not asyncio.run(_remove()):
        _fail(JobNotFoundError(name))
    console.print(f"[green]Job removed:[/green] {name}")


def _set_enabled(name: str, enabled: bool, settings: Settings) -> None:
    async def _update() -> None:
        async with open_store(settings) as store:
            await store.set_enabled(name, enabled)

    try:
        asyncio.run(_update())
    except FilesFoundError as exc:
        _fail(exc)
    console.print(f"[green]Job {'enabled' if enabled else 'disabled'}:[/green] {name}")


@app.command("enable")
def enable_job(name: str = typer.Argument(), config: ConfigOption = None) -> None:
    """Enable a job."""
    _set_enabled(name, True, load_settings(config))


@app.command("disable")
def disable_job(name: str = typer.Argument(), config: ConfigOption = None) -> None:
    """Disable a job."""
    _set_enabled(name, False, load_settings(config))


@app.command("poll")
def poll_job(
    name: str = typer.Argument(),
    run: bool = typer.Option(False, "--run", help="Run the build if the trigger fires."),
    config: ConfigOption = None,
) -> None:
    """Evaluate a job's trigger once, now."""
    settings = load_settings(config)

    async def _poll() -> None:
        async with open_store(settings) as store:
            job = await store.require_job(name)
            queue = BuildQueue()
            context = TriggerContext(
                job_name=job.name,
                nodes=NodeRegistry.from_settings(settings),
                build_queue=queue,
                global_properties=settings.triggers.global_properties,
            )
            cause = await asyncio.to_thread(job.trigger.run, context)
            if cause is None:
                console.print("No search found enough files; no build scheduled.")
                return
            console.print(f"[green]Trigger fired:[/green] {escape(cause.short_description)}")
            if not run:
                return
            runner = BuildRunner(store, settings.triggers.global_properties)
            for item in queue.pop_due(now=float("inf")):
                record = await runner.run(job, item)
                style = "green" if record.status.value == "success" else "red"
                console.print(
                    f"Build #{record.number}: [{style}]{record.status.value}[/{style}]"
                    f" (return code {record.return_code})"
                )

    try:
        asyncio.run(_poll())
    except FilesFoundError as exc:
        _fail(exc)


@app.command("builds")
def list_builds(
    name: str = typer.Argument(),
    limit: int = typer.Option(20, help="Maximum number of builds to show."),
    config: ConfigOption = None,
) -> None:
    """Show the most recent builds of a job."""
    settings = load_settings(config)

    async def _builds() -> list[Any]:
        async with open_store(settings) as store:
            return await store.list_builds(name, limit=limit)

    records = asyncio.run(_builds())
    table = Table(title=f"Builds of {name}")
    table.add_column("#", style="cyan")
    table.add_column("Status")
    table.add_column("Return code")
    table.add_column("Started")
    table.add_column("Cause")
    for record in records:
        causes = ", ".join(escape(c.get("directory", "")) for c in record.causes)
        table.add_row(
            str(record.number),
            record.status.value,
            "" if record.return_code is None else str(record.return_code),
            _timestamp(record.started_at),
            causes,
        )
    console.print(table)
