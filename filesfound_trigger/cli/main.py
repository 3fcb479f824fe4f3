"""filesfound CLI — Entry point.

Usage:
    filesfound check --directory /in --files "**/*.xml"
    filesfound jobs add job.yaml
    filesfound jobs list
    filesfound jobs show <name>
    filesfound jobs enable|disable|remove <name>
    filesfound jobs poll <name> [--run]
    filesfound jobs builds <name>
    filesfound daemon start
    filesfound agent start
    filesfound agent status --url http://build-02:40100
    filesfound nodes list [--probe]
"""

from __future__ import annotations

import typer

from filesfound_trigger.cli.commands import agent, check, daemon, jobs, nodes

app = typer.Typer(
    name="filesfound",
    help="Build trigger that starts a job when files are found.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.command("check")(check.check)
app.add_typer(jobs.app, name="jobs")
app.add_typer(daemon.app, name="daemon")
app.add_typer(agent.app, name="agent")
app.add_typer(nodes.app, name="nodes")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
