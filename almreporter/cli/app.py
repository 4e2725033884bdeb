"""
Main CLI application for ALM Test Reporter.

Defines the Typer application structure and command routing, keeping the
CLI layer thin over the services in almreporter.core.
"""
import logging

import typer

from almreporter.cli.commands.connections import connections_command, test_connection_command
from almreporter.cli.commands.publish import publish_command
from almreporter.cli.commands.run_task import run_task_command


# Initialize Typer app
app = typer.Typer(help="ALM Test Reporter - publish automated test results to ALM", no_args_is_help=True)

# Register commands
app.command("publish", help="Publish this build's test results to ALM.")(publish_command)
app.command("run-task", help="Execute a submission task file written by 'publish --dispatch file'.")(run_task_command)
app.command("test-connection", help="Validate an ALM connection.")(test_connection_command)
app.command("connections", help="List configured ALM connections.")(connections_command)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
):
    """ALM Test Reporter.

    Run 'almreporter publish' from a CI job to submit test results.
    Run 'almreporter test-connection NAME' to check a connection first.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
