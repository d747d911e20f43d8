"""autoflow CLI: Typer application."""

import logging

import typer
from rich.console import Console

from autoflow.version import __version__

app = typer.Typer(
    name="autoflow",
    help="autoflow: graph-based workflow automation engine.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-v", is_eager=True, help="Show version"),
    verbose: bool = typer.Option(False, "--verbose", help="Log engine activity to stderr"),
):
    """autoflow CLI."""
    if version:
        console.print(f"autoflow v{__version__}")
        raise typer.Exit()
    if verbose:
        from autoflow.config import config
        logging.basicConfig(
            level=getattr(logging, config.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# ── Workflow commands ──────────────────────────────────────────────────────────
from autoflow.cli.commands import run, validate  # noqa: E402

app.command(name="run", help="Run a workflow file against a trigger payload")(run.run_workflow_file)
app.command(name="validate", help="Validate a workflow file without running it")(validate.validate_workflow_file)

# ── Introspection / server ─────────────────────────────────────────────────────
from autoflow.cli.commands import config, handlers, serve  # noqa: E402

app.command(name="handlers", help="List registered action handlers")(handlers.handlers_list)
app.command(name="config", help="Show resolved configuration")(config.config_show)
app.command(name="serve", help="Start the HTTP API server")(serve.serve)


if __name__ == "__main__":
    app()
