"""autoflow validate: Check a workflow file without running it."""

from pathlib import Path

import typer
from rich.console import Console

console = Console()


def validate_workflow_file(
    path: Path = typer.Argument(..., help="Workflow document (.yaml/.yml/.json)"),
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as errors"),
):
    """Run the load-time checks: structure, acyclicity, handlers, typed configs.

    Exit code 1 when any error (or, with --strict, any warning) is found.

    Example:
        autoflow validate workflows/signup.yaml
    """
    from autoflow.config import config, load_workflow_file
    from autoflow.exceptions import WorkflowValidationError
    from autoflow.handlers.registry import build_default_registry
    from autoflow.workflows.validator import WorkflowValidator

    try:
        graph = load_workflow_file(path)
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    except WorkflowValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        for v in exc.violations:
            console.print(f"  [red]✗[/red] {v}")
        raise typer.Exit(1)

    validator = WorkflowValidator()
    errors = validator.validate(graph, registry=build_default_registry(config), max_nodes=config.max_workflow_nodes)
    hard = validator.hard_errors(errors)
    warnings = [e for e in errors if e.startswith("WARNING:")]

    for e in hard:
        console.print(f"  [red]✗[/red] {e}")
    for w in warnings:
        console.print(f"  [yellow]⚠[/yellow] {w[len('WARNING:'):].strip()}")

    if hard or (strict and warnings):
        console.print(f"[red]Invalid:[/red] {len(hard)} error(s), {len(warnings)} warning(s)")
        raise typer.Exit(1)

    console.print(
        f"[green]Valid:[/green] {graph.name or graph.id} "
        f"({len(graph.nodes)} nodes, {len(graph.edges)} edges, {len(warnings)} warning(s))"
    )
