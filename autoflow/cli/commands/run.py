"""autoflow run: Execute a workflow file from the command line."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

console = Console()

_STATUS_COLOR = {
    "success": "green",
    "failed": "red",
    "skipped": "yellow",
    "running": "yellow",
}


def _load_payload(payload: Optional[str], payload_file: Optional[Path]) -> dict:
    if payload and payload_file:
        raise typer.BadParameter("Use either --payload or --payload-file, not both")
    if payload_file is not None:
        data = yaml.safe_load(payload_file.read_text())
    elif payload:
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise typer.BadParameter(f"--payload is not valid JSON: {exc}")
    else:
        data = {}
    if not isinstance(data, dict):
        raise typer.BadParameter("Trigger payload must be a JSON object")
    return data


def _build_in_memory_engine(user_id: str, credits: int):
    """WorkflowEngine with in-memory credits and log sink, no database required."""
    from autoflow.config import config
    from autoflow.core.credits import InMemoryCreditStore
    from autoflow.core.engine import WorkflowEngine
    from autoflow.core.sinks import InMemoryLogSink

    return WorkflowEngine(
        credit_store=InMemoryCreditStore({user_id: credits}),
        log_sink=InMemoryLogSink(),
        settings=config,
    )


def _print_log(log) -> None:
    table = Table(box=box.ROUNDED, header_style="bold dim", show_lines=False)
    table.add_column("#", justify="right", width=3, style="dim")
    table.add_column("Node", style="cyan", width=18)
    table.add_column("Type", width=14)
    table.add_column("Status", width=9)
    table.add_column("Output / Error", width=60)

    for i, step in enumerate(log.steps):
        color = _STATUS_COLOR.get(step.status.value, "white")
        detail = step.error_message or json.dumps(step.output, default=str)
        table.add_row(
            str(i),
            step.step_name or step.node_id,
            step.action_type or "-",
            f"[{color}]{step.status.value}[/{color}]",
            detail[:200],
        )

    color = _STATUS_COLOR.get(log.status.value, "white")
    summary = f"[{color}]{log.status.value}[/{color}]  execution={log.id}"
    if log.trigger_node_id:
        summary += f"  trigger={log.trigger_node_id}"
    if log.error_message:
        summary += f"\n[red]{log.error_message}[/red]"

    console.print()
    console.print(table)
    console.print(Panel(summary, title="Run", box=box.ROUNDED))


async def _execute(path: Path, payload: dict, credits: int, as_json: bool) -> int:
    from autoflow.config import load_workflow_file

    graph = load_workflow_file(path)
    user_id = graph.user_id or "cli-user"
    if not graph.user_id:
        graph = graph.model_copy(update={"user_id": user_id})

    engine = _build_in_memory_engine(user_id, credits)
    log = await engine.run(graph, payload, executed_by=user_id)

    if as_json:
        console.print_json(log.model_dump_json())
    else:
        _print_log(log)
    return 0 if log.status.value == "success" else 1


def run_workflow_file(
    path: Path = typer.Argument(..., help="Workflow document (.yaml/.yml/.json)"),
    payload: str = typer.Option(None, "--payload", "-p", help="Trigger payload as a JSON object"),
    payload_file: Path = typer.Option(None, "--payload-file", "-f", help="Trigger payload file (JSON/YAML)"),
    credits: int = typer.Option(1, "--credits", help="Credits available to the workflow owner"),
    as_json: bool = typer.Option(False, "--json", help="Print the execution log as JSON"),
):
    """Run a workflow file once and print the execution log.

    Runs fully in-memory, no database required.  Side-effecting handlers
    (email, google_sheets, outbound webhook) still need their configuration.

    Example:
        autoflow run signup.yaml --payload '{"plan": "pro"}'
    """
    data = _load_payload(payload, payload_file)
    try:
        code = asyncio.run(_execute(path, data, credits, as_json))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(1)
    except Exception as exc:
        console.print(f"\n[red]Error:[/red] {exc}")
        raise typer.Exit(1)
    if code:
        raise typer.Exit(code)
