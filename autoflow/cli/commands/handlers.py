"""autoflow handlers: List registered action handlers."""

from rich.console import Console
from rich.table import Table
from rich import box

console = Console()

_KIND = {
    "webhook": "trigger",
    "schedule": "trigger",
    "condition": "branch",
}


def handlers_list():
    """List every action type the default registry can dispatch.

    Example:
        autoflow handlers
    """
    from autoflow.handlers.registry import build_default_registry

    registry = build_default_registry()
    types = registry.list_types()

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title=f"[bold]{len(types)} Registered Handlers[/bold]",
    )
    table.add_column("Action type", style="cyan", width=16)
    table.add_column("Kind", width=10)
    table.add_column("Implementation", style="dim", width=40)

    for action_type in types:
        handler = registry.get(action_type)
        impl = getattr(handler, "__name__", type(handler).__name__)
        table.add_row(action_type, _KIND.get(action_type, "action"), impl)

    console.print()
    console.print(table)
