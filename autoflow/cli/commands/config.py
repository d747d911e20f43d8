"""autoflow config: Show resolved autoflow configuration."""

from rich.console import Console
from rich.table import Table
from rich import box

console = Console()


def config_show():
    """Show the resolved autoflow configuration.

    Reads from environment variables and .env file.
    The SMTP password is masked.

    Example:
        autoflow config
    """
    from autoflow.config import AutoflowConfig
    cfg = AutoflowConfig()

    sensitive = {"smtp_password"}

    table = Table(
        box=box.ROUNDED,
        header_style="bold dim",
        show_lines=False,
        title="[bold]autoflow Configuration[/bold]",
    )
    table.add_column("Key", style="cyan", width=28)
    table.add_column("Value", width=45)
    table.add_column("Env Var", style="dim", width=36)

    sections = [
        ("App", ["app_name", "debug", "log_level"]),
        ("Database", ["database_url"]),
        ("Server", ["host", "port"]),
        ("Engine", [
            "template_missing_policy", "max_workflow_nodes", "max_node_visits",
            "memoize_node_visits", "node_timeout_seconds", "run_timeout_seconds",
        ]),
        ("Credits", ["default_user_credits"]),
        ("Email", ["smtp_host", "smtp_port", "smtp_user", "smtp_password", "smtp_from", "smtp_from_name"]),
        ("Outbound HTTP", ["webhook_timeout_seconds", "google_sheets_base_url"]),
    ]

    first = True
    for section_name, fields in sections:
        if not first:
            table.add_row("", "", "")
        first = False
        table.add_row(f"[bold dim]── {section_name} ──[/bold dim]", "", "")
        for attr in fields:
            val = getattr(cfg, attr, None)
            if val is None:
                display = "[dim](not set)[/dim]"
            elif attr in sensitive:
                display = "***"
            else:
                display = str(getattr(val, "value", val))
            table.add_row(f"  {attr}", display, f"AUTOFLOW_{attr.upper()}")

    console.print()
    console.print(table)
    console.print()
    console.print("[dim]Source: environment variables + .env file (prefix: AUTOFLOW_)[/dim]")
