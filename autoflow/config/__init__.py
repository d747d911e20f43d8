"""Application configuration + workflow file loader for autoflow.

All env vars defined here with AUTOFLOW_ prefix.
File loader: load_workflow_file()
"""

from pydantic_settings import BaseSettings
from typing import Optional

from autoflow.config.loader import load_workflow_file
from autoflow.types import MissingPathPolicy


class AutoflowConfig(BaseSettings):
    # ── App ──
    app_name: str = "autoflow"
    debug: bool = False
    log_level: str = "INFO"

    # ── Database ──
    database_url: str = "sqlite+aiosqlite:///./autoflow.db"

    # ── Server ──
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Engine ──
    template_missing_policy: MissingPathPolicy = MissingPathPolicy.EMPTY
    max_workflow_nodes: int = 200
    max_node_visits: int = 1000                 # diamond fan-in multiplies visits
    memoize_node_visits: bool = False           # True -> each node runs at most once per run
    node_timeout_seconds: Optional[float] = 60.0
    run_timeout_seconds: Optional[float] = 3600.0

    # ── Credits ──
    default_user_credits: int = 100

    # ── Email (SMTP) ──
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None             # defaults to smtp_user
    smtp_from_name: str = "AutoDesk"

    # ── Outbound HTTP ──
    webhook_timeout_seconds: float = 30.0
    google_sheets_base_url: str = "https://sheets.googleapis.com/v4"

    model_config = {"env_prefix": "AUTOFLOW_", "env_file": ".env", "extra": "ignore"}


config = AutoflowConfig()


__all__ = [
    "AutoflowConfig",
    "config",
    "load_workflow_file",
]
