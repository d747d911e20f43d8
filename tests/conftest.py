"""Test fixtures: settings, graph builders, recording handlers, wired engine.

All tests should use these fixtures for consistency.
"""

import pytest

from autoflow.config import AutoflowConfig
from autoflow.core.credits import InMemoryCreditStore
from autoflow.core.engine import WorkflowEngine
from autoflow.core.sinks import InMemoryLogSink
from autoflow.core.sources import InMemoryWorkflowSource
from autoflow.handlers.registry import build_default_registry
from autoflow.types import ActionConfig, ExecutionContext, WorkflowGraph


# ── Graph builders ───────────────────────────────────────────────────────────


def make_node(node_id, action_type=None, label=None, node_type="custom", config=None):
    data = {"label": label}
    if action_type is not None:
        data["actionType"] = action_type
    if config is not None:
        data["config"] = config
    return {"id": node_id, "type": node_type, "data": data}


def make_edge(source, target, handle=None, edge_id=None):
    edge = {"id": edge_id or f"e-{source}-{target}", "source": source, "target": target}
    if handle is not None:
        edge["sourceHandle"] = handle
    return edge


def make_graph(nodes, edges, actions=None, user_id="user-1", **kwargs):
    """WorkflowGraph from editor-shaped dicts. ``actions`` maps node id → config."""
    action_list = [
        {"nodeId": node_id, "config": cfg} for node_id, cfg in (actions or {}).items()
    ]
    return WorkflowGraph.model_validate({
        "id": kwargs.pop("id", "wf-1"),
        "name": kwargs.pop("name", "test workflow"),
        "userId": user_id,
        "nodes": nodes,
        "edges": edges,
        "actions": action_list,
        **kwargs,
    })


PRO_RULE = {"left": "{{trigger.plan}}", "operator": "eq", "right": "pro"}


def signup_graph(**kwargs):
    """trigger(webhook) → condition(plan == "pro") -true→ email."""
    return make_graph(
        nodes=[
            make_node("n1", "webhook", "Webhook"),
            make_node("n2", "condition", "Is pro?"),
            make_node("n3", "email", "Welcome email"),
        ],
        edges=[
            make_edge("n1", "n2"),
            make_edge("n2", "n3", handle="n2-true"),
        ],
        actions={
            "n1": {},
            "n2": {"mode": "all", "rules": [PRO_RULE]},
            "n3": {"to": "{{trigger.email}}", "subject": "Welcome, {{trigger.plan}} user", "body": "Hi"},
        },
        **kwargs,
    )


# ── Handlers ─────────────────────────────────────────────────────────────────


class RecordingHandler:
    """Handler that records every call and returns a small output."""

    def __init__(self, output=None, error=None):
        self.calls: list[str] = []
        self.configs: list[dict] = []
        self.output = output
        self.error = error

    async def __call__(self, action: ActionConfig, context: ExecutionContext):
        self.calls.append(action.node_id)
        self.configs.append(dict(action.config))
        if self.error is not None:
            raise self.error
        return self.output if self.output is not None else {"ok": True, "node": action.node_id}


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def settings():
    """Configuration isolated from the environment and any .env file."""
    return AutoflowConfig(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        node_timeout_seconds=5.0,
        run_timeout_seconds=10.0,
        smtp_host=None,
    )


@pytest.fixture
def recorder():
    return RecordingHandler()


@pytest.fixture
def registry(settings, recorder):
    """Default registry with email and a generic 'noop' action replaced by the recorder."""
    reg = build_default_registry(settings)
    reg.register("email", recorder)
    reg.register("noop", recorder)
    return reg


@pytest.fixture
def credit_store():
    return InMemoryCreditStore({"user-1": 5})


@pytest.fixture
def log_sink():
    return InMemoryLogSink()


@pytest.fixture
def workflow_source():
    return InMemoryWorkflowSource([signup_graph()])


@pytest.fixture
def engine(registry, credit_store, log_sink, workflow_source, settings):
    return WorkflowEngine(
        registry=registry,
        credit_store=credit_store,
        log_sink=log_sink,
        workflow_source=workflow_source,
        settings=settings,
    )
