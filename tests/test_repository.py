"""Repository tests: credits, workflow documents and execution logs.

Uses an in-memory SQLite database (aiosqlite).
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from autoflow.core.engine import WorkflowEngine
from autoflow.db.models import Base
from autoflow.db.repository import Repository, SessionRepository
from autoflow.exceptions import InsufficientCredits, UserNotFound
from autoflow.types import (
    ExecutionLog,
    ExecutionStatus,
    ExecutionStep,
    StepStatus,
    WorkflowStatus,
)
from conftest import signup_graph


# ── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
async def factory():
    """Session factory bound to a fresh in-memory schema."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def session(factory):
    async with factory() as s:
        yield s


@pytest.fixture
def repo(session):
    return Repository(session)


# ── Users / credits ─────────────────────────────────────────────────────────

class TestCredits:

    async def test_create_and_get_user(self, repo):
        await repo.create_user(user_id="user-1", email="ada@example.com", plan="pro", credits=3)
        user = await repo.get_user("user-1")
        assert user.email == "ada@example.com"
        assert user.remaining_credits == 3
        assert user.used_credits == 0

    async def test_default_balance_comes_from_config(self, repo, monkeypatch):
        from autoflow.config import config
        monkeypatch.setattr(config, "default_user_credits", 42)
        user = await repo.create_user(user_id="user-2")
        assert user.remaining_credits == 42

    async def test_consume_decrements(self, repo):
        await repo.create_user(user_id="user-1", credits=2)
        assert await repo.check_and_consume("user-1") == 1
        assert await repo.check_and_consume("user-1") == 0
        user = await repo.get_user("user-1")
        assert user.used_credits == 2

    async def test_exhausted_raises_and_does_not_go_negative(self, repo):
        await repo.create_user(user_id="user-1", credits=1)
        await repo.check_and_consume("user-1")
        with pytest.raises(InsufficientCredits):
            await repo.check_and_consume("user-1")
        assert (await repo.get_user("user-1")).remaining_credits == 0

    async def test_unknown_user_raises(self, repo):
        with pytest.raises(UserNotFound):
            await repo.check_and_consume("ghost")


# ── Workflows ───────────────────────────────────────────────────────────────

class TestWorkflows:

    async def test_round_trip(self, repo):
        await repo.create_user(user_id="user-1")
        await repo.save_workflow(signup_graph())
        graph = await repo.get_workflow("wf-1")
        assert graph.id == "wf-1"
        assert graph.user_id == "user-1"
        assert [n.id for n in graph.nodes] == ["n1", "n2", "n3"]
        assert graph.edges[1].source_handle == "n2-true"
        assert graph.get_action("n2").config["rules"][0]["operator"] == "eq"

    async def test_save_replaces_document_and_status(self, repo):
        await repo.create_user(user_id="user-1")
        await repo.save_workflow(signup_graph())
        await repo.save_workflow(signup_graph(name="renamed", status=WorkflowStatus.INACTIVE))
        graph = await repo.get_workflow("wf-1")
        assert graph.name == "renamed"
        assert graph.status == WorkflowStatus.INACTIVE

    async def test_missing_workflow_is_none(self, repo):
        assert await repo.get_workflow("nope") is None


# ── Execution logs ──────────────────────────────────────────────────────────

class TestExecutionLogs:

    async def test_save_and_get(self, repo):
        log = ExecutionLog(workflow_id="wf-1", executed_by="user-1", trigger_node_id="n1")
        log.steps.append(ExecutionStep(node_id="n2", status=StepStatus.SUCCESS, output={"result": True}))
        log.status = ExecutionStatus.SUCCESS
        await repo.save(log)

        loaded = await repo.get_execution_log(log.id)
        assert loaded.workflow_id == "wf-1"
        assert loaded.status == ExecutionStatus.SUCCESS
        assert loaded.trigger_node_id == "n1"
        assert loaded.steps[0].node_id == "n2"
        assert loaded.steps[0].output == {"result": True}

    async def test_save_twice_updates(self, repo):
        log = ExecutionLog(workflow_id="wf-1")
        await repo.save(log)
        log.status = ExecutionStatus.FAILED
        log.error_message = "boom"
        await repo.save(log)
        loaded = await repo.get_execution_log(log.id)
        assert loaded.status == ExecutionStatus.FAILED
        assert loaded.error_message == "boom"

    async def test_list_by_workflow(self, repo):
        for wf in ("wf-1", "wf-1", "wf-2"):
            await repo.save(ExecutionLog(workflow_id=wf))
        assert len(await repo.list_execution_logs("wf-1")) == 2
        assert len(await repo.list_execution_logs("wf-2", limit=1)) == 1

    async def test_missing_log_is_none(self, repo):
        assert await repo.get_execution_log("nope") is None


# ── Engine on the database ──────────────────────────────────────────────────

async def test_engine_runs_against_session_repository(factory, registry, recorder, settings):
    async with factory() as s:
        repo = Repository(s)
        await repo.create_user(user_id="user-1", credits=1)
        await repo.save_workflow(signup_graph())

    store = SessionRepository(factory)
    engine = WorkflowEngine(
        registry=registry,
        credit_store=store,
        log_sink=store,
        workflow_source=store,
        settings=settings,
    )
    log = await engine.run_workflow("wf-1", {"plan": "pro", "email": "ada@example.com"})
    assert log.status == ExecutionStatus.SUCCESS
    assert recorder.calls == ["n3"]

    stored = await store.get_execution_log(log.id)
    assert [s.node_id for s in stored.steps] == ["n2", "n3"]

    with pytest.raises(InsufficientCredits):
        await engine.run_workflow("wf-1", {"plan": "pro"})
