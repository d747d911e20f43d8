"""Data access layer.

This is the ONLY layer that talks to the database.  Repository implements
the engine's WorkflowSource, CreditStore and LogSink contracts on a single
session; SessionRepository does the same with a fresh session per call so it
can outlive a request (background runs).
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from autoflow.config import config
from autoflow.core.credits import CREDIT_LIMIT_MESSAGE
from autoflow.db.models import ExecutionLogModel, UserModel, WorkflowModel
from autoflow.exceptions import InsufficientCredits, UserNotFound
from autoflow.types import ExecutionLog, ExecutionStep, WorkflowGraph, WorkflowStatus


class Repository:
    """All database operations for users, workflows and execution logs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Users / credits ──
    async def create_user(
        self,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        plan: str = "free",
        credits: Optional[int] = None,
    ) -> UserModel:
        """Create a user with an initial credit balance (default: config.default_user_credits)."""
        if credits is None:
            credits = config.default_user_credits
        user = UserModel(email=email, plan=plan, remaining_credits=credits, used_credits=0)
        if user_id is not None:
            user.id = user_id
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def get_user(self, user_id: str) -> Optional[UserModel]:
        result = await self.session.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()

    async def check_and_consume(self, user_id: str) -> int:
        """Atomically consume one credit; returns the remaining balance.

        The conditional UPDATE only matches while credits remain, so two
        concurrent runs can never both take the last credit.

        Raises:
            UserNotFound: if the user does not exist.
            InsufficientCredits: if the balance is already zero.
        """
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id, UserModel.remaining_credits > 0)
            .values(
                remaining_credits=UserModel.remaining_credits - 1,
                used_credits=UserModel.used_credits + 1,
            )
        )
        await self.session.commit()
        if result.rowcount == 1:
            user = await self.get_user(user_id)
            await self.session.refresh(user)
            return user.remaining_credits

        if await self.get_user(user_id) is None:
            raise UserNotFound(f"User '{user_id}' not found", user_id=user_id)
        raise InsufficientCredits(CREDIT_LIMIT_MESSAGE, user_id=user_id)

    # ── Workflows ──
    async def save_workflow(self, graph: WorkflowGraph) -> WorkflowModel:
        """Insert or replace the stored document for graph.id."""
        document = graph.model_dump(by_alias=True, mode="json")
        existing = await self.session.get(WorkflowModel, graph.id)
        if existing is None:
            model = WorkflowModel(
                id=graph.id,
                user_id=graph.user_id,
                organization_id=graph.organization_id,
                name=graph.name,
                status=graph.status.value,
                document=document,
            )
            self.session.add(model)
        else:
            model = existing
            model.user_id = graph.user_id
            model.organization_id = graph.organization_id
            model.name = graph.name
            model.status = graph.status.value
            model.document = document
        await self.session.commit()
        await self.session.refresh(model)
        return model

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowGraph]:
        """Load the stored graph. The row's status column wins over the document's."""
        model = await self.session.get(WorkflowModel, workflow_id)
        if model is None:
            return None
        graph = WorkflowGraph.model_validate(model.document)
        return graph.model_copy(update={"id": model.id, "status": WorkflowStatus(model.status)})

    # ── Execution logs ──
    async def save(self, log: ExecutionLog) -> None:
        """Persist a finalized execution log (LogSink contract)."""
        steps = [s.model_dump(mode="json") for s in log.steps]
        existing = await self.session.get(ExecutionLogModel, log.id)
        if existing is None:
            self.session.add(ExecutionLogModel(
                id=log.id,
                workflow_id=log.workflow_id,
                organization_id=log.organization_id,
                executed_by=log.executed_by,
                trigger_node_id=log.trigger_node_id,
                status=log.status.value,
                started_at=log.started_at,
                finished_at=log.finished_at,
                error_message=log.error_message,
                steps=steps,
            ))
        else:
            existing.status = log.status.value
            existing.trigger_node_id = log.trigger_node_id
            existing.finished_at = log.finished_at
            existing.error_message = log.error_message
            existing.steps = steps
        await self.session.commit()

    @staticmethod
    def _model_to_log(m: ExecutionLogModel) -> ExecutionLog:
        return ExecutionLog(
            id=m.id,
            workflow_id=m.workflow_id,
            organization_id=m.organization_id,
            executed_by=m.executed_by,
            trigger_node_id=m.trigger_node_id,
            status=m.status,
            started_at=m.started_at,
            finished_at=m.finished_at,
            error_message=m.error_message,
            steps=[ExecutionStep.model_validate(s) for s in m.steps or []],
        )

    async def get_execution_log(self, execution_id: str) -> Optional[ExecutionLog]:
        model = await self.session.get(ExecutionLogModel, execution_id)
        return self._model_to_log(model) if model is not None else None

    async def list_execution_logs(self, workflow_id: str, limit: int = 50) -> list[ExecutionLog]:
        """Most recent first."""
        result = await self.session.execute(
            select(ExecutionLogModel)
            .where(ExecutionLogModel.workflow_id == workflow_id)
            .order_by(ExecutionLogModel.started_at.desc())
            .limit(limit)
        )
        return [self._model_to_log(m) for m in result.scalars().all()]


class SessionRepository:
    """Repository facade that opens one short-lived session per operation."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_workflow(self, workflow_id: str) -> Optional[WorkflowGraph]:
        async with self.session_factory() as session:
            return await Repository(session).get_workflow(workflow_id)

    async def check_and_consume(self, user_id: str) -> int:
        async with self.session_factory() as session:
            return await Repository(session).check_and_consume(user_id)

    async def save(self, log: ExecutionLog) -> None:
        async with self.session_factory() as session:
            await Repository(session).save(log)

    async def get_execution_log(self, execution_id: str) -> Optional[ExecutionLog]:
        async with self.session_factory() as session:
            return await Repository(session).get_execution_log(execution_id)
