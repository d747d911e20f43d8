"""All ORM models. Workflows are stored as their JSON document; logs keep steps as JSON.

Tables: users, workflows, execution_logs
"""

from sqlalchemy import CheckConstraint, Column, String, Integer, DateTime, JSON, Text, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase
from datetime import datetime, timezone
import uuid


class Base(DeclarativeBase):
    pass


class UserModel(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=True)
    plan = Column(String, default="free")
    remaining_credits = Column(Integer, nullable=False, default=100)
    used_credits = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (CheckConstraint("remaining_credits >= 0", name="ck_user_credits_nonnegative"),)


class WorkflowModel(Base):
    __tablename__ = "workflows"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    organization_id = Column(String, nullable=True, index=True)
    name = Column(String, default="")
    status = Column(String, default="active")
    document = Column(JSON, nullable=False)         # WorkflowGraph.model_dump(by_alias=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))


class ExecutionLogModel(Base):
    __tablename__ = "execution_logs"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    workflow_id = Column(String, nullable=False, index=True)
    organization_id = Column(String, nullable=True)
    executed_by = Column(String, nullable=True)
    trigger_node_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default="running")
    started_at = Column(DateTime, nullable=False)
    finished_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    steps = Column(JSON, default=list)

    __table_args__ = (Index("ix_execution_log_workflow_started", "workflow_id", "started_at"),)
