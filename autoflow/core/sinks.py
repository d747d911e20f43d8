"""Execution-log sinks. The engine persists each finalized log exactly once."""

from typing import Optional, Protocol, runtime_checkable

from autoflow.types import ExecutionLog

_MAX_MEMORY_LOGS = 10_000


@runtime_checkable
class LogSink(Protocol):

    async def save(self, log: ExecutionLog) -> None:
        """Persist *log*, keyed by workflow id + execution id."""
        ...


class InMemoryLogSink:
    """Keeps the most recent logs in process memory."""

    def __init__(self):
        self._logs: dict[str, ExecutionLog] = {}

    async def save(self, log: ExecutionLog) -> None:
        self._logs[log.id] = log.model_copy(deep=True)
        if len(self._logs) > _MAX_MEMORY_LOGS:
            oldest = next(iter(self._logs))
            del self._logs[oldest]

    async def get_execution_log(self, execution_id: str) -> Optional[ExecutionLog]:
        return self._logs.get(execution_id)

    async def list_execution_logs(self, workflow_id: Optional[str] = None) -> list[ExecutionLog]:
        logs = list(self._logs.values())
        if workflow_id is not None:
            logs = [l for l in logs if l.workflow_id == workflow_id]
        return logs
