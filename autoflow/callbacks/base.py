"""Base callback protocol for autoflow run lifecycle hooks.

Callbacks are called at key points of a workflow run.  Implement this
protocol to observe or instrument runs without modifying the engine.

Usage:
    class MyCallback(BaseCallback):
        async def on_step_completed(self, log, step, **kw):
            print(f"{step.node_id}: {step.status}")

    engine = WorkflowEngine(..., callbacks=[MyCallback()])
"""

from typing import Any, Protocol, runtime_checkable

from autoflow.types import ExecutionLog, ExecutionStep


@runtime_checkable
class ExecutionCallback(Protocol):
    """Protocol defining hooks for run lifecycle events.

    All methods are async; the engine awaits each registered callback in order.
    """

    async def on_run_started(self, log: ExecutionLog, **kwargs: Any) -> None:
        """Called once the execution log is allocated."""
        ...

    async def on_step_completed(self, log: ExecutionLog, step: ExecutionStep, **kwargs: Any) -> None:
        """Called after every logged node visit (success, failed or skipped)."""
        ...

    async def on_run_completed(self, log: ExecutionLog, **kwargs: Any) -> None:
        """Called after a successful run has been persisted."""
        ...

    async def on_run_failed(self, log: ExecutionLog, error: Exception, **kwargs: Any) -> None:
        """Called after a failed run has been persisted."""
        ...


class BaseCallback:
    """Concrete base with no-op hooks.

    Instances are also plain ``async def cb(event, data)`` callables, which
    is the form WorkflowEngine invokes; ``__call__`` routes each event to the
    matching named hook.
    """

    async def __call__(self, event: str, data: dict) -> None:
        log = data.get("log")
        if event == "run_started":
            await self.on_run_started(log)
        elif event == "step_completed":
            await self.on_step_completed(log, data.get("step"))
        elif event == "run_completed":
            await self.on_run_completed(log)
        elif event == "run_failed":
            await self.on_run_failed(log, data.get("error"))

    async def on_run_started(self, log: ExecutionLog, **kwargs: Any) -> None:
        pass

    async def on_step_completed(self, log: ExecutionLog, step: ExecutionStep, **kwargs: Any) -> None:
        pass

    async def on_run_completed(self, log: ExecutionLog, **kwargs: Any) -> None:
        pass

    async def on_run_failed(self, log: ExecutionLog, error: Exception, **kwargs: Any) -> None:
        pass
