"""Supervised agent lifecycle: collect -> process -> publish.

Every agent shares the same driver. ``run()`` executes the three phases as one
unit of work, races each attempt against a timeout, retries with capped
exponential backoff and records exactly one terminal result per call.
Failures never escape ``run()``; callers read ``get_last_run()``,
``get_metrics()`` and the execution log instead.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar, Union

from rich.console import Console

from ..models.agent import AgentConfig, AgentMetrics, AgentRunResult, AgentStatus, ExecutionLog
from ..utils.errors import describe_error

console = Console(stderr=True)

RawT = TypeVar("RawT")
ProcessedT = TypeVar("ProcessedT")


class AgentTimeoutError(Exception):
    """An attempt did not finish within the agent's ``timeout_ms``."""


class AttemptAbandoned(Exception):
    """A timed-out attempt stopped before publishing."""


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


class BaseAgent(ABC, Generic[RawT, ProcessedT]):
    """Base class for all agents.

    Subclasses implement ``collect``, ``process`` and ``publish``. State
    (status, last run, execution log) is scoped to the instance.
    """

    def __init__(self, config: Union[AgentConfig, dict]):
        if not isinstance(config, AgentConfig):
            config = AgentConfig.model_validate(config)
        self.config = config
        self.status = AgentStatus.IDLE
        self._last_run: Optional[AgentRunResult] = None
        self._logs: deque[ExecutionLog] = deque(maxlen=config.history_limit)
        self._late_tasks: set[asyncio.Task] = set()
        self._run_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    async def collect(self) -> RawT:
        """Gather raw input from the agent's sources."""

    @abstractmethod
    async def process(self, raw: RawT) -> ProcessedT:
        """Transform raw input into the agent's result."""

    @abstractmethod
    async def publish(self, processed: ProcessedT) -> None:
        """Hand the result to its consumers."""

    async def _execute(self, abandoned: asyncio.Event) -> ProcessedT:
        raw = await self.collect()
        if abandoned.is_set():
            raise AttemptAbandoned("abandoned after collect")
        processed = await self.process(raw)
        if abandoned.is_set():
            raise AttemptAbandoned("abandoned after process")
        await self.publish(processed)
        return processed

    def backoff_delay_ms(self, attempt: int) -> int:
        """Delay before the attempt following ``attempt`` (0-based)."""
        return min(self.config.backoff_base_ms * 2**attempt, self.config.backoff_cap_ms)

    async def _attempt(self) -> ProcessedT:
        """Run one unit of work against the timeout.

        The unit runs in its own task. If the timer wins, the task is left to
        finish on its own, never reaches ``publish`` and whatever it produces
        is discarded.
        """
        abandoned = asyncio.Event()
        task = asyncio.create_task(self._execute(abandoned))
        done, _ = await asyncio.wait({task}, timeout=self.config.timeout_ms / 1000)
        if task in done:
            return task.result()

        abandoned.set()
        self._late_tasks.add(task)
        task.add_done_callback(self._discard_late_result)
        raise AgentTimeoutError(
            f"Agent execution timeout after {self.config.timeout_ms}ms "
            f"for agent: {self.config.name}"
        )

    def _discard_late_result(self, task: asyncio.Task) -> None:
        self._late_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, AttemptAbandoned):
            outcome = "stopped before publishing"
        elif error is not None:
            outcome = "failed late"
        else:
            outcome = "finished late"
        console.print(f"  [dim]{self.config.name}: timed-out attempt {outcome}, discarded[/dim]")

    def _disabled_result(self) -> AgentRunResult:
        now = datetime.now()
        return AgentRunResult(
            agent_name=self.config.name,
            status=AgentStatus.IDLE,
            started_at=now,
            completed_at=now,
            latency_ms=0,
            tasks_completed=0,
            total_tasks=1,
            error="Agent is disabled",
        )

    async def run(self) -> AgentRunResult:
        """Execute the lifecycle with timeout and retries. Never raises."""
        if not self.config.enabled:
            return self._disabled_result()

        async with self._run_lock:
            return await self._run_supervised()

    async def _run_supervised(self) -> AgentRunResult:
        started_at = datetime.now()
        self.status = AgentStatus.RUNNING
        max_retries = self.config.max_retries
        last_error: Optional[BaseException] = None
        attempt = 0

        for attempt in range(max_retries + 1):
            try:
                processed = await self._attempt()
            except Exception as e:
                last_error = e
                if attempt < max_retries:
                    delay_ms = self.backoff_delay_ms(attempt)
                    label = "TIMEOUT" if isinstance(e, AgentTimeoutError) else "RETRY"
                    console.print(
                        f"  [yellow]{label}[/yellow] {self.config.name}: "
                        f"attempt {attempt + 1}/{max_retries + 1} failed "
                        f"({describe_error(e)}), retrying in {delay_ms}ms"
                    )
                    await asyncio.sleep(delay_ms / 1000)
                continue

            completed_at = datetime.now()
            latency = _elapsed_ms(started_at, completed_at)
            self.status = AgentStatus.COMPLETED
            self._logs.append(ExecutionLog(
                start_time=started_at,
                end_time=completed_at,
                latency_ms=latency,
                status=AgentStatus.COMPLETED,
                retry_count=attempt,
            ))
            self._last_run = AgentRunResult(
                agent_name=self.config.name,
                status=AgentStatus.COMPLETED,
                started_at=started_at,
                completed_at=completed_at,
                latency_ms=latency,
                tasks_completed=1,
                total_tasks=1,
                data=processed,
                retry_count=attempt,
            )
            console.print(f"  [green]OK[/green] {self.config.name} in {latency}ms")
            return self._last_run

        completed_at = datetime.now()
        latency = _elapsed_ms(started_at, completed_at)
        message = describe_error(last_error) if last_error else "Unknown error"
        self.status = AgentStatus.FAILED
        self._logs.append(ExecutionLog(
            start_time=started_at,
            end_time=completed_at,
            latency_ms=latency,
            status=AgentStatus.FAILED,
            error=message,
            retry_count=attempt,
        ))
        self._last_run = AgentRunResult(
            agent_name=self.config.name,
            status=AgentStatus.FAILED,
            started_at=started_at,
            completed_at=completed_at,
            latency_ms=latency,
            tasks_completed=0,
            total_tasks=1,
            error=message,
            retry_count=attempt,
        )
        console.print(f"  [red]FAILED[/red] {self.config.name}: {message}")
        return self._last_run

    def get_last_run(self) -> Optional[AgentRunResult]:
        return self._last_run

    def get_execution_logs(self) -> list[ExecutionLog]:
        return list(self._logs)

    def clear_execution_logs(self) -> None:
        self._logs.clear()

    def get_metrics(self) -> AgentMetrics:
        """Success/failure counts and mean success latency, from the log only."""
        successes = [log for log in self._logs if log.status == AgentStatus.COMPLETED]
        failures = [log for log in self._logs if log.status == AgentStatus.FAILED]
        latencies = [log.latency_ms for log in successes if log.latency_ms]
        average = sum(latencies) / len(latencies) if latencies else 0

        return AgentMetrics(
            name=self.config.name,
            status=self.status,
            last_run_at=self._last_run.completed_at if self._last_run else None,
            latency_ms=self._last_run.latency_ms if self._last_run else None,
            success_count=len(successes),
            failure_count=len(failures),
            average_latency_ms=int(average + 0.5),
            enabled=self.config.enabled,
            extra=self._metrics_extra(),
        )

    def _metrics_extra(self) -> dict[str, Any]:
        return {}
