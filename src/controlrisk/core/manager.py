"""Agent registry: registration, execution and monitoring of many agents."""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime
from typing import Optional

from rich.console import Console

from ..models.agent import AgentConfig, AgentMetrics, AgentRunResult, AgentStatus, ManagerStatus
from ..utils.errors import describe_error
from .agent import BaseAgent
from .store import AssessmentRepository

console = Console(stderr=True)

MAX_HISTORY_PER_AGENT = 50


class AgentManager:
    """Runs registered agents and keeps a bounded run history per agent.

    When a repository is given, every run result is also written to its
    ``runs/`` key space.
    """

    def __init__(
        self,
        repository: Optional[AssessmentRepository] = None,
        max_history: int = MAX_HISTORY_PER_AGENT,
    ):
        self.repository = repository
        self.max_history = max_history
        self._agents: dict[str, BaseAgent] = {}
        self._history: dict[str, deque[AgentRunResult]] = {}

    def register(self, agent: BaseAgent) -> None:
        name = agent.config.name
        if name in self._agents:
            raise ValueError(f'Agent with name "{name}" is already registered')
        self._agents[name] = agent
        self._history[name] = deque(maxlen=self.max_history)

    def register_many(self, agents: list[BaseAgent]) -> None:
        for agent in agents:
            self.register(agent)

    def unregister(self, name: str) -> bool:
        self._history.pop(name, None)
        return self._agents.pop(name, None) is not None

    def get(self, name: str) -> Optional[BaseAgent]:
        return self._agents.get(name)

    def has(self, name: str) -> bool:
        return name in self._agents

    def names(self) -> list[str]:
        return list(self._agents)

    def configs(self) -> list[AgentConfig]:
        return [agent.config for agent in self._agents.values()]

    def _record(self, name: str, result: AgentRunResult) -> None:
        self._history.setdefault(name, deque(maxlen=self.max_history)).append(result)
        if self.repository is not None:
            self.repository.save_run(result)

    async def _run_one(self, name: str, agent: BaseAgent) -> AgentRunResult:
        try:
            result = await agent.run()
        except Exception as e:
            # overridden run() methods are not bound by the no-raise contract
            now = datetime.now()
            result = AgentRunResult(
                agent_name=name,
                status=AgentStatus.FAILED,
                started_at=now,
                completed_at=now,
                tasks_completed=0,
                total_tasks=1,
                error=describe_error(e),
            )
            console.print(f"  [red]ERROR[/red] {name}: {result.error}")
        self._record(name, result)
        return result

    async def run_agent(self, name: str) -> AgentRunResult:
        agent = self._agents.get(name)
        if agent is None:
            raise ValueError(f'Agent "{name}" not found')
        return await self._run_one(name, agent)

    async def run_all(self) -> list[AgentRunResult]:
        """Run every registered agent, one after another."""
        results: list[AgentRunResult] = []
        for name, agent in list(self._agents.items()):
            results.append(await self._run_one(name, agent))
        return results

    async def run_all_parallel(self) -> list[AgentRunResult]:
        """Run every registered agent concurrently; results keep registration order."""
        return list(await asyncio.gather(
            *(self._run_one(name, agent) for name, agent in list(self._agents.items()))
        ))

    def get_last_run(self, name: str) -> Optional[AgentRunResult]:
        agent = self._agents.get(name)
        return agent.get_last_run() if agent else None

    def get_run_history(self, name: str) -> list[AgentRunResult]:
        return list(self._history.get(name, ()))

    def clear_history(self, name: Optional[str] = None) -> None:
        names = [name] if name else list(self._history)
        for n in names:
            if n in self._history:
                self._history[n].clear()

    def get_agent_metrics(self) -> list[AgentMetrics]:
        return [agent.get_metrics() for agent in self._agents.values()]

    def get_status(self) -> ManagerStatus:
        metrics = self.get_agent_metrics()
        return ManagerStatus(
            total_agents=len(self._agents),
            running_count=sum(1 for m in metrics if m.status == AgentStatus.RUNNING),
            completed_count=sum(1 for m in metrics if m.status == AgentStatus.COMPLETED),
            failed_count=sum(1 for m in metrics if m.status == AgentStatus.FAILED),
            agents=metrics,
        )
