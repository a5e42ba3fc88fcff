"""Agent lifecycle data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from .base import Record


class AgentStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentConfig(Record):
    name: str
    description: str = ""
    schedule: Optional[str] = None
    max_retries: int = Field(default=3, ge=0)
    timeout_ms: int = Field(default=30000, gt=0)
    enabled: bool = True
    backoff_base_ms: int = Field(default=1000, ge=0)
    backoff_cap_ms: int = Field(default=10000, ge=0)
    history_limit: int = Field(default=100, ge=1)

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Agent must have a name in config")
        return value


class AgentRunResult(Record):
    agent_name: str
    status: AgentStatus
    started_at: datetime
    completed_at: datetime
    latency_ms: int = 0
    tasks_completed: int = 0
    total_tasks: int = 1
    error: Optional[str] = None
    data: Optional[Any] = None
    retry_count: Optional[int] = None


class ExecutionLog(Record):
    start_time: datetime
    end_time: Optional[datetime] = None
    latency_ms: Optional[int] = None
    status: AgentStatus = AgentStatus.RUNNING
    error: Optional[str] = None
    retry_count: int = 0


class AgentMetrics(Record):
    name: str
    status: AgentStatus
    last_run_at: Optional[datetime] = None
    latency_ms: Optional[int] = None
    success_count: int = 0
    failure_count: int = 0
    average_latency_ms: int = 0
    enabled: bool = True
    extra: dict[str, Any] = {}


class ManagerStatus(Record):
    total_agents: int = 0
    running_count: int = 0
    completed_count: int = 0
    failed_count: int = 0
    agents: list[AgentMetrics] = []
