"""Risk Scoring Agent.

- collect(): reads the framework's controls and the assessment's responses
- process(): runs the scoring engine
- publish(): stores the AssessmentResult
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel

from ..models.agent import AgentConfig, AgentRunResult, AgentStatus
from ..models.assessment import AssessmentResult
from ..models.compliance import ComplianceResponse, Control
from ..scoring.engine import compute_score
from .agent import BaseAgent
from .store import AssessmentRepository

DEFAULT_RISK_AGENT_CONFIG: dict = {
    "name": "Risk Scoring Agent",
    "description": "Runs the risk scoring engine on assessment responses",
    "max_retries": 2,
    "timeout_ms": 30000,
    "enabled": True,
}


class RiskScoringInput(BaseModel):
    assessment_id: str
    framework_id: str
    controls: list[Control] = []
    responses: dict[str, ComplianceResponse] = {}


class RiskScoringAgent(BaseAgent[RiskScoringInput, AssessmentResult]):
    def __init__(
        self,
        repository: AssessmentRepository,
        assessment_id: str,
        framework_id: str,
        config: Union[AgentConfig, dict, None] = None,
    ):
        if isinstance(config, AgentConfig):
            resolved = config
        else:
            resolved = AgentConfig.model_validate({**DEFAULT_RISK_AGENT_CONFIG, **(config or {})})
        super().__init__(resolved)
        self.repository = repository
        self.assessment_id = assessment_id
        self.framework_id = framework_id
        self._last_result: Optional[AssessmentResult] = None

    async def collect(self) -> RiskScoringInput:
        return RiskScoringInput(
            assessment_id=self.assessment_id,
            framework_id=self.framework_id,
            controls=self.repository.get_controls(self.framework_id),
            responses=self.repository.get_responses(self.assessment_id),
        )

    async def process(self, raw: RiskScoringInput) -> AssessmentResult:
        return compute_score(raw.responses, raw.controls, assessment_id=raw.assessment_id)

    async def publish(self, processed: AssessmentResult) -> None:
        self.repository.save_result(processed)

    async def run(self) -> AgentRunResult:
        run = await super().run()
        # only the winning attempt's output is kept
        if run.status == AgentStatus.COMPLETED:
            self._last_result = run.data
        return run

    async def score_assessment(self, assessment_id: Optional[str] = None) -> AssessmentResult:
        """Score on demand, outside the supervised run loop.

        Errors propagate to the caller.
        """
        raw = RiskScoringInput(
            assessment_id=assessment_id or self.assessment_id,
            framework_id=self.framework_id,
            controls=self.repository.get_controls(self.framework_id),
            responses=self.repository.get_responses(assessment_id or self.assessment_id),
        )
        result = await self.process(raw)
        await self.publish(result)
        self._last_result = result
        return result

    def get_last_result(self) -> Optional[AssessmentResult]:
        return self._last_result

    def _metrics_extra(self) -> dict[str, Any]:
        if not self._last_result:
            return {}
        return {
            "last_overall_score": self._last_result.overall_score,
            "last_risk_level": self._last_result.risk_level.value,
        }
