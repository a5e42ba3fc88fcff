"""Scoring output data models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import Record
from .compliance import ComplianceStatus, Criticality


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Effort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CategoryScore(Record):
    category: str
    score: int = Field(ge=0, le=100)
    weight: float
    control_count: int = 0
    compliant_count: int = 0
    partial_count: int = 0
    non_compliant_count: int = 0
    not_assessed_count: int = 0
    compliance_percentage: int = 0


class Finding(Record):
    """A non-compliant or unassessed control surfaced for attention."""

    control_id: str
    control_title: str
    category: str
    criticality: Criticality
    status: ComplianceStatus
    impact: str
    priority: int


class Recommendation(Record):
    finding_id: str
    control_id: str
    title: str
    description: str
    priority: str = Field(pattern=r"^P[0-3]$")
    estimated_effort: Effort
    estimated_days: int
    action_items: list[str] = []


class AssessmentResult(Record):
    assessment_id: str = ""
    overall_score: int = 0
    risk_level: RiskLevel = RiskLevel.LOW
    category_scores: list[CategoryScore] = []
    key_findings: list[Finding] = []
    recommendations: list[Recommendation] = []
    confidence: float = 0.0
    total_controls_assessed: int = 0
    total_controls: int = 0
    completion_percentage: int = 0
    computed_at: datetime = Field(default_factory=datetime.now)


class AssessmentSummary(Record):
    average_score: float = 0.0
    highest_risk_category: Optional[str] = None
    lowest_risk_category: Optional[str] = None
    critical_findings_count: int = 0
    high_findings_count: int = 0


class RemediationEstimate(Record):
    total_days: int = 0
    effort_level: Effort = Effort.MEDIUM
    cost_low: int = 0
    cost_high: int = 0


class ValidationReport(Record):
    valid: bool = True
    errors: list[str] = []
