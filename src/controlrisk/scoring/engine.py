"""Deterministic compliance risk scoring.

Maps responses against categorized controls to a 0-100 risk score
(0 = fully compliant, 100 = critical risk), per-category breakdowns,
prioritized findings, recommendations and a confidence value.
"""

from __future__ import annotations

import math
import re
from collections import defaultdict
from typing import Mapping, Optional

from ..models.assessment import (
    AssessmentResult,
    AssessmentSummary,
    CategoryScore,
    Finding,
    RiskLevel,
    ValidationReport,
)
from ..models.compliance import ComplianceResponse, ComplianceStatus, Control, Criticality
from .recommendations import generate_recommendations

MAX_KEY_FINDINGS = 5
UNCATEGORIZED = "Uncategorized"

CRITICALITY_WEIGHTS: dict[Criticality, float] = {
    Criticality.CRITICAL: 3,
    Criticality.HIGH: 2,
    Criticality.MEDIUM: 1.5,
    Criticality.LOW: 1,
}

CONTROL_TYPE_CRITICALITY: dict[str, Criticality] = {
    "technical": Criticality.CRITICAL,
    "operational": Criticality.HIGH,
    "management": Criticality.MEDIUM,
}

STATUS_SCORES: dict[ComplianceStatus, float] = {
    ComplianceStatus.COMPLIANT: 0,
    ComplianceStatus.PARTIAL: 0.5,
    ComplianceStatus.NON_COMPLIANT: 1,
    ComplianceStatus.NOT_ASSESSED: 0.7,
}

CRITICALITY_PRIORITY: dict[Criticality, int] = {
    Criticality.CRITICAL: 100,
    Criticality.HIGH: 75,
    Criticality.MEDIUM: 50,
    Criticality.LOW: 25,
}

STATUS_PRIORITY_BONUS: dict[ComplianceStatus, int] = {
    ComplianceStatus.NOT_ASSESSED: 15,
    ComplianceStatus.NON_COMPLIANT: 10,
    ComplianceStatus.PARTIAL: 5,
    ComplianceStatus.COMPLIANT: 0,
}

IMPACT_TEXT: dict[Criticality, str] = {
    Criticality.CRITICAL: "Critical control gap - immediate remediation required",
    Criticality.HIGH: "High-risk control gap - significant security impact",
    Criticality.MEDIUM: "Medium-risk control gap - moderate compliance risk",
    Criticality.LOW: "Low-risk control gap - minor compliance issue",
}

# Implementation-style answers used by older questionnaires
_STATUS_ALIASES: dict[str, ComplianceStatus] = {
    "implemented": ComplianceStatus.COMPLIANT,
    "partially_implemented": ComplianceStatus.PARTIAL,
    "not_implemented": ComplianceStatus.NON_COMPLIANT,
}

_FINDING_STATUSES = (ComplianceStatus.NON_COMPLIANT, ComplianceStatus.NOT_ASSESSED)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_status(status: Optional[str]) -> ComplianceStatus:
    """Map any status string onto the four canonical values."""
    if isinstance(status, ComplianceStatus):
        return status
    if not status:
        return ComplianceStatus.NOT_ASSESSED
    key = re.sub(r"[\s-]+", "_", str(status).strip().lower())
    try:
        return ComplianceStatus(key)
    except ValueError:
        return _STATUS_ALIASES.get(key, ComplianceStatus.NOT_ASSESSED)


def get_control_criticality(control_type: Optional[str]) -> Criticality:
    """Criticality tier for a control type. Unknown types are medium."""
    return CONTROL_TYPE_CRITICALITY.get((control_type or "").lower(), Criticality.MEDIUM)


def risk_level_for(score: float) -> RiskLevel:
    """0-25 low, 26-50 medium, 51-75 high, 76-100 critical."""
    if score <= 25:
        return RiskLevel.LOW
    if score <= 50:
        return RiskLevel.MEDIUM
    if score <= 75:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def get_priority_score(criticality: Criticality, status: ComplianceStatus) -> int:
    return CRITICALITY_PRIORITY.get(criticality, 0) + STATUS_PRIORITY_BONUS.get(status, 0)


def _normalize_responses(
    responses: Mapping[str, ComplianceResponse],
    known_ids: set[str],
) -> dict[str, ComplianceStatus]:
    normalized: dict[str, ComplianceStatus] = {}
    for control_id, response in responses.items():
        if control_id not in known_ids:
            continue
        normalized[control_id] = normalize_status(response.status)
    return normalized


def _group_by_category(controls: list[Control]) -> dict[str, list[Control]]:
    grouped: dict[str, list[Control]] = defaultdict(list)
    for control in controls:
        grouped[control.category or UNCATEGORIZED].append(control)
    return grouped


def _score_categories(
    grouped: dict[str, list[Control]],
    statuses: dict[str, ComplianceStatus],
    total_controls: int,
) -> list[CategoryScore]:
    scores: list[CategoryScore] = []

    for category, controls in grouped.items():
        weighted_sum = 0.0
        weight_total = 0.0
        counts = {status: 0 for status in ComplianceStatus}

        for control in controls:
            weight = CRITICALITY_WEIGHTS[get_control_criticality(control.control_type)]
            status = statuses.get(control.id, ComplianceStatus.NOT_ASSESSED)
            weighted_sum += STATUS_SCORES[status] * weight
            weight_total += weight
            counts[status] += 1

        raw = (weighted_sum / weight_total) * 100 if weight_total > 0 else 0
        scores.append(CategoryScore(
            category=category,
            score=_round_half_up(raw),
            weight=len(controls) / total_controls,
            control_count=len(controls),
            compliant_count=counts[ComplianceStatus.COMPLIANT],
            partial_count=counts[ComplianceStatus.PARTIAL],
            non_compliant_count=counts[ComplianceStatus.NON_COMPLIANT],
            not_assessed_count=counts[ComplianceStatus.NOT_ASSESSED],
            compliance_percentage=_round_half_up(
                counts[ComplianceStatus.COMPLIANT] / len(controls) * 100
            ),
        ))

    return sorted(scores, key=lambda c: (c.category.lower(), c.category))


def _overall_score(category_scores: list[CategoryScore]) -> float:
    """Category scores averaged by their control-count weight."""
    if not category_scores:
        return 0.0
    total = 0.0
    weight_total = 0.0
    for cat in category_scores:
        weight = cat.weight or 1 / len(category_scores)
        total += cat.score * weight
        weight_total += weight
    return total / weight_total if weight_total > 0 else 0.0


def _extract_key_findings(
    statuses: dict[str, ComplianceStatus],
    controls_by_id: dict[str, Control],
) -> list[Finding]:
    findings: list[Finding] = []
    for control_id, status in statuses.items():
        if status not in _FINDING_STATUSES:
            continue
        control = controls_by_id[control_id]
        criticality = get_control_criticality(control.control_type)
        findings.append(Finding(
            control_id=control.id,
            control_title=control.title,
            category=control.category or UNCATEGORIZED,
            criticality=criticality,
            status=status,
            impact=IMPACT_TEXT[criticality],
            priority=get_priority_score(criticality, status),
        ))

    findings.sort(key=lambda f: f.priority, reverse=True)
    return findings[:MAX_KEY_FINDINGS]


def _confidence(statuses: dict[str, ComplianceStatus], total_controls: int) -> float:
    """Completeness of the assessment, penalized up to 30% for unanswered controls."""
    if total_controls == 0:
        return 0.0
    completion = min(len(statuses) / total_controls, 1)
    not_assessed = sum(1 for s in statuses.values() if s == ComplianceStatus.NOT_ASSESSED)
    ratio = not_assessed / len(statuses) if statuses else 0
    return completion * (1 - ratio * 0.3)


def compute_score(
    responses: Mapping[str, ComplianceResponse],
    controls: list[Control],
    assessment_id: str = "",
) -> AssessmentResult:
    """Score an assessment.

    Responses for controls missing from ``controls`` are ignored. An empty
    control list yields a zeroed, low-risk result.
    """
    if not controls:
        return AssessmentResult(assessment_id=assessment_id)

    controls_by_id = {c.id: c for c in controls}
    statuses = _normalize_responses(responses, set(controls_by_id))
    grouped = _group_by_category(controls)

    category_scores = _score_categories(grouped, statuses, len(controls))
    overall = _round_half_up(_overall_score(category_scores))
    key_findings = _extract_key_findings(statuses, controls_by_id)

    return AssessmentResult(
        assessment_id=assessment_id,
        overall_score=overall,
        risk_level=risk_level_for(overall),
        category_scores=category_scores,
        key_findings=key_findings,
        recommendations=generate_recommendations(key_findings),
        confidence=_round_half_up(_confidence(statuses, len(controls)) * 100) / 100,
        total_controls_assessed=len(statuses),
        total_controls=len(controls),
        completion_percentage=_round_half_up(len(statuses) / len(controls) * 100),
    )


def validate_assessment_responses(
    responses: Mapping[str, ComplianceResponse],
    controls: list[Control],
) -> ValidationReport:
    """Report responses that reference controls outside the catalog."""
    known = {c.id for c in controls}
    errors = [f"Invalid control ID: {cid}" for cid in responses if cid not in known]
    return ValidationReport(valid=not errors, errors=errors)


def summarize_result(result: AssessmentResult) -> AssessmentSummary:
    cats = result.category_scores
    if not cats:
        return AssessmentSummary()

    highest = max(cats, key=lambda c: c.score)
    lowest = min(cats, key=lambda c: c.score)
    return AssessmentSummary(
        average_score=round(sum(c.score for c in cats) / len(cats), 1),
        highest_risk_category=highest.category,
        lowest_risk_category=lowest.category,
        critical_findings_count=sum(
            1 for f in result.key_findings if f.criticality == Criticality.CRITICAL
        ),
        high_findings_count=sum(
            1 for f in result.key_findings if f.criticality == Criticality.HIGH
        ),
    )
