"""Tests for remediation recommendation matching and effort estimation."""

from __future__ import annotations

from controlrisk.models.assessment import Effort, Finding, Recommendation
from controlrisk.models.compliance import ComplianceStatus, Criticality
from controlrisk.scoring.recommendations import (
    REMEDIATION_LIBRARY,
    CategoryPatternMatcher,
    ControlIdMatcher,
    GenericMatcher,
    RemediationTemplate,
    category_key,
    estimate_remediation_effort,
    find_template,
    generate_recommendations,
)


def _finding(
    control_id: str = "C-1",
    title: str = "Some Control",
    category: str = "Access Control",
    criticality: Criticality = Criticality.CRITICAL,
    status: ComplianceStatus = ComplianceStatus.NON_COMPLIANT,
) -> Finding:
    return Finding(
        control_id=control_id,
        control_title=title,
        category=category,
        criticality=criticality,
        status=status,
        impact="impact",
        priority=100,
    )


def _recommendation(days: int) -> Recommendation:
    return Recommendation(
        finding_id="x-rec",
        control_id="x",
        title="t",
        description="d",
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=days,
    )


class TestCategoryKey:
    def test_lowercase_and_hyphens(self):
        assert category_key("Access Control") == "access-control"
        assert category_key("Third  Party\tRisk") == "third-party-risk"

    def test_truncated_to_twenty(self):
        assert category_key("Configuration Management") == "configuration-manage"


class TestMatchers:
    def test_control_id_matcher(self):
        template = REMEDIATION_LIBRARY["patch-management"]
        matcher = ControlIdMatcher({"A.12.6.1": template})
        assert matcher.match(_finding(control_id="A.12.6.1")) is template
        assert matcher.match(_finding(control_id="A.5.1")) is None

    def test_category_matcher(self):
        matcher = CategoryPatternMatcher(REMEDIATION_LIBRARY)
        template = matcher.match(_finding(category="Cryptography"))
        assert template.title == "Implement Cryptographic Controls"
        assert matcher.match(_finding(category="Widgets")) is None

    def test_generic_sized_by_criticality(self):
        matcher = GenericMatcher()
        critical = matcher.match(_finding(title="Key Rotation", criticality=Criticality.CRITICAL))
        assert critical.title == "Remediate Key Rotation Gap"
        assert (critical.priority, critical.estimated_effort, critical.estimated_days) == ("P0", Effort.HIGH, 30)

        medium = matcher.match(_finding(criticality=Criticality.MEDIUM))
        assert (medium.priority, medium.estimated_effort, medium.estimated_days) == ("P2", Effort.MEDIUM, 14)

        low = matcher.match(_finding(criticality=Criticality.LOW))
        assert (low.priority, low.estimated_effort, low.estimated_days) == ("P3", Effort.LOW, 7)

    def test_chain_order(self):
        custom = RemediationTemplate(
            title="Custom",
            description="d",
            priority="P2",
            estimated_effort=Effort.LOW,
            estimated_days=3,
            action_items=[],
        )
        matchers = [
            ControlIdMatcher({"AC-1": custom}),
            CategoryPatternMatcher(REMEDIATION_LIBRARY),
            GenericMatcher(),
        ]
        assert find_template(_finding(control_id="AC-1"), matchers) is custom
        assert find_template(_finding(control_id="AC-2"), matchers).title == (
            "Implement Comprehensive Access Control Policy"
        )
        assert find_template(_finding(category="Widgets"), matchers).title.startswith("Remediate")

    def test_no_matcher_hits(self):
        assert find_template(_finding(), [ControlIdMatcher({})]) is None


class TestGenerateRecommendations:
    def test_one_per_finding(self):
        recs = generate_recommendations([
            _finding(control_id="CR-1", category="Cryptography"),
            _finding(control_id="PS-1", category="Physical Security"),
        ])
        assert [r.finding_id for r in recs] == ["CR-1-rec", "PS-1-rec"]
        assert recs[0].priority == "P0"
        assert recs[0].estimated_days == 45
        assert recs[0].action_items

    def test_identical_guidance_emitted_once(self):
        recs = generate_recommendations([
            _finding(control_id="AC-1", category="Access Control"),
            _finding(control_id="AC-2", category="Access Control"),
        ])
        assert len(recs) == 1
        assert recs[0].control_id == "AC-1"

    def test_duplicate_control_ignored(self):
        recs = generate_recommendations([
            _finding(control_id="X-1", category="Widgets", title="One"),
            _finding(control_id="X-1", category="Widgets", title="Two"),
        ])
        assert len(recs) == 1
        assert recs[0].title == "Remediate One Gap"

    def test_generic_titles_differ_per_control(self):
        recs = generate_recommendations([
            _finding(control_id="X-1", category="Widgets", title="One"),
            _finding(control_id="X-2", category="Widgets", title="Two"),
        ])
        assert len(recs) == 2

    def test_empty(self):
        assert generate_recommendations([]) == []


class TestEstimateRemediationEffort:
    def test_empty(self):
        estimate = estimate_remediation_effort([])
        assert estimate.total_days == 0
        assert estimate.effort_level == Effort.LOW
        assert estimate.cost_low == 0

    def test_levels(self):
        assert estimate_remediation_effort([_recommendation(14)]).effort_level == Effort.LOW
        assert estimate_remediation_effort([_recommendation(15)]).effort_level == Effort.MEDIUM
        assert estimate_remediation_effort([_recommendation(45)]).effort_level == Effort.MEDIUM
        assert estimate_remediation_effort([_recommendation(46)]).effort_level == Effort.HIGH

    def test_cost_range(self):
        estimate = estimate_remediation_effort([_recommendation(45), _recommendation(60)])
        assert estimate.total_days == 105
        assert estimate.effort_level == Effort.HIGH
        assert estimate.cost_low == 15750
        assert estimate.cost_high == 26250
