"""Remediation recommendations for key findings.

Each finding is offered to an ordered list of matchers; the first one that
returns a template wins. The default chain is exact control id, then the
normalized category key, then a generic template sized by criticality.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Protocol, Sequence

from pydantic import BaseModel

from ..models.assessment import Effort, Finding, Recommendation, RemediationEstimate
from ..models.compliance import Criticality


class RemediationTemplate(BaseModel):
    title: str
    description: str
    priority: str
    estimated_effort: Effort
    estimated_days: int
    action_items: list[str]


class RecommendationMatcher(Protocol):
    """Returns a template for a finding, or None to defer to the next matcher."""

    def match(self, finding: Finding) -> Optional[RemediationTemplate]: ...


REMEDIATION_LIBRARY: dict[str, RemediationTemplate] = {
    "access-control": RemediationTemplate(
        title="Implement Comprehensive Access Control Policy",
        description=(
            "Develop and enforce a formal access control policy that defines roles, "
            "responsibilities, and access approval procedures. Ensure all user access "
            "is documented and reviewed regularly."
        ),
        priority="P0",
        estimated_effort=Effort.HIGH,
        estimated_days=30,
        action_items=[
            "Conduct access control audit across all systems",
            "Document current access rights and identify excess privileges",
            "Develop role-based access control (RBAC) model",
            "Implement principle of least privilege",
            "Establish quarterly access review process",
            "Create user access request and approval workflow",
        ],
    ),
    "user-authentication": RemediationTemplate(
        title="Strengthen User Authentication Mechanisms",
        description=(
            "Implement multi-factor authentication (MFA) for all systems, especially "
            "critical and remote access. Enforce strong password policies and monitor "
            "authentication logs."
        ),
        priority="P0",
        estimated_effort=Effort.MEDIUM,
        estimated_days=21,
        action_items=[
            "Deploy multi-factor authentication across all systems",
            "Enforce strong password policy (min 12 chars, complexity)",
            "Implement account lockout after failed attempts",
            "Monitor and alert on authentication failures",
            "Review and update authentication for legacy systems",
            "Provide user training on MFA and password security",
        ],
    ),
    "password-management": RemediationTemplate(
        title="Establish Password Management System",
        description=(
            "Implement automated password management with enforced policies. Ensure "
            "passwords are not reused, meet complexity requirements, and are changed "
            "regularly."
        ),
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=14,
        action_items=[
            "Deploy password manager or identity system",
            "Enforce minimum password age (24 hours)",
            "Enforce maximum password age (90 days)",
            "Prevent password reuse (last 5 passwords)",
            "Implement password history tracking",
            "Conduct password policy audit and user training",
        ],
    ),
    "cryptography": RemediationTemplate(
        title="Implement Cryptographic Controls",
        description=(
            "Deploy encryption for data at rest and in transit using industry-standard "
            "algorithms. Manage cryptographic keys securely with proper lifecycle "
            "management."
        ),
        priority="P0",
        estimated_effort=Effort.HIGH,
        estimated_days=45,
        action_items=[
            "Conduct encryption assessment across systems",
            "Implement TLS 1.2+ for all network communications",
            "Deploy AES-256 encryption for data at rest",
            "Establish cryptographic key management system",
            "Create key rotation schedule (annual minimum)",
            "Implement hardware security modules (HSM) for key storage",
        ],
    ),
    "physical-security": RemediationTemplate(
        title="Strengthen Physical Security Controls",
        description=(
            "Secure facilities with access controls, surveillance, and environmental "
            "monitoring. Protect hardware from unauthorized access and environmental "
            "hazards."
        ),
        priority="P1",
        estimated_effort=Effort.HIGH,
        estimated_days=60,
        action_items=[
            "Install and maintain physical access controls (badge readers)",
            "Deploy CCTV monitoring in data centers and server rooms",
            "Implement environmental monitoring (temperature, humidity)",
            "Restrict physical access to sensitive areas",
            "Establish visitor management and badging procedures",
            "Schedule regular physical security audits",
        ],
    ),
    "asset-management": RemediationTemplate(
        title="Implement Asset Management Program",
        description=(
            "Maintain a comprehensive inventory of all IT assets. Track ownership, "
            "location, and status. Implement controls for asset disposal and "
            "end-of-life management."
        ),
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=28,
        action_items=[
            "Create complete IT asset inventory with unique identifiers",
            "Assign asset owners and track accountability",
            "Implement asset tracking system or database",
            "Establish asset disposal procedures",
            "Conduct quarterly asset audits",
            "Implement barcode or RFID tracking system",
        ],
    ),
    "configuration-management": RemediationTemplate(
        title="Establish Configuration Management System",
        description=(
            "Maintain baseline configurations for all systems. Implement change "
            "management and configuration monitoring to prevent unauthorized "
            "modifications."
        ),
        priority="P1",
        estimated_effort=Effort.HIGH,
        estimated_days=35,
        action_items=[
            "Document baseline configurations for all critical systems",
            "Implement configuration management database (CMDB)",
            "Deploy configuration monitoring tools",
            "Establish change advisory board (CAB)",
            "Implement change tracking and approval workflow",
            "Conduct regular configuration audits",
        ],
    ),
    "patch-management": RemediationTemplate(
        title="Implement Patch Management Program",
        description=(
            "Deploy automated patch management across all systems. Test patches in "
            "staging and deploy within defined timeframes based on criticality."
        ),
        priority="P0",
        estimated_effort=Effort.MEDIUM,
        estimated_days=21,
        action_items=[
            "Deploy automated patch management system",
            "Establish patch testing environment",
            "Define patch deployment schedules by criticality",
            "Monitor vendors for security patches",
            "Maintain patch inventory and deployment records",
            "Conduct monthly patch compliance audits",
        ],
    ),
    "incident-management": RemediationTemplate(
        title="Develop Incident Response Program",
        description=(
            "Create formal incident response procedures including detection, "
            "reporting, and resolution. Establish incident response team and conduct "
            "regular drills."
        ),
        priority="P0",
        estimated_effort=Effort.HIGH,
        estimated_days=40,
        action_items=[
            "Develop incident response plan (IRP) and procedures",
            "Establish incident response team with defined roles",
            "Create incident classification and severity matrix",
            "Implement incident ticketing and tracking system",
            "Create incident response playbooks for common scenarios",
            "Conduct quarterly incident response drills and tabletops",
        ],
    ),
    "backup-recovery": RemediationTemplate(
        title="Implement Backup and Disaster Recovery Program",
        description=(
            "Establish automated backup procedures for all critical data. Test "
            "recovery procedures regularly and maintain offsite backups."
        ),
        priority="P0",
        estimated_effort=Effort.HIGH,
        estimated_days=45,
        action_items=[
            "Conduct business impact analysis (BIA) and RTO/RPO assessment",
            "Deploy automated backup solution for all critical systems",
            "Implement daily incremental and weekly full backups",
            "Store backup copies offsite or in separate cloud region",
            "Encrypt all backups at rest and in transit",
            "Test backup restoration quarterly",
        ],
    ),
    "business-continuity": RemediationTemplate(
        title="Develop Business Continuity Plan",
        description=(
            "Create comprehensive business continuity and disaster recovery plans. "
            "Define recovery procedures and critical function priorities."
        ),
        priority="P1",
        estimated_effort=Effort.HIGH,
        estimated_days=60,
        action_items=[
            "Conduct business impact analysis (BIA)",
            "Develop business continuity plan (BCP)",
            "Establish recovery time objectives (RTO) and recovery point objectives (RPO)",
            "Create alternate processing site or redundancy",
            "Establish communication procedures during incidents",
            "Conduct annual BCP exercises and updates",
        ],
    ),
    "security-training": RemediationTemplate(
        title="Implement Mandatory Security Awareness Program",
        description=(
            "Provide comprehensive security training to all employees. Cover phishing, "
            "password security, data handling, and incident reporting."
        ),
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=14,
        action_items=[
            "Develop mandatory security awareness curriculum",
            "Conduct annual training for all employees",
            "Create role-specific security training modules",
            "Implement phishing simulation campaigns",
            "Track training completion and assessment scores",
            "Provide monthly security awareness updates",
        ],
    ),
    "vulnerability-management": RemediationTemplate(
        title="Establish Vulnerability Management Program",
        description=(
            "Scan systems regularly for vulnerabilities. Track, prioritize, and "
            "remediate findings. Maintain remediation timelines based on severity."
        ),
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=28,
        action_items=[
            "Deploy vulnerability scanning tools (Nessus, OpenVAS)",
            "Conduct quarterly vulnerability assessments",
            "Establish vulnerability rating and prioritization process",
            "Define remediation timelines (critical: 30 days)",
            "Implement vulnerability tracking system",
            "Conduct annual penetration testing",
        ],
    ),
    "access-logging": RemediationTemplate(
        title="Implement Comprehensive Audit Logging",
        description=(
            "Enable and retain audit logs for all systems. Monitor logs for suspicious "
            "activity and maintain secure log storage."
        ),
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=21,
        action_items=[
            "Enable audit logging on all systems",
            "Centralize logs to SIEM or log aggregation system",
            "Implement log retention (min 1 year)",
            "Establish log integrity protection and monitoring",
            "Create alerts for suspicious activities",
            "Conduct monthly log reviews and analysis",
        ],
    ),
    "data-classification": RemediationTemplate(
        title="Implement Data Classification Scheme",
        description=(
            "Define data classification levels. Implement controls based on data "
            "sensitivity and regulatory requirements."
        ),
        priority="P1",
        estimated_effort=Effort.MEDIUM,
        estimated_days=21,
        action_items=[
            "Define data classification scheme (public, internal, confidential, restricted)",
            "Classify existing data inventory",
            "Document classification guidance and examples",
            "Implement technical controls based on classification",
            "Train employees on data classification",
            "Conduct annual data classification review",
        ],
    ),
    "network-segmentation": RemediationTemplate(
        title="Implement Network Segmentation",
        description=(
            "Segment networks based on trust levels and data sensitivity. Implement "
            "firewalls and access controls between segments."
        ),
        priority="P0",
        estimated_effort=Effort.HIGH,
        estimated_days=45,
        action_items=[
            "Map current network topology",
            "Design network segmentation strategy",
            "Implement firewall rules between segments",
            "Deploy intrusion detection/prevention systems",
            "Implement VLANs for logical segmentation",
            "Monitor and audit network traffic between segments",
        ],
    ),
    "third-party-risk": RemediationTemplate(
        title="Establish Third-party Risk Management Program",
        description=(
            "Assess and monitor security controls of third-party vendors and "
            "suppliers. Implement contracts with security requirements."
        ),
        priority="P1",
        estimated_effort=Effort.HIGH,
        estimated_days=45,
        action_items=[
            "Create vendor risk assessment questionnaire (VRAQ)",
            "Assess current vendors for security controls",
            "Establish vendor security requirements in contracts",
            "Implement vendor performance monitoring",
            "Conduct annual vendor security audits",
            "Maintain vendor risk register and tracking system",
        ],
    ),
}

GENERIC_ACTION_ITEMS = [
    "Review control requirements and current implementation",
    "Identify gaps and root causes",
    "Develop remediation plan with timeline",
    "Assign responsibility and track progress",
    "Test and validate remediation",
    "Document evidence of compliance",
]

# criticality -> (priority, effort, days)
_GENERIC_SIZING: dict[Criticality, tuple[str, Effort, int]] = {
    Criticality.CRITICAL: ("P0", Effort.HIGH, 30),
    Criticality.HIGH: ("P1", Effort.MEDIUM, 21),
    Criticality.MEDIUM: ("P2", Effort.MEDIUM, 14),
    Criticality.LOW: ("P3", Effort.LOW, 7),
}


def category_key(category: str) -> str:
    """Library key for a category name, e.g. 'Access Control' -> 'access-control'."""
    return re.sub(r"\s+", "-", category.lower())[:20]


class ControlIdMatcher:
    def __init__(self, library: dict[str, RemediationTemplate]):
        self.library = library

    def match(self, finding: Finding) -> Optional[RemediationTemplate]:
        return self.library.get(finding.control_id)


class CategoryPatternMatcher:
    def __init__(self, library: dict[str, RemediationTemplate]):
        self.library = library

    def match(self, finding: Finding) -> Optional[RemediationTemplate]:
        return self.library.get(category_key(finding.category))


class GenericMatcher:
    """Always matches; sizes the work from the finding's criticality."""

    def match(self, finding: Finding) -> Optional[RemediationTemplate]:
        priority, effort, days = _GENERIC_SIZING.get(
            finding.criticality, _GENERIC_SIZING[Criticality.MEDIUM]
        )
        return RemediationTemplate(
            title=f"Remediate {finding.control_title} Gap",
            description=(
                f"Address the {finding.status.value} status of control: "
                f"{finding.control_title}. Implement necessary controls and procedures "
                f"to achieve full compliance with this requirement."
            ),
            priority=priority,
            estimated_effort=effort,
            estimated_days=days,
            action_items=list(GENERIC_ACTION_ITEMS),
        )


DEFAULT_MATCHERS: tuple[RecommendationMatcher, ...] = (
    ControlIdMatcher(REMEDIATION_LIBRARY),
    CategoryPatternMatcher(REMEDIATION_LIBRARY),
    GenericMatcher(),
)


def find_template(
    finding: Finding,
    matchers: Sequence[RecommendationMatcher] = DEFAULT_MATCHERS,
) -> Optional[RemediationTemplate]:
    for matcher in matchers:
        template = matcher.match(finding)
        if template is not None:
            return template
    return None


def generate_recommendations(
    findings: Iterable[Finding],
    matchers: Sequence[RecommendationMatcher] = DEFAULT_MATCHERS,
) -> list[Recommendation]:
    """One recommendation per control; identical guidance is emitted once."""
    recommendations: list[Recommendation] = []
    seen_controls: set[str] = set()
    seen_content: set[str] = set()

    for finding in findings:
        if finding.control_id in seen_controls:
            continue
        template = find_template(finding, matchers)
        if template is None:
            continue
        seen_controls.add(finding.control_id)

        content = template.model_dump_json()
        if content in seen_content:
            continue
        seen_content.add(content)

        recommendations.append(Recommendation(
            finding_id=f"{finding.control_id}-rec",
            control_id=finding.control_id,
            **template.model_dump(),
        ))

    return recommendations


def estimate_remediation_effort(recommendations: list[Recommendation]) -> RemediationEstimate:
    """Total days, overall effort level and a cost range at 150-250 per day."""
    total_days = sum(r.estimated_days for r in recommendations)

    if total_days < 15:
        effort = Effort.LOW
    elif total_days > 45:
        effort = Effort.HIGH
    else:
        effort = Effort.MEDIUM

    return RemediationEstimate(
        total_days=total_days,
        effort_level=effort,
        cost_low=total_days * 150,
        cost_high=total_days * 250,
    )
