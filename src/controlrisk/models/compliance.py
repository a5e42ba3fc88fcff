"""Compliance catalog and response data models."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import ConfigDict

from .base import Record


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    PARTIAL = "partial"
    NON_COMPLIANT = "non_compliant"
    NOT_ASSESSED = "not_assessed"


class ControlType(str, Enum):
    TECHNICAL = "technical"
    OPERATIONAL = "operational"
    MANAGEMENT = "management"


class Criticality(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Control(Record):
    """A single compliance requirement drawn from a framework."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    category: str = ""
    control_type: str = ControlType.MANAGEMENT.value
    description: str = ""


class ComplianceResponse(Record):
    """One assessor answer for one control.

    ``status`` is kept as the raw string; the scoring engine normalizes it.
    """

    control_id: str
    status: str = ComplianceStatus.NOT_ASSESSED.value
    notes: Optional[str] = None
    evidence: Optional[str] = None


class Framework(Record):
    id: str
    name: str = ""
    version: str = ""
    description: str = ""
    control_count: int = 0
    categories: list[str] = []
