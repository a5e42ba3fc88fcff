"""Shared fixtures for controlrisk tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from controlrisk.core.store import AssessmentRepository, InMemoryStore
from controlrisk.models.compliance import ComplianceResponse, Control, Framework

FRAMEWORK_YAML = """\
id: iso-lite
name: ISO Lite
version: "1.0"
description: Trimmed ISO 27001 catalog
categories:
  - name: Access Control
    controls:
      - id: AC-1
        title: Access Control Policy
        control_type: technical
      - id: AC-2
        title: User Registration
        control_type: operational
  - name: Cryptography
    controls:
      - id: CR-1
        title: Encryption
        control_type: technical
  - name: Incident Management
    controls:
      - id: IM-1
        title: Incident Response
        control_type: operational
  - name: Physical Security
    controls:
      - id: PS-1
        title: Physical Security Perimeter
        type: management
"""

RESPONSES_YAML = """\
AC-1: compliant
AC-2: partial
CR-1:
  status: non-compliant
  notes: No encryption at rest
PS-1: not_assessed
"""


@pytest.fixture
def sample_controls() -> list[Control]:
    """Five controls in four categories; matches FRAMEWORK_YAML."""
    return [
        Control(id="AC-1", title="Access Control Policy", category="Access Control", control_type="technical"),
        Control(id="AC-2", title="User Registration", category="Access Control", control_type="operational"),
        Control(id="CR-1", title="Encryption", category="Cryptography", control_type="technical"),
        Control(id="IM-1", title="Incident Response", category="Incident Management", control_type="operational"),
        Control(id="PS-1", title="Physical Security Perimeter", category="Physical Security", control_type="management"),
    ]


@pytest.fixture
def sample_responses() -> dict[str, ComplianceResponse]:
    """IM-1 is deliberately left without a response."""
    return {
        "AC-1": ComplianceResponse(control_id="AC-1", status="compliant"),
        "AC-2": ComplianceResponse(control_id="AC-2", status="partial"),
        "CR-1": ComplianceResponse(control_id="CR-1", status="non-compliant", notes="No encryption at rest"),
        "PS-1": ComplianceResponse(control_id="PS-1", status="not_assessed"),
    }


@pytest.fixture
def repository(sample_controls, sample_responses) -> AssessmentRepository:
    """In-memory repository holding the sample framework and assessment 'assess-1'."""
    repo = AssessmentRepository(InMemoryStore())
    repo.save_framework(Framework(id="iso-lite", name="ISO Lite", version="1.0"), sample_controls)
    for response in sample_responses.values():
        repo.record_response("assess-1", response)
    return repo


@pytest.fixture
def framework_file(tmp_path: Path) -> Path:
    path = tmp_path / "iso-lite.yaml"
    path.write_text(FRAMEWORK_YAML, encoding="utf-8")
    return path


@pytest.fixture
def responses_file(tmp_path: Path) -> Path:
    path = tmp_path / "responses.yaml"
    path.write_text(RESPONSES_YAML, encoding="utf-8")
    return path


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """A project directory without configuration."""
    project = tmp_path / "test-project"
    project.mkdir()
    return project


@pytest.fixture
def initialized_project(tmp_project: Path) -> Path:
    """A project with .controlrisk/config.yaml and a frameworks directory."""
    cr_dir = tmp_project / ".controlrisk"
    cr_dir.mkdir()
    (cr_dir / "config.yaml").write_text(
        'project:\n  name: "test-project"\n\n'
        "agents:\n"
        "  defaults:\n"
        "    backoff_base_ms: 0\n"
        "  risk-scoring:\n"
        "    timeout_ms: 5000\n"
        "store:\n"
        "  backend: json\n",
        encoding="utf-8",
    )
    frameworks = tmp_project / "frameworks"
    frameworks.mkdir()
    (frameworks / "iso-lite.yaml").write_text(FRAMEWORK_YAML, encoding="utf-8")
    return tmp_project
