"""Framework catalog and response file loading (YAML)."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from ..models.compliance import ComplianceResponse, Control, Framework


def _read_yaml(path: Path) -> object:
    return yaml.safe_load(path.read_text(encoding="utf-8-sig"))


def get_available_frameworks(frameworks_dir: Path) -> list[dict]:
    """List framework definitions found under a directory.

    Files that are not valid framework YAML are skipped.
    """
    frameworks: list[dict] = []

    if not frameworks_dir.exists():
        return frameworks

    for yaml_file in sorted(frameworks_dir.rglob("*.y*ml")):
        try:
            content = _read_yaml(yaml_file)
        except (OSError, yaml.YAMLError):
            continue
        if isinstance(content, dict) and content.get("id"):
            frameworks.append({
                "id": content["id"],
                "name": content.get("name", ""),
                "version": str(content.get("version", "")),
                "description": content.get("description", ""),
                "path": str(yaml_file),
            })

    return frameworks


def get_framework_by_id(framework_id: str, frameworks_dir: Path) -> Optional[dict]:
    match = next(
        (f for f in get_available_frameworks(frameworks_dir) if f["id"] == framework_id),
        None,
    )
    if not match:
        return None
    return _read_yaml(Path(match["path"]))


def load_framework_file(path: Path) -> dict:
    content = _read_yaml(path)
    if not isinstance(content, dict):
        raise ValueError(f"Framework file is not a mapping: {path}")
    return content


def _entries(value: object, what: str) -> list[dict]:
    """A list of mappings, or ValueError naming the malformed section."""
    if not value:
        return []
    if not isinstance(value, list):
        raise ValueError(f"Framework {what} must be a list, got {type(value).__name__}")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValueError(f"Framework {what} entry is not a mapping: {entry!r}")
    return value


def _make_control(entry: dict, category: str) -> Control:
    return Control(
        id=str(entry["id"]),
        title=entry.get("title", ""),
        category=entry.get("category") or category,
        control_type=entry.get("control_type") or entry.get("type") or "management",
        description=entry.get("description", ""),
    )


def get_all_controls(framework: dict) -> list[Control]:
    """Extract all controls from a framework definition.

    Handles both grouped (categories -> controls) and flat control lists.
    Raises ValueError when a section is not a list of mappings.
    """
    controls: list[Control] = []

    for category in _entries(framework.get("categories"), "categories"):
        for entry in _entries(category.get("controls"), "controls"):
            controls.append(_make_control(entry, category.get("name", "")))

    for entry in _entries(framework.get("controls"), "controls"):
        controls.append(_make_control(entry, ""))

    return controls


def to_framework(framework: dict) -> Framework:
    return Framework(
        id=str(framework.get("id", "")),
        name=framework.get("name", ""),
        version=str(framework.get("version", "")),
        description=framework.get("description", ""),
    )


def load_responses(path: Path) -> dict[str, ComplianceResponse]:
    """Load responses keyed by control id.

    Values are either a bare status string or a mapping with ``status``,
    ``notes`` and ``evidence``. A later duplicate key replaces the earlier one.
    """
    content = _read_yaml(path) or {}
    if not isinstance(content, dict):
        raise ValueError(f"Responses file is not a mapping: {path}")
    if isinstance(content.get("responses"), dict):
        content = content["responses"]

    responses: dict[str, ComplianceResponse] = {}
    for control_id, value in content.items():
        control_id = str(control_id)
        if isinstance(value, dict):
            responses[control_id] = ComplianceResponse(
                control_id=control_id,
                status=str(value.get("status", "not_assessed")),
                notes=value.get("notes"),
                evidence=value.get("evidence"),
            )
        else:
            responses[control_id] = ComplianceResponse(
                control_id=control_id,
                status=str(value) if value is not None else "not_assessed",
            )
    return responses
