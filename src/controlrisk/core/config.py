"""3-layer configuration.

Loads and merges configuration from:
1. Default settings (built-in)
2. Project config (.controlrisk/config.yaml)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Optional

import yaml

from ..models.agent import AgentConfig

CONFIG_DIR = ".controlrisk"

DEFAULT_CONFIG: dict = {
    "project": {
        "name": "",
    },
    "frameworks": {
        "path": "frameworks",
    },
    "agents": {
        "defaults": {
            "max_retries": 3,
            "timeout_ms": 30000,
            "enabled": True,
            "backoff_base_ms": 1000,
            "backoff_cap_ms": 10000,
            "history_limit": 100,
        },
        "risk-scoring": {
            "name": "Risk Scoring Agent",
            "description": "Runs the risk scoring engine on assessment responses",
            "max_retries": 2,
        },
    },
    "store": {
        "backend": "memory",
        "path": f"{CONFIG_DIR}/store",
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Merge ``override`` into a copy of ``base``. Lists are replaced, not merged."""
    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def load_project_config(project_path: Path) -> dict:
    """Load .controlrisk/config.yaml; a missing or unreadable file yields {}."""
    config_path = project_path / CONFIG_DIR / "config.yaml"
    if not config_path.exists():
        return {}
    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError):
        return {}
    return loaded if isinstance(loaded, dict) else {}


def get_effective_config(
    project_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if project_path is not None:
        project_config = load_project_config(project_path)
        if project_config:
            config = deep_merge(config, project_config)
        config["_project_path"] = str(project_path)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    return config


def get_agent_config(config: dict, agent_key: str, name: Optional[str] = None) -> AgentConfig:
    """Build a validated AgentConfig from ``agents.defaults`` + ``agents.<key>``.

    Raises pydantic.ValidationError for malformed values.
    """
    agents = config.get("agents") or {}
    settings = deep_merge(agents.get("defaults") or {}, agents.get(agent_key) or {})
    if name:
        settings["name"] = name
    settings.setdefault("name", agent_key)
    return AgentConfig.model_validate(settings)
