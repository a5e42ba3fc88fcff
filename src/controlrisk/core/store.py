"""Key-based storage for frameworks, controls, responses, results and runs.

A Store holds JSON-compatible dicts under slash-separated keys. Callers never
reach for module-level state; a Store is created once and injected.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from ..models.agent import AgentRunResult
from ..models.assessment import AssessmentResult
from ..models.compliance import ComplianceResponse, Control, Framework


@runtime_checkable
class Store(Protocol):
    """Protocol that all storage backends must implement."""

    def put(self, key: str, value: dict) -> None: ...

    def get(self, key: str) -> Optional[dict]: ...

    def list(self, prefix: Optional[str] = None) -> list[str]: ...

    def delete(self, key: str) -> bool: ...


class InMemoryStore:
    """Process-local store. Safe to share between concurrently running agents."""

    def __init__(self) -> None:
        self._data: dict[str, dict] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: dict) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> Optional[dict]:
        with self._lock:
            return self._data.get(key)

    def list(self, prefix: Optional[str] = None) -> list[str]:
        with self._lock:
            keys = list(self._data)
        return sorted(k for k in keys if not prefix or k.startswith(prefix))

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class JsonFileStore:
    """One UTF-8 JSON file per key below ``root`` (key segments become directories)."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        parts = [p for p in key.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise ValueError(f"Invalid store key: {key!r}")
        return self.root.joinpath(*parts[:-1], f"{parts[-1]}.json")

    def put(self, key: str, value: dict) -> None:
        path = self._path(key)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(value, indent=2, ensure_ascii=False), encoding="utf-8")

    def get(self, key: str) -> Optional[dict]:
        path = self._path(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def list(self, prefix: Optional[str] = None) -> list[str]:
        if not self.root.exists():
            return []
        keys = [
            p.relative_to(self.root).with_suffix("").as_posix()
            for p in self.root.rglob("*.json")
        ]
        return sorted(k for k in keys if not prefix or k.startswith(prefix))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
            return True


class Keys:
    """Key space per record type."""

    @staticmethod
    def framework(framework_id: str) -> str:
        return f"frameworks/{framework_id}"

    @staticmethod
    def controls(framework_id: str) -> str:
        return f"controls/{framework_id}"

    @staticmethod
    def responses(assessment_id: str) -> str:
        return f"responses/{assessment_id}/"

    @staticmethod
    def response(assessment_id: str, control_id: str) -> str:
        return f"responses/{assessment_id}/{control_id}"

    @staticmethod
    def result(assessment_id: str) -> str:
        return f"results/{assessment_id}"

    @staticmethod
    def runs(agent_name: str) -> str:
        return f"runs/{_slug(agent_name)}/"

    @staticmethod
    def run(agent_name: str, run_id: str) -> str:
        return f"runs/{_slug(agent_name)}/{run_id}"


def _slug(value: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "-" for c in value).strip("-").lower()


class AssessmentRepository:
    """Typed access to the record types kept in a Store."""

    def __init__(self, store: Store):
        self.store = store

    # Frameworks and controls

    def save_framework(self, framework: Framework, controls: Optional[list[Control]] = None) -> None:
        if controls is not None:
            framework = framework.model_copy(update={
                "control_count": len(controls),
                "categories": sorted({c.category for c in controls if c.category}),
            })
            self.save_controls(framework.id, controls)
        self.store.put(Keys.framework(framework.id), framework.to_store())

    def get_framework(self, framework_id: str) -> Optional[Framework]:
        data = self.store.get(Keys.framework(framework_id))
        return Framework.model_validate(data) if data else None

    def list_frameworks(self) -> list[Framework]:
        return [
            Framework.model_validate(self.store.get(key))
            for key in self.store.list("frameworks/")
        ]

    def save_controls(self, framework_id: str, controls: list[Control]) -> None:
        self.store.put(Keys.controls(framework_id), {
            "frameworkId": framework_id,
            "controls": [c.to_store() for c in controls],
        })

    def get_controls(self, framework_id: str) -> list[Control]:
        data = self.store.get(Keys.controls(framework_id)) or {}
        return [Control.model_validate(c) for c in data.get("controls", [])]

    # Responses (last write wins per assessment/control)

    def record_response(self, assessment_id: str, response: ComplianceResponse) -> None:
        self.store.put(Keys.response(assessment_id, response.control_id), response.to_store())

    def get_responses(self, assessment_id: str) -> dict[str, ComplianceResponse]:
        responses: dict[str, ComplianceResponse] = {}
        for key in self.store.list(Keys.responses(assessment_id)):
            data = self.store.get(key)
            if data:
                response = ComplianceResponse.model_validate(data)
                responses[response.control_id] = response
        return responses

    # Results

    def save_result(self, result: AssessmentResult) -> None:
        self.store.put(Keys.result(result.assessment_id), result.to_store())

    def get_result(self, assessment_id: str) -> Optional[AssessmentResult]:
        data = self.store.get(Keys.result(assessment_id))
        return AssessmentResult.model_validate(data) if data else None

    def list_results(self) -> list[AssessmentResult]:
        return [
            AssessmentResult.model_validate(self.store.get(key))
            for key in self.store.list("results/")
        ]

    # Run history

    def save_run(self, result: AgentRunResult) -> str:
        run_id = result.started_at.strftime("%Y%m%dT%H%M%S%f")
        key = Keys.run(result.agent_name, run_id)
        self.store.put(key, result.to_store())
        return key

    def list_runs(self, agent_name: str) -> list[AgentRunResult]:
        return [
            AgentRunResult.model_validate(self.store.get(key))
            for key in self.store.list(Keys.runs(agent_name))
        ]


def create_store(config: dict) -> Store:
    """Build the Store selected by the ``store`` config section."""
    store_config = config.get("store") or {}
    backend = store_config.get("backend", "memory")

    if backend == "memory":
        return InMemoryStore()
    if backend == "json":
        root = Path(store_config.get("path") or ".controlrisk/store")
        project_path = config.get("_project_path")
        if project_path and not root.is_absolute():
            root = Path(project_path) / root
        return JsonFileStore(root)
    raise ValueError(f"Unknown store backend: {backend}")
