"""Tests for framework and response file loading."""

from __future__ import annotations

import pytest

from controlrisk.compliance.loader import (
    get_all_controls,
    get_available_frameworks,
    get_framework_by_id,
    load_framework_file,
    load_responses,
    to_framework,
)


class TestFrameworkDiscovery:
    def test_lists_frameworks(self, initialized_project):
        found = get_available_frameworks(initialized_project / "frameworks")
        assert len(found) == 1
        assert found[0]["id"] == "iso-lite"
        assert found[0]["name"] == "ISO Lite"
        assert found[0]["version"] == "1.0"

    def test_missing_dir(self, tmp_path):
        assert get_available_frameworks(tmp_path / "nope") == []

    def test_skips_invalid_files(self, initialized_project):
        frameworks = initialized_project / "frameworks"
        (frameworks / "broken.yaml").write_text("id: [unclosed\n", encoding="utf-8")
        (frameworks / "list.yml").write_text("- a\n- b\n", encoding="utf-8")
        (frameworks / "noid.yaml").write_text("name: No Id\n", encoding="utf-8")

        assert [f["id"] for f in get_available_frameworks(frameworks)] == ["iso-lite"]

    def test_get_by_id(self, initialized_project):
        frameworks = initialized_project / "frameworks"
        framework = get_framework_by_id("iso-lite", frameworks)
        assert framework["name"] == "ISO Lite"
        assert get_framework_by_id("nist", frameworks) is None


class TestControls:
    def test_grouped_controls(self, framework_file, sample_controls):
        controls = get_all_controls(load_framework_file(framework_file))
        assert controls == sample_controls

    def test_flat_controls(self):
        controls = get_all_controls({
            "controls": [
                {"id": "A.5.1", "title": "Policies", "category": "Policy", "type": "management"},
                {"id": 7, "title": "Numeric id"},
            ],
        })
        assert [c.id for c in controls] == ["A.5.1", "7"]
        assert controls[0].category == "Policy"
        assert controls[1].category == ""
        assert controls[1].control_type == "management"

    @pytest.mark.parametrize("framework", [
        {"categories": ["Access Control"]},
        {"categories": [{"name": "Access", "controls": ["AC-1"]}]},
        {"controls": "AC-1"},
        {"controls": [["AC-1"]]},
    ])
    def test_malformed_sections_rejected(self, framework):
        with pytest.raises(ValueError, match="Framework"):
            get_all_controls(framework)

    def test_to_framework(self, framework_file):
        framework = to_framework(load_framework_file(framework_file))
        assert framework.id == "iso-lite"
        assert framework.version == "1.0"
        assert framework.description == "Trimmed ISO 27001 catalog"

    def test_non_mapping_framework(self, tmp_path):
        path = tmp_path / "fw.yaml"
        path.write_text("- a\n", encoding="utf-8")
        with pytest.raises(ValueError, match="not a mapping"):
            load_framework_file(path)


class TestResponses:
    def test_strings_and_mappings(self, responses_file):
        responses = load_responses(responses_file)
        assert sorted(responses) == ["AC-1", "AC-2", "CR-1", "PS-1"]
        assert responses["AC-1"].status == "compliant"
        assert responses["CR-1"].status == "non-compliant"
        assert responses["CR-1"].notes == "No encryption at rest"

    def test_wrapped_in_responses_key(self, tmp_path):
        path = tmp_path / "r.yaml"
        path.write_text("responses:\n  AC-1: partial\n", encoding="utf-8")
        assert load_responses(path)["AC-1"].status == "partial"

    def test_null_status(self, tmp_path):
        path = tmp_path / "r.yaml"
        path.write_text("AC-1:\n", encoding="utf-8")
        assert load_responses(path)["AC-1"].status == "not_assessed"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "r.yaml"
        path.write_text("", encoding="utf-8")
        assert load_responses(path) == {}

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "r.yaml"
        path.write_text("- AC-1\n", encoding="utf-8")
        with pytest.raises(ValueError, match="not a mapping"):
            load_responses(path)
