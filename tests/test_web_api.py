"""Tests for the FastAPI endpoints.

Covers:
  - GET /health
  - POST /api/validate (bare dataset and {dataset, config})
  - POST /api/fixes/apply
  - POST /api/rules/validate, /api/rules/suggest
  - POST /api/export/rules
  - 422 errors
"""

from __future__ import annotations

import copy

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from allocation_qa import __version__  # noqa: E402
from allocation_qa.web.app import app  # noqa: E402

client = TestClient(app)


@pytest.fixture
def records(clean_records) -> dict:
    return copy.deepcopy(clean_records)


def _types(findings: list[dict]) -> list[str]:
    return [f["type"] for f in findings]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidate:
    def test_clean_dataset(self, records):
        resp = client.post("/api/validate", json=records)
        assert resp.status_code == 200
        data = resp.json()
        assert data["isValid"] is True
        assert data["errors"] == []
        assert data["summary"]["entityCounts"] == {"clients": 2, "workers": 3, "tasks": 2}
        assert isinstance(data["suggestions"], list)

    def test_errors_fixes_and_canonical_phases(self, records):
        records["clients"][0]["PriorityLevel"] = 9
        records["tasks"][0]["PreferredPhases"] = "1 - 2"
        data = client.post("/api/validate", json=records).json()
        assert data["isValid"] is False
        assert "out_of_range" in _types(data["errors"])
        (fix,) = [f for f in data["fixes"] if f["column"] == "PriorityLevel"]
        assert fix["value"] == 5
        assert fix["recordId"] == "C1"
        assert data["dataset"]["tasks"][0]["PreferredPhases"] == "[1,2]"

    def test_request_config_disables_check(self, records):
        records["clients"][0]["PriorityLevel"] = 9
        body = {"dataset": records, "config": {"checks": {"range_values": {"enabled": False}}}}
        data = client.post("/api/validate", json=body).json()
        assert "out_of_range" not in _types(data["errors"])

    @pytest.mark.parametrize(
        "body",
        [
            [1, 2],
            {"clients": "C1"},
            {"clients": [1]},
            {"dataset": {}, "config": []},
        ],
    )
    def test_bad_bodies_are_422(self, body):
        assert client.post("/api/validate", json=body).status_code == 422

    def test_invalid_json_is_422(self):
        resp = client.post(
            "/api/validate", content=b"{nope", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 422


class TestApplyFixes:
    def test_apply_and_revalidate(self, records):
        records["clients"][0]["PriorityLevel"] = 9
        fixes = client.post("/api/validate", json=records).json()["fixes"]
        resp = client.post("/api/fixes/apply", json={"dataset": records, "fixes": fixes})
        assert resp.status_code == 200
        data = resp.json()
        assert data["dataset"]["clients"][0]["PriorityLevel"] == 5
        assert data["result"]["isValid"] is True

    def test_bad_fix_is_422(self, records):
        resp = client.post("/api/fixes/apply", json={"dataset": records, "fixes": [{"row": 0}]})
        assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestRules:
    def test_validate_rules(self, records):
        rules = [
            {"id": "r1", "type": "coRun", "name": "pair", "parameters": {"taskIds": ["T1", "T9"]}},
            {"id": "r2", "type": "loadLimit", "name": "cap",
             "parameters": {"workerGroup": "Dev", "maxSlotsPerPhase": 2}},
        ]
        resp = client.post("/api/rules/validate", json={"dataset": records, "rules": rules})
        assert resp.status_code == 200
        data = resp.json()
        assert data["isValid"] is False
        assert [(e["ruleId"], e["type"]) for e in data["errors"]] == [("r1", "missing_corun_tasks")]

    def test_unknown_rule_type_is_422(self, records):
        rules = [{"id": "r1", "type": "teleport", "name": "x"}]
        resp = client.post("/api/rules/validate", json={"dataset": records, "rules": rules})
        assert resp.status_code == 422
        assert resp.json()["errorType"] == "UnknownRuleTypeError"

    def test_unreadable_rule_field_is_422(self, records):
        rules = [{"id": "r1", "type": "coRun", "name": "x", "priority": "high",
                  "parameters": {"taskIds": ["T1", "T2"]}}]
        resp = client.post("/api/rules/validate", json={"dataset": records, "rules": rules})
        assert resp.status_code == 422
        assert resp.json()["errorType"] == "RuleError"

    def test_suggest(self, records):
        records["tasks"].append({"TaskID": "T3", "RequiredSkills": "sql"})
        data = client.post("/api/rules/suggest", json={"dataset": records}).json()
        assert [s["type"] for s in data["suggestions"]] == ["coRun"]
        assert data["summary"]["totalTasks"] == 3

    def test_export_rules(self, records):
        body = {
            "dataset": records,
            "rules": [{"id": "r2", "type": "loadLimit", "name": "cap",
                       "parameters": {"workerGroup": "Dev", "maxSlotsPerPhase": 2}}],
            "prioritization": {"selectedProfile": "fairness"},
            "prioritizationMethod": "profile",
        }
        data = client.post("/api/export/rules", json=body).json()
        assert data["version"] == "1.0"
        assert data["validationPassed"] is True
        assert data["entities"] == {"clients": 2, "workers": 3, "tasks": 2}
        assert data["metadata"]["ruleTypes"] == ["loadLimit"]
        assert data["metadata"]["prioritizationMethod"] == "profile"
        assert data["prioritization"]["selectedProfile"] == "fairness"

    def test_export_without_dataset_is_not_validated(self):
        data = client.post("/api/export/rules", json={"rules": []}).json()
        assert data["validationPassed"] is False
        assert data["metadata"]["totalRules"] == 0
