"""Tests for DatasetValidator and the module-level validation helpers."""

from __future__ import annotations

import pytest

from allocation_qa.core.check_base import registry
from allocation_qa.core.checks.json_attrs import JsonAttributesCheck
from allocation_qa.core.commands import apply_fixes
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.engine import (
    DatasetValidator,
    validate_clients,
    validate_dataset,
    validate_entity,
    validate_tasks,
    validation_suggestions,
)
from allocation_qa.core.errors import UnknownEntityError
from allocation_qa.core.models import ValidationResult


def _types(findings) -> list[str]:
    return [f.type for f in findings]


class TestScenarios:
    def test_priority_out_of_range(self):
        ds = DataSet.from_records(clients=[{"ClientID": "C1", "PriorityLevel": 7}])
        result = validate_dataset(ds)
        assert not result.is_valid
        assert _types(result.errors) == ["out_of_range"]
        assert result.errors[0].suggested_value == 5
        assert result.to_dict()["errors"][0]["suggestedValue"] == 5

    def test_duplicate_task_ids(self):
        ds = DataSet.from_records(tasks=[{"TaskID": "T1"}, {"TaskID": "T1"}])
        dups = [e for e in validate_dataset(ds).errors if e.type == "duplicate_id"]
        assert len(dups) == 2
        assert {e.entity for e in dups} == {"tasks"}
        assert [e.row for e in dups] == [0, 1]

    def test_worker_overload(self):
        ds = DataSet.from_records(workers=[{"AvailableSlots": "1-3", "MaxLoadPerPhase": 5}])
        overload = [e for e in validate_dataset(ds).errors if e.type == "worker_overload"]
        assert len(overload) == 1
        assert overload[0].suggested_value == 3

    def test_uncovered_skill(self):
        ds = DataSet.from_records(tasks=[{"TaskID": "T1", "TaskName": "Port", "RequiredSkills": "Rust"}])
        coverage = [e for e in validate_dataset(ds).errors if e.type == "skill_coverage"]
        assert len(coverage) == 1
        assert "Rust" in coverage[0].message


class TestDatasetValidator:
    def test_clean_dataset_is_valid(self, clean_dataset):
        result = DatasetValidator().validate(clean_dataset)
        assert isinstance(result, ValidationResult)
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.summary.entity_counts == {"clients": 2, "workers": 3, "tasks": 2}

    def test_checks_run_in_fixed_order(self):
        assert registry.all_ids() == [
            "required_fields", "duplicate_ids", "range_values", "malformed_lists",
            "json_attributes", "unknown_references", "skill_coverage", "worker_overload",
            "max_concurrency", "phase_saturation", "phase_range", "advisories",
        ]

    def test_errors_follow_check_order(self):
        ds = DataSet.from_records(
            clients=[
                {"ClientID": "C1", "ClientName": "A", "PriorityLevel": 9, "RequestedTaskIDs": "T9"},
                {"ClientID": "C1", "ClientName": "B", "RequestedTaskIDs": "T9"},
            ]
        )
        kinds = _types(validate_dataset(ds).errors)
        assert kinds == ["duplicate_id", "duplicate_id", "out_of_range", "unknown_reference", "unknown_reference"]

    def test_disabled_check_not_run(self):
        ds = DataSet.from_records(clients=[{"ClientID": "C1", "PriorityLevel": 9}])
        result = DatasetValidator({"checks": {"range_values": {"enabled": False}}}).validate(ds)
        assert "out_of_range" not in _types(result.errors)

    def test_critical_count(self):
        ds = DataSet.from_records(
            clients=[
                {"ClientID": "C1", "ClientName": "A", "PriorityLevel": 9, "RequestedTaskIDs": "T1"},
                {"ClientID": "C1", "ClientName": "B", "PriorityLevel": 2, "RequestedTaskIDs": "T1"},
            ],
            tasks=[{"TaskID": "T1", "TaskName": "x"}],
        )
        summary = validate_dataset(ds).summary
        assert summary.total_errors == 3
        assert summary.critical_errors == 2

    def test_summary_json_contract(self, clean_dataset):
        data = validate_dataset(clean_dataset).to_dict()
        assert set(data) == {"isValid", "errors", "warnings", "fixes", "summary"}
        assert set(data["summary"]) == {"totalErrors", "totalWarnings", "criticalErrors", "entityCounts"}


class TestCanonicalization:
    def test_preferred_phases_rewritten_in_place(self, clean_records):
        clean_records["tasks"][0]["PreferredPhases"] = "1, 2"
        clean_records["tasks"][1]["PreferredPhases"] = "3-4"
        ds = DataSet.from_records(**clean_records)
        validate_dataset(ds)
        assert list(ds.tasks["PreferredPhases"]) == ["[1,2]", "[3,4]"]

    def test_advisory_sees_raw_value(self):
        ds = DataSet.from_records(tasks=[{"TaskID": "T1", "TaskName": "x", "PreferredPhases": "abc"}])
        result = validate_dataset(ds)
        assert "no_preferred_phases" in _types(result.warnings)
        assert ds.tasks.at[0, "PreferredPhases"] == "[]"

    def test_rewrite_disabled_keeps_dataset(self, clean_records):
        clean_records["tasks"][0]["PreferredPhases"] = "1, 2"
        ds = DataSet.from_records(**clean_records)
        DatasetValidator({"lists": {"rewrite_preferred_phases": False}}).validate(ds)
        assert ds.tasks.at[0, "PreferredPhases"] == "1, 2"

    def test_second_pass_is_idempotent(self, clean_records):
        clean_records["tasks"][0]["PreferredPhases"] = "1,x, 2"
        clean_records["clients"][0]["PriorityLevel"] = 8
        ds = DataSet.from_records(**clean_records)
        first = validate_dataset(ds)
        assert "malformed_array" in _types(first.errors)

        second = validate_dataset(ds)
        snapshot = ds.to_dict()
        third = validate_dataset(ds)
        assert ds.to_dict() == snapshot
        assert "malformed_array" not in _types(second.errors)
        assert [e.id for e in second.all_findings()] == [e.id for e in third.all_findings()]


class TestProperties:
    def test_applying_clamp_fixes_clears_range_errors(self):
        ds = DataSet.from_records(
            clients=[
                {"ClientID": "C1", "PriorityLevel": 0},
                {"ClientID": "C2", "PriorityLevel": 12},
            ],
            tasks=[{"TaskID": "T1", "Duration": -2}],
        )
        result = validate_dataset(ds)
        assert _types(result.errors).count("out_of_range") == 3
        fixed = apply_fixes(ds, result.fixes)
        assert list(fixed.clients["PriorityLevel"]) == [1, 5]
        assert "out_of_range" not in _types(validate_dataset(fixed).errors)

    def test_duplicates_are_complete(self):
        ds = DataSet.from_records(workers=[{"WorkerID": "W1"}] * 3 + [{"WorkerID": "W2"}])
        dups = [e for e in validate_dataset(ds).errors if e.type == "duplicate_id"]
        assert [e.row for e in dups] == [0, 1, 2]

    def test_adding_a_worker_never_adds_coverage_errors(self, clean_records):
        clean_records["tasks"].append({"TaskID": "T3", "TaskName": "Go", "RequiredSkills": "go,rust"})
        before = DataSet.from_records(**clean_records)
        clean_records["workers"].append({"WorkerID": "W9", "WorkerName": "Zed", "Skills": "rust"})
        after = DataSet.from_records(**clean_records)

        def coverage(ds):
            return sum(1 for e in validate_dataset(ds).errors if e.type == "skill_coverage")

        assert coverage(before) == 2
        assert coverage(after) == 1


class TestCheckGuard:
    def test_failing_check_becomes_finding(self, monkeypatch):
        def boom(self, dataset, config):
            raise RuntimeError("boom")

        monkeypatch.setattr(JsonAttributesCheck, "check", boom)
        ds = DataSet.from_records(clients=[{"ClientID": "C1", "PriorityLevel": 9}])
        result = validate_dataset(ds)
        kinds = _types(result.errors)
        assert "check_failed" in kinds
        assert "out_of_range" in kinds
        failed = next(e for e in result.errors if e.type == "check_failed")
        assert failed.value == "json_attributes"
        assert failed.entity == "general"

    def test_contract_errors_propagate(self, monkeypatch):
        def bad_entity(self, dataset, config):
            dataset.frame("projects")

        monkeypatch.setattr(JsonAttributesCheck, "check", bad_entity)
        with pytest.raises(UnknownEntityError):
            validate_dataset(DataSet())


class TestEntityHelpers:
    def test_validate_clients_only_reports_clients(self):
        errors = validate_clients([{"ClientID": "C1", "PriorityLevel": 7, "RequestedTaskIDs": "T1"}])
        assert {e.entity for e in errors} == {"clients"}
        assert sorted(_types(errors)) == ["out_of_range", "unknown_reference"]

    def test_validate_tasks(self):
        errors = validate_tasks([{"TaskName": "x", "Duration": 1}])
        assert _types(errors) == ["missing_required"]

    def test_unknown_entity(self):
        with pytest.raises(UnknownEntityError):
            validate_entity("projects", [])

    def test_suggestions_for_empty_dataset(self):
        hints = validation_suggestions(DataSet())
        assert len(hints) == 3

    def test_capacity_hint(self, clean_dataset):
        # C2 has priority 5 and W3 handles a single task per phase
        hints = validation_suggestions(clean_dataset)
        assert hints == ["Consider increasing worker capacity for high-priority client demands"]
