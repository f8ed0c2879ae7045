"""Tests for fix commands and CommandHistory."""

from __future__ import annotations

import pandas as pd
import pytest

from allocation_qa.core.commands import ApplyFixCommand, BulkFixCommand, apply_fixes, resolve_row
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.errors import UnknownEntityError
from allocation_qa.core.history import CommandHistory
from allocation_qa.core.issue_store import IssueStore
from allocation_qa.core.engine import validate_dataset
from allocation_qa.core.models import ValidationFix


def _fix(entity: str, row: int, column: str, value, record_id: str | None = None) -> ValidationFix:
    return ValidationFix("range", "test fix", entity, row, column, value, record_id)


@pytest.fixture
def dataset() -> DataSet:
    return DataSet.from_records(
        clients=[
            {"ClientID": "C1", "PriorityLevel": 9},
            {"ClientID": "C2", "PriorityLevel": 0},
        ]
    )


class TestResolveRow:
    def test_record_id_wins_over_row(self):
        df = pd.DataFrame({"TaskID": ["T2", "T1"]})
        assert resolve_row(df, "TaskID", "T1", 0) == 1

    def test_ambiguous_id_falls_back_to_row(self):
        df = pd.DataFrame({"TaskID": ["T1", "T1"]})
        assert resolve_row(df, "TaskID", "T1", 1) == 1

    def test_out_of_range(self):
        df = pd.DataFrame({"TaskID": ["T1"]})
        assert resolve_row(df, "TaskID", None, 5) is None


class TestApplyFixCommand:
    def test_execute_and_undo(self, dataset):
        cmd = ApplyFixCommand(dataset, _fix("clients", 0, "PriorityLevel", 5, "C1"))
        cmd.execute()
        assert cmd.applied
        assert dataset.clients.at[0, "PriorityLevel"] == 5
        cmd.undo()
        assert not cmd.applied
        assert dataset.clients.at[0, "PriorityLevel"] == 9

    def test_follows_record_after_reorder(self, dataset):
        fix = _fix("clients", 0, "PriorityLevel", 5, "C1")
        dataset.set_frame("clients", dataset.clients.iloc[::-1])
        ApplyFixCommand(dataset, fix).execute()
        assert list(dataset.clients["ClientID"]) == ["C2", "C1"]
        assert list(dataset.clients["PriorityLevel"]) == [0, 5]

    def test_missing_row_is_skipped(self, dataset, caplog):
        cmd = ApplyFixCommand(dataset, _fix("clients", 7, "PriorityLevel", 5))
        cmd.execute()
        assert not cmd.applied
        assert "Skipping fix" in caplog.text

    def test_unknown_entity(self, dataset):
        with pytest.raises(UnknownEntityError):
            ApplyFixCommand(dataset, _fix("projects", 0, "X", 1))

    def test_marks_issue_store(self, dataset):
        store = IssueStore.from_result(validate_dataset(dataset))
        ApplyFixCommand(dataset, _fix("clients", 0, "PriorityLevel", 5, "C1"), store).execute()
        assert store.worst_severity_for_cell("clients", 0, "PriorityLevel") is None

    def test_description_mentions_target(self, dataset):
        cmd = ApplyFixCommand(dataset, _fix("clients", 0, "PriorityLevel", 5, "C1"))
        assert "C1" in cmd.description
        assert "PriorityLevel" in cmd.description


class TestBulkFix:
    def test_undo_restores_all(self, dataset):
        bulk = BulkFixCommand(
            [
                ApplyFixCommand(dataset, _fix("clients", 0, "PriorityLevel", 5)),
                ApplyFixCommand(dataset, _fix("clients", 1, "PriorityLevel", 1)),
                ApplyFixCommand(dataset, _fix("clients", 9, "PriorityLevel", 1)),
            ]
        )
        bulk.execute()
        assert bulk.applied_count == 2
        assert list(dataset.clients["PriorityLevel"]) == [5, 1]
        bulk.undo()
        assert list(dataset.clients["PriorityLevel"]) == [9, 0]

    def test_apply_fixes_returns_copy(self, dataset):
        fixes = validate_dataset(dataset).fixes
        fixed = apply_fixes(dataset, fixes)
        assert list(fixed.clients["PriorityLevel"]) == [5, 1]
        assert list(dataset.clients["PriorityLevel"]) == [9, 0]


class TestCommandHistory:
    def test_apply_is_one_undo_step(self, dataset):
        history = CommandHistory(dataset)
        history.apply(validate_dataset(dataset).fixes)
        assert list(dataset.clients["PriorityLevel"]) == [5, 1]
        history.undo()
        assert list(dataset.clients["PriorityLevel"]) == [9, 0]
        assert history.can_redo
        history.redo()
        assert list(dataset.clients["PriorityLevel"]) == [5, 1]

    def test_push_clears_redo(self, dataset):
        history = CommandHistory(dataset)
        history.apply([_fix("clients", 0, "PriorityLevel", 4)])
        history.undo()
        assert history.can_redo
        history.apply([_fix("clients", 1, "PriorityLevel", 2)])
        assert not history.can_redo

    def test_undo_on_empty_history_returns_none(self, dataset):
        assert CommandHistory(dataset).undo() is None

    def test_apply_nothing_returns_none(self, dataset):
        history = CommandHistory(dataset)
        assert history.apply([]) is None
        assert not history.can_undo

    def test_max_depth_respected(self, dataset):
        history = CommandHistory(dataset, max_depth=3)
        for value in range(1, 6):
            history.apply([_fix("clients", 0, "PriorityLevel", value)])
        assert len(history.descriptions()) == 3
        history.clear()
        assert not history.can_undo
