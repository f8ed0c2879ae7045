"""Pytest fixtures shared across all tests."""

from __future__ import annotations

import pytest

from allocation_qa.core.config import default_config
from allocation_qa.core.dataset import DataSet


@pytest.fixture
def clean_records() -> dict[str, list[dict]]:
    """A consistent dataset: no errors and no warnings."""
    return {
        "clients": [
            {
                "ClientID": "C1", "ClientName": "Acme", "PriorityLevel": 3,
                "RequestedTaskIDs": "T1,T2", "GroupTag": "GroupA",
                "AttributesJSON": '{"tier": "gold"}',
            },
            {
                "ClientID": "C2", "ClientName": "Globex", "PriorityLevel": 5,
                "RequestedTaskIDs": "T2", "GroupTag": "GroupB", "AttributesJSON": "{}",
            },
        ],
        "workers": [
            {
                "WorkerID": "W1", "WorkerName": "Ann", "Skills": "python,sql",
                "AvailableSlots": "[1,2,3]", "MaxLoadPerPhase": 2,
                "WorkerGroup": "Dev", "QualificationLevel": 4,
            },
            {
                "WorkerID": "W2", "WorkerName": "Ben", "Skills": "python,ml",
                "AvailableSlots": "[2,3,4]", "MaxLoadPerPhase": 3,
                "WorkerGroup": "Dev", "QualificationLevel": 3,
            },
            {
                "WorkerID": "W3", "WorkerName": "Cy", "Skills": "sql",
                "AvailableSlots": "[1,2]", "MaxLoadPerPhase": 1,
                "WorkerGroup": "Ops", "QualificationLevel": 2,
            },
        ],
        "tasks": [
            {
                "TaskID": "T1", "TaskName": "ETL", "Category": "Data", "Duration": 1,
                "RequiredSkills": "sql", "PreferredPhases": "[1,2]", "MaxConcurrent": 2,
            },
            {
                "TaskID": "T2", "TaskName": "Model", "Category": "ML", "Duration": 2,
                "RequiredSkills": "python,ml", "PreferredPhases": "[3,4]", "MaxConcurrent": 1,
            },
        ],
    }


@pytest.fixture
def clean_dataset(clean_records) -> DataSet:
    return DataSet.from_records(**clean_records)


@pytest.fixture
def config() -> dict:
    return default_config()
