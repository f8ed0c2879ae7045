"""RequestedTaskIDs must name existing tasks."""

from __future__ import annotations

from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import parse_comma_list
from allocation_qa.core.schema import Entity


@registry.register
class UnknownReferencesCheck(Check):
    """One error per unknown TaskID; the suggestion keeps the valid ones."""

    check_id = "unknown_references"
    name = "Unknown task references"
    order = 60

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        task_ids = set(dataset.ids(Entity.TASKS))
        for idx, rid, row in iter_rows(dataset, Entity.CLIENTS):
            requested = parse_comma_list(row.get("RequestedTaskIDs"))
            if not requested:
                continue
            valid = ", ".join(t for t in requested if t in task_ids)
            for task_id in requested:
                if task_id in task_ids:
                    continue
                findings.error(
                    "unknown_reference",
                    f'Requested TaskID "{task_id}" does not exist',
                    entity=Entity.CLIENTS.value,
                    row=idx,
                    column="RequestedTaskIDs",
                    value=task_id,
                    record_id=rid,
                    suggestion="Ensure all requested TaskIDs exist in the tasks dataset",
                    suggested_value=valid,
                )
        return findings
