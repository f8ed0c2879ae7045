"""Required identifier and name fields.

- Blank ID column  → ERROR ``missing_required``
- Blank name column → WARNING ``missing_optional``
"""

from __future__ import annotations

from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import is_blank
from allocation_qa.core.schema import ID_COLUMNS, NAME_COLUMNS, TABLE_ENTITIES, Entity

_ID_HINTS = {
    Entity.CLIENTS: "Provide a unique identifier for each client",
    Entity.WORKERS: "Provide a unique identifier for each worker",
    Entity.TASKS: "Provide a unique identifier for each task",
}


@registry.register
class RequiredFieldsCheck(Check):
    """Flag rows without an ID (error) or without a name (warning)."""

    check_id = "required_fields"
    name = "Required fields"
    order = 10

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        for entity in TABLE_ENTITIES:
            id_col, name_col = ID_COLUMNS[entity], NAME_COLUMNS[entity]
            for idx, rid, row in iter_rows(dataset, entity):
                if is_blank(row.get(id_col)):
                    findings.error(
                        "missing_required",
                        f"{id_col} is required",
                        entity=entity.value,
                        row=idx,
                        column=id_col,
                        suggestion=_ID_HINTS[entity],
                    )
                if is_blank(row.get(name_col)):
                    findings.warning(
                        "missing_optional",
                        f"{name_col} is empty",
                        entity=entity.value,
                        row=idx,
                        column=name_col,
                        record_id=rid,
                    )
        return findings
