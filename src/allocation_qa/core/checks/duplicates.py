"""Duplicate identifier detection.

Every occurrence of an ID that appears two or more times is reported, not
only the later ones, so each offending row can be highlighted.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.schema import ID_COLUMNS, TABLE_ENTITIES


@registry.register
class DuplicateIdsCheck(Check):
    check_id = "duplicate_ids"
    name = "Duplicate IDs"
    order = 20

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        for entity in TABLE_ENTITIES:
            id_col = ID_COLUMNS[entity]
            positions: dict[str, list[int]] = defaultdict(list)
            for idx, rid, _row in iter_rows(dataset, entity):
                if rid is not None:
                    positions[rid].append(idx)

            for rid, rows in positions.items():
                if len(rows) < 2:
                    continue
                for idx in rows:
                    findings.error(
                        "duplicate_id",
                        f"Duplicate {id_col}: {rid}",
                        entity=entity.value,
                        row=idx,
                        column=id_col,
                        value=rid,
                        record_id=rid,
                        suggestion=f"Each {id_col} must be unique across all {entity.value}",
                    )
        return findings
