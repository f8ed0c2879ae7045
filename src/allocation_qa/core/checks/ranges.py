"""Numeric range checks with clamping fixes.

Bounds come from the ``ranges`` section of the config. Cells that do not
hold a number are left to the loader and skipped here.
"""

from __future__ import annotations

from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import fmt_number, iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import as_number
from allocation_qa.core.schema import Entity


@registry.register
class RangeValuesCheck(Check):
    """Clamp out-of-range priority, duration and load; flag unusual values."""

    check_id = "range_values"
    name = "Range values"
    order = 30

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        ranges = config.get("ranges", {})
        findings = Findings()
        self._priority(dataset, ranges, findings)
        self._at_least_one(
            dataset, Entity.TASKS, "Duration",
            ranges.get("duration_warn_above", 10),
            "Duration represents number of phases and must be at least 1",
            findings,
        )
        self._at_least_one(
            dataset, Entity.WORKERS, "MaxLoadPerPhase",
            ranges.get("max_load_warn_above", 20),
            "Each worker must be able to handle at least 1 task per phase",
            findings,
        )
        self._qualification(dataset, ranges, findings)
        return findings

    # ------------------------------------------------------------------

    @staticmethod
    def _priority(dataset: DataSet, ranges: dict, findings: Findings) -> None:
        lo, hi = ranges.get("priority_min", 1), ranges.get("priority_max", 5)
        for idx, rid, row in iter_rows(dataset, Entity.CLIENTS):
            level = as_number(row.get("PriorityLevel"))
            if level is None or lo <= level <= hi:
                continue
            clamped = hi if level > hi else lo
            findings.error(
                "out_of_range",
                f"PriorityLevel must be between {lo}-{hi}",
                entity=Entity.CLIENTS.value,
                row=idx,
                column="PriorityLevel",
                value=level,
                record_id=rid,
                suggestion=f"Use values {lo} (lowest) to {hi} (highest priority)",
                suggested_value=clamped,
            )
            findings.fix(
                "range",
                f"PriorityLevel value adjusted to {clamped}",
                entity=Entity.CLIENTS.value,
                row=idx,
                column="PriorityLevel",
                value=clamped,
                record_id=rid,
            )

    @staticmethod
    def _at_least_one(
        dataset: DataSet,
        entity: Entity,
        column: str,
        warn_above: float,
        hint: str,
        findings: Findings,
    ) -> None:
        for idx, rid, row in iter_rows(dataset, entity):
            value = as_number(row.get(column))
            if value is None:
                continue
            if value < 1:
                findings.error(
                    "out_of_range",
                    f"{column} must be >= 1",
                    entity=entity.value,
                    row=idx,
                    column=column,
                    value=value,
                    record_id=rid,
                    suggestion=hint,
                    suggested_value=1,
                )
                findings.fix(
                    "range",
                    f"{column} value adjusted to 1",
                    entity=entity.value,
                    row=idx,
                    column=column,
                    value=1,
                    record_id=rid,
                )
            if value > warn_above:
                findings.warning(
                    "unusual_value",
                    f"{column} seems unusually high",
                    entity=entity.value,
                    row=idx,
                    column=column,
                    value=value,
                    record_id=rid,
                )

    @staticmethod
    def _qualification(dataset: DataSet, ranges: dict, findings: Findings) -> None:
        lo, hi = ranges.get("qualification_min", 1), ranges.get("qualification_max", 5)
        for idx, rid, row in iter_rows(dataset, Entity.WORKERS):
            level = as_number(row.get("QualificationLevel"))
            if level is None or lo <= level <= hi:
                continue
            findings.warning(
                "unusual_value",
                f"QualificationLevel {fmt_number(level)} is outside {lo}-{hi}",
                entity=Entity.WORKERS.value,
                row=idx,
                column="QualificationLevel",
                value=level,
                record_id=rid,
            )
