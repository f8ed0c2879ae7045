"""Phase numbering sanity: warn when referenced phases leave [min, max]."""

from __future__ import annotations

from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import parse_phase_list
from allocation_qa.core.schema import Entity


@registry.register
class PhaseRangeCheck(Check):
    check_id = "phase_range"
    name = "Phase range"
    order = 110

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        bounds = config.get("phases", {})
        lo, hi = bounds.get("min", 1), bounds.get("max", 20)

        seen: set[int] = set()
        for _idx, _rid, row in iter_rows(dataset, Entity.WORKERS):
            seen.update(parse_phase_list(row.get("AvailableSlots")))
        for _idx, _rid, row in iter_rows(dataset, Entity.TASKS):
            seen.update(parse_phase_list(row.get("PreferredPhases")))

        findings = Findings()
        if not seen:
            return findings
        if min(seen) < lo:
            findings.warning(
                "phase_range",
                f"Phases should typically start from {lo}, found phase {min(seen)}",
                entity=Entity.GENERAL.value,
                value=min(seen),
            )
        if max(seen) > hi:
            findings.warning(
                "phase_range",
                f"Very high phase number detected: {max(seen)}. Consider reviewing phase numbering.",
                entity=Entity.GENERAL.value,
                value=max(seen),
            )
        return findings
