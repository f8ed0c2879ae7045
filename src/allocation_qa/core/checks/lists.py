"""Phase-list parsing: malformed tokens, slot clean-up, phase canonicalization.

This is the only place ``malformed_array`` errors are produced, so each bad
token is reported once per cell per pass. Later checks re-parse silently.
"""

from __future__ import annotations

from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import (
    format_phase_list,
    is_blank,
    join_phase_list,
    split_phase_list,
    strip_list_text,
)
from allocation_qa.core.schema import Entity


def _report_bad_tokens(
    findings: Findings, entity: Entity, column: str, idx: int, rid: str | None, bad: list[str]
) -> None:
    for token in bad:
        findings.error(
            "malformed_array",
            f'Invalid number "{token}" in {column}',
            entity=entity.value,
            row=idx,
            column=column,
            value=token,
            record_id=rid,
            suggestion='Use only numbers separated by commas or ranges like "1-3"',
        )


@registry.register
class MalformedListsCheck(Check):
    check_id = "malformed_lists"
    name = "Malformed phase lists"
    order = 40

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()

        for idx, rid, row in iter_rows(dataset, Entity.WORKERS):
            raw = row.get("AvailableSlots")
            phases, bad = split_phase_list(raw)
            _report_bad_tokens(findings, Entity.WORKERS, "AvailableSlots", idx, rid, bad)
            cleaned = join_phase_list(phases)
            if strip_list_text(raw) != cleaned:
                findings.fix(
                    "malformed_array",
                    f'Cleaned malformed AvailableSlots: "{raw}" → "{cleaned}"',
                    entity=Entity.WORKERS.value,
                    row=idx,
                    column="AvailableSlots",
                    value=format_phase_list(phases),
                    record_id=rid,
                )

        rewrite = config.get("lists", {}).get("rewrite_preferred_phases", True)
        for idx, rid, row in iter_rows(dataset, Entity.TASKS):
            raw = row.get("PreferredPhases")
            phases, bad = split_phase_list(raw)
            _report_bad_tokens(findings, Entity.TASKS, "PreferredPhases", idx, rid, bad)
            canonical = format_phase_list(phases)
            current = None if is_blank(raw) else str(raw)
            if rewrite and current != canonical:
                findings.rewrite(
                    "canonical_phases",
                    f'PreferredPhases "{raw}" rewritten as "{canonical}"',
                    entity=Entity.TASKS.value,
                    row=idx,
                    column="PreferredPhases",
                    value=canonical,
                    record_id=rid,
                )
        return findings
