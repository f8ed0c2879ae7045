"""Soft warnings about incomplete records."""

from __future__ import annotations

from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import is_blank, parse_comma_list, parse_phase_list, strip_list_text
from allocation_qa.core.schema import Entity


@registry.register
class AdvisoriesCheck(Check):
    check_id = "advisories"
    name = "Advisories"
    order = 120

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()

        for idx, rid, row in iter_rows(dataset, Entity.TASKS):
            raw = row.get("PreferredPhases")
            # "[]" and blanks mean "any phase"; only unparseable content warns
            if strip_list_text(raw) and not parse_phase_list(raw):
                findings.warning(
                    "no_preferred_phases",
                    "Task has no valid preferred phases",
                    entity=Entity.TASKS.value,
                    row=idx,
                    column="PreferredPhases",
                    record_id=rid,
                    suggestion="Consider specifying preferred phases or leave empty for any phase",
                )

        for idx, rid, row in iter_rows(dataset, Entity.WORKERS):
            if not parse_comma_list(row.get("Skills")):
                findings.warning(
                    "no_skills",
                    "Worker has no skills listed",
                    entity=Entity.WORKERS.value,
                    row=idx,
                    column="Skills",
                    record_id=rid,
                    suggestion="Add relevant skills to enable task assignment",
                )

        for idx, rid, row in iter_rows(dataset, Entity.CLIENTS):
            if is_blank(row.get("RequestedTaskIDs")):
                findings.warning(
                    "no_requested_tasks",
                    "Client has no requested tasks",
                    entity=Entity.CLIENTS.value,
                    row=idx,
                    column="RequestedTaskIDs",
                    record_id=rid,
                    suggestion="Specify tasks this client needs completed",
                )
        return findings
