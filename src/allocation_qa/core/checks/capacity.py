"""Cross-entity capacity checks.

- SkillCoverageCheck: every required skill is held by at least one worker
- WorkerOverloadCheck: MaxLoadPerPhase fits the worker's available slots
- MaxConcurrencyCheck: MaxConcurrent fits the number of qualified workers
- PhaseSaturationCheck: per-phase task demand fits per-phase worker capacity

Skill comparison is case-insensitive throughout.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import fmt_number, iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import as_number, parse_comma_list, parse_phase_list
from allocation_qa.core.schema import Entity


def _skill_set(raw: Any) -> set[str]:
    return {s.lower() for s in parse_comma_list(raw)}


@registry.register
class SkillCoverageCheck(Check):
    check_id = "skill_coverage"
    name = "Skill coverage"
    order = 70

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        available: set[str] = set()
        for _idx, _rid, row in iter_rows(dataset, Entity.WORKERS):
            available |= _skill_set(row.get("Skills"))

        for idx, rid, row in iter_rows(dataset, Entity.TASKS):
            for skill in parse_comma_list(row.get("RequiredSkills")):
                if skill.lower() in available:
                    continue
                findings.error(
                    "skill_coverage",
                    f'Required skill "{skill}" is not available in any worker',
                    entity=Entity.TASKS.value,
                    row=idx,
                    column="RequiredSkills",
                    value=skill,
                    record_id=rid,
                    suggestion="Add this skill to at least one worker or remove from task requirements",
                )
        return findings


@registry.register
class WorkerOverloadCheck(Check):
    check_id = "worker_overload"
    name = "Worker overload"
    order = 80

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        for idx, rid, row in iter_rows(dataset, Entity.WORKERS):
            slots = parse_phase_list(row.get("AvailableSlots"))
            max_load = as_number(row.get("MaxLoadPerPhase"))
            if max_load is None or not slots or len(slots) >= max_load:
                continue
            count = len(slots)
            findings.error(
                "worker_overload",
                f"Worker has {count} available slots but MaxLoadPerPhase is {fmt_number(max_load)}",
                entity=Entity.WORKERS.value,
                row=idx,
                column="MaxLoadPerPhase",
                value=max_load,
                record_id=rid,
                suggestion=f"Reduce MaxLoadPerPhase to {count} or increase available slots",
                suggested_value=count,
            )
            findings.fix(
                "range",
                f"MaxLoadPerPhase value adjusted to {count}",
                entity=Entity.WORKERS.value,
                row=idx,
                column="MaxLoadPerPhase",
                value=count,
                record_id=rid,
            )
        return findings


@registry.register
class MaxConcurrencyCheck(Check):
    check_id = "max_concurrency"
    name = "Max concurrency feasibility"
    order = 90

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        worker_skills = [
            _skill_set(row.get("Skills")) for _i, _r, row in iter_rows(dataset, Entity.WORKERS)
        ]

        for idx, rid, row in iter_rows(dataset, Entity.TASKS):
            max_concurrent = as_number(row.get("MaxConcurrent"))
            if max_concurrent is None:
                continue
            required = _skill_set(row.get("RequiredSkills"))
            qualified = sum(1 for skills in worker_skills if required <= skills)
            if max_concurrent <= qualified:
                continue
            findings.error(
                "max_concurrency_infeasible",
                f"MaxConcurrent ({fmt_number(max_concurrent)}) exceeds qualified workers ({qualified})",
                entity=Entity.TASKS.value,
                row=idx,
                column="MaxConcurrent",
                value=max_concurrent,
                record_id=rid,
                suggestion=f"Reduce MaxConcurrent to {qualified} or add more qualified workers",
                suggested_value=qualified,
            )
            findings.fix(
                "range",
                f"MaxConcurrent value adjusted to {qualified}",
                entity=Entity.TASKS.value,
                row=idx,
                column="MaxConcurrent",
                value=qualified,
                record_id=rid,
            )
        return findings


@registry.register
class PhaseSaturationCheck(Check):
    """Sum of task durations per phase must not exceed total worker load.

    Tasks without preferred phases count toward every phase that has
    capacity. Non-numeric loads and durations count as zero.
    """

    check_id = "phase_saturation"
    name = "Phase-slot saturation"
    order = 100

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        capacity: dict[int, float] = defaultdict(int)
        for _idx, _rid, row in iter_rows(dataset, Entity.WORKERS):
            load = as_number(row.get("MaxLoadPerPhase")) or 0
            for phase in parse_phase_list(row.get("AvailableSlots")):
                capacity[phase] += load

        demand: dict[int, float] = defaultdict(int)
        capacity_phases = list(capacity)
        for _idx, _rid, row in iter_rows(dataset, Entity.TASKS):
            duration = as_number(row.get("Duration")) or 0
            phases = parse_phase_list(row.get("PreferredPhases")) or capacity_phases
            for phase in phases:
                demand[phase] += duration

        findings = Findings()
        for phase in sorted(demand):
            need, have = demand[phase], capacity.get(phase, 0)
            if need <= have:
                continue
            findings.error(
                "phase_slot_saturation",
                f"Phase {phase} is oversaturated: demand ({fmt_number(need)}) "
                f"exceeds capacity ({fmt_number(have)})",
                entity=Entity.GENERAL.value,
                value={"phase": phase, "demand": need, "capacity": have},
                suggestion=f"Add more workers to phase {phase} or reduce task durations for this phase",
            )
        return findings
