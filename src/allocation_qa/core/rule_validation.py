"""BusinessRuleValidator: per-type rule checks and cross-rule conflicts.

Each active rule is dispatched on its RuleType to one ``_validate_*`` method.
The dispatch table must cover every RuleType; the constructor refuses to
build a validator otherwise. Conflicts are reported separately and never
affect ``is_valid``.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Callable, Iterable

from allocation_qa.core.business_rules import (
    BusinessRule,
    CoRunParams,
    LoadLimitParams,
    PatternMatchParams,
    PhaseWindowParams,
    PrecedenceOverrideParams,
    RuleConflict,
    RuleType,
    RuleValidationResult,
    SlotRestrictionParams,
)
from allocation_qa.core.config import resolve_config
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.errors import UnknownEntityError
from allocation_qa.core.models import AffectedEntity, ConflictSeverity, RuleValidationError, Severity
from allocation_qa.core.parsers import as_number, is_blank, parse_phase_list
from allocation_qa.core.schema import PATTERN_FIELDS, Entity, as_entity

_log = logging.getLogger(__name__)


def _numeric_param(value: Any) -> float | int | None:
    """Rule parameters arrive from JSON forms: accept "3" as well as 3."""
    number = as_number(value)
    if number is not None or not isinstance(value, str):
        return number
    try:
        return float(value.strip())
    except ValueError:
        return None


@dataclass
class _Pass:
    """Findings of one validate_rules call."""

    rule_ids: set[str]
    errors: list[RuleValidationError] = field(default_factory=list)
    warnings: list[RuleValidationError] = field(default_factory=list)

    def add(
        self,
        rule: BusinessRule,
        kind: str,
        message: str,
        severity: Severity = Severity.ERROR,
        affected: Iterable[AffectedEntity] = (),
        suggestion: str | None = None,
    ) -> None:
        finding = RuleValidationError(
            rule_id=rule.id,
            rule_name=rule.name,
            type=kind,
            message=message,
            severity=severity,
            affected_entities=list(affected),
            suggestion=suggestion,
        )
        (self.errors if severity == Severity.ERROR else self.warnings).append(finding)

    def warn(self, rule: BusinessRule, kind: str, message: str, **kwargs: Any) -> None:
        self.add(rule, kind, message, Severity.WARNING, **kwargs)


class BusinessRuleValidator:
    """Validate business rules against a dataset.

    Usage::

        result = BusinessRuleValidator().validate_rules(rules, dataset)
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self._config = resolve_config(config)
        self._dispatch: dict[RuleType, Callable[[BusinessRule, DataSet, _Pass], None]] = {
            RuleType.CO_RUN: self._validate_co_run,
            RuleType.SLOT_RESTRICTION: self._validate_slot_restriction,
            RuleType.LOAD_LIMIT: self._validate_load_limit,
            RuleType.PHASE_WINDOW: self._validate_phase_window,
            RuleType.PATTERN_MATCH: self._validate_pattern_match,
            RuleType.PRECEDENCE_OVERRIDE: self._validate_precedence_override,
        }
        missing = set(RuleType) - set(self._dispatch)
        if missing:
            raise RuntimeError(f"No validator for rule types: {sorted(m.value for m in missing)}")

    def validate_rules(self, rules: Iterable[BusinessRule], dataset: DataSet) -> RuleValidationResult:
        rules = list(rules)
        active = [r for r in rules if r.is_active]
        current = _Pass(rule_ids={r.id for r in rules})

        for rule in active:
            self._dispatch[rule.type](rule, dataset, current)

        conflicts = self.detect_conflicts(active)
        _log.debug(
            "Rule pass: %d active rules, %d errors, %d warnings, %d conflicts",
            len(active), len(current.errors), len(current.warnings), len(conflicts),
        )
        return RuleValidationResult(
            is_valid=not current.errors,
            errors=current.errors,
            warnings=current.warnings,
            applicable_rules=active,
            conflicting_rules=conflicts,
        )

    # ------------------------------------------------------------------
    # Dataset lookups
    # ------------------------------------------------------------------

    @staticmethod
    def _task_rows(dataset: DataSet) -> dict[str, dict]:
        """First task row per TaskID."""
        rows: dict[str, dict] = {}
        for row in dataset.tasks.to_dict(orient="records"):
            if not is_blank(row.get("TaskID")):
                rows.setdefault(str(row["TaskID"]).strip(), row)
        return rows

    @staticmethod
    def _group_members(dataset: DataSet, entity: Entity, column: str, group: str) -> list[dict]:
        df = dataset.frame(entity)
        return [
            row for row in df.to_dict(orient="records")
            if not is_blank(row.get(column)) and str(row[column]).strip() == group
        ]

    # ------------------------------------------------------------------
    # Per-type checks
    # ------------------------------------------------------------------

    def _validate_co_run(self, rule: BusinessRule, dataset: DataSet, out: _Pass) -> None:
        params: CoRunParams = rule.params
        task_ids = list(dict.fromkeys(t for t in params.task_ids if t))
        if len(task_ids) < 2:
            out.add(
                rule, "invalid_corun_tasks",
                "Co-run rule must specify at least 2 tasks",
                suggestion="Add more tasks to create a valid co-run group",
            )
            return

        tasks = self._task_rows(dataset)
        missing = [t for t in task_ids if t not in tasks]
        if missing:
            out.add(
                rule, "missing_corun_tasks",
                f"Co-run rule references non-existent tasks: {', '.join(missing)}",
                affected=[AffectedEntity("tasks", t) for t in missing],
                suggestion="Remove non-existent task IDs or ensure all referenced tasks are uploaded",
            )

        preferred = {
            t: set(parse_phase_list(tasks[t].get("PreferredPhases")))
            for t in task_ids if t in tasks
        }
        preferred = {t: phases for t, phases in preferred.items() if phases}
        involved: list[str] = []
        for a, b in combinations(preferred, 2):
            if not preferred[a] & preferred[b]:
                involved.extend(t for t in (a, b) if t not in involved)
        if involved:
            out.warn(
                rule, "corun_phase_conflict",
                "Tasks in co-run group have incompatible phase preferences",
                affected=[AffectedEntity("tasks", t, "PreferredPhases") for t in involved],
                suggestion="Review phase preferences for co-run tasks to ensure compatibility",
            )

    def _validate_slot_restriction(self, rule: BusinessRule, dataset: DataSet, out: _Pass) -> None:
        params: SlotRestrictionParams = rule.params
        if bool(params.client_group) == bool(params.worker_group):
            out.add(
                rule, "missing_restriction_target",
                "Slot restriction rule must specify either clientGroup or workerGroup",
                suggestion="Specify exactly one group this restriction applies to",
            )
            return

        min_slots = _numeric_param(params.min_common_slots)
        if min_slots is None or min_slots < 1:
            out.add(
                rule, "invalid_min_slots",
                "Minimum common slots must be at least 1",
                suggestion="Set minCommonSlots to a positive value",
            )

        if params.client_group and not self._group_members(
            dataset, Entity.CLIENTS, "GroupTag", params.client_group
        ):
            out.add(
                rule, "missing_client_group",
                f"No clients found with GroupTag: {params.client_group}",
                affected=[AffectedEntity("clients", params.client_group)],
                suggestion="Ensure the client group exists or update the rule",
            )
        if params.worker_group and not self._group_members(
            dataset, Entity.WORKERS, "WorkerGroup", params.worker_group
        ):
            out.add(
                rule, "missing_worker_group",
                f"No workers found with WorkerGroup: {params.worker_group}",
                affected=[AffectedEntity("workers", params.worker_group)],
                suggestion="Ensure the worker group exists or update the rule",
            )

        bounds = self._config.get("rules", {})
        lo, hi = bounds.get("phase_min", 1), bounds.get("phase_max", 50)
        unusual = [p for p in params.phases if p < lo or p > hi]
        if unusual:
            out.warn(
                rule, "unusual_phases",
                f"Unusual phase numbers specified: {', '.join(str(p) for p in unusual)}",
                suggestion="Verify phase numbers are correct",
            )

    def _validate_load_limit(self, rule: BusinessRule, dataset: DataSet, out: _Pass) -> None:
        params: LoadLimitParams = rule.params
        if not params.worker_group:
            out.add(
                rule, "missing_worker_group",
                "Load limit rule must specify a worker group",
                suggestion="Specify which worker group this limit applies to",
            )
            return

        limit = _numeric_param(params.max_slots_per_phase)
        if limit is None or limit < 1:
            out.add(
                rule, "invalid_max_slots",
                "Maximum slots per phase must be at least 1",
                suggestion="Set maxSlotsPerPhase to a positive value",
            )

        members = self._group_members(dataset, Entity.WORKERS, "WorkerGroup", params.worker_group)
        if not members:
            out.add(
                rule, "missing_worker_group",
                f"No workers found with WorkerGroup: {params.worker_group}",
                affected=[AffectedEntity("workers", params.worker_group)],
                suggestion="Ensure the worker group exists or update the rule",
            )
            return

        capacity = sum(as_number(w.get("MaxLoadPerPhase")) or 0 for w in members)
        if limit is not None and limit > capacity:
            out.warn(
                rule, "excessive_load_limit",
                f"Load limit ({limit:g}) exceeds total group capacity ({capacity:g})",
                affected=[
                    AffectedEntity("workers", str(w.get("WorkerID", "")).strip())
                    for w in members if not is_blank(w.get("WorkerID"))
                ],
                suggestion=f"Consider reducing limit to {capacity:g} or below",
            )

    def _validate_phase_window(self, rule: BusinessRule, dataset: DataSet, out: _Pass) -> None:
        params: PhaseWindowParams = rule.params
        if not params.task_id:
            out.add(
                rule, "missing_task_id",
                "Phase window rule must specify a task ID",
                suggestion="Specify which task this phase window applies to",
            )
            return

        task = self._task_rows(dataset).get(params.task_id)
        if task is None:
            out.add(
                rule, "missing_task",
                f"Task not found: {params.task_id}",
                affected=[AffectedEntity("tasks", params.task_id)],
                suggestion="Ensure the task exists or update the rule",
            )
            return

        allowed = params.allowed_phases
        if not allowed:
            out.add(
                rule, "no_allowed_phases",
                "Phase window rule must specify at least one allowed phase",
                affected=[AffectedEntity("tasks", params.task_id)],
                suggestion="Add allowed phases for this task",
            )

        preferred = set(parse_phase_list(task.get("PreferredPhases")))
        if allowed and preferred and not preferred.intersection(allowed):
            out.warn(
                rule, "phase_preference_conflict",
                "Phase window conflicts with task's preferred phases",
                affected=[AffectedEntity("tasks", params.task_id, "PreferredPhases")],
                suggestion="Align phase window with task preferences or update task preferences",
            )

        both = [p for p in allowed if p in set(params.restricted_phases)]
        if both:
            out.add(
                rule, "conflicting_phases",
                f"Phases cannot be both allowed and restricted: {', '.join(str(p) for p in both)}",
                affected=[AffectedEntity("tasks", params.task_id)],
                suggestion="Remove conflicts between allowed and restricted phases",
            )

    def _validate_pattern_match(self, rule: BusinessRule, dataset: DataSet, out: _Pass) -> None:
        params: PatternMatchParams = rule.params
        if not params.pattern:
            out.add(
                rule, "missing_pattern",
                "Pattern match rule must specify a pattern",
                suggestion="Add a valid regex pattern or search string",
            )
            return

        try:
            regex = re.compile(params.pattern, re.IGNORECASE)
        except re.error as exc:
            out.add(
                rule, "invalid_pattern",
                f"Invalid regex pattern: {params.pattern} ({exc})",
                suggestion="Fix the regex pattern or use a simple text match",
            )
            return

        try:
            entity = as_entity(params.entity)
        except UnknownEntityError:
            out.add(
                rule, "invalid_entity",
                f"Entity '{params.entity}' is not one of clients, workers, tasks",
                suggestion="Use one of: clients, workers, tasks",
            )
            return

        valid_fields = PATTERN_FIELDS[entity]
        if params.field not in valid_fields:
            out.add(
                rule, "invalid_field",
                f"Field '{params.field}' is not valid for entity '{entity.value}'",
                suggestion=f"Use one of: {', '.join(valid_fields)}",
            )
            return

        values = dataset.frame(entity)[params.field]
        matches = sum(1 for v in values if not is_blank(v) and regex.search(str(v)))
        if matches == 0:
            out.warn(
                rule, "no_pattern_matches",
                f"Pattern '{params.pattern}' matches no items in {entity.value}.{params.field}",
                suggestion="Review the pattern or check if the target data exists",
            )

    def _validate_precedence_override(
        self, rule: BusinessRule, dataset: DataSet, out: _Pass
    ) -> None:
        params: PrecedenceOverrideParams = rule.params
        if not params.global_rule_id:
            out.add(
                rule, "missing_global_rule",
                "Precedence override must reference a global rule",
                suggestion="Specify which global rule this override applies to",
            )
        elif params.global_rule_id not in out.rule_ids:
            out.warn(
                rule, "unknown_global_rule",
                f"Precedence override references unknown rule: {params.global_rule_id}",
                suggestion="Reference the id of an existing rule",
            )

        if not params.specific_conditions:
            out.add(
                rule, "missing_conditions",
                "Precedence override must specify conditions",
                suggestion="Add conditions that trigger this override",
            )

        if not params.override_action:
            out.add(
                rule, "missing_override_action",
                "Precedence override must specify an action",
                suggestion="Define what action to take when conditions are met",
            )

    # ------------------------------------------------------------------
    # Conflicts
    # ------------------------------------------------------------------

    @staticmethod
    def detect_conflicts(rules: Iterable[BusinessRule]) -> list[RuleConflict]:
        """Pairwise conflicts among *rules* (callers pass active rules only)."""
        rules = list(rules)
        conflicts: list[RuleConflict] = []

        co_runs = [r for r in rules if r.type == RuleType.CO_RUN]
        for a, b in combinations(co_runs, 2):
            if set(a.params.task_ids) & set(b.params.task_ids):
                conflicts.append(
                    RuleConflict(a, b, "overlapping_corun_tasks", ConflictSeverity.MEDIUM)
                )

        windows: dict[str, list[BusinessRule]] = defaultdict(list)
        for rule in rules:
            if rule.type == RuleType.PHASE_WINDOW and rule.params.task_id:
                windows[rule.params.task_id].append(rule)
        for same_task in windows.values():
            for a, b in combinations(same_task, 2):
                conflicts.append(
                    RuleConflict(a, b, "multiple_phase_windows_same_task", ConflictSeverity.HIGH)
                )
        return conflicts


def validate_business_rules(
    rules: Iterable[BusinessRule | dict],
    dataset: DataSet,
    config: dict[str, Any] | None = None,
) -> RuleValidationResult:
    """Validate rules given as BusinessRule objects or their JSON dicts."""
    rules = [r if isinstance(r, BusinessRule) else BusinessRule.from_dict(r) for r in rules]
    return BusinessRuleValidator(config).validate_rules(rules, dataset)
