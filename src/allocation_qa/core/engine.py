"""DatasetValidator: orchestrates running checks against a DataSet.

The validator is stateless: every call returns a fresh ValidationResult.
Callers that want per-cell lookups feed the result into an IssueStore.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

import pandas as pd

_log = logging.getLogger(__name__)

# Import checks module to trigger all @registry.register decorators
import allocation_qa.core.checks  # noqa: F401
from allocation_qa.core.check_base import CheckRegistry, registry
from allocation_qa.core.config import check_enabled, resolve_config, warn_unknown_checks
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.errors import AllocationQAError
from allocation_qa.core.models import (
    Findings,
    ValidationError,
    ValidationResult,
    ValidationSummary,
)
from allocation_qa.core.parsers import as_number
from allocation_qa.core.schema import Entity, as_entity


class DatasetValidator:
    """Run the registered checks in order and aggregate their findings.

    Usage::

        validator = DatasetValidator(config={"checks": {"advisories": {"enabled": False}}})
        result = validator.validate(dataset)
    """

    def __init__(
        self, config: dict[str, Any] | None = None, check_registry: CheckRegistry | None = None
    ) -> None:
        self._config = resolve_config(config)
        self._registry = check_registry or registry
        warn_unknown_checks(self._config, self._registry.all_ids())

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    def validate(self, dataset: DataSet) -> ValidationResult:
        """Run every enabled check and return the aggregated result.

        When ``lists.rewrite_preferred_phases`` is on, task PreferredPhases
        cells of *dataset* are rewritten to ``"[a,b,c]"`` once all checks
        have run.
        """
        collected = Findings()
        for check_cls in self._registry.all_checks():
            if not check_enabled(self._config, check_cls.check_id):
                continue
            collected.extend(self._run_check(check_cls(), dataset))

        self._apply_rewrites(dataset, collected)

        critical_kinds = set(self._config.get("critical_kinds", []))
        summary = ValidationSummary(
            total_errors=len(collected.errors),
            total_warnings=len(collected.warnings),
            critical_errors=sum(1 for e in collected.errors if e.type in critical_kinds),
            entity_counts=dataset.counts(),
        )
        _log.debug(
            "Validation pass: %d errors, %d warnings, %d fixes",
            summary.total_errors, summary.total_warnings, len(collected.fixes),
        )
        return ValidationResult(
            is_valid=not collected.errors,
            errors=collected.errors,
            warnings=collected.warnings,
            fixes=collected.fixes,
            summary=summary,
        )

    def _run_check(self, check, dataset: DataSet) -> Findings:
        try:
            return check.check(dataset, self._config)
        except AllocationQAError:
            raise
        except Exception as exc:
            # One broken check must not hide the findings of the others
            _log.exception("Check %s failed: %s", check.check_id, exc)
            findings = Findings()
            findings.error(
                "check_failed",
                f"Check {check.check_id} failed: {exc}",
                entity=Entity.GENERAL.value,
                value=check.check_id,
            )
            return findings

    @staticmethod
    def _apply_rewrites(dataset: DataSet, findings: Findings) -> None:
        for rewrite in findings.rewrites:
            df = dataset.frame(rewrite.entity)
            df.at[df.index[rewrite.row], rewrite.column] = rewrite.value
        if findings.rewrites:
            _log.debug("Canonicalized %d phase lists", len(findings.rewrites))


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------


def validate_dataset(dataset: DataSet, config: dict[str, Any] | None = None) -> ValidationResult:
    return DatasetValidator(config).validate(dataset)


def _validate_entity(
    entity: Entity, records: Iterable[dict] | pd.DataFrame, config: dict[str, Any] | None
) -> list[ValidationError]:
    dataset = DataSet()
    dataset.set_frame(entity, records if isinstance(records, pd.DataFrame) else list(records))
    result = DatasetValidator(config).validate(dataset)
    return [e for e in result.errors if e.entity == entity.value]


def validate_clients(records, config: dict[str, Any] | None = None) -> list[ValidationError]:
    """Errors of the clients table validated on its own (no workers or tasks)."""
    return _validate_entity(Entity.CLIENTS, records, config)


def validate_workers(records, config: dict[str, Any] | None = None) -> list[ValidationError]:
    return _validate_entity(Entity.WORKERS, records, config)


def validate_tasks(records, config: dict[str, Any] | None = None) -> list[ValidationError]:
    return _validate_entity(Entity.TASKS, records, config)


def validate_entity(
    entity: "Entity | str", records, config: dict[str, Any] | None = None
) -> list[ValidationError]:
    return _validate_entity(as_entity(entity), records, config)


def validation_suggestions(dataset: DataSet) -> list[str]:
    """Plain-language hints about missing tables and capacity mismatches."""
    suggestions: list[str] = []
    counts = dataset.counts()
    if counts[Entity.CLIENTS.value] == 0:
        suggestions.append("Upload client data to define who needs work done")
    if counts[Entity.WORKERS.value] == 0:
        suggestions.append("Upload worker data to define available resources")
    if counts[Entity.TASKS.value] == 0:
        suggestions.append("Upload task data to define work requirements")

    priorities = [as_number(v) for v in dataset.clients["PriorityLevel"]]
    loads = [as_number(v) for v in dataset.workers["MaxLoadPerPhase"]]
    high_priority = any(p is not None and p >= 4 for p in priorities)
    low_capacity = any(m is not None and m <= 1 for m in loads)
    if high_priority and low_capacity:
        suggestions.append("Consider increasing worker capacity for high-priority client demands")
    return suggestions

