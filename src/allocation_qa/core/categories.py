"""Presentation grouping of finding kinds.

The mapping lives here and nowhere else so it can be tested on its own.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from allocation_qa.core.models import ValidationError


class ErrorCategory(str, Enum):
    CRITICAL = "CRITICAL"
    DATA_INTEGRITY = "DATA_INTEGRITY"
    BUSINESS_LOGIC = "BUSINESS_LOGIC"
    WARNINGS = "WARNINGS"
    OTHER = "OTHER"


ERROR_CATEGORIES: dict[ErrorCategory, frozenset[str]] = {
    ErrorCategory.CRITICAL: frozenset({"missing_required", "duplicate_id", "unknown_reference"}),
    ErrorCategory.DATA_INTEGRITY: frozenset({"malformed_array", "invalid_json", "out_of_range"}),
    ErrorCategory.BUSINESS_LOGIC: frozenset(
        {"skill_coverage", "worker_overload", "max_concurrency_infeasible"}
    ),
    ErrorCategory.WARNINGS: frozenset(
        {"unusual_value", "no_skills", "no_requested_tasks", "phase_range"}
    ),
}

CATEGORY_PRIORITY: dict[ErrorCategory, int] = {
    ErrorCategory.CRITICAL: 4,
    ErrorCategory.DATA_INTEGRITY: 3,
    ErrorCategory.BUSINESS_LOGIC: 2,
    ErrorCategory.WARNINGS: 1,
    ErrorCategory.OTHER: 0,
}

#: Kinds counted in ``summary.critical_errors``. Note that skill_coverage is
#: critical for the count but grouped under BUSINESS_LOGIC for display.
CRITICAL_KINDS: frozenset[str] = frozenset(
    {"missing_required", "duplicate_id", "unknown_reference", "skill_coverage"}
)


def get_error_category(kind: str) -> ErrorCategory:
    for category, kinds in ERROR_CATEGORIES.items():
        if kind in kinds:
            return category
    return ErrorCategory.OTHER


def get_error_priority(kind: str) -> int:
    """Higher number = more critical (4 .. 0)."""
    return CATEGORY_PRIORITY[get_error_category(kind)]


def is_critical(error: ValidationError, critical_kinds: Iterable[str] = CRITICAL_KINDS) -> bool:
    return error.type in set(critical_kinds)


def group_by_category(
    findings: Iterable[ValidationError],
) -> dict[ErrorCategory, list[ValidationError]]:
    """Bucket findings by category, most critical category first.

    Empty categories are omitted; findings keep their input order.
    """
    buckets: dict[ErrorCategory, list[ValidationError]] = {}
    for finding in findings:
        buckets.setdefault(get_error_category(finding.type), []).append(finding)
    ordered = sorted(buckets, key=lambda c: CATEGORY_PRIORITY[c], reverse=True)
    return {category: buckets[category] for category in ordered}
