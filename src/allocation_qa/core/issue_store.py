"""IssueStore: in-memory index over the findings of one ValidationResult.

Provides O(1) lookup by (entity, row, column) for cell highlighting and by
entity for per-table badges. Dataset-wide findings (no row) are kept under
the ``general`` entity.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from allocation_qa.core.categories import ErrorCategory, get_error_category
from allocation_qa.core.models import Severity, ValidationError, ValidationResult

CellKey = tuple[str, int, str]


class IssueStore:
    """Thread-unsafe in-memory store for findings.

    Findings are held in a list because two findings may share an id (the
    same unknown TaskID listed twice in one cell, for instance).
    """

    def __init__(self) -> None:
        self._findings: list[ValidationError] = []
        self._resolved: set[int] = set()
        # secondary indexes: positions into _findings
        self._by_id: dict[str, list[int]] = defaultdict(list)
        self._by_entity: dict[str, list[int]] = defaultdict(list)
        self._by_cell: dict[CellKey, list[int]] = defaultdict(list)

    @classmethod
    def from_result(cls, result: ValidationResult) -> "IssueStore":
        store = cls()
        store.replace_all(result.all_findings())
        return store

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def replace_all(self, findings: Iterable[ValidationError]) -> None:
        """Replace the entire store with a new set of findings."""
        self._findings.clear()
        self._resolved.clear()
        self._by_id.clear()
        self._by_entity.clear()
        self._by_cell.clear()
        for finding in findings:
            self._insert(finding)

    def _insert(self, finding: ValidationError) -> None:
        pos = len(self._findings)
        self._findings.append(finding)
        self._by_id[finding.id].append(pos)
        self._by_entity[finding.entity or "general"].append(pos)
        if finding.row is not None and finding.column:
            self._by_cell[(finding.entity or "general", finding.row, finding.column)].append(pos)

    def mark_cell_resolved(self, entity: str, row: int, column: str, resolved: bool = True) -> int:
        """Flag (or un-flag) every finding on a cell; returns how many changed."""
        changed = 0
        for pos in self._by_cell.get((entity, row, column), []):
            if resolved and pos not in self._resolved:
                self._resolved.add(pos)
                changed += 1
            elif not resolved and pos in self._resolved:
                self._resolved.discard(pos)
                changed += 1
        return changed

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def by_cell(self, entity: str, row: int, column: str) -> list[ValidationError]:
        return [self._findings[p] for p in self._by_cell.get((entity, row, column), [])]

    def by_entity(self, entity: str) -> list[ValidationError]:
        return [self._findings[p] for p in self._by_entity.get(entity, [])]

    def get(self, finding_id: str) -> list[ValidationError]:
        return [self._findings[p] for p in self._by_id.get(finding_id, [])]

    def all_findings(self) -> list[ValidationError]:
        return list(self._findings)

    def open_findings(self) -> list[ValidationError]:
        return [f for p, f in enumerate(self._findings) if p not in self._resolved]

    def count_by_severity(self) -> dict[Severity, int]:
        counts: dict[Severity, int] = {s: 0 for s in Severity}
        for finding in self.open_findings():
            counts[finding.severity] += 1
        return counts

    def count_by_category(self) -> dict[ErrorCategory, int]:
        counts: dict[ErrorCategory, int] = {c: 0 for c in ErrorCategory}
        for finding in self.open_findings():
            counts[get_error_category(finding.type)] += 1
        return counts

    def has_issues_for_cell(self, entity: str, row: int, column: str) -> bool:
        return bool(self._by_cell.get((entity, row, column)))

    def worst_severity_for_cell(self, entity: str, row: int, column: str) -> Severity | None:
        positions = self._by_cell.get((entity, row, column), [])
        open_severities = [self._findings[p].severity for p in positions if p not in self._resolved]
        if not open_severities:
            return None
        return min(open_severities)

    def __len__(self) -> int:
        return len(self._findings)
