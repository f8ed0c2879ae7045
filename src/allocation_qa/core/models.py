"""Core result dataclasses.

All other modules import from here. Keep this module free of side-effects so
it can be used from tests, the CLI and the HTTP layer alike.

Attribute names are snake_case; ``to_dict()`` renders the camelCase JSON
contract consumed by the UI (``isValid``, ``suggestedValue``, ...).
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __lt__(self, other: "Severity") -> bool:
        order = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}
        return order[self] < order[other]

    def __le__(self, other: "Severity") -> bool:
        return self == other or self < other


class ConflictSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _jsonable(value: Any) -> Any:
    """Turn numpy scalars and NaN into plain JSON values."""
    if value is None:
        return None
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        value = value.item()
    if isinstance(value, float) and value != value:
        return None
    return value


# ---------------------------------------------------------------------------
# Dataset findings
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A finding at a specific location of the dataset (error or warning)."""

    id: str  # deterministic sha256[:12] of (type, entity, row, column, value)
    type: str  # error kind, e.g. "duplicate_id"
    message: str
    severity: Severity
    entity: str | None = None
    row: int | None = None  # 0-based snapshot index; None for dataset-wide findings
    column: str | None = None
    value: Any = None
    suggestion: str | None = None
    suggested_value: Any = None
    record_id: str | None = None  # ID of the record at *row*, when it has one

    @staticmethod
    def make_id(kind: str, entity: str | None, row: int | None, column: str | None, value: Any) -> str:
        payload = json.dumps(
            [kind, entity, row, column, str(_jsonable(value))], ensure_ascii=False, sort_keys=True
        )
        return hashlib.sha256(payload.encode()).hexdigest()[:12]

    @classmethod
    def create(
        cls,
        kind: str,
        message: str,
        severity: Severity = Severity.ERROR,
        entity: str | None = None,
        row: int | None = None,
        column: str | None = None,
        value: Any = None,
        suggestion: str | None = None,
        suggested_value: Any = None,
        record_id: str | None = None,
    ) -> "ValidationError":
        return cls(
            id=cls.make_id(kind, entity, row, column, value),
            type=kind,
            message=message,
            severity=severity,
            entity=entity,
            row=row,
            column=column,
            value=value,
            suggestion=suggestion,
            suggested_value=suggested_value,
            record_id=record_id,
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
        }
        optional = {
            "entity": self.entity,
            "row": self.row,
            "column": self.column,
            "value": _jsonable(self.value),
            "suggestion": self.suggestion,
            "suggestedValue": _jsonable(self.suggested_value),
            "recordId": self.record_id,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class ValidationFix:
    """A directly applicable correction: ``dataset[entity][row][column] = value``."""

    type: str
    message: str
    entity: str
    row: int
    column: str
    value: Any
    record_id: str | None = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type,
            "message": self.message,
            "entity": self.entity,
            "row": self.row,
            "column": self.column,
            "value": _jsonable(self.value),
        }
        if self.record_id is not None:
            data["recordId"] = self.record_id
        return data

    @classmethod
    def from_dict(cls, d: dict) -> "ValidationFix":
        return cls(
            type=d.get("type", "manual"),
            message=d.get("message", ""),
            entity=d["entity"],
            row=int(d["row"]),
            column=d["column"],
            value=d.get("value"),
            record_id=d.get("recordId", d.get("record_id")),
        )


@dataclass
class Findings:
    """Accumulator returned by one check.

    *rewrites* are canonicalizations the engine writes back into the dataset
    once every check has run; they are not reported as fixes.
    """

    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)
    fixes: list[ValidationFix] = field(default_factory=list)
    rewrites: list[ValidationFix] = field(default_factory=list)

    def error(self, kind: str, message: str, **kwargs: Any) -> ValidationError:
        finding = ValidationError.create(kind, message, Severity.ERROR, **kwargs)
        self.errors.append(finding)
        return finding

    def warning(self, kind: str, message: str, **kwargs: Any) -> ValidationError:
        finding = ValidationError.create(kind, message, Severity.WARNING, **kwargs)
        self.warnings.append(finding)
        return finding

    def fix(self, kind: str, message: str, **kwargs: Any) -> ValidationFix:
        fix = ValidationFix(type=kind, message=message, **kwargs)
        self.fixes.append(fix)
        return fix

    def rewrite(self, kind: str, message: str, **kwargs: Any) -> ValidationFix:
        rewrite = ValidationFix(type=kind, message=message, **kwargs)
        self.rewrites.append(rewrite)
        return rewrite

    def extend(self, other: "Findings") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.fixes.extend(other.fixes)
        self.rewrites.extend(other.rewrites)

    def __len__(self) -> int:
        return len(self.errors) + len(self.warnings) + len(self.fixes)


@dataclass
class ValidationSummary:
    total_errors: int = 0
    total_warnings: int = 0
    critical_errors: int = 0
    entity_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalErrors": self.total_errors,
            "totalWarnings": self.total_warnings,
            "criticalErrors": self.critical_errors,
            "entityCounts": dict(self.entity_counts),
        }


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[ValidationError]
    warnings: list[ValidationError]
    fixes: list[ValidationFix]
    summary: ValidationSummary

    def all_findings(self) -> list[ValidationError]:
        return [*self.errors, *self.warnings]

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "fixes": [f.to_dict() for f in self.fixes],
            "summary": self.summary.to_dict(),
        }


# ---------------------------------------------------------------------------
# Rule findings
# ---------------------------------------------------------------------------


@dataclass
class AffectedEntity:
    entity: str
    id: str
    field: str | None = None

    def to_dict(self) -> dict:
        data = {"entity": self.entity, "id": self.id}
        if self.field:
            data["field"] = self.field
        return data


@dataclass
class RuleValidationError:
    rule_id: str
    rule_name: str
    type: str
    message: str
    severity: Severity
    affected_entities: list[AffectedEntity] = field(default_factory=list)
    suggestion: str | None = None

    def to_dict(self) -> dict:
        data = {
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "type": self.type,
            "message": self.message,
            "severity": self.severity.value,
            "affectedEntities": [a.to_dict() for a in self.affected_entities],
        }
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data
