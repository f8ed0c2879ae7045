"""Business rule model: a closed sum type over RuleType.

Every rule shares the same envelope (:class:`BusinessRule`) and carries one
parameter dataclass selected by its ``type`` tag. New rule types are added by
extending :class:`RuleType`, ``PARAMS_BY_TYPE`` and the dispatch table in
``rule_validation``, never by subclassing ``BusinessRule``.

JSON shape (as exported in ``rules.json``)::

    {
        "id": "rule_1", "type": "phaseWindow", "name": "T1 early",
        "description": "", "isActive": true, "priority": 1,
        "createdAt": "2026-01-01T00:00:00+00:00",
        "parameters": {"taskId": "T1", "allowedPhases": [1, 2]}
    }
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from allocation_qa.core.errors import RuleError, UnknownRuleTypeError
from allocation_qa.core.models import ConflictSeverity, RuleValidationError
from allocation_qa.core.parsers import is_blank, parse_phase_list


class RuleType(str, Enum):
    CO_RUN = "coRun"
    SLOT_RESTRICTION = "slotRestriction"
    LOAD_LIMIT = "loadLimit"
    PHASE_WINDOW = "phaseWindow"
    PATTERN_MATCH = "patternMatch"
    PRECEDENCE_OVERRIDE = "precedenceOverride"


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off", ""})


def _bad_value(name: str, value: Any, expected: str) -> RuleError:
    return RuleError(
        f"Rule field {name!r} must be {expected}, got {value!r}",
        source="business_rules",
        suggested_action=f"Set {name} to {expected}",
    )


def _flag(value: Any, default: bool, name: str) -> bool:
    """Read a JSON or form boolean; the string "false" is False."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise _bad_value(name, value, "a boolean")


def _integer(value: Any, default: int, name: str) -> int:
    if is_blank(value):
        return default
    if isinstance(value, bool):
        raise _bad_value(name, value, "an integer")
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise _bad_value(name, value, "an integer") from None
    if not number.is_integer():
        raise _bad_value(name, value, "an integer")
    return int(number)


def _phases(value: Any, name: str = "phases") -> list[int]:
    """Accept either a list of ints or a phase-list string."""
    if value is None:
        return []
    if isinstance(value, str):
        return parse_phase_list(value)
    if not isinstance(value, (list, tuple)):
        raise _bad_value(name, value, "a list of phase numbers")
    return [_integer(p, 0, name) for p in value]


def _ids(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value]


def _text(value: Any) -> str:
    return "" if is_blank(value) else str(value).strip()


# ---------------------------------------------------------------------------
# Per-variant parameters
# ---------------------------------------------------------------------------


@dataclass
class CoRunParams:
    task_ids: list[str] = field(default_factory=list)
    must_run_together: bool = True

    @classmethod
    def from_dict(cls, d: dict) -> "CoRunParams":
        return cls(
            task_ids=_ids(d.get("taskIds", d.get("tasks"))),
            must_run_together=_flag(d.get("mustRunTogether"), True, "mustRunTogether"),
        )

    def to_dict(self) -> dict:
        return {"taskIds": list(self.task_ids), "mustRunTogether": self.must_run_together}


@dataclass
class SlotRestrictionParams:
    client_group: str = ""
    worker_group: str = ""
    min_common_slots: Any = 1
    phases: list[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> "SlotRestrictionParams":
        client_group = _text(d.get("clientGroup"))
        worker_group = _text(d.get("workerGroup"))
        # Alternate form: {"groupType": "client" | "worker", "groupId": "..."}
        group_type = _text(d.get("groupType")).lower()
        group_id = _text(d.get("groupId"))
        if group_id and group_type == "client" and not client_group:
            client_group = group_id
        elif group_id and group_type == "worker" and not worker_group:
            worker_group = group_id
        return cls(
            client_group=client_group,
            worker_group=worker_group,
            min_common_slots=d.get("minCommonSlots", 1),
            phases=_phases(d.get("phases")),
        )

    def to_dict(self) -> dict:
        data: dict = {"minCommonSlots": self.min_common_slots}
        if self.client_group:
            data["clientGroup"] = self.client_group
        if self.worker_group:
            data["workerGroup"] = self.worker_group
        if self.phases:
            data["phases"] = list(self.phases)
        return data


@dataclass
class LoadLimitParams:
    worker_group: str = ""
    max_slots_per_phase: Any = 1
    phases: list[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> "LoadLimitParams":
        return cls(
            worker_group=_text(d.get("workerGroup")),
            max_slots_per_phase=d.get("maxSlotsPerPhase", 1),
            phases=_phases(d.get("phases")),
        )

    def to_dict(self) -> dict:
        data: dict = {
            "workerGroup": self.worker_group,
            "maxSlotsPerPhase": self.max_slots_per_phase,
        }
        if self.phases:
            data["phases"] = list(self.phases)
        return data


@dataclass
class PhaseWindowParams:
    task_id: str = ""
    allowed_phases: list[int] = field(default_factory=list)
    restricted_phases: list[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> "PhaseWindowParams":
        return cls(
            task_id=_text(d.get("taskId")),
            allowed_phases=_phases(d.get("allowedPhases"), "allowedPhases"),
            restricted_phases=_phases(d.get("restrictedPhases"), "restrictedPhases"),
        )

    def to_dict(self) -> dict:
        data: dict = {"taskId": self.task_id, "allowedPhases": list(self.allowed_phases)}
        if self.restricted_phases:
            data["restrictedPhases"] = list(self.restricted_phases)
        return data


@dataclass
class PatternMatchParams:
    pattern: str = ""
    field: str = ""
    entity: str = "tasks"
    action: str = "include"  # "include" | "exclude" | "prioritize"
    action_value: Any = None

    @classmethod
    def from_dict(cls, d: dict) -> "PatternMatchParams":
        return cls(
            pattern=d.get("pattern", d.get("regex")) or "",
            field=_text(d.get("field")),
            entity=_text(d.get("entity")) or "tasks",
            action=_text(d.get("action")) or "include",
            action_value=d.get("actionValue"),
        )

    def to_dict(self) -> dict:
        data = {
            "pattern": self.pattern,
            "field": self.field,
            "entity": self.entity,
            "action": self.action,
        }
        if self.action_value is not None:
            data["actionValue"] = self.action_value
        return data


@dataclass
class PrecedenceOverrideParams:
    global_rule_id: str = ""
    specific_conditions: dict = field(default_factory=dict)
    override_action: str = ""
    override_value: Any = None

    @classmethod
    def from_dict(cls, d: dict) -> "PrecedenceOverrideParams":
        conditions = d.get("specificConditions") or {}
        return cls(
            global_rule_id=_text(d.get("globalRuleId")),
            specific_conditions=dict(conditions) if isinstance(conditions, dict) else {},
            override_action=_text(d.get("overrideAction")),
            override_value=d.get("overrideValue"),
        )

    def to_dict(self) -> dict:
        return {
            "globalRuleId": self.global_rule_id,
            "specificConditions": dict(self.specific_conditions),
            "overrideAction": self.override_action,
            "overrideValue": self.override_value,
        }


RuleParams = Union[
    CoRunParams,
    SlotRestrictionParams,
    LoadLimitParams,
    PhaseWindowParams,
    PatternMatchParams,
    PrecedenceOverrideParams,
]

PARAMS_BY_TYPE: dict[RuleType, type] = {
    RuleType.CO_RUN: CoRunParams,
    RuleType.SLOT_RESTRICTION: SlotRestrictionParams,
    RuleType.LOAD_LIMIT: LoadLimitParams,
    RuleType.PHASE_WINDOW: PhaseWindowParams,
    RuleType.PATTERN_MATCH: PatternMatchParams,
    RuleType.PRECEDENCE_OVERRIDE: PrecedenceOverrideParams,
}


def rule_type(value: "RuleType | str") -> RuleType:
    try:
        return RuleType(value)
    except ValueError:
        raise UnknownRuleTypeError(
            f"Unknown rule type {value!r}",
            source="business_rules",
            suggested_action="Use one of: " + ", ".join(t.value for t in RuleType),
        ) from None


# ---------------------------------------------------------------------------
# Rule envelope
# ---------------------------------------------------------------------------


@dataclass
class BusinessRule:
    id: str
    type: RuleType
    name: str
    params: RuleParams
    description: str = ""
    is_active: bool = True
    priority: int = 1
    created_at: str = field(default_factory=_now_iso)

    def __post_init__(self) -> None:
        self.type = rule_type(self.type)
        expected = PARAMS_BY_TYPE[self.type]
        if not isinstance(self.params, expected):
            raise UnknownRuleTypeError(
                f"Rule {self.id!r} of type {self.type.value} carries {type(self.params).__name__}",
                source="business_rules",
                suggested_action=f"Use {expected.__name__} parameters",
            )

    @classmethod
    def create(
        cls,
        kind: "RuleType | str",
        name: str,
        parameters: dict | None = None,
        priority: int = 1,
    ) -> "BusinessRule":
        """Build a new active rule with a generated id."""
        kind = rule_type(kind)
        return cls(
            id=f"rule_{uuid.uuid4().hex[:12]}",
            type=kind,
            name=name,
            params=PARAMS_BY_TYPE[kind].from_dict(parameters or {}),
            description=f"Auto-generated {kind.value} rule",
            priority=priority,
        )

    @classmethod
    def from_dict(cls, d: dict) -> "BusinessRule":
        kind = rule_type(d.get("type", ""))
        # Older exports put parameters at the top level of the rule
        parameters = d.get("parameters")
        if parameters is None:
            parameters = {k: v for k, v in d.items() if k not in _ENVELOPE_KEYS}
        return cls(
            id=str(d.get("id") or f"rule_{uuid.uuid4().hex[:12]}"),
            type=kind,
            name=str(d.get("name") or kind.value),
            params=PARAMS_BY_TYPE[kind].from_dict(parameters),
            description=str(d.get("description") or ""),
            is_active=_flag(d.get("isActive"), True, "isActive"),
            priority=_integer(d.get("priority"), 1, "priority") or 1,
            created_at=str(d.get("createdAt") or _now_iso()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "priority": self.priority,
            "createdAt": self.created_at,
            "parameters": self.params.to_dict(),
        }


_ENVELOPE_KEYS = {"id", "type", "name", "description", "isActive", "priority", "createdAt"}


def rules_from_dicts(items: list[dict]) -> list[BusinessRule]:
    return [BusinessRule.from_dict(item) for item in items]


# ---------------------------------------------------------------------------
# Rule validation results
# ---------------------------------------------------------------------------


@dataclass
class RuleConflict:
    rule1: BusinessRule
    rule2: BusinessRule
    conflict_type: str
    severity: ConflictSeverity

    def to_dict(self) -> dict:
        return {
            "rule1": self.rule1.id,
            "rule2": self.rule2.id,
            "conflictType": self.conflict_type,
            "severity": self.severity.value,
        }


@dataclass
class RuleValidationResult:
    is_valid: bool
    errors: list[RuleValidationError]
    warnings: list[RuleValidationError]
    applicable_rules: list[BusinessRule]
    conflicting_rules: list[RuleConflict]

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "applicableRules": [r.to_dict() for r in self.applicable_rules],
            "conflictingRules": [c.to_dict() for c in self.conflicting_rules],
        }


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------

#: Starting point for each rule type in a rule builder form
RULE_TEMPLATES: dict[RuleType, dict] = {
    RuleType.CO_RUN: {
        "name": "Co-run Tasks",
        "description": "Ensure specific tasks run together or in sequence",
        "parameters": {"taskIds": [], "mustRunTogether": True},
    },
    RuleType.SLOT_RESTRICTION: {
        "name": "Slot Restriction",
        "description": "Restrict slot usage for specific groups",
        "parameters": {"clientGroup": "", "workerGroup": "", "minCommonSlots": 1},
    },
    RuleType.LOAD_LIMIT: {
        "name": "Load Limit",
        "description": "Limit maximum workload for worker groups",
        "parameters": {"workerGroup": "", "maxSlotsPerPhase": 5},
    },
    RuleType.PHASE_WINDOW: {
        "name": "Phase Window",
        "description": "Restrict tasks to specific phases",
        "parameters": {"taskId": "", "allowedPhases": []},
    },
    RuleType.PATTERN_MATCH: {
        "name": "Pattern Match",
        "description": "Apply rules based on data patterns",
        "parameters": {"pattern": "", "field": "", "entity": "tasks", "action": "include"},
    },
    RuleType.PRECEDENCE_OVERRIDE: {
        "name": "Precedence Override",
        "description": "Override global rules with specific conditions",
        "parameters": {
            "globalRuleId": "",
            "specificConditions": {},
            "overrideAction": "",
            "overrideValue": None,
        },
    },
}


def create_business_rule(
    kind: "RuleType | str", name: str, parameters: dict | None = None, priority: int = 1
) -> BusinessRule:
    return BusinessRule.create(kind, name, parameters, priority)
