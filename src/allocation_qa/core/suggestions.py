"""Data-driven rule suggestions and the summary used to cache them."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from allocation_qa.core.business_rules import BusinessRule, RuleType
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.parsers import as_number, is_blank, parse_comma_list

if TYPE_CHECKING:
    from allocation_qa.core.cache import SuggestionCache

_log = logging.getLogger(__name__)

CO_RUN_CONFIDENCE = 0.7
LOAD_LIMIT_CONFIDENCE = 0.6
HIGH_AVERAGE_LOAD = 5


@dataclass
class RuleSuggestion:
    type: RuleType
    name: str
    description: str
    confidence: float
    parameters: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "confidence": self.confidence,
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "RuleSuggestion":
        return cls(
            type=RuleType(d["type"]),
            name=d["name"],
            description=d.get("description", ""),
            confidence=float(d.get("confidence", 0.0)),
            parameters=dict(d.get("parameters") or {}),
        )

    def to_rule(self) -> BusinessRule:
        return BusinessRule.create(self.type, self.name, self.parameters)


def _text(value: Any) -> str:
    return "" if is_blank(value) else str(value).strip()


def suggest_rules(dataset: DataSet) -> list[RuleSuggestion]:
    """Suggest co-run groups and load limits, highest confidence first."""
    suggestions: list[RuleSuggestion] = []

    # Tasks needing exactly the same skill set
    by_skills: dict[str, list[str]] = defaultdict(list)
    for row in dataset.tasks.to_dict(orient="records"):
        task_id = _text(row.get("TaskID"))
        skills = sorted({s.lower() for s in parse_comma_list(row.get("RequiredSkills"))})
        if task_id and skills:
            by_skills[",".join(skills)].append(task_id)

    for skill_key, task_ids in by_skills.items():
        if len(task_ids) < 2:
            continue
        suggestions.append(
            RuleSuggestion(
                type=RuleType.CO_RUN,
                name=f"Co-run tasks with {skill_key} skills",
                description=f"Tasks {', '.join(task_ids)} require similar skills",
                confidence=CO_RUN_CONFIDENCE,
                parameters={"taskIds": task_ids, "mustRunTogether": False},
            )
        )

    # Worker groups with a high average load
    loads: dict[str, list[float]] = defaultdict(list)
    for row in dataset.workers.to_dict(orient="records"):
        group = _text(row.get("WorkerGroup"))
        if group:
            loads[group].append(as_number(row.get("MaxLoadPerPhase")) or 0)

    for group, values in loads.items():
        average = sum(values) / len(values)
        if average <= HIGH_AVERAGE_LOAD:
            continue
        suggestions.append(
            RuleSuggestion(
                type=RuleType.LOAD_LIMIT,
                name=f"Limit load for {group} group",
                description=f"{group} group has high capacity (avg: {average:.1f})",
                confidence=LOAD_LIMIT_CONFIDENCE,
                parameters={"workerGroup": group, "maxSlotsPerPhase": math.ceil(average * 0.8)},
            )
        )

    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    _log.debug("Generated %d rule suggestions", len(suggestions))
    return suggestions


def data_summary(dataset: DataSet) -> dict:
    """Counts plus sorted distinct groups, categories and skills."""

    def distinct(values) -> list[str]:
        return sorted({_text(v) for v in values if _text(v)})

    skills: set[str] = set()
    for raw in dataset.workers["Skills"]:
        skills.update(parse_comma_list(raw))

    counts = dataset.counts()
    return {
        "totalClients": counts["clients"],
        "totalWorkers": counts["workers"],
        "totalTasks": counts["tasks"],
        "clientGroups": distinct(dataset.clients["GroupTag"]),
        "workerGroups": distinct(dataset.workers["WorkerGroup"]),
        "taskCategories": distinct(dataset.tasks["Category"]),
        "skillsAvailable": sorted(skills),
    }


def cached_suggestions(dataset: DataSet, cache: "SuggestionCache") -> list[RuleSuggestion]:
    """suggest_rules memoized in *cache* under the dataset's summary hash."""
    key = cache.make_key(data_summary(dataset))
    payload = cache.get_or_compute(key, lambda: [s.to_dict() for s in suggest_rules(dataset)])
    return [RuleSuggestion.from_dict(d) for d in payload]
