"""Relative weights across the allocation objectives.

Weights are percentages over the three criteria and are exported with the
rules in ``rules.json``. They can be set directly, from a preset profile,
from a ranking (50/30/20) or from a pairwise comparison matrix.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from allocation_qa.core.errors import ConfigError

CRITERIA: tuple[str, ...] = ("PriorityLevel", "Fairness", "Fulfillment")

DEFAULT_WEIGHTS: dict[str, int] = {"PriorityLevel": 40, "Fairness": 35, "Fulfillment": 25}

RANK_WEIGHTS: tuple[int, ...] = (50, 30, 20)

PRESET_PROFILES: dict[str, dict] = {
    "balanced": {
        "name": "Balanced",
        "description": "Equal consideration for all criteria",
        "weights": {"PriorityLevel": 33, "Fairness": 33, "Fulfillment": 34},
    },
    "fulfillment": {
        "name": "Maximize Fulfillment",
        "description": "Prioritize completing as many tasks as possible",
        "weights": {"PriorityLevel": 20, "Fairness": 20, "Fulfillment": 60},
    },
    "fairness": {
        "name": "Fair Distribution",
        "description": "Ensure equitable workload distribution",
        "weights": {"PriorityLevel": 25, "Fairness": 60, "Fulfillment": 15},
    },
    "priority": {
        "name": "Priority First",
        "description": "Focus on high-priority tasks first",
        "weights": {"PriorityLevel": 60, "Fairness": 25, "Fulfillment": 15},
    },
}


@dataclass
class PrioritizationConfig:
    weights: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    ranking_order: list[str] = field(default_factory=lambda: list(CRITERIA))
    selected_profile: str = "balanced"
    custom_profiles: dict[str, dict[str, float]] = field(default_factory=dict)
    pairwise_matrix: dict[str, dict[str, float]] | None = None

    def apply_profile(self, key: str) -> None:
        """Switch to a preset or previously saved custom profile."""
        if key in PRESET_PROFILES:
            self.weights = dict(PRESET_PROFILES[key]["weights"])
        elif key in self.custom_profiles:
            self.weights = dict(self.custom_profiles[key])
        else:
            raise ConfigError(
                f"Unknown prioritization profile {key!r}",
                source="prioritization",
                suggested_action="Use one of: "
                + ", ".join([*PRESET_PROFILES, *self.custom_profiles]),
            )
        self.selected_profile = key

    def save_custom_profile(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise ConfigError("Custom profile name must not be empty", source="prioritization")
        self.custom_profiles[name] = dict(self.weights)

    def apply_ranking(self, order: list[str]) -> None:
        """Rank the criteria: first gets 50, second 30, third 20."""
        if sorted(order) != sorted(CRITERIA):
            raise ConfigError(
                f"Ranking must list each of {', '.join(CRITERIA)} once",
                source="prioritization",
            )
        self.ranking_order = list(order)
        self.weights = {c: RANK_WEIGHTS[i] for i, c in enumerate(order)}

    def apply_pairwise_matrix(self, matrix: dict[str, dict[str, float]]) -> None:
        """Row sums of the comparison matrix, normalized to percentages."""
        try:
            sums = {c1: sum(float(matrix[c1][c2]) for c2 in CRITERIA) for c1 in CRITERIA}
        except KeyError as exc:
            raise ConfigError(
                f"Pairwise matrix has no entry for {exc.args[0]!r}",
                source="prioritization",
                suggested_action=f"Compare every pair of {', '.join(CRITERIA)}",
            ) from None
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                f"Pairwise matrix entries must be numbers: {exc}", source="prioritization"
            ) from None
        total = sum(sums.values())
        if total <= 0:
            raise ConfigError(
                "Pairwise matrix must hold at least one positive comparison",
                source="prioritization",
                suggested_action="Use positive preference values (1 = equal)",
            )
        self.pairwise_matrix = {r: dict(cols) for r, cols in matrix.items()}
        self.weights = {c: round(sums[c] / total * 100) for c in CRITERIA}

    def to_dict(self) -> dict:
        data = {
            "weights": dict(self.weights),
            "rankingOrder": list(self.ranking_order),
            "selectedProfile": self.selected_profile,
            "customProfiles": {k: dict(v) for k, v in self.custom_profiles.items()},
        }
        if self.pairwise_matrix is not None:
            data["pairwiseMatrix"] = self.pairwise_matrix
        return data

    @classmethod
    def from_dict(cls, d: dict) -> "PrioritizationConfig":
        return cls(
            weights=dict(d.get("weights") or DEFAULT_WEIGHTS),
            ranking_order=list(d.get("rankingOrder") or CRITERIA),
            selected_profile=d.get("selectedProfile") or "balanced",
            custom_profiles=dict(d.get("customProfiles") or {}),
            pairwise_matrix=d.get("pairwiseMatrix"),
        )
