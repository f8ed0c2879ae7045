"""Check base class and CheckRegistry singleton."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from allocation_qa.core.dataset import DataSet
    from allocation_qa.core.models import Findings


class Check(ABC):
    """Abstract base for all dataset checks."""

    #: Stable unique identifier, also the key under ``checks:`` in the config
    check_id: str

    #: Human-readable name
    name: str = ""

    #: Position in the fixed execution order (ascending)
    order: int = 0

    @abstractmethod
    def check(self, dataset: "DataSet", config: dict[str, Any]) -> "Findings":
        """Run the check and return its findings.

        Args:
            dataset: The dataset under validation. Read-only: in-place
                     canonicalizations go to ``Findings.rewrites`` and the
                     engine applies them after the last check.
            config: The full merged config.

        Returns:
            A Findings accumulator. Empty = nothing to report.
        """


class CheckRegistry:
    """Singleton registry mapping check_id → Check class."""

    _instance: "CheckRegistry | None" = None
    _checks: dict[str, type[Check]]

    def __new__(cls) -> "CheckRegistry":
        if cls._instance is None:
            inst = super().__new__(cls)
            inst._checks = {}
            cls._instance = inst
        return cls._instance

    def register(self, cls: type[Check]) -> type[Check]:
        """Register a Check class. Can be used as a decorator."""
        self._checks[cls.check_id] = cls
        return cls

    def get(self, check_id: str) -> type[Check] | None:
        return self._checks.get(check_id)

    def all_ids(self) -> list[str]:
        return [c.check_id for c in self.all_checks()]

    def all_checks(self) -> list[type[Check]]:
        return sorted(self._checks.values(), key=lambda c: (c.order, c.check_id))


# Module-level convenience instance
registry = CheckRegistry()
