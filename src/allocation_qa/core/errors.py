"""Exception hierarchy for contract violations.

Defects in the *data* never raise: they become findings in a result. The
classes below are reserved for programming errors such as an unknown entity
key or a rule document that cannot be decoded.
"""

from __future__ import annotations

from datetime import datetime, timezone


class AllocationQAError(Exception):
    """Base class for all structured allocation_qa exceptions."""

    def __init__(
        self, message: str, source: str | None = None, suggested_action: str | None = None
    ) -> None:
        super().__init__(message)
        self.timestamp = datetime.now(tz=timezone.utc).isoformat(timespec="seconds")
        self.error_type = self.__class__.__name__
        self.source = source or "unknown"
        self.suggested_action = suggested_action

    def __str__(self) -> str:
        base = f"[{self.error_type}] {self.args[0]}"
        if self.source:
            base += f" (source={self.source})"
        if self.suggested_action:
            base += f" | action: {self.suggested_action}"
        return base


class UnknownEntityError(AllocationQAError):
    """An entity key other than clients / workers / tasks was requested."""


class UnknownRuleTypeError(AllocationQAError):
    """A business rule carries a type tag outside RuleType."""


class ConfigError(AllocationQAError):
    """Invalid or unreadable YAML configuration."""


class RulesConfigError(AllocationQAError):
    """A rules.json document is missing required sections."""


class RuleError(AllocationQAError):
    """A rule field holds a value that cannot be read as its declared type."""
