"""CommandHistory: bounded undo/redo stack for fix commands."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Iterable

from allocation_qa.core.commands import ApplyFixCommand, BulkFixCommand, Command

if TYPE_CHECKING:
    from allocation_qa.core.dataset import DataSet
    from allocation_qa.core.issue_store import IssueStore
    from allocation_qa.core.models import ValidationFix


class CommandHistory:
    """Undo/redo over fixes applied to one working dataset.

    Usage::

        history = CommandHistory(dataset)
        history.apply(result.fixes)     # one undo step for the whole batch
        history.undo()
    """

    def __init__(
        self,
        dataset: "DataSet",
        issue_store: "IssueStore | None" = None,
        max_depth: int = 200,
    ) -> None:
        self._dataset = dataset
        self._issue_store = issue_store
        self._undo_stack: deque[Command] = deque(maxlen=max_depth)
        self._redo_stack: deque[Command] = deque(maxlen=max_depth)

    def push(self, cmd: Command) -> None:
        """Execute command and push to undo stack. Clears redo stack."""
        cmd.execute()
        self._undo_stack.append(cmd)
        self._redo_stack.clear()

    def apply(self, fixes: "Iterable[ValidationFix]", label: str = "Apply fixes") -> Command | None:
        """Apply *fixes* to the working dataset as a single undo step (None if empty)."""
        commands = [ApplyFixCommand(self._dataset, fix, self._issue_store) for fix in fixes]
        if not commands:
            return None
        cmd: Command = commands[0] if len(commands) == 1 else BulkFixCommand(commands, label)
        self.push(cmd)
        return cmd

    def undo(self) -> Command | None:
        if not self._undo_stack:
            return None
        cmd = self._undo_stack.pop()
        cmd.undo()
        self._redo_stack.append(cmd)
        return cmd

    def redo(self) -> Command | None:
        if not self._redo_stack:
            return None
        cmd = self._redo_stack.pop()
        cmd.execute()
        self._undo_stack.append(cmd)
        return cmd

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def descriptions(self) -> list[str]:
        """Undo stack labels, most recent last."""
        return [cmd.description for cmd in self._undo_stack]

    def clear(self) -> None:
        self._undo_stack.clear()
        self._redo_stack.clear()
