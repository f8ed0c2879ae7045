"""Command pattern for undoable fixes.

All changes a ValidationFix makes to a DataSet go through a Command so that
the undo/redo stack stays consistent. Fixes address their target by record
ID first; the row index is the fallback when the ID is missing or ambiguous.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterable

import pandas as pd

from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import ValidationFix
from allocation_qa.core.parsers import is_blank
from allocation_qa.core.schema import ID_COLUMNS, as_entity

if TYPE_CHECKING:
    from allocation_qa.core.issue_store import IssueStore

_log = logging.getLogger(__name__)


class Command(ABC):
    """Abstract base for all undoable commands."""

    @abstractmethod
    def execute(self) -> None: ...

    @abstractmethod
    def undo(self) -> None: ...

    @property
    @abstractmethod
    def description(self) -> str: ...


def resolve_row(df: pd.DataFrame, id_col: str, record_id: str | None, row: int) -> int | None:
    """Return the positional row a fix should touch, or None if out of range."""
    if record_id is not None:
        matches = [
            pos for pos, value in enumerate(df[id_col])
            if not is_blank(value) and str(value).strip() == record_id
        ]
        if len(matches) == 1:
            return matches[0]
    if 0 <= row < len(df):
        return row
    return None


class ApplyFixCommand(Command):
    """Apply one ValidationFix: ``dataset[entity][row][column] = fix.value``."""

    def __init__(
        self,
        dataset: DataSet,
        fix: ValidationFix,
        issue_store: "IssueStore | None" = None,
    ) -> None:
        self._dataset = dataset
        self._fix = fix
        self._issue_store = issue_store
        self._entity = as_entity(fix.entity)
        self._row: int | None = None
        self._old_value: Any = None

    @property
    def applied(self) -> bool:
        return self._row is not None

    def execute(self) -> None:
        df = self._dataset.frame(self._entity)
        row = resolve_row(df, ID_COLUMNS[self._entity], self._fix.record_id, self._fix.row)
        if row is None:
            _log.warning(
                "Skipping fix %s: no %s row %s", self._fix.type, self._entity.value, self._fix.row
            )
            return
        if self._fix.column not in df.columns:
            df[self._fix.column] = pd.Series([float("nan")] * len(df), dtype=object)
        label = df.index[row]
        self._old_value = df.at[label, self._fix.column]
        df.at[label, self._fix.column] = self._fix.value
        self._row = row

        if self._issue_store is not None:
            self._issue_store.mark_cell_resolved(self._entity.value, row, self._fix.column)

    def undo(self) -> None:
        if self._row is None:
            return
        df = self._dataset.frame(self._entity)
        df.at[df.index[self._row], self._fix.column] = self._old_value

        if self._issue_store is not None:
            self._issue_store.mark_cell_resolved(
                self._entity.value, self._row, self._fix.column, resolved=False
            )
        self._row = None

    @property
    def description(self) -> str:
        target = self._fix.record_id or f"row {self._fix.row + 1}"
        return f"Fix {self._entity.value} «{self._fix.column}» [{target}] → {self._fix.value!r}"


class BulkFixCommand(Command):
    """Composite command wrapping multiple single-cell fixes."""

    def __init__(self, commands: list[ApplyFixCommand], label: str = "Bulk fix") -> None:
        self._commands = commands
        self._label = label

    def execute(self) -> None:
        for cmd in self._commands:
            cmd.execute()

    def undo(self) -> None:
        for cmd in reversed(self._commands):
            cmd.undo()

    @property
    def applied_count(self) -> int:
        return sum(1 for cmd in self._commands if cmd.applied)

    @property
    def description(self) -> str:
        return f"{self._label} ({len(self._commands)} cells)"


def apply_fixes(dataset: DataSet, fixes: Iterable[ValidationFix]) -> DataSet:
    """Return a copy of *dataset* with every fix applied in order.

    The input dataset is not modified. Re-validate the returned dataset to
    obtain fresh findings.
    """
    fixed = dataset.copy()
    bulk = BulkFixCommand([ApplyFixCommand(fixed, fix) for fix in fixes])
    bulk.execute()
    _log.debug("Applied %d fixes", bulk.applied_count)
    return fixed
