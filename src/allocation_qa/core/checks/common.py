"""Row iteration and formatting helpers shared by the checks."""

from __future__ import annotations

from typing import Any, Iterator

from allocation_qa.core.dataset import DataSet
from allocation_qa.core.parsers import is_blank
from allocation_qa.core.schema import ID_COLUMNS, Entity


def record_id(value: Any) -> str | None:
    return None if is_blank(value) else str(value).strip()


def iter_rows(dataset: DataSet, entity: Entity) -> Iterator[tuple[int, str | None, dict]]:
    """Yield ``(row_index, record_id, row_dict)`` in snapshot order."""
    df = dataset.frame(entity)
    id_col = ID_COLUMNS[entity]
    for idx, row in enumerate(df.to_dict(orient="records")):
        yield idx, record_id(row.get(id_col)), row


def fmt_number(value: Any) -> str:
    """Render 5.0 as "5" and 2.5 as "2.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
