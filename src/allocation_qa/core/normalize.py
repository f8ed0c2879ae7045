"""Explicit normalization pre-pass.

Run ``normalize`` once before validating with
``lists.rewrite_preferred_phases: false`` to keep validation read-only.
"""

from __future__ import annotations

import logging

from allocation_qa.core.dataset import DataSet
from allocation_qa.core.parsers import format_phase_list, is_blank, parse_phase_list

_log = logging.getLogger(__name__)

_PHASE_COLUMNS = (("tasks", "PreferredPhases"), ("workers", "AvailableSlots"))


def normalize(dataset: DataSet) -> DataSet:
    """Return a deep copy with phase lists in canonical ``"[a,b,c]"`` form.

    Unparseable tokens are dropped, the same way the validator reads them.
    Blank AvailableSlots stay blank; blank PreferredPhases become ``"[]"``.
    """
    result = dataset.copy()
    changed = 0
    for entity, column in _PHASE_COLUMNS:
        df = result.frame(entity)
        for label, raw in df[column].items():
            if entity == "workers" and is_blank(raw):
                continue
            canonical = format_phase_list(parse_phase_list(raw))
            if raw != canonical:
                df.at[label, column] = canonical
                changed += 1
    _log.debug("Normalized %d phase-list cells", changed)
    return result
