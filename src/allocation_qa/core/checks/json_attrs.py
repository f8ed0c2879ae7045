"""AttributesJSON must parse as JSON when present."""

from __future__ import annotations

import json
from typing import Any

from allocation_qa.core.check_base import Check, registry
from allocation_qa.core.checks.common import iter_rows
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.models import Findings
from allocation_qa.core.parsers import is_blank
from allocation_qa.core.schema import Entity


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


@registry.register
class JsonAttributesCheck(Check):
    check_id = "json_attributes"
    name = "AttributesJSON syntax"
    order = 50

    def check(self, dataset: DataSet, config: dict[str, Any]) -> Findings:
        findings = Findings()
        for idx, rid, row in iter_rows(dataset, Entity.CLIENTS):
            raw = row.get("AttributesJSON")
            if is_blank(raw) or not isinstance(raw, str):
                continue
            try:
                json.loads(raw, parse_constant=_reject_constant)
            except ValueError:  # JSONDecodeError, or NaN/Infinity
                findings.error(
                    "invalid_json",
                    "Invalid JSON format in AttributesJSON",
                    entity=Entity.CLIENTS.value,
                    row=idx,
                    column="AttributesJSON",
                    value=raw,
                    record_id=rid,
                    suggestion="Ensure JSON is properly formatted with quotes around keys and values",
                )
        return findings
