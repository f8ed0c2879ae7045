"""Exporters: findings CSV (always ;), TXT report, dataset CSV/XLSX, rules.json."""

from __future__ import annotations

import csv
import json
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import pandas as pd

from allocation_qa.core.business_rules import BusinessRule
from allocation_qa.core.categories import ErrorCategory, get_error_category, group_by_category
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.errors import RulesConfigError
from allocation_qa.core.models import Severity, ValidationError, ValidationResult
from allocation_qa.core.prioritization import PrioritizationConfig
from allocation_qa.core.schema import TABLE_ENTITIES

_log = logging.getLogger(__name__)

RULES_CONFIG_VERSION = "1.0"


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


def _cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value)


# ---------------------------------------------------------------------------
# Dataset export (CSV ALWAYS ; delimiter)
# ---------------------------------------------------------------------------


class DatasetCSVExporter:
    """Write one ``<entity>.csv`` per table into a directory.

    Delimiter ``;``, QUOTE_MINIMAL, UTF-8 (optionally with BOM).
    """

    def export(self, dataset: DataSet, directory: Path, bom: bool = False) -> list[Path]:
        directory.mkdir(parents=True, exist_ok=True)
        encoding = "utf-8-sig" if bom else "utf-8"
        written: list[Path] = []
        for entity in TABLE_ENTITIES:
            df = dataset.frame(entity)
            path = directory / f"{entity.value}.csv"
            with path.open("w", encoding=encoding, newline="") as f:
                writer = csv.writer(f, delimiter=";", quotechar='"', quoting=csv.QUOTE_MINIMAL)
                writer.writerow(list(df.columns))
                for row in df.itertuples(index=False, name=None):
                    writer.writerow([_cell(v) for v in row])
            written.append(path)
        return written


class DatasetXLSXExporter:
    """Export the three tables to one workbook, one sheet per entity."""

    def export(self, dataset: DataSet, path: Path) -> None:
        import openpyxl
        from openpyxl.styles import Font

        path.parent.mkdir(parents=True, exist_ok=True)
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        header_font = Font(bold=True)

        for entity in TABLE_ENTITIES:
            df = dataset.frame(entity)
            ws = wb.create_sheet(entity.value)
            for col_idx, col_name in enumerate(df.columns, start=1):
                ws.cell(row=1, column=col_idx, value=col_name).font = header_font
            for row_idx, row in enumerate(df.itertuples(index=False, name=None), start=2):
                for col_idx, val in enumerate(row, start=1):
                    ws.cell(row=row_idx, column=col_idx, value=_cell(val))

        wb.save(path)


# ---------------------------------------------------------------------------
# Findings CSV export (ALWAYS ; delimiter)
# ---------------------------------------------------------------------------


class FindingsCSVExporter:
    """Export errors and warnings to CSV with ; delimiter."""

    COLUMNS = [
        "id", "severity", "category", "type", "entity", "row", "record_id",
        "column", "message", "value", "suggestion", "suggested_value",
    ]

    def export(self, findings: Iterable[ValidationError], path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f, delimiter=";", quotechar='"', quoting=csv.QUOTE_MINIMAL)
            writer.writerow(self.COLUMNS)
            for finding in findings:
                writer.writerow([
                    finding.id,
                    finding.severity.value,
                    get_error_category(finding.type).value,
                    finding.type,
                    finding.entity or "",
                    finding.row + 1 if finding.row is not None else "",  # 1-based for humans
                    finding.record_id or "",
                    finding.column or "",
                    finding.message,
                    _cell(finding.value),
                    finding.suggestion or "",
                    _cell(finding.suggested_value),
                ])


# ---------------------------------------------------------------------------
# TXT report
# ---------------------------------------------------------------------------


class TXTReporter:
    """Generate a human-readable text report."""

    def render(self, result: ValidationResult, source: str | None = None) -> str:
        lines: list[str] = []
        ts = datetime.now().strftime("%Y-%m-%d %H:%M")
        summary = result.summary

        lines.append("=" * 72)
        lines.append("DATA VALIDATION REPORT")
        lines.append(f"Generated: {ts}")
        if source:
            lines.append(f"Source: {source}")
        counts = ", ".join(f"{k}={v}" for k, v in summary.entity_counts.items())
        lines.append(f"Records: {counts}")
        lines.append(f"Status: {'VALID' if result.is_valid else 'INVALID'}")
        lines.append("=" * 72)
        lines.append("")

        lines.append("SUMMARY")
        lines.append("-" * 40)
        lines.append(f"  {'Errors':<16} {summary.total_errors:>5}")
        lines.append(f"  {'Critical':<16} {summary.critical_errors:>5}")
        lines.append(f"  {'Warnings':<16} {summary.total_warnings:>5}")
        lines.append(f"  {'Fixes':<16} {len(result.fixes):>5}")
        lines.append("")

        findings = result.all_findings()
        type_counts = Counter(f.type for f in findings)
        if type_counts:
            lines.append("TOP FINDING TYPES")
            lines.append("-" * 40)
            for kind, cnt in type_counts.most_common(10):
                lines.append(f"  {kind:<45} {cnt:>5}")
            lines.append("")

        lines.append("DETAILS")
        lines.append("=" * 72)
        for category, items in group_by_category(findings).items():
            lines.append(f"\n[{category.value}] {len(items)} finding(s)")
            lines.append("-" * 40)
            for finding in sorted(items, key=lambda f: f.severity)[:200]:  # cap per category
                lines.append(f"  {self._location(finding)} ({finding.severity.value})")
                lines.append(f"    {finding.message}")
                if finding.suggestion:
                    lines.append(f"    Suggestion: {finding.suggestion}")
                lines.append("")
        return "\n".join(lines)

    def export(self, result: ValidationResult, path: Path, source: str | None = None) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(result, source), encoding="utf-8")

    @staticmethod
    def _location(finding: ValidationError) -> str:
        if finding.row is None:
            return finding.entity or "general"
        target = f"{finding.entity} row {finding.row + 1}"
        if finding.record_id:
            target += f" [{finding.record_id}]"
        if finding.column:
            target += f", «{finding.column}»"
        return target


# ---------------------------------------------------------------------------
# rules.json bundle
# ---------------------------------------------------------------------------


class RulesConfigExporter:
    """Build, write and read the ``rules.json`` bundle."""

    def build(
        self,
        rules: Iterable[BusinessRule],
        prioritization: PrioritizationConfig | None = None,
        entities: dict[str, int] | None = None,
        validation_passed: bool = False,
        prioritization_method: str | None = None,
    ) -> dict:
        rules = list(rules)
        prioritization = prioritization or PrioritizationConfig()
        metadata = {
            "totalRules": len(rules),
            "ruleTypes": list(dict.fromkeys(r.type.value for r in rules)),
            "lastUpdated": _now_iso(),
        }
        if prioritization_method:
            metadata["prioritizationMethod"] = prioritization_method
        return {
            "version": RULES_CONFIG_VERSION,
            "generatedAt": _now_iso(),
            "entities": dict(entities or {e.value: 0 for e in TABLE_ENTITIES}),
            "validationPassed": validation_passed,
            "rules": [r.to_dict() for r in rules],
            "prioritization": prioritization.to_dict(),
            "metadata": metadata,
        }

    def export(self, document: dict, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        _log.debug("Wrote %d rules to %s", len(document.get("rules", [])), path)

    def parse(self, text: str) -> tuple[list[BusinessRule], PrioritizationConfig]:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RulesConfigError(
                f"Failed to parse rules.json: {exc}",
                source="rules.json",
                suggested_action="Export the rules again",
            ) from exc
        if not isinstance(document, dict) or not all(
            document.get(k) is not None for k in ("version", "rules", "prioritization")
        ):
            raise RulesConfigError(
                "Invalid rules.json format. Missing required fields.",
                source="rules.json",
                suggested_action="The document needs version, rules and prioritization",
            )
        rules = [BusinessRule.from_dict(r) for r in document["rules"]]
        return rules, PrioritizationConfig.from_dict(document["prioritization"])

    def load(self, path: Path) -> tuple[list[BusinessRule], PrioritizationConfig]:
        return self.parse(Path(path).read_text(encoding="utf-8"))


def severity_counts(findings: Iterable[ValidationError]) -> dict[str, int]:
    counts = Counter(f.severity for f in findings)
    return {s.value: counts.get(s, 0) for s in Severity}


def category_counts(findings: Iterable[ValidationError]) -> dict[str, int]:
    counts = Counter(get_error_category(f.type) for f in findings)
    return {c.value: counts.get(c, 0) for c in ErrorCategory}
