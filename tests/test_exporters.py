"""Tests for findings CSV, TXT report, dataset export and rules.json."""

from __future__ import annotations

import csv
import json

import openpyxl
import pytest

from allocation_qa.core.business_rules import BusinessRule, RuleType
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.engine import validate_dataset
from allocation_qa.core.errors import RulesConfigError
from allocation_qa.core.exporters import (
    DatasetCSVExporter,
    DatasetXLSXExporter,
    FindingsCSVExporter,
    RulesConfigExporter,
    TXTReporter,
    category_counts,
    severity_counts,
)
from allocation_qa.core.prioritization import PrioritizationConfig


@pytest.fixture
def invalid_result(clean_records):
    clean_records["clients"][0]["PriorityLevel"] = 9
    return validate_dataset(DataSet.from_records(**clean_records))


def _read_csv(path):
    with path.open(encoding="utf-8", newline="") as f:
        return list(csv.reader(f, delimiter=";"))


class TestFindingsCSV:
    def test_columns_and_one_based_rows(self, tmp_path, invalid_result):
        path = tmp_path / "out" / "issues.csv"
        FindingsCSVExporter().export(invalid_result.all_findings(), path)
        rows = _read_csv(path)
        assert rows[0] == FindingsCSVExporter.COLUMNS
        by_type = {r[3]: dict(zip(rows[0], r)) for r in rows[1:]}
        finding = by_type["out_of_range"]
        assert finding["row"] == "1"
        assert finding["record_id"] == "C1"
        assert finding["category"] == "DATA_INTEGRITY"
        assert finding["suggested_value"] == "5"

    def test_empty_findings_writes_header_only(self, tmp_path):
        path = tmp_path / "issues.csv"
        FindingsCSVExporter().export([], path)
        assert len(_read_csv(path)) == 1


class TestTXTReporter:
    def test_invalid_report(self, invalid_result):
        text = TXTReporter().render(invalid_result, source="demo")
        assert "DATA VALIDATION REPORT" in text
        assert "Source: demo" in text
        assert "Status: INVALID" in text
        assert "[DATA_INTEGRITY]" in text
        assert "clients row 1 [C1]" in text

    def test_valid_report(self, tmp_path, clean_dataset):
        path = tmp_path / "report.txt"
        TXTReporter().export(validate_dataset(clean_dataset), path)
        text = path.read_text(encoding="utf-8")
        assert "Status: VALID" in text
        assert "TOP FINDING TYPES" not in text


class TestDatasetExport:
    def test_csv_tables(self, tmp_path, clean_dataset):
        paths = DatasetCSVExporter().export(clean_dataset, tmp_path)
        assert [p.name for p in paths] == ["clients.csv", "workers.csv", "tasks.csv"]
        rows = _read_csv(tmp_path / "workers.csv")
        assert rows[0][0] == "WorkerID"
        assert rows[1][3] == "[1,2,3]"

    def test_csv_bom(self, tmp_path, clean_dataset):
        DatasetCSVExporter().export(clean_dataset, tmp_path, bom=True)
        assert (tmp_path / "clients.csv").read_bytes().startswith(b"\xef\xbb\xbf")

    def test_xlsx_one_sheet_per_entity(self, tmp_path, clean_dataset):
        path = tmp_path / "dataset.xlsx"
        DatasetXLSXExporter().export(clean_dataset, path)
        wb = openpyxl.load_workbook(path)
        assert wb.sheetnames == ["clients", "workers", "tasks"]
        ws = wb["tasks"]
        assert ws.cell(row=1, column=1).value == "TaskID"
        assert ws.cell(row=1, column=1).font.bold
        assert ws.cell(row=3, column=1).value == "T2"


class TestRulesConfig:
    @pytest.fixture
    def rules(self):
        return [
            BusinessRule.create(RuleType.CO_RUN, "pair", {"taskIds": ["T1", "T2"]}),
            BusinessRule.create(RuleType.LOAD_LIMIT, "cap", {"workerGroup": "Dev", "maxSlotsPerPhase": 2}),
            BusinessRule.create(RuleType.CO_RUN, "again", {"taskIds": ["T1", "T2"]}),
        ]

    def test_build_document(self, rules):
        document = RulesConfigExporter().build(
            rules, entities={"clients": 2}, validation_passed=True, prioritization_method="ranking"
        )
        assert document["version"] == "1.0"
        assert document["validationPassed"] is True
        assert document["entities"] == {"clients": 2}
        assert document["metadata"]["totalRules"] == 3
        assert document["metadata"]["ruleTypes"] == ["coRun", "loadLimit"]
        assert document["metadata"]["prioritizationMethod"] == "ranking"
        assert document["prioritization"]["selectedProfile"] == "balanced"

    def test_export_then_load(self, tmp_path, rules):
        exporter = RulesConfigExporter()
        prioritization = PrioritizationConfig()
        prioritization.apply_profile("fairness")
        path = tmp_path / "rules.json"
        exporter.export(exporter.build(rules, prioritization), path)
        loaded_rules, loaded_prio = exporter.load(path)
        assert [r.id for r in loaded_rules] == [r.id for r in rules]
        assert loaded_rules[1].params.worker_group == "Dev"
        assert loaded_prio.selected_profile == "fairness"
        assert loaded_prio.weights == prioritization.weights

    @pytest.mark.parametrize(
        "text",
        [
            "{not json",
            "[]",
            json.dumps({"version": "1.0", "rules": []}),
        ],
    )
    def test_bad_documents(self, text):
        with pytest.raises(RulesConfigError):
            RulesConfigExporter().parse(text)


class TestCounts:
    def test_severity_and_category_counts(self, invalid_result):
        findings = invalid_result.all_findings()
        severities = severity_counts(findings)
        assert severities["error"] == len(invalid_result.errors)
        assert set(severities) == {"error", "warning", "info"}
        assert category_counts(findings)["DATA_INTEGRITY"] >= 1
