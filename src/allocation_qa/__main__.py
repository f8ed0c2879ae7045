"""Entry point: python -m allocation_qa"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

_log = logging.getLogger("allocation_qa")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="allocation_qa",
        description="Validate client/worker/task datasets and their business rules",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    val = sub.add_parser("validate", help="Validate three CSV/XLSX tables")
    val.add_argument("clients", type=Path)
    val.add_argument("workers", type=Path)
    val.add_argument("tasks", type=Path)
    val.add_argument("--rules", type=Path, help="rules.json to check against the data")
    val.add_argument("--config", type=Path, help="YAML overlay on the default config")
    val.add_argument("--report", type=Path, help="Write a text report")
    val.add_argument("--issues", type=Path, help="Write findings as ;-delimited CSV")
    val.add_argument("--output", type=Path, help="Write the canonicalized tables as CSV here")
    val.add_argument("--xlsx", type=Path, help="Write the canonicalized tables to one workbook")
    val.add_argument(
        "--normalize", action="store_true",
        help="Canonicalize phase lists first, then validate without rewriting",
    )
    val.add_argument(
        "--apply-fixes", action="store_true",
        help="Apply the proposed fixes and re-validate before writing outputs",
    )
    val.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    srv = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    return parser


def _validate(args: argparse.Namespace) -> int:
    from allocation_qa.core.config import load_config
    from allocation_qa.core.dataset import load_dataset
    from allocation_qa.core.engine import DatasetValidator, validation_suggestions
    from allocation_qa.core.exporters import (
        DatasetCSVExporter,
        DatasetXLSXExporter,
        FindingsCSVExporter,
        RulesConfigExporter,
        TXTReporter,
    )
    from allocation_qa.core.history import CommandHistory
    from allocation_qa.core.normalize import normalize
    from allocation_qa.core.rule_validation import BusinessRuleValidator

    overrides = {"lists": {"rewrite_preferred_phases": False}} if args.normalize else None
    config = load_config(args.config, overrides=overrides)
    dataset = load_dataset(args.clients, args.workers, args.tasks)
    if args.normalize:
        dataset = normalize(dataset)
    validator = DatasetValidator(config)
    result = validator.validate(dataset)

    if args.apply_fixes and result.fixes:
        history = CommandHistory(dataset)
        cmd = history.apply(result.fixes)
        print(f"Applied: {cmd.description}")
        result = validator.validate(dataset)

    summary = result.summary
    print(
        f"{'VALID' if result.is_valid else 'INVALID'}: "
        f"{summary.total_errors} errors ({summary.critical_errors} critical), "
        f"{summary.total_warnings} warnings, {len(result.fixes)} fixes"
    )
    for finding in result.errors:
        print(f"  [{finding.type}] {finding.message}")
    for hint in validation_suggestions(dataset):
        print(f"  hint: {hint}")

    ok = result.is_valid
    if args.rules:
        rules, _prioritization = RulesConfigExporter().load(args.rules)
        rule_result = BusinessRuleValidator(config).validate_rules(rules, dataset)
        print(
            f"Rules: {len(rule_result.applicable_rules)}/{len(rules)} applicable, "
            f"{len(rule_result.errors)} errors, {len(rule_result.warnings)} warnings, "
            f"{len(rule_result.conflicting_rules)} conflicts"
        )
        for err in rule_result.errors:
            print(f"  [{err.type}] {err.rule_name}: {err.message}")
        ok = ok and rule_result.is_valid

    source = ", ".join(p.name for p in (args.clients, args.workers, args.tasks))
    if args.report:
        TXTReporter().export(result, args.report, source=source)
        _log.info("Report written to %s", args.report)
    if args.issues:
        FindingsCSVExporter().export(result.all_findings(), args.issues)
        _log.info("Findings written to %s", args.issues)
    if args.output:
        DatasetCSVExporter().export(dataset, args.output)
        _log.info("Tables written to %s", args.output)
    if args.xlsx:
        DatasetXLSXExporter().export(dataset, args.xlsx)
        _log.info("Workbook written to %s", args.xlsx)

    return 0 if ok else 1


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    print(f"Allocation QA: starting server on {args.host}:{args.port}")
    uvicorn.run("allocation_qa.web.app:app", host=args.host, port=args.port, log_level="info")
    return 0


def main(argv: list[str] | None = None) -> int:
    from allocation_qa.core.errors import AllocationQAError

    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "serve":
            return _serve(args)
        return _validate(args)
    except (AllocationQAError, OSError) as exc:
        _log.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
