"""Allocation QA Web API: FastAPI backend.

Endpoints (JSON in, JSON out; datasets as ``{"clients": [...], "workers": [...], "tasks": [...]}``):
  GET  /health
  POST /api/validate         → validation result + canonicalized dataset
  POST /api/rules/validate   → rule validation result
  POST /api/fixes/apply      → fixed dataset + fresh validation result
  POST /api/rules/suggest    → data-driven rule suggestions (cached)
  POST /api/export/rules     → rules.json document

Run with:
  uvicorn allocation_qa.web.app:app --reload --port 8000
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from allocation_qa.core.business_rules import BusinessRule, rules_from_dicts
from allocation_qa.core.cache import SuggestionCache
from allocation_qa.core.commands import apply_fixes
from allocation_qa.core.config import deep_merge, load_config
from allocation_qa.core.dataset import DataSet
from allocation_qa.core.engine import DatasetValidator, validation_suggestions
from allocation_qa.core.errors import AllocationQAError
from allocation_qa.core.exporters import RulesConfigExporter
from allocation_qa.core.models import ValidationFix
from allocation_qa.core.prioritization import PrioritizationConfig
from allocation_qa.core.rule_validation import BusinessRuleValidator
from allocation_qa.core.suggestions import cached_suggestions, data_summary

# ---------------------------------------------------------------------------
# Configuration via environment variables
# ---------------------------------------------------------------------------

_ENV = os.environ.get("ALLOCATION_QA_ENV", "dev")

# CORS origins: "*" = all, otherwise a comma-separated list
_CORS_ORIGINS_RAW = os.environ.get("ALLOCATION_QA_CORS_ORIGINS", "*")
_CORS_ORIGINS: list[str] = (
    ["*"]
    if _CORS_ORIGINS_RAW in ("*", "")
    else [o.strip() for o in _CORS_ORIGINS_RAW.split(",") if o.strip()]
)
# allow_credentials is incompatible with allow_origins=["*"]
_CORS_ALLOW_CREDENTIALS = "*" not in _CORS_ORIGINS

# Suggestion cache: in memory unless a file path is given
_cache_path_raw = os.environ.get("ALLOCATION_QA_SUGGESTION_CACHE", "")
_suggestion_cache = SuggestionCache(path=Path(_cache_path_raw) if _cache_path_raw else None)

_logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(_app: FastAPI):
    _logger.info("Allocation QA started, env=%s cors=%s", _ENV, _CORS_ORIGINS_RAW)
    yield


app = FastAPI(
    title="Allocation QA API",
    description="Validation and business-rule checks for client/worker/task datasets",
    version="0.1.0",
    lifespan=_lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AllocationQAError)
async def _allocation_qa_error(_request: Request, exc: AllocationQAError) -> JSONResponse:
    _logger.info("Rejected request: %s", exc)
    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.args[0],
            "errorType": exc.error_type,
            "source": exc.source,
            "suggestedAction": exc.suggested_action,
        },
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    from allocation_qa import __version__
    return {"status": "ok", "version": __version__}


# ---------------------------------------------------------------------------
# Dataset validation
# ---------------------------------------------------------------------------


@app.post("/api/validate")
async def validate(request: Request):
    """Validate a dataset; the response carries the canonicalized dataset too."""
    body = await _read_body(request)
    dataset = _dataset_from(body.get("dataset", body))
    validator = DatasetValidator(_config_for(body))
    result = validator.validate(dataset)
    return {
        **result.to_dict(),
        "dataset": dataset.to_dict(),
        "suggestions": validation_suggestions(dataset),
    }


@app.post("/api/fixes/apply")
async def apply_fix_list(request: Request):
    """Apply fixes to a copy of the dataset and re-validate it."""
    body = await _read_body(request)
    dataset = _dataset_from(body.get("dataset"))
    try:
        fixes = [ValidationFix.from_dict(f) for f in body.get("fixes") or []]
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid fix: {exc}")

    fixed = apply_fixes(dataset, fixes)
    result = DatasetValidator(_config_for(body)).validate(fixed)
    return {"dataset": fixed.to_dict(), "result": result.to_dict()}


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------


@app.post("/api/rules/validate")
async def validate_rules(request: Request):
    body = await _read_body(request)
    dataset = _dataset_from(body.get("dataset"))
    rules = _rules_from(body.get("rules"))
    result = BusinessRuleValidator(_config_for(body)).validate_rules(rules, dataset)
    return result.to_dict()


@app.post("/api/rules/suggest")
async def suggest(request: Request):
    body = await _read_body(request)
    dataset = _dataset_from(body.get("dataset", body))
    suggestions = cached_suggestions(dataset, _suggestion_cache)
    return {
        "suggestions": [s.to_dict() for s in suggestions],
        "summary": data_summary(dataset),
    }


@app.post("/api/export/rules")
async def export_rules(request: Request):
    """Build the rules.json document.

    When a dataset is supplied, ``validationPassed`` reflects a rule
    validation pass against it; otherwise it is false.
    """
    body = await _read_body(request)
    rules = _rules_from(body.get("rules"))
    try:
        prioritization = PrioritizationConfig.from_dict(body.get("prioritization") or {})
    except (TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid prioritization: {exc}")

    entities = None
    passed = False
    if body.get("dataset") is not None:
        dataset = _dataset_from(body["dataset"])
        entities = dataset.counts()
        passed = BusinessRuleValidator(_config_for(body)).validate_rules(rules, dataset).is_valid

    return RulesConfigExporter().build(
        rules,
        prioritization=prioritization,
        entities=entities,
        validation_passed=passed,
        prioritization_method=body.get("prioritizationMethod"),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid JSON body: {exc}")
    if not isinstance(body, dict):
        raise HTTPException(status_code=422, detail="Request body must be a JSON object")
    return body


def _dataset_from(payload: Any) -> DataSet:
    if payload is None:
        return DataSet()
    if not isinstance(payload, dict):
        raise HTTPException(status_code=422, detail="Dataset must be a JSON object")
    for key in ("clients", "workers", "tasks"):
        records = payload.get(key)
        if records is not None and not (
            isinstance(records, list) and all(isinstance(r, dict) for r in records)
        ):
            raise HTTPException(status_code=422, detail=f"{key} must be a list of objects")
    return DataSet.from_dict(payload)


def _rules_from(payload: Any) -> list[BusinessRule]:
    if payload is None:
        return []
    if not isinstance(payload, list) or not all(isinstance(r, dict) for r in payload):
        raise HTTPException(status_code=422, detail="rules must be a list of objects")
    try:
        return rules_from_dicts(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid rule: {exc}")


def _config_for(body: dict) -> dict:
    """Server config (defaults + ALLOCATION_QA_CONFIG) with request overrides."""
    overrides = body.get("config")
    if overrides is not None and not isinstance(overrides, dict):
        raise HTTPException(status_code=422, detail="config must be a JSON object")
    config = load_config()
    return deep_merge(config, overrides) if overrides else config
