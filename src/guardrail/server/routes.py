"""Validation routes: evaluate a change, approve exceptions, inspect effective rules."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from guardrail import __version__
from guardrail.formatters import result_to_dict
from guardrail.rule_engine.approvals import approvals_from_report, update_rules_file
from guardrail.rule_engine.config import (
    parse_rule_set,
    resolve_base,
    resolve_for_file,
    validate_rules_config,
)
from guardrail.rule_engine.directives import generate_prompt_directives
from guardrail.rule_engine.evaluator import evaluate
from guardrail.rule_engine.models import RuleSet


async def _json_body(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _effective_rules(request: Request, file_name: str | None) -> RuleSet:
    state = request.app.state
    if not file_name:
        return resolve_base(state.rules_path)
    return resolve_for_file(
        file_name,
        state.workspace_root,
        rules_path=state.rules_path,
        config=state.config,
    )


async def health(request: Request) -> JSONResponse:
    """GET /health"""
    return JSONResponse({"status": "ok", "version": __version__})


async def validate_change(request: Request) -> JSONResponse:
    """POST /api/validate: evaluate one before/after pair.

    Inline ``rules`` (a policy document) take precedence over the workspace
    rules resolved for ``file_name``.
    """
    body = await _json_body(request)
    if body is None:
        return JSONResponse({"error": "JSON object body required"}, status_code=422)

    original = body.get("original")
    modified = body.get("modified")
    if not isinstance(original, str) or not isinstance(modified, str):
        return JSONResponse(
            {"error": "'original' and 'modified' must be strings"}, status_code=422
        )

    file_name = body.get("file_name")
    files_changed = body.get("files_changed")
    if files_changed is not None and (
        isinstance(files_changed, bool) or not isinstance(files_changed, int)
    ):
        return JSONResponse({"error": "'files_changed' must be an integer"}, status_code=422)

    inline = body.get("rules")
    if inline is not None:
        if not validate_rules_config(inline):
            return JSONResponse({"error": "Invalid rules document"}, status_code=422)
        try:
            rule_set = parse_rule_set(inline)
        except ValidationError as e:
            return JSONResponse({"error": str(e)}, status_code=422)
    else:
        rule_set = _effective_rules(request, file_name)

    result = evaluate(original, modified, rule_set, file_name, files_changed)
    return JSONResponse(result_to_dict(result, file_name))


async def approve(request: Request) -> JSONResponse:
    """POST /api/approve: relax the workspace rules file for approved violations."""
    body = await _json_body(request)
    if body is None:
        return JSONResponse({"error": "JSON object body required"}, status_code=422)

    approved = approvals_from_report(body)
    state = request.app.state
    with state.approve_lock:
        mutated, edits = update_rules_file(state.rules_path, approved)
    return JSONResponse(
        {"mutated": mutated, "edits": [e.model_dump(mode="json") for e in edits]}
    )


async def list_rules(request: Request) -> JSONResponse:
    """GET /api/rules?file=path: the effective rule set for a file."""
    rule_set = _effective_rules(request, request.query_params.get("file"))
    document = rule_set.to_document()
    return JSONResponse(
        {
            "rules": document["rules"],
            "count": len(rule_set.rules),
            "global": document["global"],
        }
    )


async def directives(request: Request) -> JSONResponse:
    """POST /api/directives: prompt directives for a file's effective rules."""
    body = await _json_body(request) or {}
    file_name = body.get("file_name")
    rule_set = _effective_rules(request, file_name if isinstance(file_name, str) else None)
    return JSONResponse({"directives": generate_prompt_directives(rule_set)})


routes = [
    Route("/health", health),
    Route("/api/validate", validate_change, methods=["POST"]),
    Route("/api/approve", approve, methods=["POST"]),
    Route("/api/rules", list_rules),
    Route("/api/directives", directives, methods=["POST"]),
]
