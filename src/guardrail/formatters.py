"""Render ValidationResults as text, JSON or SARIF 2.1.0."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from guardrail import __version__
from guardrail.rule_engine.models import DiffKind, Severity, ValidationResult, Violation

SARIF_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
)
TOOL_NAME = "llm-guardrail"
DIFF_PREVIEW_LINES = 10


class OutputFormat(StrEnum):
    TEXT = "text"
    JSON = "json"
    SARIF = "sarif"


@dataclass
class FileResult:
    file_name: str | None
    result: ValidationResult


_COLORS = {
    "reset": "\x1b[0m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "gray": "\x1b[90m",
    "bold": "\x1b[1m",
}


def _colorize(text: str, color: str, use_colors: bool) -> str:
    return f"{_COLORS[color]}{text}{_COLORS['reset']}" if use_colors else text


def _line_info(violation: Violation, use_colors: bool) -> str:
    if not violation.line_numbers:
        return ""
    shown = ", ".join(str(n) for n in violation.line_numbers[:3])
    more = "..." if len(violation.line_numbers) > 3 else ""
    return _colorize(f" (lines {shown}{more})", "gray", use_colors)


def format_text(
    result: ValidationResult,
    file_name: str | None = None,
    verbose: bool = False,
    colors: bool = True,
) -> str:
    lines: list[str] = []

    if file_name:
        lines.append(_colorize(f"\nFile: {file_name}", "bold", colors))

    status = (
        _colorize("✓ PASSED", "green", colors)
        if result.valid
        else _colorize("✗ FAILED", "red", colors)
    )
    lines.append(f"Status: {status}")
    lines.append(f"Lines changed: +{result.diff.lines_added} / -{result.diff.lines_removed}")
    if result.requires_approval:
        lines.append("Approval required: yes")

    if result.violations:
        lines.append("")
        lines.append(_colorize(f"Violations ({len(result.violations)}):", "bold", colors))
        for violation in result.violations:
            severity = (
                _colorize("ERROR", "red", colors)
                if violation.severity == Severity.ERROR
                else _colorize("WARNING", "yellow", colors)
            )
            lines.append(
                f"  {severity} [{violation.rule_kind}] {violation.description}"
                f"{_line_info(violation, colors)}"
            )
            if violation.details and verbose:
                lines.append(_colorize(f"    → {violation.details}", "gray", colors))

    if verbose and result.diff.has_changes:
        lines.append("")
        lines.append(_colorize("Diff:", "bold", colors))
        for change in result.diff.changes:
            if change.kind == DiffKind.UNCHANGED:
                continue
            change_lines = [line for line in change.text.splitlines() if line]
            prefix, color = ("+", "green") if change.kind == DiffKind.ADDED else ("-", "red")
            for line in change_lines[:DIFF_PREVIEW_LINES]:
                lines.append(_colorize(f"{prefix} {line}", color, colors))
            if len(change_lines) > DIFF_PREVIEW_LINES:
                remaining = len(change_lines) - DIFF_PREVIEW_LINES
                lines.append(_colorize(f"  ... ({remaining} more lines)", "gray", colors))

    lines.append("")
    return "\n".join(lines)


def _violation_dict(violation: Violation) -> dict[str, object]:
    return {
        "ruleType": str(violation.rule_kind),
        "severity": str(violation.severity),
        "description": violation.description,
        "details": violation.details,
        "lineNumbers": violation.line_numbers,
    }


def result_to_dict(result: ValidationResult, file_name: str | None = None) -> dict[str, object]:
    output: dict[str, object] = {"valid": result.valid}
    if file_name:
        output["fileName"] = file_name
    output["summary"] = {
        "linesAdded": result.diff.lines_added,
        "linesRemoved": result.diff.lines_removed,
        "totalLinesChanged": result.diff.total_lines_changed,
        "violationCount": len(result.violations),
        "errorCount": result.error_count,
        "warningCount": result.warning_count,
    }
    output["violations"] = [_violation_dict(v) for v in result.violations]
    output["requiresApproval"] = result.requires_approval
    return output


def format_json(result: ValidationResult, file_name: str | None = None) -> str:
    return json.dumps(result_to_dict(result, file_name), indent=2)


def _sarif_rules(violations: list[Violation]) -> list[dict[str, object]]:
    seen: list[str] = []
    for violation in violations:
        if violation.rule_kind not in seen:
            seen.append(str(violation.rule_kind))
    return [
        {
            "id": kind,
            "name": f"{kind.capitalize()} Rule",
            "shortDescription": {"text": f"LLM Guardrail {kind} rule"},
        }
        for kind in seen
    ]


def _sarif_result(violation: Violation, file_name: str | None) -> dict[str, object]:
    start_line = violation.line_numbers[0] if violation.line_numbers else 1
    locations = []
    if file_name:
        locations.append(
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": file_name},
                    "region": {"startLine": start_line},
                }
            }
        )
    return {
        "ruleId": str(violation.rule_kind),
        "level": "error" if violation.severity == Severity.ERROR else "warning",
        "message": {"text": violation.details or violation.description},
        "locations": locations,
    }


def format_sarif(file_results: Sequence[FileResult]) -> str:
    all_violations = [v for fr in file_results for v in fr.result.violations]
    sarif = {
        "$schema": SARIF_SCHEMA,
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "version": __version__,
                        "rules": _sarif_rules(all_violations),
                    }
                },
                "results": [
                    _sarif_result(v, fr.file_name)
                    for fr in file_results
                    for v in fr.result.violations
                ],
            }
        ],
    }
    return json.dumps(sarif, indent=2)


def format_result(
    result: ValidationResult,
    fmt: OutputFormat | str,
    file_name: str | None = None,
    verbose: bool = False,
    colors: bool = True,
) -> str:
    """Format a single file's result."""
    match OutputFormat(fmt):
        case OutputFormat.JSON:
            return format_json(result, file_name)
        case OutputFormat.SARIF:
            return format_sarif([FileResult(file_name, result)])
        case OutputFormat.TEXT:
            return format_text(result, file_name, verbose=verbose, colors=colors)


def format_report(
    file_results: Sequence[FileResult],
    fmt: OutputFormat | str,
    verbose: bool = False,
    colors: bool = True,
) -> str:
    """Format the results of a multi-file check."""
    valid = all(fr.result.valid for fr in file_results)
    match OutputFormat(fmt):
        case OutputFormat.JSON:
            return json.dumps(
                {
                    "valid": valid,
                    "filesChecked": len(file_results),
                    "results": [
                        {
                            "fileName": fr.file_name,
                            "valid": fr.result.valid,
                            "requiresApproval": fr.result.requires_approval,
                            "violations": [_violation_dict(v) for v in fr.result.violations],
                        }
                        for fr in file_results
                    ],
                },
                indent=2,
            )
        case OutputFormat.SARIF:
            return format_sarif(file_results)
        case OutputFormat.TEXT:
            rule = "=" * 40
            lines = ["", _colorize("LLM Guardrail Check Results", "bold", colors), rule]
            for fr in file_results:
                lines.append(format_text(fr.result, fr.file_name, verbose=verbose, colors=colors))
            total = sum(len(fr.result.violations) for fr in file_results)
            errors = sum(fr.result.error_count for fr in file_results)
            status = (
                _colorize("PASSED", "green", colors) if valid else _colorize("FAILED", "red", colors)
            )
            lines.append(rule)
            lines.append(f"Files checked: {len(file_results)}")
            lines.append(
                f"Total violations: {total} ({errors} errors, {total - errors} warnings)"
            )
            lines.append(f"Status: {status}")
            lines.append("")
            return "\n".join(lines)
