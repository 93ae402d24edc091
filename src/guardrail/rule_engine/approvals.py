"""Relax a RuleSet so that violations a human approved stop being reported.

Only dependency and content violations can be turned into exceptions; the
offending value is recovered from the violation's ``details`` message.
Callers must serialise calls per policy file: two concurrent approvals on the
same file would otherwise lose one of the updates.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from guardrail.rule_engine.config import parse_rule_set, validate_rules_config
from guardrail.rule_engine.models import (
    ApprovedViolation,
    ContentRule,
    DependencyRule,
    RuleEdit,
    RuleKind,
    RuleSet,
    Violation,
)

logger = logging.getLogger(__name__)

_DEPENDENCY_RE = re.compile(r'The dependency "([^"]+)"')
_CONTENT_RE = re.compile(r'The content "([^"]+)"')
_PATTERN_RE = re.compile(r'The pattern "([^"]+)"')

_DEPENDENCY_TYPES = frozenset({"dependencies", "dependency"})


def _dependency_name(details: str) -> str | None:
    match = _DEPENDENCY_RE.search(details)
    return match.group(1) if match else None


def _content_value(details: str) -> str | None:
    match = _CONTENT_RE.search(details) or _PATTERN_RE.search(details)
    return match.group(1) if match else None


def _allow_dependency(allowed: list[Any], forbidden: list[Any] | None, name: str) -> list[RuleEdit]:
    edits: list[RuleEdit] = []
    if name not in allowed:
        allowed.append(name)
        edits.append(RuleEdit(rule_kind=RuleKind.DEPENDENCY, action="added_to_allowed", value=name))
    if forbidden and name in forbidden:
        forbidden.remove(name)
        edits.append(
            RuleEdit(rule_kind=RuleKind.DEPENDENCY, action="removed_from_forbidden", value=name)
        )
    return edits


def _allow_content(forbid: list[Any] | None, deny: list[Any] | None, value: str) -> list[RuleEdit]:
    edits: list[RuleEdit] = []
    if forbid and value in forbid:
        forbid.remove(value)
        edits.append(RuleEdit(rule_kind=RuleKind.CONTENT, action="removed_from_forbid", value=value))
    if deny and value in deny:
        deny.remove(value)
        edits.append(RuleEdit(rule_kind=RuleKind.CONTENT, action="removed_from_deny", value=value))
    return edits


def _approved_values(
    violations: Iterable[Violation | ApprovedViolation],
) -> Iterator[tuple[RuleKind, str]]:
    """The dependency names and content values carried by approved violations."""
    for violation in violations:
        if not violation.details:
            continue
        if violation.rule_kind == RuleKind.DEPENDENCY:
            value = _dependency_name(violation.details)
        elif violation.rule_kind == RuleKind.CONTENT:
            value = _content_value(violation.details)
        else:
            continue
        if value is not None:
            yield violation.rule_kind, value


def apply_approved_exceptions(
    rule_set: RuleSet,
    violations: Iterable[Violation | ApprovedViolation],
) -> tuple[bool, list[RuleEdit]]:
    """Mutate *rule_set* in place so the approved violations no longer fire.

    Every rule of the violation's kind is relaxed, not just the one that
    produced it. Returns ``(mutated, edits)``; ``mutated`` is False when none of
    the values could be found, which is not an error.
    """
    edits: list[RuleEdit] = []

    for kind, value in _approved_values(violations):
        for rule in rule_set.rules:
            if kind == RuleKind.DEPENDENCY and isinstance(rule, DependencyRule):
                if rule.allowed is None:
                    rule.allowed = []
                edits.extend(_allow_dependency(rule.allowed, rule.forbidden, value))
            elif kind == RuleKind.CONTENT and isinstance(rule, ContentRule):
                deny = rule.patterns.deny if rule.patterns is not None else None
                edits.extend(_allow_content(rule.forbid, deny, value))

    return bool(edits), edits


def _apply_to_document(
    data: dict[str, Any],
    violations: Iterable[Violation | ApprovedViolation],
) -> list[RuleEdit]:
    """Same edits as apply_approved_exceptions, made on the raw policy document.

    Keys the models do not know about are left where they are, and no defaults
    are written back.
    """
    edits: list[RuleEdit] = []

    for kind, value in _approved_values(violations):
        for rule in data["rules"]:
            rule_type = rule.get("type")
            if kind == RuleKind.DEPENDENCY and rule_type in _DEPENDENCY_TYPES:
                if not isinstance(rule.get("allowed"), list):
                    rule["allowed"] = []
                forbidden = rule.get("forbidden")
                edits.extend(
                    _allow_dependency(
                        rule["allowed"], forbidden if isinstance(forbidden, list) else None, value
                    )
                )
            elif kind == RuleKind.CONTENT and rule_type == RuleKind.CONTENT:
                forbid = rule.get("forbid")
                patterns = rule.get("patterns")
                deny = patterns.get("deny") if isinstance(patterns, dict) else None
                edits.extend(
                    _allow_content(
                        forbid if isinstance(forbid, list) else None,
                        deny if isinstance(deny, list) else None,
                        value,
                    )
                )

    return edits


def approvals_from_report(report: dict[str, Any]) -> list[ApprovedViolation]:
    """Read violations back out of a ``json`` report (single-file or ``check`` shape)."""
    entries: list[Any] = list(report.get("violations") or [])
    for file_result in report.get("results") or []:
        if isinstance(file_result, dict):
            entries.extend(file_result.get("violations") or [])

    approved: list[ApprovedViolation] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        rule_type = entry.get("ruleType")
        if rule_type == "dependencies":
            rule_type = RuleKind.DEPENDENCY
        try:
            approved.append(ApprovedViolation(rule_kind=rule_type, details=entry.get("details")))
        except ValidationError:
            logger.debug(f"Ignoring report entry with unknown rule type {rule_type!r}")
    return approved


def update_rules_file(
    path: Path | str,
    violations: Iterable[Violation | ApprovedViolation],
) -> tuple[bool, list[RuleEdit]]:
    """Apply approved exceptions to a rules file and write it back if anything changed.

    The loaded document itself is edited and dumped, so keys the models do not
    know about survive and no defaults are added. YAML comments are lost.
    """
    path = Path(path)
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Cannot update rules file {path}: {e}")
        return False, []

    if not validate_rules_config(data):
        logger.warning(f"Cannot update rules file {path}: invalid rules config")
        return False, []

    try:
        parse_rule_set(data)
    except ValidationError as e:
        logger.warning(f"Cannot update rules file {path}: {e}")
        return False, []

    edits = _apply_to_document(data, violations)
    if not edits:
        return False, []

    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True, width=10_000),
        encoding="utf-8",
    )
    for edit in edits:
        logger.info(f"Rule update in {path}: {edit.rule_kind} {edit.action} {edit.value!r}")
    return True, edits
