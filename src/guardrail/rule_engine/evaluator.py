"""Rule evaluation: diff once, run every rule's checker in declaration order."""

from __future__ import annotations

import logging
import re
from typing import assert_never

from guardrail.rule_engine.diff import compute_diff
from guardrail.rule_engine.heuristics import (
    COMMENT_PATTERNS,
    ERROR_HANDLING_PATTERNS,
    count_matches,
    extract_function_names,
    extract_imports,
    extract_variable_names,
    file_matches,
    function_declaration_pattern,
)
from guardrail.rule_engine.models import (
    ContentRule,
    DependencyRule,
    DiffResult,
    RefactorAction,
    RefactorRule,
    RuleKind,
    RuleSet,
    ScopeRule,
    Severity,
    ThresholdRule,
    ValidationResult,
    Violation,
    parse_refactor_action,
)

logger = logging.getLogger(__name__)

USE_EXISTING_DIRECTIVES = frozenset({"use_existing_only", "use_existing_patterns_only"})
MAX_NEW_CONSTRUCTS = 3


def _check_scope(
    rule: ScopeRule,
    original: str,
    diff: DiffResult,
    file_name: str | None,
) -> list[Violation]:
    violations: list[Violation] = []
    changed_lines = diff.changed_line_numbers()

    if rule.files and file_name and not file_matches(file_name, rule.files):
        violations.append(
            Violation(
                rule=rule,
                rule_kind=RuleKind.SCOPE,
                description="File modification outside allowed scope",
                severity=Severity.ERROR,
                details=(
                    f'File "{file_name}" is not in the allowed files list: {", ".join(rule.files)}'
                ),
                line_numbers=changed_lines,
            )
        )

    if rule.functions and diff.has_changes:
        declared = any(
            function_declaration_pattern(fn).search(original) for fn in rule.functions
        )
        if not declared:
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.SCOPE,
                    description="Changes outside function scope",
                    severity=Severity.WARNING,
                    details=f"Expected changes only in functions: {', '.join(rule.functions)}",
                    line_numbers=changed_lines,
                )
            )

    if rule.pattern and diff.has_changes:
        try:
            found = re.search(rule.pattern, original) is not None
        except re.error as e:
            logger.warning(f"Skipping invalid scope pattern {rule.pattern!r}: {e}")
            found = True
        if not found:
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.SCOPE,
                    description="Pattern not found in original code",
                    severity=Severity.WARNING,
                    details=f'The pattern "{rule.pattern}" was not found in the original code',
                    line_numbers=changed_lines,
                )
            )

    return violations


def _refactor_violation(
    rule: RefactorRule, description: str, details: str, lines: list[int]
) -> Violation:
    return Violation(
        rule=rule,
        rule_kind=RuleKind.REFACTOR,
        description=description,
        severity=Severity.WARNING,
        details=details,
        line_numbers=lines,
    )


def _check_refactor(
    rule: RefactorRule,
    original: str,
    generated: str,
    diff: DiffResult,
) -> list[Violation]:
    violations: list[Violation] = []
    changed_lines = diff.changed_line_numbers()
    added = diff.added_text

    for tag in rule.forbid:
        action = parse_refactor_action(tag)
        if action is None:
            logger.debug(f"Ignoring unknown refactor action {tag!r}")
            continue

        if action == RefactorAction.VARIABLE_RENAMES:
            # Heuristic only: unrelated edits that drop one name and add another also trip it
            removed_vars = extract_variable_names(diff.removed_text)
            added_vars = extract_variable_names(added)
            gone = [v for v in removed_vars if v not in added_vars]
            new = [v for v in added_vars if v not in removed_vars]
            if gone and new:
                violations.append(
                    _refactor_violation(
                        rule,
                        "Possible variable rename detected",
                        f"Variables removed: {', '.join(gone)}. Variables added: {', '.join(new)}",
                        changed_lines,
                    )
                )

        elif action == RefactorAction.ADD_ERROR_HANDLING:
            if any(p.search(added) and not p.search(original) for p in ERROR_HANDLING_PATTERNS):
                violations.append(
                    _refactor_violation(
                        rule,
                        "Unsolicited error handling added",
                        "New error handling code was added without being requested",
                        changed_lines,
                    )
                )

        elif action == RefactorAction.ADD_COMMENTS:
            if any(
                count_matches(p, generated) > count_matches(p, original) for p in COMMENT_PATTERNS
            ):
                violations.append(
                    _refactor_violation(
                        rule,
                        "Unsolicited comments added",
                        "New comments were added without being requested",
                        changed_lines,
                    )
                )

        elif action == RefactorAction.CHANGE_FORMATTING:
            same_tokens = " ".join(original.split()) == " ".join(generated.split())
            if same_tokens and original != generated:
                violations.append(
                    _refactor_violation(
                        rule,
                        "Formatting-only changes detected",
                        "Code was reformatted without changing functionality",
                        changed_lines,
                    )
                )

        else:
            assert_never(action)

    return violations


def _check_dependencies(rule: DependencyRule, diff: DiffResult) -> list[Violation]:
    violations: list[Violation] = []
    changed_lines = diff.changed_line_numbers()
    imports = extract_imports(diff.added_text)

    def listed(name: str, entries: list[str]) -> bool:
        return any(name == entry or name.startswith(entry + "/") for entry in entries)

    if rule.allowed:
        for name in imports:
            if listed(name, rule.allowed):
                continue
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.DEPENDENCY,
                    description="Unauthorized dependency added",
                    severity=Severity.ERROR,
                    details=(
                        f'The dependency "{name}" is not in the allowed list: '
                        f"{', '.join(rule.allowed)}"
                    ),
                    line_numbers=changed_lines,
                )
            )

    if rule.forbidden:
        for name in imports:
            if not listed(name, rule.forbidden):
                continue
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.DEPENDENCY,
                    description="Forbidden dependency added",
                    severity=Severity.ERROR,
                    details=f'The dependency "{name}" is in the forbidden list',
                    line_numbers=changed_lines,
                )
            )

    return violations


def _check_content(
    rule: ContentRule,
    original: str,
    generated: str,
    diff: DiffResult,
) -> list[Violation]:
    violations: list[Violation] = []
    changed_lines = diff.changed_line_numbers()
    added = diff.added_text

    for literal in rule.forbid or []:
        if literal in added and literal not in original:
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.CONTENT,
                    description="Forbidden content added",
                    severity=Severity.ERROR,
                    details=f'The content "{literal}" was added but is forbidden',
                    line_numbers=changed_lines,
                )
            )

    for pattern in rule.patterns_deny:
        try:
            regex = re.compile(pattern)
        except re.error as e:
            logger.debug(f"Skipping invalid deny pattern {pattern!r}: {e}")
            continue
        if count_matches(regex, generated) > count_matches(regex, original):
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.CONTENT,
                    description="Forbidden pattern detected",
                    severity=Severity.ERROR,
                    details=f'The pattern "{pattern}" was found in added content',
                    line_numbers=changed_lines,
                )
            )

    if rule.require in USE_EXISTING_DIRECTIVES:
        existing = set(extract_function_names(original))
        introduced = [name for name in extract_function_names(generated) if name not in existing]
        if len(introduced) > MAX_NEW_CONSTRUCTS:
            shown = ", ".join(introduced[:5]) + ("..." if len(introduced) > 5 else "")
            violations.append(
                Violation(
                    rule=rule,
                    rule_kind=RuleKind.CONTENT,
                    description="Too many new constructs introduced",
                    severity=Severity.WARNING,
                    details=f"{len(introduced)} new functions/methods were introduced: {shown}",
                    line_numbers=changed_lines,
                )
            )

    return violations


def _check_threshold(
    rule: ThresholdRule,
    diff: DiffResult,
    files_changed: int | None,
) -> list[Violation]:
    violations: list[Violation] = []

    if rule.max_lines_changed is not None and diff.total_lines_changed > rule.max_lines_changed:
        violations.append(
            Violation(
                rule=rule,
                rule_kind=RuleKind.THRESHOLD,
                description="Too many lines changed",
                severity=Severity.ERROR,
                details=(
                    f"Changed {diff.total_lines_changed} lines, "
                    f"maximum allowed is {rule.max_lines_changed}"
                ),
                line_numbers=diff.changed_line_numbers(),
            )
        )

    if (
        rule.max_files_changed is not None
        and files_changed is not None
        and files_changed > rule.max_files_changed
    ):
        violations.append(
            Violation(
                rule=rule,
                rule_kind=RuleKind.THRESHOLD,
                description="Too many files changed",
                severity=Severity.ERROR,
                details=(
                    f"Changed {files_changed} files, maximum allowed is {rule.max_files_changed}"
                ),
                line_numbers=[1],
            )
        )

    return violations


def evaluate(
    original: str,
    modified: str,
    rule_set: RuleSet,
    file_name: str | None = None,
    files_changed: int | None = None,
) -> ValidationResult:
    """Validate a proposed change against every rule in *rule_set*.

    *files_changed* is the size of the batch this file belongs to (for
    ``max_files_changed``); the evaluator has no way to know it on its own.
    The rule set is only read, never modified.
    """
    diff = compute_diff(original, modified)
    violations: list[Violation] = []
    requires_approval = rule_set.global_settings.require_approval_for_all

    for rule in rule_set.rules:
        match rule:
            case ScopeRule():
                violations.extend(_check_scope(rule, original, diff, file_name))
            case RefactorRule():
                violations.extend(_check_refactor(rule, original, modified, diff))
            case DependencyRule():
                violations.extend(_check_dependencies(rule, diff))
            case ContentRule():
                violations.extend(_check_content(rule, original, modified, diff))
            case ThresholdRule():
                violations.extend(_check_threshold(rule, diff, files_changed))
                if rule.require_approval:
                    requires_approval = True
            case _:
                assert_never(rule)

    return ValidationResult(
        valid=not any(v.severity == Severity.ERROR for v in violations),
        violations=violations,
        diff=diff,
        requires_approval=requires_approval,
    )
