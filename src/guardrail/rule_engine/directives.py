"""Render a RuleSet as numbered instructions for a code-generation prompt."""

from __future__ import annotations

from typing import assert_never

from guardrail.rule_engine.models import (
    ContentRule,
    DependencyRule,
    RefactorRule,
    RuleSet,
    ScopeRule,
    ThresholdRule,
)

HEADER = "=== IMPORTANT: CODE GENERATION RULES ==="
FOOTER = "=== END OF RULES ==="


def _title(number: int, label: str, description: str | None) -> str:
    suffix = f" - {description}" if description else ""
    return f"{number}. {label}{suffix}:"


def generate_prompt_directives(rule_set: RuleSet) -> str:
    if not rule_set.rules:
        return ""

    lines = [
        HEADER,
        "You MUST follow these rules strictly when generating or modifying code:",
        "",
    ]

    for number, rule in enumerate(rule_set.rules, 1):
        match rule:
            case ScopeRule():
                lines.append(_title(number, "SCOPE RESTRICTION", rule.description))
                if rule.files:
                    lines.append(f"   - Only modify these files: {', '.join(rule.files)}")
                if rule.pattern:
                    lines.append(f'   - Only modify code matching pattern: "{rule.pattern}"')
                if rule.functions:
                    lines.append(f"   - Only modify these functions: {', '.join(rule.functions)}")
                lines.append("   - Do NOT modify any code outside the specified scope")
            case RefactorRule():
                lines.append(_title(number, "REFACTORING RESTRICTIONS", rule.description))
                if rule.forbid:
                    lines.append(
                        f"   - Do NOT perform these refactoring actions: {', '.join(rule.forbid)}"
                    )
                lines.append("   - Keep existing code structure unless explicitly requested")
            case DependencyRule():
                lines.append(_title(number, "DEPENDENCY RULES", rule.description))
                if rule.allowed:
                    lines.append(f"   - Only use these dependencies: {', '.join(rule.allowed)}")
                if rule.forbidden:
                    lines.append(f"   - Do NOT use these dependencies: {', '.join(rule.forbidden)}")
                lines.append(
                    "   - Do NOT add any new import statements for packages not in the allowed list"
                )
            case ContentRule():
                lines.append(_title(number, "CONTENT RULES", rule.description))
                if rule.require:
                    lines.append(f"   - Content requirement: {rule.require}")
                if rule.forbid:
                    lines.append(f"   - Forbidden content: {', '.join(rule.forbid)}")
                if rule.patterns_allow:
                    lines.append(f"   - Allowed patterns: {', '.join(rule.patterns_allow)}")
                if rule.patterns_deny:
                    lines.append(f"   - Denied patterns: {', '.join(rule.patterns_deny)}")
            case ThresholdRule():
                lines.append(_title(number, "CHANGE THRESHOLDS", rule.description))
                if rule.max_lines_changed is not None:
                    lines.append(
                        f"   - Maximum lines that can be changed: {rule.max_lines_changed}"
                    )
                if rule.max_files_changed is not None:
                    lines.append(
                        f"   - Maximum files that can be changed: {rule.max_files_changed}"
                    )
                lines.append("   - Keep changes minimal and focused")
            case _:
                assert_never(rule)
        lines.append("")

    lines.append(FOOTER)
    lines.append("")
    return "\n".join(lines)
