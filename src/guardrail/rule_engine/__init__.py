"""Rule engine: diff, policy models, policy resolution, evaluation and approvals."""

from guardrail.rule_engine.approvals import (
    apply_approved_exceptions,
    approvals_from_report,
    update_rules_file,
)
from guardrail.rule_engine.config import (
    GuardrailConfig,
    apply_override,
    find_rules_file,
    load_guardrail_config,
    resolve_base,
    resolve_for_file,
    validate_rules_config,
)
from guardrail.rule_engine.diff import compute_diff, format_diff_for_display
from guardrail.rule_engine.directives import generate_prompt_directives
from guardrail.rule_engine.evaluator import evaluate
from guardrail.rule_engine.models import (
    ApprovedViolation,
    ContentPatterns,
    ContentRule,
    DependencyRule,
    DiffChange,
    DiffKind,
    DiffResult,
    GlobalOverrides,
    GlobalSettings,
    Override,
    RefactorAction,
    RefactorRule,
    Rule,
    RuleEdit,
    RuleKind,
    RuleSet,
    ScopeRule,
    Severity,
    ThresholdRule,
    ValidationResult,
    Violation,
)

__all__ = [
    "ApprovedViolation",
    "ContentPatterns",
    "ContentRule",
    "DependencyRule",
    "DiffChange",
    "DiffKind",
    "DiffResult",
    "GlobalOverrides",
    "GlobalSettings",
    "GuardrailConfig",
    "Override",
    "RefactorAction",
    "RefactorRule",
    "Rule",
    "RuleEdit",
    "RuleKind",
    "RuleSet",
    "ScopeRule",
    "Severity",
    "ThresholdRule",
    "ValidationResult",
    "Violation",
    "apply_approved_exceptions",
    "apply_override",
    "approvals_from_report",
    "compute_diff",
    "evaluate",
    "find_rules_file",
    "format_diff_for_display",
    "generate_prompt_directives",
    "load_guardrail_config",
    "resolve_base",
    "resolve_for_file",
    "update_rules_file",
    "validate_rules_config",
]
