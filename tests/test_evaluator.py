"""Tests for rule_engine/evaluator.py: per-kind checkers and result assembly."""

from __future__ import annotations

import logging

import pytest

from guardrail.rule_engine.evaluator import evaluate
from guardrail.rule_engine.models import RuleKind, RuleSet, Severity


def _rules(*rules: dict, **global_settings: bool) -> RuleSet:
    return RuleSet.model_validate({"rules": list(rules), "global": global_settings})


def _of_kind(result, kind: RuleKind) -> list:
    return [v for v in result.violations if v.rule_kind == kind]


class TestResultAssembly:
    def test_no_rules_is_valid(self):
        result = evaluate("a", "b", _rules())
        assert result.valid is True
        assert result.violations == []

    def test_requires_approval_from_global(self):
        assert evaluate("a", "a", _rules()).requires_approval is True
        assert evaluate("a", "a", _rules(require_approval_for_all=False)).requires_approval is False

    def test_valid_ignores_warnings(self):
        rule_set = _rules({"type": "refactor", "forbid": ["add_comments"]})
        result = evaluate("x = 1\n", "x = 1  # note\n", rule_set)
        assert result.violations
        assert all(v.severity == Severity.WARNING for v in result.violations)
        assert result.valid is True

    def test_violations_follow_rule_order(self):
        rule_set = _rules(
            {"type": "threshold", "max_lines_changed": 0},
            {"type": "content", "forbid": ["debugger"]},
        )
        result = evaluate("", "debugger;\n", rule_set)
        assert [v.rule_kind for v in result.violations] == [RuleKind.THRESHOLD, RuleKind.CONTENT]

    def test_rule_set_not_mutated(self):
        rule_set = _rules({"type": "dependencies", "forbidden": ["moment"]})
        before = rule_set.model_dump()
        evaluate("", "import moment from 'moment';", rule_set)
        assert rule_set.model_dump() == before


class TestContentRule:
    def test_new_forbidden_literal(self):
        rule_set = _rules({"type": "content", "forbid": ["console.log"]})
        result = evaluate(
            "function test() {}", "function test() { console.log('debug'); }", rule_set
        )
        content = _of_kind(result, RuleKind.CONTENT)
        assert len(content) == 1
        assert content[0].severity == Severity.ERROR
        assert result.valid is False

    def test_existing_literal_not_reported(self):
        rule_set = _rules({"type": "content", "forbid": ["console.log"]})
        code = 'console.log("existing")'
        assert _of_kind(evaluate(code, code, rule_set), RuleKind.CONTENT) == []

    def test_details_name_the_literal(self):
        rule_set = _rules({"type": "content", "forbid": ["debugger"]})
        result = evaluate("", "debugger;", rule_set)
        assert result.violations[0].details == 'The content "debugger" was added but is forbidden'

    def test_deny_pattern_new_match(self):
        rule_set = _rules({"type": "content", "patterns": {"deny": [r"eval\("]}})
        result = evaluate("run()\n", "run()\neval(code)\n", rule_set)
        content = _of_kind(result, RuleKind.CONTENT)
        assert len(content) == 1
        assert content[0].details == r'The pattern "eval\(" was found in added content'

    def test_deny_pattern_existing_match(self):
        rule_set = _rules({"type": "content", "patterns": {"deny": [r"eval\("]}})
        result = evaluate("eval(a)\n", "eval(a)\nb = 1\n", rule_set)
        assert _of_kind(result, RuleKind.CONTENT) == []

    def test_invalid_deny_pattern_skipped(self):
        rule_set = _rules(
            {"type": "content", "patterns": {"deny": ["(unclosed", "debugger"]}},
        )
        result = evaluate("", "debugger;\n", rule_set)
        assert len(result.violations) == 1
        assert '"debugger"' in (result.violations[0].details or "")

    def test_use_existing_only_flags_many_new_functions(self):
        rule_set = _rules({"type": "content", "require": "use_existing_only"})
        generated = "\n".join(f"function helper{i}() {{}}" for i in range(4))
        result = evaluate("", generated, rule_set)
        content = _of_kind(result, RuleKind.CONTENT)
        assert len(content) == 1
        assert content[0].severity == Severity.WARNING
        assert content[0].details is not None
        assert content[0].details.startswith("4 new functions/methods")

    def test_use_existing_only_tolerates_three(self):
        rule_set = _rules({"type": "content", "require": "use_existing_patterns_only"})
        generated = "\n".join(f"function helper{i}() {{}}" for i in range(3))
        assert evaluate("", generated, rule_set).violations == []


class TestDependencyRule:
    def test_forbidden_import(self):
        rule_set = _rules({"type": "dependencies", "forbidden": ["moment"]})
        result = evaluate("", "import moment from 'moment';", rule_set)
        deps = _of_kind(result, RuleKind.DEPENDENCY)
        assert len(deps) == 1
        assert '"moment"' in (deps[0].details or "")
        assert deps[0].severity == Severity.ERROR

    def test_allowed_import_passes(self):
        rule_set = _rules({"type": "dependencies", "allowed": ["lodash"]})
        result = evaluate("", "import _ from 'lodash';", rule_set)
        assert _of_kind(result, RuleKind.DEPENDENCY) == []

    def test_unlisted_import_fails(self):
        rule_set = _rules({"type": "dependencies", "allowed": ["lodash"]})
        result = evaluate("", "import express from 'express';", rule_set)
        deps = _of_kind(result, RuleKind.DEPENDENCY)
        assert len(deps) == 1
        assert deps[0].details == 'The dependency "express" is not in the allowed list: lodash'

    def test_only_added_text_is_scanned(self):
        rule_set = _rules({"type": "dependencies", "forbidden": ["moment"]})
        original = "import moment from 'moment';\n"
        result = evaluate(original, original + "const x = 1;\n", rule_set)
        assert result.violations == []

    def test_relative_and_builtin_ignored(self):
        rule_set = _rules({"type": "dependencies", "allowed": ["lodash"]})
        code = "import a from './a';\nconst fs = require('fs');\n"
        assert evaluate("", code, rule_set).violations == []


class TestThresholdRule:
    def test_max_lines_exceeded(self):
        rule_set = _rules({"type": "threshold", "max_lines_changed": 1, "require_approval": True})
        result = evaluate("a\nb\nc\n", "v\nw\nx\ny\nz\n", rule_set, None)
        assert result.valid is False
        assert result.requires_approval is True
        assert len(_of_kind(result, RuleKind.THRESHOLD)) >= 1

    def test_require_approval_without_violation(self):
        rule_set = _rules(
            {"type": "threshold", "max_lines_changed": 100, "require_approval": True},
            require_approval_for_all=False,
        )
        result = evaluate("a", "b", rule_set)
        assert result.valid is True
        assert result.requires_approval is True

    def test_max_files_uses_batch_count(self):
        rule_set = _rules({"type": "threshold", "max_files_changed": 2})
        result = evaluate("a", "b", rule_set, "x.ts", files_changed=3)
        threshold = _of_kind(result, RuleKind.THRESHOLD)
        assert len(threshold) == 1
        assert threshold[0].details == "Changed 3 files, maximum allowed is 2"
        assert threshold[0].line_numbers == [1]

    def test_max_files_ignored_without_count(self):
        rule_set = _rules({"type": "threshold", "max_files_changed": 0})
        assert evaluate("a", "b", rule_set).violations == []


class TestScopeRule:
    def test_file_outside_scope(self):
        rule_set = _rules({"type": "scope", "description": "src only", "files": ["src/*"]})
        result = evaluate("a", "b", rule_set, "lib/util.ts")
        scope = _of_kind(result, RuleKind.SCOPE)
        assert len(scope) == 1
        assert scope[0].severity == Severity.ERROR

    def test_file_inside_scope(self):
        rule_set = _rules({"type": "scope", "files": ["src/*"]})
        assert evaluate("a", "b", rule_set, "src/util.ts").violations == []

    def test_files_ignored_without_file_name(self):
        rule_set = _rules({"type": "scope", "files": ["src/*"]})
        assert evaluate("a", "b", rule_set).violations == []

    def test_missing_function_warns(self):
        rule_set = _rules({"type": "scope", "functions": ["handleClick"]})
        result = evaluate("function other() {}\n", "function other() { x(); }\n", rule_set)
        scope = _of_kind(result, RuleKind.SCOPE)
        assert len(scope) == 1
        assert scope[0].severity == Severity.WARNING

    def test_present_function_passes(self):
        rule_set = _rules({"type": "scope", "functions": ["handleClick"]})
        original = "function handleClick() {}\n"
        result = evaluate(original, "function handleClick() { go(); }\n", rule_set)
        assert result.violations == []

    def test_no_change_no_function_warning(self):
        rule_set = _rules({"type": "scope", "functions": ["missing"]})
        assert evaluate("same\n", "same\n", rule_set).violations == []

    def test_pattern_absent_warns(self):
        rule_set = _rules({"type": "scope", "pattern": r"class\s+Widget"})
        result = evaluate("x = 1\n", "x = 2\n", rule_set)
        assert len(_of_kind(result, RuleKind.SCOPE)) == 1

    def test_invalid_pattern_skipped(self, caplog: pytest.LogCaptureFixture):
        rule_set = _rules({"type": "scope", "pattern": "(unclosed"})
        with caplog.at_level(logging.WARNING, logger="guardrail.rule_engine.evaluator"):
            result = evaluate("x = 1\n", "x = 2\n", rule_set)
        assert result.violations == []
        assert "invalid scope pattern" in caplog.text


class TestRefactorRule:
    def test_variable_rename(self):
        rule_set = _rules({"type": "refactor", "forbid": ["variable_renames"]})
        result = evaluate("const total = 1;\n", "const sum = 1;\n", rule_set)
        refactor = _of_kind(result, RuleKind.REFACTOR)
        assert len(refactor) == 1
        assert refactor[0].details == "Variables removed: total. Variables added: sum"

    def test_value_change_is_not_rename(self):
        rule_set = _rules({"type": "refactor", "forbid": ["variable_renames"]})
        assert evaluate("const total = 1;\n", "const total = 2;\n", rule_set).violations == []

    def test_added_error_handling(self):
        rule_set = _rules({"type": "refactor", "forbid": ["add_error_handling"]})
        original = "run();\n"
        modified = "try {\n  run();\n} catch (e) {\n}\n"
        result = evaluate(original, modified, rule_set)
        assert len(_of_kind(result, RuleKind.REFACTOR)) == 1

    def test_existing_error_handling(self):
        rule_set = _rules({"type": "refactor", "forbid": ["add_error_handling"]})
        original = "try {\n  run();\n} catch (e) {\n}\n"
        modified = "try {\n  run();\n  more();\n} catch (e) {\n}\n"
        assert evaluate(original, modified, rule_set).violations == []

    def test_python_error_handling(self):
        rule_set = _rules({"type": "refactor", "forbid": ["error_handling"]})
        modified = "try:\n    run()\nexcept ValueError:\n    pass\n"
        result = evaluate("run()\n", modified, rule_set)
        assert len(result.violations) == 1

    def test_added_comment(self):
        rule_set = _rules({"type": "refactor", "forbid": ["add_comments"]})
        result = evaluate("x = 1;\n", "// set x\nx = 1;\n", rule_set)
        assert len(_of_kind(result, RuleKind.REFACTOR)) == 1

    def test_formatting_only(self):
        rule_set = _rules({"type": "refactor", "forbid": ["change_formatting"]})
        result = evaluate("if (a) { b(); }\n", "if (a) {\n  b();\n}\n", rule_set)
        refactor = _of_kind(result, RuleKind.REFACTOR)
        assert len(refactor) == 1
        assert refactor[0].description == "Formatting-only changes detected"

    def test_semantic_change_is_not_formatting(self):
        rule_set = _rules({"type": "refactor", "forbid": ["change_formatting"]})
        assert evaluate("a();\n", "b();\n", rule_set).violations == []

    def test_unknown_action_ignored(self):
        rule_set = _rules({"type": "refactor", "forbid": ["rename_everything"]})
        assert evaluate("a\n", "b\n", rule_set).violations == []


class TestLineNumbers:
    def test_violations_point_at_added_lines(self):
        rule_set = _rules({"type": "content", "forbid": ["debugger"]})
        result = evaluate("a\nb\n", "a\nb\ndebugger;\n", rule_set)
        assert result.violations[0].line_numbers == [3]
