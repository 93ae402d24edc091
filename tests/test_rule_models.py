"""Tests for rule_engine/models.py: policy models and result types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from guardrail.rule_engine.models import (
    ContentRule,
    DependencyRule,
    GlobalOverrides,
    GlobalSettings,
    Override,
    RefactorAction,
    RuleKind,
    RuleSet,
    ScopeRule,
    ThresholdRule,
    parse_refactor_action,
)


class TestRuleSetParsing:
    def test_discriminates_on_type(self):
        rule_set = RuleSet.model_validate(
            {
                "rules": [
                    {"type": "scope", "description": "d", "files": ["src/*"]},
                    {"type": "dependencies", "forbidden": ["moment"]},
                    {"type": "threshold", "max_lines_changed": 10},
                ]
            }
        )
        assert isinstance(rule_set.rules[0], ScopeRule)
        assert isinstance(rule_set.rules[1], DependencyRule)
        assert isinstance(rule_set.rules[2], ThresholdRule)

    def test_singular_dependency_type_accepted(self):
        rule_set = RuleSet.model_validate({"rules": [{"type": "dependency", "allowed": ["x"]}]})
        assert rule_set.rules[0].kind == RuleKind.DEPENDENCY

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            RuleSet.model_validate({"rules": [{"type": "magic"}]})

    def test_global_alias(self):
        rule_set = RuleSet.model_validate({"global": {"strict_mode": True}})
        assert rule_set.global_settings.strict_mode is True
        assert rule_set.global_settings.require_approval_for_all is True

    def test_rule_order_preserved(self):
        rules = [{"type": "content", "description": str(i)} for i in range(5)]
        rule_set = RuleSet.model_validate({"rules": rules})
        assert [r.description for r in rule_set.rules] == ["0", "1", "2", "3", "4"]


class TestGlobalSettings:
    def test_defaults(self):
        settings = GlobalSettings()
        assert settings.require_approval_for_all is True
        assert settings.log_all_interactions is True
        assert settings.strict_mode is False

    def test_overrides_merge_per_field(self):
        merged = GlobalOverrides(strict_mode=True).merged_into(GlobalSettings())
        assert merged.strict_mode is True
        assert merged.require_approval_for_all is True


class TestToDocument:
    def test_uses_yaml_field_names(self):
        rule_set = RuleSet.model_validate(
            {"rules": [{"type": "content", "patterns": {"deny": ["eval\\("]}}]}
        )
        document = rule_set.to_document()
        assert "global" in document
        assert document["rules"] == [{"type": "content", "patterns": {"deny": ["eval\\("]}}]

    def test_round_trips(self):
        source = {
            "rules": [{"type": "dependencies", "forbidden": ["moment"]}],
            "global": {"require_approval_for_all": False},
        }
        rule_set = RuleSet.model_validate(source)
        assert RuleSet.model_validate(rule_set.to_document()) == rule_set


class TestContentRule:
    def test_pattern_accessors_default_empty(self):
        rule = ContentRule()
        assert rule.patterns_allow == []
        assert rule.patterns_deny == []

    def test_pattern_accessors(self):
        rule = ContentRule.model_validate({"patterns": {"allow": ["a"], "deny": ["b"]}})
        assert rule.patterns_allow == ["a"]
        assert rule.patterns_deny == ["b"]


class TestOverride:
    def test_defaults(self):
        override = Override()
        assert override.replace is False
        assert override.rules is None
        assert override.global_overrides is None

    def test_global_alias(self):
        override = Override.model_validate({"global": {"require_approval_for_all": False}})
        assert override.global_overrides is not None
        assert override.global_overrides.require_approval_for_all is False


class TestParseRefactorAction:
    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("variable_renames", RefactorAction.VARIABLE_RENAMES),
            ("ADD_ERROR_HANDLING", RefactorAction.ADD_ERROR_HANDLING),
            ("comments", RefactorAction.ADD_COMMENTS),
            (" formatting ", RefactorAction.CHANGE_FORMATTING),
        ],
    )
    def test_known_tags(self, tag: str, expected: RefactorAction):
        assert parse_refactor_action(tag) == expected

    def test_unknown_tag(self):
        assert parse_refactor_action("rename_everything") is None
