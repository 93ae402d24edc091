"""Tests for rule_engine/templates.py: starter policy files."""

from __future__ import annotations

import pytest
import yaml

from guardrail.rule_engine.config import parse_rule_set, validate_rules_config
from guardrail.rule_engine.models import Override, RuleKind
from guardrail.rule_engine.templates import OVERRIDE_TEMPLATE, RULE_TEMPLATES, get_template


class TestRuleTemplates:
    def test_template_ids(self):
        assert set(RULE_TEMPLATES) == {"minimal", "standard", "strict", "custom"}

    @pytest.mark.parametrize("template_id", sorted(RULE_TEMPLATES))
    def test_every_template_is_a_valid_policy(self, template_id: str):
        data = yaml.safe_load(get_template(template_id).content)
        assert validate_rules_config(data)
        assert parse_rule_set(data).rules

    def test_standard_deny_patterns_are_regexes(self):
        data = yaml.safe_load(get_template("standard").content)
        content = parse_rule_set(data).rules[1]
        assert content.kind == RuleKind.CONTENT
        assert content.patterns_deny == ["eval\\(", "Function\\("]

    def test_strict_sets_strict_mode(self):
        data = yaml.safe_load(get_template("strict").content)
        assert parse_rule_set(data).global_settings.strict_mode is True

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            get_template("paranoid")


class TestOverrideTemplate:
    def test_parses_as_merge_override(self):
        override = Override.model_validate(yaml.safe_load(OVERRIDE_TEMPLATE))
        assert override.replace is False
        assert override.disable == []
        assert override.rules == []
