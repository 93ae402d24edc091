"""Policy loading: base rules.yaml plus directory-scoped override files.

Every failure path falls back to a permissive default and logs a warning, so a
typo in a policy file never turns into a hard block.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from guardrail.rule_engine.models import RULE_TYPES, Override, RuleSet

logger = logging.getLogger(__name__)

DEFAULT_RULES_FILE = "rules.yaml"
DEFAULT_OVERRIDE_FILE = ".llm-guardrail.yaml"
DEFAULT_PORT = 41888


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class GuardrailConfig:
    rules_file: str = DEFAULT_RULES_FILE
    override_file: str = DEFAULT_OVERRIDE_FILE
    port: int = DEFAULT_PORT


def load_guardrail_config() -> GuardrailConfig:
    """Build settings from defaults with GUARDRAIL_* env var overrides."""
    config = GuardrailConfig()
    if env_rules := os.environ.get("GUARDRAIL_RULES_FILE"):
        config.rules_file = env_rules
    if env_override := os.environ.get("GUARDRAIL_OVERRIDE_FILE"):
        config.override_file = env_override
    if env_port := os.environ.get("GUARDRAIL_PORT"):
        config.port = _safe_int(env_port, DEFAULT_PORT)
    return config


def default_rule_set() -> RuleSet:
    return RuleSet()


def validate_rules_config(data: object) -> bool:
    """Shape check: a mapping whose ``rules`` is a list of mappings with a known ``type``."""
    if not isinstance(data, dict):
        return False
    rules = data.get("rules")
    if not isinstance(rules, list):
        return False
    for rule in rules:
        if not isinstance(rule, dict):
            return False
        if rule.get("type") not in RULE_TYPES:
            return False
    return True


def parse_rule_set(data: dict[str, Any]) -> RuleSet:
    """Validate a policy document. Globals are defaults overlaid with ``global``.

    Raises pydantic.ValidationError for malformed rules.
    """
    document = {"rules": data.get("rules") or []}
    if isinstance(data.get("global"), dict):
        document["global"] = data["global"]
    return RuleSet.model_validate(document)


def _read_yaml(path: Path) -> Any:
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def resolve_base(path: Path | str | None) -> RuleSet:
    """Load the base policy document, or the default RuleSet if it is unusable."""
    if path is None:
        return default_rule_set()
    path = Path(path)
    if not path.exists():
        logger.debug(f"No rules file at {path}, using defaults")
        return default_rule_set()

    try:
        data = _read_yaml(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load rules from {path}: {e}. Using defaults.")
        return default_rule_set()

    if not isinstance(data, dict) or "rules" not in data or data["rules"] is None:
        logger.debug(f"Rules file {path} declares no rules, using defaults")
        return default_rule_set()

    if not validate_rules_config(data):
        logger.warning(f"Rules file {path} has an invalid shape. Using defaults.")
        return default_rule_set()

    try:
        return parse_rule_set(data)
    except ValidationError as e:
        logger.warning(f"Rules file {path} failed validation: {e}. Using defaults.")
        return default_rule_set()


def apply_override(base: RuleSet, override: Override) -> RuleSet:
    """Apply one override document to *base* and return the result. *base* is untouched."""
    if override.replace:
        global_settings = RuleSet().global_settings
        if override.global_overrides is not None:
            global_settings = override.global_overrides.merged_into(global_settings)
        return RuleSet(rules=list(override.rules or []), global_settings=global_settings)

    rules = list(base.rules)
    if override.disable:
        disabled = [d.lower() for d in override.disable]

        def is_disabled(rule: Any) -> bool:
            if rule.type in override.disable or rule.kind in override.disable:
                return True
            description = (rule.description or "").lower()
            return bool(description) and any(d in description for d in disabled)

        rules = [rule for rule in rules if not is_disabled(rule)]

    if override.rules:
        rules.extend(override.rules)

    global_settings = base.global_settings.model_copy()
    if override.global_overrides is not None:
        global_settings = override.global_overrides.merged_into(global_settings)

    return RuleSet(rules=rules, global_settings=global_settings)


def _load_override(path: Path) -> Override | None:
    try:
        data = _read_yaml(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load override file {path}: {e}")
        return None
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning(f"Override file {path} is not a mapping, skipping")
        return None
    try:
        return Override.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Override file {path} failed validation: {e}")
        return None


def find_override_files(
    workspace_root: Path | str,
    target_dir: Path | str,
    override_file: str = DEFAULT_OVERRIDE_FILE,
) -> list[Path]:
    """Override files from *workspace_root* down to *target_dir*, root first."""
    root = Path(os.path.abspath(workspace_root))
    target = Path(os.path.abspath(target_dir))
    try:
        relative = target.relative_to(root)
    except ValueError:
        return []

    directories = [root]
    current = root
    for part in relative.parts:
        current = current / part
        directories.append(current)

    return [d / override_file for d in directories if (d / override_file).is_file()]


def resolve_for_file(
    file_path: Path | str,
    workspace_root: Path | str,
    rules_path: Path | str | None = None,
    config: GuardrailConfig | None = None,
) -> RuleSet:
    """Effective RuleSet for *file_path*: base rules plus every override above it."""
    if config is None:
        config = load_guardrail_config()
    root = Path(workspace_root)
    if rules_path is None:
        rules_path = root / config.rules_file
    rule_set = resolve_base(rules_path)

    file_path = Path(file_path)
    if not file_path.is_absolute():
        file_path = root / file_path

    for override_path in find_override_files(root, file_path.parent, config.override_file):
        override = _load_override(override_path)
        if override is not None:
            rule_set = apply_override(rule_set, override)

    return rule_set


def find_rules_file(start_dir: Path | str, rules_file: str = DEFAULT_RULES_FILE) -> Path | None:
    """Walk upward from *start_dir* looking for a rules file."""
    current = Path(start_dir).resolve()
    for directory in (current, *current.parents):
        candidate = directory / rules_file
        if candidate.is_file():
            return candidate
    return None
