"""Starter policy files written by ``guardrail init``."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RuleTemplate:
    id: str
    name: str
    description: str
    content: str


_MINIMAL = """\
# LLM Guardrail Rules - Minimal Configuration
rules:
  - type: content
    description: "Prevent debug code"
    forbid:
      - console.log
      - debugger

  - type: threshold
    description: "Limit change scope"
    max_lines_changed: 30
    require_approval: true

global:
  require_approval_for_all: true
  log_all_interactions: true
"""

_STANDARD = """\
# LLM Guardrail Rules - Standard Configuration
rules:
  - type: dependencies
    description: "Control dependencies"
    forbidden:
      - moment
      - jquery

  - type: content
    description: "Prevent debug and unsafe code"
    forbid:
      - console.log
      - debugger
      - alert
    patterns:
      deny:
        - "eval\\\\("
        - "Function\\\\("

  - type: refactor
    description: "Prevent unwanted refactoring"
    forbid:
      - variable_renames
      - add_error_handling

  - type: threshold
    description: "Limit change scope"
    max_lines_changed: 50
    require_approval: true

global:
  require_approval_for_all: true
  log_all_interactions: true
"""

_STRICT = """\
# LLM Guardrail Rules - Strict Configuration
rules:
  - type: dependencies
    description: "Strict dependency control"
    forbidden:
      - moment
      - jquery
      - underscore
      - lodash

  - type: content
    description: "Strict content rules"
    forbid:
      - console.log
      - console.debug
      - console.warn
      - debugger
      - alert
      - TODO
      - FIXME
      - HACK
    patterns:
      deny:
        - "eval\\\\("
        - "Function\\\\("
        - "innerHTML"
        - "document\\\\.write"

  - type: refactor
    description: "No refactoring allowed"
    forbid:
      - variable_renames
      - add_error_handling
      - add_comments
      - change_formatting

  - type: threshold
    description: "Tight change limits"
    max_lines_changed: 20
    require_approval: true

global:
  require_approval_for_all: true
  log_all_interactions: true
  strict_mode: true
"""

_CUSTOM = """\
# LLM Guardrail Rules - Custom Configuration
# Add your own rules below

rules:
  # Example: Restrict to specific files
  # - type: scope
  #   description: "Only modify specific files"
  #   files: ["src/myfile.ts"]

  # Example: Forbid certain dependencies
  # - type: dependencies
  #   forbidden:
  #     - some-package

  # Example: Prevent certain content
  # - type: content
  #   forbid:
  #     - console.log

  # Example: Limit change size
  - type: threshold
    max_lines_changed: 50
    require_approval: true

global:
  require_approval_for_all: true
  log_all_interactions: true
"""

OVERRIDE_TEMPLATE = """\
# LLM Guardrail - Local Override
# Applies to files in this folder and its subfolders

# true replaces the parent rules entirely, false merges with them
replace: false

# Disable parent rules by type or by a keyword in their description
disable: []
  # - refactor
  # - "console.log"

# Additional rules for this directory
rules: []
  # - type: content
  #   description: "Allow console.log in this folder"
  #   forbid: []

# global:
#   require_approval_for_all: false
"""

RULE_TEMPLATES: dict[str, RuleTemplate] = {
    t.id: t
    for t in (
        RuleTemplate("minimal", "Minimal", "Threshold limits and debug-code prevention", _MINIMAL),
        RuleTemplate(
            "standard",
            "Standard",
            "Dependencies, content filters and refactoring limits",
            _STANDARD,
        ),
        RuleTemplate("strict", "Strict", "All protections enabled with tight limits", _STRICT),
        RuleTemplate("custom", "Custom", "A mostly blank file to fill in", _CUSTOM),
    )
}


def get_template(template_id: str) -> RuleTemplate:
    """Look up a template by id. Raises KeyError for unknown ids."""
    return RULE_TEMPLATES[template_id]
