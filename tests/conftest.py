"""Shared fixtures for guardrail tests."""

from pathlib import Path

import pytest

STANDARD_RULES = """\
rules:
  - type: dependencies
    description: "Control dependencies"
    forbidden:
      - moment
      - jquery

  - type: content
    description: "Prevent debug code"
    forbid:
      - console.log
      - debugger
    patterns:
      deny:
        - "eval\\\\("

  - type: threshold
    description: "Limit change scope"
    max_lines_changed: 50
    require_approval: true

global:
  require_approval_for_all: false
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A workspace directory with a standard rules.yaml at its root."""
    (tmp_path / "rules.yaml").write_text(STANDARD_RULES, encoding="utf-8")
    return tmp_path


@pytest.fixture
def rules_file(workspace: Path) -> Path:
    return workspace / "rules.yaml"


@pytest.fixture(autouse=True)
def _clean_guardrail_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("GUARDRAIL_RULES_FILE", "GUARDRAIL_OVERRIDE_FILE", "GUARDRAIL_PORT"):
        monkeypatch.delenv(name, raising=False)
