"""Pydantic models and enums for the rule engine layer."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field


class RuleKind(StrEnum):
    SCOPE = "scope"
    REFACTOR = "refactor"
    DEPENDENCY = "dependency"
    CONTENT = "content"
    THRESHOLD = "threshold"


class RefactorAction(StrEnum):
    VARIABLE_RENAMES = "variable_renames"
    ADD_ERROR_HANDLING = "add_error_handling"
    ADD_COMMENTS = "add_comments"
    CHANGE_FORMATTING = "change_formatting"


# Shorter spellings accepted in policy files
REFACTOR_ACTION_ALIASES: dict[str, RefactorAction] = {
    "variable_rename": RefactorAction.VARIABLE_RENAMES,
    "error_handling": RefactorAction.ADD_ERROR_HANDLING,
    "comments": RefactorAction.ADD_COMMENTS,
    "formatting": RefactorAction.CHANGE_FORMATTING,
}

# Values of the YAML ``type`` field
RULE_TYPES: frozenset[str] = frozenset(
    {"scope", "refactor", "dependencies", "dependency", "content", "threshold"}
)


def parse_refactor_action(tag: str) -> RefactorAction | None:
    """Map a policy-file tag onto a RefactorAction. Unknown tags return None."""
    normalized = tag.strip().lower()
    if normalized in REFACTOR_ACTION_ALIASES:
        return REFACTOR_ACTION_ALIASES[normalized]
    try:
        return RefactorAction(normalized)
    except ValueError:
        return None


class ScopeRule(BaseModel):
    type: Literal["scope"] = "scope"
    description: str = ""
    pattern: str | None = None
    files: list[str] | None = None
    functions: list[str] | None = None

    @property
    def kind(self) -> RuleKind:
        return RuleKind.SCOPE


class RefactorRule(BaseModel):
    type: Literal["refactor"] = "refactor"
    description: str | None = None
    forbid: list[str] = Field(default_factory=list)

    @property
    def kind(self) -> RuleKind:
        return RuleKind.REFACTOR


class DependencyRule(BaseModel):
    type: Literal["dependencies", "dependency"] = "dependencies"
    description: str | None = None
    allowed: list[str] | None = None
    forbidden: list[str] | None = None

    @property
    def kind(self) -> RuleKind:
        return RuleKind.DEPENDENCY


class ContentPatterns(BaseModel):
    allow: list[str] | None = None
    deny: list[str] | None = None


class ContentRule(BaseModel):
    type: Literal["content"] = "content"
    description: str | None = None
    require: str | None = None
    forbid: list[str] | None = None
    patterns: ContentPatterns | None = None

    @property
    def kind(self) -> RuleKind:
        return RuleKind.CONTENT

    @property
    def patterns_allow(self) -> list[str]:
        if self.patterns is None or self.patterns.allow is None:
            return []
        return self.patterns.allow

    @property
    def patterns_deny(self) -> list[str]:
        if self.patterns is None or self.patterns.deny is None:
            return []
        return self.patterns.deny


class ThresholdRule(BaseModel):
    type: Literal["threshold"] = "threshold"
    description: str | None = None
    max_lines_changed: int | None = None
    max_files_changed: int | None = None
    require_approval: bool = False

    @property
    def kind(self) -> RuleKind:
        return RuleKind.THRESHOLD


Rule = Annotated[
    ScopeRule | RefactorRule | DependencyRule | ContentRule | ThresholdRule,
    Field(discriminator="type"),
]


class GlobalSettings(BaseModel):
    require_approval_for_all: bool = True
    log_all_interactions: bool = True
    strict_mode: bool = False


class GlobalOverrides(BaseModel):
    """Partial GlobalSettings; unset fields leave the accumulated value alone."""

    require_approval_for_all: bool | None = None
    log_all_interactions: bool | None = None
    strict_mode: bool | None = None

    def merged_into(self, base: GlobalSettings) -> GlobalSettings:
        return base.model_copy(update=self.model_dump(exclude_none=True))


class RuleSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    rules: list[Rule] = Field(default_factory=list)
    global_settings: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")

    def to_document(self) -> dict[str, object]:
        """Dump in the YAML policy-file shape."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Override(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    replace: bool = False
    rules: list[Rule] | None = None
    disable: list[str] | None = None
    global_overrides: GlobalOverrides | None = Field(default=None, alias="global")


class DiffKind(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class DiffChange(BaseModel):
    kind: DiffKind
    text: str
    start_line: int
    line_count: int


class DiffResult(BaseModel):
    changes: list[DiffChange] = Field(default_factory=list)
    lines_added: int = 0
    lines_removed: int = 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_lines_changed(self) -> int:
        return self.lines_added + self.lines_removed

    @property
    def added_text(self) -> str:
        return "\n".join(c.text for c in self.changes if c.kind == DiffKind.ADDED)

    @property
    def removed_text(self) -> str:
        return "\n".join(c.text for c in self.changes if c.kind == DiffKind.REMOVED)

    @property
    def has_changes(self) -> bool:
        return any(c.kind != DiffKind.UNCHANGED for c in self.changes)

    def changed_line_numbers(self) -> list[int]:
        """New-file line numbers covered by added groups, or [1] if there are none."""
        numbers: list[int] = []
        for change in self.changes:
            if change.kind == DiffKind.ADDED:
                numbers.extend(range(change.start_line, change.start_line + change.line_count))
        return numbers or [1]


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class Violation(BaseModel):
    rule: Rule
    rule_kind: RuleKind
    description: str
    severity: Severity
    details: str | None = None
    line_numbers: list[int] | None = None


class ValidationResult(BaseModel):
    valid: bool
    violations: list[Violation] = Field(default_factory=list)
    diff: DiffResult
    requires_approval: bool

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.WARNING)


class ApprovedViolation(BaseModel):
    """The parts of a reported violation needed to turn it into an exception."""

    rule_kind: RuleKind
    details: str | None = None


class RuleEdit(BaseModel):
    """One list mutation made while applying an approved exception."""

    rule_kind: RuleKind
    action: str  # "added_to_allowed" | "removed_from_forbidden" | "removed_from_forbid" | ...
    value: str
