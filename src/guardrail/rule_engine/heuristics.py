"""Lexical heuristics shared by the rule checkers.

Everything here is regex-based and language-agnostic on purpose: the checkers
look at line-diff output, never at a parsed syntax tree.
"""

from __future__ import annotations

import re

_VARIABLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:const|let|var)\s+(\w+)"),
    re.compile(r"(\w+)\s*=(?!=)"),
    re.compile(r"function\s+(\w+)"),
    re.compile(r"def\s+(\w+)"),
]

_FUNCTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"function\s+(\w+)"),
    re.compile(r"(\w+)\s*:\s*function"),
    re.compile(r"(\w+)\s*=\s*function"),
    re.compile(r"(\w+)\s*=\s*\("),
    re.compile(r"(\w+)\s*=\s*async\s*\("),
    re.compile(r"def\s+(\w+)"),
    re.compile(r"(\w+)\s*\([^)]*\)\s*\{"),
]

_CONTROL_KEYWORDS = frozenset({"if", "while", "for", "switch", "catch", "return"})

ERROR_HANDLING_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"try\s*\{"),
    re.compile(r"catch\s*\("),
    re.compile(r"\.catch\("),
    re.compile(r"throw\s+new"),
    re.compile(r"if\s*\([^)]*error", re.IGNORECASE),
    re.compile(r"^\s*try\s*:", re.MULTILINE),
    re.compile(r"^\s*except\b", re.MULTILINE),
]

COMMENT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"//[^\n]+"),
    re.compile(r"/\*[\s\S]*?\*/"),
    re.compile(r"#[^\n]+"),
]

# (pattern, separator used to find the top-level package)
_IMPORT_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"import\s+[^'\"\n]*?\s+from\s+['\"]([^'\"]+)['\"]"), "/"),
    (re.compile(r"import\s+['\"]([^'\"]+)['\"]"), "/"),
    (re.compile(r"require\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"), "/"),
    (re.compile(r"^\s*from\s+(\S+)\s+import\b", re.MULTILINE), "."),
    (
        re.compile(
            r"^\s*import\s+(?![^\n]*\sfrom\s)([A-Za-z_][\w.]*)\s*(?:as\s+\w+\s*)?(?:[,;]|$)",
            re.MULTILINE,
        ),
        ".",
    ),
]

BUILTIN_MODULES = frozenset(
    {"fs", "path", "http", "https", "os", "util", "events", "stream", "crypto"}
)


def _unique_captures(patterns: list[re.Pattern[str]], code: str) -> list[str]:
    names: list[str] = []
    for pattern in patterns:
        for match in pattern.finditer(code):
            name = match.group(1)
            if name and name not in names:
                names.append(name)
    return names


def extract_variable_names(code: str) -> list[str]:
    """Declared or assigned identifiers, in first-seen order."""
    return _unique_captures(_VARIABLE_PATTERNS, code)


def extract_function_names(code: str) -> list[str]:
    """Function-like names (declarations, assigned functions, call-with-body shapes)."""
    return [
        name
        for name in _unique_captures(_FUNCTION_PATTERNS, code)
        if name not in _CONTROL_KEYWORDS
    ]


def _top_level_package(target: str, separator: str) -> str:
    if target.startswith("."):
        return target
    return target.split("/")[0].split(separator)[0].removeprefix("@")


def extract_imports(code: str) -> list[str]:
    """Top-level package names imported by *code*.

    Relative imports and a small set of runtime builtins are dropped.
    """
    names: list[str] = []
    for pattern, separator in _IMPORT_PATTERNS:
        for match in pattern.finditer(code):
            name = _top_level_package(match.group(1), separator)
            if not name or name.startswith(".") or name in BUILTIN_MODULES:
                continue
            if name not in names:
                names.append(name)
    return names


def count_matches(pattern: re.Pattern[str], text: str) -> int:
    return sum(1 for _ in pattern.finditer(text))


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Anchored regex for a file pattern where ``*`` matches anything."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


def file_matches(file_name: str, patterns: list[str]) -> bool:
    for pattern in patterns:
        if "*" in pattern:
            if glob_to_regex(pattern).match(file_name):
                return True
        elif pattern in file_name or file_name in pattern:
            return True
    return False


def function_declaration_pattern(name: str) -> re.Pattern[str]:
    escaped = re.escape(name)
    return re.compile(
        rf"(?:function\s+{escaped}\b|def\s+{escaped}\b|\b{escaped}\s*[=:]\s*(?:function|\(|async))"
    )
