"""Line-level diff between an original and a modified text blob."""

from __future__ import annotations

from enum import Enum

from guardrail.rule_engine.models import DiffChange, DiffKind, DiffResult


class _Op(Enum):
    KEEP = 0
    DELETE = 1
    INSERT = 2


def _split_lines(text: str) -> list[str]:
    """Split on newlines, keeping terminators. A trailing newline adds no empty line."""
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def _shortest_edit(old: list[str], new: list[str]) -> list[tuple[_Op, int]]:
    """Myers' O(ND) shortest edit script.

    Returns ``(op, index)`` steps in file order; the index points into ``new``
    for KEEP and INSERT and into ``old`` for DELETE.
    """
    n, m = len(old), len(new)
    offset = n + m + 1
    v = [0] * (2 * offset + 1)
    trace: list[list[int]] = []

    for d in range(n + m + 1):
        trace.append(v[:])
        done = False
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
                x = v[offset + k + 1]
            else:
                x = v[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and old[x] == new[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                done = True
                break
        if done:
            break

    steps: list[tuple[_Op, int]] = []
    x, y = n, m
    for d in range(len(trace) - 1, -1, -1):
        v = trace[d]
        k = x - y
        if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = v[offset + prev_k]
        prev_y = prev_x - prev_k
        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            steps.append((_Op.KEEP, y))
        if d > 0:
            if x == prev_x:
                steps.append((_Op.INSERT, y - 1))
            else:
                steps.append((_Op.DELETE, x - 1))
        x, y = prev_x, prev_y

    steps.reverse()
    return steps


def _append_run(runs: list[tuple[DiffKind, list[str]]], kind: DiffKind, lines: list[str]) -> None:
    if not lines:
        return
    if runs and runs[-1][0] == kind:
        runs[-1][1].extend(lines)
    else:
        runs.append((kind, list(lines)))


def compute_diff(original: str, modified: str) -> DiffResult:
    """Diff two blobs into maximal runs of added, removed and unchanged lines.

    The edit script is minimal: the unchanged lines form a longest common
    subsequence of the two inputs. Within a changed stretch removed lines come
    before added ones.

    ``start_line`` always refers to the new file: unchanged and added runs take
    the cursor and advance it, removed runs take the cursor without advancing
    it, so a removal is anchored at the new-file line where it happened.
    """
    old_lines = _split_lines(original)
    new_lines = _split_lines(modified)

    script = _shortest_edit(
        [line.rstrip("\r\n") for line in old_lines],
        [line.rstrip("\r\n") for line in new_lines],
    )

    runs: list[tuple[DiffKind, list[str]]] = []
    removed: list[str] = []
    added: list[str] = []
    for op, index in script:
        if op is _Op.DELETE:
            removed.append(old_lines[index])
        elif op is _Op.INSERT:
            added.append(new_lines[index])
        else:
            _append_run(runs, DiffKind.REMOVED, removed)
            _append_run(runs, DiffKind.ADDED, added)
            removed, added = [], []
            _append_run(runs, DiffKind.UNCHANGED, [new_lines[index]])
    _append_run(runs, DiffKind.REMOVED, removed)
    _append_run(runs, DiffKind.ADDED, added)

    if not runs:
        # Both inputs empty
        return DiffResult(
            changes=[DiffChange(kind=DiffKind.UNCHANGED, text="", start_line=1, line_count=0)]
        )

    changes: list[DiffChange] = []
    lines_added = 0
    lines_removed = 0
    cursor = 1

    for kind, lines in runs:
        count = len(lines)
        changes.append(
            DiffChange(kind=kind, text="".join(lines), start_line=cursor, line_count=count)
        )
        if kind == DiffKind.REMOVED:
            lines_removed += count
            continue
        if kind == DiffKind.ADDED:
            lines_added += count
        cursor += count

    return DiffResult(changes=changes, lines_added=lines_added, lines_removed=lines_removed)


def format_diff_for_display(diff: DiffResult) -> str:
    """Render a diff as ``+ ``/``- ``/``  `` prefixed lines."""
    prefixes = {DiffKind.ADDED: "+ ", DiffKind.REMOVED: "- ", DiffKind.UNCHANGED: "  "}
    output: list[str] = []
    for change in diff.changes:
        prefix = prefixes[change.kind]
        output.extend(f"{prefix}{line}\n" for line in change.text.splitlines())
    return "".join(output)
