"""Token-level change spans between two clause texts."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Literal

WordChangeKind = Literal["unchanged", "added", "removed"]

# Above this many LCS table cells fall back to difflib's matcher.
MAX_LCS_CELLS = 250_000


@dataclass(slots=True)
class WordChange:
    kind: WordChangeKind
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "text": self.text}


def word_changes(old: str, new: str) -> list[WordChange]:
    """Ordered unchanged/added/removed spans turning ``old`` into ``new``."""
    old_tokens = old.split()
    new_tokens = new.split()

    prefix = 0
    while prefix < len(old_tokens) and prefix < len(new_tokens) and old_tokens[prefix] == new_tokens[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < len(old_tokens) - prefix
        and suffix < len(new_tokens) - prefix
        and old_tokens[-1 - suffix] == new_tokens[-1 - suffix]
    ):
        suffix += 1

    middle_old = old_tokens[prefix : len(old_tokens) - suffix]
    middle_new = new_tokens[prefix : len(new_tokens) - suffix]

    ops: list[tuple[WordChangeKind, str]] = [("unchanged", token) for token in old_tokens[:prefix]]
    if len(middle_old) * len(middle_new) > MAX_LCS_CELLS:
        ops.extend(_matcher_ops(middle_old, middle_new))
    else:
        ops.extend(_lcs_ops(middle_old, middle_new))
    ops.extend(("unchanged", token) for token in old_tokens[len(old_tokens) - suffix :])
    return _merge(ops)


def _lcs_ops(old: list[str], new: list[str]) -> list[tuple[WordChangeKind, str]]:
    rows, cols = len(old), len(new)
    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows - 1, -1, -1):
        for j in range(cols - 1, -1, -1):
            if old[i] == new[j]:
                table[i][j] = table[i + 1][j + 1] + 1
            else:
                table[i][j] = max(table[i + 1][j], table[i][j + 1])

    ops: list[tuple[WordChangeKind, str]] = []
    i = j = 0
    while i < rows and j < cols:
        if old[i] == new[j]:
            ops.append(("unchanged", old[i]))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            ops.append(("removed", old[i]))
            i += 1
        else:
            ops.append(("added", new[j]))
            j += 1
    ops.extend(("removed", token) for token in old[i:])
    ops.extend(("added", token) for token in new[j:])
    return ops


def _matcher_ops(old: list[str], new: list[str]) -> list[tuple[WordChangeKind, str]]:
    ops: list[tuple[WordChangeKind, str]] = []
    matcher = difflib.SequenceMatcher(a=old, b=new, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            ops.extend(("unchanged", token) for token in old[i1:i2])
            continue
        if tag in ("replace", "delete"):
            ops.extend(("removed", token) for token in old[i1:i2])
        if tag in ("replace", "insert"):
            ops.extend(("added", token) for token in new[j1:j2])
    return ops


def _merge(ops: list[tuple[WordChangeKind, str]]) -> list[WordChange]:
    merged: list[WordChange] = []
    for kind, token in ops:
        if merged and merged[-1].kind == kind:
            merged[-1].text = f"{merged[-1].text} {token}"
        else:
            merged.append(WordChange(kind=kind, text=token))
    return merged


def changed_text(changes: list[WordChange]) -> str:
    """Concatenated added and removed spans."""
    return " ".join(change.text for change in changes if change.kind != "unchanged")


__all__ = ["WordChange", "word_changes", "changed_text", "MAX_LCS_CELLS"]
