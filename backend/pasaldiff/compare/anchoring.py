"""Stable anchor keys used to pair clauses across versions."""

from __future__ import annotations

from typing import Sequence

from pasaldiff.models.entities import Clause

_SEPARATOR = " / "


def anchor_path(clause: Clause) -> tuple[str, ...]:
    """The clause path from its nearest enclosing Pasal downwards."""
    path = tuple(clause.clause_path)
    for index in range(len(path) - 1, -1, -1):
        if path[index].startswith("Pasal "):
            return path[index:]
    return path


def anchor_keys(clauses: Sequence[Clause]) -> list[str]:
    """One key per clause, in input order, unique within the list.

    Headings above Pasal level are ignored so renumbered chapters do not
    break alignment; repeats get ``#2``, ``#3`` suffixes in sequence order.
    """
    ordered = sorted(range(len(clauses)), key=lambda idx: clauses[idx].sequence_order)
    seen: dict[str, int] = {}
    keys = [""] * len(clauses)
    for idx in ordered:
        clause = clauses[idx]
        path = anchor_path(clause)
        if path:
            base = _SEPARATOR.join(path)
        elif clause.clause_ref:
            base = clause.clause_ref
        else:
            base = f"#{clause.sequence_order}"
        seen[base] = seen.get(base, 0) + 1
        keys[idx] = base if seen[base] == 1 else f"{base}#{seen[base]}"
    return keys


def display_ref(clause: Clause) -> str | None:
    """Human-readable reference such as ``Pasal 3 Ayat (2)``."""
    path = anchor_path(clause)
    if path:
        return " ".join(path)
    return clause.clause_ref


__all__ = ["anchor_path", "anchor_keys", "display_ref"]
