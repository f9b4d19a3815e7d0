"""Extraction of formal Indonesian legal references."""

from __future__ import annotations

import re
from typing import Iterable

from pasaldiff.ingest.types import Citation

_NUMBER = r"(?:Nomor|No\.?)?\s*(?P<number>\d{1,4}[A-Z]?)"
_YEAR = r"\s*(?:,\s*)?(?:Tahun\s*|/\s*)(?P<year>(?:19|20)\d{2})\b"

# (type, canonical label, instrument pattern); order only matters for equal spans.
_INSTRUMENTS: tuple[tuple[str, str, str], ...] = (
    (
        "other",
        "Peraturan Pemerintah Pengganti Undang-Undang",
        r"Peraturan\s+Pemerintah\s+Pengganti\s+Undang[\s-]*Undang|Perppu",
    ),
    ("undang-undang", "Undang-Undang", r"Undang[\s-]*Undang(?:\s+Republik\s+Indonesia)?|UU(?:\s+RI)?"),
    ("peraturan-pemerintah", "Peraturan Pemerintah", r"Peraturan\s+Pemerintah(?!\s+Pengganti)|PP"),
    ("keputusan-presiden", "Keputusan Presiden", r"Keputusan\s+Presiden(?:\s+Republik\s+Indonesia)?|Keppres"),
    ("other", "Peraturan Presiden", r"Peraturan\s+Presiden(?:\s+Republik\s+Indonesia)?|Perpres"),
    ("other", "Instruksi Presiden", r"Instruksi\s+Presiden(?:\s+Republik\s+Indonesia)?|Inpres"),
    ("peraturan-menteri", "Peraturan Menteri", r"Peraturan\s+Menteri(?:\s+[^\s\d]+){0,6}?|Permen\w*"),
    (
        "peraturan-daerah",
        "Peraturan Daerah",
        r"Peraturan\s+Daerah(?:\s+(?:Provinsi|Kabupaten|Kota)(?:\s+[^\s\d]+){1,3}?)?|Perda",
    ),
)

_PATTERNS = [
    (citation_type, label, re.compile(rf"\b(?:{instrument})\s+{_NUMBER}{_YEAR}", re.IGNORECASE))
    for citation_type, label, instrument in _INSTRUMENTS
]


def extract_citations(text: str) -> list[Citation]:
    """Return citations in ``text`` ordered by position.

    Where two patterns match overlapping spans the one starting first wins,
    and among equal starts the longer match.
    """
    if not text:
        return []
    candidates: list[tuple[int, int, int, Citation]] = []
    for priority, (citation_type, label, pattern) in enumerate(_PATTERNS):
        for match in pattern.finditer(text):
            number = match.group("number").upper()
            year = int(match.group("year"))
            citation = Citation(
                type=citation_type,
                number=number,
                year=year,
                text=match.group(0),
                start=match.start(),
                end=match.end(),
                title=f"{label} Nomor {number} Tahun {year}",
            )
            candidates.append((match.start(), -(match.end() - match.start()), priority, citation))

    candidates.sort(key=lambda item: item[:3])
    citations: list[Citation] = []
    cursor = -1
    for start, _, _, citation in candidates:
        if start < cursor:
            continue
        citations.append(citation)
        cursor = citation.end
    return citations


def dedupe_citations(citations: Iterable[Citation]) -> list[Citation]:
    """Keep the first occurrence of each (type, number, year)."""
    seen: set[tuple[str, str, int]] = set()
    unique: list[Citation] = []
    for citation in citations:
        if citation.identity in seen:
            continue
        seen.add(citation.identity)
        unique.append(citation)
    return unique


__all__ = ["extract_citations", "dedupe_citations"]
