"""Advisory scoring of whether text looks like an Indonesian legal document."""

from __future__ import annotations

import re

from pasaldiff.ingest.citations import extract_citations
from pasaldiff.ingest.markers import detect_marker, is_elucidation_header
from pasaldiff.ingest.types import ValidationReport
from pasaldiff.models.entities import ClauseType

LEGAL_KEYWORDS = ("pasal", "ayat", "bab", "undang-undang", "peraturan", "ketentuan", "huruf")
_KEYWORD_RES = {keyword: re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE) for keyword in LEGAL_KEYWORDS}

VOCABULARY_CAP = 30
STRUCTURE_CAP = 60
MIN_SUBSTANTIAL_LENGTH = 500


def _count_markers(text: str) -> tuple[dict[str, int], bool]:
    counts = {clause_type.value: 0 for clause_type in ClauseType}
    in_pasal = False
    ayat_nested = True
    for line in text.split("\n"):
        line = line.strip()
        if is_elucidation_header(line):
            break
        marker = detect_marker(line)
        if marker is None:
            continue
        counts[marker.clause_type.value] += 1
        if marker.clause_type is ClauseType.PASAL:
            in_pasal = True
        elif marker.clause_type.depth < ClauseType.PASAL.depth:
            in_pasal = False
        elif marker.clause_type is ClauseType.AYAT and not in_pasal:
            ayat_nested = False
    return counts, ayat_nested


def validate_legal_document(text: str, floor: int = 50) -> ValidationReport:
    """Score ``text`` from 0 to 100; ``floor`` and above counts as valid.

    Heuristic only: it never raises, and an invalid report always carries
    at least one issue explaining the low score.
    """
    issues: list[str] = []
    keywords = [keyword for keyword, pattern in _KEYWORD_RES.items() if pattern.search(text or "")]
    citations = extract_citations(text or "")

    vocabulary = 5 * len(keywords) + (5 if citations else 0)
    vocabulary = min(VOCABULARY_CAP, vocabulary)
    if len(keywords) < 3:
        issues.append("few legal keywords found")

    counts, ayat_nested = _count_markers(text or "")
    structure = 0
    if counts["pasal"]:
        structure += 30
    else:
        issues.append("no Pasal markers found")
    if counts["ayat"]:
        structure += 10
        if ayat_nested and counts["pasal"]:
            structure += 5
        else:
            issues.append("Ayat markers appear outside any Pasal")
    if counts["bab"]:
        structure += 10
    else:
        issues.append("no BAB headings found")
    if counts["huruf"] or counts["angka"]:
        structure += 5
    structure = min(STRUCTURE_CAP, structure)

    length_score = 0
    if len(text or "") >= MIN_SUBSTANTIAL_LENGTH:
        length_score = 10
    else:
        issues.append(f"document shorter than {MIN_SUBSTANTIAL_LENGTH} characters")

    confidence = min(100, vocabulary + structure + length_score)
    is_valid = confidence >= floor
    if not is_valid and not issues:
        issues.append(f"confidence {confidence} below {floor}")
    return ValidationReport(
        is_valid=is_valid,
        confidence=confidence,
        issues=issues,
        keywords=keywords,
        marker_counts=counts,
        citations=len(citations),
    )


__all__ = ["LEGAL_KEYWORDS", "validate_legal_document"]
