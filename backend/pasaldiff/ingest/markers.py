"""Line-anchored grammar for Indonesian statute structure."""

from __future__ import annotations

import re
from dataclasses import dataclass

from pasaldiff.models.entities import ClauseType

_ROMAN = r"[IVXLCDM]+"

_BAB_RE = re.compile(rf"^(?:BAB|Bab)\s+(?P<label>{_ROMAN}|\d{{1,3}})(?:\s+(?P<rest>.*))?$")
_BAGIAN_RE = re.compile(
    rf"^(?:BAGIAN|Bagian)\s+(?P<label>Ke[a-z]+|KE[A-Z]+|Pertama|PERTAMA|{_ROMAN}|\d{{1,3}})(?:\s+(?P<rest>.*))?$"
)
_PARAGRAF_RE = re.compile(rf"^(?:PARAGRAF|Paragraf)\s+(?P<label>\d{{1,3}}|{_ROMAN})(?:\s+(?P<rest>.*))?$")
_PASAL_RE = re.compile(rf"^(?:PASAL|Pasal)\s+(?P<label>\d{{1,4}}[A-Z]?|{_ROMAN})$")
_AYAT_RE = re.compile(r"^\((?P<label>\d{1,3})\)\s*(?P<rest>.*)$")
_HURUF_RE = re.compile(
    r"^(?:(?:huruf|Huruf)\s+(?P<word>[a-z])\.|(?P<dot>[a-z])\.|(?P<paren>[a-z])\))(?:\s+(?P<rest>.*))?$"
)
_ANGKA_RE = re.compile(
    r"^(?:(?:angka|Angka)\s+(?P<word>\d{1,3})\.|(?P<dot>\d{1,3})\.|(?P<paren>\d{1,3})\))(?:\s+(?P<rest>.*))?$"
)

_ELUCIDATION_RE = re.compile(r"^PENJELASAN(?:\s|:|$)")

_NOISE_PATTERNS = (
    re.compile(r"^\d{1,4}$"),
    re.compile(r"^-\s*\d{1,4}\s*-$"),
    re.compile(r"^(?:Halaman|Hal\.)\s*\d{1,4}(?:\s*(?:dari|/)\s*\d{1,4})?$", re.IGNORECASE),
    re.compile(r"^(?:https?://|www\.)\S*$", re.IGNORECASE),
    re.compile(r"^\S*jdih\.\S+$", re.IGNORECASE),
)


@dataclass(slots=True)
class Marker:
    clause_type: ClauseType
    label: str
    rest: str

    @property
    def ref(self) -> str:
        return format_ref(self.clause_type, self.label)


def format_ref(clause_type: ClauseType, label: str) -> str:
    """Canonical clause reference, e.g. ``Pasal 3`` or ``Ayat (2)``."""
    if clause_type is ClauseType.BAB:
        return f"BAB {label.upper()}"
    if clause_type is ClauseType.BAGIAN:
        return f"Bagian {label.capitalize() if not re.fullmatch(_ROMAN, label) else label}"
    if clause_type is ClauseType.AYAT:
        return f"Ayat ({label})"
    return f"{clause_type.value.capitalize()} {label}"


def _tagged(match: re.Match[str]) -> str:
    return next(match.group(name) for name in ("word", "dot", "paren") if match.group(name))


def detect_marker(line: str) -> Marker | None:
    """Return the structural marker opening ``line``, if any."""
    if not line:
        return None
    for clause_type, pattern in (
        (ClauseType.BAB, _BAB_RE),
        (ClauseType.BAGIAN, _BAGIAN_RE),
        (ClauseType.PARAGRAF, _PARAGRAF_RE),
        (ClauseType.PASAL, _PASAL_RE),
        (ClauseType.AYAT, _AYAT_RE),
    ):
        match = pattern.match(line)
        if match:
            rest = match.groupdict().get("rest") or ""
            return Marker(clause_type=clause_type, label=match.group("label"), rest=rest.strip())
    for clause_type, pattern in ((ClauseType.HURUF, _HURUF_RE), (ClauseType.ANGKA, _ANGKA_RE)):
        match = pattern.match(line)
        if match:
            return Marker(clause_type=clause_type, label=_tagged(match), rest=(match.group("rest") or "").strip())
    return None


def is_elucidation_header(line: str) -> bool:
    return bool(_ELUCIDATION_RE.match(line))


def is_noise(line: str) -> bool:
    """Page furniture such as page numbers and repository URLs."""
    return any(pattern.match(line) for pattern in _NOISE_PATTERNS)


__all__ = ["Marker", "format_ref", "detect_marker", "is_elucidation_header", "is_noise"]
