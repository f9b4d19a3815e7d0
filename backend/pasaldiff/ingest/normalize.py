"""Text cleaning applied to extracted page text before segmentation."""

from __future__ import annotations

import re

from pasaldiff.core.errors import InvalidInput

_CONTROL_RE = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")
_INVISIBLE_RE = re.compile("[\u00ad\u200b\u200c\u200d\u2060\ufeff]")
_HSPACE_RE = re.compile("[ \t\v\f\u00a0\u2007\u202f]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_AYAT_SPACING_RE = re.compile(r"\(\s+(\d{1,3})\s+\)|\(\s+(\d{1,3})\)|\((\d{1,3})\s+\)")

# Mojibake forms must be replaced before the single code points they decode to.
_REPLACEMENTS = (
    ("â€™", "'"),
    ("â€˜", "'"),
    ("â€œ", '"'),
    ("â€\u009d", '"'),
    ("â€”", "-"),
    ("â€“", "-"),
    ("‘", "'"),
    ("’", "'"),
    ("‚", "'"),
    ("“", '"'),
    ("”", '"'),
    ("„", '"'),
    ("–", "-"),
    ("—", "-"),
    ("‒", "-"),
)


def _ayat_label(match: re.Match[str]) -> str:
    number = next(group for group in match.groups() if group)
    return f"({number})"


def clean_text(text: str) -> str:
    """Normalise line endings, invisible characters, quotes and spacing."""
    if not text:
        return ""
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    for source, target in _REPLACEMENTS:
        cleaned = cleaned.replace(source, target)
    cleaned = _INVISIBLE_RE.sub("", cleaned)
    cleaned = _CONTROL_RE.sub("", cleaned)
    cleaned = _HSPACE_RE.sub(" ", cleaned)
    cleaned = "\n".join(line.strip() for line in cleaned.split("\n"))
    cleaned = _BLANK_RUN_RE.sub("\n\n", cleaned)
    cleaned = _AYAT_SPACING_RE.sub(_ayat_label, cleaned)
    return cleaned.strip()


def normalize_text(text: str, min_length: int = 50) -> str:
    """Clean ``text`` and reject results too short to be a legal document."""
    cleaned = clean_text(text)
    if not cleaned:
        raise InvalidInput("document text is empty after normalisation")
    if len(cleaned) < min_length:
        raise InvalidInput(
            "document text is too short to segment",
            length=len(cleaned),
            min_length=min_length,
        )
    return cleaned


__all__ = ["clean_text", "normalize_text"]
