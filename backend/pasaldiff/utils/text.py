"""Text processing helpers shared by the diff engine and conflict detector."""

from __future__ import annotations

import re

WHITESPACE_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

# Function words that carry no topical signal in Indonesian legislation.
STOPWORDS_ID = frozenset(
    {
        "yang", "dan", "atau", "di", "ke", "dari", "dalam", "untuk", "pada", "dengan",
        "oleh", "sebagai", "adalah", "ini", "itu", "tersebut", "tentang", "terhadap",
        "bagi", "serta", "secara", "akan", "telah", "juga", "sesuai", "setiap", "atas",
        "para", "suatu", "sebagaimana", "dimaksud", "hal", "antara", "lain", "lebih",
        "paling", "sampai", "maka", "jika", "apabila", "karena", "agar", "dapat",
        "tidak", "wajib", "harus", "dilarang", "boleh", "berhak", "ayat", "pasal",
        "huruf", "angka", "nomor", "tahun",
    }
)


def normalize(text: str) -> str:
    """Collapse whitespace and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


def comparable(text: str) -> str:
    """Lower-case, punctuation-free, single-spaced form used for similarity."""
    return normalize(_PUNCT_RE.sub(" ", text.lower()))


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def content_tokens(text: str) -> set[str]:
    """Distinct tokens minus stopwords and bare numbers."""
    return {token for token in tokenize(text) if token not in STOPWORDS_ID and not token.isdigit() and len(token) > 2}


def jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def excerpt(text: str, limit: int = 200) -> str:
    """Single-line prefix of ``text`` capped at ``limit`` characters."""
    flat = normalize(text)
    if len(flat) <= limit:
        return flat
    return flat[:limit].rstrip() + "..."
