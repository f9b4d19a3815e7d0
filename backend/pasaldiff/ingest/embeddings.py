"""Embedding backends and clause-to-vector pairing."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from abc import ABC, abstractmethod
from array import array
from dataclasses import dataclass
from typing import Iterable, Sequence

import requests

from pasaldiff.core.config import Settings
from pasaldiff.core.errors import DependencyRejected, DependencyUnavailable, IntegrityViolation, InvalidInput
from pasaldiff.core.metrics import EMBEDDING_REQUESTS
from pasaldiff.core.retry import retry_with_backoff
from pasaldiff.models.entities import Clause, ClauseEmbedding

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")
_WHITESPACE_RE = re.compile(r"\s+")

MAX_EMBED_CHARS = 30000
# A cut sentence is kept only when at least this share of the limit survives.
_SENTENCE_KEEP_RATIO = 0.8
# Client errors worth another attempt: request timeout and rate limiting.
_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


@dataclass(slots=True)
class EmbeddingBatch:
    vectors: list[list[float]]
    model: str
    dim: int
    backend: str


class EmbeddingProvider(ABC):
    """Text in, fixed-dimension vectors out."""

    backend = "abstract"

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @property
    @abstractmethod
    def dim(self) -> int:
        ...

    @abstractmethod
    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:
        ...


class HashedEmbeddingModel(EmbeddingProvider):
    """Lightweight hashed bag-of-words model with deterministic output."""

    backend = "hashed"

    def __init__(self, model_name: str = "hashed-384", dim: int = 384) -> None:
        self._model_name = model_name
        self._dim = dim

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:
        vectors: list[list[float]] = []
        for text in texts:
            vector = [0.0] * self._dim
            for token in _tokenize(text):
                vector[_hash_token(token, self._dim)] += 1.0
            _normalize(vector)
            vectors.append(vector)
        return EmbeddingBatch(vectors=vectors, model=self._model_name, dim=self._dim, backend=self.backend)


class HttpEmbeddingClient(EmbeddingProvider):
    """Client for an OpenAI-compatible ``/embeddings`` endpoint."""

    backend = "http"

    def __init__(
        self,
        base_url: str,
        model_name: str,
        dim: int,
        api_key: str | None = None,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._model_name = model_name
        self._dim = dim
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            response = self.session.post(
                f"{self.base_url}/embeddings",
                json={"model": self._model_name, "input": list(texts)},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DependencyUnavailable(f"embedding service unreachable: {exc}", backend=self.backend) from exc
        status = response.status_code
        if 400 <= status < 500 and status not in _RETRYABLE_CLIENT_STATUSES:
            raise DependencyRejected(
                f"embedding service rejected the request with HTTP {status}",
                backend=self.backend,
                status_code=status,
            )
        if status >= 400:
            raise DependencyUnavailable(
                f"embedding service returned HTTP {status}",
                backend=self.backend,
                status_code=status,
            )
        try:
            data = response.json()["data"]
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            vectors = [list(map(float, item["embedding"])) for item in ordered]
        except (ValueError, KeyError, TypeError) as exc:
            raise DependencyUnavailable(f"malformed embedding response: {exc}", backend=self.backend) from exc
        return EmbeddingBatch(vectors=vectors, model=self._model_name, dim=self._dim, backend=self.backend)


class SentenceTransformerEmbeddingModel(EmbeddingProvider):
    """Local semantic embeddings via sentence-transformers (optional extra)."""

    backend = "sentence-transformers"

    def __init__(self, model_name: str = "paraphrase-multilingual-MiniLM-L12-v2", dim: int = 384) -> None:
        from sentence_transformers import SentenceTransformer

        self._model = SentenceTransformer(model_name)
        self._model_name = model_name
        self._dim = dim

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dim(self) -> int:
        return self._dim

    def encode(self, texts: Sequence[str]) -> EmbeddingBatch:
        vectors = self._model.encode(list(texts), normalize_embeddings=True)
        return EmbeddingBatch(
            vectors=[vector.tolist() for vector in vectors],
            model=self._model_name,
            dim=self._dim,
            backend=self.backend,
        )


def get_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Build the provider selected by ``embedding_backend``."""
    if settings.embedding_backend == "http":
        if not settings.embedding_url:
            raise InvalidInput("embedding_url is required for the http embedding backend")
        return HttpEmbeddingClient(
            base_url=settings.embedding_url,
            model_name=settings.embedding_model,
            dim=settings.embedding_dim,
            api_key=settings.embedding_api_key,
            timeout=settings.embedding_timeout_seconds,
        )
    if settings.embedding_backend == "sentence-transformers":
        return SentenceTransformerEmbeddingModel(settings.embedding_model, dim=settings.embedding_dim)
    return HashedEmbeddingModel(settings.embedding_model, dim=settings.embedding_dim)


def prepare_for_embedding(text: str, max_chars: int = MAX_EMBED_CHARS) -> str:
    """Collapse whitespace and cut overlong text, at a sentence end when one is close."""
    cleaned = _WHITESPACE_RE.sub(" ", text or "").strip()
    if not cleaned:
        raise InvalidInput("text is empty after cleaning for embedding")
    if len(cleaned) <= max_chars:
        return cleaned
    logger.warning(
        "Truncating embedding input from %d to %d characters",
        len(cleaned),
        max_chars,
        extra={"ctx_original_chars": len(cleaned), "ctx_max_chars": max_chars},
    )
    cut = cleaned[:max_chars]
    last_stop = cut.rfind(".")
    if last_stop > max_chars * _SENTENCE_KEEP_RATIO:
        cut = cut[: last_stop + 1]
    return cut


def embed_texts(provider: EmbeddingProvider, texts: Sequence[str], settings: Settings) -> list[list[float]]:
    """Encode one batch with retries, checking the vector count."""
    prepared = [prepare_for_embedding(text, settings.embedding_max_chars) for text in texts]

    def call() -> EmbeddingBatch:
        try:
            batch = provider.encode(prepared)
        except (DependencyUnavailable, DependencyRejected):
            EMBEDDING_REQUESTS.labels(backend=provider.backend, status="error").inc()
            raise
        EMBEDDING_REQUESTS.labels(backend=provider.backend, status="ok").inc()
        return batch

    batch = retry_with_backoff(
        call,
        max_attempts=settings.retry_max_attempts,
        delay=settings.retry_delay_seconds,
        backoff_multiplier=settings.retry_backoff_multiplier,
        operation=f"embed[{provider.backend}]",
    )
    if len(batch.vectors) != len(texts):
        raise IntegrityViolation(
            "embedding count does not match input count",
            expected=len(texts),
            received=len(batch.vectors),
        )
    return batch.vectors


def embed_clauses(
    clauses: Sequence[Clause],
    provider: EmbeddingProvider,
    settings: Settings,
) -> list[ClauseEmbedding]:
    """Embed clauses in sub-batches, pairing each vector with its clause id."""
    results: list[ClauseEmbedding] = []
    size = settings.embedding_batch_size
    for offset in range(0, len(clauses), size):
        batch = clauses[offset : offset + size]
        vectors = embed_texts(provider, [clause.text for clause in batch], settings)
        for clause, vector in zip(batch, vectors):
            results.append(ClauseEmbedding(clause_id=clause.id, vector=vector, model=provider.model_name))
    logger.debug("Embedded %d clauses with %s", len(results), provider.model_name)
    return results


def as_bytes(vector: Iterable[float]) -> bytes:
    return array("f", vector).tobytes()


def from_bytes(blob: bytes) -> list[float]:
    arr = array("f")
    arr.frombytes(blob)
    return arr.tolist()


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "EmbeddingBatch",
    "EmbeddingProvider",
    "HashedEmbeddingModel",
    "HttpEmbeddingClient",
    "SentenceTransformerEmbeddingModel",
    "get_embedding_provider",
    "prepare_for_embedding",
    "embed_texts",
    "embed_clauses",
    "as_bytes",
    "from_bytes",
    "cosine",
]
