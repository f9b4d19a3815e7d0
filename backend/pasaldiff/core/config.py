"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "PASALDIFF_"
DEFAULT_CONFIG_PATH = Path("~/.config/pasal-diff/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "url"): "embedding_url",
    ("embeddings", "api_key"): "embedding_api_key",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "batch_size"): "embedding_batch_size",
    ("embeddings", "timeout_seconds"): "embedding_timeout_seconds",
    ("embeddings", "max_chars"): "embedding_max_chars",
    ("segmenter", "min_document_chars"): "min_document_chars",
    ("segmenter", "validation_floor"): "validation_floor",
    ("diff", "unchanged_threshold"): "unchanged_threshold",
    ("diff", "same_clause_floor"): "same_clause_floor",
    ("conflicts", "threshold"): "conflict_threshold",
    ("conflicts", "top_k"): "conflict_top_k",
    ("retry", "max_attempts"): "retry_max_attempts",
    ("retry", "delay_seconds"): "retry_delay_seconds",
    ("retry", "backoff_multiplier"): "retry_backoff_multiplier",
    ("cache", "ttl_seconds"): "cache_ttl_seconds",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".pasal-diff" / "pasal.db")
    embedding_backend: Literal["hashed", "http", "sentence-transformers"] = "hashed"
    embedding_model: str = "hashed-384"
    embedding_url: str | None = None
    embedding_api_key: str | None = None
    embedding_dim: int = Field(default=384, ge=8)
    embedding_batch_size: int = Field(default=100, ge=1)
    embedding_timeout_seconds: float = 30.0
    embedding_max_chars: int = Field(default=30000, ge=100)
    min_document_chars: int = Field(default=50, ge=1)
    validation_floor: int = Field(default=50, ge=0, le=100)
    unchanged_threshold: float = Field(default=0.95, gt=0.0, le=1.0)
    same_clause_floor: float = Field(default=0.3, ge=0.0, lt=1.0)
    conflict_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    conflict_top_k: int = Field(default=10, ge=1, le=200)
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=0.5, ge=0.0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.0)
    cache_ttl_seconds: float = Field(default=600.0, ge=0.0)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @model_validator(mode="after")
    def _check_thresholds(self) -> "Settings":
        if self.same_clause_floor >= self.unchanged_threshold:
            raise ValueError("same_clause_floor must be lower than unchanged_threshold")
        return self

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with PASALDIFF_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
