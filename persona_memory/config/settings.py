"""Application settings and configuration schema."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field


class EngineSettings(BaseModel):
    """Thresholds and defaults used by the memory engine."""
    dedup_threshold: float = Field(0.85, ge=0.0, le=1.0)
    consolidation_threshold: float = Field(0.8, ge=0.0, le=1.0)
    default_top_k: int = Field(5, ge=1)
    default_min_similarity: float = Field(0.3, ge=-1.0, le=1.0)
    core_importance_threshold: float = 0.7
    cleanup_importance_threshold: float = 0.7
    default_embedding_model: str = "nomic-embed-text"


class OllamaSettings(BaseModel):
    """Ollama embedding endpoint configuration."""
    base_url: str = "http://localhost:11434"
    timeout: float = 30.0


class StorageSettings(BaseModel):
    """Database location."""
    db_path: str = "data/memory/memories.db"


class LoggingSettings(BaseModel):
    """Log level and renderer."""
    level: str = "INFO"
    json_output: bool = True


class ServerSettings(BaseModel):
    """HTTP server bind address and process count."""
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)
    workers: int = Field(1, ge=1)


class Settings(BaseModel):
    """Main application settings."""
    engine: EngineSettings = Field(default_factory=EngineSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


# env var -> (section, field)
_ENV_FIELDS = {
    "PERSONA_MEMORY_DEDUP_THRESHOLD": ("engine", "dedup_threshold"),
    "PERSONA_MEMORY_CONSOLIDATION_THRESHOLD": ("engine", "consolidation_threshold"),
    "PERSONA_MEMORY_TOP_K": ("engine", "default_top_k"),
    "PERSONA_MEMORY_MIN_SIMILARITY": ("engine", "default_min_similarity"),
    "PERSONA_MEMORY_EMBEDDING_MODEL": ("engine", "default_embedding_model"),
    "PERSONA_MEMORY_OLLAMA_URL": ("ollama", "base_url"),
    "PERSONA_MEMORY_OLLAMA_TIMEOUT": ("ollama", "timeout"),
    "PERSONA_MEMORY_DB_PATH": ("storage", "db_path"),
    "PERSONA_MEMORY_LOG_LEVEL": ("logging", "level"),
    "PERSONA_MEMORY_LOG_JSON": ("logging", "json_output"),
    "PERSONA_MEMORY_HOST": ("server", "host"),
    "PERSONA_MEMORY_PORT": ("server", "port"),
    "PERSONA_MEMORY_WORKERS": ("server", "workers"),
}


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from defaults overlaid with PERSONA_MEMORY_* variables.

    Args:
        env: Environment mapping (default: os.environ)

    Returns:
        Validated Settings instance

    Raises:
        pydantic.ValidationError: If an override has the wrong type or range
    """
    if env is None:
        env = os.environ

    overrides: dict = {}
    for var, (section, field) in _ENV_FIELDS.items():
        if var in env:
            overrides.setdefault(section, {})[field] = env[var]

    return Settings.model_validate(overrides)
