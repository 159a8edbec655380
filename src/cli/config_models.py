"""Pydantic configuration models for cultivate."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LLM_PROVIDERS = {"auto", "claude", "openai"}


def _data_root() -> Path:
    return Path(os.getenv("CULTIVATE_HOME", "~/cultivate")).expanduser()


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Expand a `${VAR}` reference, leave literal values alone."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "auto"
    model: Optional[str] = None  # None = use provider default
    api_key: Optional[str] = None
    timeout: float = 90.0
    max_tokens: int = 2000

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_LLM_PROVIDERS:
            raise ValueError(f"Invalid LLM provider: {v}. Must be one of {VALID_LLM_PROVIDERS}")
        return v


class PathsConfig(BaseModel):
    """File paths configuration. One SQLite file holds artifacts, contacts and batches."""

    db: Path = Field(default_factory=lambda: _data_root() / "cultivate.db")
    blobs_dir: Path = Field(default_factory=lambda: _data_root() / "blobs")
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.db = self.db.expanduser()
        self.blobs_dir = self.blobs_dir.expanduser()
        if self.log_file:
            self.log_file = self.log_file.expanduser()
        return self


class PipelineConfig(BaseModel):
    """Stage timeouts and optional automatic retry."""

    extraction_timeout: float = 300.0
    ai_timeout: float = 120.0
    max_attempts: int = 1  # 1 = fail and wait for reprocess
    retry_min_wait: float = 2.0
    retry_max_wait: float = 30.0

    @field_validator("extraction_timeout", "ai_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeouts must be positive, got {v}")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_attempts must be >= 1, got {v}")
        return v


class SuggestionsConfig(BaseModel):
    """Suggestion generation and default review selection."""

    preselect_threshold: float = 0.7
    min_confidence: float = 0.5
    max_suggestions: int = 25
    max_content_chars: int = 12000

    @field_validator("preselect_threshold", "min_confidence")
    @classmethod
    def validate_unit(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Confidence thresholds must be 0-1, got {v}")
        return v


class TranscriptionConfig(BaseModel):
    """Whisper transcription service."""

    model: str = "whisper-1"
    api_key: Optional[str] = None
    base_url: str = "https://api.openai.com"


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class CultivateConfig(BaseModel):
    """Main configuration model."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    suggestions: SuggestionsConfig = Field(default_factory=SuggestionsConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        self.llm.api_key = _expand_env(self.llm.api_key)
        self.transcription.api_key = _expand_env(self.transcription.api_key)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "CultivateConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python", by_alias=True)
