"""Configuration management for AI News Daily."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL_CONFIG = Path(__file__).parent / "models.yaml"


class ModelRoute(BaseModel):
    """Local inference pipeline configuration."""
    task: str
    model: str
    options: dict[str, Any] = Field(default_factory=dict)


class ModelSettings(BaseModel):
    """Settings shared by all local model pipelines."""
    timeout_seconds: float = 20.0
    ner_min_score: float = 0.8
    language_skip_confidence: float = 0.9
    max_input_chars: int = 1000
    device: int = -1


class Settings(BaseSettings):
    """Main application settings."""

    # ── Storage ────────────────────────────────────────────────────────────
    data_dir: Path = Field(Path("./data"), description="Directory holding raw and processed documents")
    raw_filename: str = Field("latest-raw.json", description="Raw items document written by the crawler")
    dataset_filename: str = Field("latest-processed.json", description="Processed dataset document")
    write_dated_copy: bool = Field(True, description="Also write YYYY-MM-DD-processed.json")

    # ── Processing Settings ────────────────────────────────────────────────
    confidence_threshold: float | None = Field(
        None, description="Minimum classification confidence for an item to be published"
    )
    processing_limit: int | None = Field(
        None, description="Maximum number of new items classified per run"
    )
    retention_days: int = Field(15, description="Maximum age of an item kept in the dataset")
    near_duplicate_threshold: float = Field(0.8, description="Title token-set similarity for near-duplicates")
    workers: int = Field(4, description="Concurrent per-item workers")

    # ── Local Models ───────────────────────────────────────────────────────
    rules_only: bool = Field(False, description="Skip local model loading and use rule-based paths")
    model_timeout_seconds: float | None = Field(None, description="Override for the per-call model timeout")
    model_config_path: Path = Field(DEFAULT_MODEL_CONFIG, description="Model routes YAML file")
    models: ModelSettings = Field(default_factory=ModelSettings, description="Local model settings")

    # ── Logging ────────────────────────────────────────────────────────────
    log_level: str = Field("INFO", description="Log level")
    json_logging: bool = Field(True, description="Enable JSON logging")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )

    @field_validator("data_dir")
    @classmethod
    def ensure_directories(cls, v: Path) -> Path:
        """Ensure the data directory exists."""
        from .utils import ensure_directory
        ensure_directory(v, mode=0o755)
        return v.resolve()

    @field_validator("confidence_threshold", "near_duplicate_threshold")
    @classmethod
    def validate_threshold(cls, v: float | None) -> float | None:
        """Validate threshold values are between 0 and 1."""
        if v is not None and not 0 <= v <= 1:
            raise ValueError("Threshold must be between 0 and 1")
        return v

    @field_validator("processing_limit")
    @classmethod
    def validate_limit(cls, v: int | None) -> int | None:
        """Validate the processing limit."""
        if v is not None and v < 1:
            raise ValueError("Processing limit must be positive")
        return v

    @field_validator("retention_days", "workers")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @property
    def raw_path(self) -> Path:
        return self.data_dir / self.raw_filename

    @property
    def dataset_path(self) -> Path:
        return self.data_dir / self.dataset_filename


class ModelConfig:
    """Model configuration loader."""

    ROUTES = ("language", "classifier", "summarizer", "ner")

    def __init__(self, config_path: str | Path = DEFAULT_MODEL_CONFIG):
        self.config_path = Path(config_path)
        self._config: dict[str, Any] = {}
        self.load_config()

    def load_config(self) -> None:
        """Load model configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Model config file not found: {self.config_path}")

        with open(self.config_path, encoding="utf-8") as f:
            self._config = yaml.safe_load(f) or {}

    def get_route(self, route_name: str) -> ModelRoute:
        """Get a model route configuration."""
        if route_name not in self._config:
            raise ValueError(f"Model route '{route_name}' not found in config")

        return ModelRoute(**self._config[route_name])

    def get_model_settings(self) -> ModelSettings:
        """Get model settings."""
        settings_data = self._config.get("model_settings", {})
        return ModelSettings(**settings_data)


# Global instances
settings = Settings()
model_config = ModelConfig(settings.model_config_path)

# Populate settings with model config
settings.models = model_config.get_model_settings()
if settings.model_timeout_seconds is not None:
    settings.models.timeout_seconds = settings.model_timeout_seconds


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def get_model_config() -> ModelConfig:
    """Get model configuration."""
    return model_config


def validate_config(settings: Settings) -> bool:
    """Validate configuration completeness for a pipeline run."""
    try:
        if settings.confidence_threshold is None:
            raise ValueError("CONFIDENCE_THRESHOLD is required (or pass --threshold)")

        config = ModelConfig(settings.model_config_path)
        for route in ModelConfig.ROUTES:
            config.get_route(route)

        return True

    except Exception as e:
        print(f"Configuration validation failed: {e}")
        return False


if __name__ == "__main__":
    if validate_config(get_settings()):
        print("✅ Configuration is valid")
    else:
        print("❌ Configuration validation failed")
        exit(1)
