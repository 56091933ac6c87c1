"""
Configuration management using Pydantic Settings.

Supports environment variables, .env files, and programmatic configuration.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Metrics reported when the caller names none
DEFAULT_METRICS = [
    "P@10",
    "P@20",
    "P@30",
    "P@50",
    "P@100",
    "P@200",
    "P@500",
    "P@1000",
    "RBP:95",
]


class EvaluationConfig(BaseSettings):
    """Configuration for batch evaluation."""

    metrics: List[str] = Field(
        default_factory=lambda: list(DEFAULT_METRICS),
        description="Metric names, e.g. 'P@10', 'ndcg@20', 'map', 'RBP:95'"
    )

    # Execution
    max_workers: int = Field(default=1, ge=1, description="Parallel workers (1 = evaluate inline)")
    chunk_size: int = Field(default=64, ge=1, description="Queries per worker task")
    executor: str = Field(default="thread", description="Worker pool: 'thread' or 'process'")

    # Query set
    include_unretrieved: bool = Field(
        default=True,
        description="Evaluate judged queries missing from the run against an empty ranking"
    )

    show_progress: bool = Field(default=False, description="Show a progress bar over query chunks")

    model_config = SettingsConfigDict(
        env_prefix="IRM_EVAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )

    @field_validator("executor")
    @classmethod
    def validate_executor(cls, v: str) -> str:
        if v not in ("thread", "process"):
            raise ValueError(f"executor must be 'thread' or 'process', got {v!r}")
        return v


class IRMetricsSettings(BaseSettings):
    """
    Unified configuration for irmetrics.

    Combines the evaluation settings with general options.
    """

    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_prefix="IRM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )


# Singleton instance
_settings: Optional[IRMetricsSettings] = None


def get_settings() -> IRMetricsSettings:
    """Get global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = IRMetricsSettings()
    return _settings


def load_config_from_dict(config_dict: Dict[str, Any]) -> IRMetricsSettings:
    """
    Load configuration from a plain dictionary.

    Expects an optional "evaluation" section; remaining keys are general settings.
    """
    evaluation_config = EvaluationConfig(**config_dict.get("evaluation", {}))
    general = {k: v for k, v in config_dict.items() if k != "evaluation"}

    return IRMetricsSettings(evaluation=evaluation_config, **general)
