"""Application configuration loaded from the environment."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class CacheConfig(BaseSettings):
    """Consumer-side rule cache configuration."""

    model_config = {"env_prefix": "RECOGNITION_CACHE_"}

    ttl_seconds: int = 30 * 60


class RuleApiConfig(BaseSettings):
    """Where disconnected clients fetch tree-form rules from."""

    model_config = {"env_prefix": "RECOGNITION_API_"}

    base_url: str = "https://localhost:5001"
    rules_path: str = "/api/recognition-rules/active"
    timeout_seconds: int = 30
    max_retries: int = 3
    backoff_seconds: float = 0.5


class FormulaConfig(BaseSettings):
    """Limits applied to administrator-authored rules."""

    model_config = {"env_prefix": "RECOGNITION_FORMULA_"}

    max_formula_length: int = 500
    max_root_node_length: int = 100


class DatabaseConfig(BaseSettings):
    """Rule persistence configuration. No URL means in-memory stores."""

    model_config = {"env_prefix": "RECOGNITION_DB_"}

    url: str | None = None
    echo: bool = False
    pool_size: int = 5
    create_tables: bool = False


class Settings(BaseSettings):
    """Root application settings."""

    model_config = {"env_prefix": "RECOGNITION_"}

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    cache: CacheConfig = Field(default_factory=CacheConfig)
    api: RuleApiConfig = Field(default_factory=RuleApiConfig)
    formula: FormulaConfig = Field(default_factory=FormulaConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
