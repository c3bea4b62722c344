"""
Pydantic settings for the tag benchmark.

Values come from environment variables prefixed with ``TAGBENCH_`` or from
a ``.env`` file in the working directory. Command line flags override the
benchmark defaults defined here.
"""

from typing import Optional

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Benchmark settings loaded from environment variables.

    Example:
        TAGBENCH_POSTGRES_HOST=db TAGBENCH_DATA_SIZE=5000 tagbench --type search
    """

    model_config = SettingsConfigDict(
        env_prefix="TAGBENCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================
    # PostgreSQL Configuration
    # ==========================================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "tagbench"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    # Full SQLAlchemy URL; wins over the components above when set
    postgres_url: str = ""
    postgres_pool_size: int = 5
    postgres_max_overflow: int = 10

    # ==========================================
    # DuckDB Configuration
    # ==========================================
    duckdb_database: str = ":memory:"

    # ==========================================
    # Logging
    # ==========================================
    log_level: str = "INFO"
    log_json: bool = False

    # ==========================================
    # Benchmark defaults
    # ==========================================
    data_size: int = 100_000
    search_iterations: int = 1000
    warmup_iterations: int = 100
    write_test_size: int = 10_000
    batch_size: int = 1000
    seed: Optional[int] = None

    @field_validator("data_size", "search_iterations", "write_test_size", "batch_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("warmup_iterations")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @computed_field
    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL for PostgreSQL (asyncpg driver)."""
        if self.postgres_url:
            return self.postgres_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


# ==========================================
# Singleton Access
# ==========================================
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the singleton Settings instance.

    Raises:
        ValidationError: If an environment value is invalid
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (for testing purposes)."""
    global _settings
    _settings = None
