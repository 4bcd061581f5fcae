"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
There is no module-level settings instance: the entry point builds one and
passes it (and the per-token configs derived from it) down explicitly.
"""

from typing import Any

from loguru import logger
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledger.config.constants import (
    DB_MAX_OVERFLOW,
    DB_OPERATION_TIMEOUT,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    LOG_BATCH_QUEUE_SIZE,
    RPC_MAX_RETRIES,
    RPC_RETRY_DELAY_BASE,
)
from ledger.config.tokens import TokenConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False
    database_pool_size: int = Field(default=DB_POOL_SIZE, ge=1)
    database_max_overflow: int = Field(default=DB_MAX_OVERFLOW, ge=0)
    database_pool_recycle: int = Field(
        default=DB_POOL_RECYCLE, ge=1, description="Max connection lifetime in seconds"
    )
    database_create_tables: bool = Field(
        default=False,
        description="Create missing tables on startup instead of relying on migrations",
    )
    db_operation_timeout: float = Field(
        default=DB_OPERATION_TIMEOUT, gt=0, description="Timeout of a single store call"
    )

    # Pipeline
    queue_size: int = Field(
        default=LOG_BATCH_QUEUE_SIZE, ge=1, description="Fetched batches buffered per worker"
    )
    rpc_max_retries: int = Field(
        default=RPC_MAX_RETRIES, ge=0,
        description="Retries of the same block range inside one tick",
    )
    rpc_retry_delay_base: float = Field(default=RPC_RETRY_DELAY_BASE, ge=0)

    # Tokens (JSON list in the TOKENS variable)
    tokens: list[dict[str, Any]] = Field(default_factory=list)

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None
    health_check_port: int = Field(
        default=0, ge=0, le=65535, description="Health check HTTP port, 0 disables"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql:// or postgresql+asyncpg://"
            )
        if v.startswith("postgresql://"):
            v = "postgresql+asyncpg://" + v[len("postgresql://"):]
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production" and self.database_create_tables:
            logger.warning(
                "DATABASE_CREATE_TABLES is enabled in production. "
                "Prefer running alembic migrations."
            )
        return self

    def get_token_configs(self) -> list[TokenConfig]:
        """
        Parse token entries, skipping invalid ones.

        An invalid entry only prevents its own worker from starting.

        Returns:
            Valid token configurations in declaration order
        """
        result: list[TokenConfig] = []
        seen: set[str] = set()

        for index, raw in enumerate(self.tokens):
            try:
                token = TokenConfig.model_validate(raw)
            except ValidationError as e:
                logger.error(
                    f"Invalid token config #{index} "
                    f"({raw.get('name') or raw.get('token_name') or '?'}): {e}"
                )
                continue

            if token.token_name in seen:
                logger.error(
                    f"Duplicate token name {token.token_name} in config #{index}, skipped"
                )
                continue

            seen.add(token.token_name)
            result.append(token)

        return result
