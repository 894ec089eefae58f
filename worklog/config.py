"""Application configuration using Pydantic Settings."""
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Worklog settings, read from the environment or a ``.env`` file.

    Only ``JWT_SECRET`` has no default; tokens are issued by the hosted auth
    provider with the same secret.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Storage
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "worklog"

    # Bearer tokens
    jwt_secret: str = Field(min_length=1)
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = Field(default=10080, gt=0)  # 7 days

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, gt=0, lt=65536)
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Seconds between refreshes of a running timer's elapsed counter
    timer_tick_seconds: float = Field(default=1.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS origins from the comma-separated setting, blanks dropped."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


settings = Settings()
