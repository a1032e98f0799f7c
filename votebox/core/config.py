"""Configuration management for the voting backend."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StoreBackend = Literal["firestore", "sql", "memory"]
IdentityBackend = Literal["firebase", "jwt"]


class Settings(BaseSettings):
    app_name: str = Field(default="Voting Backend")
    version: str = Field(default="0.1.0")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str = Field(default="/openapi.json")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)

    linkedin_client_id: str | None = Field(default=None)
    linkedin_client_secret: str | None = Field(default=None)
    linkedin_redirect_uri: str | None = Field(default=None)
    linkedin_scope: str = Field(default="r_liteprofile r_emailaddress")
    linkedin_timeout_seconds: float = Field(default=10.0)
    oauth_post_message_origin: str = Field(default="*")

    store_backend: StoreBackend = Field(default="firestore")
    database_url: str = Field(default="sqlite+pysqlite:///./votebox.db")

    identity_backend: IdentityBackend = Field(default="firebase")
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60)
    admin_uids: list[str] = Field(default_factory=list)

    firebase_credentials_path: str | None = Field(default=None)
    firebase_project_id: str | None = Field(default=None)

    transaction_max_attempts: int = Field(default=5, ge=1)
    transaction_timeout_seconds: float = Field(default=10.0, gt=0)

    rate_limit: str = Field(default="100/15 minutes")
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: str = Field(default="memory://")

    max_body_bytes: int = Field(default=10 * 1024)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    log_config_path: str | None = Field(default=None)
    log_level: str | None = Field(default=None)

    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=False)
    otel_exporter_endpoint: str | None = Field(default=None)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @property
    def linkedin_configured(self) -> bool:
        return bool(self.linkedin_client_id and self.linkedin_client_secret and self.linkedin_redirect_uri)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["IdentityBackend", "Settings", "StoreBackend", "get_settings"]
