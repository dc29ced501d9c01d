"""Configuration model for shared Postgres substrate access."""

from __future__ import annotations

from typing import Literal
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from packages.fieldguard_shared.config import (
    FieldguardSettings,
    resolve_component_settings,
)

SslMode = Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]


class PostgresSettings(BaseModel):
    """Runtime settings for constructing Postgres engines and pools."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = ""
    host: str = "postgres"
    port: int = Field(default=5432, gt=0)
    database: str = "fieldguard"
    user: str = "fieldguard"
    password: str = "fieldguard"
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout_seconds: float = Field(default=30.0, gt=0)
    pool_pre_ping: bool = True
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    sslmode: SslMode = "prefer"
    health_timeout_seconds: float = Field(default=1.0, gt=0)
    statement_timeout_seconds: float = Field(default=2.0, gt=0)

    @field_validator("url", "host", "database", "user")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _require_connection_target(self) -> "PostgresSettings":
        if self.url:
            return self
        if not self.host:
            raise ValueError("postgres.host is required when postgres.url is unset")
        if not self.database:
            raise ValueError("postgres.database is required when postgres.url is unset")
        if not self.user:
            raise ValueError("postgres.user is required when postgres.url is unset")
        return self

    @property
    def dsn(self) -> str:
        """Return the SQLAlchemy psycopg URL, built from parts when ``url`` is unset."""
        if self.url:
            return self.url
        return (
            "postgresql+psycopg://"
            f"{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{quote_plus(self.database)}"
        )


def resolve_postgres_settings(settings: FieldguardSettings) -> PostgresSettings:
    """Resolve ``components.substrate.postgres`` into typed settings."""
    return resolve_component_settings(
        settings=settings,
        component_id="substrate_postgres",
        model=PostgresSettings,
    )
