"""Pydantic settings for Access Decision Service behavior."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.fieldguard_shared.config import (
    FieldguardSettings,
    resolve_component_settings,
)
from services.action.access_decision.component import SERVICE_COMPONENT_ID
from services.action.access_decision.domain import AccessAction


class AccessDecisionSettings(BaseModel):
    """Access Decision Service rate window, timeouts, HTTP and table settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rate_window_seconds: int = Field(default=60, gt=0)
    rate_limit_max: int = Field(default=10, ge=0)
    rate_limited_actions: tuple[AccessAction, ...] = (
        AccessAction.UPDATE,
        AccessAction.DELETE,
    )
    collaborator_timeout_seconds: float = Field(default=2.0, gt=0)
    collaborator_workers: int = Field(default=4, gt=0)
    gps_required_resource: str = "voters"

    deny_status_code: Literal[200, 403] = 403
    http_bind_host: str = "0.0.0.0"
    http_bind_port: int = Field(default=8092, gt=0, le=65535)
    http_path: str = "/v1/access/decide"
    cors_allow_origins: tuple[str, ...] = ("*",)

    backend_schema: str = "public"
    identity_table: str = "users"
    device_table: str = "monitors"
    audit_table: str = "access_audit_entries"
    run_migrations_on_startup: bool = False

    @field_validator("rate_limited_actions", mode="before")
    @classmethod
    def _parse_actions(cls, value: object) -> object:
        if isinstance(value, str):
            value = [item for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple)):
            return tuple(
                AccessAction.parse(item) if isinstance(item, str) else item
                for item in value
            )
        return value

    @field_validator("http_path")
    @classmethod
    def _require_leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("http_path must start with '/'")
        return value

    @field_validator("backend_schema", "identity_table", "device_table", "audit_table")
    @classmethod
    def _require_identifier(cls, value: str) -> str:
        if not value or not value.replace("_", "").isalnum():
            raise ValueError("table and schema names must be alphanumeric/underscore")
        return value


def resolve_access_decision_settings(
    settings: FieldguardSettings,
) -> AccessDecisionSettings:
    """Resolve access decision settings from ``components.service.access_decision``."""
    return resolve_component_settings(
        settings=settings,
        component_id=str(SERVICE_COMPONENT_ID),
        model=AccessDecisionSettings,
    )
