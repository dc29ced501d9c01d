"""Authoritative in-process Python API for the Access Decision Service."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.fieldguard_shared.config import FieldguardSettings
from packages.fieldguard_shared.envelope import Envelope, EnvelopeMeta
from services.action.access_decision.domain import (
    AccessDecision,
    AccessHealthStatus,
    AccessRequest,
)


class AccessDecisionService(ABC):
    """Public API for gating writes by role, account status, GPS, and rate."""

    @abstractmethod
    def decide(
        self, *, request: AccessRequest, meta: EnvelopeMeta | None = None
    ) -> AccessDecision:
        """Return an allow/deny decision and append exactly one audit entry.

        Never raises for collaborator faults; those resolve to a deny with
        reason ``internal_error``.
        """

    @abstractmethod
    def health(self, *, meta: EnvelopeMeta) -> Envelope[AccessHealthStatus]:
        """Return service readiness and per-reason decision counters."""

    def close(self) -> None:
        """Release worker and connection resources held by the service."""


def build_access_decision_service(
    *, settings: FieldguardSettings
) -> AccessDecisionService:
    """Build the default Postgres-backed implementation from typed settings."""
    from services.action.access_decision.implementation import (
        DefaultAccessDecisionService,
    )

    return DefaultAccessDecisionService.from_settings(settings)
