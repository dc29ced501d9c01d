"""Declarative role policy table and its evaluator."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from services.action.access_decision.domain import (
    AccessAction,
    PolicyDenialDetail,
    Role,
)

ANY_RESOURCE = "*"
MUTATING_ACTIONS: frozenset[AccessAction] = frozenset(
    {AccessAction.CREATE, AccessAction.UPDATE, AccessAction.DELETE}
)


class RolePolicy(BaseModel):
    """Allow/deny table for one role over (action, resource_type).

    Rules apply in field order: ``allow_all`` wins outright, then the resource
    allow list, then mutation bans, then per-resource forbidden actions.
    ``resources_allow=None`` means every resource is reachable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_all: bool = False
    resources_allow: frozenset[str] | None = None
    mutation_deny_resources: frozenset[str] = frozenset()
    forbidden_actions: dict[str, frozenset[AccessAction]] = Field(default_factory=dict)
    mutation_denial_detail: PolicyDenialDetail = (
        PolicyDenialDetail.RESTRICTED_RESOURCE_FOR_ADMIN
    )

    def evaluate(
        self, *, action: AccessAction, resource_type: str
    ) -> PolicyDenialDetail | None:
        """Return ``None`` on allow, else the denial sub-reason."""
        if self.allow_all:
            return None
        if self.resources_allow is not None and resource_type not in self.resources_allow:
            return PolicyDenialDetail.RESOURCE_NOT_ALLOWED_FOR_ROLE
        if action in MUTATING_ACTIONS and resource_type in self.mutation_deny_resources:
            return self.mutation_denial_detail
        forbidden = self.forbidden_actions.get(resource_type, frozenset()) | (
            self.forbidden_actions.get(ANY_RESOURCE, frozenset())
        )
        if action in forbidden:
            return PolicyDenialDetail.DESTRUCTIVE_ACTION_FORBIDDEN
        return None


DEFAULT_ROLE_POLICIES: Mapping[Role, RolePolicy] = MappingProxyType(
    {
        Role.SUPER_ADMIN: RolePolicy(allow_all=True),
        Role.ADMIN: RolePolicy(
            mutation_deny_resources=frozenset({"users", "roles", "salaries"}),
        ),
        Role.MONITOR: RolePolicy(
            resources_allow=frozenset(
                {"voters", "families", "reports", "issues", "route_history"}
            ),
            forbidden_actions={"voters": frozenset({AccessAction.DELETE})},
        ),
        Role.VOTER: RolePolicy(
            resources_allow=frozenset({"voters", "families", "issues"}),
            forbidden_actions={ANY_RESOURCE: frozenset({AccessAction.DELETE})},
        ),
    }
)


class RolePolicyTable:
    """Immutable Role -> RolePolicy lookup; unknown roles resolve to ``None``."""

    def __init__(self, policies: Mapping[Role, RolePolicy] | None = None) -> None:
        self._policies = MappingProxyType(
            dict(DEFAULT_ROLE_POLICIES if policies is None else policies)
        )

    def resolve_role(self, raw_role: str) -> Role | None:
        """Return the enum role only when it is known and has a policy entry."""
        try:
            role = Role(raw_role)
        except ValueError:
            return None
        return role if role in self._policies else None

    def evaluate(
        self, *, role: Role, action: AccessAction, resource_type: str
    ) -> PolicyDenialDetail | None:
        return self._policies[role].evaluate(action=action, resource_type=resource_type)
