"""
Domain dataclasses and enums used across the gateway.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional


class Role(str, Enum):
    ADMIN = "admin"
    PRACTITIONER = "practitioner"
    PATIENT = "patient"
    PHARMACIST = "pharmacist"

    @classmethod
    def parse(cls, value) -> "Role":
        """Case-fold a role string from a token into its canonical member."""
        if isinstance(value, Role):
            return value
        text = str(value or "").strip().lower()
        for role in cls:
            if role.value == text:
                return role
        raise ValueError(f"Unsupported role '{value}'.")


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    SEARCH = "search"


class DecisionReason(str, Enum):
    """Why a decision came out the way it did. Only logged, never returned to callers."""

    # allow
    OPEN_ROUTE = "open_route"
    ROLE_ONLY = "role_only"
    ADMIN = "admin"
    PERMITTED = "permitted"
    SCOPED = "scoped"
    # deny
    UNAUTHENTICATED = "unauthenticated"
    ROLE_MISMATCH = "role_mismatch"
    OWNERSHIP_DENIED = "ownership_denied"
    ROLE_RESOURCE_ACTION_DENIED = "role_resource_action_denied"
    MISCONFIGURED_ROUTE = "misconfigured_route"


class RelationKind(str, Enum):
    """How a resource type relates to the principal for ownership checks."""
    SELF_RECORD = "self_record"
    PATIENT_OF_PRINCIPAL = "patient_of_principal"
    PRACTITIONER_OF_PRINCIPAL = "practitioner_of_principal"
    UNRESTRICTED = "unrestricted"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller for one request."""
    subject_id: str
    role: Role
    email: Optional[str] = None
    linked_resource_id: Optional[str] = None    # FHIR id of the caller's own record
    linked_resource_type: Optional[str] = None  # "Patient" / "Practitioner"


@dataclass(frozen=True)
class RouteAuthSpec:
    """Authorization metadata registered alongside a route at startup."""
    required_roles: FrozenSet[Role] = frozenset()
    resource_type: Optional[str] = None
    action: Optional[Action] = None

    def __post_init__(self):
        object.__setattr__(self, "required_roles", frozenset(Role.parse(r) for r in self.required_roles))
        if self.action is not None:
            object.__setattr__(self, "action", Action(self.action))

    @property
    def is_open(self) -> bool:
        return not self.required_roles

    @property
    def is_role_only(self) -> bool:
        return self.resource_type is None or self.action is None

    @staticmethod
    def builder() -> "RouteAuthSpecBuilder":
        return RouteAuthSpecBuilder()


class RouteAuthSpecBuilder:
    """Fluent construction of a RouteAuthSpec, e.g.

        RouteAuthSpec.builder().roles(Role.ADMIN).resource("Patient", Action.READ).build()
    """

    def __init__(self):
        self._roles = set()
        self._resource_type = None
        self._action = None

    def roles(self, *roles) -> "RouteAuthSpecBuilder":
        self._roles.update(Role.parse(r) for r in roles)
        return self

    def resource(self, resource_type: str, action) -> "RouteAuthSpecBuilder":
        if not resource_type or action is None:
            raise ValueError("A route resource needs both a resource type and an action.")
        self._resource_type = resource_type
        self._action = Action(action)
        return self

    def build(self) -> RouteAuthSpec:
        return RouteAuthSpec(
            required_roles=frozenset(self._roles),
            resource_type=self._resource_type,
            action=self._action,
        )


@dataclass(frozen=True)
class AccessRequest:
    principal: Principal
    route: RouteAuthSpec
    resource_id: Optional[str] = None
    query_params: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: DecisionReason
    mutated_query: Optional[Dict[str, str]] = None
    # Set when a search degrades to fetching the caller's own record
    direct_fetch_id: Optional[str] = None

    @classmethod
    def allow(cls, reason: DecisionReason, **kwargs) -> "AccessDecision":
        return cls(allowed=True, reason=reason, **kwargs)

    @classmethod
    def deny(cls, reason: DecisionReason) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class AccessContext:
    """Passed explicitly to guarded view functions."""
    route: RouteAuthSpec
    decision: AccessDecision
    principal: Optional[Principal] = None
