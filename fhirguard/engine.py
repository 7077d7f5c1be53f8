"""
Access decision engine – the single entry point callers use to authorize a request.

The steps run in a fixed order and stop at the first one that determines the
outcome. Anything that matches no rule ends in a deny.
"""

import logging
from typing import Mapping, Optional

from fhirguard.authn import PrincipalAuthenticator
from fhirguard.errors import OwnershipDenied
from fhirguard.models import (
    AccessContext,
    AccessDecision,
    AccessRequest,
    Action,
    DecisionReason,
    RelationKind,
    Role,
    RouteAuthSpec,
)
from fhirguard.ownership import OwnershipValidator
from fhirguard.permissions import DEFAULT_MATRIX, PermissionMatrix
from fhirguard.scoping import QueryScopeBuilder

logger = logging.getLogger(__name__)


class AccessDecisionEngine:

    def __init__(
        self,
        authenticator: PrincipalAuthenticator,
        matrix: PermissionMatrix = DEFAULT_MATRIX,
        ownership: Optional[OwnershipValidator] = None,
        scope_builder: Optional[QueryScopeBuilder] = None,
    ):
        self.authenticator = authenticator
        self.matrix = matrix
        self.ownership = ownership or OwnershipValidator()
        self.scope_builder = scope_builder or QueryScopeBuilder(self.ownership)

    def evaluate(
        self,
        route: RouteAuthSpec,
        authorization_header: Optional[str],
        resource_id: Optional[str] = None,
        query_params: Optional[Mapping[str, str]] = None,
    ) -> AccessDecision:
        """Authenticate the caller and decide. Raises Unauthenticated."""
        return self.authorize(route, authorization_header, resource_id, query_params).decision

    def authorize(
        self,
        route: RouteAuthSpec,
        authorization_header: Optional[str],
        resource_id: Optional[str] = None,
        query_params: Optional[Mapping[str, str]] = None,
    ) -> AccessContext:
        """Like evaluate(), but also hands back the authenticated principal."""
        if route.is_open:
            return AccessContext(route=route, decision=AccessDecision.allow(DecisionReason.OPEN_ROUTE))

        principal = self.authenticator.authenticate(authorization_header)
        decision = self.decide(AccessRequest(
            principal=principal,
            route=route,
            resource_id=resource_id,
            query_params=query_params,
        ))
        return AccessContext(route=route, decision=decision, principal=principal)

    def decide(self, request: AccessRequest) -> AccessDecision:
        """Decide for an already authenticated principal. Pure and deterministic."""
        principal, route = request.principal, request.route

        if route.is_open:
            return AccessDecision.allow(DecisionReason.OPEN_ROUTE)

        if principal.role not in route.required_roles:
            return self._deny(request, DecisionReason.ROLE_MISMATCH)

        if route.is_role_only:
            return AccessDecision.allow(DecisionReason.ROLE_ONLY)

        if principal.role is Role.ADMIN:
            return AccessDecision.allow(DecisionReason.ADMIN)

        resource_type, action = route.resource_type, route.action

        if not self.matrix.knows(resource_type):
            logger.warning(
                "Route declares %s %s but no role has a permission entry for %s",
                action.value, resource_type, resource_type,
            )
            return self._deny(request, DecisionReason.MISCONFIGURED_ROUTE)

        permitted = self.matrix.allows(principal.role, resource_type, action)

        if not self.ownership.applies(principal, resource_type, action):
            if permitted:
                return AccessDecision.allow(DecisionReason.PERMITTED)
            return self._deny(request, DecisionReason.ROLE_RESOURCE_ACTION_DENIED)

        result = self.ownership.check(principal, resource_type, request.resource_id)

        if not result.delegate_to_scope:
            if not result.satisfied:
                return self._deny(request, DecisionReason.OWNERSHIP_DENIED)
            if not permitted:
                return self._deny(request, DecisionReason.ROLE_RESOURCE_ACTION_DENIED)
            return AccessDecision.allow(DecisionReason.PERMITTED)

        if self._degrades_to_fetch(principal, action, result.relation):
            # The search is served as a read of the principal's own record
            permitted = self.matrix.allows(principal.role, resource_type, Action.READ)
        if not permitted:
            return self._deny(request, DecisionReason.ROLE_RESOURCE_ACTION_DENIED)
        try:
            scoped = self.scope_builder.build_scope(principal, resource_type, request.query_params)
        except OwnershipDenied as e:
            logger.info("Search scoping failed: %s", e)
            return self._deny(request, DecisionReason.OWNERSHIP_DENIED)

        return AccessDecision.allow(
            DecisionReason.SCOPED,
            mutated_query=scoped.params,
            direct_fetch_id=scoped.direct_fetch_id,
        )

    @staticmethod
    def _deny(request: AccessRequest, reason: DecisionReason) -> AccessDecision:
        route = request.route
        logger.info(
            "Access denied (%s): subject=%s role=%s resource=%s%s action=%s",
            reason.value,
            request.principal.subject_id,
            request.principal.role.value,
            route.resource_type or "-",
            f"/{request.resource_id}" if request.resource_id else "",
            route.action.value if route.action else "-",
        )
        return AccessDecision.deny(reason)

    @staticmethod
    def _degrades_to_fetch(principal, action: Action, relation: RelationKind) -> bool:
        return (
            action is Action.SEARCH
            and principal.role is Role.PATIENT
            and relation is RelationKind.SELF_RECORD
        )
