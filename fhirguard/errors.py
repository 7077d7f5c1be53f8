"""
Failure taxonomy for authorization and resource store calls.

Every authorization failure carries its specific DecisionReason for the
server-side log; callers only ever see a generic message.
"""

from typing import Optional

from fhirguard.models import DecisionReason


class AccessDenied(Exception):
    reason = DecisionReason.ROLE_RESOURCE_ACTION_DENIED
    public_message = "Access denied"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.reason.value)
        self.detail = detail


class Unauthenticated(AccessDenied):
    """Missing, malformed, expired or badly signed credential."""
    reason = DecisionReason.UNAUTHENTICATED
    public_message = "Authentication required"


class RoleMismatch(AccessDenied):
    reason = DecisionReason.ROLE_MISMATCH


class OwnershipDenied(AccessDenied):
    reason = DecisionReason.OWNERSHIP_DENIED


class RoleResourceActionDenied(AccessDenied):
    reason = DecisionReason.ROLE_RESOURCE_ACTION_DENIED


class MisconfiguredRoute(AccessDenied):
    reason = DecisionReason.MISCONFIGURED_ROUTE


_BY_REASON = {
    cls.reason: cls
    for cls in (Unauthenticated, RoleMismatch, OwnershipDenied,
                RoleResourceActionDenied, MisconfiguredRoute)
}


def error_for(reason: DecisionReason, detail: str = "") -> AccessDenied:
    """Build the exception matching a deny reason."""
    return _BY_REASON.get(reason, AccessDenied)(detail)


class StoreError(Exception):
    """The FHIR resource store rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
