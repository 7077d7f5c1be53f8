"""
Bearer credential verification: turns an Authorization header into a Principal.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import jwt

from fhirguard import config
from fhirguard.errors import Unauthenticated
from fhirguard.identifiers import reference_id
from fhirguard.models import Principal, Role

logger = logging.getLogger(__name__)

# Linked record type assumed when a token carries an id but no type
_DEFAULT_LINKED_TYPE = {
    Role.PATIENT: "Patient",
    Role.PRACTITIONER: "Practitioner",
}


def extract_bearer_token(header: Optional[str]) -> str:
    """Return the token part of "Bearer <token>" or raise Unauthenticated."""
    if not header:
        raise Unauthenticated("Authorization header is missing")
    parts = header.strip().split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        raise Unauthenticated("Invalid authorization header format")
    return parts[1]


class PrincipalAuthenticator:
    """Validates signed bearer tokens with a shared verification key."""

    def __init__(self, secret: str, algorithms: Iterable[str] = ("HS256",), leeway: int = 0):
        if not secret:
            raise ValueError("A verification key is required.")
        self._secret = secret
        self._algorithms = list(algorithms)
        self._leeway = leeway

    @classmethod
    def from_config(cls) -> "PrincipalAuthenticator":
        return cls(config.JWT_SECRET_KEY, [config.JWT_ALGORITHM], config.JWT_LEEWAY_SECONDS)

    def decode(self, token: str) -> Dict[str, Any]:
        """Verify signature and expiry and return the claims."""
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=self._algorithms,
                leeway=self._leeway,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except jwt.InvalidTokenError as e:
            raise Unauthenticated(f"Invalid token: {e}")

    def authenticate(self, header: Optional[str]) -> Principal:
        token = extract_bearer_token(header)
        claims = self.decode(token)
        principal = principal_from_claims(claims)
        logger.debug("Authenticated subject %s as %s", principal.subject_id, principal.role.value)
        return principal


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    """Build a Principal from verified claims; the role is case-folded here."""
    subject_id = claims.get("sub")
    if not subject_id:
        raise Unauthenticated("Token has no subject")
    try:
        role = Role.parse(claims.get(config.ROLE_CLAIM))
    except ValueError as e:
        raise Unauthenticated(str(e))

    # The claim may carry a bare id or a "Patient/<id>" reference
    linked_id = reference_id(claims.get(config.LINKED_ID_CLAIM) or None)
    linked_type = claims.get(config.LINKED_TYPE_CLAIM) or None
    if linked_id is not None and linked_type is None:
        linked_type = _DEFAULT_LINKED_TYPE.get(role)

    return Principal(
        subject_id=str(subject_id),
        role=role,
        email=claims.get(config.EMAIL_CLAIM),
        linked_resource_id=linked_id,
        linked_resource_type=linked_type,
    )
