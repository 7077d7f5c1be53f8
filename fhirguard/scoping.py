"""
Search scoping: restricts list/search requests to the principal's own data.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from fhirguard import config
from fhirguard.errors import OwnershipDenied
from fhirguard.models import Principal, RelationKind, Role
from fhirguard.ownership import OwnershipValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopedQuery:
    params: Dict[str, str] = field(default_factory=dict)
    # Patient searching Patient degrades to a fetch of their own record
    direct_fetch_id: Optional[str] = None


def subject_param(resource_type: str) -> str:
    return config.SUBJECT_SEARCH_PARAMS.get(resource_type, config.DEFAULT_SUBJECT_SEARCH_PARAM)


class QueryScopeBuilder:
    """Injects a principal-scoping filter into outgoing search parameters.

    Never overwrites a key the caller already supplied and never mutates the
    mapping it was given.
    """

    def __init__(self, ownership: Optional[OwnershipValidator] = None):
        self._ownership = ownership or OwnershipValidator()

    def build_scope(self, principal: Principal, resource_type: str,
                    query_params: Optional[Mapping[str, str]] = None) -> ScopedQuery:
        params = dict(query_params or {})
        relation = self._ownership.relation(principal, resource_type)

        if relation is RelationKind.UNRESTRICTED:
            return ScopedQuery(params=params)
        if relation is RelationKind.SELF_RECORD and principal.role is not Role.PATIENT:
            # Only a patient's own-record search is narrowed to a single fetch
            return ScopedQuery(params=params)

        linked_id = principal.linked_resource_id
        if not linked_id:
            raise OwnershipDenied(
                f"{principal.role.value} {principal.subject_id} has no linked "
                f"record to scope a {resource_type} search"
            )

        if relation is RelationKind.SELF_RECORD:
            params.setdefault(config.SELF_SEARCH_PARAM, linked_id)
            return ScopedQuery(params=params, direct_fetch_id=linked_id)

        if relation is RelationKind.PATIENT_OF_PRINCIPAL:
            params.setdefault(subject_param(resource_type), linked_id)
        elif relation is RelationKind.PRACTITIONER_OF_PRINCIPAL:
            params.setdefault(config.PRACTITIONER_SEARCH_PARAM, linked_id)

        logger.debug("Scoped %s search for %s: %s", resource_type, principal.subject_id, params)
        return ScopedQuery(params=params)
