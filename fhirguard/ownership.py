"""
Ownership rules: whether a specific clinical record belongs to the principal.

Restriction only applies to a curated set of (role, resource type, action)
combinations. Outside that set ownership is trivially satisfied and the
permission matrix alone decides.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from fhirguard.identifiers import same_identifier
from fhirguard.models import Action, Principal, RelationKind, Role

logger = logging.getLogger(__name__)

OWNERSHIP_SENSITIVE_TYPES: FrozenSet[str] = frozenset({
    "Patient",
    "Encounter",
    "Observation",
    "DiagnosticReport",
    "MedicationRequest",
    "QuestionnaireResponse",
    "Payment",
})

# Search is the id-less form of Read and is scoped rather than checked.
OWNERSHIP_SENSITIVE_ACTIONS: FrozenSet[Action] = frozenset({
    Action.READ, Action.UPDATE, Action.DELETE, Action.SEARCH,
})

# Extra (role, type) -> actions restricted on top of the common set
EXTRA_SENSITIVE: Mapping[Tuple[Role, str], FrozenSet[Action]] = MappingProxyType({
    (Role.PRACTITIONER, "Practitioner"): frozenset({Action.UPDATE, Action.DELETE}),
})

OWNERSHIP_RULES: Mapping[Tuple[Role, str], RelationKind] = MappingProxyType({
    (Role.PATIENT, "Patient"): RelationKind.SELF_RECORD,
    (Role.PATIENT, "Encounter"): RelationKind.PATIENT_OF_PRINCIPAL,
    (Role.PATIENT, "Observation"): RelationKind.PATIENT_OF_PRINCIPAL,
    (Role.PATIENT, "DiagnosticReport"): RelationKind.PATIENT_OF_PRINCIPAL,
    (Role.PATIENT, "MedicationRequest"): RelationKind.PATIENT_OF_PRINCIPAL,
    (Role.PATIENT, "QuestionnaireResponse"): RelationKind.PATIENT_OF_PRINCIPAL,
    (Role.PATIENT, "Payment"): RelationKind.PATIENT_OF_PRINCIPAL,
    (Role.PRACTITIONER, "Practitioner"): RelationKind.SELF_RECORD,
    (Role.PRACTITIONER, "Patient"): RelationKind.PRACTITIONER_OF_PRINCIPAL,
})


@dataclass(frozen=True)
class OwnershipResult:
    satisfied: bool
    relation: RelationKind
    # No concrete id: the caller must scope the query instead
    delegate_to_scope: bool = False


class OwnershipValidator:
    """Decides, per role and resource type, whether a record belongs to the principal."""

    def __init__(self, rules: Mapping[Tuple[Role, str], RelationKind] = OWNERSHIP_RULES):
        self._rules = rules

    def applies(self, principal: Principal, resource_type: Optional[str], action) -> bool:
        if principal.role is Role.ADMIN or resource_type is None or action is None:
            return False
        action = Action(action)
        if resource_type in OWNERSHIP_SENSITIVE_TYPES and action in OWNERSHIP_SENSITIVE_ACTIONS:
            return True
        return action in EXTRA_SENSITIVE.get((principal.role, resource_type), frozenset())

    def relation(self, principal: Principal, resource_type: Optional[str]) -> RelationKind:
        return self._rules.get((principal.role, resource_type), RelationKind.UNRESTRICTED)

    def check(self, principal: Principal, resource_type: str,
              resource_id: Optional[str]) -> OwnershipResult:
        """Evaluate ownership once restriction is known to apply."""
        relation = self.relation(principal, resource_type)

        if not resource_id:
            return OwnershipResult(satisfied=True, relation=relation, delegate_to_scope=True)

        if relation is RelationKind.SELF_RECORD:
            satisfied = same_identifier(resource_id, principal.linked_resource_id)
            if not satisfied:
                logger.info(
                    "Ownership denied: %s %s is not %s/%s",
                    principal.role.value, principal.subject_id, resource_type, resource_id,
                )
            return OwnershipResult(satisfied=satisfied, relation=relation)

        # PATIENT_OF_PRINCIPAL and PRACTITIONER_OF_PRINCIPAL are not verified
        # against the referenced record; no store lookup is made here.
        return OwnershipResult(satisfied=True, relation=relation)
