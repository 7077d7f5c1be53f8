"""
Static role x resource-type -> allowed-actions table.

The table is compiled once at import and is read-only afterwards. Lookups
never raise: an unknown role or resource type resolves to an empty action
set, which is a deny.
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping

from fhirguard.models import Action, Role


WILDCARD = "*"

ALL_ACTIONS = frozenset(Action)
READ_SEARCH = frozenset({Action.READ, Action.SEARCH})
CLINICAL_WRITE = frozenset({Action.CREATE, Action.READ, Action.UPDATE, Action.SEARCH})
NONE: FrozenSet[Action] = frozenset()

# ── Permission table ─────────────────────────────────────────────────

PERMISSION_TABLE: Dict[Role, Dict[str, FrozenSet[Action]]] = {
    Role.ADMIN: {
        WILDCARD: ALL_ACTIONS,
    },
    Role.PRACTITIONER: {
        "Patient": READ_SEARCH,
        "Practitioner": frozenset({Action.READ, Action.UPDATE}),
        "Encounter": CLINICAL_WRITE,
        "Observation": CLINICAL_WRITE,
        "DiagnosticReport": CLINICAL_WRITE,
        "MedicationRequest": CLINICAL_WRITE,
        "CarePlan": CLINICAL_WRITE,
        "Condition": CLINICAL_WRITE,
        "Procedure": CLINICAL_WRITE,
        "Medication": READ_SEARCH,
        "Questionnaire": READ_SEARCH,
        "Payment": READ_SEARCH,
        "QuestionnaireResponse": frozenset({Action.CREATE, Action.READ, Action.SEARCH}),
        WILDCARD: NONE,
    },
    Role.PATIENT: {
        "Patient": frozenset({Action.READ, Action.UPDATE}),
        "Practitioner": READ_SEARCH,
        "Organization": READ_SEARCH,
        "Encounter": READ_SEARCH,
        "Observation": READ_SEARCH,
        "DiagnosticReport": READ_SEARCH,
        "Medication": READ_SEARCH,
        "MedicationRequest": READ_SEARCH,
        "Questionnaire": READ_SEARCH,
        "QuestionnaireResponse": CLINICAL_WRITE,
        "Payment": CLINICAL_WRITE,
        WILDCARD: NONE,
    },
    Role.PHARMACIST: {
        WILDCARD: NONE,
    },
}


class PermissionMatrix:
    """Read-only lookup over a compiled permission table."""

    def __init__(self, table: Mapping[Role, Mapping[str, Iterable[Action]]] = PERMISSION_TABLE):
        compiled = {}
        for role, entries in table.items():
            compiled[Role.parse(role)] = MappingProxyType({
                resource_type: frozenset(Action(a) for a in actions)
                for resource_type, actions in entries.items()
            })
        self._table = MappingProxyType(compiled)
        self.validate()
        self._known_types = frozenset(
            resource_type
            for entries in self._table.values()
            for resource_type in entries
            if resource_type != WILDCARD
        )

    def validate(self) -> None:
        """Every role must carry a wildcard fallback."""
        for role in Role:
            entries = self._table.get(role)
            if entries is None:
                raise ValueError(f"Permission table has no entry for role '{role.value}'.")
            if WILDCARD not in entries:
                raise ValueError(f"Permission table for role '{role.value}' has no '{WILDCARD}' fallback.")

    def actions_for(self, role, resource_type: str) -> FrozenSet[Action]:
        try:
            entries = self._table.get(Role.parse(role))
        except ValueError:
            return NONE
        if entries is None:
            return NONE
        if resource_type in entries:
            return entries[resource_type]
        return entries.get(WILDCARD, NONE)

    def allows(self, role, resource_type: str, action) -> bool:
        try:
            action = Action(action)
        except ValueError:
            return False
        return action in self.actions_for(role, resource_type)

    def knows(self, resource_type: str) -> bool:
        """True when some role has an explicit (non-wildcard) entry for the type."""
        return resource_type in self._known_types

    @property
    def resource_types(self) -> FrozenSet[str]:
        return self._known_types


DEFAULT_MATRIX = PermissionMatrix()
