"""
Unit tests for the static permission matrix.
"""

import pytest

from fhirguard.models import Action, Role
from fhirguard.permissions import (
    ALL_ACTIONS,
    DEFAULT_MATRIX,
    PERMISSION_TABLE,
    WILDCARD,
    PermissionMatrix,
)

CLINICAL_TYPES = [
    "Encounter", "Observation", "DiagnosticReport", "MedicationRequest",
    "CarePlan", "Condition", "Procedure",
]


# ── Tests: table contents ────────────────────────────────────────────

@pytest.mark.parametrize("resource_type", ["Patient", "Condition", "Anything", WILDCARD])
@pytest.mark.parametrize("action", list(Action))
def test_admin_has_every_action_everywhere(resource_type, action):
    assert DEFAULT_MATRIX.allows(Role.ADMIN, resource_type, action) is True


@pytest.mark.parametrize("resource_type", CLINICAL_TYPES)
def test_practitioner_clinical_resources(resource_type):
    assert DEFAULT_MATRIX.actions_for(Role.PRACTITIONER, resource_type) == {
        Action.CREATE, Action.READ, Action.UPDATE, Action.SEARCH,
    }
    assert DEFAULT_MATRIX.allows(Role.PRACTITIONER, resource_type, Action.DELETE) is False


def test_practitioner_reference_entries():
    m = DEFAULT_MATRIX
    assert m.actions_for(Role.PRACTITIONER, "Patient") == {Action.READ, Action.SEARCH}
    assert m.actions_for(Role.PRACTITIONER, "Practitioner") == {Action.READ, Action.UPDATE}
    for t in ("Medication", "Questionnaire", "Payment"):
        assert m.actions_for(Role.PRACTITIONER, t) == {Action.READ, Action.SEARCH}
    assert m.actions_for(Role.PRACTITIONER, "QuestionnaireResponse") == {
        Action.CREATE, Action.READ, Action.SEARCH,
    }


def test_patient_entries():
    m = DEFAULT_MATRIX
    assert m.actions_for(Role.PATIENT, "Patient") == {Action.READ, Action.UPDATE}
    for t in ("Practitioner", "Organization", "Encounter", "Observation",
              "DiagnosticReport", "Medication", "MedicationRequest", "Questionnaire"):
        assert m.actions_for(Role.PATIENT, t) == {Action.READ, Action.SEARCH}
    for t in ("QuestionnaireResponse", "Payment"):
        assert m.actions_for(Role.PATIENT, t) == {
            Action.CREATE, Action.READ, Action.UPDATE, Action.SEARCH,
        }


def test_unlisted_types_fall_back_to_empty_wildcard():
    assert DEFAULT_MATRIX.allows(Role.PRACTITIONER, "Organization", Action.READ) is False
    assert DEFAULT_MATRIX.allows(Role.PATIENT, "Condition", Action.CREATE) is False
    assert DEFAULT_MATRIX.actions_for(Role.PATIENT, "AllergyIntolerance") == frozenset()


def test_pharmacist_denied_everything():
    for action in Action:
        assert DEFAULT_MATRIX.allows(Role.PHARMACIST, "Medication", action) is False


# ── Tests: lookups never raise ───────────────────────────────────────

def test_unknown_role_is_empty():
    assert DEFAULT_MATRIX.actions_for("nurse", "Patient") == frozenset()
    assert DEFAULT_MATRIX.allows("nurse", "Patient", Action.READ) is False


def test_unknown_action_is_deny():
    assert DEFAULT_MATRIX.allows(Role.ADMIN, "Patient", "purge") is False
    assert DEFAULT_MATRIX.allows(Role.ADMIN, "Patient", None) is False


def test_role_strings_are_case_folded():
    assert DEFAULT_MATRIX.allows("PATIENT", "Patient", "read") is True


def test_knows_explicit_types_only():
    assert DEFAULT_MATRIX.knows("Condition") is True
    assert DEFAULT_MATRIX.knows("Organization") is True
    assert DEFAULT_MATRIX.knows("AllergyIntolerance") is False
    assert DEFAULT_MATRIX.knows(WILDCARD) is False
    assert DEFAULT_MATRIX.knows(None) is False


# ── Tests: compilation / validation ──────────────────────────────────

def test_table_is_read_only():
    with pytest.raises(TypeError):
        DEFAULT_MATRIX._table[Role.ADMIN] = {}


def test_missing_wildcard_rejected():
    table = dict(PERMISSION_TABLE)
    table[Role.PHARMACIST] = {"Medication": {Action.READ}}
    with pytest.raises(ValueError, match="fallback"):
        PermissionMatrix(table)


def test_missing_role_rejected():
    table = {r: v for r, v in PERMISSION_TABLE.items() if r is not Role.PHARMACIST}
    with pytest.raises(ValueError, match="pharmacist"):
        PermissionMatrix(table)


def test_custom_table_compiles_string_keys():
    table = {role.value: {WILDCARD: []} for role in Role}
    table["admin"] = {WILDCARD: ["create", "read"]}
    m = PermissionMatrix(table)
    assert m.actions_for(Role.ADMIN, "X") == {Action.CREATE, Action.READ}
    assert ALL_ACTIONS == frozenset(Action)
