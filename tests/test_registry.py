"""
Unit tests for route auth specs and the route registry.
"""

import logging

import pytest

from fhirguard.models import Action, Role, RouteAuthSpec
from fhirguard.registry import RouteRegistry


# ── Tests: builder ───────────────────────────────────────────────────

def test_builder_full_spec():
    spec = RouteAuthSpec.builder().roles("Admin", Role.PATIENT).resource("Patient", "read").build()
    assert spec.required_roles == {Role.ADMIN, Role.PATIENT}
    assert spec.resource_type == "Patient"
    assert spec.action is Action.READ
    assert spec.is_open is False
    assert spec.is_role_only is False


def test_builder_role_only():
    spec = RouteAuthSpec.builder().roles(Role.PHARMACIST).build()
    assert spec.is_role_only is True


def test_default_spec_is_open():
    assert RouteAuthSpec().is_open is True


def test_direct_spec_coerces_role_and_action_strings():
    spec = RouteAuthSpec(required_roles=frozenset({"patient"}), resource_type="Patient", action="delete")
    assert spec.required_roles == {Role.PATIENT}
    assert spec.action is Action.DELETE


def test_direct_spec_rejects_unknown_action():
    with pytest.raises(ValueError):
        RouteAuthSpec(required_roles=frozenset({Role.ADMIN}), resource_type="Patient", action="purge")


def test_builder_needs_both_resource_parts():
    with pytest.raises(ValueError):
        RouteAuthSpec.builder().resource("Patient", None)
    with pytest.raises(ValueError):
        RouteAuthSpec.builder().resource("", Action.READ)


def test_builder_rejects_unknown_role():
    with pytest.raises(ValueError, match="Unsupported role"):
        RouteAuthSpec.builder().roles("nurse")


def test_spec_is_immutable():
    spec = RouteAuthSpec()
    with pytest.raises(AttributeError):
        spec.resource_type = "Patient"


# ── Tests: registry ──────────────────────────────────────────────────

def test_register_and_lookup():
    registry = RouteRegistry()
    spec = RouteAuthSpec.builder().roles(Role.ADMIN).resource("Patient", Action.DELETE).build()
    registry.register("patient_delete", spec)
    assert registry.lookup("patient_delete") is spec
    assert len(registry) == 1


def test_lookup_unknown_endpoint():
    registry = RouteRegistry()
    assert registry.lookup("nope") is None
    assert registry.lookup(None) is None


def test_duplicate_registration_rejected():
    registry = RouteRegistry()
    registry.register("x", RouteAuthSpec())
    with pytest.raises(ValueError, match="already registered"):
        registry.register("x", RouteAuthSpec())


def test_frozen_registry_rejects_new_routes():
    registry = RouteRegistry()
    registry.freeze()
    with pytest.raises(RuntimeError, match="frozen"):
        registry.register("x", RouteAuthSpec())


def test_unknown_resource_type_logs_warning(caplog):
    registry = RouteRegistry()
    spec = RouteAuthSpec.builder().roles(Role.ADMIN).resource("AllergyIntolerance", Action.READ).build()
    with caplog.at_level(logging.WARNING, logger="fhirguard.registry"):
        registry.register("allergy_read", spec)
    assert "AllergyIntolerance" in caplog.text
    assert registry.lookup("allergy_read") is spec
