"""
Unit tests for the FHIR resource store client.
"""

import json

import httpx
import pytest

from fhirguard.errors import StoreError
from fhirguard.store import FhirStore

BASE = "http://fhir.test/fhir"


# ── Helpers / Fakes ──────────────────────────────────────────────────

class RecordingHandler:
    """Mock transport handler that records requests and replays a canned response."""
    def __init__(self, status=200, body=None, exc=None):
        self.status = status
        self.body = body if body is not None else {"resourceType": "Bundle", "entry": []}
        self.exc = exc
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, json=self.body)


def make_store(handler):
    return FhirStore(BASE, timeout=1, transport=httpx.MockTransport(handler))


# ── Tests ────────────────────────────────────────────────────────────

def test_read_hits_resource_url():
    handler = RecordingHandler(body={"resourceType": "Patient", "id": "res-1"})
    store = make_store(handler)
    assert store.read("Patient", "res-1")["id"] == "res-1"
    req = handler.requests[0]
    assert req.method == "GET"
    assert str(req.url) == f"{BASE}/Patient/res-1"


def test_search_sends_params():
    handler = RecordingHandler()
    make_store(handler).search("Observation", {"patient": "p1", "code": "x"})
    url = handler.requests[0].url
    assert url.path == "/fhir/Observation"
    assert url.params["patient"] == "p1"
    assert url.params["code"] == "x"


def test_search_sends_repeated_params():
    handler = RecordingHandler()
    make_store(handler).search("Observation", [("date", "ge2020"), ("date", "le2021")])
    assert handler.requests[0].url.params.get_list("date") == ["ge2020", "le2021"]


def test_create_sets_resource_type():
    handler = RecordingHandler(status=201, body={"resourceType": "Condition", "id": "c1"})
    make_store(handler).create("Condition", {"subject": {"reference": "Patient/p1"}})
    sent = json.loads(handler.requests[0].content)
    assert handler.requests[0].method == "POST"
    assert sent["resourceType"] == "Condition"


def test_update_sets_id():
    handler = RecordingHandler(body={"resourceType": "Patient", "id": "res-1"})
    make_store(handler).update("Patient", "res-1", {"active": True})
    sent = json.loads(handler.requests[0].content)
    assert handler.requests[0].method == "PUT"
    assert sent["id"] == "res-1"
    assert sent["resourceType"] == "Patient"


def test_error_status_raises_store_error():
    store = make_store(RecordingHandler(status=404, body={"resourceType": "OperationOutcome"}))
    with pytest.raises(StoreError) as e:
        store.read("Patient", "missing")
    assert e.value.status_code == 404


def test_transport_failure_is_bad_gateway():
    store = make_store(RecordingHandler(exc=httpx.ConnectError("refused")))
    with pytest.raises(StoreError) as e:
        store.search("Patient")
    assert e.value.status_code == 502


def test_timeout_is_gateway_timeout():
    store = make_store(RecordingHandler(exc=httpx.ReadTimeout("slow")))
    with pytest.raises(StoreError) as e:
        store.read("Patient", "1")
    assert e.value.status_code == 504


def test_ping():
    assert make_store(RecordingHandler(body={"resourceType": "CapabilityStatement"})).ping() is True
    assert make_store(RecordingHandler(status=500, body={})).ping() is False


def test_empty_body_is_empty_dict():
    def handler(request):
        return httpx.Response(204)
    assert make_store(handler).delete("Patient", "res-1") == {}


def test_closed_store_refuses_requests():
    store = make_store(RecordingHandler())
    store.close()
    with pytest.raises(RuntimeError):
        store.read("Patient", "res-1")
