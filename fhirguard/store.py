"""
FHIR resource store client – executes CRUD/search once a request is allowed.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import httpx

from fhirguard.config import FHIR_SERVER_URL, FHIR_TIMEOUT
from fhirguard.errors import StoreError

logger = logging.getLogger(__name__)

FHIR_JSON = "application/fhir+json"


class FhirStore:
    """Thin synchronous client over a FHIR REST backend (e.g. HAPI FHIR)."""

    def __init__(self, base_url: str = FHIR_SERVER_URL, timeout: float = FHIR_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": FHIR_JSON},
            transport=transport,
        )

    # ── CRUD / search ────────────────────────────────────────────────

    def read(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/{resource_type}/{resource_id}")

    def search(self, resource_type: str,
               params: Union[Mapping[str, str], Iterable[Tuple[str, str]], None] = None) -> Dict[str, Any]:
        """Search with a mapping or with (key, value) pairs; pairs may repeat a key."""
        if isinstance(params, Mapping):
            params = params.items()
        return self._request("GET", f"/{resource_type}", params=list(params or []))

    def create(self, resource_type: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", f"/{resource_type}", json=_with_type(resource_type, body))

    def update(self, resource_type: str, resource_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        body = dict(_with_type(resource_type, body), id=resource_id)
        return self._request("PUT", f"/{resource_type}/{resource_id}", json=body)

    def delete(self, resource_type: str, resource_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/{resource_type}/{resource_id}")

    def ping(self) -> bool:
        """True when the backend answers its capability statement."""
        try:
            self._request("GET", "/metadata")
        except StoreError:
            return False
        return True

    def close(self) -> None:
        self._client.close()

    # ── Internals ────────────────────────────────────────────────────

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("FHIR store timeout on %s %s: %s", method, path, e)
            raise StoreError("FHIR store timed out", status_code=504)
        except httpx.HTTPError as e:
            logger.error("FHIR store unreachable on %s %s: %s", method, path, e)
            raise StoreError("FHIR store unreachable", status_code=502)

        if resp.status_code >= 400:
            logger.warning("FHIR store returned %s for %s %s", resp.status_code, method, path)
            raise StoreError(f"FHIR store returned {resp.status_code}", status_code=resp.status_code)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError:
            raise StoreError("FHIR store returned a non-JSON body", status_code=502)


def _with_type(resource_type: str, body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    body = dict(body or {})
    body.setdefault("resourceType", resource_type)
    return body


def init_store() -> FhirStore:
    """Create the store client and report whether the backend answers."""
    store = FhirStore()
    if store.ping():
        logger.info("Connected to FHIR store at %s", store.base_url)
    else:
        logger.warning("FHIR store at %s is not answering yet", store.base_url)
    return store
