"""
Route registry – RouteAuthSpec values registered alongside each route at startup.
"""

import logging
from typing import Dict, Optional

from fhirguard.models import RouteAuthSpec
from fhirguard.permissions import DEFAULT_MATRIX, PermissionMatrix

logger = logging.getLogger(__name__)


class RouteRegistry:
    """Endpoint name -> RouteAuthSpec. Filled once while the app is built."""

    def __init__(self, matrix: PermissionMatrix = DEFAULT_MATRIX):
        self._matrix = matrix
        self._routes: Dict[str, RouteAuthSpec] = {}
        self._frozen = False

    def register(self, endpoint: str, spec: RouteAuthSpec) -> RouteAuthSpec:
        if self._frozen:
            raise RuntimeError(f"Route registry is frozen; cannot register '{endpoint}'.")
        if endpoint in self._routes:
            raise ValueError(f"Route '{endpoint}' is already registered.")
        if spec.resource_type is not None and not self._matrix.knows(spec.resource_type):
            logger.warning(
                "Route '%s' declares resource type %s, which has no permission entry; "
                "non-admin callers will be denied",
                endpoint, spec.resource_type,
            )
        self._routes[endpoint] = spec
        return spec

    def lookup(self, endpoint: Optional[str]) -> Optional[RouteAuthSpec]:
        if endpoint is None:
            return None
        return self._routes.get(endpoint)

    def freeze(self) -> None:
        self._frozen = True

    def __len__(self) -> int:
        return len(self._routes)
