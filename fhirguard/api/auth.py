"""
Flask glue for the decision engine: guarded route registration and HTTP mapping.
"""

import logging
from functools import wraps

from flask import jsonify, request

from fhirguard.engine import AccessDecisionEngine
from fhirguard.errors import Unauthenticated, error_for
from fhirguard.models import RouteAuthSpec
from fhirguard.registry import RouteRegistry

logger = logging.getLogger(__name__)

# Generic body for a request that reaches no registered route spec
DENIED_BODY = {"error": "Access denied"}


def access_required(engine: AccessDecisionEngine, registry: RouteRegistry):
    """Decorator that authorizes a view against its registered RouteAuthSpec.

    The view receives the outcome as an ``access`` keyword argument
    (an AccessContext); allowed searches carry the scoped query there.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            spec = registry.lookup(request.endpoint)
            if spec is None:
                logger.warning("No RouteAuthSpec registered for endpoint %s", request.endpoint)
                return jsonify(DENIED_BODY), 403

            try:
                access = engine.authorize(
                    spec,
                    request.headers.get("Authorization"),
                    resource_id=kwargs.get("resource_id"),
                    # Scoping only inspects which keys are present
                    query_params=request.args.to_dict(),
                )
            except Unauthenticated as e:
                logger.info("Unauthenticated request to %s %s: %s", request.method, request.path, e)
                return jsonify({"error": e.public_message}), 401

            if not access.decision.allowed:
                # Only the generic message leaves the server; the reason was logged
                return jsonify({"error": error_for(access.decision.reason).public_message}), 403

            return f(*args, access=access, **kwargs)

        return decorated

    return decorator


def protect(app, registry: RouteRegistry, engine: AccessDecisionEngine,
            rule: str, endpoint: str, view, methods, spec: RouteAuthSpec) -> None:
    """Register *spec* for *endpoint* and mount the guarded view on *app*."""
    registry.register(endpoint, spec)
    app.add_url_rule(
        rule,
        endpoint=endpoint,
        view_func=access_required(engine, registry)(view),
        methods=list(methods),
    )
