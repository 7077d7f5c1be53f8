"""
Flask route handlers for the gateway's REST API.
"""

from flask import jsonify, request

from fhirguard.api.auth import protect
from fhirguard.errors import StoreError
from fhirguard.identifiers import to_store_id
from fhirguard.models import Action, Role, RouteAuthSpec

ANY_ROLE = (Role.ADMIN, Role.PRACTITIONER, Role.PATIENT, Role.PHARMACIST)

# Roles admitted to each action's routes before the permission matrix is consulted
ACTION_ROLES = {
    Action.SEARCH: ANY_ROLE,
    Action.READ: ANY_ROLE,
    Action.CREATE: ANY_ROLE,
    Action.UPDATE: ANY_ROLE,
    Action.DELETE: (Role.ADMIN,),
}


def register_routes(app, engine, registry, store):
    """Register all API routes on the Flask *app* and record their auth specs."""

    # ── Health / info ────────────────────────────────────────────────

    def index(access):
        return jsonify({
            "service": "fhirguard",
            "version": "1.0.0",
            "status": "running",
        })

    def health(access):
        checks = {"fhir_store": store.ping()}
        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    protect(app, registry, engine, "/", "index", index, ["GET"], RouteAuthSpec())
    protect(app, registry, engine, "/health", "health", health, ["GET"], RouteAuthSpec())

    # ── Profile (role check only) ────────────────────────────────────

    def get_profile(access):
        principal = access.principal
        return jsonify({
            "success": True,
            "user": {
                "id": principal.subject_id,
                "email": principal.email,
                "role": principal.role.value,
                "fhir_resource_id": principal.linked_resource_id,
                "fhir_resource_type": principal.linked_resource_type,
            },
        }), 200

    protect(app, registry, engine, "/api/user/profile", "profile", get_profile, ["GET"],
            RouteAuthSpec.builder().roles(*ANY_ROLE).build())

    # ── FHIR resources ───────────────────────────────────────────────

    for resource_type in sorted(engine.matrix.resource_types):
        _register_resource(app, engine, registry, store, resource_type)

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(StoreError)
    def store_error(e):
        status = 404 if e.status_code == 404 else 502
        return jsonify({"error": "Resource not found" if status == 404 else "FHIR store error"}), status

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error"}), 500


def _register_resource(app, engine, registry, store, resource_type):
    """Mount search/read/create/update/delete for one resource type."""

    def search(access):
        decision = access.decision
        if decision.direct_fetch_id:
            return jsonify(_own_record_bundle(store, resource_type, decision.direct_fetch_id)), 200
        return jsonify(store.search(resource_type, _search_params(decision))), 200

    def read(resource_id, access):
        return jsonify(store.read(resource_type, to_store_id(resource_id))), 200

    def create(access):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Request body must be a JSON resource"}), 400
        if body.get("id"):
            body = dict(body, id=to_store_id(body["id"]))
        return jsonify(store.create(resource_type, body)), 201

    def update(resource_id, access):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Request body must be a JSON resource"}), 400
        return jsonify(store.update(resource_type, to_store_id(resource_id), body)), 200

    def delete(resource_id, access):
        store.delete(resource_type, to_store_id(resource_id))
        return jsonify({"success": True}), 200

    routes = (
        (f"/fhir/{resource_type}", "search", search, "GET", Action.SEARCH),
        (f"/fhir/{resource_type}/<resource_id>", "read", read, "GET", Action.READ),
        (f"/fhir/{resource_type}", "create", create, "POST", Action.CREATE),
        (f"/fhir/{resource_type}/<resource_id>", "update", update, "PUT", Action.UPDATE),
        (f"/fhir/{resource_type}/<resource_id>", "delete", delete, "DELETE", Action.DELETE),
    )
    for rule, name, view, method, action in routes:
        spec = (
            RouteAuthSpec.builder()
            .roles(*ACTION_ROLES[action])
            .resource(resource_type, action)
            .build()
        )
        protect(app, registry, engine, rule, f"fhir_{resource_type}_{name}", view, [method], spec)


def _own_record_bundle(store, resource_type, resource_id):
    """Serve a scoped self-search as a single-entry searchset Bundle."""
    try:
        resource = store.read(resource_type, to_store_id(resource_id))
    except StoreError as e:
        if e.status_code != 404:
            raise
        resource = None

    entries = [{"resource": resource}] if resource else []
    return {
        "resourceType": "Bundle",
        "type": "searchset",
        "total": len(entries),
        "entry": entries,
    }


def _search_params(decision):
    """Caller's query as (key, value) pairs, repeated keys kept, plus injected scope keys."""
    params = list(request.args.items(multi=True))
    if decision.mutated_query is not None:
        params.extend((k, v) for k, v in decision.mutated_query.items() if k not in request.args)
    return params
