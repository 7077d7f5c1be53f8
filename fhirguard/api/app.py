"""
Flask application factory and server entry-point.
"""

import atexit
import logging
import os
import sys

from flask import Flask
from flask_cors import CORS

from fhirguard import config
from fhirguard.authn import PrincipalAuthenticator
from fhirguard.engine import AccessDecisionEngine
from fhirguard.registry import RouteRegistry
from fhirguard.store import init_store
from fhirguard.api.routes import register_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stderr,
    )


def create_app(store=None, engine=None):
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if engine is None:
        engine = AccessDecisionEngine(PrincipalAuthenticator.from_config())
    if store is None:
        logger.info("Initializing FHIR store client...")
        store = init_store()

    # ── Register routes ──────────────────────────────────────────────
    registry = RouteRegistry(engine.matrix)
    register_routes(app, engine, registry, store)
    registry.freeze()

    app.extensions["fhirguard"] = {"engine": engine, "registry": registry, "store": store}
    logger.info("Gateway ready with %d guarded routes", len(registry))
    return app


def main():
    """Run the development server."""
    configure_logging()
    # The built-in development secret is never used by the server
    config.require_env("JWT_SECRET_KEY")
    store = init_store()
    atexit.register(store.close)
    app = create_app(store=store)

    debug = os.getenv("FLASK_ENV") == "development"
    logger.info("Starting gateway on %s:%s (debug=%s)", config.API_HOST, config.API_PORT, debug)
    logger.info("FHIR store: %s", config.FHIR_SERVER_URL)
    app.run(host=config.API_HOST, port=config.API_PORT, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
