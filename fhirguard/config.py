"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Bearer tokens ────────────────────────────────────────────────────
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_LEEWAY_SECONDS = int(os.getenv("JWT_LEEWAY_SECONDS", "0"))
TOKEN_EXPIRY_HOURS = 24

# Claim names carried by tokens minted for the gateway
ROLE_CLAIM = "role"
EMAIL_CLAIM = "email"
LINKED_ID_CLAIM = "fhirResourceId"
LINKED_TYPE_CLAIM = "fhirResourceType"

# ── Resource identifiers ─────────────────────────────────────────────
# The FHIR backend rejects purely numeric ids, so they are stored as "res-<n>".
ID_PREFIX = "res-"

# ── Query scoping ────────────────────────────────────────────────────
DEFAULT_SUBJECT_SEARCH_PARAM = "patient"
SUBJECT_SEARCH_PARAMS = {
    "QuestionnaireResponse": "subject",
}
PRACTITIONER_SEARCH_PARAM = "general-practitioner"
SELF_SEARCH_PARAM = "_id"

# ── Resource store (FHIR backend) ────────────────────────────────────
FHIR_SERVER_URL = os.getenv("FHIR_SERVER_URL", "http://hapi-fhir:8080/fhir")
FHIR_TIMEOUT = float(os.getenv("FHIR_TIMEOUT", "10"))

# ── API server ───────────────────────────────────────────────────────
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def require_env(name: str) -> str:
    """Value of a variable that must come from the environment, not a built-in default.

    Exits the process when it is unset or blank.
    """
    value = os.getenv(name, "").strip()
    if not value:
        print(f"ERROR: {name} must be set before the gateway starts", file=sys.stderr)
        sys.exit(1)
    return value
