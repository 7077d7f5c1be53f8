"""
Resource identifier normalisation.

The FHIR backend refuses purely numeric ids, so the gateway stores them with
a fixed prefix ("123" becomes "res-123"). Clients may send either form, so
every identifier comparison goes through normalize().
"""

from typing import Optional

from fhirguard.config import ID_PREFIX


def normalize(identifier: Optional[str], prefix: str = ID_PREFIX) -> Optional[str]:
    """Strip the implementation prefix. normalize(normalize(x)) == normalize(x)."""
    if not identifier or not prefix:
        return identifier
    value = str(identifier).strip()
    while value.startswith(prefix) and len(value) > len(prefix):
        value = value[len(prefix):]
    return value


def same_identifier(left: Optional[str], right: Optional[str], prefix: str = ID_PREFIX) -> bool:
    """True when both ids are present and name the same logical resource."""
    if not left or not right:
        return False
    return normalize(left, prefix) == normalize(right, prefix)


def to_store_id(identifier: str, prefix: str = ID_PREFIX) -> str:
    """The form the store keeps: purely numeric ids gain the prefix."""
    value = normalize(identifier, prefix)
    if value and value.isdigit():
        return f"{prefix}{value}"
    return identifier


def reference_id(reference: Optional[str]) -> Optional[str]:
    """Extract the id from a "Type/id" reference; bare ids pass through."""
    if not reference:
        return None
    return str(reference).rstrip("/").split("/")[-1] or None
