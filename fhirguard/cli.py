"""
Interactive CLI for checking gateway access decisions.
Paste a bearer token, then ask what it may do against FHIR resources.
"""

from typing import Dict, NamedTuple, Optional
from urllib.parse import parse_qsl

from fhirguard.authn import PrincipalAuthenticator
from fhirguard.engine import AccessDecisionEngine
from fhirguard.errors import Unauthenticated
from fhirguard.models import Action, Role, RouteAuthSpec

USAGE = "<action> <Type>[/<id>] [query-string]   e.g.  search Observation code=1234&status=final"


class Command(NamedTuple):
    action: Action
    resource_type: str
    resource_id: Optional[str]
    query_params: Dict[str, str]


def parse_command(line: str) -> Command:
    """Parse "<action> <Type>[/<id>] [query]" into a Command (ValueError if malformed)."""
    parts = line.split()
    if len(parts) not in (2, 3):
        raise ValueError(f"Expected: {USAGE}")

    try:
        action = Action(parts[0].lower())
    except ValueError:
        raise ValueError(f"Unknown action '{parts[0]}'. Use one of: {', '.join(a.value for a in Action)}")

    resource_type, _, resource_id = parts[1].partition("/")
    if not resource_type:
        raise ValueError("Resource type is required.")

    query = dict(parse_qsl(parts[2].lstrip("?"))) if len(parts) == 3 else {}
    return Command(action, resource_type, resource_id or None, query)


def format_decision(decision) -> str:
    lines = [f"allowed: {decision.allowed}", f"reason:  {decision.reason.value}"]
    if decision.mutated_query is not None:
        lines.append(f"query:   {decision.mutated_query}")
    if decision.direct_fetch_id:
        lines.append(f"fetch:   {decision.direct_fetch_id}")
    return "\n".join(lines)


def main():
    print("=== fhirguard: access decision checker ===\n")

    engine = AccessDecisionEngine(PrincipalAuthenticator.from_config())

    # ── Login ────────────────────────────────────────────────────────
    try:
        token = input("Paste bearer token (or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if not token or token.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    header = token if token.lower().startswith("bearer ") else f"Bearer {token}"
    try:
        principal = engine.authenticator.authenticate(header)
    except Unauthenticated as e:
        print("\n[ERROR] Token rejected.")
        print("Details:", e)
        return

    print(f"\n[auth] Subject: {principal.subject_id} (role={principal.role.value})")
    if principal.linked_resource_id:
        print(f"[auth] Linked record: {principal.linked_resource_type}/{principal.linked_resource_id}")
    print(f"[help] {USAGE}")

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input("\ncheck> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue
        if line.lower() in {"quit", "exit"}:
            print("Goodbye.")
            break

        try:
            cmd = parse_command(line)
        except ValueError as e:
            print("[input error]", e)
            continue

        route = (
            RouteAuthSpec.builder()
            .roles(*Role)
            .resource(cmd.resource_type, cmd.action)
            .build()
        )
        try:
            decision = engine.evaluate(route, header, cmd.resource_id, cmd.query_params)
        except Unauthenticated as e:
            print("[auth error]", e)
            break
        print(format_decision(decision))


if __name__ == "__main__":
    main()
