#!/usr/bin/env python3
"""
Mint a signed development token for the gateway.
Uses JWT_SECRET_KEY from the environment / .env; pass --new-secret to print a fresh key instead.

    python scripts/issue_dev_token.py patient u-42 --fhir-id res-123
"""

import argparse
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from fhirguard.config import (
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    LINKED_ID_CLAIM,
    LINKED_TYPE_CLAIM,
    TOKEN_EXPIRY_HOURS,
)
from fhirguard.models import Role


def issue_token(subject_id, role, fhir_id=None, fhir_type=None, email=None,
                hours=TOKEN_EXPIRY_HOURS, secret=JWT_SECRET_KEY):
    """Sign a token with the claims the gateway reads."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject_id,
        "role": Role.parse(role).value,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    if email:
        payload["email"] = email
    if fhir_id:
        payload[LINKED_ID_CLAIM] = fhir_id
    if fhir_type:
        payload[LINKED_TYPE_CLAIM] = fhir_type
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("role", nargs="?", choices=[r.value for r in Role])
    parser.add_argument("subject", nargs="?")
    parser.add_argument("--fhir-id")
    parser.add_argument("--fhir-type")
    parser.add_argument("--email")
    parser.add_argument("--hours", type=int, default=TOKEN_EXPIRY_HOURS)
    parser.add_argument("--new-secret", action="store_true")
    args = parser.parse_args()

    print("=" * 60)
    if args.new_secret:
        print("Copy the line below to your .env file\n")
        print(f"JWT_SECRET_KEY={secrets.token_hex(32)}")
    elif args.role and args.subject:
        token = issue_token(args.subject, args.role, args.fhir_id, args.fhir_type,
                            args.email, args.hours)
        print(f"Development token ({args.role}, expires in {args.hours}h)\n")
        print(token)
        print("\nUse it as:  Authorization: Bearer <token>")
    else:
        parser.error("role and subject are required unless --new-secret is given")
    print("=" * 60)
