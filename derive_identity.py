"""
Referral Credit Network — Identity Id Derivation
==================================================

Re-derives the deterministic identity id of an email, the same way the
registry does at registration, so external verifiers need no lookup.

Usage (standalone):
    python derive_identity.py alice@example.com
    python derive_identity.py alice@example.com --salt my-deployment-salt

Usage (as module):
    from derive_identity import derive_identity_id
    identity_id = derive_identity_id("alice@example.com", "my-deployment-salt")
"""

from __future__ import annotations

import argparse
import os
import sys

from referral_network.errors import ValidationError
from referral_network.registry import derive_identity_id
from scoring.rules import DEFAULT_IDENTITY_SALT

__all__ = ["derive_identity_id", "main"]


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────
def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="derive_identity",
        description="Compute the deterministic identity id for an email",
    )
    parser.add_argument(
        "email",
        type=str,
        help="Email address (case-insensitive)",
    )
    parser.add_argument(
        "--salt",
        type=str,
        default=os.environ.get("IDENTITY_SALT", DEFAULT_IDENTITY_SALT),
        help="Deployment salt (default: $IDENTITY_SALT or the built-in salt)",
    )

    args = parser.parse_args(argv)

    try:
        print(derive_identity_id(args.email, args.salt))
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
