#!/usr/bin/env python3
# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""
Create the first administrator account.

Registration refuses the administrator role, so administrators are bootstrapped
here. Idempotent: an existing account with the same email is left untouched.

Usage:
    python scripts/create_admin.py --email admin@heva.org --name "HEVA Administrator"
    (password from --password or the HEVA_ADMIN_PASSWORD environment variable)
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

repo_root = Path(__file__).resolve().parent.parent
load_dotenv(repo_root / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Create a HEVA administrator account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--email", required=True, help="Administrator email")
    parser.add_argument("--name", default="HEVA Administrator", help="Display name")
    parser.add_argument(
        "--password",
        default=None,
        help="Password (default: HEVA_ADMIN_PASSWORD environment variable)",
    )
    parser.add_argument("--db-path", default=None, help="Override identity database path")
    args = parser.parse_args(argv)

    password = args.password or os.getenv("HEVA_ADMIN_PASSWORD", "")
    if not password:
        print("ERROR: provide --password or set HEVA_ADMIN_PASSWORD", file=sys.stderr)
        return 2

    from heva.core.errors import OnboardingError
    from heva.core.identity.service import IdentityService
    from heva.core.identity.store import IdentityStore

    store = IdentityStore(Path(args.db_path)) if args.db_path else IdentityStore()
    service = IdentityService(store)
    try:
        identity, created = service.bootstrap_admin(args.name, args.email, password)
    except OnboardingError as e:
        logger.error("Failed to create administrator: %s", e.message)
        for err in getattr(e, "errors", []):
            print(f"  - {err}", file=sys.stderr)
        return 1

    if created:
        print(f"Administrator created: {identity.email} ({identity.id})")
    else:
        print(f"Account already exists: {identity.email} ({identity.role.value})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
