#!/usr/bin/env python3
"""
Create a studio manager account directly in MongoDB.

Use this instead of the first-registration bootstrap when the studio
already has accounts, or when provisioning a fresh deployment.

Usage:
    python scripts/create_manager.py --first-name Ana --last-name Ruiz \
        --email ana@studio.com --phone 555-0100 --address "1 Main St" \
        --password change-me

Environment:
    MONGO_URI and MONGO_DB select the target database
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError as PayloadError

from app.core.errors import StudioError
from app.core.permissions import Role
from app.domain.account import AccountCreateRequest
from app.infrastructure.mongo import close_mongo_client, get_store
from app.services.accounts import create_account


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a yoga studio manager account")
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--phone", required=True)
    parser.add_argument("--address", required=True)
    parser.add_argument("--password", required=True)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        payload = AccountCreateRequest(
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email,
            phone=args.phone,
            address=args.address,
            role=Role.MANAGER,
            password=args.password,
        )
    except PayloadError as e:
        print(f"[ERROR] Invalid manager details: {e}")
        return 1

    store = get_store()
    try:
        store.ensure_indexes()
        result = create_account(store, payload)
    except StudioError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        close_mongo_client()

    print(f"[OK] Manager {result['accountId']} created for {args.email}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
