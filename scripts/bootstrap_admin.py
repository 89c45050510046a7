#!/usr/bin/env python3
"""Create the initial admin account.

Admin registration over HTTP requires an existing admin session, so the
first admin has to be seeded from the command line.

Usage:
    # Using environment variables:
    DEFAULT_ADMIN_EMAIL=admin@example.com DEFAULT_ADMIN_PASSWORD=ChangeMe123 \
        python scripts/bootstrap_admin.py

    # Or with command line args:
    python scripts/bootstrap_admin.py --email admin@example.com --password ChangeMe123 --name "Studio Owner"

Environment Variables:
    DEFAULT_ADMIN_EMAIL: Email for the admin
    DEFAULT_ADMIN_PASSWORD: Password for the admin (at least 6 characters)
    DEFAULT_ADMIN_NAME: Display name (defaults to "Super Admin")
    DATABASE_URL: PostgreSQL connection string (uses memory store if not set)
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

# Add project root to path for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

MIN_ADMIN_PASSWORD_LENGTH = 6


def bootstrap_admin(store, passwords, email: str, password: str, name: str, dry_run: bool = False) -> dict:
    """Create the admin unless one with this email already exists.

    Returns:
        dict with admin_id, email, and status ('created', 'exists' or 'dry_run')
    """
    from photocap.storage.models import TenantClass

    existing = store.get_identity_by_email(TenantClass.ADMIN, email)
    if existing:
        print(f"Admin {existing.email} already exists (id: {existing.id})")
        return {"admin_id": existing.id, "email": existing.email, "status": "exists"}

    if dry_run:
        print(f"[DRY RUN] Would create admin: {email}")
        return {"admin_id": None, "email": email, "status": "dry_run"}

    admin = store.create_identity(
        TenantClass.ADMIN,
        email,
        passwords.hash(password),
        name=name,
        role="SUPER_ADMIN",
    )
    print(f"Created admin: {admin.email} (id: {admin.id})")
    return {"admin_id": admin.id, "email": admin.email, "status": "created"}


def main():
    parser = argparse.ArgumentParser(
        description="Create the initial Photocap admin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--email",
        default=os.environ.get("DEFAULT_ADMIN_EMAIL"),
        help="Admin email (or set DEFAULT_ADMIN_EMAIL env var)",
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("DEFAULT_ADMIN_PASSWORD"),
        help="Admin password (or set DEFAULT_ADMIN_PASSWORD env var)",
    )
    parser.add_argument(
        "--name",
        default=os.environ.get("DEFAULT_ADMIN_NAME", "Super Admin"),
        help="Admin display name (or set DEFAULT_ADMIN_NAME env var)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )

    args = parser.parse_args()

    if not args.email:
        print("Error: --email or DEFAULT_ADMIN_EMAIL environment variable required")
        sys.exit(1)

    if not args.password:
        print("Error: --password or DEFAULT_ADMIN_PASSWORD environment variable required")
        sys.exit(1)

    if len(args.password) < MIN_ADMIN_PASSWORD_LENGTH:
        print(f"Error: Password must be at least {MIN_ADMIN_PASSWORD_LENGTH} characters")
        sys.exit(1)

    if not os.environ.get("DATABASE_URL"):
        os.environ["USE_MEMORY_STORE"] = "true"
        print("Note: Using in-memory store (set DATABASE_URL for persistence)")

    from photocap.config import get_settings
    from photocap.service.passwords import PasswordManager
    from photocap.storage.memory import MemoryStore
    from photocap.storage.postgres import PostgresStore

    settings = get_settings()
    store = (
        MemoryStore()
        if settings.use_memory_store
        else PostgresStore(settings.database_url, min_size=1, max_size=2)
    )
    try:
        result = bootstrap_admin(
            store,
            PasswordManager.from_settings(settings),
            args.email,
            args.password,
            args.name,
            args.dry_run,
        )
        if result["status"] == "created":
            print("\nAdmin created successfully!")
            print(f"  Email: {result['email']}")
            print(f"  Admin ID: {result['admin_id']}")
        elif result["status"] == "exists":
            print("\nNo changes needed - admin already exists.")
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    main()
