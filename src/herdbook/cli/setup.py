"""Setup command to verify configuration and connectivity."""

import asyncio
import os

import httpx

from herdbook.core import client
from herdbook.core.auth import AuthError, get_session
from herdbook.core.config import get_cache_dir, settings
from herdbook.data.users import get_user_profile
from herdbook.nfe import providers
from herdbook.nfe.models import load_nfe_config
from herdbook.sync.queue import OfflineQueue

REQUIRED_VARS = ["FIREBASE_PROJECT_ID", "FIREBASE_API_KEY"]
OPTIONAL_VARS = ["FIREBASE_EMAIL", "FIREBASE_PASSWORD", "NFE_PROVIDER", "NFE_API_KEY"]


def check_mark(success: bool) -> str:
    """Return a check mark or X based on success."""
    return "[OK]" if success else "[MISSING]"


async def check_env_vars() -> dict[str, bool]:
    """Check which environment variables are configured."""
    print("Checking environment variables...")
    print("-" * 50)

    # Values may also come from .env, which settings has already read
    from_settings = {
        "FIREBASE_PROJECT_ID": settings.firebase_project_id,
        "FIREBASE_API_KEY": settings.firebase_api_key,
        "FIREBASE_EMAIL": settings.firebase_email,
        "FIREBASE_PASSWORD": settings.firebase_password,
        "NFE_PROVIDER": settings.nfe_provider,
        "NFE_API_KEY": settings.nfe_api_key,
    }
    checks = {var: bool(os.getenv(var) or from_settings[var]) for var in REQUIRED_VARS + OPTIONAL_VARS}

    for var in REQUIRED_VARS:
        print(f"  {check_mark(checks[var])} {var} (required)")
    for var in OPTIONAL_VARS:
        print(f"  {check_mark(checks[var])} {var} (optional)")

    print()
    return checks


async def test_auth() -> str | None:
    """Sign in with the configured account. Returns the uid."""
    print("Testing Firebase Auth...")
    print("-" * 50)

    try:
        session = await get_session()
    except (AuthError, httpx.HTTPError) as e:
        print(f"  [FAILED] Could not sign in: {e}")
        print()
        return None

    if session is None:
        print("  [SKIPPED] No account configured, using API key only")
        print()
        return None

    profile = get_user_profile(session.uid, session.email)
    print(f"  [OK] Signed in as {session.email}")
    print(f"       UID: {session.uid}")
    print(f"       Role: {profile.role.value}")
    print()
    return session.uid


async def test_firestore_connection() -> bool:
    """Check that the Firestore database answers."""
    print("Testing Firestore connection...")
    print("-" * 50)

    ok = await client.ping()
    if ok:
        print("  [OK] Connected to Firestore")
        print(f"       Project: {settings.firebase_project_id}")
        print(f"       Database: {settings.firestore_database}")
    else:
        print("  [FAILED] Firestore unreachable (herdbook will work from local snapshots)")
    print()
    return ok


def check_local_state() -> int:
    """Show the cache directory and the offline queue. Returns queued writes."""
    print("Checking local state...")
    print("-" * 50)

    queue = OfflineQueue()
    stats = queue.stats()
    print(f"  Cache directory: {get_cache_dir()}")
    print(f"  Offline queue: {stats['pending']} pending, {stats['failed']} failed")
    print()
    return stats["total"]


async def test_nfe() -> bool | None:
    """Check NF-e provider credentials, when a provider is configured."""
    config = load_nfe_config()
    if not config.provider:
        return None

    print(f"Testing NF-e provider ({config.provider}, {config.environment})...")
    print("-" * 50)
    ok, message = await providers.test_connection(config)
    print(f"  [{'OK' if ok else 'FAILED'}] {message}")
    print()
    return ok


async def main() -> None:
    """Run setup checks."""
    print("=" * 50)
    print("herdbook Setup")
    print("=" * 50)
    print()

    env_checks = await check_env_vars()
    required_missing = [var for var in REQUIRED_VARS if not env_checks.get(var)]
    if required_missing:
        print("ERROR: Missing required environment variables:")
        for var in required_missing:
            print(f"  - {var}")
        print()
        print("Create a .env file or set these as environment variables.")
        return

    uid = await test_auth()
    firestore_ok = await test_firestore_connection()
    queued = check_local_state()
    nfe_ok = await test_nfe()

    print("=" * 50)
    print("Summary")
    print("=" * 50)
    print()
    print(f"  Firestore: {'Connected' if firestore_ok else 'NOT CONNECTED'}")
    print(f"  Account:   {uid or 'API key only'}")
    if queued:
        print(f"  Queue:     {queued} writes waiting (run herdbook-sync)")
    if nfe_ok is None:
        print("  NF-e:      Not configured (optional)")
    else:
        print(f"  NF-e:      {'Ready' if nfe_ok else 'FAILED'}")

    print()
    if firestore_ok:
        print("Setup complete! Firestore is reachable.")
    else:
        print("Setup incomplete. See errors above.")


def cli() -> None:
    """CLI entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
