#!/usr/bin/env python3
"""
Copy a device's local-only data into a family.

Takes a JSON export of the device's local storage (the spelling-collector-*
keys) and migrates its word lists, profiles, sessions, PIN and streaks into
the family with the given join code or id. The migration batch id and the
done flag are written back into the export, so running the command again
after a failure resumes without creating duplicates.

Usage:
    python scripts/migrate_local_export.py device.json --join-code Q7K2M9
    python scripts/migrate_local_export.py device.json --family-id <id>
    python scripts/migrate_local_export.py device.json --join-code Q7K2M9 --dry-run
"""

import sys
import argparse
import asyncio
import json
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def load_export(path: Path) -> dict:
    """
    Read a local-storage export.

    Browsers store every value as a string, so string values holding JSON are
    decoded; anything else is kept as it is.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        print(f"Error: {path} is not a JSON object of storage keys")
        sys.exit(1)

    data = {}
    for key, value in raw.items():
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                pass  # plain string value (e.g. the PIN)
        data[key] = value
    return data


def build_store():
    """FirebaseStore configured from the environment."""
    from dotenv import load_dotenv
    load_dotenv(project_root / ".env")

    from src.config import get_settings
    from src.services.firebase import FirebaseStore
    from src.services.logger import init_logger

    settings = get_settings()
    if not settings.firebase_database_url:
        print("Error: FIREBASE_DATABASE_URL is not set in .env")
        sys.exit(1)

    store = FirebaseStore(
        database_url=settings.firebase_database_url,
        credentials_dict=settings.get_firebase_credentials_dict(),
        credentials_path=settings.google_application_credentials,
        logger=init_logger(settings=settings)
    )
    store.initialize()
    return store


def print_plan(local) -> None:
    lists = local.load_word_lists()
    profiles = local.load_profiles()
    sessions = local.load_sessions()
    streaks = local.raw_streaks()

    print(f"Word lists: {len(lists)}")
    for wl in lists:
        print(f"  - {wl.name} ({len(wl.words)} words)")
    print(f"Profiles:   {len(profiles)}")
    for profile in profiles:
        streak = streaks.get(profile.id) or {}
        print(f"  - {profile.name} (streak record: {streak.get('count', 0)})")
    anonymous = sum(1 for s in sessions if not s.profile_id)
    print(f"Sessions:   {len(sessions)} ({anonymous} anonymous)")
    print(f"PIN:        {'yes' if local.get_pin() else 'no'}")


async def run(args) -> int:
    from src.services.errors import MigrationError
    from src.services.family_service import FamilyAccountService
    from src.services.local_store import (
        MIGRATION_BATCH_KEY,
        MIGRATION_DONE_KEY,
        LocalSpellingStore,
        MemoryKeyValueStore,
    )
    from src.services.migration import MigrationService

    export_path = Path(args.export)
    data = load_export(export_path)
    local = LocalSpellingStore(MemoryKeyValueStore(data))

    if local.device.has_migrated():
        print("This export was already migrated (migration-done flag is set). Nothing to do.")
        return 0
    if not local.has_data():
        print("No local word lists, profiles, sessions or PIN in this export. Nothing to do.")
        return 0

    print_plan(local)
    print()

    if args.dry_run:
        print("Dry run: nothing was written.")
        return 0

    store = build_store()
    try:
        families = FamilyAccountService(store)
        family_id = args.family_id
        if args.join_code:
            family_id = await families.join_family(args.join_code)
            if not family_id:
                print(f"No family uses join code '{args.join_code}'")
                return 1

        migration = MigrationService(store, local, families=families)
        try:
            report = await migration.migrate(family_id)
        except MigrationError as e:
            print(f"Migration failed: {e}")
            print("Run the same command again to resume.")
            return 1
        finally:
            # Keep the batch id (and the flag, on success) with the export
            for key in (MIGRATION_BATCH_KEY, MIGRATION_DONE_KEY):
                value = local.kv.get(key)
                if value is not None:
                    data[key] = value
            export_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

        print(f"Migrated into family {family_id} (batch {report.batch_id}):")
        for kind, count in report.counts().items():
            print(f"  {kind}: {count}")
        return 0
    finally:
        store.shutdown()


def main():
    parser = argparse.ArgumentParser(
        description="Migrate a device-local export into a family",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("export", help="JSON export of the device's local storage")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--join-code", "-c", help="Join code of the target family")
    target.add_argument("--family-id", "-f", help="Id of the target family")
    parser.add_argument("--dry-run", "-n", action="store_true", help="Only list what would be copied")
    args = parser.parse_args()

    print("=" * 60)
    print("  SPELLING WORD COLLECTOR - LOCAL DATA MIGRATION")
    print("=" * 60)
    print()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
