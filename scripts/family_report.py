#!/usr/bin/env python3
"""
Print a family's profiles, streaks, word lists and session counts.

Usage:
    python scripts/family_report.py --join-code Q7K2M9
    python scripts/family_report.py --family-id <id>
"""

import sys
import argparse
import asyncio
from collections import Counter
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


async def build_report(store, family_id: str, clock=None) -> dict:
    """Everything the report prints, gathered from the store."""
    from src.services.family_service import FamilyAccountService
    from src.services.profile_service import ProfileStore
    from src.services.session_service import SessionRecorder
    from src.services.word_list_service import WordListStore

    family = await FamilyAccountService(store, clock=clock).get_family(family_id)
    if not family:
        return None

    recorder = SessionRecorder(store, clock=clock)
    streaks = recorder.streaks(family_id)
    sessions = await recorder.load(family_id)
    per_profile = Counter(s.profile_id for s in sessions)

    profiles = []
    for profile in await ProfileStore(store, family_id, clock=clock).list():
        record = await streaks.record(profile.id)
        profiles.append({
            "id": profile.id,
            "name": profile.name,
            "streak": await streaks.read(profile.id),
            "lastPracticed": record.last_date.isoformat() if record.last_date else None,
            "sessions": per_profile.get(profile.id, 0),
        })

    return {
        "family": family.public_view(),
        "profiles": profiles,
        "wordLists": [
            {"name": wl.name, "words": len(wl.words)}
            for wl in await WordListStore(store, family_id, clock=clock).load()
        ],
        "sessions": len(sessions),
        "anonymousSessions": per_profile.get(None, 0),
    }


def print_report(report: dict) -> None:
    family = report["family"]
    print(f"Family:     {family['id']}")
    print(f"Join code:  {family['joinCode']}")
    print(f"PIN set:    {'yes' if family['hasPin'] else 'no'}")
    print(f"Emails:     {', '.join(family['emails']) or '(none)'}")
    if family.get("emailDeliveryStatus"):
        print(f"Last email: {family['emailDeliveryStatus']} at {family['emailLastSentAt']}")
    print()

    print(f"Profiles ({len(report['profiles'])}):")
    for p in report["profiles"]:
        last = p["lastPracticed"] or "never"
        print(f"  {p['name']:<20} streak {p['streak']:>3}   sessions {p['sessions']:>4}   last practiced {last}")
    print()

    print(f"Word lists ({len(report['wordLists'])}):")
    for wl in report["wordLists"]:
        print(f"  {wl['name']} ({wl['words']} words)")
    print()

    print(f"Sessions: {report['sessions']} total, {report['anonymousSessions']} anonymous")


async def run(args) -> int:
    from dotenv import load_dotenv
    load_dotenv(project_root / ".env")

    from src.config import get_settings
    from src.services.clock import Clock
    from src.services.family_service import FamilyAccountService
    from src.services.firebase import FirebaseStore

    settings = get_settings()
    if not settings.firebase_database_url:
        print("Error: FIREBASE_DATABASE_URL is not set in .env")
        return 1

    store = FirebaseStore(
        database_url=settings.firebase_database_url,
        credentials_dict=settings.get_firebase_credentials_dict(),
        credentials_path=settings.google_application_credentials,
    )
    store.initialize()
    try:
        family_id = args.family_id
        if args.join_code:
            family_id = await FamilyAccountService(store).join_family(args.join_code)
            if not family_id:
                print(f"No family uses join code '{args.join_code}'")
                return 1

        report = await build_report(store, family_id, clock=Clock(settings.streak_timezone))
        if report is None:
            print(f"Family not found: {family_id}")
            return 1
        print_report(report)
        return 0
    finally:
        store.shutdown()


def main():
    parser = argparse.ArgumentParser(
        description="Show a family's profiles, streaks and history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--join-code", "-c", help="Join code of the family")
    target.add_argument("--family-id", "-f", help="Id of the family")
    args = parser.parse_args()

    print("=" * 60)
    print("  SPELLING WORD COLLECTOR - FAMILY REPORT")
    print("=" * 60)
    print()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
