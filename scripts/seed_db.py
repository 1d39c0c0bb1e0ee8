"""
Seed script for CyberGuard demo reports.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured store: python scripts/seed_db.py --apply
  - Custom area: python scripts/seed_db.py --apply --lat 12.97 --lng 77.59 --count 8

Behavior:
  - Builds `count` pending reports scattered within ~300 m of (lat, lng).
  - Submits each through report_service.submit_report, so the critical-area
    check runs exactly as it does for real submissions.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` is set
and `USE_MOCK_DB=false` in `.env`. With the mock store the data is gone when
the process exits, which is only useful for watching the escalation logs.
"""

import argparse
import asyncio
import random

from app.models.report import BullyingType, Location, PerpetratorInfo, ReportDraft
from app.services.conversation_engine import derive_severity
from app.services.report_service import submit_report

PLATFORMS = ["Instagram", "WhatsApp", "Facebook", "Snapchat", "Discord"]


def build_drafts(lat: float, lng: float, count: int, seed: int = 7) -> list:
    rng = random.Random(seed)
    drafts = []
    for i in range(count):
        username = f"@user{rng.randint(100, 999)}" if rng.random() < 0.5 else None
        evidence = [f"https://example.com/evidence/{i}"] if rng.random() < 0.5 else []
        drafts.append(ReportDraft(
            is_anonymous=rng.random() < 0.7,
            age=rng.randint(12, 19),
            location=Location(
                lat=lat + rng.uniform(-0.003, 0.003),
                lng=lng + rng.uniform(-0.003, 0.003),
                address="Demo address",
                state="Karnataka",
                district="Bengaluru Urban",
                city="Bengaluru",
            ),
            bullying_type=rng.choice(list(BullyingType)),
            perpetrator_info=PerpetratorInfo(platform=rng.choice(PLATFORMS), username=username),
            evidence_links=evidence,
            severity=derive_severity(username, evidence),
        ))
    return drafts


async def seed(drafts: list) -> None:
    for draft in drafts:
        outcome = await submit_report(draft)
        area = outcome.critical_area
        print(
            f"Wrote: report {outcome.report_id} "
            f"(nearby={area.count if area else '?'}, critical={area.is_critical if area else '?'})"
        )


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write reports instead of dry-run")
    parser.add_argument("--lat", type=float, default=12.9700)
    parser.add_argument("--lng", type=float, default=77.5900)
    parser.add_argument("--count", type=int, default=5)
    args = parser.parse_args()

    drafts = build_drafts(args.lat, args.lng, args.count)
    for draft in drafts:
        print(f"Preparing: {draft.bullying_type.value} on {draft.perpetrator_info.platform} "
              f"at ({draft.location.lat:.5f}, {draft.location.lng:.5f})")

    if not args.apply:
        print("Dry run complete. Re-run with --apply to write to the store.")
        return

    asyncio.run(seed(drafts))
    print("Seeding completed.")


if __name__ == "__main__":
    main()
