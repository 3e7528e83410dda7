"""
Issue referral codes for existing students that do not have a referral ledger yet.

Idempotent: students that already hold a code are reported and left untouched.
Usage: python -m app.scripts.backfill_referral_codes <student_id> [<student_id> ...]
       python -m app.scripts.backfill_referral_codes --file student_ids.txt
"""

import argparse
import asyncio
import sys
from typing import List
from uuid import UUID

from app.api.v1.referrals import service
from app.core.exceptions import ServiceError
from app.db.session import AsyncSessionLocal
from app.referrals.store import ReferralStore


def _read_ids(args: argparse.Namespace) -> List[UUID]:
    raw = list(args.student_ids)
    if args.file:
        with open(args.file, encoding="utf-8") as fh:
            raw.extend(line.strip() for line in fh if line.strip())
    ids = []
    for value in raw:
        try:
            ids.append(UUID(value))
        except ValueError:
            print(f"  SKIP: {value!r} is not a valid student id", file=sys.stderr)
    return ids


async def backfill_referral_codes(student_ids: List[UUID]) -> int:
    """Create missing referral ledgers. Returns how many were created."""
    created = 0
    async with AsyncSessionLocal() as session:
        store = ReferralStore(session)
        for student_id in student_ids:
            if await store.find_by_student_id(student_id) is not None:
                print(f"  {student_id} already has a referral code")
                continue
            try:
                record = await service.get_or_create_referral(session, student_id)
            except ServiceError as e:
                print(f"  SKIP: {student_id}: {e.message}", file=sys.stderr)
                continue
            created += 1
            print(f"  {student_id} -> {record.referral_code}")
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue referral codes for existing students.")
    parser.add_argument("student_ids", nargs="*", help="Student UUIDs")
    parser.add_argument("--file", help="File with one student UUID per line")
    args = parser.parse_args()

    student_ids = _read_ids(args)
    if not student_ids:
        print("No student ids given. Exiting.")
        return
    print(f"Checking {len(student_ids)} student(s)...")
    created = asyncio.run(backfill_referral_codes(student_ids))
    print(f"Done. Created {created} referral code(s).")


if __name__ == "__main__":
    main()
