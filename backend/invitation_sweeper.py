#!/usr/bin/env python3
"""
Kanban expired invitation sweep
Deletes pending board invitations past their expiry and notifies each inviter.
Meant to be run by an external scheduler (cron, Kubernetes CronJob, ...).

Usage:
    kanban-sweep-invitations
    kanban-sweep-invitations --dry-run
    python invitation_sweeper.py --now 2026-01-01T00:00:00+00:00
"""

import os
import asyncio
import logging
import argparse
from datetime import datetime, timezone

from sqlalchemy import select, func

from database import sweep_session, close_db
from invitation_service import BoardInvitationService
from models import BoardInvitation

logger = logging.getLogger("kanban.invitations")


def _parse_now(value: str) -> datetime:
    moment = datetime.fromisoformat(value)
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


async def count_expired(now: datetime) -> int:
    async with sweep_session(read_only=True) as db:
        result = await db.execute(
            select(func.count(BoardInvitation.id)).where(
                BoardInvitation.is_accepted.is_(False),
                BoardInvitation.expires_at < now,
            )
        )
        return result.scalar() or 0


async def run_sweep(now: datetime, dry_run: bool = False) -> int:
    try:
        if dry_run:
            return await count_expired(now)
        async with sweep_session() as db:
            return await BoardInvitationService(db).sweep_expired(now)
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Kanban expired invitation sweep")
    parser.add_argument("--now", type=_parse_now, default=None,
                        help="Reference time (ISO 8601); defaults to the current UTC time")
    parser.add_argument("--dry-run", action="store_true",
                        help="Only report how many invitations would be removed")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    )

    now = args.now or datetime.now(timezone.utc)
    removed = asyncio.run(run_sweep(now, dry_run=args.dry_run))
    if args.dry_run:
        print(f"{removed} expired invitation(s) would be removed")
    else:
        print(f"Removed {removed} expired invitation(s)")


if __name__ == "__main__":
    main()
