"""Expire outdated passes and reconcile orphaned bookings.

Meant to run from cron, e.g. ``python scripts/ledger_maintenance.py --mode complete``.
"""
from __future__ import annotations

import argparse
import asyncio
import datetime as dt
import logging

from studio.core.config import get_settings
from studio.db.session import dispose_engine, get_sessionmaker
from studio.security.logging_filters import install_sensitive_filter
from studio.services import pass_service, reconciliation_service

logger = logging.getLogger("studio.maintenance")


async def main(mode: str, min_age_minutes: int | None) -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    try:
        async with sessionmaker() as session:
            expired = await pass_service.expire_outdated_passes(session)
            report = await reconciliation_service.reconcile_orphaned_bookings(
                session,
                mode=mode,
                min_age=(
                    dt.timedelta(minutes=min_age_minutes)
                    if min_age_minutes is not None
                    else None
                ),
            )
    finally:
        await dispose_engine(settings.database_url)
    logger.info(
        "Expired %d passes; completed %d and rolled back %d orphaned bookings",
        expired,
        len(report.completed),
        len(report.rolled_back),
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--mode", choices=("complete", "rollback"), default="complete")
    parser.add_argument(
        "--min-age-minutes",
        type=int,
        default=None,
        help="only touch bookings older than this (defaults to RECONCILE_MIN_AGE_MINUTES)",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    install_sensitive_filter("")
    asyncio.run(main(args.mode, args.min_age_minutes))
