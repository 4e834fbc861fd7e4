"""Purge notifications older than the retention window.

Standalone maintenance script, intended to run daily (cron / scheduler).

Usage:
    cd backend && python -m scripts.purge_notifications [--days N] [--dry-run]

Defaults to NOTIFICATION_RETENTION_DAYS (30). With --dry-run the delete is
rolled back and only the count is reported.
"""

import argparse
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.notification_retention import (
    NotificationPurgeResult,
    purge_old_notifications,
)

logger = logging.getLogger(__name__)


async def run_purge(
    session: AsyncSession,
    days: int | None = None,
    *,
    dry_run: bool = False,
) -> NotificationPurgeResult:
    """Purge old notifications in ``session`` and commit (or roll back).

    Args:
        session: Active async database session.
        days: Retention window override.
        dry_run: Roll back instead of committing.

    Returns:
        NotificationPurgeResult from the purge.
    """
    result = await purge_old_notifications(session, days)
    if dry_run:
        await session.rollback()
        logger.info("Dry run: %d notification(s) would be deleted", result.deleted)
    else:
        await session.commit()
    return result


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Retention window in days (default: NOTIFICATION_RETENTION_DAYS)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the count without deleting",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> None:
    """CLI entry point: run the purge against the configured database."""
    import sys

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from app.core.config import settings

    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        result = await run_purge(session, args.days, dry_run=args.dry_run)

    await engine.dispose()

    logger.info("Final stats: %s", result)
    sys.exit(0)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
