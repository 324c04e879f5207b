#!/usr/bin/env python3
"""Collapse every learner's enrollments down to their most recent one.

RUN:  DATABASE_URL=postgresql+asyncpg://... python scripts/cleanup_duplicate_enrollments.py

The same reconciliation runs on every profile load; this script applies
it to all users at once, e.g. after importing legacy data.  Each user is
reconciled in its own transaction, so one failure does not undo the rest.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from learnhub.core.config import SETTINGS
from learnhub.core.logging import setup_logging
from learnhub.db import engine as db_engine
from learnhub.repos.bundle import pg_repos
from learnhub.services import progress_service

logger = logging.getLogger("cleanup_duplicate_enrollments")


async def main() -> int:
    factory = db_engine.async_session_factory
    if factory is None:
        logger.error("DATABASE_URL is not set")
        return 1

    async with factory() as session:
        user_ids = await pg_repos(session).enrollments.users_with_duplicates()
    logger.info("Users with duplicate enrollments: %d", len(user_ids))

    purged_total = 0
    failed = 0
    for user_id in user_ids:
        async with factory() as session:
            try:
                purged = await progress_service.reconcile_duplicate_enrollments(
                    pg_repos(session), user_id
                )
                await session.commit()
            except Exception:
                await session.rollback()
                failed += 1
                logger.exception("Reconciliation failed for user=%s", user_id)
                continue
        purged_total += len(purged)

    logger.info("Done: purged=%d failed_users=%d", purged_total, failed)
    await db_engine.engine.dispose()  # type: ignore[union-attr]
    return 1 if failed else 0


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    sys.exit(asyncio.run(main()))
