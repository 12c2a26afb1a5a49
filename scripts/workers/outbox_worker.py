#!/usr/bin/env python3
"""
Outbox worker: delivers queued email / SMS notifications from outbox_events.

Environment:
  - SQLALCHEMY_DATABASE_URL (from app config)
  - OUTBOX_POLL_INTERVAL_MS (default 1000)
  - OUTBOX_MAX_BATCH (default from settings, 200)

Safe to run alongside API instances; the API's maintenance loop drains the
same table when no worker is deployed.
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys

from sqlalchemy import func

# scripts/workers/outbox_worker.py -> make backend/ importable
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "backend")))

from stagebook.core.config import settings  # noqa: E402
from stagebook.core.observability import setup_logging  # noqa: E402
from stagebook.database import get_db_session  # noqa: E402
from stagebook.models import OutboxEvent  # noqa: E402
from stagebook.utils.outbox import deliver_pending  # noqa: E402

logger = logging.getLogger("stagebook.outbox_worker")


def run_once(max_batch: int) -> int:
    with get_db_session() as db:
        return deliver_pending(db, max_batch=max_batch)


def log_lag() -> None:
    with get_db_session() as db:
        count, oldest = (
            db.query(func.count(OutboxEvent.id), func.min(OutboxEvent.created_at))
            .filter(
                OutboxEvent.delivered_at.is_(None),
                OutboxEvent.attempt_count < settings.OUTBOX_MAX_ATTEMPTS,
            )
            .one()
        )
    logger.info("outbox_lag count=%s oldest=%s", int(count or 0), oldest)


async def main() -> None:
    interval_ms = int(os.getenv("OUTBOX_POLL_INTERVAL_MS") or 1000)
    max_batch = int(os.getenv("OUTBOX_MAX_BATCH") or settings.OUTBOX_MAX_BATCH)
    last_lag_log = 0.0
    while True:
        try:
            delivered = await asyncio.to_thread(run_once, max_batch)
            if delivered:
                logger.info("outbox_batch delivered=%s", delivered)
        except Exception as exc:
            # Keep going; the next tick retries
            logger.exception("outbox_batch_failed err=%s", exc)
        now = asyncio.get_running_loop().time()
        if now - last_lag_log >= 10.0:  # every ~10s
            try:
                await asyncio.to_thread(log_lag)
            except Exception as exc:
                logger.warning("outbox_lag_failed err=%s", exc)
            last_lag_log = now
        await asyncio.sleep(interval_ms / 1000.0)


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
