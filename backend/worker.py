"""
Worker loop that runs queued video jobs.

Queue entries are `<user id>:<video id>` keys; the job record itself lives in
the document store.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Optional

from backend.db import DbClient
from backend.dependencies import (
    get_db_client,
    get_marketplace_client,
    get_queue_client,
    get_storage_client,
)
from backend.queue import JobQueue
from backend.storage import StorageClient
from media import videos
from models.marketplace import MarketplaceClient
from shared.types import TERMINAL_VIDEO_STATUSES

logger = logging.getLogger(__name__)


def parse_job_key(job_key: str) -> Optional[tuple[str, str]]:
    user_id, sep, video_id = job_key.partition(":")
    if not sep or not user_id or not video_id:
        return None
    return user_id, video_id


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    storage: Optional[StorageClient] = None,
    marketplace: Optional[MarketplaceClient] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and run one job from the queue. Returns True if a job was run.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()

    job_key = queue.dequeue(block=block, timeout=timeout)
    if not job_key:
        return False

    parsed = parse_job_key(job_key)
    if parsed is None:
        logger.warning("Discarding malformed queue entry %r", job_key)
        return False

    job = db.get_video_job(*parsed)
    if job is None:
        logger.warning("Received %s from queue but no video record found", job_key)
        return False
    if job.status in TERMINAL_VIDEO_STATUSES:
        logger.info("Video job %s already %s; skipping", job.id, job.status)
        return False

    videos.run_video_job(
        db,
        storage or get_storage_client(),
        marketplace or get_marketplace_client(),
        job,
    )
    return True


def blocking_timeout(poll_interval_seconds: float) -> int:
    """Whole seconds for a blocking pop; Redis treats 0 as wait forever."""
    return max(1, math.ceil(poll_interval_seconds))


def run_loop(poll_interval_seconds: float = 2.0, once: bool = False) -> None:
    """
    Blocking loop over the queue. Intended to be run under systemd/supervisor.
    """
    db = get_db_client()
    queue = get_queue_client()
    storage = get_storage_client()
    marketplace = get_marketplace_client()
    while True:
        try:
            processed = process_next(
                db=db,
                queue=queue,
                storage=storage,
                marketplace=marketplace,
                block=True,
                timeout=blocking_timeout(poll_interval_seconds),
            )
        except Exception:
            logger.exception("Video worker iteration failed")
            processed = False
        if once:
            return
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_loop()
