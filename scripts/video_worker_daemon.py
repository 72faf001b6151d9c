"""
Daemon that runs queued video generation jobs.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.config import get_settings
from backend.worker import run_loop

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Bebek AI video job worker")
    parser.add_argument(
        "--poll-seconds",
        type=float,
        default=2.0,
        help="Seconds to block on the queue before polling again",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Handle at most one queue entry and exit",
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    if not settings.redis_url:
        logger.warning("REDIS_URL is not set; the worker only sees an in-process queue")

    logger.info("Video worker started (poll=%.1fs)", args.poll_seconds)
    run_loop(poll_interval_seconds=args.poll_seconds, once=args.once)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
