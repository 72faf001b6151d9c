"""
Video job queue. Entries are `<user id>:<video id>` keys produced by
`VideoJob.queue_key`; the worker pops them and loads the record from the
document store.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_KEY = "bebek:video-jobs"


class JobQueue(Protocol):
    def enqueue(self, job_key: str) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        ...

    def pending(self) -> int:
        ...


class InMemoryJobQueue:
    """Process-local FIFO for tests and the standalone worker. Blocking pops
    wait on a condition variable."""

    def __init__(self):
        self._items: deque[str] = deque()
        self._ready = threading.Condition()

    @property
    def items(self) -> list[str]:
        with self._ready:
            return list(self._items)

    def enqueue(self, job_key: str) -> None:
        with self._ready:
            self._items.append(job_key)
            self._ready.notify()

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        with self._ready:
            if block and not self._items:
                self._ready.wait_for(lambda: bool(self._items), timeout=timeout)
            if not self._items:
                return None
            return self._items.popleft()

    def pending(self) -> int:
        with self._ready:
            return len(self._items)


class RedisJobQueue:
    """Redis list: producers RPUSH, the worker BLPOPs."""

    def __init__(self, url: str, queue_key: str = DEFAULT_QUEUE_KEY):
        self.url = url
        self.queue_key = queue_key
        self.client = self._connect()

    def _connect(self) -> redis.Redis:
        return redis.Redis.from_url(
            self.url, decode_responses=True, health_check_interval=30
        )

    def enqueue(self, job_key: str) -> None:
        self.client.rpush(self.queue_key, job_key)
        logger.debug("Queued %s on %s", job_key, self.queue_key)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[str]:
        try:
            if not block:
                return self.client.lpop(self.queue_key)
            popped = self.client.blpop([self.queue_key], timeout=timeout or 0)
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as e:
            # The worker loop retries; a fresh client replaces the dropped one.
            logger.warning("Redis unavailable for %s (%s); reconnecting", self.queue_key, e)
            self.client = self._connect()
            return None
        if popped is None:
            return None
        _, job_key = popped
        return job_key

    def pending(self) -> int:
        return int(self.client.llen(self.queue_key))
