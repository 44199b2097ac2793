# interfaces/snapshot_sink.py
"""
Snapshot Sink - best-effort write-through of the inventory state
Snapshots are written after every mutation and never read back.
"""

from typing import Optional

import redis
from loguru import logger


class SnapshotSink:
    """Discards snapshots. Used when no Redis URL is configured."""

    @property
    def enabled(self) -> bool:
        return False

    def write(self, snapshot_json: str) -> None:
        return None


class RedisSnapshotSink(SnapshotSink):
    """
    Writes the latest inventory snapshot to a single Redis key.
    Connection or write failures are logged and otherwise ignored.
    """

    def __init__(self, redis_url: str, key: str = "skydesk:inventory", ttl_hours: int = 24):
        self.key = key
        self.ttl_seconds = ttl_hours * 3600
        self.redis_client: Optional[redis.Redis] = None

        try:
            self.redis_client = redis.Redis.from_url(redis_url, decode_responses=True)
            self.redis_client.ping()
            logger.info(f"SnapshotSink connected to Redis at {redis_url}")
        except Exception as e:
            logger.warning(f"Redis connection failed, snapshots disabled: {e}")
            self.redis_client = None

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None

    def write(self, snapshot_json: str) -> None:
        if not self.redis_client:
            return
        try:
            self.redis_client.setex(self.key, self.ttl_seconds, snapshot_json)
        except Exception as e:
            logger.warning(f"Snapshot write failed: {e}")


def build_snapshot_sink(redis_url: Optional[str]) -> SnapshotSink:
    if redis_url:
        return RedisSnapshotSink(redis_url)
    return SnapshotSink()
