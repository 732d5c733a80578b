"""Composite score cache."""

import logging
import os
import shutil
from datetime import datetime, timedelta
from typing import Any

import diskcache

from stock_intel import SCHEMA_VERSION
from stock_intel.models import CompositeScore

logger = logging.getLogger(__name__)

DEFAULT_SCORE_TTL_SECONDS = 24 * 60 * 60


class ScoreCache:
    """
    Cache of the latest composite score per entity.

    Freshness is judged against the caller's clock, not the cache's own
    expiry: an entry whose age has reached the TTL is evicted on read and
    never served. The diskcache expiry is only a backstop for entries
    nobody reads again.

    Without a directory (argument or SCORE_CACHE_DIR) the cache lives in a
    private temporary directory that is removed on close.
    """

    def __init__(self, cache_dir: str | None = None, ttl_seconds: int | None = None):
        if cache_dir is None:
            cache_dir = os.environ.get("SCORE_CACHE_DIR") or None
        self.private = cache_dir is None
        self.cache: diskcache.Cache = diskcache.Cache(cache_dir)
        if ttl_seconds is None:
            ttl_seconds = int(os.environ.get("SCORE_CACHE_TTL", str(DEFAULT_SCORE_TTL_SECONDS)))
        self.ttl = timedelta(seconds=ttl_seconds)

    @staticmethod
    def key_for(entity_id: str) -> str:
        """Canonical cache key for an entity."""
        return f"score://{entity_id}"

    def store(self, score: CompositeScore) -> str:
        """
        Store a freshly computed score, replacing any previous entry.

        Args:
            score: Score to cache; its computed_at is the entry timestamp

        Returns:
            Cache key the score was stored under
        """
        key = self.key_for(score.entity_id)
        entry: dict[str, Any] = {
            "score": score,
            "stored_at": score.computed_at,
            "schema_version": SCHEMA_VERSION,
        }
        self.cache.set(key, entry, expire=self.ttl.total_seconds())
        return key

    def get(self, entity_id: str, now: datetime) -> CompositeScore | None:
        """
        Get the cached score if it is still fresh at `now`.

        Args:
            entity_id: Entity identifier
            now: Current time on the caller's clock

        Returns:
            Cached score, or None if absent or expired
        """
        key = self.key_for(entity_id)
        entry = self.cache.get(key)
        if not entry:
            return None
        if entry.get("schema_version") != SCHEMA_VERSION:
            self.cache.delete(key)
            return None
        if now - entry["stored_at"] >= self.ttl:
            logger.debug(f"ScoreCache({entity_id}): entry expired, evicting")
            self.cache.delete(key)
            return None
        return entry["score"]

    def exists(self, entity_id: str) -> bool:
        """Check if an entry (fresh or not) exists for the entity."""
        return self.key_for(entity_id) in self.cache

    def invalidate(self, entity_id: str | None = None) -> None:
        """Drop the entry for one entity, or every entry when entity_id is None."""
        if entity_id is None:
            self.cache.clear()
        else:
            self.cache.delete(self.key_for(entity_id))

    def close(self) -> None:
        self.cache.close()
        if self.private:
            shutil.rmtree(self.cache.directory, ignore_errors=True)
