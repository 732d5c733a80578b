"""Persistent append-only history store."""

import logging
import os
from datetime import datetime
from typing import Generic

import diskcache

from stock_intel.data.sources import R

logger = logging.getLogger(__name__)


class DiskHistoryStore(Generic[R]):
    """
    History records persisted in a diskcache directory.

    Records live in one list per entity under "<stream>://<entity_id>".
    Appends run inside a diskcache transaction so concurrent writers from
    other threads or processes never lose a record.
    """

    def __init__(self, stream: str, directory: str | None = None):
        if directory is None:
            directory = os.environ.get("HISTORY_DIR", ".cache/history")
        self.stream = stream
        self.cache: diskcache.Cache = diskcache.Cache(directory)

    def _key(self, entity_id: str) -> str:
        return f"{self.stream}://{entity_id}"

    def append(self, record: R) -> None:
        key = self._key(record.entity_id)
        with self.cache.transact():
            records: list[R] = self.cache.get(key, default=[])
            records.append(record)
            records.sort(key=lambda r: r.recorded_at)
            self.cache.set(key, records)
        logger.debug(f"{key}: appended record ({len(records)} total)")

    def query(self, entity_id: str, since: datetime | None = None) -> list[R]:
        records: list[R] = self.cache.get(self._key(entity_id), default=[])
        if since is None:
            return list(records)
        return [r for r in records if r.recorded_at >= since]

    def close(self) -> None:
        self.cache.close()
