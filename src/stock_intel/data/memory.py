"""In-process record sources and history store."""

import bisect
import threading
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Generic

from stock_intel.data.sources import R
from stock_intel.errors import NotFoundError
from stock_intel.models import EntityMetadata, ExecutiveRecord, FilingRecord


class InMemoryRecordSource:
    """
    Keyed store serving filings, executives and entity metadata.

    Implements FilingSource, ExecutiveSource and PeerSource. Unknown entities
    have no filings or executives; only get_entity raises NotFoundError.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entities: dict[str, EntityMetadata] = {}
        self._filings: dict[str, list[FilingRecord]] = defaultdict(list)
        self._executives: dict[str, list[ExecutiveRecord]] = defaultdict(list)

    def add_entity(self, entity: EntityMetadata) -> None:
        with self._lock:
            self._entities[entity.entity_id] = entity

    def add_filings(self, entity_id: str, filings: Iterable[FilingRecord]) -> None:
        with self._lock:
            self._filings[entity_id].extend(filings)

    def add_executives(self, entity_id: str, executives: Iterable[ExecutiveRecord]) -> None:
        with self._lock:
            self._executives[entity_id].extend(executives)

    def get_entity(self, entity_id: str) -> EntityMetadata:
        with self._lock:
            entity = self._entities.get(entity_id)
        if entity is None:
            raise NotFoundError(entity_id)
        return entity

    def get_filings(self, entity_id: str) -> tuple[FilingRecord, ...]:
        with self._lock:
            return tuple(self._filings.get(entity_id, ()))

    def get_executives(self, entity_id: str) -> tuple[ExecutiveRecord, ...]:
        with self._lock:
            return tuple(self._executives.get(entity_id, ()))

    def list_entities(self, sector: str | None = None) -> list[EntityMetadata]:
        with self._lock:
            entities = list(self._entities.values())
        if sector is None:
            return entities
        return [e for e in entities if e.sector == sector]


class InMemoryHistoryStore(Generic[R]):
    """Append-only history kept sorted by recorded_at per entity."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, list[R]] = defaultdict(list)

    def append(self, record: R) -> None:
        with self._lock:
            bisect.insort(self._records[record.entity_id], record, key=lambda r: r.recorded_at)

    def query(self, entity_id: str, since: datetime | None = None) -> list[R]:
        with self._lock:
            records = list(self._records.get(entity_id, ()))
        if since is None:
            return records
        return [r for r in records if r.recorded_at >= since]
