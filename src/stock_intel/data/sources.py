"""Interfaces of the record sources and stores the engine consumes."""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, TypeVar

from stock_intel.models import EntityMetadata, ExecutiveRecord, FilingRecord


class FilingSource(Protocol):
    def get_filings(self, entity_id: str) -> Sequence[FilingRecord]: ...


class ExecutiveSource(Protocol):
    def get_executives(self, entity_id: str) -> Sequence[ExecutiveRecord]: ...


class EntitySource(Protocol):
    def get_entity(self, entity_id: str) -> EntityMetadata:
        """Return entity metadata or raise NotFoundError."""
        ...


class PeerSource(EntitySource, Protocol):
    def list_entities(self, sector: str | None = None) -> Sequence[EntityMetadata]: ...


class HistoryRecord(Protocol):
    @property
    def entity_id(self) -> str: ...

    @property
    def recorded_at(self) -> datetime: ...


R = TypeVar("R", bound=HistoryRecord)


class HistoryStore(Protocol[R]):
    """Append-only, per-entity, time-ordered record store."""

    def append(self, record: R) -> None: ...

    def query(self, entity_id: str, since: datetime | None = None) -> list[R]:
        """Records for entity_id with recorded_at >= since, oldest first."""
        ...
