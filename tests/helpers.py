"""Record factories and test doubles shared across test modules."""

import threading
import time
from collections import Counter
from datetime import datetime, timedelta, timezone

from stock_intel.data.memory import InMemoryRecordSource
from stock_intel.models import EntityMetadata, ExecutiveRecord, FilingRecord, ScoreHistoryRecord

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class CountingRecordSource(InMemoryRecordSource):
    """InMemoryRecordSource that counts reads and can simulate a slow backend."""

    def __init__(self, delay: float = 0.0):
        super().__init__()
        self.delay = delay
        self.calls: Counter[str] = Counter()
        self._calls_lock = threading.Lock()

    def _count(self, name: str) -> None:
        with self._calls_lock:
            self.calls[name] += 1
        if self.delay:
            time.sleep(self.delay)

    def get_entity(self, entity_id: str) -> EntityMetadata:
        self._count("get_entity")
        return super().get_entity(entity_id)

    def get_filings(self, entity_id: str) -> tuple[FilingRecord, ...]:
        self._count("get_filings")
        return super().get_filings(entity_id)

    def get_executives(self, entity_id: str) -> tuple[ExecutiveRecord, ...]:
        self._count("get_executives")
        return super().get_executives(entity_id)


def filing(
    days_ago: int,
    filing_type: str = "Annual Report",
    summary: str = "Routine disclosure",
    is_material: bool = False,
    now: datetime = NOW,
) -> FilingRecord:
    """Filing dated `days_ago` days before now."""
    return FilingRecord(
        filing_type=filing_type,
        summary=summary,
        filed_at=now - timedelta(days=days_ago),
        is_material=is_material,
    )


def executive(years: float, specialization: str = "Finance", name: str = "Exec") -> ExecutiveRecord:
    return ExecutiveRecord(
        name=name,
        title="Officer",
        years_at_company=years,
        specialization=specialization,
    )


def entity(
    entity_id: str = "ACME",
    market_cap: float = 300_000_000,
    price_change_percent: float = 6.0,
    sector: str = "Mining",
    name: str = "",
) -> EntityMetadata:
    return EntityMetadata(
        entity_id=entity_id,
        market_cap=market_cap,
        price_change_percent=price_change_percent,
        sector=sector,
        name=name or entity_id.title(),
    )


def add_acme(source: InMemoryRecordSource) -> InMemoryRecordSource:
    """
    Add ACME: regular filings, a stable three-person team and no flags.

    Composite score at NOW is 92:
    pedigree 90, filing_velocity 100, red_flag 100, growth 70, governance 65
    (base 87.75) plus the +5 audit bonus.
    """
    source.add_entity(entity())
    source.add_filings(
        "ACME",
        [
            filing(10, "Quarterly Report", "Audited financial statements", is_material=True),
            filing(95, "Quarterly Report", "Operations update", is_material=True),
            filing(180, "Quarterly Report", "Operations update"),
            filing(270, "Annual Report", "Annual results"),
        ],
    )
    source.add_executives(
        "ACME",
        [
            executive(6, "Finance", "A"),
            executive(4, "Geology", "B"),
            executive(3, "Legal", "C"),
        ],
    )
    return source


def score_record(entity_id: str, overall: int, days_ago: float) -> ScoreHistoryRecord:
    """Score history record with every component equal to the overall score."""
    return ScoreHistoryRecord(
        entity_id=entity_id,
        overall_score=overall,
        pedigree_score=overall,
        filing_velocity_score=overall,
        red_flag_score=overall,
        growth_score=overall,
        governance_score=overall,
        calculated_at=NOW - timedelta(days=days_ago),
    )


def add_risky(source: InMemoryRecordSource) -> InMemoryRecordSource:
    """Add RISKY: three equity financings in a year, one financing velocity flag (18.75)."""
    source.add_entity(entity("RISKY", sector="Tech"))
    source.add_filings("RISKY", [filing(d, "Equity Financing") for d in (10, 100, 200)])
    return source
