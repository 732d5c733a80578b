"""Local/remote conflict resolution."""

from stock_intel.sync.resolver import (
    ConflictCandidate,
    ConflictResolver,
    ManualRequired,
    ResolutionOutcome,
    ResolutionStrategy,
    Resolved,
)

__all__ = [
    "ConflictCandidate",
    "ConflictResolver",
    "ManualRequired",
    "ResolutionOutcome",
    "ResolutionStrategy",
    "Resolved",
]
