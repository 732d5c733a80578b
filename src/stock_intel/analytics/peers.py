"""Sector peer comparison of composite scores."""

import logging

from stock_intel.analytics.scoring import CompositeScorer
from stock_intel.data.sources import HistoryStore, PeerSource
from stock_intel.models import PeerComparison, PeerScore, ScoreHistoryRecord

logger = logging.getLogger(__name__)

TOP_PEERS = 5
# Percentile reported when the entity has no scored peers
DEFAULT_PERCENTILE = 50


class PeerComparator:
    """
    Compares an entity's score with the latest recorded scores of its sector peers.

    Peers are never scored on the entity's behalf; a peer without score
    history is left out of the comparison.
    """

    def __init__(
        self,
        peer_source: PeerSource,
        scorer: CompositeScorer,
        score_history: HistoryStore[ScoreHistoryRecord],
    ):
        self.peer_source = peer_source
        self.scorer = scorer
        self.score_history = score_history

    def latest_score(self, entity_id: str) -> int | None:
        records = self.score_history.query(entity_id)
        return records[-1].overall_score if records else None

    def compare(self, entity_id: str) -> PeerComparison:
        """
        Args:
            entity_id: Entity identifier

        Returns:
            Sector average, percentile (share of peers scoring lower) and top peers

        Raises:
            NotFoundError: If the entity has no metadata record
        """
        entity = self.peer_source.get_entity(entity_id)
        score = self.scorer.score(entity_id).overall_score

        peer_scores: list[PeerScore] = []
        for peer in self.peer_source.list_entities(entity.sector):
            if peer.entity_id == entity_id:
                continue
            latest = self.latest_score(peer.entity_id)
            if latest is None:
                continue
            peer_scores.append(PeerScore(entity_id=peer.entity_id, name=peer.name, score=latest))

        if peer_scores:
            sector_average = int(sum(p.score for p in peer_scores) / len(peer_scores))
            lower = sum(1 for p in peer_scores if p.score < score)
            percentile = int(lower / len(peer_scores) * 100)
        else:
            sector_average = score
            percentile = DEFAULT_PERCENTILE

        top_peers = sorted(peer_scores, key=lambda p: p.score, reverse=True)[:TOP_PEERS]
        logger.debug(
            f"compare({entity_id}): {len(peer_scores)} scored peer(s) in {entity.sector}"
        )
        return PeerComparison(
            entity_id=entity_id,
            score=score,
            sector_average=sector_average,
            percentile=percentile,
            peer_scores=tuple(top_peers),
        )
