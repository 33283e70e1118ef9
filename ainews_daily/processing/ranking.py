"""
Deterministic ordering of the published dataset.

Items are ordered by:
- Recency (newest first)
- Confidence tier (items above ``HIGH_CONFIDENCE`` first)
- Source kind (community forum items after everything else)
- Title, then id, as final tie-breakers

The id is unique within a dataset, so the key defines a strict total order
and the same input always produces the same output.
"""

import logging
from dataclasses import dataclass

from ..dataset import EnrichedItem
from ..taxonomy import SourceCategory

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.8


@dataclass(frozen=True, order=True)
class RankingKey:
    """Sort key for an enriched item; smaller sorts first."""
    recency: float
    confidence_tier: int
    community_tier: int
    title: str
    id: str


def ranking_key(item: EnrichedItem) -> RankingKey:
    return RankingKey(
        recency=-item.pub_date.timestamp(),
        confidence_tier=0 if item.confidence > HIGH_CONFIDENCE else 1,
        community_tier=1 if item.source_category is SourceCategory.COMMUNITY_FORUM else 0,
        title=item.title,
        id=item.id,
    )


def rank_items(items: list[EnrichedItem]) -> list[EnrichedItem]:
    """Return the items in publication order. The input list is not modified."""
    ranked = sorted(items, key=ranking_key)
    logger.info(f"Ranked {len(ranked)} items")
    return ranked
