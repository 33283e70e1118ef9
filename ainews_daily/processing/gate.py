"""Confidence gate between enrichment and publication."""

import logging

from ..dataset import EnrichedItem

logger = logging.getLogger(__name__)


def validate_threshold(threshold: float) -> float:
    if threshold is None or not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Confidence threshold must be between 0 and 1, got {threshold!r}")
    return float(threshold)


def accept(item: EnrichedItem, threshold: float) -> bool:
    """True when the item's confidence reaches the threshold."""
    return item.confidence >= threshold


class ConfidenceGate:
    """Filters enriched items below a confidence threshold.

    Raising the threshold never admits an item that a lower threshold
    rejected. Rejected items are counted and logged, never persisted.
    """

    def __init__(self, threshold: float):
        self.threshold = validate_threshold(threshold)
        self.accepted = 0
        self.rejected = 0

    def __call__(self, item: EnrichedItem) -> bool:
        if accept(item, self.threshold):
            self.accepted += 1
            return True

        self.rejected += 1
        logger.debug(
            f"Rejected {item.id} '{item.title[:60]}': "
            f"confidence {item.confidence:.2f} < {self.threshold:.2f}"
        )
        return False

    def filter(self, items: list[EnrichedItem]) -> list[EnrichedItem]:
        """Keep accepted items in input order."""
        kept = [item for item in items if self(item)]
        logger.info(
            f"Confidence gate ({self.threshold:.2f}): {len(items)} -> {len(kept)} items, "
            f"{len(items) - len(kept)} rejected"
        )
        return kept
