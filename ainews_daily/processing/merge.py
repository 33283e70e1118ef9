"""
Incremental merge of a run's accepted items into the persisted dataset.

Items are processed once: raw items whose id is already in the previous
dataset are skipped before relevance filtering, and on an id collision the
previously persisted item wins. The retention horizon is applied to the
whole merged set, so nothing older than ``retention_days`` survives a run.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..dataset import Dataset, EnrichedItem
from ..utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Merged items with the counts reported for the run."""
    items: list[EnrichedItem]
    added: int = 0
    kept: int = 0
    collisions: int = 0
    expired: int = 0


def previously_seen_ids(dataset: Dataset | None) -> set[str]:
    """Ids already published. Empty when there is no previous dataset."""
    if dataset is None:
        return set()
    return dataset.ids


def retention_cutoff(retention_days: int, now: datetime | None = None) -> datetime:
    return ensure_utc(now or utc_now()) - timedelta(days=retention_days)


def merge_items(
    previous: Dataset | None,
    new_items: list[EnrichedItem],
    retention_days: int,
    now: datetime | None = None,
) -> MergeResult:
    """Combine previous and new items, applying the retention horizon.

    Args:
        previous: Previously persisted dataset, or None
        new_items: Items accepted in this run
        retention_days: Items published before ``now - retention_days`` are dropped
        now: Reference time, defaults to the current UTC time

    Returns:
        MergeResult with previous items first, then new items
    """
    if retention_days < 1:
        raise ValueError("retention_days must be at least 1")

    cutoff = retention_cutoff(retention_days, now)
    previous_items = previous.articles if previous is not None else []

    merged: list[EnrichedItem] = []
    seen: set[str] = set()
    result = MergeResult(items=merged)

    for item in previous_items:
        if item.id in seen:
            continue
        seen.add(item.id)
        if item.pub_date < cutoff:
            result.expired += 1
            continue
        merged.append(item)
        result.kept += 1

    for item in new_items:
        if item.id in seen:
            result.collisions += 1
            continue
        seen.add(item.id)
        if item.pub_date < cutoff:
            result.expired += 1
            continue
        merged.append(item)
        result.added += 1

    logger.info(
        f"Merged dataset: {result.kept} kept, {result.added} added, "
        f"{result.expired} expired (before {cutoff.date().isoformat()}), {result.collisions} collisions"
    )
    return result


def merge(
    previous: Dataset | None,
    new_items: list[EnrichedItem],
    retention_days: int,
    now: datetime | None = None,
    processing_method: str = "rule-based",
) -> Dataset:
    """Merged dataset stamped with ``now``. See ``merge_items`` for the rules."""
    now = ensure_utc(now or utc_now())
    result = merge_items(previous, new_items, retention_days, now)
    return Dataset(processed_at=now, processing_method=processing_method, articles=result.items)
