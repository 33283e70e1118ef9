"""
Deduplication of news items by title fingerprint and title similarity.

Two strategies operate at different points of the pipeline:
1. Fingerprint deduplication (exact, destructive) runs before
   classification so duplicates never cost model time.
2. Near-duplicate grouping (token-set Jaccard, non-destructive) runs on the
   merged dataset and only annotates members with their canonical item.

Near-duplicate grouping compares every item against every canonical item
seen so far, O(n²) in the batch size. That is fine for the hundreds of
items a run handles and is the first thing to revisit for larger batches.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..dataset import EnrichedItem
from ..ingest.items import RawItem
from ..utils import generate_content_hash
from .text_utils import jaccard_similarity, title_token_set, title_tokens

logger = logging.getLogger(__name__)

# Leading tokens that make up a fingerprint
FINGERPRINT_TOKENS = 8

ID_LENGTH = 16

NEAR_DUPLICATE_THRESHOLD = 0.8


def fingerprint(title: str) -> str:
    """Deterministic digest of a normalized title.

    The title is case-folded, punctuation becomes whitespace, whitespace is
    collapsed, simple plurals are folded and only the leading tokens are
    kept. An empty normalized title yields an empty fingerprint.
    """
    tokens = title_tokens(title)[:FINGERPRINT_TOKENS]
    if not tokens:
        return ""
    return generate_content_hash(" ".join(tokens))


def item_id(title: str, url: str) -> str:
    """Stable item id derived from the title fingerprint (url hash if the title normalizes to nothing)."""
    digest = fingerprint(title) or generate_content_hash(url)
    return digest[:ID_LENGTH]


def raw_item_id(item: RawItem) -> str:
    return item_id(item.title, item.url)


@dataclass
class DuplicateGroup:
    """Near-duplicate items grouped under their canonical item."""
    canonical_id: str
    duplicate_ids: list[str] = field(default_factory=list)
    similarity_scores: list[float] = field(default_factory=list)


class DedupIndex:
    """Fingerprints and ids seen during one run.

    Owned by the run and passed to the stages that need it. Seeded with the
    ids of the previously persisted dataset so re-submissions of
    historical items are rejected too.
    """

    def __init__(self, known_ids: Iterable[str] = ()):
        self.known_ids: set[str] = set(known_ids)
        self.seen_fingerprints: dict[str, RawItem] = {}
        self.rejected_history = 0
        self.rejected_batch = 0

    def admit(self, item: RawItem) -> bool:
        """Record an item, returning False when it duplicates history or an earlier item."""
        digest = fingerprint(item.title)
        if not digest:
            # Nothing to compare on; treated as unique
            return True

        key = digest[:ID_LENGTH]
        if key in self.known_ids:
            self.rejected_history += 1
            return False

        if digest in self.seen_fingerprints:
            self.rejected_batch += 1
            return False

        self.seen_fingerprints[digest] = item
        return True

    def deduplicate(self, items: list[RawItem]) -> list[RawItem]:
        """Single pass, first seen wins. Input order decides the canonical item."""
        unique = [item for item in items if self.admit(item)]
        logger.info(
            f"Fingerprint deduplication: {len(items)} -> {len(unique)} items "
            f"({self.rejected_history} already published, {self.rejected_batch} repeated in batch)"
        )
        return unique


def dedupe(items: list[RawItem]) -> list[RawItem]:
    """Remove exact (fingerprint) duplicates within a batch.

    Items are expected newest-first; the first instance of each fingerprint
    is kept. Running it again on its own output removes nothing.
    """
    return DedupIndex().deduplicate(items)


def group_near_duplicates(
    items: list[EnrichedItem],
    threshold: float = NEAR_DUPLICATE_THRESHOLD,
) -> tuple[list[EnrichedItem], list[DuplicateGroup]]:
    """Annotate near-duplicate items with the id of their canonical item.

    The first item of each group in input order is canonical. Every other
    item is compared with the canonical items only, and joins the most
    similar one whose title similarity reaches ``threshold``. Nothing is
    removed; members get ``duplicate_of`` set, canonical items get it
    cleared.

    Returns:
        Annotated items in input order and the groups that were found
    """
    canonicals: list[tuple[EnrichedItem, set[str]]] = []
    groups: dict[str, DuplicateGroup] = {}
    annotated = []

    for item in items:
        tokens = title_token_set(item.title)
        best_match: EnrichedItem | None = None
        best_score = 0.0

        if tokens:
            for canonical, canonical_tokens in canonicals:
                score = jaccard_similarity(tokens, canonical_tokens)
                if score >= threshold and score > best_score:
                    best_match, best_score = canonical, score

        if best_match is None:
            if tokens:
                canonicals.append((item, tokens))
            annotated.append(item if item.duplicate_of is None else item.model_copy(update={'duplicate_of': None}))
            continue

        group = groups.setdefault(best_match.id, DuplicateGroup(best_match.id))
        group.duplicate_ids.append(item.id)
        group.similarity_scores.append(best_score)
        annotated.append(item.model_copy(update={'duplicate_of': best_match.id}))

    marked = sum(len(group.duplicate_ids) for group in groups.values())
    logger.info(f"Near-duplicate grouping: {len(groups)} groups, {marked} items marked")
    return annotated, list(groups.values())
