"""Enriched items and the persisted dataset document."""

from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from .errors import DatasetWriteError
from .logging import get_logger, log_error
from .taxonomy import CATEGORY_ORDER, Category, SourceCategory
from .utils import ensure_utc, format_datetime_iso, utc_now, write_atomic

logger = get_logger(__name__)

ENTITY_KINDS = ("organizations", "products", "technologies")


def empty_entities() -> dict[str, list[str]]:
    return {kind: [] for kind in ENTITY_KINDS}


class EnrichedItem(BaseModel):
    """A classified, enriched item as it appears in the dataset."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    url: str
    source: str = ""
    source_domain: str = ""
    source_category: SourceCategory = SourceCategory.NEWS_OUTLET
    pub_date: datetime
    excerpt: str = ""
    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    classification_method: str = "rules"
    difficulty: int = Field(ge=1, le=10)
    entities: dict[str, list[str]] = Field(default_factory=empty_entities)
    summary: str = Field(min_length=1)
    language: str = "en"
    language_confidence: float | None = None
    processed_at: datetime
    duplicate_of: str | None = None

    @field_validator("source_category", mode="before")
    @classmethod
    def normalize_source_category(cls, v: Any) -> SourceCategory:
        return SourceCategory.normalize(v)

    @field_validator("pub_date", "processed_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_serializer("pub_date", "processed_at")
    def serialize_datetime(self, value: datetime) -> str:
        return format_datetime_iso(value)


class Dataset(BaseModel):
    """Ordered enriched items plus run metadata."""

    processed_at: datetime = Field(default_factory=utc_now)
    processing_method: str = "rule-based"
    articles: list[EnrichedItem] = Field(default_factory=list)

    @field_validator("processed_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def total_articles(self) -> int:
        return len(self.articles)

    @property
    def category_counts(self) -> dict[str, int]:
        counts = Counter(item.category for item in self.articles)
        return {category.value: counts[category] for category in CATEGORY_ORDER if counts[category]}

    @property
    def categories(self) -> list[str]:
        return list(self.category_counts)

    @property
    def ids(self) -> set[str]:
        return {item.id for item in self.articles}

    def to_document(self) -> dict[str, Any]:
        """Build the JSON document consumed by the site builder."""
        return {
            "processedAt": format_datetime_iso(self.processed_at),
            "totalArticles": self.total_articles,
            "categories": self.categories,
            "categoryCounts": self.category_counts,
            "processingMethod": self.processing_method,
            "articles": [item.model_dump(mode="json", by_alias=True) for item in self.articles],
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Dataset":
        """Rebuild a dataset from a persisted document, skipping invalid or repeated articles."""
        articles = []
        seen: set[str] = set()
        skipped = 0

        for record in document.get("articles") or []:
            try:
                item = EnrichedItem.model_validate(record)
            except ValidationError:
                skipped += 1
                continue
            if item.id in seen:
                skipped += 1
                continue
            seen.add(item.id)
            articles.append(item)

        if skipped:
            logger.warning("Skipped invalid persisted articles", skipped=skipped, kept=len(articles))

        processed_at = document.get("processedAt")
        return cls(
            processed_at=processed_at or utc_now(),
            processing_method=document.get("processingMethod") or "rule-based",
            articles=articles,
        )


def load_dataset(path: str | Path) -> Dataset | None:
    """Load a previously persisted dataset.

    A missing or unreadable document is not an error: the run continues
    as a full reprocessing and the condition is logged.

    Returns:
        The dataset, or None when there is no usable previous dataset
    """
    path = Path(path)
    if not path.exists():
        logger.warning("No previous dataset, processing everything", path=str(path))
        return None

    try:
        document = orjson.loads(path.read_bytes())
        if not isinstance(document, dict):
            raise ValueError("dataset document is not an object")
        dataset = Dataset.from_document(document)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning("Previous dataset unreadable, processing everything", **log_error(e, path=str(path)))
        return None

    logger.info("Loaded previous dataset", path=str(path), count=dataset.total_articles)
    return dataset


def save_dataset(dataset: Dataset, path: str | Path, dated_copy: bool = False) -> list[Path]:
    """Persist the dataset atomically.

    Args:
        dataset: Dataset to write
        path: Destination of the latest document
        dated_copy: Also write ``YYYY-MM-DD-processed.json`` next to it,
            before the latest document

    Returns:
        Paths written

    Raises:
        DatasetWriteError: the document could not be written
    """
    path = Path(path)
    targets = [path]
    if dated_copy:
        targets.append(path.parent / f"{dataset.processed_at.strftime('%Y-%m-%d')}-processed.json")

    content = orjson.dumps(dataset.to_document(), option=orjson.OPT_INDENT_2)

    # The latest document is the commit point, so it is written last
    for target in reversed(targets):
        try:
            write_atomic(target, content)
        except OSError as e:
            logger.error("Cannot write dataset", **log_error(e, path=str(target)))
            raise DatasetWriteError(f"Cannot write dataset to {target}: {e}") from e

    logger.info("Dataset saved", paths=[str(t) for t in targets], count=dataset.total_articles)
    return targets
