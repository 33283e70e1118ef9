"""Raw feed items and the loader for the crawler's output document."""

from datetime import datetime
from pathlib import Path
from typing import Any

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import PipelineError
from ..logging import get_logger, log_error
from ..taxonomy import SourceCategory
from ..utils import ensure_utc, extract_domain, parse_date_string

logger = get_logger(__name__)


class RawItem(BaseModel):
    """A single feed entry as produced by the crawler. Immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    url: str = Field(validation_alias=AliasChoices("url", "link"))
    source: str = ""
    source_domain: str = Field("", validation_alias=AliasChoices("source_domain", "sourceDomain"))
    source_category: SourceCategory = Field(
        SourceCategory.NEWS_OUTLET,
        validation_alias=AliasChoices("source_category", "sourceCategory"),
    )
    pub_date: datetime = Field(validation_alias=AliasChoices("pub_date", "pubDate", "published_date"))
    excerpt: str = Field("", validation_alias=AliasChoices("excerpt", "metaDescription", "description"))
    language: str = "en"
    language_confidence: float | None = Field(
        None, validation_alias=AliasChoices("language_confidence", "languageConfidence")
    )

    @field_validator("title", "url")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("excerpt", "source", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("source_category", mode="before")
    @classmethod
    def normalize_source_category(cls, v: Any) -> SourceCategory:
        return SourceCategory.normalize(v)

    @field_validator("pub_date", mode="before")
    @classmethod
    def parse_pub_date(cls, v: Any) -> datetime:
        if isinstance(v, datetime):
            return ensure_utc(v)
        parsed = parse_date_string(str(v)) if v else None
        if parsed is None:
            raise ValueError(f"unparseable publish date: {v!r}")
        return parsed

    @model_validator(mode="before")
    @classmethod
    def fill_source_domain(cls, data: Any) -> Any:
        if isinstance(data, dict) and not (data.get("source_domain") or data.get("sourceDomain")):
            url = data.get("url") or data.get("link") or ""
            data = {**data, "source_domain": extract_domain(str(url))}
        return data


def parse_raw_items(records: list[dict[str, Any]]) -> list[RawItem]:
    """Validate crawler records, discarding entries without title, url or date."""
    items = []
    discarded = 0

    for record in records:
        try:
            items.append(RawItem.model_validate(record))
        except ValidationError as e:
            discarded += 1
            logger.debug("Discarding invalid raw item", title=record.get("title"), errors=e.error_count())

    if discarded:
        logger.info("Discarded invalid raw items", discarded=discarded, kept=len(items))

    return items


def load_raw_items(path: str | Path) -> list[RawItem]:
    """Load the crawler's raw document.

    Accepts either ``{"articles": [...]}`` or a bare list of articles.

    Raises:
        PipelineError: the document cannot be read or is not a raw-items document
    """
    path = Path(path)
    try:
        document = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.error("Cannot read raw items", **log_error(e, path=str(path)))
        raise PipelineError(f"Cannot read raw items from {path}: {e}") from e

    records = document.get("articles") if isinstance(document, dict) else document
    if not isinstance(records, list):
        raise PipelineError(f"Raw items document {path} has no article list")

    items = parse_raw_items([r for r in records if isinstance(r, dict)])
    logger.info("Loaded raw items", path=str(path), count=len(items))
    return items
