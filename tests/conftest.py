"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Generator

import pytest

# Set test environment
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["JSON_LOGGING"] = "false"
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="ainews-test-"))

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)

TASK_ROUTES = {
    "text-classification": "language",
    "zero-shot-classification": "classifier",
    "summarization": "summarizer",
    "ner": "ner",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings(temp_dir):
    """Rule-based settings writing into a temporary data directory."""
    from ainews_daily.config import Settings

    return Settings(
        data_dir=temp_dir / "data",
        confidence_threshold=0.6,
        rules_only=True,
        workers=2,
    )


@pytest.fixture
def make_raw_item():
    """Factory for raw items published relative to ``NOW``."""
    from ainews_daily.ingest.items import RawItem

    def build(
        title: str,
        url: str | None = None,
        source: str = "Tech Daily",
        source_category: str = "news-outlet",
        hours_ago: float = 1,
        excerpt: str = "",
    ) -> RawItem:
        return RawItem(
            title=title,
            url=url or f"https://example.com/{abs(hash(title))}",
            source=source,
            source_category=source_category,
            pub_date=NOW - timedelta(hours=hours_ago),
            excerpt=excerpt,
        )

    return build


@pytest.fixture
def make_enriched_item():
    """Factory for enriched items published relative to ``NOW``."""
    from ainews_daily.dataset import EnrichedItem
    from ainews_daily.processing.dedupe import item_id
    from ainews_daily.taxonomy import Category

    def build(
        title: str,
        hours_ago: float = 1,
        confidence: float = 0.76,
        category: Category = Category.MODEL_RELEASE,
        source_category: str = "news-outlet",
        id: str | None = None,
    ) -> EnrichedItem:
        url = f"https://example.com/{abs(hash(title))}"
        return EnrichedItem(
            id=id or item_id(title, url),
            title=title,
            url=url,
            source="Tech Daily",
            source_domain="example.com",
            source_category=source_category,
            pub_date=NOW - timedelta(hours=hours_ago),
            category=category,
            confidence=confidence,
            difficulty=5,
            summary=f"Summary of {title}",
            processed_at=NOW,
        )

    return build


@pytest.fixture
def raw_records() -> list[dict[str, Any]]:
    """Crawler records in the crawler's own field names."""
    def record(title, source, category, hours_ago, description=""):
        return {
            "title": title,
            "url": f"https://news.example.com/{abs(hash(title))}",
            "source": source,
            "source_category": category,
            "pubDate": (NOW - timedelta(hours=hours_ago)).isoformat(),
            "metaDescription": description,
        }

    return [
        record("OpenAI releases GPT-5 with new reasoning capabilities", "OpenAI Blog", "company", 2),
        record("OpenAI Releases GPT-5 With New Reasoning Capabilities!", "Tech Daily", "news", 1),
        record("New Paper on Attention Mechanisms", "arXiv cs.LG", "research", 5),
        record("Local bakery wins regional award", "City Paper", "news", 3),
        record("Anthropic publishes AI safety research on alignment", "Tech Daily", "news", 8,
               "Anthropic researchers describe new alignment techniques for large language models."),
    ]


@pytest.fixture
def write_raw(settings):
    """Write a crawler document into the settings' data directory."""
    import orjson

    def write(records: list[dict[str, Any]]) -> Path:
        document = {"crawledAt": NOW.isoformat(), "totalArticles": len(records), "articles": records}
        settings.raw_path.write_bytes(orjson.dumps(document))
        return settings.raw_path

    return write


@pytest.fixture
def rules_models():
    from ainews_daily.models.local_models import LocalModels

    return LocalModels.rules_only()


@pytest.fixture
def make_models():
    """Build a model registry whose pipelines are plain callables.

    ``pipelines`` maps route names to callables; routes that are missing
    fail to load, as a missing model would.
    """
    from ainews_daily.config import ModelConfig, ModelSettings
    from ainews_daily.errors import ModelLoadError
    from ainews_daily.models.local_models import LocalModels

    def build(pipelines: dict[str, Callable[..., Any]], timeout_seconds: float = 2.0) -> LocalModels:
        def loader(route, model_settings):
            name = TASK_ROUTES[route.task]
            if name not in pipelines:
                raise ModelLoadError(f"{route.model} not available")
            return pipelines[name]

        return LocalModels(
            model_config=ModelConfig(),
            settings=ModelSettings(timeout_seconds=timeout_seconds),
            loader=loader,
        )

    return build
