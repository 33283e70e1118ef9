"""
Enrichment of classified news items.

Each item goes through three sub-steps, in order:
1. Entity extraction (NER model merged with curated patterns)
2. Difficulty scoring (category base score adjusted by title terms)
3. Summary generation (local summarizer, or a templated sentence)

Every sub-step returns a ``StepResult``. A failing sub-step never fails the
item: the error is logged and the documented fallback value is used.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, TypeVar

from ..dataset import ENTITY_KINDS, EnrichedItem, empty_entities
from ..ingest.items import RawItem
from ..models.classifier import ClassificationResult
from ..models.local_models import LocalModels
from ..taxonomy import Category
from ..utils import truncate_text, utc_now
from .relevance import RelevanceFilter
from .text_utils import clean_html_text, is_boilerplate

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SUMMARY_LENGTH = 160

MAX_ENTITIES = {
    "organizations": 5,
    "products": 5,
    "technologies": 8,
}

DEFAULT_DIFFICULTY = 5

BASE_DIFFICULTY = {
    Category.RESEARCH_PAPER: 8,
    Category.TUTORIAL_GUIDE: 3,
    Category.PRODUCT_LAUNCH: 4,
    Category.DEVELOPER_TOOL: 6,
    Category.MODEL_RELEASE: 7,
    Category.INDUSTRY_NEWS: 4,
    Category.AI_AGENTS: 7,
    Category.CREATIVE_AI: 5,
    Category.INFRASTRUCTURE: 8,
    Category.SAFETY_ETHICS: 6,
}

TECHNICAL_TERMS = re.compile(
    r"architecture|optimization|embedding|gradient|benchmark|ablation|"
    r"fine-tun|hyperparameter|transformer|neural|deep learning",
    re.IGNORECASE,
)

BEGINNER_TERMS = re.compile(
    r"introduction|beginner|basic|101|getting started|simple|easy|tutorial|guide",
    re.IGNORECASE,
)

ENTITY_PATTERNS = {
    "organizations": [
        re.compile(r"\b(OpenAI|Anthropic|Google|Meta|Microsoft|Apple|Amazon|NVIDIA|Intel|IBM|Tesla|Salesforce)\b", re.IGNORECASE),
        re.compile(r"\b(DeepMind|Hugging Face|Stability AI|Midjourney|Replicate|Cohere|Together AI)\b", re.IGNORECASE),
        re.compile(r"\b(Stanford|MIT|Berkeley|Carnegie Mellon|Harvard|Oxford|Cambridge)\b"),
    ],
    "products": [
        re.compile(r"\b(ChatGPT|GPT-[0-9]+|Claude|Gemini|LLaMA|DALL-E|Midjourney|Stable Diffusion)\b", re.IGNORECASE),
        re.compile(r"\b(TensorFlow|PyTorch|Transformers|LangChain|AutoGPT|GitHub Copilot)\b", re.IGNORECASE),
    ],
    "technologies": [
        re.compile(r"\b(AI|Machine Learning|Deep Learning|Neural Networks?|Transformer|LSTM|CNN|GAN)\b"),
        re.compile(r"\b(Natural Language Processing|Computer Vision|Reinforcement Learning|MLOps)\b", re.IGNORECASE),
    ],
}

# Products named by the NER model are only kept when they are known products
KNOWN_PRODUCT = re.compile("|".join(p.pattern for p in ENTITY_PATTERNS["products"]), re.IGNORECASE)

MAX_SUMMARY_TOPICS = 3


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Value produced by an enrichment sub-step, or its fallback."""
    value: T
    source: str  # 'model', 'rules', 'template', 'default'
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


def _unique(values: list[str]) -> list[str]:
    """Order-preserving, case-insensitive de-duplication keeping the first surface form."""
    seen: set[str] = set()
    unique = []
    for value in values:
        key = value.strip().lower()
        if key and key not in seen:
            seen.add(key)
            unique.append(value.strip())
    return unique


def match_entities(text: str) -> dict[str, list[str]]:
    """Entities found by the curated patterns alone."""
    entities = empty_entities()
    for kind, patterns in ENTITY_PATTERNS.items():
        for pattern in patterns:
            entities[kind].extend(match.group(1) for match in pattern.finditer(text))
    return entities


def parse_ner_output(output: Any, min_score: float) -> dict[str, list[str]]:
    """Map aggregated NER pipeline output onto entity kinds.

    ``ORG`` spans become organizations; ``MISC`` spans become products
    when they name a known product. Low-score spans and stray word pieces
    are dropped.
    """
    entities = empty_entities()
    if not isinstance(output, list):
        raise ValueError(f"unexpected NER output type {type(output).__name__}")

    for span in output:
        if not isinstance(span, dict):
            continue
        word = str(span.get("word", "")).strip()
        group = span.get("entity_group") or span.get("entity", "")
        if len(word) < 2 or word.startswith("##"):
            continue
        if float(span.get("score", 0.0)) < min_score:
            continue

        if group.endswith("ORG"):
            entities["organizations"].append(word)
        elif group.endswith("MISC") and KNOWN_PRODUCT.fullmatch(word):
            entities["products"].append(word)

    return entities


async def extract_entities(text: str, models: LocalModels) -> StepResult[dict[str, list[str]]]:
    """Named entities in the item text.

    Model entities come first, then pattern matches; each list is unique
    case-insensitively and capped per kind.
    """
    patterns = match_entities(text)
    found = empty_entities()
    source, error = "rules", None

    if models.available("ner"):
        try:
            output = await models.run("ner", text[:models.settings.max_input_chars])
            found = parse_ner_output(output, models.settings.ner_min_score)
            source = "model"
        except Exception as e:
            logger.warning(f"NER failed, using patterns only: {e}")
            error = str(e) or e.__class__.__name__

    entities = {
        kind: _unique(found[kind] + patterns[kind])[:MAX_ENTITIES[kind]]
        for kind in ENTITY_KINDS
    }
    return StepResult(entities, source, error)


def score_difficulty(title: str, category: Category | None) -> StepResult[int]:
    """Reading difficulty from 1 (beginner) to 10 (expert)."""
    score = BASE_DIFFICULTY.get(category, DEFAULT_DIFFICULTY)
    score += len(TECHNICAL_TERMS.findall(title))
    score -= len(BEGINNER_TERMS.findall(title))
    return StepResult(max(1, min(10, score)), "rules")


_topic_filter = RelevanceFilter()


def template_summary(title: str, category: Category) -> str:
    """Templated one-line summary from the category and title topics."""
    topics = _topic_filter.keyword_mentions(title)[:MAX_SUMMARY_TOPICS]
    label = category.label

    if topics:
        if len(topics) > 1:
            topic_text = ", ".join(topics[:-1]) + f" and {topics[-1]}"
        else:
            topic_text = topics[0]
        sentence = f"{label.capitalize()} update on {topic_text}."
    else:
        sentence = f"Latest {label} updates in artificial intelligence."

    return truncate_text(sentence, MAX_SUMMARY_LENGTH)


def parse_summary_output(output: Any) -> str:
    """Text of the first summary returned by a summarization pipeline."""
    if isinstance(output, list) and output:
        output = output[0]
    if not isinstance(output, dict):
        raise ValueError(f"unexpected summary output type {type(output).__name__}")
    return str(output.get("summary_text", "")).strip()


async def generate_summary(
    title: str,
    excerpt: str,
    category: Category,
    models: LocalModels,
) -> StepResult[str]:
    """Short summary, never empty and at most ``MAX_SUMMARY_LENGTH`` characters."""
    if is_boilerplate(excerpt):
        return StepResult(template_summary(title, category), "template")

    if not models.available("summarizer"):
        return StepResult(template_summary(title, category), "template")

    text = clean_html_text(excerpt)[:models.settings.max_input_chars]
    try:
        summary = parse_summary_output(await models.run("summarizer", text))
    except Exception as e:
        logger.warning(f"Summarizer failed for '{title[:60]}': {e}")
        return StepResult(template_summary(title, category), "template", str(e) or e.__class__.__name__)

    if not summary:
        return StepResult(template_summary(title, category), "template", "empty summary")

    return StepResult(truncate_text(summary, MAX_SUMMARY_LENGTH), "model")


class ItemEnricher:
    """Runs the enrichment sub-steps for classified items."""

    def __init__(self, models: LocalModels):
        self.models = models
        self.degraded = 0

    async def enrich(
        self,
        item: RawItem,
        classification: ClassificationResult,
        item_id: str,
        processed_at: datetime | None = None,
    ) -> EnrichedItem:
        """Build the enriched item. Never raises for sub-step failures."""
        text = f"{item.title} {clean_html_text(item.excerpt)}".strip()
        errors = []

        try:
            entities = await extract_entities(text, self.models)
        except Exception as e:
            entities = StepResult(match_entities(text), "rules", str(e))
        if entities.degraded:
            errors.append("entities")

        try:
            difficulty = score_difficulty(item.title, classification.category)
        except Exception as e:
            difficulty = StepResult(DEFAULT_DIFFICULTY, "default", str(e))
        if difficulty.degraded:
            errors.append("difficulty")

        try:
            summary = await generate_summary(item.title, item.excerpt, classification.category, self.models)
        except Exception as e:
            summary = StepResult(template_summary(item.title, classification.category), "template", str(e))
        if summary.degraded:
            errors.append("summary")

        if errors:
            self.degraded += 1
            logger.warning(f"Enrichment degraded for {item_id}: {', '.join(errors)}")

        return EnrichedItem(
            id=item_id,
            title=item.title,
            url=item.url,
            source=item.source,
            source_domain=item.source_domain,
            source_category=item.source_category,
            pub_date=item.pub_date,
            excerpt=item.excerpt,
            category=classification.category,
            confidence=classification.confidence,
            classification_method=classification.method,
            difficulty=difficulty.value,
            entities=entities.value,
            summary=summary.value,
            language=item.language,
            language_confidence=item.language_confidence,
            processed_at=processed_at or utc_now(),
        )


async def enrich_item(
    item: RawItem,
    classification: ClassificationResult,
    item_id: str,
    models: LocalModels,
    processed_at: datetime | None = None,
) -> EnrichedItem:
    """Convenience function for enriching a single item."""
    return await ItemEnricher(models).enrich(item, classification, item_id, processed_at)
