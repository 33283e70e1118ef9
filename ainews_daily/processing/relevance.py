"""
Relevance filtering for AI news items.

Decides, before any model time is spent, whether a raw feed item is about
AI. Curated source kinds are trusted outright; everything else must carry
an AI term in its title or come from a known AI source.
"""

import logging
import re
from dataclasses import dataclass, field

from ..ingest.items import RawItem
from ..taxonomy import SourceCategory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelevanceDecision:
    """Outcome of a relevance check."""
    relevant: bool
    reason: str  # 'source_category', 'source', 'keyword', 'no_match', 'empty_title'
    matched_keywords: list[str] = field(default_factory=list)


class RelevanceFilter:
    """Keyword and source based relevance filtering."""

    # Source kinds whose own curation is trusted
    ALWAYS_RELEVANT = frozenset({
        SourceCategory.ACADEMIC_REPOSITORY,
        SourceCategory.VIDEO_CHANNEL,
        SourceCategory.NEWSLETTER,
    })

    AI_KEYWORDS = (
        # Core AI terms
        'ai', 'artificial intelligence', 'machine learning', 'ml', 'deep learning',
        'neural network', 'neural net', 'deep neural', 'artificial neural',
        'genai', 'gen ai',

        # LLMs and models
        'llm', 'large language model', 'language model', 'foundation model',
        'gpt', 'claude', 'gemini', 'llama', 'alpaca', 'vicuna', 'falcon', 'mistral',
        'transformer', 'bert', 'roberta', 't5', 'bart', 'electra',

        # Companies and products
        'openai', 'anthropic', 'google ai', 'deepmind', 'meta ai',
        'hugging face', 'huggingface', 'langchain', 'pinecone', 'weaviate', 'chroma',
        'chatgpt', 'copilot', 'github copilot', 'cursor ai', 'replit ai',
        'dall-e', 'midjourney', 'stable diffusion', 'runway', 'pika',

        # Techniques and concepts
        'fine-tuning', 'fine tuning', 'prompt', 'prompting', 'prompt engineering',
        'rag', 'retrieval augmented', 'embedding', 'vector database',
        'attention', 'self-attention', 'multi-head attention',
        'backpropagation', 'gradient descent', 'optimization',
        'reinforcement learning', 'rl', 'rlhf', 'constitutional ai',

        # Applications
        'computer vision', 'cv', 'image recognition', 'object detection',
        'nlp', 'natural language processing', 'natural language',
        'speech recognition', 'text-to-speech', 'voice synthesis',
        'generative', 'generation', 'synthesis', 'diffusion',
        'chatbot', 'agent', 'autonomous', 'automation', 'robotics',

        # Technical terms
        'pytorch', 'tensorflow', 'keras', 'transformers',
        'dataset', 'training', 'inference', 'model', 'algorithm',
        'benchmark', 'evaluation', 'metrics', 'loss function',
        'overfitting', 'regularization', 'dropout', 'batch norm',
    )

    # Keywords at least this long also match inflected forms (modeling, agentic)
    MIN_INFLECTED_LENGTH = 5

    # Source names that are AI-specific regardless of title
    AI_SOURCES = (
        'openai', 'anthropic', 'huggingface', 'hugging face', 'langchain',
        'deepmind', 'google ai', 'meta ai', 'nvidia', 'cohere',
        'replicate', 'gradio', 'wandb', 'weights & biases', 'mistral',
    )

    def __init__(
        self,
        keywords: tuple[str, ...] | None = None,
        ai_sources: tuple[str, ...] | None = None,
    ):
        """Initialize relevance filter with optional custom lists."""
        self.keywords = keywords if keywords is not None else self.AI_KEYWORDS
        self.ai_sources = ai_sources if ai_sources is not None else self.AI_SOURCES
        self._compile_keywords()

    def _compile_keywords(self) -> None:
        """Compile keyword patterns for efficient matching."""
        self.keyword_patterns = {}

        for keyword in self.keywords:
            # Whole-term match; tolerate plurals and trailing version digits
            suffix = r'(?:s|es|ing|ic|ed)?' if len(keyword) >= self.MIN_INFLECTED_LENGTH else r'(?:s|es)?'
            self.keyword_patterns[keyword] = re.compile(
                r'(?<![a-z0-9])' + re.escape(keyword.lower()) + suffix + r'(?![a-z])'
            )

    def matched_keywords(self, title: str) -> list[str]:
        """Return the curated keywords present in a title."""
        title_lower = title.lower()
        return [
            keyword for keyword, pattern in self.keyword_patterns.items()
            if pattern.search(title_lower)
        ]

    def keyword_mentions(self, title: str) -> list[str]:
        """Keyword mentions as written in the title, in reading order.

        Overlapping matches keep the earliest and then the longest one, so
        "large language model" is reported once rather than also as "model".
        """
        title_lower = title.lower()
        spans = sorted(
            (match.start(), -match.end())
            for pattern in self.keyword_patterns.values()
            for match in pattern.finditer(title_lower)
        )

        mentions: list[str] = []
        seen: set[str] = set()
        last_end = -1
        for start, neg_end in spans:
            end = -neg_end
            if start < last_end:
                continue
            last_end = end
            mention = title[start:end]
            if mention.lower() not in seen:
                seen.add(mention.lower())
                mentions.append(mention)
        return mentions

    def is_ai_source(self, source: str) -> bool:
        source_lower = (source or '').lower()
        return any(name in source_lower for name in self.ai_sources)

    def check(self, item: RawItem) -> RelevanceDecision:
        """Decide relevance for a single item, with the reason."""
        if not item.title or not item.title.strip():
            return RelevanceDecision(False, 'empty_title')

        if item.source_category in self.ALWAYS_RELEVANT:
            return RelevanceDecision(True, 'source_category')

        if self.is_ai_source(item.source):
            return RelevanceDecision(True, 'source')

        matched = self.matched_keywords(item.title)
        if matched:
            return RelevanceDecision(True, 'keyword', matched)

        return RelevanceDecision(False, 'no_match')

    def is_relevant(self, item: RawItem) -> bool:
        """Check whether an item is topically in scope."""
        return self.check(item).relevant

    def filter_items(self, items: list[RawItem]) -> list[RawItem]:
        """Keep only relevant items, preserving order."""
        relevant = [item for item in items if self.is_relevant(item)]
        logger.info(f"Relevance filter: {len(items)} -> {len(relevant)} items")
        return relevant


def filter_relevance(items: list[RawItem], relevance_filter: RelevanceFilter | None = None) -> list[RawItem]:
    """Convenience function for relevance filtering."""
    return (relevance_filter or RelevanceFilter()).filter_items(items)
