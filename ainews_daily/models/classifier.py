"""Category classification with a model-backed and a rule-based variant.

Both variants satisfy one contract, ``classify(text, labels)``, returning
labels ranked by score. The variant is chosen once per run by
``ClassifierAdapter.load()`` from what the capability probe found.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from ..logging import get_logger, log_error
from ..taxonomy import CATEGORY_ORDER, GENERAL_CATEGORY, Category
from .local_models import LocalModels, ModelState

logger = get_logger(__name__)

CATEGORY_LABELS: tuple[str, ...] = tuple(category.value for category in CATEGORY_ORDER)

BASE_CONFIDENCE = 0.6
CONFIDENCE_PER_MATCH = 0.08
MAX_RULE_CONFIDENCE = 0.92


@dataclass(frozen=True)
class RankedLabel:
    """One candidate label with its score."""
    label: str
    score: float
    method: str = "rules"  # 'model', 'rules', 'default'


@dataclass(frozen=True)
class ClassificationResult:
    """Category assigned to an item. Immutable once created."""
    category: Category
    confidence: float
    method: str = "rules"


class MalformedOutputError(ValueError):
    """The model returned something that is not a ranking over the labels."""
    pass


class Classifier(Protocol):
    """Capability shared by every classifier variant."""

    name: str

    async def classify(self, text: str, labels: Sequence[str]) -> list[RankedLabel]:
        ...


class RuleBasedClassifier:
    """Keyword-count classifier. Deterministic for a given keyword table."""

    name = "rules"

    CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
        Category.MODEL_RELEASE: ('model', 'release', 'gpt', 'llama', 'claude', 'gemini', 'version', 'checkpoint', 'weights'),
        Category.RESEARCH_PAPER: ('research', 'paper', 'arxiv', 'study', 'findings', 'analysis', 'investigation', 'methodology'),
        Category.DEVELOPER_TOOL: ('api', 'sdk', 'framework', 'library', 'tool', 'development', 'coding', 'programming'),
        Category.PRODUCT_LAUNCH: ('launch', 'announcing', 'introduces', 'unveils', 'product', 'feature', 'beta', 'available'),
        Category.TUTORIAL_GUIDE: ('tutorial', 'guide', 'how-to', 'learn', 'getting started', 'introduction', 'walkthrough'),
        Category.INDUSTRY_NEWS: ('acquisition', 'funding', 'partnership', 'market', 'industry', 'business', 'company', 'enterprise'),
        Category.AI_AGENTS: ('agent', 'autonomous', 'chatbot', 'assistant', 'automation', 'workflow', 'task'),
        Category.CREATIVE_AI: ('art', 'image', 'video', 'music', 'creative', 'generation', 'dall-e', 'midjourney', 'stable diffusion'),
        Category.INFRASTRUCTURE: ('training', 'compute', 'gpu', 'cloud', 'infrastructure', 'scaling', 'performance', 'optimization'),
        Category.SAFETY_ETHICS: ('safety', 'ethics', 'alignment', 'bias', 'responsible', 'governance', 'regulation', 'fairness'),
    }

    def __init__(self, category_keywords: dict[Category, tuple[str, ...]] | None = None):
        self.category_keywords = category_keywords or self.CATEGORY_KEYWORDS

    def match_counts(self, text: str) -> dict[Category, int]:
        """Number of distinct keywords of each category found in the text."""
        text_lower = text.lower()
        return {
            category: sum(1 for keyword in self.category_keywords.get(category, ()) if keyword in text_lower)
            for category in CATEGORY_ORDER
        }

    @staticmethod
    def confidence_for(match_count: int) -> float:
        """0.6 plus 0.08 per matched keyword, capped below certainty."""
        return round(min(BASE_CONFIDENCE + CONFIDENCE_PER_MATCH * match_count, MAX_RULE_CONFIDENCE), 4)

    def classify_rule_based(self, text: str) -> ClassificationResult:
        """Pick the category with most keyword matches; earlier categories win ties."""
        counts = self.match_counts(text)
        best_category, best_count = GENERAL_CATEGORY, 0

        for category in CATEGORY_ORDER:
            if counts[category] > best_count:
                best_category, best_count = category, counts[category]

        if best_count == 0:
            return ClassificationResult(GENERAL_CATEGORY, BASE_CONFIDENCE, "default")

        return ClassificationResult(best_category, self.confidence_for(best_count), "rules")

    def rank(self, text: str, labels: Sequence[str] = CATEGORY_LABELS) -> list[RankedLabel]:
        """Rank the given labels; the winner of ``classify_rule_based`` comes first."""
        counts = self.match_counts(text)
        best = self.classify_rule_based(text)

        ranked = [RankedLabel(best.category.value, best.confidence, best.method)]
        others = []
        for label in labels:
            category = Category.from_label(label)
            if category is None or category is best.category:
                continue
            count = counts[category]
            others.append(RankedLabel(category.value, self.confidence_for(count) if count else 0.0, "rules"))

        # sorted() is stable, so equal scores keep declaration order
        return ranked + sorted(others, key=lambda r: r.score, reverse=True)

    async def classify(self, text: str, labels: Sequence[str] = CATEGORY_LABELS) -> list[RankedLabel]:
        return self.rank(text, labels)


class ModelBackedClassifier:
    """Zero-shot classification through a local model.

    Any failure for an item (timeout, runtime error, malformed output) is
    answered by the rule-based classifier for that item only.
    """

    name = "model"

    def __init__(self, models: LocalModels, fallback: RuleBasedClassifier | None = None):
        self.models = models
        self.fallback = fallback or RuleBasedClassifier()

    @staticmethod
    def parse_output(output: Any, labels: Sequence[str]) -> list[RankedLabel]:
        """Turn zero-shot pipeline output into ranked labels.

        Raises:
            MalformedOutputError: output is not a ranking over the given labels
        """
        if isinstance(output, list) and len(output) == 1:
            output = output[0]
        if not isinstance(output, dict):
            raise MalformedOutputError(f"unexpected output type {type(output).__name__}")

        out_labels, scores = output.get("labels"), output.get("scores")
        if not out_labels or not isinstance(out_labels, list) or not isinstance(scores, list):
            raise MalformedOutputError("missing labels or scores")
        if len(out_labels) != len(scores):
            raise MalformedOutputError("labels and scores differ in length")

        allowed = set(labels)
        ranked = []
        for label, score in zip(out_labels, scores):
            if label not in allowed:
                raise MalformedOutputError(f"unknown label {label!r}")
            score = float(score)
            if not 0.0 <= score <= 1.0:
                raise MalformedOutputError(f"score out of range for {label!r}: {score}")
            ranked.append(RankedLabel(label, score, "model"))

        return sorted(ranked, key=lambda r: r.score, reverse=True)

    async def classify(self, text: str, labels: Sequence[str] = CATEGORY_LABELS) -> list[RankedLabel]:
        max_chars = self.models.settings.max_input_chars
        try:
            output = await self.models.run("classifier", text[:max_chars], candidate_labels=list(labels))
            return self.parse_output(output, labels)
        except Exception as e:
            logger.warning("Model classification failed, using rules", **log_error(e, text=text[:80]))
            return self.fallback.rank(text, labels)


class ClassifierAdapter:
    """Selects and holds the classifier variant for a run.

    ``UNINITIALIZED -> LOADING -> READY``. ``load()`` is awaited once before
    items are submitted; if the classifier model is not available the
    adapter settles on the rule-based variant for the whole run.
    """

    def __init__(self, models: LocalModels, rules: RuleBasedClassifier | None = None):
        self.models = models
        self.rules = rules or RuleBasedClassifier()
        self._classifier: Classifier | None = None

    @property
    def state(self) -> ModelState:
        if self._classifier is not None:
            return ModelState.READY
        if self.models.state is ModelState.LOADING:
            return ModelState.LOADING
        return ModelState.UNINITIALIZED

    @property
    def classifier(self) -> Classifier:
        if self._classifier is None:
            raise RuntimeError("ClassifierAdapter.load() must complete before classifying")
        return self._classifier

    @property
    def model_backed(self) -> bool:
        return self._classifier is not None and self._classifier.name == ModelBackedClassifier.name

    async def load(self) -> Classifier:
        if self._classifier is None:
            await self.models.load()
            if self.models.available("classifier"):
                self._classifier = ModelBackedClassifier(self.models, self.rules)
            else:
                self._classifier = self.rules
            logger.info("Classifier ready", variant=self._classifier.name)
        return self._classifier

    async def classify(self, text: str, labels: Sequence[str] = CATEGORY_LABELS) -> list[RankedLabel]:
        return await self.classifier.classify(text, labels)


async def classify_item(classifier: Classifier, title: str, excerpt: str = "") -> ClassificationResult:
    """Classify one item, always returning a result.

    The top ranked label becomes the category. When the classifier raises
    or returns nothing usable, the item gets the general category at base
    confidence.
    """
    text = f"{title} {excerpt}".strip()
    try:
        ranked = await classifier.classify(text, CATEGORY_LABELS)
    except Exception as e:
        logger.warning("Classification failed, using default category", **log_error(e, title=title[:80]))
        ranked = []

    for candidate in ranked:
        category = Category.from_label(candidate.label)
        if category is not None:
            return ClassificationResult(category, candidate.score, candidate.method)

    return ClassificationResult(GENERAL_CATEGORY, BASE_CONFIDENCE, "default")
