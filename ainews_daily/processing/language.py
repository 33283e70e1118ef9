"""
Language detection for incoming items.

Titles are run through the local ``language`` route. Items confidently
detected as another language are skipped before classification; anything
the detector cannot decide is treated as English.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from ..ingest.items import RawItem
from ..models.local_models import LocalModels

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

# Confidence recorded when no detector ran
DEFAULT_CONFIDENCE = 0.95

ENGLISH_LABELS = frozenset({"en", "eng", "english"})

LABEL_PREFIX = re.compile(r"^__label__")


@dataclass(frozen=True)
class LanguageResult:
    """Detected language of an item title."""
    language: str
    confidence: float
    source: str  # 'model' or 'default'
    error: str | None = None

    @property
    def english(self) -> bool:
        return self.language == DEFAULT_LANGUAGE


def normalize_language_label(label: str) -> str:
    """Short lowercase language code from a detector label.

    >>> normalize_language_label("eng_Latn")
    'en'
    >>> normalize_language_label("__label__fr")
    'fr'
    """
    code = LABEL_PREFIX.sub("", str(label).strip().lower())
    code = re.split(r"[_\-]", code, maxsplit=1)[0]
    return DEFAULT_LANGUAGE if code in ENGLISH_LABELS else code


def parse_language_output(output: Any) -> tuple[str, float]:
    """Top label and score from a text-classification pipeline."""
    while isinstance(output, list):
        if not output:
            raise ValueError("empty language detection output")
        output = output[0]
    if not isinstance(output, dict) or "label" not in output:
        raise ValueError(f"unexpected language detection output: {output!r}")

    score = float(output.get("score", 0.0))
    if not 0.0 <= score <= 1.0:
        raise ValueError(f"language score out of range: {score}")
    return normalize_language_label(output["label"]), score


async def detect_language(title: str, models: LocalModels) -> LanguageResult:
    """Language of a title. Never raises; failures default to English."""
    if not models.available("language"):
        return LanguageResult(DEFAULT_LANGUAGE, DEFAULT_CONFIDENCE, "default")

    try:
        language, confidence = parse_language_output(await models.run("language", title))
    except Exception as e:
        logger.warning(f"Language detection failed, assuming English: {e}")
        return LanguageResult(DEFAULT_LANGUAGE, DEFAULT_CONFIDENCE, "default", str(e) or e.__class__.__name__)

    return LanguageResult(language, confidence, "model")


class LanguageFilter:
    """Drops items confidently detected as non-English."""

    def __init__(self, models: LocalModels, skip_confidence: float | None = None):
        self.models = models
        self.skip_confidence = (
            skip_confidence if skip_confidence is not None else models.settings.language_skip_confidence
        )
        self.skipped = 0

    def should_skip(self, result: LanguageResult) -> bool:
        return not result.english and result.confidence > self.skip_confidence

    async def check(self, item: RawItem) -> RawItem | None:
        """The item annotated with its language, or None when it is skipped."""
        result = await detect_language(item.title, self.models)
        if self.should_skip(result):
            self.skipped += 1
            logger.info(f"Skipping non-English item ({result.language}, {result.confidence:.2f}): {item.title[:60]}")
            return None

        return item.model_copy(update={
            "language": result.language,
            "language_confidence": result.confidence,
        })
