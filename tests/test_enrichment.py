"""Tests for the enrichment stage."""

import pytest

from ainews_daily.models.classifier import ClassificationResult
from ainews_daily.processing.enrichment import (
    MAX_SUMMARY_LENGTH,
    ItemEnricher,
    extract_entities,
    generate_summary,
    match_entities,
    score_difficulty,
    template_summary,
)
from ainews_daily.processing.text_utils import is_boilerplate
from ainews_daily.taxonomy import Category

SCENARIO_TITLE = "OpenAI releases GPT-5 with new reasoning capabilities"
LONG_EXCERPT = (
    "OpenAI today released GPT-5, a model that plans over several steps before answering "
    "and scores higher on math and coding benchmarks than its predecessor."
)


class TestDifficulty:
    """Test difficulty scoring."""

    def test_scenario_uses_category_base(self):
        assert score_difficulty(SCENARIO_TITLE, Category.MODEL_RELEASE).value == 7

    def test_terms_adjust_score(self):
        # +neural, -introduction, -basic
        result = score_difficulty("Introduction to neural network basics", Category.TUTORIAL_GUIDE)
        assert result.value == 2
        assert result.source == "rules"

    def test_clamped_to_range(self):
        easy = "Easy simple basic beginner tutorial guide introduction"
        hard = "Transformer architecture optimization with gradient benchmark ablation"

        assert score_difficulty(easy, Category.TUTORIAL_GUIDE).value == 1
        assert score_difficulty(hard, Category.RESEARCH_PAPER).value == 10

    def test_unknown_category(self):
        assert score_difficulty("Weekly roundup", None).value == 5


class TestEntities:
    """Test entity extraction."""

    def test_patterns(self):
        entities = match_entities("OpenAI releases GPT-5 with new AI reasoning, built on PyTorch")

        assert entities["organizations"] == ["OpenAI"]
        assert entities["products"] == ["GPT-5", "PyTorch"]
        assert entities["technologies"] == ["AI"]

    @pytest.mark.asyncio
    async def test_rules_only(self, rules_models):
        await rules_models.load()

        result = await extract_entities("Google and google researchers at Stanford", rules_models)

        assert result.source == "rules"
        assert result.value["organizations"] == ["Google", "Stanford"]

    @pytest.mark.asyncio
    async def test_model_entities_merged_first(self, make_models):
        def ner(text, **options):
            return [
                {"entity_group": "ORG", "word": "Acme Labs", "score": 0.95},
                {"entity_group": "ORG", "word": "OpenAI", "score": 0.99},
                {"entity_group": "ORG", "word": "Initech", "score": 0.42},
                {"entity_group": "MISC", "word": "ChatGPT", "score": 0.91},
                {"entity_group": "MISC", "word": "Tuesday", "score": 0.97},
                {"entity_group": "ORG", "word": "##ab", "score": 0.99},
            ]

        models = await make_models({"ner": ner}).load()

        result = await extract_entities("Acme Labs and OpenAI ship ChatGPT plugins on Tuesday", models)

        assert result.source == "model"
        assert result.value["organizations"] == ["Acme Labs", "OpenAI"]
        assert result.value["products"] == ["ChatGPT"]

    @pytest.mark.asyncio
    async def test_model_failure_keeps_patterns(self, make_models):
        def ner(text, **options):
            raise RuntimeError("tokenizer crashed")

        models = await make_models({"ner": ner}).load()

        result = await extract_entities("OpenAI ships GPT-5", models)

        assert result.degraded
        assert result.value["organizations"] == ["OpenAI"]
        assert result.value["products"] == ["GPT-5"]

    @pytest.mark.asyncio
    async def test_capped(self, rules_models):
        await rules_models.load()
        text = "OpenAI Anthropic Google Meta Microsoft Apple Amazon NVIDIA"

        result = await extract_entities(text, rules_models)

        assert result.value["organizations"] == ["OpenAI", "Anthropic", "Google", "Meta", "Microsoft"]


class TestSummary:
    """Test summary generation."""

    @pytest.mark.parametrize("excerpt", [
        "",
        "Comments",
        "Article URL: https://example.com/x Comments URL: https://news.example.com/item?id=1",
        "https://example.com/a-very-long-link-to-some-article-about-ai-models",
        "Too short to say anything.",
    ])
    def test_boilerplate(self, excerpt):
        assert is_boilerplate(excerpt)

    def test_real_excerpt_is_not_boilerplate(self):
        assert not is_boilerplate(LONG_EXCERPT)

    def test_template_with_topics(self):
        summary = template_summary(SCENARIO_TITLE, Category.MODEL_RELEASE)

        assert summary == "Model release update on OpenAI and GPT."

    def test_template_without_topics(self):
        summary = template_summary("Weekly roundup", Category.INDUSTRY_NEWS)

        assert summary == "Latest industry news updates in artificial intelligence."

    @pytest.mark.asyncio
    async def test_boilerplate_uses_template(self, make_models):
        models = await make_models({"summarizer": lambda text, **options: [{"summary_text": "unused"}]}).load()

        result = await generate_summary(SCENARIO_TITLE, "Comments", Category.MODEL_RELEASE, models)

        assert result.source == "template"
        assert not result.degraded
        assert result.value

    @pytest.mark.asyncio
    async def test_model_summary(self, make_models):
        calls = []

        def summarizer(text, **options):
            calls.append(options)
            return [{"summary_text": " GPT-5 plans before it answers. "}]

        models = await make_models({"summarizer": summarizer}).load()

        result = await generate_summary(SCENARIO_TITLE, LONG_EXCERPT, Category.MODEL_RELEASE, models)

        assert result.source == "model"
        assert result.value == "GPT-5 plans before it answers."
        assert calls[0]["max_length"] == 60

    @pytest.mark.asyncio
    async def test_long_model_summary_truncated(self, make_models):
        models = await make_models({"summarizer": lambda text, **options: [{"summary_text": "word " * 100}]}).load()

        result = await generate_summary(SCENARIO_TITLE, LONG_EXCERPT, Category.MODEL_RELEASE, models)

        assert len(result.value) <= MAX_SUMMARY_LENGTH
        assert result.value.endswith("...")

    @pytest.mark.asyncio
    async def test_model_failure_uses_template(self, make_models):
        def summarizer(text, **options):
            raise RuntimeError("model crashed")

        models = await make_models({"summarizer": summarizer}).load()

        result = await generate_summary(SCENARIO_TITLE, LONG_EXCERPT, Category.MODEL_RELEASE, models)

        assert result.source == "template"
        assert result.degraded
        assert result.value == template_summary(SCENARIO_TITLE, Category.MODEL_RELEASE)


class TestItemEnricher:
    """Test the full enrichment of one item."""

    @pytest.mark.asyncio
    async def test_scenario(self, rules_models, make_raw_item, now):
        await rules_models.load()
        item = make_raw_item(SCENARIO_TITLE, source="OpenAI Blog")
        classification = ClassificationResult(Category.MODEL_RELEASE, 0.76, "rules")
        enricher = ItemEnricher(rules_models)

        enriched = await enricher.enrich(item, classification, "a" * 16, now)

        assert enriched.id == "a" * 16
        assert enriched.category is Category.MODEL_RELEASE
        assert enriched.confidence == 0.76
        assert enriched.difficulty == 7
        assert enriched.entities["organizations"] == ["OpenAI"]
        assert enriched.entities["products"] == ["GPT-5"]
        assert 0 < len(enriched.summary) <= MAX_SUMMARY_LENGTH
        assert enriched.processed_at == now
        assert enriched.source_domain == "example.com"
        assert enricher.degraded == 0

    @pytest.mark.asyncio
    async def test_failing_steps_are_counted_not_raised(self, make_models, make_raw_item, now):
        def broken(text, **options):
            raise RuntimeError("model crashed")

        models = await make_models({"summarizer": broken, "ner": broken}).load()
        item = make_raw_item(SCENARIO_TITLE, excerpt=LONG_EXCERPT)
        enricher = ItemEnricher(models)

        enriched = await enricher.enrich(item, ClassificationResult(Category.MODEL_RELEASE, 0.76), "b" * 16, now)

        assert enriched.summary == template_summary(SCENARIO_TITLE, Category.MODEL_RELEASE)
        assert enriched.entities["organizations"] == ["OpenAI"]
        assert enricher.degraded == 1
