"""Tests for the classifier variants and the adapter."""

import time

import pytest

from ainews_daily.models.classifier import (
    CATEGORY_LABELS,
    ClassificationResult,
    ClassifierAdapter,
    MalformedOutputError,
    ModelBackedClassifier,
    RuleBasedClassifier,
    classify_item,
)
from ainews_daily.models.local_models import ModelState
from ainews_daily.taxonomy import Category

SCENARIO_TITLE = "OpenAI releases GPT-5 with new reasoning capabilities"


def zero_shot_output(*ranked):
    return {
        "sequence": "text",
        "labels": [label for label, _ in ranked],
        "scores": [score for _, score in ranked],
    }


class TestRuleBasedClassifier:
    """Test keyword classification."""

    def test_model_release_scenario(self):
        result = RuleBasedClassifier().classify_rule_based(SCENARIO_TITLE)

        assert result == ClassificationResult(Category.MODEL_RELEASE, 0.76, "rules")

    def test_deterministic(self):
        classifier = RuleBasedClassifier()
        texts = [SCENARIO_TITLE, "Research tool for agents", "Weekly roundup"]

        assert [classifier.classify_rule_based(t) for t in texts] == [classifier.classify_rule_based(t) for t in texts]

    def test_ties_go_to_earlier_category(self):
        # one research-paper keyword, one developer-tool keyword
        result = RuleBasedClassifier().classify_rule_based("Research tool")

        assert result.category is Category.RESEARCH_PAPER
        assert result.confidence == 0.68

    def test_no_match_is_general_default(self):
        result = RuleBasedClassifier().classify_rule_based("Weekly roundup")

        assert result == ClassificationResult(Category.INDUSTRY_NEWS, 0.6, "default")

    def test_confidence_is_capped(self):
        title = "Safety ethics alignment bias responsible governance regulation fairness"

        result = RuleBasedClassifier().classify_rule_based(title)

        assert result.category is Category.SAFETY_ETHICS
        assert result.confidence == 0.92

    def test_rank_puts_winner_first(self):
        ranked = RuleBasedClassifier().rank(SCENARIO_TITLE)

        assert ranked[0].label == Category.MODEL_RELEASE.value
        assert sorted(r.label for r in ranked) == sorted(CATEGORY_LABELS)


class TestModelBackedClassifier:
    """Test model output handling and per-item fallback."""

    def test_parse_output_sorted(self):
        output = zero_shot_output(("research-paper", 0.2), ("model-release", 0.7), ("tutorial-guide", 0.1))

        ranked = ModelBackedClassifier.parse_output(output, CATEGORY_LABELS)

        assert [r.label for r in ranked] == ["model-release", "research-paper", "tutorial-guide"]
        assert all(r.method == "model" for r in ranked)

    @pytest.mark.parametrize("output", [
        None,
        {"labels": [], "scores": []},
        {"labels": ["model-release"], "scores": [0.5, 0.5]},
        {"labels": ["cooking"], "scores": [0.9]},
        {"labels": ["model-release"], "scores": [1.7]},
    ])
    def test_parse_output_rejects_malformed(self, output):
        with pytest.raises(MalformedOutputError):
            ModelBackedClassifier.parse_output(output, CATEGORY_LABELS)

    @pytest.mark.asyncio
    async def test_model_result_used(self, make_models):
        calls = []

        def classifier(text, candidate_labels, **options):
            calls.append((text, candidate_labels, options))
            return zero_shot_output(("research-paper", 0.9), ("model-release", 0.1))

        models = await make_models({"classifier": classifier}).load()

        result = await classify_item(ModelBackedClassifier(models), SCENARIO_TITLE)

        assert result == ClassificationResult(Category.RESEARCH_PAPER, 0.9, "model")
        assert calls[0][1] == list(CATEGORY_LABELS)
        assert calls[0][2]["hypothesis_template"] == "This article is about {}."

    @pytest.mark.asyncio
    async def test_exception_falls_back_to_rules(self, make_models):
        def classifier(text, **options):
            raise RuntimeError("CUDA out of memory")

        models = await make_models({"classifier": classifier}).load()

        result = await classify_item(ModelBackedClassifier(models), SCENARIO_TITLE)

        assert result == ClassificationResult(Category.MODEL_RELEASE, 0.76, "rules")

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_rules(self, make_models):
        def classifier(text, **options):
            time.sleep(0.5)
            return zero_shot_output(("research-paper", 0.9))

        models = await make_models({"classifier": classifier}, timeout_seconds=0.05).load()

        result = await classify_item(ModelBackedClassifier(models), SCENARIO_TITLE)

        assert result.method == "rules"
        assert result.category is Category.MODEL_RELEASE

    @pytest.mark.asyncio
    async def test_malformed_output_falls_back_to_rules(self, make_models):
        models = await make_models({"classifier": lambda text, **options: {"labels": ["cooking"], "scores": [1.0]}}).load()

        result = await classify_item(ModelBackedClassifier(models), SCENARIO_TITLE)

        assert result.method == "rules"


class TestClassifierAdapter:
    """Test variant selection."""

    @pytest.mark.asyncio
    async def test_state_machine(self, rules_models):
        adapter = ClassifierAdapter(rules_models)

        assert adapter.state is ModelState.UNINITIALIZED
        with pytest.raises(RuntimeError):
            adapter.classifier

        await adapter.load()

        assert adapter.state is ModelState.READY
        assert not adapter.model_backed
        assert isinstance(adapter.classifier, RuleBasedClassifier)

    @pytest.mark.asyncio
    async def test_model_backed_when_classifier_loads(self, make_models):
        models = make_models({"classifier": lambda text, **options: zero_shot_output(("tutorial-guide", 0.8))})
        adapter = ClassifierAdapter(models)

        await adapter.load()

        assert adapter.model_backed
        assert models.available("classifier")
        assert not models.available("summarizer")

    @pytest.mark.asyncio
    async def test_load_is_settled_once(self, make_models):
        loads = []

        def classifier(text, **options):
            return zero_shot_output(("tutorial-guide", 0.8))

        models = make_models({"classifier": classifier})
        original_loader = models.loader

        def counting_loader(route, model_settings):
            loads.append(route.task)
            return original_loader(route, model_settings)

        models.loader = counting_loader
        adapter = ClassifierAdapter(models)

        first = await adapter.load()
        second = await adapter.load()
        await models.load()

        assert first is second
        assert loads.count("zero-shot-classification") == 1

    @pytest.mark.asyncio
    async def test_classify_item_never_raises(self):
        class Broken:
            name = "broken"

            async def classify(self, text, labels):
                raise ValueError("boom")

        result = await classify_item(Broken(), "Anything at all")

        assert result == ClassificationResult(Category.INDUSTRY_NEWS, 0.6, "default")
