"""Tests for relevance filtering."""

import pytest

from ainews_daily.processing.relevance import RelevanceFilter, filter_relevance


@pytest.fixture
def relevance_filter():
    return RelevanceFilter()


def test_ai_source_is_relevant(relevance_filter, make_raw_item):
    item = make_raw_item(
        "OpenAI releases GPT-5 with new reasoning capabilities",
        source="OpenAI Blog",
        source_category="news-outlet",
    )

    decision = relevance_filter.check(item)

    assert decision.relevant
    assert decision.reason == "source"


@pytest.mark.parametrize("source_category", ["academic-repository", "research", "youtube", "newsletter"])
def test_curated_source_kinds_always_relevant(relevance_filter, make_raw_item, source_category):
    item = make_raw_item("On the convergence of stochastic methods", source="Somewhere", source_category=source_category)

    decision = relevance_filter.check(item)

    assert decision.relevant
    assert decision.reason == "source_category"


def test_keyword_in_title(relevance_filter, make_raw_item):
    decision = relevance_filter.check(make_raw_item("Why LLMs struggle with arithmetic", source="Daily Planet"))

    assert decision.relevant
    assert decision.reason == "keyword"
    assert "llm" in decision.matched_keywords


def test_unrelated_item_rejected(relevance_filter, make_raw_item):
    decision = relevance_filter.check(make_raw_item("Local bakery wins regional award", source="City Paper"))

    assert not decision.relevant
    assert decision.reason == "no_match"


def test_keywords_match_whole_terms(relevance_filter, make_raw_item):
    # "ai" inside "Maine" or "fair" is not a mention
    assert not relevance_filter.is_relevant(make_raw_item("Maine county fair opens", source="City Paper"))
    assert relevance_filter.is_relevant(make_raw_item("Maine bets on AI for schools", source="City Paper"))


def test_keyword_mentions_keep_surface_form_and_longest_match(relevance_filter):
    mentions = relevance_filter.keyword_mentions("Meta AI ships a large language model")

    assert mentions == ["Meta AI", "large language model"]


def test_filter_preserves_order(make_raw_item):
    items = [
        make_raw_item("PyTorch 3 announced"),
        make_raw_item("Weather for the weekend"),
        make_raw_item("Transformer tricks for inference"),
    ]

    assert filter_relevance(items) == [items[0], items[2]]


@pytest.mark.parametrize("title", [
    "GenAI budgets keep growing",
    "Agentic workflows reach the enterprise",
    "Better modeling of protein folding",
])
def test_inflected_and_compound_terms(relevance_filter, make_raw_item, title):
    assert relevance_filter.is_relevant(make_raw_item(title, source="City Paper"))


def test_short_keywords_stay_whole_words(relevance_filter, make_raw_item):
    # "rag" is not inflected, so "raging" is not a mention
    assert not relevance_filter.is_relevant(make_raw_item("Raging storms close the coast", source="City Paper"))
