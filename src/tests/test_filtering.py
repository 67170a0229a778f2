from __future__ import annotations

import asyncio

import pytest

from fakes import make_article
from news_pulse.articles import ArticleStore
from news_pulse.datamodels import CATEGORIES, Article, FilterState
from news_pulse.filtering import apply_filter, matches_query


@pytest.fixture
def articles():
    return [
        make_article("1", "Markets rally", "Stocks climb on earnings", category="business"),
        make_article("2", "New AI chip unveiled", None, category="technology"),
        make_article("3", "Cup final tonight", "Fans gather for the AIRSHOW too", category="sports"),
        make_article("4", "Vaccine study", "Results from the trial", category="health"),
    ]


@pytest.mark.parametrize("category", CATEGORIES)
def test_category_projection_only_returns_that_category(articles, category):
    visible = apply_filter(articles, FilterState(category=category))
    assert all(a.category == category for a in visible)
    assert len(visible) == sum(1 for a in articles if a.category == category)


def test_all_category_returns_everything(articles):
    assert apply_filter(articles, FilterState(category="all")) == articles


@pytest.mark.parametrize("query", ["ai", "AI", "the", "Results", "nothing-like-this"])
def test_query_projection_matches_title_or_description(articles, query):
    for a in apply_filter(articles, FilterState(query=query)):
        haystacks = [a.title.lower(), (a.description or "").lower()]
        assert any(query.lower() in h for h in haystacks)


def test_query_is_case_insensitive_over_description(articles):
    visible = apply_filter(articles, FilterState(query="airshow"))
    assert [a.id for a in visible] == ["3"]


def test_article_without_title_or_description_never_matches():
    blank = Article(id="x", title="", url="https://news.example/x")
    assert matches_query(blank, "")
    assert not matches_query(blank, "a")


def test_filtering_does_not_mutate_items(articles):
    snapshot = list(articles)
    apply_filter(articles, FilterState(query="ai", category="technology"))
    assert articles == snapshot


def test_typing_ai_leaves_one_technology_article(gateway):
    gateway.feed["technology"] = [
        make_article("t1", "AI beats humans at Go", "A milestone"),
        make_article("t2", "Phone review", "Battery life is great"),
        make_article("t3", "Chip shortage eases", "Factories reopen"),
    ]
    store = ArticleStore(gateway)

    asyncio.run(store.set_category("technology"))

    visible = store.visible(FilterState(query="ai"))
    assert [a.id for a in visible] == ["t1"]
