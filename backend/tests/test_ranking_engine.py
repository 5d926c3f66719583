from typing import List, Optional, Sequence

import pytest

from salesbot.core.exceptions import RankingError
from salesbot.schemas.chat import CatalogProduct, UserPreferences
from salesbot.services.contracts import SemanticMatch
from salesbot.services.ranking import (
    RankingEngine,
    RankingStrategy,
    normalize_keyword_score,
    tokenize_query,
)


class FakeEmbedding:
    def __init__(self, similarities: Sequence[float] = (), available: bool = True, error: Optional[Exception] = None):
        self.similarities = list(similarities)
        self.available = available
        self.error = error
        self.calls = 0

    def is_available(self) -> bool:
        return self.available

    async def semantic_search(self, shop, query, products, top_k=6) -> List[SemanticMatch]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [SemanticMatch(product=p, similarity=s) for p, s in zip(products, self.similarities)]


@pytest.fixture
def products(catalog) -> List[CatalogProduct]:
    return [CatalogProduct.model_validate(item) for item in catalog]


def test_tokenize_drops_stop_words_short_tokens_and_punctuation() -> None:
    assert tokenize_query("Show me the SHOES, please!") == ["shoes", "please"]
    assert tokenize_query("voir les produits") == ["produits"]
    assert tokenize_query("") == []


def test_keyword_scores_title_and_description_matches(products) -> None:
    ranked = RankingEngine().keyword_rank("running shoes", products)

    assert [rec.id for rec in ranked] == ["gid-1", "gid-3"]
    # gid-1: 5+2 (running) + 5+2 (shoes) = 14 -> capped at 100
    # gid-3: 5+2 (running) + 2 (shoes in description) = 9 -> 90
    assert [rec.relevance_score for rec in ranked] == [100, 90]


def test_keyword_ignores_trailing_punctuation(products) -> None:
    ranked = RankingEngine().keyword_rank("Do you have a jacket?", products)
    assert [rec.id for rec in ranked] == ["gid-2"]
    assert ranked[0].relevance_score == 70


def test_keyword_returns_nothing_without_matches(products) -> None:
    assert RankingEngine().keyword_rank("umbrella", products) == []


def test_keyword_price_preference_adds_bonus(products) -> None:
    preferences = UserPreferences.model_validate({"priceRange": {"min": 0, "max": 50}})
    ranked = RankingEngine().keyword_rank("running", products, preferences)

    # gid-3 gets the +3 price bonus and overtakes gid-1
    assert ranked[0].id == "gid-3"
    assert ranked[0].relevance_score == 100
    assert ranked[1].id == "gid-1"
    assert ranked[1].relevance_score == 70
    # in-range products with no text match still score the bonus
    assert {rec.id for rec in ranked[2:]} == {"gid-4", "gid-5"}


def test_keyword_ties_keep_catalog_order() -> None:
    products = [CatalogProduct(id=str(i), title=f"Cotton shirt {i}") for i in range(4)]
    ranked = RankingEngine().keyword_rank("shirt", products)
    assert [rec.id for rec in ranked] == ["0", "1", "2", "3"]


def test_keyword_results_are_capped_and_sorted() -> None:
    products = [
        CatalogProduct(id=str(i), title="shirt" if i % 2 else "shirt shirt", description="shirt" * (i % 3))
        for i in range(12)
    ]
    ranked = RankingEngine().keyword_rank("shirt", products)

    assert len(ranked) == 6
    scores = [rec.relevance_score for rec in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(0 <= score <= 100 for score in scores)


@pytest.mark.parametrize("raw,expected", [(0, 0), (3, 30), (7, 70), (10, 100), (14, 100)])
def test_normalize_keyword_score(raw: int, expected: int) -> None:
    assert normalize_keyword_score(raw) == expected


@pytest.mark.asyncio
async def test_semantic_rank_orders_by_similarity(products) -> None:
    engine = RankingEngine(FakeEmbedding([0.42, 0.91, 0.77]))
    ranked = await engine.semantic_rank("something warm", products, shop="demo.myshopify.com")

    assert [rec.id for rec in ranked] == ["gid-2", "gid-3", "gid-1"]
    assert [rec.relevance_score for rec in ranked] == [91, 77, 42]


@pytest.mark.asyncio
async def test_semantic_rank_wraps_collaborator_errors(products) -> None:
    engine = RankingEngine(FakeEmbedding(error=RuntimeError("vector store down")))
    with pytest.raises(RankingError):
        await engine.semantic_rank("shoes", products)


@pytest.mark.asyncio
async def test_semantic_rank_without_collaborator_is_empty(products) -> None:
    engine = RankingEngine()
    assert engine.semantic_available() is False
    assert await engine.semantic_rank("shoes", products) == []


def test_semantic_availability_check_failure_means_unavailable() -> None:
    class BrokenAvailability(FakeEmbedding):
        def is_available(self) -> bool:
            raise RuntimeError("availability check failed")

    assert RankingEngine(BrokenAvailability()).semantic_available() is False


def test_generic_sample_takes_first_six_at_neutral_score() -> None:
    products = [CatalogProduct(id=str(i), title=f"Item {i}") for i in range(9)]
    sampled = RankingEngine().generic_sample(products)

    assert [rec.id for rec in sampled] == ["0", "1", "2", "3", "4", "5"]
    assert {rec.relevance_score for rec in sampled} == {50}


@pytest.mark.asyncio
async def test_rank_dispatches_on_strategy(products) -> None:
    engine = RankingEngine(FakeEmbedding([0.5] * 5))

    semantic = await engine.rank("running shoes", products, RankingStrategy.semantic)
    keyword = await engine.rank("running shoes", products, RankingStrategy.keyword)
    generic = await engine.rank("running shoes", products, RankingStrategy.generic)

    assert len(semantic) == 5
    assert [rec.id for rec in keyword] == ["gid-1", "gid-3"]
    assert len(generic) == 5
