from __future__ import annotations

import enum
from typing import FrozenSet, List, Optional, Sequence

from salesbot.core.config import settings
from salesbot.core.exceptions import RankingError
from salesbot.core.logging import get_logger
from salesbot.schemas.chat import CatalogProduct, Recommendation, UserPreferences, clamp_score
from salesbot.services.contracts import EmbeddingService

logger = get_logger(__name__)

STOP_WORDS: FrozenSet[str] = frozenset(
    {"the", "and", "or", "for", "with", "can", "you", "show", "me", "voir", "montre", "des", "les", "une", "un"}
)
_PUNCTUATION = "!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~¿¡«»“”‘’"

TITLE_MATCH_POINTS = 5
DESCRIPTION_MATCH_POINTS = 2
PRICE_RANGE_POINTS = 3


class RankingStrategy(str, enum.Enum):
    semantic = "semantic"
    keyword = "keyword"
    generic = "generic"


def tokenize_query(query: str) -> List[str]:
    tokens: List[str] = []
    for raw in (query or "").lower().split():
        token = raw.strip(_PUNCTUATION)
        if len(token) <= 2 or token in STOP_WORDS:
            continue
        tokens.append(token)
    return tokens


def normalize_keyword_score(score: float) -> int:
    return clamp_score(score * 10)


class RankingEngine:
    def __init__(
        self,
        embedding: Optional[EmbeddingService] = None,
        *,
        max_results: Optional[int] = None,
        generic_score: Optional[int] = None,
    ):
        self.embedding = embedding
        self.max_results = int(max_results or settings.MAX_RECOMMENDATIONS)
        self.generic_score = int(generic_score if generic_score is not None else settings.GENERIC_RELEVANCE_SCORE)

    def semantic_available(self) -> bool:
        if self.embedding is None:
            return False
        try:
            return bool(self.embedding.is_available())
        except Exception as e:
            logger.warning("embedding availability probe failed: %s", type(e).__name__)
            return False

    def keyword_rank(
        self,
        query: str,
        products: Sequence[CatalogProduct],
        preferences: Optional[UserPreferences] = None,
    ) -> List[Recommendation]:
        """Score products by substring matches of query tokens.

        Title hits are worth 5, description hits 2, and a price inside the
        shopper's preferred range adds 3 once. Zero scores are dropped; ties
        keep catalog order.
        """
        tokens = tokenize_query(query)
        price_range = preferences.price_range if preferences else None

        scored = []
        for product in products:
            title = (product.title or "").lower()
            description = (product.description or "").lower()
            score = 0
            for token in tokens:
                if token in title:
                    score += TITLE_MATCH_POINTS
                if token in description:
                    score += DESCRIPTION_MATCH_POINTS
            if price_range is not None and price_range.contains(product.numeric_price()):
                score += PRICE_RANGE_POINTS
            if score > 0:
                scored.append((score, product))

        # sorted() is stable
        scored = sorted(scored, key=lambda item: item[0], reverse=True)[: self.max_results]
        return [Recommendation.from_product(product, normalize_keyword_score(score)) for score, product in scored]

    async def semantic_rank(
        self,
        query: str,
        products: Sequence[CatalogProduct],
        *,
        shop: str = "",
    ) -> List[Recommendation]:
        if self.embedding is None:
            return []
        try:
            matches = await self.embedding.semantic_search(shop, query, list(products), top_k=self.max_results)
        except Exception as e:
            raise RankingError(f"semantic search failed: {type(e).__name__}") from e

        ordered = sorted(matches or [], key=lambda match: match.similarity, reverse=True)[: self.max_results]
        return [Recommendation.from_product(match.product, match.similarity * 100) for match in ordered]

    def generic_sample(self, products: Sequence[CatalogProduct]) -> List[Recommendation]:
        return [Recommendation.from_product(product, self.generic_score) for product in products[: self.max_results]]

    async def rank(
        self,
        query: str,
        products: Sequence[CatalogProduct],
        strategy: RankingStrategy,
        *,
        shop: str = "",
        preferences: Optional[UserPreferences] = None,
    ) -> List[Recommendation]:
        if strategy == RankingStrategy.semantic:
            return await self.semantic_rank(query, products, shop=shop)
        if strategy == RankingStrategy.keyword:
            return self.keyword_rank(query, products, preferences)
        return self.generic_sample(products)
