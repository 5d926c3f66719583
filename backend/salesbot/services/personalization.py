from __future__ import annotations

from typing import List, Optional, Sequence

from salesbot.core.logging import get_logger
from salesbot.schemas.chat import Recommendation, clamp_score
from salesbot.services.contracts import PersonalizationContext, PersonalizationService

logger = get_logger(__name__)

RECENTLY_VIEWED_BOOST = 10
PRICE_RANGE_BOOST = 5
FAVORITE_COLOR_BOOST = 3


class PersonalizationBooster:
    """Best-effort re-ranking from session history and stated preferences."""

    def __init__(self, service: Optional[PersonalizationService] = None):
        self.service = service

    @staticmethod
    def boost_for(recommendation: Recommendation, context: PersonalizationContext) -> int:
        boost = 0
        if recommendation.id in set(context.recent_products or []):
            boost += RECENTLY_VIEWED_BOOST

        preferences = context.preferences
        if preferences is None:
            return boost
        if preferences.price_range is not None and preferences.price_range.contains(recommendation.numeric_price()):
            boost += PRICE_RANGE_BOOST
        if recommendation.description:
            description = recommendation.description.lower()
            for color in preferences.favorite_colors or []:
                if color and color.lower() in description:
                    boost += FAVORITE_COLOR_BOOST
        return boost

    def apply(self, recommendations: Sequence[Recommendation], context: PersonalizationContext) -> List[Recommendation]:
        boosted = [
            rec.model_copy(update={"relevance_score": clamp_score(rec.relevance_score + self.boost_for(rec, context))})
            for rec in recommendations
        ]
        return sorted(boosted, key=lambda rec: rec.relevance_score, reverse=True)

    async def boost(
        self,
        recommendations: Sequence[Recommendation],
        *,
        shop: str,
        session_id: Optional[str],
    ) -> List[Recommendation]:
        if not session_id or self.service is None or not recommendations:
            return list(recommendations)
        try:
            context = await self.service.get_personalization_context(shop, session_id)
        except Exception as e:
            logger.debug(
                "personalization lookup failed: %s",
                type(e).__name__,
                extra={"event": "personalization_failed", "shop": shop},
            )
            return list(recommendations)
        if context is None:
            return list(recommendations)
        return self.apply(recommendations, context)
