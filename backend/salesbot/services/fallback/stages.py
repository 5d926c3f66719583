from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, FrozenSet, Optional

from pydantic import ValidationError

from salesbot.core.exceptions import ConfigurationError, ProtocolError, TransportError
from salesbot.core.logging import get_logger
from salesbot.schemas.chat import ChatResponse, Intent, MessageType
from salesbot.services.contracts import ChatDelegate
from salesbot.services.delegate import mask_webhook_url
from salesbot.services.fallback.state import ResolutionState, StageResult
from salesbot.services.intent import is_greeting
from salesbot.services.personalization import PersonalizationBooster
from salesbot.services.ranking import RankingEngine, RankingStrategy
from salesbot.services.templates import ResponseTemplateStore, TemplateKey

logger = get_logger(__name__)

SEMANTIC_INTENTS: FrozenSet[Intent] = frozenset({Intent.search, Intent.comparison, Intent.other})
INFORMATIONAL_INTENTS: FrozenSet[Intent] = frozenset(
    {
        Intent.price,
        Intent.shipping,
        Intent.returns,
        Intent.size,
        Intent.support,
        Intent.thanks,
        Intent.comparison,
        Intent.availability,
    }
)

KEYWORD_CONFIDENCE = 0.65
SEMANTIC_DEFAULT_CONFIDENCE = 0.7
GENERIC_CONFIDENCE = 0.5
NO_PRODUCTS_CONFIDENCE = 0.4


class ResolutionStage(ABC):
    name: str
    # Local stages need language, intent and policies resolved first.
    local: bool = True

    @abstractmethod
    async def attempt(self, state: ResolutionState) -> Optional[StageResult]:
        raise NotImplementedError


class DelegateStage(ResolutionStage):
    name = "delegate"
    local = False

    def __init__(self, delegate: Optional[ChatDelegate]):
        self.delegate = delegate

    async def attempt(self, state: ResolutionState) -> Optional[StageResult]:
        if self.delegate is None or not self.delegate.is_configured:
            state.failures[self.name] = "not_configured"
            return None

        payload = state.request.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            data = await self.delegate.send(payload)
            response = self.parse_reply(data)
        except (ConfigurationError, TransportError, ProtocolError) as e:
            self._record_failure(state, e)
            return None

        return StageResult(
            stage=self.name,
            message=response.message,
            message_type=response.message_type or MessageType.other,
            confidence=response.confidence,
            recommendations=response.recommendations,
            response=response,
        )

    @staticmethod
    def parse_reply(data: Any) -> ChatResponse:
        try:
            return ChatResponse.model_validate(data)
        except ValidationError as e:
            fields = sorted({".".join(str(part) for part in error["loc"]) for error in e.errors()})
            raise ProtocolError("invalid_payload", f"delegate reply failed validation: {', '.join(fields)}") from e

    def _record_failure(self, state: ResolutionState, error: Exception) -> None:
        kind = getattr(error, "kind", "not_configured")
        state.failures[self.name] = kind
        logger.warning(
            "delegate failed (%s); falling back to local processing",
            kind,
            extra={
                "event": "delegate_failed",
                "stage": self.name,
                "shop": state.shop,
                "kind": kind,
                "status": getattr(error, "status_code", None),
                "url": mask_webhook_url(getattr(self.delegate, "webhook_url", None)),
            },
        )


class SemanticStage(ResolutionStage):
    name = "semantic"

    def __init__(self, ranking: RankingEngine, booster: PersonalizationBooster, templates: ResponseTemplateStore):
        self.ranking = ranking
        self.booster = booster
        self.templates = templates

    async def attempt(self, state: ResolutionState) -> Optional[StageResult]:
        if not state.has_products or state.intent not in SEMANTIC_INTENTS:
            return None
        if not self.ranking.semantic_available():
            return None

        recommendations = await self.ranking.rank(
            state.query,
            state.products,
            RankingStrategy.semantic,
            shop=state.shop,
        )
        if not recommendations:
            return None

        confidence = recommendations[0].relevance_score / 100.0 or SEMANTIC_DEFAULT_CONFIDENCE
        recommendations = await self.booster.boost(recommendations, shop=state.shop, session_id=state.session_id)
        return StageResult(
            stage=self.name,
            message=self.templates.ranked_message(state.language, recommendations[0].relevance_score, state.query),
            message_type=MessageType.product_recommendation,
            confidence=confidence,
            recommendations=recommendations,
        )


class KeywordStage(ResolutionStage):
    name = "keyword"

    def __init__(self, ranking: RankingEngine, templates: ResponseTemplateStore):
        self.ranking = ranking
        self.templates = templates

    async def attempt(self, state: ResolutionState) -> Optional[StageResult]:
        if not state.has_products:
            return None
        recommendations = await self.ranking.rank(
            state.query,
            state.products,
            RankingStrategy.keyword,
            shop=state.shop,
            preferences=state.preferences,
        )
        if not recommendations:
            return None
        return StageResult(
            stage=self.name,
            message=self.templates.ranked_message(state.language, recommendations[0].relevance_score, state.query),
            message_type=MessageType.product_recommendation,
            confidence=KEYWORD_CONFIDENCE,
            recommendations=recommendations,
        )


class GenericStage(ResolutionStage):
    name = "generic"

    def __init__(self, ranking: RankingEngine, templates: ResponseTemplateStore):
        self.ranking = ranking
        self.templates = templates

    @staticmethod
    def message_type_for(intent: Intent) -> MessageType:
        if intent == Intent.greeting:
            return MessageType.greeting
        if intent == Intent.support:
            return MessageType.support
        if intent in (Intent.shipping, Intent.returns):
            return MessageType.policy_info
        return MessageType.product_search

    def message_for(self, state: ResolutionState) -> str:
        if state.intent in INFORMATIONAL_INTENTS:
            return self.templates.intent_message(state.language, state.intent, state.policies)
        if state.intent == Intent.greeting or is_greeting(state.query):
            return self.templates.render(state.language, TemplateKey.WELCOME_BROWSE)
        return self.templates.render(state.language, TemplateKey.FEATURED_PRODUCTS)

    async def attempt(self, state: ResolutionState) -> Optional[StageResult]:
        if not state.has_products:
            return None
        recommendations = await self.ranking.rank(state.query, state.products, RankingStrategy.generic)
        return StageResult(
            stage=self.name,
            message=self.message_for(state),
            message_type=self.message_type_for(state.intent),
            confidence=GENERIC_CONFIDENCE,
            recommendations=recommendations,
        )


class NoProductsStage(ResolutionStage):
    name = "no_products"

    def __init__(self, templates: ResponseTemplateStore):
        self.templates = templates

    async def attempt(self, state: ResolutionState) -> Optional[StageResult]:
        if state.has_products:
            return None
        # A help request with an empty catalog gets the list of things we can do.
        key = TemplateKey.HELP_OPTIONS if state.intent == Intent.support else TemplateKey.NO_PRODUCTS
        return StageResult(
            stage=self.name,
            message=self.templates.render(state.language, key),
            message_type=MessageType.no_products,
            confidence=NO_PRODUCTS_CONFIDENCE,
        )
