from __future__ import annotations

from typing import List, Optional, Sequence

from salesbot.core.logging import get_logger
from salesbot.schemas.chat import (
    ChatRequest,
    ChatResponse,
    Intent,
    MessageType,
    ResponseAnalytics,
    Sentiment,
)
from salesbot.schemas.policy import ShopPolicies
from salesbot.services import intent as heuristics
from salesbot.services.contracts import ChatDelegate, EmbeddingService, PersonalizationService
from salesbot.services.fallback.stages import (
    DelegateStage,
    GenericStage,
    KeywordStage,
    NoProductsStage,
    ResolutionStage,
    SemanticStage,
)
from salesbot.services.fallback.state import ResolutionState, StageResult
from salesbot.services.language import LanguageDetector, language_detector
from salesbot.services.personalization import PersonalizationBooster
from salesbot.services.policy.cache import PolicyCache
from salesbot.services.ranking import RankingEngine
from salesbot.services.templates import ResponseTemplateStore, TemplateKey, response_templates
from salesbot.utils.debug_log import debug_log

logger = get_logger(__name__)

MINIMAL_CONFIDENCE = 0.4
POLICY_INTENTS = (Intent.shipping, Intent.returns)


def parse_sentiment(value: object) -> Sentiment:
    try:
        return Sentiment(str(value or "").strip().lower())
    except ValueError:
        return Sentiment.neutral


class FallbackResolver:
    """Turns a chat request into a reply, whatever fails along the way.

    Stages run strictly in order and the first one that returns a result
    wins. A stage that raises is logged and treated as having no result.
    `resolve` itself never raises: when nothing else works the shopper gets
    the localized welcome text.
    """

    def __init__(
        self,
        *,
        delegate: Optional[ChatDelegate] = None,
        ranking: Optional[RankingEngine] = None,
        booster: Optional[PersonalizationBooster] = None,
        detector: Optional[LanguageDetector] = None,
        templates: Optional[ResponseTemplateStore] = None,
        policy_cache: Optional[PolicyCache] = None,
        personalization: Optional[PersonalizationService] = None,
        embedding: Optional[EmbeddingService] = None,
        stages: Optional[Sequence[ResolutionStage]] = None,
    ):
        self.delegate = delegate
        self.ranking = ranking or RankingEngine(embedding)
        self.personalization = personalization
        self.booster = booster or PersonalizationBooster(personalization)
        self.detector = detector or language_detector
        self.templates = templates or response_templates
        self.policy_cache = policy_cache
        self.stages: List[ResolutionStage] = list(stages) if stages is not None else self.default_stages()

    def default_stages(self) -> List[ResolutionStage]:
        return [
            DelegateStage(self.delegate),
            SemanticStage(self.ranking, self.booster, self.templates),
            KeywordStage(self.ranking, self.templates),
            GenericStage(self.ranking, self.templates),
            NoProductsStage(self.templates),
        ]

    async def resolve(self, request: ChatRequest) -> ChatResponse:
        language = "en"
        state: Optional[ResolutionState] = None
        try:
            language = self.detector.detect(request.user_message, request.context.locale)
            state = ResolutionState(request=request, language=language)
            for stage in self.stages:
                if stage.local and not state.analyzed:
                    await self.analyze(state)
                result = await self._attempt(stage, state)
                if result is None:
                    continue
                response = self.compose(state, result)
                self._trace(state, result.stage, response)
                return response
        except Exception as e:
            logger.error(
                "fallback resolution failed: %s",
                type(e).__name__,
                extra={"event": "resolve_failed", "shop": request.context.shop_domain or ""},
            )

        response = self.minimal_reply(language, state)
        if state is not None:
            self._trace(state, "minimal", response)
        return response

    async def _attempt(self, stage: ResolutionStage, state: ResolutionState) -> Optional[StageResult]:
        try:
            return await stage.attempt(state)
        except Exception as e:
            state.failures[stage.name] = type(e).__name__
            logger.warning(
                "stage %s failed: %s",
                stage.name,
                type(e).__name__,
                extra={"event": "stage_failed", "stage": stage.name, "shop": state.shop},
            )
            return None

    async def analyze(self, state: ResolutionState) -> None:
        state.intent = await self._classify_intent(state)
        state.sentiment = await self._analyze_sentiment(state)
        state.policies = await self._load_policies(state)
        state.analyzed = True
        logger.debug(
            "analyzed message",
            extra={
                "event": "message_analyzed",
                "shop": state.shop,
                "intent": state.intent.value,
                "sentiment": state.sentiment.value,
                "language": state.language,
            },
        )

    async def _classify_intent(self, state: ResolutionState) -> Intent:
        if self.personalization is not None:
            try:
                return Intent.parse(await self.personalization.classify_intent(state.query))
            except Exception as e:
                logger.debug("intent collaborator failed: %s", type(e).__name__)
        return heuristics.classify_intent(state.query)

    async def _analyze_sentiment(self, state: ResolutionState) -> Sentiment:
        if self.personalization is not None:
            try:
                return parse_sentiment(await self.personalization.analyze_sentiment(state.query))
            except Exception as e:
                logger.debug("sentiment collaborator failed: %s", type(e).__name__)
        return heuristics.analyze_sentiment(state.query)

    async def _load_policies(self, state: ResolutionState) -> Optional[ShopPolicies]:
        supplied = state.request.context.shop_policies
        if supplied is not None:
            return supplied
        if self.policy_cache is None or not state.shop or state.intent not in POLICY_INTENTS:
            return None
        try:
            return await self.policy_cache.get(state.shop)
        except Exception as e:
            logger.warning(
                "policy lookup failed: %s",
                type(e).__name__,
                extra={"event": "policy_lookup_failed", "shop": state.shop},
            )
            return None

    def compose(self, state: ResolutionState, result: StageResult) -> ChatResponse:
        if result.response is not None:
            return result.response

        has_products = bool(result.recommendations)
        return ChatResponse(
            message=result.message or self.templates.render(state.language, TemplateKey.WELCOME_BROWSE),
            message_type=result.message_type,
            recommendations=result.recommendations,
            quick_replies=self.templates.quick_replies(state.language, has_products),
            suggested_actions=self.templates.suggested_actions(state.language, has_products),
            confidence=result.confidence,
            sentiment=state.sentiment,
            requires_human_escalation=state.intent == Intent.support and state.sentiment == Sentiment.negative,
            analytics=ResponseAnalytics(
                intent_detected=state.intent.value,
                stage=result.stage,
                response_time_ms=state.elapsed_ms(),
                products_shown=len(result.recommendations),
            ),
        )

    def minimal_reply(self, language: str, state: Optional[ResolutionState] = None) -> ChatResponse:
        """Static welcome reply used when every stage came up empty."""
        try:
            message = self.templates.render(language, TemplateKey.WELCOME_BROWSE)
            quick_replies = self.templates.quick_replies(language, False)
        except Exception as e:
            logger.error("template lookup failed: %s", type(e).__name__)
            message = "Welcome! I can help you explore our products. What are you looking for?"
            quick_replies = []
        return ChatResponse(
            message=message,
            message_type=MessageType.fallback_mode,
            recommendations=[],
            quick_replies=quick_replies,
            confidence=MINIMAL_CONFIDENCE,
            sentiment=state.sentiment if state is not None else Sentiment.neutral,
            analytics=ResponseAnalytics(
                intent_detected=state.intent.value if state is not None and state.analyzed else None,
                stage="minimal",
                response_time_ms=state.elapsed_ms() if state is not None else None,
                products_shown=0,
            ),
        )

    def _trace(self, state: ResolutionState, stage: str, response: ChatResponse) -> None:
        debug_log(
            {
                "event": "fallback_resolved",
                "shop": state.shop,
                "stage": stage,
                "language": state.language,
                "intent": state.intent.value,
                "failures": state.failures,
                "products_shown": len(response.recommendations),
                "elapsed_ms": state.elapsed_ms(),
            }
        )
