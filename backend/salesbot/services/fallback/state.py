from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from salesbot.schemas.chat import (
    CatalogProduct,
    ChatRequest,
    ChatResponse,
    Intent,
    MessageType,
    Recommendation,
    Sentiment,
    UserPreferences,
)
from salesbot.schemas.policy import ShopPolicies


@dataclass
class ResolutionState:
    request: ChatRequest
    language: str
    intent: Intent = Intent.other
    sentiment: Sentiment = Sentiment.neutral
    policies: Optional[ShopPolicies] = None
    analyzed: bool = False
    started_at: float = field(default_factory=time.perf_counter)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def query(self) -> str:
        return self.request.user_message or ""

    @property
    def products(self) -> List[CatalogProduct]:
        return self.request.products

    @property
    def has_products(self) -> bool:
        return bool(self.request.products)

    @property
    def shop(self) -> str:
        return self.request.context.shop_domain or ""

    @property
    def session_id(self) -> Optional[str]:
        return self.request.session_id

    @property
    def preferences(self) -> Optional[UserPreferences]:
        return self.request.context.user_preferences

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.started_at) * 1000, 2)


@dataclass
class StageResult:
    """Outcome of a stage that produced something to show.

    `response` is set only for replies that arrive complete (the delegate);
    local stages fill the message fields and the resolver composes the rest.
    """

    stage: str
    message: str = ""
    message_type: MessageType = MessageType.other
    confidence: float = 0.5
    recommendations: List[Recommendation] = field(default_factory=list)
    response: Optional[ChatResponse] = None
