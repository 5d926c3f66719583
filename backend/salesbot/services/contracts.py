from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence

from salesbot.schemas.chat import CatalogProduct, UserPreferences
from salesbot.schemas.policy import RawPolicy


@dataclass(frozen=True)
class SemanticMatch:
    product: CatalogProduct
    similarity: float


@dataclass
class PersonalizationContext:
    recent_products: List[str] = field(default_factory=list)
    preferences: UserPreferences = field(default_factory=UserPreferences)


class EmbeddingService(Protocol):
    def is_available(self) -> bool:
        ...

    async def semantic_search(
        self,
        shop: str,
        query: str,
        products: Sequence[CatalogProduct],
        top_k: int = 6,
    ) -> List[SemanticMatch]:
        ...


class PersonalizationService(Protocol):
    async def classify_intent(self, text: str) -> str:
        ...

    async def analyze_sentiment(self, text: str) -> str:
        ...

    async def get_personalization_context(self, shop: str, session_id: str) -> PersonalizationContext:
        ...


class PolicySource(Protocol):
    async def fetch(self, shop_domain: str) -> List[RawPolicy]:
        ...


class ChatDelegate(Protocol):
    @property
    def is_configured(self) -> bool:
        ...

    async def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def check_connection(self) -> bool:
        ...


class Clock(Protocol):
    def __call__(self) -> float:
        ...
