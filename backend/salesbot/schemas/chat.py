import enum
import math
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from salesbot.schemas.policy import ShopPolicies


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python; unknown fields dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Intent(str, enum.Enum):
    search = "search"
    comparison = "comparison"
    price = "price"
    shipping = "shipping"
    returns = "returns"
    size = "size"
    support = "support"
    greeting = "greeting"
    thanks = "thanks"
    availability = "availability"
    other = "other"

    @classmethod
    def parse(cls, value: Any) -> "Intent":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        return _INTENT_ALIASES.get(key, cls.other)


# Labels used by the personalization collaborator and the delegate.
_INTENT_ALIASES = {
    **{item.value: item for item in Intent},
    "product_search": Intent.search,
    "price_inquiry": Intent.price,
    "size_fit": Intent.size,
    "order_tracking": Intent.support,
}


class MessageType(str, enum.Enum):
    greeting = "greeting"
    product_search = "product_search"
    product_recommendation = "product_recommendation"
    support = "support"
    policy_info = "policy_info"
    no_products = "no_products"
    fallback_mode = "fallback_mode"
    order_tracking = "order_tracking"
    other = "other"


class Sentiment(str, enum.Enum):
    positive = "positive"
    negative = "negative"
    neutral = "neutral"


class PageType(str, enum.Enum):
    product = "product"
    cart = "cart"
    checkout = "checkout"
    collection = "collection"
    home = "home"
    other = "other"


class PriceRange(WireModel):
    """Either bound may be omitted; a missing bound is open."""

    min: Optional[float] = None
    max: Optional[float] = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def _finite_or_open(cls, value: Any) -> Optional[float]:
        number = parse_price(value)
        if number is None or math.isinf(number) or number != number:
            return None
        return number

    def contains(self, price: Optional[float]) -> bool:
        if price is None:
            return False
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True


class UserPreferences(WireModel):
    price_range: Optional[PriceRange] = None
    favorite_colors: List[str] = []
    favorite_categories: List[str] = []


class CatalogProduct(WireModel):
    id: str
    title: str = ""
    handle: str = ""
    price: str = "0.00"
    description: Optional[str] = None
    image: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> str:
        return str(value)

    @field_validator("title", "handle", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_str(cls, value: Any) -> str:
        if value is None or value == "":
            return "0.00"
        return str(value)

    @field_validator("description", "image", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    def numeric_price(self) -> Optional[float]:
        return parse_price(self.price)


class ChatContext(WireModel):
    shop_domain: Optional[str] = None
    locale: Optional[str] = None
    currency: Optional[str] = None
    customer_id: Optional[str] = None
    current_page: Optional[PageType] = None
    previous_messages: List[str] = []
    user_preferences: Optional[UserPreferences] = None
    shop_policies: Optional[ShopPolicies] = None
    support_category: Optional[str] = None

    @field_validator("current_page", mode="before")
    @classmethod
    def _page_or_other(cls, value: Any) -> Any:
        if value is None:
            return None
        try:
            return PageType(str(value).lower())
        except ValueError:
            return PageType.other


class ChatRequest(WireModel):
    user_message: str = Field(..., description="Shopper's chat message")
    session_id: Optional[str] = None
    products: List[CatalogProduct] = []
    context: ChatContext = Field(default_factory=ChatContext)

    @field_validator("products", mode="before")
    @classmethod
    def _drop_unidentified_products(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        return [item for item in value if not isinstance(item, dict) or item.get("id") not in (None, "")]


class Recommendation(WireModel):
    id: str
    title: str = ""
    handle: str = ""
    price: str = "0.00"
    relevance_score: int = 0
    description: Optional[str] = None
    image: Optional[str] = None
    badge: Optional[str] = None
    cta: Optional[str] = None

    @field_validator("id", "price", mode="before")
    @classmethod
    def _as_str(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        return clamp_score(value)

    @classmethod
    def from_product(cls, product: CatalogProduct, relevance_score: float) -> "Recommendation":
        return cls(
            id=product.id,
            title=product.title,
            handle=product.handle,
            price=product.price or "0.00",
            description=product.description,
            image=product.image,
            relevance_score=relevance_score,
        )

    def numeric_price(self) -> Optional[float]:
        return parse_price(self.price)


class SuggestedAction(WireModel):
    label: str
    action: Literal["view_product", "add_to_cart", "compare", "custom"] = "custom"
    data: Optional[str] = None


class ResponseAnalytics(WireModel):
    intent_detected: Optional[str] = None
    stage: Optional[str] = None
    response_time_ms: Optional[float] = None
    products_shown: int = 0


class ChatResponse(WireModel):
    message: str
    message_type: Optional[MessageType] = None
    recommendations: List[Recommendation] = []
    quick_replies: List[str] = []
    suggested_actions: List[SuggestedAction] = []
    confidence: float = 0.5
    sentiment: Optional[Sentiment] = None
    requires_human_escalation: Optional[bool] = None
    analytics: Optional[ResponseAnalytics] = None

    @field_validator("message_type", mode="before")
    @classmethod
    def _known_message_type(cls, value: Any) -> Any:
        if value is None:
            return None
        try:
            return MessageType(str(value).lower())
        except ValueError:
            return MessageType.other

    @field_validator("sentiment", mode="before")
    @classmethod
    def _known_sentiment(cls, value: Any) -> Any:
        if value is None:
            return None
        try:
            return Sentiment(str(value).lower())
        except ValueError:
            return Sentiment.neutral

    @field_validator("recommendations", mode="after")
    @classmethod
    def _cap_recommendations(cls, value: List[Recommendation]) -> List[Recommendation]:
        return list(value[:MAX_RECOMMENDATIONS])

    @field_validator("suggested_actions", mode="before")
    @classmethod
    def _drop_unknown_actions(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        known = {"view_product", "add_to_cart", "compare", "custom"}
        kept = []
        for item in value:
            if isinstance(item, dict) and item.get("action") not in known:
                item = {**item, "action": "custom"}
            kept.append(item)
        return kept

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.5
        if number != number:  # NaN
            return 0.5
        return max(0.0, min(1.0, number))


MAX_RECOMMENDATIONS = 6


def clamp_score(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number:
        return 0
    # Half-up, so 84.5 scores 85.
    return int(math.floor(max(0.0, min(100.0, number)) + 0.5))


def parse_price(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None
