import math

from salesbot.schemas.chat import (
    ChatContext,
    ChatRequest,
    ChatResponse,
    MessageType,
    PageType,
    PriceRange,
    Recommendation,
    Sentiment,
    UserPreferences,
    clamp_score,
    parse_price,
)


def test_request_accepts_camel_case_and_normalises_products() -> None:
    request = ChatRequest.model_validate(
        {
            "userMessage": "hi",
            "sessionId": "sess-1",
            "products": [{"id": 42, "title": "Hat", "handle": "hat", "price": 19.5}, {"id": "b", "title": "Bag"}],
            "context": {"shopDomain": "demo.myshopify.com", "currentPage": "wishlist", "unknownField": True},
        }
    )

    assert request.session_id == "sess-1"
    assert request.products[0].id == "42"
    assert request.products[0].price == "19.5"
    assert request.products[1].price == "0.00"
    assert request.context.current_page == PageType.other
    assert request.context.shop_domain == "demo.myshopify.com"


def test_context_defaults_when_missing() -> None:
    request = ChatRequest.model_validate({"userMessage": "hi"})
    assert request.products == []
    assert request.context == ChatContext()


def test_response_normalises_untrusted_values() -> None:
    response = ChatResponse.model_validate(
        {
            "message": "ok",
            "messageType": "PRODUCT_SEARCH",
            "sentiment": "furious",
            "confidence": "not-a-number",
            "recommendations": [{"id": str(i), "relevanceScore": -5} for i in range(9)],
        }
    )

    assert response.message_type == MessageType.product_search
    assert response.sentiment == Sentiment.neutral
    assert response.confidence == 0.5
    assert len(response.recommendations) == 6
    assert {rec.relevance_score for rec in response.recommendations} == {0}


def test_response_confidence_is_clamped() -> None:
    assert ChatResponse(message="x", confidence=-2).confidence == 0.0
    assert ChatResponse(message="x", confidence=float("nan")).confidence == 0.5


def test_response_serialises_camel_case() -> None:
    dumped = ChatResponse(message="x", quick_replies=["Help"], requires_human_escalation=False).model_dump(
        by_alias=True, exclude_none=True
    )
    assert dumped["quickReplies"] == ["Help"]
    assert dumped["requiresHumanEscalation"] is False
    assert "messageType" not in dumped


def test_relevance_scores_are_rounded_and_clamped() -> None:
    rec = Recommendation.model_validate({"id": "a", "relevanceScore": 87.6})
    assert rec.relevance_score == 88
    assert clamp_score(250) == 100
    assert clamp_score(math.nan) == 0
    assert clamp_score("junk") == 0


def test_parse_price() -> None:
    assert parse_price("1,299.00") == 1299.0
    assert parse_price("free") is None
    assert parse_price(None) is None


def test_scores_round_half_up() -> None:
    assert clamp_score(84.5) == 85
    assert clamp_score(0.5) == 1
    assert clamp_score(99.5) == 100
    assert clamp_score(float("inf")) == 100


def test_price_range_bounds_are_optional() -> None:
    open_ended = UserPreferences.model_validate({"priceRange": {"min": 10}}).price_range

    assert open_ended.max is None
    assert open_ended.contains(10_000) is True
    assert open_ended.contains(5) is False
    assert open_ended.contains(None) is False
    assert PriceRange(max=20).contains(0) is True
    assert PriceRange.model_validate({"min": "5", "max": "inf"}).max is None
    assert open_ended.model_dump(mode="json", by_alias=True, exclude_none=True) == {"min": 10.0}


def test_catalog_tolerates_null_fields_and_drops_unidentified_products() -> None:
    request = ChatRequest.model_validate(
        {
            "userMessage": "shoes",
            "products": [
                {"id": "1", "title": None, "handle": None, "price": None, "description": None},
                {"title": "No id"},
                {"id": None, "title": "Null id"},
                {"id": 0, "title": "Zero id"},
            ],
        }
    )

    assert [product.id for product in request.products] == ["1", "0"]
    assert request.products[0].title == ""
    assert request.products[0].handle == ""
    assert request.products[0].price == "0.00"
