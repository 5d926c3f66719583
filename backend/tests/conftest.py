from typing import Any, Callable, Dict, List

import pytest

from salesbot.schemas.chat import ChatRequest


@pytest.fixture
def catalog() -> List[Dict[str, Any]]:
    """Small storefront catalog in the widget's camelCase wire format."""
    return [
        {
            "id": "gid-1",
            "title": "Red Running Shoes",
            "handle": "red-running-shoes",
            "price": "89.99",
            "description": "Lightweight shoes for running in red mesh",
        },
        {
            "id": "gid-2",
            "title": "Blue Denim Jacket",
            "handle": "blue-denim-jacket",
            "price": 120,
            "description": "Classic jacket",
        },
        {
            "id": "gid-3",
            "title": "Trail Running Socks",
            "handle": "trail-running-socks",
            "price": "15",
            "description": "Socks for running shoes",
        },
        {
            "id": "gid-4",
            "title": "Canvas Tote",
            "handle": "canvas-tote",
            "price": "25.00",
            "description": "Sturdy bag",
        },
        {
            "id": "gid-5",
            "title": "Wool Beanie",
            "handle": "wool-beanie",
            "price": "19.50",
            "description": "Warm knit hat",
        },
    ]


@pytest.fixture
def make_request() -> Callable[..., ChatRequest]:
    def _make(message: str, products: List[Dict[str, Any]] = None, session_id: str = None, **context: Any) -> ChatRequest:
        payload: Dict[str, Any] = {"userMessage": message, "products": products or [], "context": context}
        if session_id:
            payload["sessionId"] = session_id
        return ChatRequest.model_validate(payload)

    return _make
