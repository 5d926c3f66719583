from fastapi import APIRouter, Depends

from salesbot.core.logging import get_logger
from salesbot.dependencies import get_resolver
from salesbot.schemas.chat import ChatRequest, ChatResponse
from salesbot.services.fallback import FallbackResolver

router = APIRouter()
logger = get_logger(__name__)


@router.post("/", response_model=ChatResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def chat(
    request: ChatRequest,
    resolver: FallbackResolver = Depends(get_resolver),
):
    """
    Main chat endpoint.

    Tries the remote delegate first, then falls back through semantic,
    keyword and generic ranking. Always answers with a well-formed reply.
    """
    try:
        return await resolver.resolve(request)
    except Exception as e:
        logger.error(
            "chat error: %s",
            type(e).__name__,
            extra={"event": "chat_failed", "shop": request.context.shop_domain or ""},
        )
        return resolver.minimal_reply("en")
