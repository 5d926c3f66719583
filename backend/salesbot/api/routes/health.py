from fastapi import APIRouter, Depends

from salesbot.core.config import settings
from salesbot.dependencies import get_delegate
from salesbot.services.delegate import WebhookDelegate

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.PROJECT_NAME}


@router.get("/health/delegate")
async def delegate_health(delegate: WebhookDelegate = Depends(get_delegate)):
    """Probe the remote delegate; the URL is only ever reported masked."""
    if not delegate.is_configured:
        return {"configured": False, "reachable": False, "url": None}
    reachable = await delegate.check_connection()
    return {"configured": True, "reachable": reachable, "url": delegate.masked_url}
