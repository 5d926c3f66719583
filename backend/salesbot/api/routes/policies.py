from fastapi import APIRouter, Depends

from salesbot.dependencies import get_policy_cache
from salesbot.schemas.policy import PolicyCacheStats
from salesbot.services.policy.cache import PolicyCache, normalize_shop_domain

router = APIRouter()


@router.get("/cache/stats", response_model=PolicyCacheStats, response_model_by_alias=True)
async def cache_stats(cache: PolicyCache = Depends(get_policy_cache)):
    return cache.stats()


@router.delete("/cache/{shop_domain}")
async def invalidate_shop(shop_domain: str, cache: PolicyCache = Depends(get_policy_cache)):
    cache.invalidate(shop_domain)
    return {"status": "cleared", "shop": normalize_shop_domain(shop_domain)}


@router.delete("/cache")
async def clear_cache(cache: PolicyCache = Depends(get_policy_cache)):
    cache.clear()
    return {"status": "cleared"}
