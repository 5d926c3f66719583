from __future__ import annotations

import asyncio
import time
from typing import Dict, Iterable, Optional

from salesbot.core.config import settings
from salesbot.core.exceptions import CacheFetchError
from salesbot.core.logging import get_logger
from salesbot.schemas.policy import (
    PolicyCacheEntry,
    PolicyCacheEntryStats,
    PolicyCacheStats,
    RawPolicy,
    ShopPolicies,
)
from salesbot.services.contracts import Clock, PolicySource

logger = get_logger(__name__)


def normalize_shop_domain(shop_domain: Optional[str]) -> str:
    shop = str(shop_domain or "").strip().lower()
    for prefix in ("https://", "http://"):
        if shop.startswith(prefix):
            shop = shop[len(prefix):]
    return shop.rstrip("/")


def map_policies(raw_policies: Iterable[RawPolicy], shop_domain: str) -> ShopPolicies:
    """Map raw `{title, body}` pairs onto canonical fields by title keywords."""
    policies = ShopPolicies(shop_name=shop_domain.replace(".myshopify.com", ""))
    for policy in raw_policies:
        title = (policy.title or "").lower()
        body = policy.body or None
        if "refund" in title or "return" in title:
            policies.returns = body
        elif "shipping" in title:
            policies.shipping = body
        elif "privacy" in title:
            policies.privacy = body
        elif "terms" in title or "service" in title:
            policies.terms_of_service = body
    return policies


class PolicyCache:
    """TTL cache of shop policies, filled lazily from a `PolicySource`.

    Failed fetches are never cached: the next `get` for the shop goes back to
    the network. With `single_flight` off, concurrent misses for one shop each
    issue their own fetch.
    """

    def __init__(
        self,
        source: PolicySource,
        *,
        ttl_seconds: Optional[float] = None,
        fetch_timeout_seconds: Optional[float] = None,
        single_flight: Optional[bool] = None,
        clock: Clock = time.monotonic,
    ):
        self.source = source
        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else settings.POLICY_CACHE_TTL_SECONDS)
        self.fetch_timeout_seconds = float(
            fetch_timeout_seconds if fetch_timeout_seconds is not None else settings.POLICY_FETCH_TIMEOUT_SECONDS
        )
        self.single_flight = bool(
            single_flight if single_flight is not None else settings.POLICY_CACHE_SINGLE_FLIGHT
        )
        self._clock = clock
        self._entries: Dict[str, PolicyCacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0
        self.fetches = 0

    def _is_fresh(self, entry: PolicyCacheEntry, now: float) -> bool:
        return (now - entry.fetched_at) < self.ttl_seconds

    def peek(self, shop_domain: str) -> Optional[ShopPolicies]:
        """Return a fresh cached entry without touching the network."""
        entry = self._entries.get(normalize_shop_domain(shop_domain))
        if entry is None or not self._is_fresh(entry, self._clock()):
            return None
        return entry.policies

    async def get(self, shop_domain: str) -> Optional[ShopPolicies]:
        shop = normalize_shop_domain(shop_domain)
        if not shop:
            return None

        entry = self._entries.get(shop)
        if entry is not None:
            if self._is_fresh(entry, self._clock()):
                self.hits += 1
                logger.debug("using cached policies", extra={"event": "policy_cache_hit", "shop": shop})
                return entry.policies
            self._entries.pop(shop, None)

        self.misses += 1
        if not self.single_flight:
            return await self._fetch_and_store(shop)

        task = self._inflight.get(shop)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(shop))
            self._inflight[shop] = task
            task.add_done_callback(lambda done, key=shop: self._forget_inflight(key, done))
        return await asyncio.shield(task)

    def _forget_inflight(self, shop: str, task: asyncio.Task) -> None:
        if self._inflight.get(shop) is task:
            self._inflight.pop(shop, None)

    async def _fetch_and_store(self, shop: str) -> Optional[ShopPolicies]:
        self.fetches += 1
        logger.info("fetching shop policies", extra={"event": "policy_fetch", "shop": shop})
        try:
            raw_policies = await asyncio.wait_for(self.source.fetch(shop), timeout=self.fetch_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                "policy fetch timed out after %.1f seconds",
                self.fetch_timeout_seconds,
                extra={"event": "policy_fetch_timeout", "shop": shop},
            )
            return None
        except CacheFetchError as e:
            logger.error(
                "failed to fetch policies: %s",
                e,
                extra={"event": "policy_fetch_failed", "shop": shop, "status": e.status_code},
            )
            return None
        except Exception as e:
            logger.error(
                "unexpected policy fetch error: %s",
                type(e).__name__,
                extra={"event": "policy_fetch_failed", "shop": shop},
            )
            return None

        policies = map_policies(raw_policies, shop)
        self.set(shop, policies)
        logger.info(
            "fetched and cached policies",
            extra={
                "event": "policy_cached",
                "shop": shop,
                "has_returns": bool(policies.returns),
                "has_shipping": bool(policies.shipping),
                "has_privacy": bool(policies.privacy),
                "has_terms": bool(policies.terms_of_service),
            },
        )
        return policies

    def set(self, shop_domain: str, policies: ShopPolicies) -> None:
        shop = normalize_shop_domain(shop_domain)
        if not shop:
            return
        self._entries[shop] = PolicyCacheEntry(shop=shop, policies=policies, fetched_at=self._clock())

    def invalidate(self, shop_domain: str) -> None:
        shop = normalize_shop_domain(shop_domain)
        if self._entries.pop(shop, None) is not None:
            logger.info("cleared policy cache", extra={"event": "policy_cache_evict", "shop": shop})

    evict = invalidate

    def clear(self) -> None:
        self._entries.clear()
        logger.info("cleared all policy cache", extra={"event": "policy_cache_clear"})

    def stats(self) -> PolicyCacheStats:
        now = self._clock()
        entries = [
            PolicyCacheEntryStats(shop=shop, age_seconds=round(now - entry.fetched_at, 3))
            for shop, entry in self._entries.items()
        ]
        return PolicyCacheStats(total_entries=len(entries), entries=entries)
