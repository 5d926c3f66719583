import asyncio
import json
from typing import List, Optional

import httpx
import pytest

from salesbot.core.exceptions import CacheFetchError
from salesbot.schemas.policy import RawPolicy, ShopPolicies
from salesbot.services.policy.cache import PolicyCache, map_policies, normalize_shop_domain
from salesbot.services.policy.source import ShopifyPolicySource

SHOP = "demo.myshopify.com"

RAW_POLICIES = [
    RawPolicy(title="Refund policy", body="<p>Refunds within 30 days.</p>"),
    RawPolicy(title="Shipping Policy", body="We ship worldwide."),
    RawPolicy(title="Privacy policy", body="We respect your privacy."),
    RawPolicy(title="Terms of Service", body="Be nice."),
]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSource:
    def __init__(self, policies: Optional[List[RawPolicy]] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.policies = RAW_POLICIES if policies is None else policies
        self.error = error
        self.delay = delay
        self.calls: List[str] = []

    async def fetch(self, shop_domain: str) -> List[RawPolicy]:
        self.calls.append(shop_domain)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.policies


def test_map_policies_by_title_keywords() -> None:
    policies = map_policies(RAW_POLICIES, SHOP)

    assert policies.shop_name == "demo"
    assert policies.returns == "<p>Refunds within 30 days.</p>"
    assert policies.shipping == "We ship worldwide."
    assert policies.privacy == "We respect your privacy."
    assert policies.terms_of_service == "Be nice."


def test_return_keyword_is_checked_before_shipping() -> None:
    policies = map_policies([RawPolicy(title="Shipping and returns", body="Both")], SHOP)
    assert policies.returns == "Both"
    assert policies.shipping is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Demo.myshopify.com", SHOP),
        ("https://demo.myshopify.com/", SHOP),
        ("  http://demo.myshopify.com ", SHOP),
        (None, ""),
    ],
)
def test_normalize_shop_domain(raw, expected) -> None:
    assert normalize_shop_domain(raw) == expected


@pytest.mark.asyncio
async def test_second_get_is_served_from_cache() -> None:
    source = FakeSource()
    cache = PolicyCache(source, clock=FakeClock())

    first = await cache.get(SHOP)
    second = await cache.get("https://Demo.myshopify.com/")

    assert first is not None and first == second
    assert source.calls == [SHOP]
    assert (cache.hits, cache.misses, cache.fetches) == (1, 1, 1)


@pytest.mark.asyncio
async def test_entry_at_ttl_is_not_served() -> None:
    clock = FakeClock()
    source = FakeSource()
    cache = PolicyCache(source, ttl_seconds=3600, clock=clock)

    await cache.get(SHOP)
    clock.now += 3599
    await cache.get(SHOP)
    assert len(source.calls) == 1

    clock.now += 1
    assert cache.peek(SHOP) is None
    await cache.get(SHOP)
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_failed_fetch_is_not_cached() -> None:
    source = FakeSource(error=CacheFetchError("boom", status_code=502))
    cache = PolicyCache(source, clock=FakeClock())

    assert await cache.get(SHOP) is None
    assert cache.stats().total_entries == 0

    source.error = None
    policies = await cache.get(SHOP)
    assert policies is not None
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_unexpected_source_error_returns_none() -> None:
    cache = PolicyCache(FakeSource(error=ValueError("bad payload")), clock=FakeClock())
    assert await cache.get(SHOP) is None


@pytest.mark.regression
@pytest.mark.asyncio
async def test_slow_fetch_times_out_and_next_call_refetches() -> None:
    source = FakeSource(delay=1.0)
    cache = PolicyCache(source, fetch_timeout_seconds=0.05, clock=FakeClock())

    assert await cache.get(SHOP) is None
    assert cache.peek(SHOP) is None

    source.delay = 0.0
    assert await cache.get(SHOP) is not None
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_blank_shop_never_fetches() -> None:
    source = FakeSource()
    cache = PolicyCache(source)
    assert await cache.get("") is None
    assert source.calls == []


@pytest.mark.asyncio
async def test_invalidate_forces_refetch_and_unknown_shop_is_a_no_op() -> None:
    source = FakeSource()
    cache = PolicyCache(source, clock=FakeClock())

    await cache.get(SHOP)
    cache.invalidate("other.myshopify.com")
    cache.invalidate(SHOP)
    await cache.get(SHOP)

    assert len(source.calls) == 2


def test_set_clear_and_stats() -> None:
    clock = FakeClock()
    cache = PolicyCache(FakeSource(), clock=clock)
    cache.set(SHOP, ShopPolicies(shipping="Fast"))
    cache.set("second.myshopify.com", ShopPolicies())
    clock.now += 12.5

    stats = cache.stats()
    assert stats.total_entries == 2
    assert {entry.shop for entry in stats.entries} == {SHOP, "second.myshopify.com"}
    assert all(entry.age_seconds == 12.5 for entry in stats.entries)
    assert cache.peek(SHOP).shipping == "Fast"

    cache.evict(SHOP)
    assert cache.stats().total_entries == 1
    cache.clear()
    assert cache.stats().total_entries == 0


@pytest.mark.asyncio
async def test_concurrent_misses_fetch_independently_by_default() -> None:
    source = FakeSource(delay=0.01)
    cache = PolicyCache(source, single_flight=False, clock=FakeClock())

    results = await asyncio.gather(cache.get(SHOP), cache.get(SHOP), cache.get(SHOP))

    assert all(result is not None for result in results)
    assert len(source.calls) == 3


@pytest.mark.asyncio
async def test_single_flight_shares_one_fetch() -> None:
    source = FakeSource(delay=0.01)
    cache = PolicyCache(source, single_flight=True, clock=FakeClock())

    results = await asyncio.gather(cache.get(SHOP), cache.get(SHOP), cache.get(SHOP))

    assert all(result == results[0] for result in results)
    assert len(source.calls) == 1
    assert cache._inflight == {}


@pytest.mark.asyncio
async def test_single_flight_failure_is_not_cached() -> None:
    source = FakeSource(delay=0.01, error=CacheFetchError("down"))
    cache = PolicyCache(source, single_flight=True, clock=FakeClock())

    assert await asyncio.gather(cache.get(SHOP), cache.get(SHOP)) == [None, None]
    source.error = None
    assert await cache.get(SHOP) is not None
    assert len(source.calls) == 2


def _policies_payload() -> dict:
    return {
        "policies": [
            {"title": "Refund policy", "body": "Refunds within 30 days.", "url": "https://demo/policies/refund"},
            {"title": "Shipping policy", "body": "Ships in 2 days."},
        ]
    }


@pytest.mark.asyncio
async def test_shopify_source_fetches_policies_with_access_token() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("X-Shopify-Access-Token")
        return httpx.Response(200, json=_policies_payload())

    source = ShopifyPolicySource(
        token_lookup=lambda shop: "shpat_test",
        api_version="2024-01",
        transport=httpx.MockTransport(handler),
    )
    policies = await source.fetch(SHOP)

    assert seen == {
        "url": "https://demo.myshopify.com/admin/api/2024-01/policies.json",
        "token": "shpat_test",
    }
    assert [policy.title for policy in policies] == ["Refund policy", "Shipping policy"]
    assert policies[0].url == "https://demo/policies/refund"


@pytest.mark.asyncio
async def test_shopify_source_requires_a_token() -> None:
    source = ShopifyPolicySource(token_lookup=lambda shop: None)
    with pytest.raises(CacheFetchError):
        await source.fetch(SHOP)


@pytest.mark.asyncio
async def test_shopify_source_reports_status_on_failure() -> None:
    source = ShopifyPolicySource(
        token_lookup=lambda shop: "shpat_test",
        transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"errors": "Unauthorized"})),
    )
    with pytest.raises(CacheFetchError) as excinfo:
        await source.fetch(SHOP)
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_shopify_source_rejects_malformed_json() -> None:
    source = ShopifyPolicySource(
        token_lookup=lambda shop: "shpat_test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>")),
    )
    with pytest.raises(CacheFetchError):
        await source.fetch(SHOP)


@pytest.mark.asyncio
async def test_shopify_source_wraps_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    source = ShopifyPolicySource(token_lookup=lambda shop: "shpat_test", transport=httpx.MockTransport(handler))
    with pytest.raises(CacheFetchError):
        await source.fetch(SHOP)


@pytest.mark.asyncio
async def test_cache_over_shopify_source(monkeypatch: pytest.MonkeyPatch) -> None:
    from salesbot.core.config import settings

    monkeypatch.setattr(settings, "SHOPIFY_ACCESS_TOKENS_JSON", json.dumps({SHOP: "shpat_mapped"}))
    monkeypatch.setattr(settings, "SHOPIFY_ACCESS_TOKEN", None)
    tokens = []

    def handler(request: httpx.Request) -> httpx.Response:
        tokens.append(request.headers.get("X-Shopify-Access-Token"))
        return httpx.Response(200, json=_policies_payload())

    cache = PolicyCache(ShopifyPolicySource(transport=httpx.MockTransport(handler)), clock=FakeClock())
    policies = await cache.get(SHOP)
    await cache.get(SHOP)

    assert policies.returns == "Refunds within 30 days."
    assert policies.shipping == "Ships in 2 days."
    assert tokens == ["shpat_mapped"]
