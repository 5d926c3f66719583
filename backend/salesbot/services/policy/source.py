from __future__ import annotations

import json
from typing import Callable, Dict, List, Optional

import httpx

from salesbot.core.config import settings
from salesbot.core.exceptions import CacheFetchError
from salesbot.core.logging import get_logger
from salesbot.schemas.policy import RawPolicy

logger = get_logger(__name__)

TokenLookup = Callable[[str], Optional[str]]


def _settings_token_lookup(shop_domain: str) -> Optional[str]:
    raw = getattr(settings, "SHOPIFY_ACCESS_TOKENS_JSON", "{}") or "{}"
    tokens: Dict[str, str] = {}
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, dict):
            tokens = {str(k).lower(): str(v) for k, v in parsed.items() if v}
    except json.JSONDecodeError:
        logger.warning("SHOPIFY_ACCESS_TOKENS_JSON is not valid JSON; ignoring")
    return tokens.get(shop_domain.lower()) or getattr(settings, "SHOPIFY_ACCESS_TOKEN", None)


class ShopifyPolicySource:
    """Reads shop policies from the Shopify REST Admin API.

    The GraphQL Admin API does not expose shop policies, so this goes through
    `/admin/api/<version>/policies.json`.
    """

    def __init__(
        self,
        *,
        token_lookup: TokenLookup = _settings_token_lookup,
        api_version: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_lookup = token_lookup
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self.timeout_seconds = float(timeout_seconds or settings.POLICY_FETCH_TIMEOUT_SECONDS)
        self._transport = transport

    def policies_url(self, shop_domain: str) -> str:
        return f"https://{shop_domain}/admin/api/{self.api_version}/policies.json"

    async def fetch(self, shop_domain: str) -> List[RawPolicy]:
        access_token = self.token_lookup(shop_domain)
        if not access_token:
            raise CacheFetchError(f"no access token for shop {shop_domain}")

        headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        timeout = httpx.Timeout(self.timeout_seconds, connect=self.timeout_seconds)

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.get(self.policies_url(shop_domain), headers=headers)
        except httpx.TimeoutException as e:
            raise CacheFetchError(f"policy fetch timed out: {type(e).__name__}") from e
        except httpx.HTTPError as e:
            raise CacheFetchError(f"policy fetch network error: {type(e).__name__}") from e

        if not response.is_success:
            raise CacheFetchError(
                f"policy fetch failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CacheFetchError("policy response is not valid JSON") from e

        items = data.get("policies") if isinstance(data, dict) else None
        policies: List[RawPolicy] = []
        for item in items or []:
            if isinstance(item, dict):
                policies.append(RawPolicy.model_validate(item))
        return policies
