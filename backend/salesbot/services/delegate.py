from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from salesbot.core.config import settings
from salesbot.core.exceptions import ConfigurationError, ProtocolError, TransportError
from salesbot.core.logging import get_logger

logger = get_logger(__name__)

PROBE_PAYLOAD: Dict[str, Any] = {"userMessage": "test connection", "products": []}


def mask_webhook_url(url: Optional[str]) -> str:
    """Shorten the last path segment (the webhook id) to `abcd****wxyz`."""
    try:
        parts = urlsplit(str(url or ""))
    except ValueError:
        return "[INVALID URL FORMAT]"
    if not parts.scheme or not parts.netloc:
        return "[INVALID URL FORMAT]"

    segments = parts.path.split("/")
    last = segments[-1]
    if len(last) > 8:
        segments[-1] = f"{last[:4]}****{last[-4:]}"
    return urlunsplit((parts.scheme, parts.netloc, "/".join(segments), "", ""))


def classify_status(status_code: int) -> str:
    if status_code == 404:
        return "not_found"
    if status_code in (401, 403):
        return "auth_failed"
    if status_code >= 500:
        return "server_error"
    return "http_error"


class WebhookDelegate:
    """Posts the chat request to the remote AI workflow webhook.

    Every failure surfaces as a `FallbackEngineError` subclass whose `kind`
    names the failure, so the caller can log it and fall back locally.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        timeout_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.DELEGATE_WEBHOOK_URL
        self.api_key = api_key if api_key is not None else settings.DELEGATE_API_KEY
        self.timeout_seconds = int(timeout_ms or settings.DELEGATE_TIMEOUT_MS) / 1000.0
        self._transport = transport

        if not self.webhook_url:
            logger.warning("delegate webhook URL not configured; local fallback will be used")
            return
        logger.info(
            "delegate initialized",
            extra={"event": "delegate_init", "url": self.masked_url, "has_api_key": bool(self.api_key)},
        )
        if "/webhook/webhook/" in self.webhook_url:
            logger.warning("webhook URL contains a duplicate /webhook/ segment and may return 404")

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    @property
    def masked_url(self) -> str:
        return mask_webhook_url(self.webhook_url)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def send(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            raise ConfigurationError()

        timeout = httpx.Timeout(self.timeout_seconds, connect=self.timeout_seconds)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransportError("timeout", f"delegate timed out after {self.timeout_seconds:.1f}s") from e
        except httpx.ConnectError as e:
            raise TransportError("connection_refused", type(e).__name__) from e
        except httpx.HTTPError as e:
            raise TransportError("network_error", type(e).__name__) from e
        except (TypeError, ValueError) as e:
            # JSON encoding of the request body failed before anything was sent
            raise ProtocolError("invalid_request", type(e).__name__) from e

        if not response.is_success:
            kind = classify_status(response.status_code)
            raise ProtocolError(kind, f"delegate returned {response.status_code}", status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError("invalid_json", "delegate response is not valid JSON", response.status_code) from e
        if not isinstance(data, dict):
            raise ProtocolError("invalid_json", "delegate response is not a JSON object", response.status_code)

        logger.debug(
            "delegate response received",
            extra={
                "event": "delegate_response",
                "status": response.status_code,
                "has_message": bool(data.get("message")),
                "has_recommendations": bool(data.get("recommendations")),
            },
        )
        if not data.get("message"):
            raise ProtocolError("missing_message", "delegate response missing message field", response.status_code)
        return data

    async def check_connection(self) -> bool:
        try:
            await self.send(dict(PROBE_PAYLOAD))
        except (ConfigurationError, TransportError, ProtocolError) as e:
            logger.warning(
                "delegate connection check failed: %s",
                getattr(e, "kind", "not_configured"),
                extra={"event": "delegate_check_failed", "url": self.masked_url},
            )
            return False
        return True
