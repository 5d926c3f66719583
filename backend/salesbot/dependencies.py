from typing import Optional

from salesbot.services.delegate import WebhookDelegate
from salesbot.services.fallback import FallbackResolver
from salesbot.services.policy.cache import PolicyCache
from salesbot.services.policy.source import ShopifyPolicySource
from salesbot.services.templates import response_templates

_policy_cache: Optional[PolicyCache] = None
_delegate: Optional[WebhookDelegate] = None
_resolver: Optional[FallbackResolver] = None


def get_policy_cache() -> PolicyCache:
    """Dependency for the process-wide policy cache."""
    global _policy_cache
    if _policy_cache is None:
        _policy_cache = PolicyCache(ShopifyPolicySource())
    return _policy_cache


def get_delegate() -> WebhookDelegate:
    global _delegate
    if _delegate is None:
        _delegate = WebhookDelegate()
    return _delegate


def get_resolver() -> FallbackResolver:
    """Dependency for the fallback resolver wired to the shared singletons."""
    global _resolver
    if _resolver is None:
        _resolver = FallbackResolver(
            delegate=get_delegate(),
            templates=response_templates,
            policy_cache=get_policy_cache(),
        )
    return _resolver


def reset_dependencies() -> None:
    global _policy_cache, _delegate, _resolver
    _policy_cache = None
    _delegate = None
    _resolver = None
