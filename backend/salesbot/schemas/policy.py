from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ShopPolicies(BaseModel):
    """Canonical policy documents for one shop."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    shop_name: Optional[str] = None
    shipping: Optional[str] = None
    returns: Optional[str] = None
    privacy: Optional[str] = None
    terms_of_service: Optional[str] = None
    contact_email: Optional[str] = None


class RawPolicy(BaseModel):
    """One entry of the shop REST endpoint's `policies` array."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    body: Optional[str] = None
    url: Optional[str] = None


class PolicyCacheEntry(BaseModel):
    shop: str
    policies: ShopPolicies
    fetched_at: float


class PolicyCacheEntryStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    shop: str
    age_seconds: float


class PolicyCacheStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_entries: int
    entries: List[PolicyCacheEntryStats] = []
