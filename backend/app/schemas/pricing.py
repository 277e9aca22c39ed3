"""Pricing quote schemas."""

from typing import List, Optional

from pydantic import Field

from ._strict_base import StrictModel, StrictRequestModel


class PricingQuoteRequest(StrictRequestModel):
    service_id: str = Field(..., min_length=1)
    pricing_tier_id: Optional[str] = None
    addon_ids: List[str] = Field(default_factory=list)


class PricingQuoteResponse(StrictModel):
    base_price: int
    tier_price: int
    addons_price: int
    total_price: int
    currency: str
    addon_ids_applied: List[str]
