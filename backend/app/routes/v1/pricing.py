"""V1 Pricing quote endpoint for booking totals."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ...api.dependencies import get_actor_id
from ...api.dependencies.services import get_pricing_service
from ...core.exceptions import DomainException
from ...schemas.pricing import PricingQuoteRequest, PricingQuoteResponse
from ...services.pricing_service import PricingService

logger = logging.getLogger(__name__)

# V1 router - mounted at /api/v1/pricing
router = APIRouter(tags=["pricing"])


@router.post("/quote", response_model=PricingQuoteResponse)
def quote_pricing(
    payload: PricingQuoteRequest,
    actor_id: str = Depends(get_actor_id),
    pricing_service: PricingService = Depends(get_pricing_service),
) -> PricingQuoteResponse:
    """Return the server-side price for a service selection without creating a booking."""

    try:
        breakdown = pricing_service.calculate(
            payload.service_id, payload.pricing_tier_id, payload.addon_ids
        )
    except DomainException as exc:
        raise exc.to_http_exception() from exc

    logger.debug("Quote for %s requested by %s", payload.service_id, actor_id)
    return PricingQuoteResponse(**breakdown.to_payload())
