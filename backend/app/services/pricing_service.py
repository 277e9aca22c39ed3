"""Server-side pricing calculations for bookings."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundException
from app.models.service_catalog import ServiceAddon
from app.repositories.factory import RepositoryFactory
from app.repositories.service_catalog_repository import ServiceCatalogRepository
from app.services.base import BaseService


@dataclass(frozen=True)
class PricingBreakdown:
    """Authoritative price components in minor units."""

    base_price: int
    tier_price: int
    addons_price: int
    total_price: int
    currency: str
    addon_ids_applied: List[str] = field(default_factory=list)
    addons: List[ServiceAddon] = field(default_factory=list, repr=False, compare=False)

    def to_payload(self) -> dict[str, object]:
        return {
            "base_price": int(self.base_price),
            "tier_price": int(self.tier_price),
            "addons_price": int(self.addons_price),
            "total_price": int(self.total_price),
            "currency": self.currency,
            "addon_ids_applied": list(self.addon_ids_applied),
        }


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def extension_fee(total_price: int, duration_minutes: int, additional_minutes: int) -> int:
    """
    Fee for extending a visit, at the booking's per-minute rate.

    The rate is ``total_price / duration_minutes``; the fee is rounded half-up
    to whole minor units. A booking without a duration has no rate.
    """
    if not duration_minutes or duration_minutes <= 0 or additional_minutes <= 0:
        return 0
    per_minute = Decimal(int(total_price)) / Decimal(int(duration_minutes))
    return round_half_up(per_minute * Decimal(int(additional_minutes)))


def _unique(ids: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for value in ids:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


class PricingService(BaseService):
    """Compute booking totals from stored prices; client-supplied totals are never used."""

    def __init__(
        self,
        db_session: Session,
        catalog_repository: Optional[ServiceCatalogRepository] = None,
    ) -> None:
        super().__init__(db_session)
        self.catalog_repository: ServiceCatalogRepository = (
            catalog_repository or RepositoryFactory.create_service_catalog_repository(db_session)
        )

    @BaseService.measure_operation("pricing.calculate")
    def calculate(
        self,
        service_id: str,
        tier_id: Optional[str] = None,
        addon_ids: Optional[Sequence[str]] = None,
    ) -> PricingBreakdown:
        """
        Price a service with an optional tier and add-ons.

        Raises:
            NotFoundException: "Service not found" for an unknown or inactive
                service, "Pricing tier not found" for a tier that does not
                exist or belongs to another service.

        Unknown or inactive add-on ids are dropped. Duplicates count once.
        """
        service = self.catalog_repository.get_active_service(service_id)
        if service is None:
            raise NotFoundException(
                "Service not found",
                code="SERVICE_NOT_FOUND",
                details={"service_id": service_id},
            )

        tier_price = 0
        if tier_id:
            tier = self.catalog_repository.get_tier_for_service(tier_id, service_id)
            if tier is None:
                raise NotFoundException(
                    "Pricing tier not found",
                    code="PRICING_TIER_NOT_FOUND",
                    details={"service_id": service_id, "tier_id": tier_id},
                )
            tier_price = int(tier.price or 0)

        requested = _unique(addon_ids or [])
        addons = self.catalog_repository.get_active_addons(service_id, requested)
        dropped = sorted(set(requested) - {addon.id for addon in addons})
        if dropped:
            self.logger.info(
                "Ignoring unknown add-ons",
                extra={"service_id": service_id, "addon_ids": dropped},
            )

        base_price = int(service.base_price or 0)
        addons_price = sum(int(addon.price or 0) for addon in addons)

        return PricingBreakdown(
            base_price=base_price,
            tier_price=tier_price,
            addons_price=addons_price,
            total_price=base_price + tier_price + addons_price,
            currency=service.currency,
            addon_ids_applied=[addon.id for addon in addons],
            addons=list(addons),
        )
