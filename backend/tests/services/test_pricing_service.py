"""
Server-side pricing: totals always come from stored catalog prices.
"""

import pytest
import ulid

from app.core.exceptions import NotFoundException
from app.models.service_catalog import ProfessionalService, ServicePricingTier
from app.services.pricing_service import PricingService, extension_fee, round_half_up


@pytest.fixture
def pricing_service(db):
    return PricingService(db)


class TestCalculate:
    def test_base_plus_addons(self, pricing_service, catalog_service, active_addons):
        fridge, oven = active_addons

        breakdown = pricing_service.calculate(catalog_service.id, None, [fridge.id, oven.id])

        assert breakdown.base_price == 50000
        assert breakdown.tier_price == 0
        assert breakdown.addons_price == 13000
        assert breakdown.total_price == 63000
        assert breakdown.currency == "cop"
        assert sorted(breakdown.addon_ids_applied) == sorted([fridge.id, oven.id])

    def test_tier_is_added(self, pricing_service, catalog_service):
        tier = catalog_service.pricing_tiers[0]

        breakdown = pricing_service.calculate(catalog_service.id, tier.id)

        assert breakdown.tier_price == 20000
        assert breakdown.total_price == 70000

    def test_duplicate_addon_ids_count_once(self, pricing_service, catalog_service, active_addons):
        fridge, _ = active_addons

        breakdown = pricing_service.calculate(catalog_service.id, None, [fridge.id, fridge.id])

        assert breakdown.addons_price == 5000
        assert breakdown.addon_ids_applied == [fridge.id]

    def test_unknown_and_inactive_addons_are_dropped(
        self, pricing_service, catalog_service, active_addons
    ):
        fridge, _ = active_addons
        retired = next(addon for addon in catalog_service.addons if not addon.is_active)

        breakdown = pricing_service.calculate(
            catalog_service.id, None, [fridge.id, retired.id, str(ulid.ULID())]
        )

        assert breakdown.addons_price == 5000
        assert breakdown.addon_ids_applied == [fridge.id]

    def test_addon_of_another_service_is_dropped(self, db, pricing_service, catalog_service):
        other = ProfessionalService(
            id=str(ulid.ULID()), professional_id="someone", name="Ironing", base_price=1000
        )
        db.add(other)
        db.commit()

        breakdown = pricing_service.calculate(other.id, None, [catalog_service.addons[0].id])

        assert breakdown.addons_price == 0
        assert breakdown.total_price == 1000

    def test_unknown_service(self, pricing_service):
        with pytest.raises(NotFoundException) as exc_info:
            pricing_service.calculate(str(ulid.ULID()))

        assert exc_info.value.message == "Service not found"

    def test_inactive_service_is_not_found(self, db, pricing_service, catalog_service):
        catalog_service.is_active = False
        db.commit()

        with pytest.raises(NotFoundException):
            pricing_service.calculate(catalog_service.id)

    def test_unknown_tier(self, pricing_service, catalog_service):
        with pytest.raises(NotFoundException) as exc_info:
            pricing_service.calculate(catalog_service.id, str(ulid.ULID()))

        assert exc_info.value.message == "Pricing tier not found"
        assert exc_info.value.code == "PRICING_TIER_NOT_FOUND"

    def test_tier_of_another_service_is_not_found(self, db, pricing_service, catalog_service):
        other = ProfessionalService(
            id=str(ulid.ULID()), professional_id="someone", name="Ironing", base_price=1000
        )
        db.add(other)
        db.flush()
        foreign_tier = ServicePricingTier(id=str(ulid.ULID()), service_id=other.id, name="XL", price=1)
        db.add(foreign_tier)
        db.commit()

        with pytest.raises(NotFoundException):
            pricing_service.calculate(catalog_service.id, foreign_tier.id)

    def test_payload(self, pricing_service, catalog_service):
        payload = pricing_service.calculate(catalog_service.id).to_payload()

        assert payload == {
            "base_price": 50000,
            "tier_price": 0,
            "addons_price": 0,
            "total_price": 50000,
            "currency": "cop",
            "addon_ids_applied": [],
        }


class TestExtensionFee:
    def test_per_minute_rate(self):
        # 60,000 over 120 minutes is 500 per minute
        assert extension_fee(60000, 120, 30) == 15000

    def test_rounds_half_up(self):
        # 1000 / 3 * 1 = 333.33 ; 1000 / 3 * 2 = 666.67 ; 5 / 2 * 1 = 2.5
        assert extension_fee(1000, 3, 1) == 333
        assert extension_fee(1000, 3, 2) == 667
        assert extension_fee(5, 2, 1) == 3

    def test_no_duration_means_no_fee(self):
        assert extension_fee(60000, 0, 30) == 0
        assert extension_fee(60000, 120, 0) == 0

    def test_round_half_up_helper(self):
        from decimal import Decimal

        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("2.4999")) == 2
