"""API tests for POST /api/v1/pricing/quote."""

from fastapi import status


def test_quote_uses_catalog_prices(client, customer_headers, catalog_service, active_addons):
    tier = catalog_service.pricing_tiers[0]

    response = client.post(
        "/api/v1/pricing/quote",
        json={
            "service_id": catalog_service.id,
            "pricing_tier_id": tier.id,
            "addon_ids": [addon.id for addon in active_addons],
        },
        headers=customer_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["base_price"] == 50000
    assert body["tier_price"] == 20000
    assert body["addons_price"] == 13000
    assert body["total_price"] == 83000
    assert body["currency"] == "cop"
    assert sorted(body["addon_ids_applied"]) == sorted(a.id for a in active_addons)


def test_quote_for_unknown_tier(client, customer_headers, catalog_service):
    response = client.post(
        "/api/v1/pricing/quote",
        json={"service_id": catalog_service.id, "pricing_tier_id": "01HZZZZZZZZZZZZZZZZZZZZZZZ"},
        headers=customer_headers,
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "PRICING_TIER_NOT_FOUND"


def test_quote_rejects_unknown_fields(client, customer_headers, catalog_service):
    response = client.post(
        "/api/v1/pricing/quote",
        json={"service_id": catalog_service.id, "total_price": 1},
        headers=customer_headers,
    )

    assert response.status_code == 422
