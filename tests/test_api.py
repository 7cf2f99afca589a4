from __future__ import annotations

from sqlalchemy import func, select

from logistics_pricer.models import DutyCalculation, PricingRequest, PricingResponse


def test_legacy_price_calculation(client, seeded_session) -> None:
    resp = client.post(
        "/api/v1/pricing/calculate",
        json={"origin": "CN", "destination": "US", "weight": 100, "volume": 0.5, "transportType": "air"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["price"] == "320.25"
    assert body["breakdown"] == {
        "transport": "170.25",
        "duties": "0.00",
        "fees": "50.00",
        "insurance": "0.00",
        "total": "320.25",
    }
    assert body["details"]["transit_time"]["estimated"] == 4
    assert body["details"]["request_id"] is not None

    assert seeded_session.execute(select(func.count(PricingRequest.id))).scalar() == 1
    assert seeded_session.execute(select(func.count(PricingResponse.id))).scalar() == 1
    status = seeded_session.execute(select(PricingRequest.status)).scalar()
    assert status == "calculated"


def test_price_calculation_rejects_empty_body(client) -> None:
    resp = client.post("/api/v1/pricing/calculate", json={})

    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"]


def test_calculate_duties_writes_audit(client, seeded_session) -> None:
    resp = client.post(
        "/api/v1/tariffs/calculate-duties",
        json={"originCountry": "CN", "destinationCountry": "US", "hsCode": "8517.13.00", "productValue": 1000},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_duties"] == "250.00"
    assert data["calculation_id"] is not None
    assert seeded_session.execute(select(func.count(DutyCalculation.id))).scalar() == 1


def test_rate_lookup_404_when_unknown(client) -> None:
    resp = client.get("/api/v1/tariffs/rates", params={"originCountry": "CN", "hsCode": "0000.00.00"})
    assert resp.status_code == 404


def test_rate_update_supersedes_previous(client) -> None:
    resp = client.post(
        "/api/v1/tariffs/update",
        json={"originCountry": "CN", "hsCode": "8517.13.00", "baseRate": 30, "source": "CUSTOMS_API"},
    )
    assert resp.status_code == 201

    rate = client.get("/api/v1/tariffs/rates", params={"originCountry": "CN", "hsCode": "8517.13.00"}).json()
    assert rate["data"]["tariff_id"] == str(resp.json()["data"]["id"])
    assert rate["data"]["source"] == "CUSTOMS_API"

    history = client.get("/api/v1/tariffs/history", params={"originCountry": "CN", "hsCode": "8517.13.00"}).json()
    assert history["count"] == 1


def test_transit_calculation(client) -> None:
    resp = client.post(
        "/api/v1/shipping/calculate-transit",
        json={"origin": "CN", "destination": "US", "transportType": "sea", "urgency": "express"},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total_time"] == 18
    assert data["factors"][-1] == "express service applied"


def test_transit_calculation_404_without_route(client) -> None:
    resp = client.post(
        "/api/v1/shipping/calculate-transit",
        json={"origin": "BR", "destination": "US", "transportType": "sea"},
    )
    assert resp.status_code == 404


def test_validate_route_lists_alternatives(client) -> None:
    resp = client.post(
        "/api/v1/shipping/validate-route",
        json={"originCountry": "CN", "destinationCountry": "US", "transportType": "rail"},
    )

    data = resp.json()["data"]
    assert data["valid"] is False
    assert sorted(r["transport_mode"] for r in data["alternatives"]) == ["air", "sea"]


def test_validate_route_reports_restrictions(client) -> None:
    resp = client.post(
        "/api/v1/shipping/validate-route",
        json={"originCountry": "CN", "destinationCountry": "US", "transportType": "sea"},
    )

    data = resp.json()["data"]
    assert data["valid"] is True
    assert data["has_restrictions"] is True
    assert data["estimated_transit_time"] == 26


def test_list_routes_filters(client) -> None:
    body = client.get("/api/v1/shipping/routes", params={"destinationCountry": "EU"}).json()
    assert [r["route_id"] for r in body["data"]] == ["route-2"]


def test_price_calculation_rejects_out_of_range_weight(client) -> None:
    resp = client.post(
        "/api/v1/pricing/calculate",
        json={"origin": "CN", "destination": "US", "weight": 1e27, "volume": 0.5, "transportType": "air"},
    )

    assert resp.status_code == 422
    assert any("weight" in str(err["loc"]) for err in resp.json()["detail"]["errors"])


def test_calculate_duties_rejects_out_of_range_value(client) -> None:
    resp = client.post(
        "/api/v1/tariffs/calculate-duties",
        json={"originCountry": "CN", "hsCode": "8517.13.00", "productValue": 1e27},
    )
    assert resp.status_code == 422


def test_required_documents_endpoint(client) -> None:
    body = client.get(
        "/api/v1/shipping/documents",
        params={"originCountry": "CN", "destinationCountry": "US", "transportType": "sea", "value": "3000"},
    ).json()

    assert body["count"] == 6
    certificate = next(d for d in body["data"] if d["type"] == "Certificate of Origin")
    assert certificate["required"] is True


def test_required_documents_rejects_unknown_mode(client) -> None:
    resp = client.get(
        "/api/v1/shipping/documents",
        params={"originCountry": "CN", "destinationCountry": "US", "transportType": "pigeon"},
    )
    assert resp.status_code == 422


def test_restrictions_endpoint_merges_route_restrictions(client) -> None:
    data = client.get(
        "/api/v1/shipping/restrictions",
        params={"originCountry": "CN", "destinationCountry": "US"},
    ).json()["data"]

    assert data["count"] == 4
    assert data["restrictions"][0] == "Section 301 tariffs may apply"
    assert "Dangerous goods declaration if applicable" in data["restrictions"]
    assert data["severity"] == "medium"
