"""Integration tests for API endpoints"""

import httpx
import pytest
from datetime import date
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from credibility_gateway.domain.exceptions import BusinessNotFoundError, InvalidRecordError, RecordStoreError
from credibility_gateway.infrastructure.clients.record_store import RecordSnapshot

SNAPSHOT_PATCH = "credibility_gateway.infrastructure.clients.record_store.RecordStoreClient.get_snapshot"


@pytest.fixture
def corroborated_payload():
    """JSON form of 10 bank credits each matched by an invoice"""
    records = []
    for i in range(10):
        day = date(2024, 1 + i // 2, 5 + (i % 2) * 10)
        amount = 123_456 + i * 1_111
        records.append(
            {
                "kind": "transaction",
                "record_id": f"tx_{i}",
                "date": day.isoformat(),
                "provenance": "document_backed",
                "amount_cents": amount,
                "direction": "credit",
            }
        )
        records.append(
            {
                "kind": "invoice",
                "record_id": f"inv_{i}",
                "date": day.replace(day=day.day - 2).isoformat(),
                "provenance": "document_backed",
                "total_cents": amount,
                "vat_cents": amount // 6,
            }
        )
    return {"business_id": "biz_api", "records": records}


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "credibility-gateway"}


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "credibility_scores_total" in response.text


def test_score_inline_records(client: TestClient, corroborated_payload):
    """Test POST /v1/credibility-score with a clean, corroborated history"""
    response = client.post("/v1/credibility-score", json=corroborated_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["business_id"] == "biz_api"
    assert 0 <= data["total_score"] <= 100
    assert data["trust_tier"]["tier"] == 2
    assert data["anomalies"] == []
    assert data["cross_source_reconciliation"]["passed"] is True
    assert data["confidence_level"] == "high"
    assert data["data_points"] == 20
    assert data["compliance_readiness"]["risk_level"] in ("low", "medium", "high", "critical")
    assert "calculated_at" in data


def test_score_with_attestation_reaches_verified(client: TestClient, corroborated_payload):
    corroborated_payload["attestations"] = [
        {
            "attestation_id": "att_1",
            "status": "active",
            "verifier": "Acme Lending",
            "human_reviewed": True,
            "anchor_tx_hash": "0xabc",
        }
    ]

    response = client.post("/v1/credibility-score", json=corroborated_payload)

    assert response.status_code == 200
    tier = response.json()["trust_tier"]
    assert tier["tier"] == 3
    assert tier["next_tier_requirements"] is None


def test_score_empty_record_set(client: TestClient):
    response = client.post("/v1/credibility-score", json={"business_id": "biz_new", "records": []})

    assert response.status_code == 200
    data = response.json()
    assert data["total_score"] == 0
    assert data["trust_tier"]["tier"] == 0
    assert data["cross_source_reconciliation"]["reconciliation_score"] == 100


def test_future_dated_records_with_as_of(client: TestClient, corroborated_payload):
    corroborated_payload["as_of"] = "2024-04-30"

    response = client.post("/v1/credibility-score", json=corroborated_payload)

    types = [a["type"] for a in response.json()["anomalies"]]
    assert "future_dated" in types


def test_unknown_record_kind_rejected(client: TestClient):
    response = client.post(
        "/v1/credibility-score",
        json={
            "business_id": "biz_bad",
            "records": [{"kind": "payslip", "record_id": "x", "date": "2024-01-01", "provenance": "manual_entry"}],
        },
    )
    assert response.status_code == 422


def test_negative_amount_rejected(client: TestClient):
    response = client.post(
        "/v1/credibility-score",
        json={
            "business_id": "biz_bad",
            "records": [
                {
                    "kind": "receipt",
                    "record_id": "r1",
                    "date": "2024-01-01",
                    "provenance": "document_backed",
                    "total_cents": -5,
                }
            ],
        },
    )
    assert response.status_code == 422


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@patch(SNAPSHOT_PATCH, new_callable=AsyncMock)
def test_score_business_from_record_store(mock_snapshot: AsyncMock, client: TestClient, corroborated_records):
    """Test GET /v1/businesses/{business_id}/credibility-score"""
    mock_snapshot.return_value = RecordSnapshot(
        business_id="biz_store", records=tuple(corroborated_records), attestations=()
    )

    response = client.get("/v1/businesses/biz_store/credibility-score")

    assert response.status_code == 200
    data = response.json()
    assert data["business_id"] == "biz_store"
    assert data["trust_tier"]["tier"] == 2
    assert len(data["improvement_actions"]) > 0


@patch(SNAPSHOT_PATCH, new_callable=AsyncMock)
def test_record_store_unavailable(mock_snapshot: AsyncMock, client: TestClient):
    mock_snapshot.side_effect = RecordStoreError("Record Store timeout after 5.0s")

    response = client.get("/v1/businesses/biz_store/credibility-score")

    assert response.status_code == 503
    assert response.json()["detail"] == "Record Store unavailable"


@patch(SNAPSHOT_PATCH, new_callable=AsyncMock)
def test_unknown_business(mock_snapshot: AsyncMock, client: TestClient):
    mock_snapshot.side_effect = BusinessNotFoundError("Unknown business: nobody")

    response = client.get("/v1/businesses/nobody/credibility-score")

    assert response.status_code == 404


@patch(SNAPSHOT_PATCH, new_callable=AsyncMock)
def test_malformed_store_records(mock_snapshot: AsyncMock, client: TestClient):
    mock_snapshot.side_effect = InvalidRecordError("Unknown record kind: 'payslip'")

    response = client.get("/v1/businesses/biz_store/credibility-score")

    assert response.status_code == 422


@pytest.mark.parametrize("amount", ["5000", -5000, 50.5])
@patch("httpx.AsyncClient.get", new_callable=AsyncMock)
def test_ill_typed_store_amount_rejected(mock_get: AsyncMock, amount, client: TestClient):
    """Store records go through the same validation as inline records"""
    record = {
        "kind": "transaction",
        "record_id": "tx_1",
        "date": "2024-05-10",
        "provenance": "document_backed",
        "amount_cents": amount,
        "direction": "credit",
    }
    mock_get.return_value = httpx.Response(
        200, json={"records": [record]}, request=httpx.Request("GET", "http://record-store.test/records")
    )

    response = client.get("/v1/businesses/biz_store/credibility-score")

    assert response.status_code == 422


def test_string_amount_rejected(client: TestClient):
    response = client.post(
        "/v1/credibility-score",
        json={
            "business_id": "biz_bad",
            "records": [
                {
                    "kind": "invoice",
                    "record_id": "inv_1",
                    "date": "2024-01-01",
                    "provenance": "document_backed",
                    "total_cents": "5000",
                }
            ],
        },
    )
    assert response.status_code == 422
