"""
E2E tests for business personas against a running Record Store.

These tests require the mock Record Store to be running on localhost:8001:
    uvicorn mock.record_store.main:app --port 8001

Business personas:
- biz_verified: 6 months of bank-corroborated documents plus a full attestation
- biz_manual: self-declared ledger lines only
- biz_mismatch: invoices far above the deposits that should settle them
- biz_duplicates: the same transfer entered five times in three days
"""

import pytest
from fastapi.testclient import TestClient


def _score(client: TestClient, business_id: str) -> dict:
    response = client.get(f"/v1/businesses/{business_id}/credibility-score")
    assert response.status_code == 200
    return response.json()


@pytest.mark.integration
def test_biz_verified(client: TestClient):
    """
    biz_verified: every record document-backed and reconciled
    Expected: Tier 3, no anomalies, high confidence
    """
    data = _score(client, "biz_verified")

    assert data["trust_tier"]["tier"] == 3
    assert data["anomalies"] == []
    assert data["confidence_level"] == "high"
    assert data["total_score"] >= 70


@pytest.mark.integration
def test_biz_manual(client: TestClient):
    """
    biz_manual: no documents at all
    Expected: Tier 0 with document upload as the next step
    """
    data = _score(client, "biz_manual")

    assert data["trust_tier"]["tier"] == 0
    assert data["evidence_quality"]["metrics"]["document_backed_ratio"] == 0.0
    assert data["trust_tier"]["next_tier_requirements"]


@pytest.mark.integration
def test_biz_mismatch(client: TestClient):
    """
    biz_mismatch: invoices of 1,000.00 against 400.00 of deposits
    Expected: Reconciliation fails below 70, tier capped at 1
    """
    data = _score(client, "biz_mismatch")

    assert data["cross_source_reconciliation"]["passed"] is False
    assert data["cross_source_reconciliation"]["reconciliation_score"] < 70
    assert data["trust_tier"]["tier"] <= 1


@pytest.mark.integration
def test_biz_duplicates(client: TestClient):
    """
    biz_duplicates: 5 x 500.00 within 3 days
    Expected: duplicate_amount finding of at least medium severity
    """
    data = _score(client, "biz_duplicates")

    duplicates = [a for a in data["anomalies"] if a["type"] == "duplicate_amount"]
    assert duplicates
    assert duplicates[0]["severity"] in ("medium", "high")


@pytest.mark.integration
def test_unknown_business(client: TestClient):
    response = client.get("/v1/businesses/biz_missing/credibility-score")
    assert response.status_code == 404
