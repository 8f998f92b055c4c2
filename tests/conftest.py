"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from typing import Callable, List
from fastapi.testclient import TestClient
from credibility_gateway.api.main import create_app
from credibility_gateway.domain.models import (
    Attestation,
    AttestationStatus,
    Direction,
    Invoice,
    NormalizedRecord,
    ProfitLoss,
    Provenance,
    Receipt,
    TaxFiling,
    TaxType,
    Transaction,
)


def _transaction(
    record_id: str,
    day: date,
    amount_cents,
    direction: Direction = Direction.CREDIT,
    provenance: Provenance = Provenance.DOCUMENT_BACKED,
    **kwargs,
) -> Transaction:
    return Transaction(
        record_id=record_id,
        date=day,
        provenance=provenance,
        amount_cents=amount_cents,
        direction=direction,
        **kwargs,
    )


def _invoice(
    record_id: str, day: date, total_cents, provenance: Provenance = Provenance.DOCUMENT_BACKED, **kwargs
) -> Invoice:
    return Invoice(record_id=record_id, date=day, provenance=provenance, total_cents=total_cents, **kwargs)


def _receipt(
    record_id: str, day: date, total_cents, provenance: Provenance = Provenance.DOCUMENT_BACKED, **kwargs
) -> Receipt:
    return Receipt(record_id=record_id, date=day, provenance=provenance, total_cents=total_cents, **kwargs)


def _profit_loss(record_id: str, day: date, revenue_cents, expenses_cents, **kwargs) -> ProfitLoss:
    kwargs.setdefault("provenance", Provenance.DOCUMENT_BACKED)
    return ProfitLoss(record_id=record_id, date=day, revenue_cents=revenue_cents, expenses_cents=expenses_cents, **kwargs)


def _tax_filing(record_id: str, day: date, tax_type: TaxType = TaxType.VAT, **kwargs) -> TaxFiling:
    kwargs.setdefault("provenance", Provenance.DOCUMENT_BACKED)
    return TaxFiling(record_id=record_id, date=day, tax_type=tax_type, **kwargs)


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    return _transaction


@pytest.fixture
def make_invoice() -> Callable[..., Invoice]:
    return _invoice


@pytest.fixture
def make_receipt() -> Callable[..., Receipt]:
    return _receipt


@pytest.fixture
def make_profit_loss() -> Callable[..., ProfitLoss]:
    return _profit_loss


@pytest.fixture
def make_tax_filing() -> Callable[..., TaxFiling]:
    return _tax_filing


@pytest.fixture
def corroborated_records() -> List[NormalizedRecord]:
    """
    10 bank credits over 5 months, each settled against a matching invoice.

    Amounts are irregular (no round numbers), distinct and dated mid-month.
    """
    records: List[NormalizedRecord] = []
    for i in range(10):
        month = 1 + i // 2
        day = date(2024, month, 5 + (i % 2) * 10)
        amount = 123_456 + i * 1_111
        records.append(_transaction(f"tx_{i}", day, amount))
        records.append(_invoice(f"inv_{i}", day - timedelta(days=2), amount, vat_cents=amount // 6))
    return records


@pytest.fixture
def full_attestation() -> Attestation:
    """Active, human-reviewed, blockchain-anchored verification"""
    return Attestation(
        attestation_id="att_1",
        status=AttestationStatus.ACTIVE,
        verifier="Acme Lending",
        human_reviewed=True,
        anchor_tx_hash="0xabc123",
    )


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client"""
    app = create_app()
    return TestClient(app)
