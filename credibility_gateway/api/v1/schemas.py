"""Pydantic schemas for API request/response validation"""

import datetime as dt
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from credibility_gateway.domain.models import (
    ActionCategory,
    AnomalyType,
    Attestation,
    AttestationStatus,
    BalanceSheet,
    ConfidenceLevel,
    CredibilityScore,
    Direction,
    Effort,
    FlagType,
    Invoice,
    Priority,
    ProfitLoss,
    Provenance,
    Receipt,
    RiskLevel,
    Severity,
    TaxFiling,
    TaxType,
    Transaction,
    TrustTier,
    VerificationStrength,
)

# Request: records as produced by the extraction service


class RecordSchema(BaseModel):
    """
    Fields shared by every extracted record.

    Amounts are strict integers: "5000" or 50.0 is rejected rather than coerced.
    """

    record_id: str = Field(..., min_length=1, description="Record identifier")
    date: dt.date
    provenance: Provenance
    extraction_errors: List[str] = Field(default_factory=list)

    def _base(self) -> dict:
        return {
            "record_id": self.record_id,
            "date": self.date,
            "provenance": self.provenance,
            "extraction_errors": tuple(self.extraction_errors),
        }


class TransactionSchema(RecordSchema):
    kind: Literal["transaction"]
    amount_cents: Optional[int] = Field(None, ge=0, strict=True)
    direction: Direction
    description: str = ""

    def to_domain(self) -> Transaction:
        return Transaction(
            **self._base(), amount_cents=self.amount_cents, direction=self.direction, description=self.description
        )


class InvoiceSchema(RecordSchema):
    kind: Literal["invoice"]
    total_cents: Optional[int] = Field(None, ge=0, strict=True)
    vat_cents: Optional[int] = Field(None, ge=0, strict=True)
    counterparty: str = ""

    def to_domain(self) -> Invoice:
        return Invoice(
            **self._base(), total_cents=self.total_cents, vat_cents=self.vat_cents, counterparty=self.counterparty
        )


class ReceiptSchema(RecordSchema):
    kind: Literal["receipt"]
    total_cents: Optional[int] = Field(None, ge=0, strict=True)
    vat_cents: Optional[int] = Field(None, ge=0, strict=True)
    merchant: str = ""

    def to_domain(self) -> Receipt:
        return Receipt(**self._base(), total_cents=self.total_cents, vat_cents=self.vat_cents, merchant=self.merchant)


class ProfitLossSchema(RecordSchema):
    kind: Literal["profit_loss"]
    revenue_cents: Optional[int] = Field(None, ge=0, strict=True)
    expenses_cents: Optional[int] = Field(None, ge=0, strict=True)

    def to_domain(self) -> ProfitLoss:
        return ProfitLoss(**self._base(), revenue_cents=self.revenue_cents, expenses_cents=self.expenses_cents)


class BalanceSheetSchema(RecordSchema):
    kind: Literal["balance_sheet"]
    assets_cents: Optional[int] = Field(None, strict=True)
    liabilities_cents: Optional[int] = Field(None, strict=True)

    def to_domain(self) -> BalanceSheet:
        return BalanceSheet(**self._base(), assets_cents=self.assets_cents, liabilities_cents=self.liabilities_cents)


class TaxFilingSchema(RecordSchema):
    kind: Literal["tax_filing"]
    tax_type: TaxType
    amount_cents: Optional[int] = Field(None, ge=0, strict=True)
    due_date: Optional[dt.date] = None
    filed_date: Optional[dt.date] = None

    def to_domain(self) -> TaxFiling:
        return TaxFiling(
            **self._base(),
            tax_type=self.tax_type,
            amount_cents=self.amount_cents,
            due_date=self.due_date,
            filed_date=self.filed_date,
        )


RecordPayload = Annotated[
    Union[TransactionSchema, InvoiceSchema, ReceiptSchema, ProfitLossSchema, BalanceSheetSchema, TaxFilingSchema],
    Field(discriminator="kind"),
]


class AttestationSchema(BaseModel):
    attestation_id: str = Field(..., min_length=1)
    status: AttestationStatus
    verifier: str = ""
    human_reviewed: bool = False
    anchor_tx_hash: Optional[str] = None

    def to_domain(self) -> Attestation:
        return Attestation(
            attestation_id=self.attestation_id,
            status=self.status,
            verifier=self.verifier,
            human_reviewed=self.human_reviewed,
            anchor_tx_hash=self.anchor_tx_hash,
        )


class ScoreRequest(BaseModel):
    """Request body for POST /v1/credibility-score"""

    business_id: str = Field(..., min_length=1, description="Business identifier")
    records: List[RecordPayload] = Field(default_factory=list)
    attestations: List[AttestationSchema] = Field(default_factory=list)
    as_of: Optional[dt.date] = Field(None, description="Reference date for deadlines and future-dated checks")


# Response: read straight off the domain dataclasses


class DomainSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class AnomalySchema(DomainSchema):
    type: AnomalyType
    severity: Severity
    confidence_reduction: int
    description: str
    data_points: List[str]
    recommendation: str
    detection_method: str


class ReconciliationGroupSchema(DomainSchema):
    name: str
    source_a: str
    source_b: str
    total_a_cents: int
    total_b_cents: int
    delta: float
    matched: bool


class ReconciliationSchema(DomainSchema):
    passed: bool
    mismatches: List[str]
    reconciliation_score: int
    groups: List[ReconciliationGroupSchema]


class FlagSchema(DomainSchema):
    type: FlagType
    code: str
    message: str
    impact: int
    recommendation: Optional[str] = None


class LayerScoreSchema(DomainSchema):
    score: int
    metrics: Dict[str, float]
    flags: List[FlagSchema]


class ComplianceScoreSchema(LayerScoreSchema):
    risk_level: RiskLevel
    assessment: str


class TierRequirementSchema(DomainSchema):
    id: str
    label: str
    description: str
    completed: bool
    progress: int
    weight: int


class TrustTierSchema(DomainSchema):
    tier: TrustTier
    label: str
    description: str
    requirements: List[str]
    next_tier_requirements: Optional[List[str]] = None
    detailed_requirements: List[TierRequirementSchema]
    tier_progress: int
    antifraud_score: int
    verification_strength: VerificationStrength


class ImprovementActionSchema(DomainSchema):
    title: str
    description: str
    priority: Priority
    category: ActionCategory
    effort: Effort
    potential_gain: int


class CredibilityScoreSchema(DomainSchema):
    total_score: int
    confidence_level: ConfidenceLevel
    trust_tier: TrustTierSchema
    evidence_quality: LayerScoreSchema
    stability_growth: LayerScoreSchema
    compliance_readiness: ComplianceScoreSchema
    anomalies: List[AnomalySchema]
    cross_source_reconciliation: ReconciliationSchema
    data_points: int
    improvement_actions: List[ImprovementActionSchema]


class CredibilityScoreResponse(CredibilityScoreSchema):
    """Response for the credibility score endpoints"""

    business_id: str
    calculated_at: dt.datetime

    @classmethod
    def from_domain(
        cls, business_id: str, score: CredibilityScore, calculated_at: dt.datetime
    ) -> "CredibilityScoreResponse":
        view = CredibilityScoreSchema.model_validate(score)
        return cls(business_id=business_id, calculated_at=calculated_at, **dict(view))
