"""Domain models - immutable dataclasses for records, findings and scores"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum, IntEnum
from typing import ClassVar, Dict, Optional, Tuple, Union


class SourceType(str, Enum):
    BANK_STATEMENT = "bank_statement"
    INVOICE = "invoice"
    RECEIPT = "receipt"
    PROFIT_LOSS = "profit_loss"
    BALANCE_SHEET = "balance_sheet"
    TAX_FILING = "tax_filing"


class Provenance(str, Enum):
    DOCUMENT_BACKED = "document_backed"
    MANUAL_ENTRY = "manual_entry"


class Direction(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TaxType(str, Enum):
    VAT = "vat"
    INCOME_TAX = "income_tax"
    OTHER = "other"


class AttestationStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    REVOKED = "revoked"


# Normalized records (produced by the extraction service)


@dataclass(frozen=True, kw_only=True)
class Record:
    """Fields shared by every normalized record"""

    source_type: ClassVar[SourceType]

    record_id: str
    date: date
    provenance: Provenance
    extraction_errors: Tuple[str, ...] = ()

    @property
    def document_backed(self) -> bool:
        return self.provenance is Provenance.DOCUMENT_BACKED

    @property
    def parsed_cleanly(self) -> bool:
        return not self.extraction_errors


@dataclass(frozen=True, kw_only=True)
class Transaction(Record):
    """Bank statement line, or a self-declared ledger line when manual"""

    source_type: ClassVar[SourceType] = SourceType.BANK_STATEMENT

    amount_cents: Optional[int]
    direction: Direction
    description: str = ""

    @property
    def bank_backed(self) -> bool:
        return self.document_backed


@dataclass(frozen=True, kw_only=True)
class Invoice(Record):
    """Sales invoice"""

    source_type: ClassVar[SourceType] = SourceType.INVOICE

    total_cents: Optional[int]
    vat_cents: Optional[int] = None
    counterparty: str = ""


@dataclass(frozen=True, kw_only=True)
class Receipt(Record):
    """Purchase receipt"""

    source_type: ClassVar[SourceType] = SourceType.RECEIPT

    total_cents: Optional[int]
    vat_cents: Optional[int] = None
    merchant: str = ""


@dataclass(frozen=True, kw_only=True)
class ProfitLoss(Record):
    """Monthly profit & loss statement"""

    source_type: ClassVar[SourceType] = SourceType.PROFIT_LOSS

    revenue_cents: Optional[int]
    expenses_cents: Optional[int]


@dataclass(frozen=True, kw_only=True)
class BalanceSheet(Record):
    """Balance sheet snapshot"""

    source_type: ClassVar[SourceType] = SourceType.BALANCE_SHEET

    assets_cents: Optional[int]
    liabilities_cents: Optional[int]


@dataclass(frozen=True, kw_only=True)
class TaxFiling(Record):
    """Tax return or VAT filing; date is the filing period end"""

    source_type: ClassVar[SourceType] = SourceType.TAX_FILING

    tax_type: TaxType
    amount_cents: Optional[int] = None
    due_date: Optional[date] = None
    filed_date: Optional[date] = None


NormalizedRecord = Union[Transaction, Invoice, Receipt, ProfitLoss, BalanceSheet, TaxFiling]


@dataclass(frozen=True)
class Attestation:
    """Verification proof issued to a lender or partner"""

    attestation_id: str
    status: AttestationStatus
    verifier: str = ""
    human_reviewed: bool = False
    anchor_tx_hash: Optional[str] = None


# Anomaly detection


class AnomalyType(str, Enum):
    AMOUNT_SPIKE = "amount_spike"
    REVENUE_SPIKE = "revenue_spike"
    ROUND_NUMBER_BIAS = "round_number_bias"
    DUPLICATE_AMOUNT = "duplicate_amount"
    UNUSUAL_FREQUENCY = "unusual_frequency"
    FUTURE_DATED = "future_dated"
    MONTH_END_CLUSTERING = "month_end_clustering"
    MARGIN_PATTERN = "margin_pattern"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class AnomalyFinding:
    """Suspicious pattern that reduces score confidence"""

    type: AnomalyType
    severity: Severity
    confidence_reduction: int
    description: str
    data_points: Tuple[str, ...]
    recommendation: str = ""
    detection_method: str = ""


# Reconciliation


@dataclass(frozen=True)
class ReconciliationGroup:
    """One pair of independently sourced totals"""

    name: str
    source_a: str
    source_b: str
    total_a_cents: int
    total_b_cents: int
    delta: float
    matched: bool


@dataclass(frozen=True)
class ReconciliationResult:
    passed: bool
    mismatches: Tuple[str, ...]
    reconciliation_score: int
    groups: Tuple[ReconciliationGroup, ...] = ()


# Layer scores


class FlagType(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    CRITICAL = "critical"
    INFO = "info"


@dataclass(frozen=True)
class LayerFlag:
    """Diagnostic flag; impact is added to the layer's weighted sum"""

    type: FlagType
    code: str
    message: str
    impact: int = 0
    recommendation: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class LayerScore:
    score: int
    metrics: Dict[str, float]
    flags: Tuple[LayerFlag, ...] = ()


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True, kw_only=True)
class ComplianceReadinessScore(LayerScore):
    risk_level: RiskLevel
    assessment: str


# Trust tiers


class TrustTier(IntEnum):
    SELF_DECLARED = 0
    DOCUMENT_BACKED = 1
    BANK_SUPPORTED = 2
    VERIFIED = 3


class VerificationStrength(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    VERIFIED = "verified"


@dataclass(frozen=True)
class TierRequirement:
    id: str
    label: str
    description: str
    completed: bool
    progress: int  # 0-100
    weight: int


@dataclass(frozen=True)
class TrustTierInfo:
    tier: TrustTier
    label: str
    description: str
    requirements: Tuple[str, ...]
    next_tier_requirements: Optional[Tuple[str, ...]]
    detailed_requirements: Tuple[TierRequirement, ...] = ()
    tier_progress: int = 0
    antifraud_score: int = 100
    verification_strength: VerificationStrength = VerificationStrength.WEAK


# Composite


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Priority(str, Enum):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short_term"
    MEDIUM_TERM = "medium_term"


class ActionCategory(str, Enum):
    EVIDENCE = "evidence"
    STABILITY = "stability"
    COMPLIANCE = "compliance"
    VERIFICATION = "verification"


class Effort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ImprovementAction:
    title: str
    description: str
    priority: Priority
    category: ActionCategory
    effort: Effort
    potential_gain: int


@dataclass(frozen=True)
class CredibilityScore:
    """Output of a full scoring run over one record snapshot"""

    total_score: int
    confidence_level: ConfidenceLevel
    trust_tier: TrustTierInfo
    evidence_quality: LayerScore
    stability_growth: LayerScore
    compliance_readiness: ComplianceReadinessScore
    anomalies: Tuple[AnomalyFinding, ...]
    cross_source_reconciliation: ReconciliationResult
    data_points: int
    improvement_actions: Tuple[ImprovementAction, ...] = field(default_factory=tuple)
