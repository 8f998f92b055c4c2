"""Layer C: compliance readiness - filings, VAT posture and record cadence"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.aggregates import (
    FinancialTotals,
    active_months,
    build_monthly_figures,
    compute_totals,
    reference_date,
)
from credibility_gateway.domain.layers import LayerMetric, evaluate_metrics, fold_layer, ratio
from credibility_gateway.domain.models import (
    ComplianceReadinessScore,
    FlagType,
    LayerFlag,
    NormalizedRecord,
    RiskLevel,
    TaxFiling,
    TaxType,
    Transaction,
)
from credibility_gateway.utils.date_utils import month_key, shift_months

REQUIRED_DOCUMENTS = ("invoice", "bank_statement", "receipt")
RECOMMENDED_DOCUMENTS = ("profit_loss", "balance_sheet", "tax_filing")

# Lower bound of each band, highest first
RISK_BANDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (80, RiskLevel.LOW),
    (60, RiskLevel.MEDIUM),
    (40, RiskLevel.HIGH),
)

ASSESSMENTS: Dict[RiskLevel, str] = {
    RiskLevel.LOW: "Records and filings are in good order for lender due diligence.",
    RiskLevel.MEDIUM: "Mostly compliant; a few documents or filings need attention.",
    RiskLevel.HIGH: "Significant compliance gaps; lenders are likely to ask for more evidence.",
    RiskLevel.CRITICAL: "Compliance posture is not lender-ready; required records are missing.",
}


def risk_level_for(score: int) -> RiskLevel:
    """Banded mapping: >=80 low, >=60 medium, >=40 high, else critical"""
    for floor, level in RISK_BANDS:
        if score >= floor:
            return level
    return RiskLevel.CRITICAL


def document_types_present(records: Sequence[NormalizedRecord]) -> Set[str]:
    present = set()
    for record in records:
        # Manual ledger lines are not bank statements
        if isinstance(record, Transaction) and not record.bank_backed:
            continue
        present.add(record.source_type.value)
    return present


@dataclass(frozen=True)
class ComplianceContext:
    records: Sequence[NormalizedRecord]
    present: Set[str]
    totals: FinancialTotals
    reference: date
    policy: ScoringPolicy

    @property
    def filings(self) -> List[TaxFiling]:
        return [r for r in self.records if isinstance(r, TaxFiling)]

    @property
    def vat_risk(self) -> bool:
        has_vat_filing = any(f.tax_type is TaxType.VAT for f in self.filings)
        return (
            self.totals.revenue_cents > self.policy.vat_registration_threshold_cents
            and self.totals.vat_collected_cents == 0
            and not has_vat_filing
        )

    @property
    def expense_anomaly(self) -> bool:
        return self.totals.expenses_cents > self.totals.revenue_cents * self.policy.high_expense_ratio

    def filing_status(self) -> Tuple[int, int]:
        """(on_time, late) among filings whose deadline has been reached"""
        on_time = late = 0
        for filing in self.filings:
            if filing.due_date is None:
                continue
            if filing.filed_date is not None:
                if filing.filed_date <= filing.due_date:
                    on_time += 1
                else:
                    late += 1
            elif filing.due_date < self.reference:
                late += 1
        return on_time, late

    @property
    def cadence_window(self) -> List[str]:
        months = self.policy.cadence_months
        return [month_key(shift_months(self.reference, -offset)) for offset in range(months)]


def _document_completeness(ctx: ComplianceContext) -> float:
    required = sum(1 for doc in REQUIRED_DOCUMENTS if doc in ctx.present)
    recommended = sum(1 for doc in RECOMMENDED_DOCUMENTS if doc in ctx.present)
    return required / len(REQUIRED_DOCUMENTS) * 70 + recommended / len(RECOMMENDED_DOCUMENTS) * 30


def _risk_patterns(ctx: ComplianceContext) -> float:
    score = 100
    if ctx.vat_risk:
        score -= 30
    if ctx.expense_anomaly:
        score -= 20
    return score


def _filing_timeliness(ctx: ComplianceContext) -> float:
    on_time, late = ctx.filing_status()
    return ratio(on_time, on_time + late) * 100


def _record_cadence(ctx: ComplianceContext) -> float:
    months = active_months(ctx.records)
    window = ctx.cadence_window
    return ratio(sum(1 for m in window if m in months), len(window)) * 100


COMPLIANCE_TABLE: Tuple[LayerMetric[ComplianceContext], ...] = (
    LayerMetric(
        "document_completeness",
        _document_completeness,
        title="Complete Your Document Set",
        suggestion="Upload invoices, receipts and bank statements, plus P&L, balance sheet and tax filings",
    ),
    LayerMetric(
        "risk_patterns",
        _risk_patterns,
        title="Address Compliance Risk Patterns",
        suggestion="Register for VAT where required and document expense levels",
    ),
    LayerMetric(
        "filing_timeliness",
        _filing_timeliness,
        title="File Taxes On Time",
        suggestion="Upload tax and VAT filings and submit them before their deadlines",
    ),
    LayerMetric(
        "record_cadence",
        _record_cadence,
        title="Keep Records Current",
        suggestion="Add records every month so the latest quarter is covered",
    ),
)


def _compliance_flags(ctx: ComplianceContext) -> List[LayerFlag]:
    flags = []

    if "invoice" not in ctx.present:
        flags.append(
            LayerFlag(
                FlagType.WARNING,
                "MISSING_INVOICES",
                "No sales invoices uploaded",
                recommendation="Upload sales invoices to prove revenue",
            )
        )
    if "bank_statement" not in ctx.present:
        flags.append(
            LayerFlag(
                FlagType.WARNING,
                "MISSING_BANK_STATEMENTS",
                "No bank statements uploaded",
                recommendation="Add bank statements for Tier 2 verification",
            )
        )
    if ctx.vat_risk:
        flags.append(
            LayerFlag(
                FlagType.CRITICAL,
                "VAT_COMPLIANCE_RISK",
                "Revenue exceeds the VAT registration threshold but no VAT collected",
                recommendation="Ensure VAT registration and proper collection",
            )
        )
    if ctx.expense_anomaly:
        flags.append(
            LayerFlag(
                FlagType.WARNING,
                "EXPENSE_ANOMALY",
                "Expenses significantly exceed revenue",
                recommendation="Review expense categorization and documentation",
            )
        )

    _, late = ctx.filing_status()
    if late:
        flags.append(
            LayerFlag(
                FlagType.WARNING,
                "OVERDUE_FILINGS",
                f"{late} tax filings were late or are overdue",
                recommendation="Submit overdue filings and upload the acknowledgements",
            )
        )
    elif not ctx.filings:
        flags.append(
            LayerFlag(
                FlagType.INFO,
                "NO_TAX_FILINGS",
                "No tax or VAT filings uploaded",
                recommendation="Upload recent tax returns to evidence filing status",
            )
        )

    return flags


def score_compliance_readiness(
    records: Sequence[NormalizedRecord],
    as_of: Optional[date] = None,
    policy: Optional[ScoringPolicy] = None,
) -> ComplianceReadinessScore:
    """
    Score tax/VAT/regulatory posture and map it to a risk level.

    document_completeness x0.40 + risk_patterns x0.30 + filing_timeliness x0.20
    + record_cadence x0.10. Deadlines and cadence are judged against as_of,
    defaulting to the latest record date.
    """
    policy = policy or scoring_policy
    reference = reference_date(records, as_of)

    if not records or reference is None:
        layer = fold_layer(
            {metric.name: 0.0 for metric in COMPLIANCE_TABLE},
            policy.compliance_weights,
            [LayerFlag(FlagType.CRITICAL, "NO_RECORDS", "No records to assess compliance")],
        )
    else:
        monthly = build_monthly_figures(records)
        ctx = ComplianceContext(
            records=records,
            present=document_types_present(records),
            totals=compute_totals(records, monthly),
            reference=reference,
            policy=policy,
        )
        layer = fold_layer(evaluate_metrics(COMPLIANCE_TABLE, ctx), policy.compliance_weights, _compliance_flags(ctx))

    level = risk_level_for(layer.score)
    return ComplianceReadinessScore(
        score=layer.score,
        metrics=layer.metrics,
        flags=layer.flags,
        risk_level=level,
        assessment=ASSESSMENTS[level],
    )
