"""Layer A: evidence quality - how much of the picture is document-backed"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.aggregates import active_months
from credibility_gateway.domain.anomalies import find_duplicate_clusters
from credibility_gateway.domain.layers import LayerMetric, evaluate_metrics, fold_layer, ratio, round_half_up
from credibility_gateway.domain.models import (
    BalanceSheet,
    FlagType,
    Invoice,
    LayerFlag,
    LayerScore,
    NormalizedRecord,
    ProfitLoss,
    Receipt,
    TaxFiling,
    Transaction,
)
from credibility_gateway.utils.date_utils import generate_month_range, month_key, month_start

MANUAL_SHARE_PENALTY = 15


@dataclass(frozen=True)
class EvidenceContext:
    records: Sequence[NormalizedRecord]
    months: Set[str]
    duplicate_entries: int
    conflicting_entries: int
    policy: ScoringPolicy


def _primary_amount(record: NormalizedRecord) -> Optional[int]:
    if isinstance(record, Transaction):
        return record.amount_cents
    if isinstance(record, (Invoice, Receipt)):
        return record.total_cents
    if isinstance(record, ProfitLoss):
        return record.revenue_cents
    if isinstance(record, BalanceSheet):
        return record.assets_cents
    if isinstance(record, TaxFiling):
        return record.amount_cents
    return None


def _entry_key(record: NormalizedRecord) -> Tuple[str, str, int]:
    direction = record.direction.value if isinstance(record, Transaction) else ""
    return (type(record).__name__, direction, _primary_amount(record))


def count_duplicate_entries(records: Sequence[NormalizedRecord]) -> int:
    """Extra copies of entries with the same variant, amount and date"""
    candidates = [r for r in records if _primary_amount(r) is not None]
    clusters = find_duplicate_clusters(candidates, key=_entry_key, when=lambda r: r.date, min_count=2, window_days=0)
    return sum(len(cluster) - 1 for cluster in clusters)


def count_conflicting_entries(records: Sequence[NormalizedRecord]) -> int:
    """P&L statements for the same month that disagree with each other"""
    by_month: Dict[str, Set[Tuple[Optional[int], Optional[int]]]] = defaultdict(set)
    for record in records:
        if isinstance(record, ProfitLoss):
            by_month[month_key(record.date)].add((record.revenue_cents, record.expenses_cents))
    return sum(len(versions) - 1 for versions in by_month.values())


def _document_backed_ratio(ctx: EvidenceContext) -> float:
    backed = sum(1 for r in ctx.records if r.document_backed)
    return ratio(backed, len(ctx.records)) * 100


def _consistency(ctx: EvidenceContext) -> float:
    policy = ctx.policy
    return (
        100
        - ctx.duplicate_entries * policy.duplicate_entry_penalty
        - ctx.conflicting_entries * policy.conflict_entry_penalty
    )


def _continuity(ctx: EvidenceContext) -> float:
    return min(100.0, ratio(len(ctx.months), ctx.policy.continuity_target_months) * 100)


def _metadata(ctx: EvidenceContext) -> float:
    clean = sum(1 for r in ctx.records if r.parsed_cleanly)
    return ratio(clean, len(ctx.records)) * 100


EVIDENCE_TABLE: Tuple[LayerMetric[EvidenceContext], ...] = (
    LayerMetric(
        "document_backed_ratio",
        _document_backed_ratio,
        title="Add Supporting Documents",
        suggestion="Upload invoices, receipts, or bank statements to back your manual entries",
    ),
    LayerMetric(
        "consistency_score",
        _consistency,
        title="Resolve Duplicate or Conflicting Entries",
        suggestion="Remove duplicated records and keep one P&L statement per month",
    ),
    LayerMetric(
        "continuity_score",
        _continuity,
        title="Build Financial History",
        suggestion="Upload records covering at least the past 6 months",
    ),
    LayerMetric(
        "metadata_score",
        _metadata,
        title="Re-upload Unreadable Documents",
        suggestion="Replace documents that failed extraction with clearer scans",
    ),
)


def _coverage_gaps(months: Set[str]) -> int:
    if not months:
        return 0
    span = generate_month_range(month_start(min(months)), month_start(max(months)))
    return len(span) - len(months)


def _evidence_flags(ctx: EvidenceContext, metrics: Dict[str, float]) -> List[LayerFlag]:
    flags = []
    total = len(ctx.records)
    manual = sum(1 for r in ctx.records if not r.document_backed)

    # Penalty shrinks with the manual share, so one more document never costs points
    manual_penalty = -round_half_up(MANUAL_SHARE_PENALTY * manual / total)
    if manual == total:
        flags.append(
            LayerFlag(
                FlagType.CRITICAL, "NO_DOCUMENT_EVIDENCE", "No entry is backed by a document", impact=manual_penalty
            )
        )
    elif manual > total * 0.5:
        flags.append(
            LayerFlag(
                FlagType.WARNING,
                "HIGH_MANUAL_RATIO",
                "Over 50% of entries are manual - add supporting documents",
                impact=manual_penalty,
            )
        )

    if metrics["consistency_score"] < 80:
        flags.append(
            LayerFlag(
                FlagType.WARNING,
                "DUPLICATE_ENTRIES",
                f"{ctx.duplicate_entries} duplicate and {ctx.conflicting_entries} conflicting entries detected",
                impact=-10,
            )
        )

    if len(ctx.months) < 3:
        flags.append(
            LayerFlag(FlagType.INFO, "LIMITED_HISTORY", "Less than 3 months of financial history", impact=-5)
        )

    # A full history already meets the continuity target, gaps no longer count
    gaps = _coverage_gaps(ctx.months)
    if gaps >= 2 and metrics["continuity_score"] < 100:
        flags.append(
            LayerFlag(FlagType.WARNING, "COVERAGE_GAPS", f"{gaps} months without any records", impact=-2)
        )

    return flags


def score_evidence_quality(
    records: Sequence[NormalizedRecord], policy: Optional[ScoringPolicy] = None
) -> LayerScore:
    """
    Score how much of the financial picture is backed by documents.

    document_backed_ratio x0.60 + consistency x0.20 + continuity x0.15 +
    metadata x0.05, plus flag impacts, clamped to 0-100.
    """
    policy = policy or scoring_policy

    if not records:
        return fold_layer(
            {metric.name: 0.0 for metric in EVIDENCE_TABLE},
            policy.evidence_weights,
            [LayerFlag(FlagType.CRITICAL, "NO_RECORDS", "No documents uploaded", impact=-100)],
        )

    ctx = EvidenceContext(
        records=records,
        months=active_months(records),
        duplicate_entries=count_duplicate_entries(records),
        conflicting_entries=count_conflicting_entries(records),
        policy=policy,
    )
    metrics = evaluate_metrics(EVIDENCE_TABLE, ctx)
    return fold_layer(metrics, policy.evidence_weights, _evidence_flags(ctx, metrics))
