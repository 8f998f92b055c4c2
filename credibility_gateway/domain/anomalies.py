"""
Anomaly detection over a business's normalized records.

Each detector is an independent pure function of the record snapshot;
detect_anomalies runs them in a fixed order so findings are reproducible.
"""

import statistics
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Tuple, TypeVar

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.aggregates import (
    FinancialTotals,
    MonthlyFigures,
    build_monthly_figures,
    compute_totals,
)
from credibility_gateway.domain.layers import ratio
from credibility_gateway.domain.models import (
    AnomalyFinding,
    AnomalyType,
    Direction,
    Invoice,
    NormalizedRecord,
    Receipt,
    Severity,
    Transaction,
)
from credibility_gateway.utils.date_utils import month_key
from credibility_gateway.utils.formatting import format_amount, format_percent

T = TypeVar("T")

# Confidence reduction per severity, in total-score points
SPIKE_REDUCTION = {Severity.MEDIUM: 8, Severity.HIGH: 15}
DUPLICATE_REDUCTION = {Severity.MEDIUM: 5, Severity.HIGH: 10}


@dataclass(frozen=True)
class DetectionContext:
    records: Sequence[NormalizedRecord]
    monthly: Sequence[MonthlyFigures]
    totals: FinancialTotals
    as_of: Optional[date]
    policy: ScoringPolicy

    @property
    def transactions(self) -> List[Transaction]:
        return [r for r in self.records if isinstance(r, Transaction) and r.amount_cents is not None]


def find_duplicate_clusters(
    items: Sequence[T],
    key: Callable[[T], Hashable],
    when: Callable[[T], date],
    min_count: int,
    window_days: int,
) -> List[List[T]]:
    """
    Group items sharing a key whose dates lie within window_days of the first.

    Clusters smaller than min_count are dropped. Used both for flagging
    duplicate amounts and for scoring duplicate entries.
    """
    groups: Dict[Hashable, List[T]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)

    clusters = []
    for group_key in sorted(groups, key=repr):
        members = sorted(groups[group_key], key=when)
        current = [members[0]]
        for item in members[1:]:
            if (when(item) - when(current[0])).days <= window_days:
                current.append(item)
            else:
                if len(current) >= min_count:
                    clusters.append(current)
                current = [item]
        if len(current) >= min_count:
            clusters.append(current)
    return clusters


def detect_amount_spikes(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Transactions above mean + k*stddev of their trailing window"""
    policy = ctx.policy
    findings = []

    for direction in Direction:
        txns = sorted(
            (t for t in ctx.transactions if t.direction is direction),
            key=lambda t: (t.date, t.record_id),
        )
        amounts = [t.amount_cents for t in txns]

        for i, txn in enumerate(txns):
            window = amounts[max(0, i - policy.spike_window):i]
            if len(window) < policy.spike_min_window:
                continue
            mean = statistics.fmean(window)
            if mean <= 0:
                continue
            stddev = statistics.pstdev(window)
            amount = txn.amount_cents
            if amount <= mean + policy.spike_k * stddev or amount < 2 * mean:
                continue

            magnitude = amount / mean
            severity = Severity.HIGH if magnitude >= policy.spike_high_ratio else Severity.MEDIUM
            findings.append(
                AnomalyFinding(
                    type=AnomalyType.AMOUNT_SPIKE,
                    severity=severity,
                    confidence_reduction=SPIKE_REDUCTION[severity],
                    description=f"{direction.value.capitalize()} of {format_amount(amount)} is "
                    f"{magnitude:.1f}x the trailing average",
                    data_points=(
                        f"{txn.record_id} on {txn.date.isoformat()}: {format_amount(amount)}",
                        f"Trailing mean: {format_amount(mean)}",
                        f"Trailing stddev: {format_amount(stddev)}",
                    ),
                    recommendation="Attach the contract or invoice behind this transaction",
                    detection_method="Trailing-window deviation analysis",
                )
            )

    return findings


def detect_revenue_spike(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Latest month revenue far above the average of earlier months"""
    if len(ctx.monthly) < 3:
        return []

    latest = ctx.monthly[-1]
    previous = statistics.fmean(m.revenue_cents for m in ctx.monthly[:-1])
    if previous <= 0 or latest.revenue_cents <= previous * ctx.policy.revenue_spike_multiplier:
        return []

    return [
        AnomalyFinding(
            type=AnomalyType.REVENUE_SPIKE,
            severity=Severity.HIGH,
            confidence_reduction=15,
            description="Sudden revenue spike in the latest month - may indicate inflated figures",
            data_points=(
                f"{latest.month}: {format_amount(latest.revenue_cents)}",
                f"Prior average: {format_amount(previous)}",
            ),
            recommendation="Provide supporting documents (contracts, invoices) for the revenue increase",
            detection_method="Monthly revenue deviation analysis",
        )
    ]


def detect_round_number_bias(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Share of amounts that are exact multiples of a round unit"""
    policy = ctx.policy
    amounts = [t.amount_cents for t in ctx.transactions]
    amounts += [
        r.total_cents
        for r in ctx.records
        if isinstance(r, (Invoice, Receipt)) and r.total_cents is not None
    ]

    # Insufficient data is not a finding
    if len(amounts) < policy.round_min_sample:
        return []

    round_count = sum(1 for a in amounts if a != 0 and a % policy.round_unit_cents == 0)
    share = round_count / len(amounts)
    if share <= policy.round_threshold:
        return []

    return [
        AnomalyFinding(
            type=AnomalyType.ROUND_NUMBER_BIAS,
            severity=Severity.MEDIUM,
            confidence_reduction=10,
            description="Suspiciously many round amounts - typical of fabricated entries",
            data_points=(
                f"{round_count} of {len(amounts)} amounts are multiples of "
                f"{format_amount(policy.round_unit_cents)}",
                f"Share: {format_percent(share)}",
            ),
            recommendation="Upload original invoices/receipts with actual transaction amounts",
            detection_method="Round number frequency analysis",
        )
    ]


def detect_duplicate_amounts(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Sets of transactions with identical amount on near-identical dates"""
    policy = ctx.policy
    clusters = find_duplicate_clusters(
        sorted(ctx.transactions, key=lambda t: (t.date, t.record_id)),
        key=lambda t: (t.direction.value, t.amount_cents),
        when=lambda t: t.date,
        min_count=policy.duplicate_min_count,
        window_days=policy.duplicate_window_days,
    )

    findings = []
    for cluster in clusters:
        severity = Severity.HIGH if len(cluster) >= 2 * policy.duplicate_min_count else Severity.MEDIUM
        amount = cluster[0].amount_cents
        findings.append(
            AnomalyFinding(
                type=AnomalyType.DUPLICATE_AMOUNT,
                severity=severity,
                confidence_reduction=DUPLICATE_REDUCTION[severity],
                description=f"{len(cluster)} transactions of {format_amount(amount)} within "
                f"{policy.duplicate_window_days} days - possible duplicated entries",
                data_points=tuple(f"{t.record_id} on {t.date.isoformat()}" for t in cluster),
                recommendation="Verify these are legitimate recurring transactions",
                detection_method="Duplicate amount clustering",
            )
        )
    return findings


def detect_unusual_frequency(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Months whose record volume is far above the median month"""
    counts = Counter(month_key(r.date) for r in ctx.records)
    if len(counts) < 3:
        return []

    median = statistics.median(counts.values())
    busy = sorted(m for m, n in counts.items() if n > median * ctx.policy.frequency_multiplier)
    if not busy:
        return []

    return [
        AnomalyFinding(
            type=AnomalyType.UNUSUAL_FREQUENCY,
            severity=Severity.LOW,
            confidence_reduction=5,
            description="Record volume in some months is far above the usual cadence",
            data_points=tuple(f"{m}: {counts[m]} records (median {median:g})" for m in busy),
            recommendation="Explain bulk entries or split them across the periods they belong to",
            detection_method="Monthly volume analysis",
        )
    ]


def detect_future_dated(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Records dated after the as-of date"""
    if ctx.as_of is None:
        return []

    future = sorted((r for r in ctx.records if r.date > ctx.as_of), key=lambda r: (r.date, r.record_id))
    if not future:
        return []

    return [
        AnomalyFinding(
            type=AnomalyType.FUTURE_DATED,
            severity=Severity.HIGH,
            confidence_reduction=25,
            description="Records dated in the future - clear indication of fabrication",
            data_points=tuple(f"{r.record_id}: dated {r.date.isoformat()}" for r in future),
            recommendation="Remove or correct future-dated records immediately",
            detection_method="Temporal validation",
        )
    ]


def detect_month_end_clustering(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Invoices bunched on the last days of the month"""
    policy = ctx.policy
    invoices = [r for r in ctx.records if isinstance(r, Invoice)]
    if len(invoices) < policy.month_end_min_invoices:
        return []

    month_end = sum(1 for r in invoices if r.date.day >= 28)
    if month_end <= len(invoices) * policy.month_end_share:
        return []

    return [
        AnomalyFinding(
            type=AnomalyType.MONTH_END_CLUSTERING,
            severity=Severity.LOW,
            confidence_reduction=5,
            description="Most invoices dated at month-end - unusual for normal business operations",
            data_points=(f"{month_end} of {len(invoices)} invoices dated on or after the 28th",),
            recommendation="Ensure invoices reflect actual transaction dates",
            detection_method="Date distribution analysis",
        )
    ]


def detect_margin_pattern(ctx: DetectionContext) -> List[AnomalyFinding]:
    """Expense-to-revenue ratios outside what operating businesses show"""
    policy = ctx.policy
    revenue, expenses = ctx.totals.revenue_cents, ctx.totals.expenses_cents
    if revenue <= policy.margin_revenue_floor_cents or expenses <= 0:
        return []

    expense_ratio = ratio(expenses, revenue)
    if expense_ratio < policy.low_expense_ratio:
        return [
            AnomalyFinding(
                type=AnomalyType.MARGIN_PATTERN,
                severity=Severity.MEDIUM,
                confidence_reduction=8,
                description="Unusually high profit margins - may indicate underreported expenses",
                data_points=(f"Expense ratio: {format_percent(expense_ratio)}", "Expected: 40-80% for most businesses"),
                recommendation="Upload expense receipts to verify expense reporting",
                detection_method="Financial ratio analysis",
            )
        ]
    if expense_ratio > policy.high_expense_ratio:
        return [
            AnomalyFinding(
                type=AnomalyType.MARGIN_PATTERN,
                severity=Severity.HIGH,
                confidence_reduction=12,
                description="Expenses far exceed revenue - unusual unless in an investment phase",
                data_points=(f"Expenses: {format_amount(expenses)}", f"Revenue: {format_amount(revenue)}"),
                recommendation="Provide documentation for the expense-to-revenue imbalance",
                detection_method="Financial ratio analysis",
            )
        ]
    return []


DETECTORS: Tuple[Callable[[DetectionContext], List[AnomalyFinding]], ...] = (
    detect_amount_spikes,
    detect_revenue_spike,
    detect_round_number_bias,
    detect_duplicate_amounts,
    detect_unusual_frequency,
    detect_future_dated,
    detect_month_end_clustering,
    detect_margin_pattern,
)


def detect_anomalies(
    records: Sequence[NormalizedRecord],
    as_of: Optional[date] = None,
    policy: Optional[ScoringPolicy] = None,
) -> List[AnomalyFinding]:
    """
    Run every detector over the record set.

    Future-dated records are only checked against an explicit as_of date.
    """
    policy = policy or scoring_policy
    monthly = build_monthly_figures(records)
    ctx = DetectionContext(
        records=records,
        monthly=monthly,
        totals=compute_totals(records, monthly),
        as_of=as_of,
        policy=policy,
    )

    findings: List[AnomalyFinding] = []
    for detector in DETECTORS:
        findings.extend(detector(ctx))
    return findings
