"""Cross-source reconciliation: documents vs bank statement totals"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.layers import clamp_score
from credibility_gateway.domain.models import (
    Direction,
    Invoice,
    NormalizedRecord,
    ReconciliationGroup,
    ReconciliationResult,
    Receipt,
    Transaction,
)
from credibility_gateway.utils.date_utils import month_key
from credibility_gateway.utils.formatting import format_amount, format_percent


@dataclass(frozen=True)
class PairableGroup:
    """Two independently sourced totals expected to agree"""

    name: str
    label_a: str
    label_b: str
    side_a: Callable[[NormalizedRecord], Optional[int]]
    side_b: Callable[[NormalizedRecord], Optional[int]]


def _invoice_total(record: NormalizedRecord) -> Optional[int]:
    return record.total_cents if isinstance(record, Invoice) else None


def _receipt_total(record: NormalizedRecord) -> Optional[int]:
    return record.total_cents if isinstance(record, Receipt) else None


def _bank_amount(direction: Direction) -> Callable[[NormalizedRecord], Optional[int]]:
    def extract(record: NormalizedRecord) -> Optional[int]:
        if isinstance(record, Transaction) and record.bank_backed and record.direction is direction:
            return record.amount_cents
        return None

    return extract


GROUPS = (
    PairableGroup("invoices_vs_deposits", "invoice total", "bank deposits", _invoice_total, _bank_amount(Direction.CREDIT)),
    PairableGroup("receipts_vs_payments", "receipt total", "bank payments", _receipt_total, _bank_amount(Direction.DEBIT)),
)


def _totals_by_month(
    records: Sequence[NormalizedRecord], extract: Callable[[NormalizedRecord], Optional[int]]
) -> Dict[str, int]:
    totals: Dict[str, int] = defaultdict(int)
    for record in records:
        amount = extract(record)
        # Unknown amounts are excluded, not counted as zero
        if amount is not None:
            totals[month_key(record.date)] += amount
    return dict(totals)


def reconcile_group(
    name: str,
    label_a: str,
    label_b: str,
    a_by_month: Dict[str, int],
    b_by_month: Dict[str, int],
    tolerance: float,
) -> Tuple[Optional[ReconciliationGroup], Optional[str]]:
    """
    Compare two sources over the months both of them cover.

    Returns (None, None) when neither side has records. A side with no
    records is a mismatch with delta 1.0: absence of corroboration is itself
    a signal.
    """
    if not a_by_month and not b_by_month:
        return None, None

    if not a_by_month or not b_by_month:
        total_a, total_b = sum(a_by_month.values()), sum(b_by_month.values())
        present, missing = (label_a, label_b) if a_by_month else (label_b, label_a)
        amount = total_a or total_b
        group = ReconciliationGroup(name, label_a, label_b, total_a, total_b, 1.0, False)
        return group, f"No corroborating {missing} record for {present} ({format_amount(amount)})"

    shared = sorted(a_by_month.keys() & b_by_month.keys())
    if not shared:
        total_a, total_b = sum(a_by_month.values()), sum(b_by_month.values())
        group = ReconciliationGroup(name, label_a, label_b, total_a, total_b, 1.0, False)
        return group, f"No overlapping period between {label_a} and {label_b}"

    total_a = sum(a_by_month[m] for m in shared)
    total_b = sum(b_by_month[m] for m in shared)
    delta = abs(total_a - total_b) / max(total_a, total_b, 1)
    matched = delta < tolerance
    group = ReconciliationGroup(name, label_a, label_b, total_a, total_b, round(delta, 4), matched)
    if matched:
        return group, None

    period = shared[0] if len(shared) == 1 else f"{shared[0]}..{shared[-1]}"
    mismatch = (
        f"{label_a.capitalize()} ({format_amount(total_a)}) differs from {label_b} "
        f"({format_amount(total_b)}) by {format_percent(delta)} over {period}"
    )
    return group, mismatch


def reconcile_sources(
    records: Sequence[NormalizedRecord], policy: Optional[ScoringPolicy] = None
) -> ReconciliationResult:
    """
    Cross-check invoices against bank deposits and receipts against bank payments.

    reconciliation_score = 100 - sum(delta * importance * 100), clamped. An
    empty record set passes vacuously: no data to reconcile is not a red flag.
    """
    policy = policy or scoring_policy
    mismatches: List[str] = []
    groups: List[ReconciliationGroup] = []
    penalty = 0.0

    for pair in GROUPS:
        group, mismatch = reconcile_group(
            pair.name,
            pair.label_a,
            pair.label_b,
            _totals_by_month(records, pair.side_a),
            _totals_by_month(records, pair.side_b),
            policy.reconciliation_tolerance,
        )
        if group is None:
            continue
        groups.append(group)
        penalty += group.delta * policy.reconciliation_importance[pair.name] * 100
        if mismatch:
            mismatches.append(mismatch)

    return ReconciliationResult(
        passed=not mismatches,
        mismatches=tuple(mismatches),
        reconciliation_score=clamp_score(100 - penalty),
        groups=tuple(groups),
    )
