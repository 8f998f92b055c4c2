"""Monthly and total aggregates derived from normalized records"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Set

from credibility_gateway.domain.models import (
    Direction,
    Invoice,
    NormalizedRecord,
    ProfitLoss,
    Receipt,
    Transaction,
)
from credibility_gateway.utils.date_utils import month_key


@dataclass(frozen=True)
class MonthlyFigures:
    month: str
    revenue_cents: int
    expenses_cents: int

    @property
    def net_cents(self) -> int:
        return self.revenue_cents - self.expenses_cents


@dataclass(frozen=True)
class FinancialTotals:
    revenue_cents: int
    expenses_cents: int
    vat_collected_cents: int


# Most authoritative source first
REVENUE_SOURCES = ("bank_credits", "pl_revenue", "invoices", "manual_credits")
EXPENSE_SOURCES = ("bank_debits", "pl_expenses", "receipts", "manual_debits")


def _sources_by_month(records: Sequence[NormalizedRecord]) -> Dict[str, Dict[str, List[int]]]:
    buckets: Dict[str, Dict[str, List[int]]] = defaultdict(lambda: defaultdict(list))

    for record in records:
        month = month_key(record.date)
        if isinstance(record, Transaction) and record.amount_cents is not None:
            prefix = "bank" if record.bank_backed else "manual"
            suffix = "credits" if record.direction is Direction.CREDIT else "debits"
            buckets[month][f"{prefix}_{suffix}"].append(record.amount_cents)
        elif isinstance(record, Invoice) and record.total_cents is not None:
            buckets[month]["invoices"].append(record.total_cents)
        elif isinstance(record, Receipt) and record.total_cents is not None:
            buckets[month]["receipts"].append(record.total_cents)
        elif isinstance(record, ProfitLoss):
            if record.revenue_cents is not None:
                buckets[month]["pl_revenue"].append(record.revenue_cents)
            if record.expenses_cents is not None:
                buckets[month]["pl_expenses"].append(record.expenses_cents)

    return buckets


def _first_available(sources: Dict[str, List[int]], priority: Sequence[str]) -> Optional[int]:
    for name in priority:
        if sources.get(name):
            return sum(sources[name])
    return None


def build_monthly_figures(records: Sequence[NormalizedRecord]) -> List[MonthlyFigures]:
    """
    Revenue and expenses per calendar month, oldest first.

    Each month takes its figures from the most authoritative source present
    (bank statement > P&L > invoices/receipts > manual ledger lines) so a paid
    invoice and the deposit that settled it are not counted twice. Months
    with neither known revenue nor known expenses are omitted.
    """
    figures = []
    for month, sources in sorted(_sources_by_month(records).items()):
        revenue = _first_available(sources, REVENUE_SOURCES)
        expenses = _first_available(sources, EXPENSE_SOURCES)
        if revenue is None and expenses is None:
            continue
        figures.append(MonthlyFigures(month, revenue or 0, expenses or 0))
    return figures


def compute_totals(records: Sequence[NormalizedRecord], monthly: Sequence[MonthlyFigures]) -> FinancialTotals:
    vat_collected = sum(
        r.vat_cents for r in records if isinstance(r, Invoice) and r.vat_cents is not None
    )
    return FinancialTotals(
        revenue_cents=sum(m.revenue_cents for m in monthly),
        expenses_cents=sum(m.expenses_cents for m in monthly),
        vat_collected_cents=vat_collected,
    )


def active_months(records: Sequence[NormalizedRecord]) -> Set[str]:
    return {month_key(r.date) for r in records}


def reference_date(records: Sequence[NormalizedRecord], as_of: Optional[date] = None) -> Optional[date]:
    """Explicit as-of date, else the latest record date (None when empty)"""
    if as_of is not None:
        return as_of
    return max((r.date for r in records), default=None)
