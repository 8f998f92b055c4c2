"""Layer B: stability & growth of monthly revenue, expenses and cashflow"""

import statistics
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.aggregates import MonthlyFigures, build_monthly_figures
from credibility_gateway.domain.layers import LayerMetric, evaluate_metrics, fold_layer, ratio
from credibility_gateway.domain.models import FlagType, LayerFlag, LayerScore, NormalizedRecord
from credibility_gateway.utils.date_utils import month_start


def trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope per period; 0.0 with fewer than 2 points"""
    if len(values) < 2:
        return 0.0
    return statistics.linear_regression(list(range(len(values))), list(values)).slope


@dataclass(frozen=True)
class StabilityContext:
    monthly: Sequence[MonthlyFigures]
    policy: ScoringPolicy

    @property
    def revenues(self) -> List[int]:
        return [m.revenue_cents for m in self.monthly]

    @property
    def mean_revenue(self) -> float:
        return statistics.fmean(self.revenues) if self.monthly else 0.0

    @property
    def coefficient_of_variation(self) -> Optional[float]:
        if len(self.monthly) < 2:
            return None
        mean = self.mean_revenue
        return statistics.pstdev(self.revenues) / mean if mean > 0 else 1.0

    @property
    def positive_share(self) -> float:
        return ratio(sum(1 for m in self.monthly if m.net_cents >= 0), len(self.monthly))

    @property
    def expense_ratio(self) -> float:
        revenue = sum(self.revenues)
        expenses = sum(m.expenses_cents for m in self.monthly)
        return expenses / revenue if revenue > 0 else 1.0

    @property
    def expense_ratio_slope(self) -> float:
        ratios = [m.expenses_cents / m.revenue_cents for m in self.monthly if m.revenue_cents > 0]
        return trend_slope(ratios) if len(ratios) >= 3 else 0.0

    @property
    def relative_growth(self) -> Optional[float]:
        if len(self.monthly) < 3 or self.mean_revenue <= 0:
            return None
        return trend_slope(self.revenues) / self.mean_revenue

    @property
    def dips(self) -> List[MonthlyFigures]:
        if len(self.monthly) < 3 or self.mean_revenue <= 0:
            return []
        floor = self.mean_revenue * self.policy.dip_threshold
        return [m for m in self.monthly if m.revenue_cents < floor]

    def is_seasonal(self, figures: MonthlyFigures) -> bool:
        return month_start(figures.month).month in self.policy.seasonal_months


def _revenue_stability(ctx: StabilityContext) -> float:
    cv = ctx.coefficient_of_variation
    return 50.0 if cv is None else 100 - cv * 100


def _cashflow_health(ctx: StabilityContext) -> float:
    target = ctx.policy.cashflow_positive_share
    share = ctx.positive_share
    return 100.0 if share >= target else share / target * 100


def _expense_discipline(ctx: StabilityContext) -> float:
    # Rising expense ratio is penalized on top of the level
    return 100 - ctx.expense_ratio * 80 - max(0.0, ctx.expense_ratio_slope) * 200


def _growth_trend(ctx: StabilityContext) -> float:
    rel = ctx.relative_growth
    if rel is None:
        return 40.0
    if rel <= 0:
        return 40 + rel * 400
    return 40 + rel * 600


def _seasonality_handling(ctx: StabilityContext) -> float:
    if len(ctx.monthly) < 3 or ctx.mean_revenue <= 0:
        return 50.0
    dips = ctx.dips
    if not dips:
        return 70.0
    explained = sum(1 for m in dips if ctx.is_seasonal(m))
    return 40 + 60 * explained / len(dips)


STABILITY_TABLE: Tuple[LayerMetric[StabilityContext], ...] = (
    LayerMetric(
        "revenue_stability",
        _revenue_stability,
        title="Smooth Revenue Volatility",
        suggestion="Diversify customers or add recurring contracts to even out monthly revenue",
    ),
    LayerMetric(
        "cashflow_health",
        _cashflow_health,
        title="Improve Cashflow Position",
        suggestion="Focus on collecting receivables and managing expenses",
    ),
    LayerMetric(
        "expense_discipline",
        _expense_discipline,
        title="Control Operating Expenses",
        suggestion="Bring the expense-to-revenue ratio down and keep it from rising",
    ),
    LayerMetric(
        "growth_trend",
        _growth_trend,
        title="Build a Growth Track Record",
        suggestion="Sustain month-over-month revenue growth and document new contracts",
    ),
    LayerMetric(
        "seasonality_handling",
        _seasonality_handling,
        title="Explain Seasonal Dips",
        suggestion="Plan for festival-season slowdowns and annotate unexplained revenue dips",
    ),
)


def _revenue_flag(ctx: StabilityContext) -> Optional[LayerFlag]:
    cv = ctx.coefficient_of_variation
    if cv is None:
        return LayerFlag(FlagType.INFO, "INSUFFICIENT_HISTORY", "Fewer than 2 months of revenue data")
    if cv > 0.5:
        return LayerFlag(
            FlagType.WARNING, "HIGH_REVENUE_VOLATILITY", "Revenue shows high month-to-month volatility", impact=-10
        )
    if cv < 0.15:
        return LayerFlag(FlagType.POSITIVE, "STABLE_REVENUE", "Revenue is consistent month to month", impact=5)
    return None


def _cashflow_flag(ctx: StabilityContext) -> Optional[LayerFlag]:
    net = sum(m.net_cents for m in ctx.monthly)
    revenue = sum(ctx.revenues)
    if net < 0:
        return LayerFlag(FlagType.CRITICAL, "NEGATIVE_CASHFLOW", "Business is operating at a loss", impact=-25)
    if ratio(net, revenue) > 0.2:
        return LayerFlag(FlagType.POSITIVE, "HEALTHY_MARGINS", "Healthy profit margins detected", impact=5)
    return None


def _expense_flag(ctx: StabilityContext) -> Optional[LayerFlag]:
    if ctx.expense_ratio > 0.9:
        return LayerFlag(FlagType.WARNING, "HIGH_EXPENSE_RATIO", "Expenses exceed 90% of revenue", impact=-10)
    if ctx.expense_ratio_slope > 0.02:
        return LayerFlag(
            FlagType.WARNING, "RISING_EXPENSE_RATIO", "Expense-to-revenue ratio is trending up", impact=-5
        )
    return None


def _growth_flag(ctx: StabilityContext) -> Optional[LayerFlag]:
    rel = ctx.relative_growth
    if rel is None:
        return None
    if rel > 0.05:
        return LayerFlag(FlagType.POSITIVE, "STRONG_GROWTH", "Strong revenue growth trend detected", impact=10)
    if rel < -0.05:
        return LayerFlag(FlagType.WARNING, "DECLINING_REVENUE", "Revenue shows declining trend", impact=-15)
    return None


def _seasonality_flag(ctx: StabilityContext) -> Optional[LayerFlag]:
    dips = ctx.dips
    unexplained = [m.month for m in dips if not ctx.is_seasonal(m)]
    if len(unexplained) >= 2:
        return LayerFlag(
            FlagType.WARNING,
            "UNEXPLAINED_VOLATILITY",
            f"Revenue dips outside known seasonal months: {', '.join(unexplained)}",
            impact=-5,
        )
    if dips and not unexplained:
        return LayerFlag(FlagType.INFO, "SEASONAL_PATTERN", "Revenue dips align with the festival season")
    return None


FLAG_RULES = (_revenue_flag, _cashflow_flag, _expense_flag, _growth_flag, _seasonality_flag)


def score_monthly_stability(
    monthly: Sequence[MonthlyFigures], policy: Optional[ScoringPolicy] = None
) -> LayerScore:
    policy = policy or scoring_policy

    if not monthly:
        return fold_layer(
            {metric.name: 0.0 for metric in STABILITY_TABLE},
            policy.stability_weights,
            [LayerFlag(FlagType.WARNING, "NO_MONTHLY_DATA", "No monthly data available")],
        )

    ctx = StabilityContext(monthly=monthly, policy=policy)
    metrics = evaluate_metrics(STABILITY_TABLE, ctx)
    flags = [flag for flag in (rule(ctx) for rule in FLAG_RULES) if flag is not None]
    return fold_layer(metrics, policy.stability_weights, flags)


def score_stability_growth(
    records: Sequence[NormalizedRecord], policy: Optional[ScoringPolicy] = None
) -> LayerScore:
    """
    Score revenue stability, cashflow, expense discipline, growth and seasonality.

    revenue_stability x0.25 + cashflow_health x0.25 + expense_discipline x0.20 +
    growth_trend x0.20 + seasonality_handling x0.10, plus flag impacts.
    """
    return score_monthly_stability(build_monthly_figures(records), policy)
