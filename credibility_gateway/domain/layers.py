"""Declarative weighted-sum layers shared by the three scorers"""

import math
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterable, Sequence, TypeVar

from credibility_gateway.domain.models import LayerFlag, LayerScore

C = TypeVar("C")


@dataclass(frozen=True)
class LayerMetric(Generic[C]):
    """One row of a layer table: metric name and how to extract it (0-100)"""

    name: str
    extract: Callable[[C], float]
    title: str = ""
    suggestion: str = ""


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float, low: int = 0, high: int = 100) -> int:
    """Round to an integer score and clamp to [low, high]"""
    return max(low, min(high, round_half_up(value)))


def bounded(value: float) -> float:
    """Clamp a sub-metric to 0-100 and round to 2 decimals"""
    return round(max(0.0, min(100.0, value)), 2)


def ratio(numerator: float, denominator: float) -> float:
    """Division with 0.0 when the denominator is 0"""
    return numerator / denominator if denominator else 0.0


def evaluate_metrics(table: Sequence[LayerMetric[C]], context: C) -> Dict[str, float]:
    return {metric.name: bounded(metric.extract(context)) for metric in table}


def fold_layer(
    metrics: Dict[str, float],
    weights: Dict[str, float],
    flags: Iterable[LayerFlag] = (),
) -> LayerScore:
    """
    Weighted sum of the sub-metrics plus signed flag impacts, clamped to 0-100.

    Penalty flags carry negative impacts, positive flags positive ones.
    """
    flags = tuple(flags)
    weighted = sum(metrics[name] * weight for name, weight in weights.items())
    adjustment = sum(flag.impact for flag in flags)
    return LayerScore(score=clamp_score(weighted + adjustment), metrics=dict(metrics), flags=flags)
