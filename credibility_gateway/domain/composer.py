"""Credibility score composer - core entry point of the scoring engine"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.anomalies import detect_anomalies
from credibility_gateway.domain.compliance import COMPLIANCE_TABLE, score_compliance_readiness
from credibility_gateway.domain.evidence import EVIDENCE_TABLE, score_evidence_quality
from credibility_gateway.domain.layers import LayerMetric, clamp_score, round_half_up
from credibility_gateway.domain.models import (
    ActionCategory,
    AnomalyFinding,
    Attestation,
    ConfidenceLevel,
    CredibilityScore,
    Effort,
    ImprovementAction,
    LayerScore,
    NormalizedRecord,
    Priority,
    ReconciliationResult,
    Severity,
    TrustTier,
    TrustTierInfo,
)
from credibility_gateway.domain.reconciliation import reconcile_sources
from credibility_gateway.domain.stability import STABILITY_TABLE, score_stability_growth
from credibility_gateway.domain.trust_tier import classify_trust_tier

CATEGORY_PRIORITY = {
    ActionCategory.EVIDENCE: Priority.IMMEDIATE,
    ActionCategory.STABILITY: Priority.SHORT_TERM,
    ActionCategory.COMPLIANCE: Priority.MEDIUM_TERM,
    ActionCategory.VERIFICATION: Priority.MEDIUM_TERM,
}

CATEGORY_EFFORT = {
    ActionCategory.EVIDENCE: Effort.LOW,
    ActionCategory.STABILITY: Effort.HIGH,
    ActionCategory.COMPLIANCE: Effort.MEDIUM,
    ActionCategory.VERIFICATION: Effort.MEDIUM,
}

PRIORITY_ORDER = {Priority.IMMEDIATE: 0, Priority.SHORT_TERM: 1, Priority.MEDIUM_TERM: 2}


def compose_total(
    evidence: LayerScore,
    stability: LayerScore,
    compliance: LayerScore,
    anomalies: Sequence[AnomalyFinding],
    policy: ScoringPolicy,
) -> int:
    """
    Weighted layer sum minus capped anomaly reductions, clamped to 0-100.

    Default weights: evidence 40%, stability 35%, compliance 25%.
    """
    weights = policy.layer_weights
    weighted = (
        evidence.score * weights["evidence_quality"]
        + stability.score * weights["stability_growth"]
        + compliance.score * weights["compliance_readiness"]
    )
    reduction = min(sum(a.confidence_reduction for a in anomalies), policy.anomaly_reduction_cap)
    return clamp_score(weighted - reduction)


def confidence_level(
    record_count: int,
    anomalies: Sequence[AnomalyFinding],
    reconciliation: ReconciliationResult,
) -> ConfidenceLevel:
    """
    high: no anomalies and reconciliation passed.
    medium: only low/medium anomalies and at most minor mismatches (score >= 70).
    low: anything else, including an empty record set.
    """
    if record_count == 0:
        return ConfidenceLevel.LOW
    if not anomalies and reconciliation.passed:
        return ConfidenceLevel.HIGH
    has_high = any(a.severity is Severity.HIGH for a in anomalies)
    if not has_high and reconciliation.reconciliation_score >= 70:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _metric_actions(
    layer: LayerScore,
    table: Sequence[LayerMetric],
    layer_weight: float,
    metric_weights: Dict[str, float],
    category: ActionCategory,
    threshold: float,
) -> Iterable[ImprovementAction]:
    for metric in table:
        value = layer.metrics.get(metric.name, 0.0)
        if value >= threshold or not metric.suggestion:
            continue
        weight = layer_weight * metric_weights[metric.name]
        # Gap between the factor's ceiling and its current contribution, in total-score points
        gain = round_half_up(100 * weight - value * weight)
        if gain <= 0:
            continue
        yield ImprovementAction(
            title=metric.title,
            description=metric.suggestion,
            priority=CATEGORY_PRIORITY[category],
            category=category,
            effort=CATEGORY_EFFORT[category],
            potential_gain=gain,
        )


def _tier_actions(trust_tier: TrustTierInfo, scale: float) -> Iterable[ImprovementAction]:
    if trust_tier.next_tier_requirements is None:
        return
    next_tier = trust_tier.tier + 1
    effort = Effort.HIGH if trust_tier.tier is TrustTier.BANK_SUPPORTED else Effort.MEDIUM
    for req in trust_tier.detailed_requirements:
        if req.completed:
            continue
        gain = round_half_up(req.weight * (100 - req.progress) / 100 * scale)
        yield ImprovementAction(
            title=f"Advance to Tier {next_tier}: {req.label}",
            description=req.description,
            priority=CATEGORY_PRIORITY[ActionCategory.VERIFICATION],
            category=ActionCategory.VERIFICATION,
            effort=effort,
            potential_gain=max(1, gain),
        )


def _anomaly_actions(anomalies: Sequence[AnomalyFinding]) -> Iterable[ImprovementAction]:
    grouped: Dict[str, List[AnomalyFinding]] = defaultdict(list)
    for finding in anomalies:
        grouped[finding.type.value].append(finding)

    for anomaly_type, findings in grouped.items():
        yield ImprovementAction(
            title=f"Resolve {anomaly_type.replace('_', ' ')} finding",
            description=findings[0].recommendation or findings[0].description,
            priority=Priority.IMMEDIATE,
            category=ActionCategory.EVIDENCE,
            effort=Effort.LOW,
            potential_gain=sum(f.confidence_reduction for f in findings),
        )


def build_improvement_actions(
    evidence: LayerScore,
    stability: LayerScore,
    compliance: LayerScore,
    trust_tier: TrustTierInfo,
    anomalies: Sequence[AnomalyFinding],
    policy: Optional[ScoringPolicy] = None,
) -> Tuple[ImprovementAction, ...]:
    """
    Ordered action plan: every suggestion-bearing factor that is below target.

    Sorted by potential gain (the factor's max score minus its current score),
    then priority, then title so the order is deterministic.
    """
    policy = policy or scoring_policy
    weights = policy.layer_weights
    threshold = policy.suggestion_threshold

    actions: List[ImprovementAction] = []
    actions.extend(
        _metric_actions(
            evidence, EVIDENCE_TABLE, weights["evidence_quality"], policy.evidence_weights,
            ActionCategory.EVIDENCE, threshold,
        )
    )
    actions.extend(
        _metric_actions(
            stability, STABILITY_TABLE, weights["stability_growth"], policy.stability_weights,
            ActionCategory.STABILITY, threshold,
        )
    )
    actions.extend(
        _metric_actions(
            compliance, COMPLIANCE_TABLE, weights["compliance_readiness"], policy.compliance_weights,
            ActionCategory.COMPLIANCE, threshold,
        )
    )
    actions.extend(_tier_actions(trust_tier, policy.tier_action_scale))
    actions.extend(_anomaly_actions(anomalies))

    return tuple(sorted(actions, key=lambda a: (-a.potential_gain, PRIORITY_ORDER[a.priority], a.title)))


def compute_credibility_score(
    records: Sequence[NormalizedRecord],
    attestations: Sequence[Attestation] = (),
    as_of: Optional[date] = None,
    policy: Optional[ScoringPolicy] = None,
) -> CredibilityScore:
    """
    Main entry point: full recomputation over one record snapshot.

    Pure and deterministic; never raises on well-typed input. The empty
    record set yields score 0, tier 0, no anomalies and a vacuously passing
    reconciliation.
    """
    policy = policy or scoring_policy
    records = tuple(records)
    attestations = tuple(attestations)

    anomalies = tuple(detect_anomalies(records, as_of, policy))
    reconciliation = reconcile_sources(records, policy)
    evidence = score_evidence_quality(records, policy)
    stability = score_stability_growth(records, policy)
    compliance = score_compliance_readiness(records, as_of, policy)
    trust_tier = classify_trust_tier(records, evidence, reconciliation, anomalies, attestations, policy)

    return CredibilityScore(
        total_score=compose_total(evidence, stability, compliance, anomalies, policy),
        confidence_level=confidence_level(len(records), anomalies, reconciliation),
        trust_tier=trust_tier,
        evidence_quality=evidence,
        stability_growth=stability,
        compliance_readiness=compliance,
        anomalies=anomalies,
        cross_source_reconciliation=reconciliation,
        data_points=len(records),
        improvement_actions=build_improvement_actions(evidence, stability, compliance, trust_tier, anomalies, policy),
    )
