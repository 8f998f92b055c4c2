"""
Trust tier classification.

Tiers are ordinal: a business sits at the highest tier N for which every
requirement of tiers 1..N holds. The tier is recomputed from current evidence
on every run, so a demotion is just a different result.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.domain.layers import round_half_up
from credibility_gateway.domain.models import (
    AnomalyFinding,
    Attestation,
    AttestationStatus,
    LayerScore,
    NormalizedRecord,
    ReconciliationResult,
    Severity,
    TierRequirement,
    Transaction,
    TrustTier,
    TrustTierInfo,
    VerificationStrength,
)


@dataclass(frozen=True)
class TierContext:
    records: Sequence[NormalizedRecord]
    attestations: Sequence[Attestation]
    evidence: LayerScore
    reconciliation: ReconciliationResult
    anomalies: Sequence[AnomalyFinding]
    policy: ScoringPolicy

    @property
    def clean_documents(self) -> int:
        return sum(1 for r in self.records if r.document_backed and r.parsed_cleanly)

    @property
    def bank_transactions(self) -> int:
        return sum(1 for r in self.records if isinstance(r, Transaction) and r.bank_backed)

    @property
    def active_attestations(self) -> List[Attestation]:
        return [a for a in self.attestations if a.status is AttestationStatus.ACTIVE]

    @property
    def antifraud_score(self) -> int:
        high = sum(1 for a in self.anomalies if a.severity is Severity.HIGH)
        medium = sum(1 for a in self.anomalies if a.severity is Severity.MEDIUM)
        return max(0, 100 - high * 15 - medium * 5)


@dataclass(frozen=True)
class TierRule:
    """A requirement predicate returning (completed, progress 0-100)"""

    id: str
    label: str
    description: str
    weight: int
    check: Callable[[TierContext], Tuple[bool, float]]

    def evaluate(self, ctx: TierContext) -> TierRequirement:
        completed, progress = self.check(ctx)
        progress = 100 if completed else max(0, min(100, round_half_up(progress)))
        return TierRequirement(self.id, self.label, self.description, completed, progress, self.weight)


def _threshold(value: float, target: float) -> Tuple[bool, float]:
    return value >= target, value / target * 100 if target else 100.0


def _clean_documents(ctx: TierContext) -> Tuple[bool, float]:
    return ctx.clean_documents >= 1, min(100, ctx.clean_documents * 100)


def _document_ratio(ctx: TierContext) -> Tuple[bool, float]:
    return _threshold(ctx.evidence.metrics.get("document_backed_ratio", 0.0), ctx.policy.tier1_document_ratio)


def _evidence_40(ctx: TierContext) -> Tuple[bool, float]:
    return _threshold(ctx.evidence.score, ctx.policy.tier1_evidence_score)


def _bank_statement(ctx: TierContext) -> Tuple[bool, float]:
    return ctx.bank_transactions >= 1, 100 if ctx.bank_transactions else 0


def _reconciliation(ctx: TierContext) -> Tuple[bool, float]:
    return ctx.reconciliation.passed, ctx.reconciliation.reconciliation_score


def _evidence_60(ctx: TierContext) -> Tuple[bool, float]:
    return _threshold(ctx.evidence.score, ctx.policy.tier2_evidence_score)


def _clean_antifraud(ctx: TierContext) -> Tuple[bool, float]:
    clean = not any(a.severity is Severity.HIGH for a in ctx.anomalies)
    return clean, ctx.antifraud_score


def _verification_request(ctx: TierContext) -> Tuple[bool, float]:
    done = bool(ctx.active_attestations)
    return done, 100 if done else 0


def _human_attestation(ctx: TierContext) -> Tuple[bool, float]:
    done = any(a.human_reviewed for a in ctx.active_attestations)
    return done, 100 if done else 0


def _blockchain_anchor(ctx: TierContext) -> Tuple[bool, float]:
    done = any(a.anchor_tx_hash for a in ctx.active_attestations)
    return done, 100 if done else 0


TIER_RULES: Dict[TrustTier, Tuple[TierRule, ...]] = {
    TrustTier.SELF_DECLARED: (
        TierRule(
            "profile_registered",
            "Business profile registered",
            "Register and create your business profile",
            100,
            lambda ctx: (True, 100),
        ),
    ),
    TrustTier.DOCUMENT_BACKED: (
        TierRule(
            "first_document",
            "Upload supporting documents (invoices, receipts)",
            "Add at least one cleanly processed document",
            30,
            _clean_documents,
        ),
        TierRule(
            "document_ratio",
            "Back at least half of entries with documents",
            "Document-backed entries must make up 50%+ of records",
            40,
            _document_ratio,
        ),
        TierRule(
            "evidence_score_40",
            "Achieve 40%+ evidence quality score",
            "Achieve minimum evidence quality score",
            30,
            _evidence_40,
        ),
    ),
    TrustTier.BANK_SUPPORTED: (
        TierRule(
            "bank_statement",
            "Upload bank statements for corroboration",
            "Upload at least one bank statement",
            35,
            _bank_statement,
        ),
        TierRule(
            "reconciliation_pass",
            "Pass cross-source reconciliation",
            "Invoices and receipts must agree with bank deposits and payments",
            40,
            _reconciliation,
        ),
        TierRule(
            "evidence_score_60",
            "Achieve 60%+ evidence quality score",
            "Achieve higher evidence quality score",
            25,
            _evidence_60,
        ),
    ),
    TrustTier.VERIFIED: (
        TierRule(
            "clean_antifraud",
            "Pass all anti-fraud checks",
            "No high-severity anomalies in your records",
            30,
            _clean_antifraud,
        ),
        TierRule(
            "verification_request",
            "Request verification from a lender or partner",
            "Issue a credential to a lender or partner for verification",
            25,
            _verification_request,
        ),
        TierRule(
            "human_attestation",
            "Obtain verifier attestation",
            "A verifier must review and attest to your data",
            25,
            _human_attestation,
        ),
        TierRule(
            "blockchain_anchor",
            "Complete blockchain attestation",
            "Verification anchored on blockchain for tamper-proof record",
            20,
            _blockchain_anchor,
        ),
    ),
}

TIER_LABELS: Dict[TrustTier, Tuple[str, str]] = {
    TrustTier.SELF_DECLARED: ("Self-Declared", "Manual entries only, lowest credibility weight"),
    TrustTier.DOCUMENT_BACKED: ("Document-Backed", "Evidence supported by invoices, receipts, and documents"),
    TrustTier.BANK_SUPPORTED: ("Bank-Supported", "Evidence corroborated by bank statements"),
    TrustTier.VERIFIED: ("Verified", "Human/lender attestation with blockchain verification"),
}


def tier_progress(requirements: Sequence[TierRequirement]) -> int:
    total = sum(r.weight for r in requirements)
    done = sum(r.progress / 100 * r.weight for r in requirements)
    return round_half_up(done / total * 100) if total else 100


def verification_strength(tier: TrustTier, antifraud: int) -> VerificationStrength:
    if tier is TrustTier.VERIFIED:
        return VerificationStrength.VERIFIED
    if tier is TrustTier.BANK_SUPPORTED and antifraud >= 80:
        return VerificationStrength.STRONG
    if tier >= TrustTier.DOCUMENT_BACKED and antifraud >= 60:
        return VerificationStrength.MODERATE
    return VerificationStrength.WEAK


def classify_trust_tier(
    records: Sequence[NormalizedRecord],
    evidence: LayerScore,
    reconciliation: ReconciliationResult,
    anomalies: Sequence[AnomalyFinding],
    attestations: Sequence[Attestation] = (),
    policy: Optional[ScoringPolicy] = None,
) -> TrustTierInfo:
    """
    Highest tier whose requirements, and those of every lower tier, all hold.

    Output lists the met requirement labels of tiers 0..N and the unmet
    labels of tier N+1 (None at the top tier).
    """
    ctx = TierContext(
        records=records,
        attestations=attestations,
        evidence=evidence,
        reconciliation=reconciliation,
        anomalies=anomalies,
        policy=policy or scoring_policy,
    )
    evaluated = {tier: tuple(rule.evaluate(ctx) for rule in rules) for tier, rules in TIER_RULES.items()}

    tier = TrustTier.SELF_DECLARED
    for candidate in (TrustTier.DOCUMENT_BACKED, TrustTier.BANK_SUPPORTED, TrustTier.VERIFIED):
        if not all(req.completed for req in evaluated[candidate]):
            break
        tier = candidate

    met = tuple(req.label for level in TrustTier if level <= tier for req in evaluated[level])

    if tier is TrustTier.VERIFIED:
        detailed = evaluated[TrustTier.VERIFIED]
        next_requirements = None
    else:
        detailed = evaluated[TrustTier(tier + 1)]
        next_requirements = tuple(req.label for req in detailed if not req.completed)

    label, description = TIER_LABELS[tier]
    antifraud = ctx.antifraud_score
    return TrustTierInfo(
        tier=tier,
        label=label,
        description=description,
        requirements=met,
        next_tier_requirements=next_requirements,
        detailed_requirements=detailed,
        tier_progress=tier_progress(detailed),
        antifraud_score=antifraud,
        verification_strength=verification_strength(tier, antifraud),
    )
