"""Configuration management using Pydantic Settings"""

from typing import Dict, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # External Services
    record_store_base: str = "http://localhost:8001"

    # Service
    service_name: str = "credibility-gateway"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0


class ScoringPolicy(BaseSettings):
    """
    Tunable scoring policy: weights, thresholds and tolerances.

    Weights are fractions; every weight table must sum to 1.0. Amounts are
    integer minor-currency units.
    """

    model_config = SettingsConfigDict(
        env_prefix="CREDIBILITY_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Composite
    layer_weights: Dict[str, float] = {
        "evidence_quality": 0.40,
        "stability_growth": 0.35,
        "compliance_readiness": 0.25,
    }
    anomaly_reduction_cap: int = 40

    # Layer tables
    evidence_weights: Dict[str, float] = {
        "document_backed_ratio": 0.60,
        "consistency_score": 0.20,
        "continuity_score": 0.15,
        "metadata_score": 0.05,
    }
    stability_weights: Dict[str, float] = {
        "revenue_stability": 0.25,
        "cashflow_health": 0.25,
        "expense_discipline": 0.20,
        "growth_trend": 0.20,
        "seasonality_handling": 0.10,
    }
    compliance_weights: Dict[str, float] = {
        "document_completeness": 0.40,
        "risk_patterns": 0.30,
        "filing_timeliness": 0.20,
        "record_cadence": 0.10,
    }

    # Anomaly detection
    spike_k: float = 3.0
    spike_window: int = 10
    spike_min_window: int = 5
    spike_high_ratio: float = 5.0
    revenue_spike_multiplier: float = 3.0
    round_unit_cents: int = 100_000
    round_threshold: float = 0.40
    round_min_sample: int = 10
    duplicate_min_count: int = 3
    duplicate_window_days: int = 3
    frequency_multiplier: float = 3.0
    month_end_min_invoices: int = 6
    month_end_share: float = 0.70
    margin_revenue_floor_cents: int = 50_000_000
    low_expense_ratio: float = 0.30
    high_expense_ratio: float = 1.50

    # Reconciliation
    reconciliation_tolerance: float = 0.10
    reconciliation_importance: Dict[str, float] = {
        "invoices_vs_deposits": 0.6,
        "receipts_vs_payments": 0.4,
    }

    # Evidence quality
    continuity_target_months: int = 6
    duplicate_entry_penalty: int = 10
    conflict_entry_penalty: int = 15

    # Stability & growth
    cashflow_positive_share: float = 0.75
    dip_threshold: float = 0.80
    seasonal_months: List[int] = [7, 10, 11]

    # Compliance readiness
    vat_registration_threshold_cents: int = 500_000_000
    cadence_months: int = 3

    # Trust tiers
    tier1_document_ratio: float = 50.0
    tier1_evidence_score: int = 40
    tier2_evidence_score: int = 60

    # Action plan
    suggestion_threshold: float = 80.0
    tier_action_scale: float = 0.5

    @field_validator(
        "layer_weights",
        "evidence_weights",
        "stability_weights",
        "compliance_weights",
        "reconciliation_importance",
    )
    @classmethod
    def weights_sum_to_one(cls, weights: Dict[str, float]) -> Dict[str, float]:
        total = sum(weights.values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"weights must sum to 1.0, got {total}")
        return weights


settings = Settings()
scoring_policy = ScoringPolicy()
