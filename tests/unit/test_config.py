"""Unit tests for scoring policy configuration"""

import pytest
from pydantic import ValidationError
from credibility_gateway.config import ScoringPolicy


def test_default_weight_tables_sum_to_one():
    policy = ScoringPolicy()

    for table in (
        policy.layer_weights,
        policy.evidence_weights,
        policy.stability_weights,
        policy.compliance_weights,
        policy.reconciliation_importance,
    ):
        assert sum(table.values()) == pytest.approx(1.0)


def test_unbalanced_weights_rejected():
    with pytest.raises(ValidationError):
        ScoringPolicy(layer_weights={"evidence_quality": 0.5, "stability_growth": 0.5, "compliance_readiness": 0.5})


def test_policy_from_environment(monkeypatch):
    monkeypatch.setenv("CREDIBILITY_RECONCILIATION_TOLERANCE", "0.2")
    monkeypatch.setenv("CREDIBILITY_SEASONAL_MONTHS", "[3, 4]")

    policy = ScoringPolicy()

    assert policy.reconciliation_tolerance == 0.2
    assert policy.seasonal_months == [3, 4]
