"""Unit tests for the evidence quality layer"""

from datetime import date
from credibility_gateway.domain.evidence import (
    count_conflicting_entries,
    count_duplicate_entries,
    score_evidence_quality,
)
from credibility_gateway.domain.models import Direction, Provenance


def _codes(layer):
    return {flag.code for flag in layer.flags}


def test_empty_records_score_zero():
    layer = score_evidence_quality([])

    assert layer.score == 0
    assert _codes(layer) == {"NO_RECORDS"}
    assert all(value == 0.0 for value in layer.metrics.values())


def test_fully_documented_history(corroborated_records):
    layer = score_evidence_quality(corroborated_records)

    assert layer.metrics["document_backed_ratio"] == 100.0
    assert layer.metrics["consistency_score"] == 100.0
    assert layer.metrics["continuity_score"] == 83.33
    assert layer.metrics["metadata_score"] == 100.0
    assert layer.flags == ()
    # 60 + 20 + 83.33 * 0.15 + 5
    assert layer.score == 97


def test_single_manual_entry(make_transaction):
    layer = score_evidence_quality(
        [make_transaction("tx_1", date(2024, 5, 10), 12_345, provenance=Provenance.MANUAL_ENTRY)]
    )

    assert layer.metrics["document_backed_ratio"] == 0.0
    assert _codes(layer) == {"NO_DOCUMENT_EVIDENCE", "LIMITED_HISTORY"}
    # 27.5 weighted, -15 and -5 from flags
    assert layer.score == 8


def test_mostly_manual_entries_warn(make_transaction, make_invoice):
    records = [
        make_transaction(f"tx_{i}", date(2024, 5, 1 + i), 12_345 + i, provenance=Provenance.MANUAL_ENTRY)
        for i in range(3)
    ]
    records.append(make_invoice("inv_1", date(2024, 5, 20), 45_678))

    layer = score_evidence_quality(records)

    assert layer.metrics["document_backed_ratio"] == 25.0
    assert "HIGH_MANUAL_RATIO" in _codes(layer)


def test_duplicate_entries_reduce_consistency(make_transaction):
    day = date(2024, 5, 10)
    records = [
        make_transaction("tx_1", day, 12_345),
        make_transaction("tx_2", day, 12_345),
        make_transaction("tx_3", day, 12_345, direction=Direction.DEBIT),
    ]

    assert count_duplicate_entries(records) == 1
    assert score_evidence_quality(records).metrics["consistency_score"] == 90.0


def test_conflicting_profit_loss_statements(make_profit_loss):
    records = [
        make_profit_loss("pl_1", date(2024, 5, 31), 100_000, 60_000),
        make_profit_loss("pl_2", date(2024, 5, 30), 120_000, 60_000),
        make_profit_loss("pl_3", date(2024, 6, 30), 100_000, 60_000),
    ]

    assert count_conflicting_entries(records) == 1
    assert score_evidence_quality(records).metrics["consistency_score"] == 85.0


def test_many_duplicates_flagged(make_transaction):
    day = date(2024, 5, 10)
    records = [make_transaction(f"tx_{i}", day, 12_345) for i in range(4)]

    layer = score_evidence_quality(records)

    assert layer.metrics["consistency_score"] == 70.0
    assert "DUPLICATE_ENTRIES" in _codes(layer)


def test_unknown_amounts_are_not_duplicates(make_invoice):
    day = date(2024, 5, 10)
    records = [make_invoice("inv_1", day, None), make_invoice("inv_2", day, None)]

    assert count_duplicate_entries(records) == 0


def test_coverage_gaps(make_invoice):
    records = [make_invoice(f"inv_{m}", date(2024, m, 10), 12_345 + m) for m in (1, 2, 5, 6)]

    layer = score_evidence_quality(records)

    assert "COVERAGE_GAPS" in _codes(layer)
    assert "LIMITED_HISTORY" not in _codes(layer)


def test_gaps_ignored_once_history_is_complete(make_invoice):
    records = [make_invoice(f"inv_{m}", date(2024, m, 10), 12_345 + m) for m in (1, 2, 3, 4, 7, 8)]

    layer = score_evidence_quality(records)

    assert layer.metrics["continuity_score"] == 100.0
    assert "COVERAGE_GAPS" not in _codes(layer)


def test_extraction_errors_lower_metadata(make_invoice):
    records = [
        make_invoice("inv_1", date(2024, 5, 10), 12_345),
        make_invoice("inv_2", date(2024, 5, 11), 23_456, extraction_errors=("total unreadable",)),
    ]

    assert score_evidence_quality(records).metrics["metadata_score"] == 50.0


def test_adding_document_evidence_never_lowers_score(make_transaction, make_invoice):
    """Backing a manual claim with a document can only help"""
    records = [
        make_transaction(f"tx_{i}", date(2024, 3 + i, 10), 50_000 + i * 13, provenance=Provenance.MANUAL_ENTRY)
        for i in range(3)
    ]
    before = score_evidence_quality(records).score

    records.append(make_invoice("inv_1", date(2024, 5, 8), 50_026))
    after = score_evidence_quality(records).score

    assert after >= before


def test_first_document_among_many_manual_entries_never_lowers_score(make_transaction):
    """A large manual ledger gets one bank-backed line and its spikes clear"""
    months = [1] * 4 + [2] * 4 + [3] * 13
    records = [
        make_transaction(f"m_{i}", date(2024, month, 1 + i % 28), 40_000 + i * 137, provenance=Provenance.MANUAL_ENTRY)
        for i, month in enumerate(months)
    ]
    before = score_evidence_quality(records)

    records.append(make_transaction("tx_bank", date(2024, 1, 15), 41_234))
    after = score_evidence_quality(records)

    assert "NO_DOCUMENT_EVIDENCE" in _codes(before)
    assert "HIGH_MANUAL_RATIO" in _codes(after)
    assert after.score >= before.score


def test_manual_penalty_shrinks_with_manual_share(make_transaction):
    def penalty(manual_count):
        records = [
            make_transaction(f"m_{i}", date(2024, 5, 1 + i), 12_345 + i, provenance=Provenance.MANUAL_ENTRY)
            for i in range(manual_count)
        ]
        records.append(make_transaction("tx_bank", date(2024, 5, 28), 98_765))
        layer = score_evidence_quality(records)
        return next(f.impact for f in layer.flags if f.code == "HIGH_MANUAL_RATIO")

    assert penalty(3) == -11
    assert penalty(19) == -14


def test_document_in_a_new_month_never_lowers_score(make_transaction, make_invoice):
    records = [
        make_transaction(f"m_{m}", date(2024, m, 10), 50_000 + m * 13, provenance=Provenance.MANUAL_ENTRY)
        for m in (1, 2, 3)
    ]
    before = score_evidence_quality(records).score

    records.append(make_invoice("inv_jun", date(2024, 6, 8), 51_234))
    after = score_evidence_quality(records)

    assert "COVERAGE_GAPS" in _codes(after)
    assert after.score >= before


def test_scores_stay_in_bounds(make_transaction):
    day = date(2024, 5, 10)
    records = [
        make_transaction(f"tx_{i}", day, 12_345, provenance=Provenance.MANUAL_ENTRY, extraction_errors=("x",))
        for i in range(20)
    ]

    layer = score_evidence_quality(records)

    assert 0 <= layer.score <= 100
    assert layer.metrics["consistency_score"] == 0.0
