"""Credibility score endpoints"""

import time
import logging
from datetime import date, datetime, timezone
from typing import Optional, Sequence
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from credibility_gateway.api.v1.schemas import CredibilityScoreResponse, ScoreRequest
from credibility_gateway.api.dependencies import get_record_store_client, get_request_id, get_scoring_policy
from credibility_gateway.config import ScoringPolicy
from credibility_gateway.infrastructure.clients.record_store import RecordStoreClient
from credibility_gateway.domain.composer import compute_credibility_score
from credibility_gateway.domain.models import Attestation, NormalizedRecord
from credibility_gateway.domain.exceptions import BusinessNotFoundError, InvalidRecordError, RecordStoreError
from credibility_gateway.infrastructure.observability.metrics import record_score, record_store_fetch_failures_counter
from credibility_gateway.infrastructure.observability.logging import log_score

router = APIRouter()


def _score_and_report(
    request_id: str,
    business_id: str,
    records: Sequence[NormalizedRecord],
    attestations: Sequence[Attestation],
    as_of: Optional[date],
    policy: ScoringPolicy,
    start_time: float,
) -> CredibilityScoreResponse:
    score = compute_credibility_score(records, attestations, as_of, policy)

    duration_ms = (time.time() - start_time) * 1000
    record_score(score)
    log_score(request_id, business_id, score, duration_ms)

    return CredibilityScoreResponse.from_domain(business_id, score, datetime.now(timezone.utc))


@router.post("/credibility-score", response_model=CredibilityScoreResponse)
def score_records(
    request_body: ScoreRequest,
    request: Request,
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """
    Score a record snapshot supplied inline.

    Records are validated against the discriminated record schema, so
    malformed input is rejected with 422 before the engine runs.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        records = [r.to_domain() for r in request_body.records]
        attestations = [a.to_domain() for a in request_body.attestations]
        return _score_and_report(
            request_id, request_body.business_id, records, attestations, request_body.as_of, policy, start_time
        )

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/businesses/{business_id}/credibility-score", response_model=CredibilityScoreResponse)
async def score_business(
    business_id: str,
    request: Request,
    as_of: Optional[date] = Query(None, description="Reference date for deadlines and future-dated checks"),
    record_store: RecordStoreClient = Depends(get_record_store_client),
    policy: ScoringPolicy = Depends(get_scoring_policy),
):
    """
    Score a business from its current Record Store snapshot.

    Flow:
    1. Fetch normalized records and attestations from the Record Store
    2. Run the full scoring pipeline over the snapshot
    3. Record metrics and logs, return the score
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        snapshot = await record_store.get_snapshot(business_id)
        return _score_and_report(
            request_id, business_id, snapshot.records, snapshot.attestations, as_of, policy, start_time
        )

    except BusinessNotFoundError as e:
        logging.warning(f"Business not found: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=str(e))

    except RecordStoreError as e:
        record_store_fetch_failures_counter.inc()
        logging.error(f"Record Store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Record Store unavailable")

    except InvalidRecordError as e:
        logging.warning(f"Invalid records: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
