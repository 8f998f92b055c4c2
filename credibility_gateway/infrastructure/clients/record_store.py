"""Record Store HTTP client for fetching a business's normalized records"""

import httpx
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple
from pydantic import TypeAdapter, ValidationError
from credibility_gateway.api.v1.schemas import AttestationSchema, RecordPayload
from credibility_gateway.domain.models import Attestation, NormalizedRecord
from credibility_gateway.domain.exceptions import BusinessNotFoundError, InvalidRecordError, RecordStoreError
from credibility_gateway.config import settings


@dataclass(frozen=True)
class RecordSnapshot:
    """Point-in-time view of everything stored for one business"""

    business_id: str
    records: Tuple[NormalizedRecord, ...]
    attestations: Tuple[Attestation, ...]


RECORD_ADAPTER = TypeAdapter(RecordPayload)


def parse_record(item: Dict[str, Any]) -> NormalizedRecord:
    """Validate a stored record against the request schemas, dispatching on `kind`"""
    try:
        return RECORD_ADAPTER.validate_python(item).to_domain()
    except ValidationError as e:
        raise InvalidRecordError(f"Invalid record data from Record Store: {e}") from e


def parse_attestation(item: Dict[str, Any]) -> Attestation:
    try:
        return AttestationSchema.model_validate(item).to_domain()
    except ValidationError as e:
        raise InvalidRecordError(f"Invalid attestation data from Record Store: {e}") from e


class RecordStoreClient:
    """Client for the Record Store snapshot API"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.record_store_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def get_snapshot(self, business_id: str) -> RecordSnapshot:
        """
        Fetch all normalized records and attestations for a business.

        Raises:
            BusinessNotFoundError: Record Store has no such business
            RecordStoreError: On timeout or HTTP errors
            InvalidRecordError: On records that cannot be normalized
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/records",
                    params={"business_id": business_id},
                )
                if response.status_code == 404:
                    raise BusinessNotFoundError(f"Unknown business: {business_id}")
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                raise RecordStoreError(f"Record Store timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise RecordStoreError(f"Record Store error: {e.response.status_code}") from e
            except ValueError as e:
                raise RecordStoreError(f"Record Store returned non-JSON body: {e}") from e

        try:
            records: List[NormalizedRecord] = [parse_record(item) for item in data.get("records", [])]
            attestations = [parse_attestation(item) for item in data.get("attestations", [])]
        except (AttributeError, TypeError) as e:
            raise InvalidRecordError(f"Malformed Record Store snapshot: {e}") from e

        return RecordSnapshot(business_id=business_id, records=tuple(records), attestations=tuple(attestations))
