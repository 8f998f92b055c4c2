"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from credibility_gateway.config import ScoringPolicy, scoring_policy
from credibility_gateway.infrastructure.clients.record_store import RecordStoreClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_record_store_client() -> RecordStoreClient:
    """Provide Record Store client instance"""
    return RecordStoreClient()


def get_scoring_policy() -> ScoringPolicy:
    """Provide the active scoring policy"""
    return scoring_policy
