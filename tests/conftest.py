"""
pytest configuration and shared fixtures for the CyberGuard tests.

Tests must not require Firebase credentials:
  1. USE_MOCK_DB=true is set BEFORE the app is imported so Settings picks it up.
  2. Every test gets a fresh InMemoryReportStore installed as the global store,
     and every service singleton is reset so nothing leaks between tests.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("USE_MOCK_DB", "true")

from app.models.report import (  # noqa: E402
    BullyingType,
    Location,
    PerpetratorInfo,
    ReportDraft,
    ReportStatus,
    Severity,
)
from app.services import (  # noqa: E402
    authority_channel,
    conversation_sessions,
    escalation_service,
    geo_aggregator,
    report_store,
)
from app.services.report_store import InMemoryReportStore  # noqa: E402

CENTER = (12.9700, 77.5900)


@pytest.fixture(autouse=True)
def store():
    """Fresh in-memory store for every test, with singletons reset around it."""
    memory_store = InMemoryReportStore()
    report_store.set_report_store(memory_store)
    geo_aggregator._geo_aggregator = None
    escalation_service._escalation_service = None
    authority_channel._authority_channel = None
    conversation_sessions._registry = None

    yield memory_store

    report_store.set_report_store(None)
    geo_aggregator._geo_aggregator = None
    escalation_service._escalation_service = None
    authority_channel._authority_channel = None
    conversation_sessions._registry = None


def make_draft(
    lat: float = CENTER[0],
    lng: float = CENTER[1],
    status: ReportStatus = ReportStatus.PENDING,
    user_id: str = None,
    severity: Severity = Severity.LOW,
) -> ReportDraft:
    return ReportDraft(
        user_id=user_id,
        is_anonymous=True,
        age=15,
        location=Location(lat=lat, lng=lng, city="Bengaluru", district="Bengaluru Urban", state="Karnataka"),
        bullying_type=BullyingType.HARASSMENT,
        perpetrator_info=PerpetratorInfo(platform="Instagram"),
        severity=severity,
        status=status,
    )


@pytest.fixture()
def draft_factory():
    return make_draft


@pytest.fixture()
async def client(store):  # noqa: ARG001 — store must be installed first
    """
    HTTPX async test client wired to the FastAPI app.
    """
    from app.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
