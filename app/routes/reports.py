"""
Report endpoints - report listing, proximity queries, critical areas and
authority escalation.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.core.exceptions import PersistenceError, ReportValidationError
from app.models.report import AuthorityReportResult, Cluster, Report
from app.services.escalation_service import get_escalation_service
from app.services.geo_aggregator import get_geo_aggregator
from app.services.report_service import get_all_reports, get_nearby_reports, get_user_reports
from app.services.report_store import get_report_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


class EscalationRequest(BaseModel):
    """
    Batch authority notification.

    With dry_run=true only the predicate is evaluated; nothing is sent.
    """
    report_ids: List[str] = Field(..., min_length=1, description="Reports to escalate")
    location_label: str = Field(..., min_length=1, max_length=200, description="Area name shown to the authority")
    dry_run: bool = Field(False, description="Evaluate the predicate without notifying")


class EscalationResponse(BaseModel):
    should_report: bool
    result: Optional[AuthorityReportResult] = None
    missing_ids: List[str] = Field(default_factory=list)


def _unavailable(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Report storage unavailable: {e}"
    )


@router.get("", response_model=List[Report])
async def list_reports():
    try:
        return await get_all_reports()
    except PersistenceError as e:
        logger.error(f"GET /reports failed: {e}", exc_info=True)
        raise _unavailable(e)


@router.get("/users/{user_id}", response_model=List[Report])
async def list_user_reports(user_id: str):
    try:
        return await get_user_reports(user_id)
    except PersistenceError as e:
        logger.error(f"GET /reports/users/{user_id} failed: {e}", exc_info=True)
        raise _unavailable(e)


@router.get("/nearby", response_model=List[Report])
async def nearby_reports(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius_km: Optional[float] = Query(None, gt=0, le=50, description="Search radius in kilometers (default: ESCALATION_RADIUS_KM)"),
):
    try:
        return await get_nearby_reports(lat, lng, radius_km)
    except ReportValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except PersistenceError as e:
        raise _unavailable(e)


@router.get("/critical-areas", response_model=List[Cluster])
async def critical_areas():
    """Cells holding 3 or more reports, graded by size."""
    try:
        return await get_geo_aggregator().get_critical_areas()
    except PersistenceError as e:
        logger.error(f"GET /reports/critical-areas failed: {e}", exc_info=True)
        raise _unavailable(e)


@router.post("/escalations", response_model=EscalationResponse)
async def escalate_reports(request: EscalationRequest):
    """
    Evaluate the authority predicate for a batch and, when it holds and this
    is not a dry run, notify the authority channel.
    """
    escalation = get_escalation_service()
    store = get_report_store()

    try:
        reports = []
        missing_ids = []
        for report_id in dict.fromkeys(request.report_ids):
            report = await store.get_report(report_id)
            if report is None:
                missing_ids.append(report_id)
            else:
                reports.append(report)

        should_report = escalation.should_report_to_authority(reports)
        if request.dry_run or not should_report:
            return EscalationResponse(should_report=should_report, missing_ids=missing_ids)

        result = await escalation.report_to_authority(reports, request.location_label)
        return EscalationResponse(should_report=True, result=result, missing_ids=missing_ids)

    except PersistenceError as e:
        logger.error(f"POST /reports/escalations failed: {e}", exc_info=True)
        raise _unavailable(e)
