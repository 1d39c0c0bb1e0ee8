"""
Report service - submission sink and read access for incident reports.

Flow for a finalized draft:
1. Validate coordinates (reject, never aggregate, bad locations)
2. Store the report (MUST succeed, PersistenceError propagates)
3. Recompute the local critical area and escalate if needed

A failure in step 3 does not un-submit the report: it is stored, so the
outcome carries the escalation error instead of raising, and a retry by the
caller cannot create a duplicate.
"""

from typing import List, Optional
import logging

from app.core.exceptions import PersistenceError, ReportValidationError
from app.core.settings import settings
from app.models.report import Report, ReportDraft, SubmissionOutcome
from app.services.escalation_service import get_escalation_service
from app.services.geo_aggregator import get_geo_aggregator
from app.services.geo_math import is_valid_coordinate
from app.services.report_store import get_report_store

logger = logging.getLogger(__name__)


async def submit_report(draft: ReportDraft) -> SubmissionOutcome:
    """
    Store a finalized report and run the local critical-area check.

    Raises:
        ReportValidationError: If the draft's coordinates are unusable
        PersistenceError: If the report could not be stored
    """
    location = draft.location
    if not is_valid_coordinate(location.lat, location.lng):
        raise ReportValidationError(
            f"Invalid coordinates ({location.lat}, {location.lng})",
            field="location"
        )

    store = get_report_store()
    report_id = await store.add_report(draft)
    logger.info(f"Report {report_id} stored ({draft.bullying_type.value}, severity={draft.severity.value})")

    critical_area = None
    escalation_error = None
    try:
        critical_area = await get_escalation_service().check_critical_area(location.lat, location.lng)
    except PersistenceError as e:
        logger.error(f"Escalation check failed after storing report {report_id}: {e}", exc_info=True)
        escalation_error = str(e)

    report = None
    if critical_area is not None:
        report = next((r for r in critical_area.reports if r.id == report_id), None)
    if report is None:
        try:
            report = await store.get_report(report_id)
        except PersistenceError as e:
            logger.warning(f"Could not read back report {report_id}: {e}")
    if report is None:
        # Store accepted the write but cannot read it back yet
        report = Report(id=report_id, **draft.model_dump())

    return SubmissionOutcome(
        report_id=report_id,
        report=report,
        critical_area=critical_area,
        escalation_error=escalation_error,
    )


async def get_all_reports() -> List[Report]:
    return await get_report_store().get_all_reports()


async def get_user_reports(user_id: str) -> List[Report]:
    return await get_report_store().get_reports_by_user(user_id)


async def get_nearby_reports(lat: float, lng: float, radius_km: Optional[float] = None) -> List[Report]:
    if not is_valid_coordinate(lat, lng):
        raise ReportValidationError(f"Invalid coordinates ({lat}, {lng})", field="location")
    if radius_km is None:
        radius_km = settings.ESCALATION_RADIUS_KM
    return await get_geo_aggregator().reports_within_radius(lat, lng, radius_km)
