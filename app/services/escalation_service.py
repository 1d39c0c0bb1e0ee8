"""
Escalation Service - decides when an area's reports go to the authorities.

Two decoupled mechanisms:

1. Local critical area (per submission)
   After each new report is stored, the radius query around its location
   is recomputed. When it holds >= CRITICAL_AREA_MIN_REPORTS reports, every
   one of them is set to "reported".

2. Batch authority notification (explicit)
   should_report_to_authority() is the predicate: >= 3 reports and >= 3 of
   them not yet reported. report_to_authority() is the action and does NOT
   re-check the predicate, so callers can preview before committing.

Status changes are assignments, never increments: re-running either
mechanism over reports that are already reported writes nothing.
Persistence failures propagate; in-memory decisions are not rolled back.
"""

from typing import List, Optional
import logging

from app.core.settings import settings
from app.models.report import AuthorityReportResult, CriticalAreaCheck, Report, ReportStatus
from app.services.authority_channel import AuthorityChannel, get_authority_channel
from app.services.geo_aggregator import GeoAggregator
from app.services.report_store import ReportStore, get_report_store
from app.services.status_workflow import StatusWorkflowEngine

logger = logging.getLogger(__name__)


class EscalationService:
    """
    Rule-based escalation over radius clusters.
    """

    def __init__(
        self,
        store: Optional[ReportStore] = None,
        aggregator: Optional[GeoAggregator] = None,
        channel: Optional[AuthorityChannel] = None
    ):
        self.store = store or get_report_store()
        self.aggregator = aggregator or GeoAggregator(self.store)
        self.channel = channel or get_authority_channel()

    @property
    def min_reports(self) -> int:
        return settings.CRITICAL_AREA_MIN_REPORTS

    async def check_critical_area(
        self,
        lat: float,
        lng: float,
        radius_km: Optional[float] = None
    ) -> CriticalAreaCheck:
        """
        Recompute the radius cluster around (lat, lng) and escalate it when
        it reaches the threshold.

        Raises:
            PersistenceError: If a snapshot read or a status write fails
        """
        if radius_km is None:
            radius_km = settings.ESCALATION_RADIUS_KM

        nearby = await self.aggregator.reports_within_radius(lat, lng, radius_km)
        is_critical = len(nearby) >= self.min_reports

        escalated_ids: List[str] = []
        if is_critical:
            escalated_ids = await self._mark_reported(nearby)
            logger.info(
                f"Critical area at ({lat}, {lng}): {len(nearby)} reports within {radius_km} km, "
                f"{len(escalated_ids)} newly reported"
            )
        else:
            logger.debug(f"Area at ({lat}, {lng}) below threshold ({len(nearby)} < {self.min_reports})")

        return CriticalAreaCheck(
            is_critical=is_critical,
            count=len(nearby),
            reports=nearby,
            escalated_ids=escalated_ids,
        )

    def should_report_to_authority(self, reports: List[Report]) -> bool:
        """
        Escalation predicate for a candidate batch.

        Fires only when the batch has enough reports AND enough of them can
        still move to reported. Reported and resolved reports were already
        escalated once, so a fully handled cluster is not re-notified.
        """
        if len(reports) < self.min_reports:
            return False
        unreported = [
            r for r in reports
            if StatusWorkflowEngine.needs_transition(r.status, ReportStatus.REPORTED)
        ]
        return len(unreported) >= self.min_reports

    async def report_to_authority(self, reports: List[Report], location_label: str) -> AuthorityReportResult:
        """
        Notify the authority channel and mark every listed report reported.

        Does not evaluate should_report_to_authority(); that is the caller's call.

        Raises:
            PersistenceError: If a status write fails
        """
        result = await self.channel.report(reports, location_label)
        if not result.success:
            logger.warning(f"Authority channel declined batch from {location_label}: {result.message}")
            return result

        escalated_ids = await self._mark_reported(reports)
        logger.info(
            f"Batch from {location_label} sent to authorities: "
            f"{len(reports)} reports, {len(escalated_ids)} status changes"
        )
        return result

    async def _mark_reported(self, reports: List[Report]) -> List[str]:
        """
        Set status to reported on every report that can still move there.
        Already reported or resolved reports are left untouched.
        """
        changed = []
        for report in reports:
            if not StatusWorkflowEngine.needs_transition(report.status, ReportStatus.REPORTED):
                continue
            report.status = ReportStatus.REPORTED
            try:
                await self.store.update_report(report.id, {"status": ReportStatus.REPORTED})
            except Exception as e:
                logger.error(f"Failed to persist reported status for {report.id}: {e}", exc_info=True)
                raise
            changed.append(report.id)
        return changed


# Global service instance (singleton pattern)
_escalation_service = None


def get_escalation_service() -> EscalationService:
    """
    Get or create EscalationService singleton instance.
    """
    global _escalation_service
    if _escalation_service is None:
        _escalation_service = EscalationService()
    return _escalation_service
