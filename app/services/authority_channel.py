"""
Authority notification channel - hands escalated reports to the cybercrime portal.

This is a SIMULATED channel: nothing leaves the process. The contract shape
is what matters, a real transport can replace CybercrimePortalChannel later:

    report(reports, location_label) -> AuthorityReportResult
        {success, reported_count, message}
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import logging

from app.core.settings import settings
from app.models.report import AuthorityReportResult, Report

logger = logging.getLogger(__name__)


class AuthorityChannel(ABC):
    """Abstract escalation target."""

    @abstractmethod
    async def report(self, reports: List[Report], location_label: str) -> AuthorityReportResult:
        raise NotImplementedError


class CybercrimePortalChannel(AuthorityChannel):
    """
    Simulated cybercrime portal. Always succeeds and logs the dispatch.
    """

    def __init__(self, authority_name: Optional[str] = None):
        self.authority_name = authority_name or settings.AUTHORITY_NAME

    async def report(self, reports: List[Report], location_label: str) -> AuthorityReportResult:
        report_ids = [r.id for r in reports]
        logger.info(
            f"[SIMULATED] Reporting {len(reports)} incidents from {location_label} "
            f"to {self.authority_name}: {report_ids}"
        )
        return AuthorityReportResult(
            success=True,
            reported_count=len(reports),
            message=(
                f"Successfully reported {len(reports)} incidents from {location_label} "
                f"to {self.authority_name}"
            ),
        )


# Global channel instance (singleton pattern)
_authority_channel: Optional[AuthorityChannel] = None


def get_authority_channel() -> AuthorityChannel:
    global _authority_channel
    if _authority_channel is None:
        _authority_channel = CybercrimePortalChannel()
    return _authority_channel
