"""
Status Workflow Engine - strict, monotonic report lifecycle.

DESIGN PRINCIPLES:
- No backward transitions
- pending → reported happens only through escalation
- reported → resolved happens only through an admin action
- Re-assigning the current status is a no-op, not an error
"""

from typing import Dict, List, Union
import logging

from app.models.report import ReportStatus

logger = logging.getLogger(__name__)

StatusLike = Union[ReportStatus, str]


class StatusWorkflowEngine:
    """
    State machine for report status transitions.
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.PENDING: [ReportStatus.REPORTED],
        ReportStatus.REPORTED: [ReportStatus.RESOLVED],
        ReportStatus.RESOLVED: []  # Terminal state
    }

    @classmethod
    def is_valid_transition(cls, from_status: StatusLike, to_status: StatusLike) -> bool:
        """
        Check if a status transition is valid.

        Same status is always valid (no-op).
        """
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        if from_enum == to_enum:
            return True

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def needs_transition(cls, current_status: StatusLike, new_status: StatusLike) -> bool:
        """
        True when moving to new_status is both allowed and an actual change.
        Used by escalation to skip reports that are already reported or resolved.
        """
        return (
            ReportStatus(current_status) != ReportStatus(new_status)
            and cls.is_valid_transition(current_status, new_status)
        )

