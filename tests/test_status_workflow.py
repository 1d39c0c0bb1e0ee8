"""
test_status_workflow.py — monotonic pending → reported → resolved lifecycle.
"""

import pytest

from app.models.report import ReportStatus
from app.services.status_workflow import StatusWorkflowEngine


@pytest.mark.parametrize("from_status,to_status,expected", [
    (ReportStatus.PENDING, ReportStatus.REPORTED, True),
    (ReportStatus.REPORTED, ReportStatus.RESOLVED, True),
    (ReportStatus.PENDING, ReportStatus.PENDING, True),
    (ReportStatus.PENDING, ReportStatus.RESOLVED, False),
    (ReportStatus.REPORTED, ReportStatus.PENDING, False),
    (ReportStatus.RESOLVED, ReportStatus.REPORTED, False),
    ("pending", "reported", True),
    ("pending", "archived", False),
])
def test_is_valid_transition(from_status, to_status, expected):
    assert StatusWorkflowEngine.is_valid_transition(from_status, to_status) is expected


def test_needs_transition_only_for_real_forward_moves():
    assert StatusWorkflowEngine.needs_transition(ReportStatus.PENDING, ReportStatus.REPORTED)
    assert not StatusWorkflowEngine.needs_transition(ReportStatus.REPORTED, ReportStatus.REPORTED)
    assert not StatusWorkflowEngine.needs_transition(ReportStatus.RESOLVED, ReportStatus.REPORTED)
