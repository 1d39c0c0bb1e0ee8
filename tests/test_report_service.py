"""
test_report_service.py — submission sink, read access and the in-memory store.
"""

from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import PersistenceError, ReportValidationError
from app.core.settings import settings
from app.models.report import ReportStatus, Severity
from app.services import report_service

from conftest import CENTER, make_draft


class TestInMemoryReportStore:

    async def test_preserves_insertion_order(self, store):
        ids = [await store.add_report(make_draft(10.0 + i, 20.0)) for i in range(5)]
        assert [r.id for r in await store.get_all_reports()] == ids

    async def test_assigns_id_and_timestamp(self, store):
        report_id = await store.add_report(make_draft())
        report = await store.get_report(report_id)
        assert report.id == report_id
        assert report.timestamp is not None
        assert report.status == ReportStatus.PENDING

    async def test_reports_by_user(self, store):
        await store.add_report(make_draft(user_id="u1"))
        await store.add_report(make_draft(user_id="u2"))
        await store.add_report(make_draft(user_id="u1"))
        assert len(await store.get_reports_by_user("u1")) == 2
        assert await store.get_reports_by_user("nobody") == []

    async def test_partial_update(self, store):
        report_id = await store.add_report(make_draft())
        count = await store.update_report(report_id, {"status": ReportStatus.REPORTED, "severity": "high"})
        report = await store.get_report(report_id)
        assert count == 1
        assert report.status == ReportStatus.REPORTED
        assert report.severity == Severity.HIGH
        assert report.bullying_type.value == "Harassment"

    async def test_update_missing_report_returns_zero(self, store):
        assert await store.update_report("missing", {"status": "reported"}) == 0

    async def test_only_status_and_severity_are_updatable(self, store):
        report_id = await store.add_report(make_draft())
        with pytest.raises(ReportValidationError):
            await store.update_report(report_id, {"bullying_type": "Other"})

    async def test_returned_reports_are_copies(self, store):
        report_id = await store.add_report(make_draft())
        report = await store.get_report(report_id)
        report.status = ReportStatus.RESOLVED
        assert (await store.get_report(report_id)).status == ReportStatus.PENDING


class TestSubmitReport:

    async def test_single_submission_is_stored_pending(self, store):
        outcome = await report_service.submit_report(make_draft())

        assert outcome.report_id
        assert outcome.report.status == ReportStatus.PENDING
        assert outcome.critical_area.is_critical is False
        assert outcome.critical_area.count == 1
        assert outcome.escalation_error is None
        assert len(await store.get_all_reports()) == 1

    async def test_initial_severity_is_kept_when_area_escalates(self, store):
        for _ in range(2):
            await store.add_report(make_draft(severity=Severity.LOW))

        outcome = await report_service.submit_report(make_draft(severity=Severity.HIGH))

        assert outcome.critical_area.is_critical
        assert outcome.report.severity == Severity.HIGH
        assert [r.severity for r in await store.get_all_reports()] == [Severity.LOW, Severity.LOW, Severity.HIGH]

    async def test_invalid_coordinates_are_rejected_before_storage(self, store):
        with pytest.raises(ReportValidationError):
            await report_service.submit_report(make_draft(lat=float("nan")))
        assert await store.get_all_reports() == []

    async def test_storage_failure_propagates(self, store):
        store.add_report = AsyncMock(side_effect=PersistenceError("unavailable", operation="add"))
        with pytest.raises(PersistenceError):
            await report_service.submit_report(make_draft())

    async def test_escalation_failure_after_store_is_reported_not_raised(self, store):
        for _ in range(2):
            await store.add_report(make_draft())
        store.update_report = AsyncMock(side_effect=PersistenceError("update failed", operation="update"))

        outcome = await report_service.submit_report(make_draft())

        assert outcome.critical_area is None
        assert "update failed" in outcome.escalation_error
        assert len(await store.get_all_reports()) == 3


class TestReadAccess:

    async def test_user_reports(self, store):
        await store.add_report(make_draft(user_id="u1"))
        await store.add_report(make_draft(user_id="u2"))
        reports = await report_service.get_user_reports("u1")
        assert [r.user_id for r in reports] == ["u1"]

    async def test_nearby_reports(self, store):
        await store.add_report(make_draft(*CENTER))
        await store.add_report(make_draft(CENTER[0] + 1.0, CENTER[1]))
        nearby = await report_service.get_nearby_reports(*CENTER)
        assert len(nearby) == 1

    async def test_nearby_zero_radius_is_exact_point(self, store):
        await store.add_report(make_draft(*CENTER))
        await store.add_report(make_draft(CENTER[0] + 0.001, CENTER[1]))
        nearby = await report_service.get_nearby_reports(*CENTER, radius_km=0)
        assert len(nearby) == 1

    async def test_nearby_default_radius_comes_from_settings(self, store, monkeypatch):
        await store.add_report(make_draft(*CENTER))
        await store.add_report(make_draft(CENTER[0] + 1.0, CENTER[1]))
        monkeypatch.setattr(settings, "ESCALATION_RADIUS_KM", 200.0)
        nearby = await report_service.get_nearby_reports(*CENTER)
        assert len(nearby) == 2

    async def test_nearby_rejects_invalid_point(self):
        with pytest.raises(ReportValidationError):
            await report_service.get_nearby_reports(123.0, 0.0)
