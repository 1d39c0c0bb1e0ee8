"""
Report store - the storage collaborator behind the escalation core.

Contract (all methods async, failures raise PersistenceError):
- add_report(draft) -> id
- get_all_reports() -> [Report] in insertion order
- get_reports_by_user(user_id) -> [Report]
- get_report(id) -> Report | None
- update_report(id, changes) -> number of documents updated (0 or 1)

Only status/severity may be changed through update_report.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
import itertools
import logging
import time
import uuid

from firebase_admin import firestore
from pydantic import ValidationError

from app.core.exceptions import PersistenceError, ReportValidationError
from app.core.settings import settings
from app.models.report import Report, ReportDraft

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"status", "severity"}


def _normalize_changes(changes: Dict) -> Dict:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ReportValidationError(
            f"Only {sorted(UPDATABLE_FIELDS)} can be updated, got {sorted(unknown)}"
        )
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in changes.items()
    }


class ReportStore(ABC):
    """Abstract report persistence."""

    @abstractmethod
    async def add_report(self, draft: ReportDraft) -> str:
        raise NotImplementedError

    @abstractmethod
    async def get_all_reports(self) -> List[Report]:
        raise NotImplementedError

    @abstractmethod
    async def get_reports_by_user(self, user_id: str) -> List[Report]:
        raise NotImplementedError

    @abstractmethod
    async def get_report(self, report_id: str) -> Optional[Report]:
        raise NotImplementedError

    @abstractmethod
    async def update_report(self, report_id: str, changes: Dict) -> int:
        raise NotImplementedError


class InMemoryReportStore(ReportStore):
    """
    Process-local store used with USE_MOCK_DB and in tests.

    Returns copies so callers never hold a reference into the store.
    """

    def __init__(self):
        self._reports: Dict[str, Report] = {}

    async def add_report(self, draft: ReportDraft) -> str:
        report_id = uuid.uuid4().hex
        report = Report(id=report_id, timestamp=datetime.now(timezone.utc), **draft.model_dump())
        self._reports[report_id] = report
        logger.info(f"Report saved to mock store: {report_id}")
        return report_id

    async def get_all_reports(self) -> List[Report]:
        return [report.model_copy(deep=True) for report in self._reports.values()]

    async def get_reports_by_user(self, user_id: str) -> List[Report]:
        return [
            report.model_copy(deep=True)
            for report in self._reports.values()
            if report.user_id == user_id
        ]

    async def get_report(self, report_id: str) -> Optional[Report]:
        report = self._reports.get(report_id)
        return report.model_copy(deep=True) if report else None

    async def update_report(self, report_id: str, changes: Dict) -> int:
        changes = _normalize_changes(changes)
        report = self._reports.get(report_id)
        if report is None:
            return 0
        self._reports[report_id] = Report.model_validate({**report.model_dump(), **changes})
        return 1

    def clear(self) -> None:
        self._reports.clear()


class FirestoreReportStore(ReportStore):
    """
    Firestore-backed store.

    Documents carry a `sequence` (wall-clock nanoseconds plus a process-local
    counter) so reads keep insertion order even for equal timestamps.
    """

    def __init__(self, db=None, collection: str = None):
        if db is None:
            from app.config.firebase import get_db
            db = get_db()
        self.db = db
        self.collection = collection or settings.REPORTS_COLLECTION
        self._counter = itertools.count()

    def _to_report(self, doc) -> Optional[Report]:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        data.pop("sequence", None)
        try:
            return Report.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable report document {doc.id}: {e}")
            return None

    def _stream(self, query) -> List[Report]:
        reports = []
        for doc in query.stream():
            report = self._to_report(doc)
            if report is not None:
                reports.append(report)
        return reports

    async def add_report(self, draft: ReportDraft) -> str:
        try:
            doc_ref = self.db.collection(self.collection).document()
            data = draft.model_dump(mode="json")
            data["timestamp"] = datetime.now(timezone.utc)
            data["sequence"] = time.time_ns() + next(self._counter)
            doc_ref.set(data)
            logger.info(f"Report saved to Firestore: {doc_ref.id}")
            return doc_ref.id
        except Exception as e:
            logger.error(f"Failed to save report to Firestore: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save report: {e}", operation="add") from e

    async def get_all_reports(self) -> List[Report]:
        try:
            query = self.db.collection(self.collection).order_by(
                "sequence", direction=firestore.Query.ASCENDING
            )
            return self._stream(query)
        except Exception as e:
            logger.error(f"Failed to load reports from Firestore: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load reports: {e}", operation="list") from e

    async def get_reports_by_user(self, user_id: str) -> List[Report]:
        try:
            query = self.db.collection(self.collection).where("user_id", "==", user_id)
            reports = self._stream(query)
            reports.sort(key=lambda r: r.timestamp)
            return reports
        except Exception as e:
            logger.error(f"Failed to load reports for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load reports for user: {e}", operation="list") from e

    async def get_report(self, report_id: str) -> Optional[Report]:
        try:
            doc = self.db.collection(self.collection).document(report_id).get()
        except Exception as e:
            raise PersistenceError(f"Failed to load report {report_id}: {e}", operation="get") from e
        if not doc.exists:
            return None
        return self._to_report(doc)

    async def update_report(self, report_id: str, changes: Dict) -> int:
        changes = _normalize_changes(changes)
        try:
            doc_ref = self.db.collection(self.collection).document(report_id)
            if not doc_ref.get().exists:
                return 0
            doc_ref.update(changes)
            return 1
        except Exception as e:
            logger.error(f"Failed to update report {report_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update report {report_id}: {e}", operation="update") from e


# Global store instance (singleton pattern)
_report_store: Optional[ReportStore] = None


def get_report_store() -> ReportStore:
    """
    Get or create the ReportStore singleton.

    USE_MOCK_DB selects the in-process store; otherwise Firestore.
    """
    global _report_store
    if _report_store is None:
        if settings.USE_MOCK_DB:
            logger.info("[STORE] USING IN-MEMORY REPORT STORE")
            _report_store = InMemoryReportStore()
        else:
            _report_store = FirestoreReportStore()
    return _report_store


def set_report_store(store: Optional[ReportStore]) -> None:
    """Replace the global store (tests, alternate backends)."""
    global _report_store
    _report_store = store
