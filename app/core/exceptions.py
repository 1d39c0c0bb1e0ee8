"""
Error taxonomy for CyberGuard.

- ReportValidationError: an answer, coordinate pair or category that cannot be
  accepted. The conversation engine turns it into a rejected step.
- PersistenceError: the storage collaborator failed. Never retried here.
- AggregationError: one report cannot take part in clustering. Callers skip
  the record and keep going.
"""


class CyberGuardError(Exception):
    """Base class for all domain errors."""


class ReportValidationError(CyberGuardError, ValueError):
    """Input rejected by validation."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class PersistenceError(CyberGuardError, RuntimeError):
    """Storage collaborator failure on add/read/update."""

    def __init__(self, message: str, operation: str = None):
        super().__init__(message)
        self.operation = operation


class AggregationError(CyberGuardError, ValueError):
    """Degenerate record encountered while clustering."""

    def __init__(self, message: str, report_id: str = None):
        super().__init__(message)
        self.report_id = report_id
