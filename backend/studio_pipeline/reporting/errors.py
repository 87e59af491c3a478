"""
Reporting-specific errors.
"""

from ..jobs.models import ErrorCategory


class ReportingError(Exception):
    """Base exception for reporting failures."""

    category = ErrorCategory.OUTPUT


class ReportWriteError(ReportingError):
    """Failed to persist a generated report."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Failed to write report for job {job_id}: {reason}")
