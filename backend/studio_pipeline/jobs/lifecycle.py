"""
Job lifecycle transitions.

The only code that changes a job's state. Every transition is validated
against the state table, persisted, logged, and announced.

QUEUED → RUNNING      start()
RUNNING → COMPLETED   complete()
RUNNING → FAILED      fail()
QUEUED → FAILED       fail() at admission, or cancel()
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..notifications.emitter import guard_notifier
from .errors import JobCancellationError
from .models import ErrorCategory, Job, JobState
from .state import validate_job_transition

if TYPE_CHECKING:
    from ..assets.models import Asset
    from ..notifications.emitter import JobNotifier
    from ..persistence.repository import JobRepository
    from ..reporting.models import Report

logger = logging.getLogger(__name__)


CANCELLED_MESSAGE = "Job cancelled by user"


class JobLifecycle:
    """Validated, persisted state transitions for jobs."""

    def __init__(self, repository: "JobRepository", notifier: Optional["JobNotifier"] = None):
        self._repository = repository
        self._notifier = guard_notifier(notifier)

    def _transition(self, job: Job, target: JobState) -> Job:
        validate_job_transition(job.state, target)
        updated = job.model_copy(deep=True)
        logger.info(f"[LIFECYCLE] Job {job.id} transitioned: {job.state.value} -> {target.value}")
        updated.state = target
        return updated

    def start(self, job: Job) -> Job:
        """
        QUEUED → RUNNING.

        Raises:
            InvalidStateTransitionError: If the job is not QUEUED
        """
        running = self._transition(job, JobState.RUNNING)
        running.started_at = datetime.now()
        self._repository.save_job(running)
        self._notifier.started(running)
        return running

    def complete(
        self,
        job: Job,
        outputs: List["Asset"],
        report: "Report",
        metrics: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """
        RUNNING → COMPLETED, recording outputs and report.

        Raises:
            InvalidStateTransitionError: If the job is not RUNNING
        """
        completed = self._transition(job, JobState.COMPLETED)
        completed.completed_at = datetime.now()
        completed.output_asset_ids = [asset.id for asset in outputs]
        completed.report_id = report.id
        self._repository.save_job(completed)
        self._notifier.completed(completed, metrics)
        return completed

    def fail(self, job: Job, category: ErrorCategory, message: str) -> Job:
        """
        QUEUED or RUNNING → FAILED with a category and message.

        Raises:
            InvalidStateTransitionError: If the job is already terminal
        """
        failed = self._transition(job, JobState.FAILED)
        failed.completed_at = datetime.now()
        failed.error_category = category
        failed.error_message = message
        self._repository.save_job(failed)
        logger.error(f"[LIFECYCLE] Job {job.id} failed: [{category.value}] {message}")
        self._notifier.failed(failed, message)
        return failed

    def cancel(self, job: Job) -> Job:
        """
        QUEUED → FAILED (SYSTEM, "Job cancelled by user").

        Raises:
            JobCancellationError: If the job is not QUEUED
        """
        if job.state != JobState.QUEUED:
            raise JobCancellationError(job.id, job.state.value)

        cancelled = self._transition(job, JobState.FAILED)
        cancelled.completed_at = datetime.now()
        cancelled.error_category = ErrorCategory.SYSTEM
        cancelled.error_message = CANCELLED_MESSAGE
        self._repository.save_job(cancelled)
        logger.info(f"[LIFECYCLE] Job {job.id} cancelled")
        self._notifier.cancelled(cancelled)
        return cancelled
