"""
Single-worker FIFO job queue.

Admission validates a QUEUED job and appends it to the run queue; one
worker drains the queue, processing each job to a terminal state before
taking the next.

Design rules:
- No prioritization
- No parallel execution: at most one job is RUNNING per queue
- Admission failures mark the job FAILED and never reach RUNNING
- A failing job never stops the worker
- The run queue lives in memory; it is lost on restart

Each JobQueue is self-contained. Tests build one per test with
autostart=False and drain it explicitly with process_queue().
"""

import logging
import threading
from collections import deque
from typing import Deque, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..assets.models import Asset, AssetCategory
from ..notifications.emitter import guard_notifier
from ..reporting.models import Report
from .errors import AdmissionError, JobCancellationError, JobNotQueuedError, JobRetryError
from .failures import categorize_error
from .lifecycle import JobLifecycle
from .models import ErrorCategory, Job, JobState

if TYPE_CHECKING:
    from ..assets.lineage import AssetLineageTracker
    from ..execution.dispatcher import TransformationDispatcher
    from ..notifications.emitter import JobNotifier
    from ..persistence.repository import JobRepository
    from ..presets.registry import PresetRegistry
    from ..reporting.generator import ReportGenerator

logger = logging.getLogger(__name__)


class JobStatus(BaseModel):
    """Snapshot of a job plus its place in the run queue."""

    model_config = ConfigDict(extra="forbid")

    job: Job
    queue_position: Optional[int] = None  # 1-based; None when not waiting
    queue_length: int
    is_current: bool = False
    outputs: List[Asset] = Field(default_factory=list)
    report: Optional[Report] = None


class JobQueue:
    """
    FIFO run queue with a single background worker.

    Thread-safe. The lock guards the queue, the processing flag and the
    current job id; job processing itself runs outside the lock.
    """

    def __init__(
        self,
        repository: "JobRepository",
        preset_registry: "PresetRegistry",
        dispatcher: "TransformationDispatcher",
        lineage: "AssetLineageTracker",
        reports: "ReportGenerator",
        notifier: Optional["JobNotifier"] = None,
        autostart: bool = True,
    ):
        """
        Args:
            repository: Job/asset/report storage
            preset_registry: Preset catalog and validator
            dispatcher: Runs transformations
            lineage: Creates output assets
            reports: Writes reports
            notifier: Progress hooks (failures are logged, never raised)
            autostart: Start a worker thread on admission. When False the
                caller drains the queue with process_queue().
        """
        self._repository = repository
        self._presets = preset_registry
        self._dispatcher = dispatcher
        self._lineage = lineage
        self._reports = reports
        self._notifier = guard_notifier(notifier)
        self._lifecycle = JobLifecycle(repository, self._notifier)
        self.autostart = autostart

        self._lock = threading.Lock()
        self._queue: Deque[str] = deque()
        self._processing = False
        self._current_job_id: Optional[str] = None
        self._idle = threading.Event()
        self._idle.set()
        self._worker: Optional[threading.Thread] = None

    # =========================================================================
    # Queue inspection
    # =========================================================================

    @property
    def current_job_id(self) -> Optional[str]:
        with self._lock:
            return self._current_job_id

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._processing

    def queued_job_ids(self) -> List[str]:
        """Waiting job ids in FIFO order (the running job is not included)."""
        with self._lock:
            return list(self._queue)

    def get_queue_position(self, job_id: str) -> Optional[int]:
        """1-based position among waiting jobs, or None if not waiting."""
        with self._lock:
            try:
                return self._queue.index(job_id) + 1
            except ValueError:
                return None

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the worker has drained the queue.

        Returns:
            True if idle, False on timeout
        """
        return self._idle.wait(timeout)

    # =========================================================================
    # Admission
    # =========================================================================

    def create_job(
        self,
        project_id: str,
        preset_id: str,
        input_asset_ids: List[str],
        parameters: Optional[dict] = None,
        created_by_id: Optional[str] = None,
    ) -> Job:
        """Create and store a QUEUED job. Does not admit it."""
        job = Job(
            project_id=project_id,
            preset_id=preset_id,
            input_asset_ids=list(input_asset_ids),
            parameters=dict(parameters or {}),
            created_by_id=created_by_id,
        )
        self._repository.add_job(job)
        logger.info(f"[JobQueue] Created job {job.id} ({preset_id}, {len(input_asset_ids)} input(s))")
        return job

    def _reject(self, job: Job, category: ErrorCategory, message: str) -> None:
        self._lifecycle.fail(job, category, message)
        raise AdmissionError(job.id, category, message)

    def enqueue_job(self, job_id: str) -> int:
        """
        Validate a QUEUED job and append it to the run queue.

        Admitting a job that is already waiting returns its current
        position without queueing it twice.

        Args:
            job_id: Job to admit

        Returns:
            1-based queue position

        Raises:
            JobNotFoundError: Unknown job
            JobNotQueuedError: Job is not QUEUED
            AdmissionError: Validation failed; the job is now FAILED
        """
        job = self._repository.get_job_or_raise(job_id)
        if job.state != JobState.QUEUED:
            raise JobNotQueuedError(job_id, job.state.value)

        with self._lock:
            if job_id in self._queue:
                return self._queue.index(job_id) + 1

        if not job.input_asset_ids:
            self._reject(job, ErrorCategory.INGESTION, "No input assets specified")

        inputs = self._repository.get_assets(job.input_asset_ids)
        for asset_id, asset in zip(job.input_asset_ids, inputs):
            if asset is None:
                self._reject(job, ErrorCategory.INGESTION, f"Input asset not found: {asset_id}")

        if any(asset.category == AssetCategory.FINAL for asset in inputs):
            self._reject(job, ErrorCategory.INGESTION, "Cannot process FINAL assets")

        if self._presets.get_preset_definition(job.preset_id) is None:
            self._reject(job, ErrorCategory.PROCESSING, f"Unknown preset: {job.preset_id}")

        validation = self._presets.validate_parameters(job.preset_id, job.parameters)
        if not validation.valid:
            self._reject(job, ErrorCategory.PROCESSING, "; ".join(validation.errors))

        with self._lock:
            if job_id in self._queue:
                return self._queue.index(job_id) + 1
            self._queue.append(job_id)
            position = len(self._queue)

        logger.info(f"[JobQueue] Job {job_id} enqueued at position {position}")
        self._notifier.created(job)

        if self.autostart:
            self._start_worker()

        return position

    # =========================================================================
    # Worker
    # =========================================================================

    def _start_worker(self) -> None:
        with self._lock:
            if self._processing or not self._queue:
                return
            self._processing = True
            self._idle.clear()

        self._worker = threading.Thread(
            target=self._drain,
            name="job-queue-worker",
            daemon=True,
        )
        self._worker.start()

    def process_queue(self) -> None:
        """
        Drain the queue on the calling thread.

        No-op when the queue is empty or another drain is in progress.
        """
        with self._lock:
            if self._processing or not self._queue:
                return
            self._processing = True
            self._idle.clear()

        self._drain()

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._queue:
                    self._processing = False
                    self._current_job_id = None
                    self._idle.set()
                    return
                job_id = self._queue.popleft()
                self._current_job_id = job_id

            try:
                self._process_job(job_id)
            except Exception as e:
                logger.exception(f"[JobQueue] Unhandled error processing job {job_id}: {e}")
            finally:
                with self._lock:
                    self._current_job_id = None

    def _process_job(self, job_id: str) -> None:
        """Run one admitted job to a terminal state. Never raises for job failures."""
        job = self._repository.get_job(job_id)
        if job is None:
            logger.warning(f"[JobQueue] Job {job_id} vanished before processing")
            return
        if job.state != JobState.QUEUED:
            logger.warning(f"[JobQueue] Skipping job {job_id} in state {job.state.value}")
            return

        try:
            job = self._lifecycle.start(job)

            preset = self._presets.require_preset(job.preset_id)
            parameters = self._presets.effective_parameters(job.preset_id, job.parameters)
            inputs = self._dispatcher.load_inputs(job)

            self._notifier.analyzing(job)
            result = self._dispatcher.execute_transformation(job, parameters, inputs)

            self._notifier.finalizing(job)
            outputs = self._lineage.create_output_assets(job, inputs, preset, result)
            report = self._reports.generate_report(job, preset, parameters, result, outputs)

            self._lifecycle.complete(job, outputs, report, metrics=result.metrics)
            logger.info(f"[JobQueue] Job {job_id} completed with {len(outputs)} output(s)")

        except Exception as e:
            category = categorize_error(e)
            logger.error(f"[JobQueue] Job {job_id} raised {type(e).__name__}: {e}")
            try:
                self._lifecycle.fail(job, category, str(e) or type(e).__name__)
            except Exception as fail_error:
                logger.error(f"[JobQueue] Could not record failure for job {job_id}: {fail_error}")

    # =========================================================================
    # Status, cancellation, retry
    # =========================================================================

    def get_job_status(self, job_id: str) -> JobStatus:
        """
        Job snapshot with queue position, outputs and report.

        Raises:
            JobNotFoundError: Unknown job
        """
        job = self._repository.get_job_or_raise(job_id)
        with self._lock:
            try:
                position: Optional[int] = self._queue.index(job_id) + 1
            except ValueError:
                position = None
            queue_length = len(self._queue)
            is_current = self._current_job_id == job_id

        outputs = [a for a in self._repository.get_assets(job.output_asset_ids) if a is not None]
        report = self._repository.get_report(job.report_id) if job.report_id else None

        return JobStatus(
            job=job,
            queue_position=position,
            queue_length=queue_length,
            is_current=is_current,
            outputs=outputs,
            report=report,
        )

    def cancel_job(self, job_id: str) -> Job:
        """
        Cancel a job that is still waiting.

        Running and terminal jobs cannot be cancelled; nothing changes for them.

        Returns:
            The job, now FAILED (SYSTEM, "Job cancelled by user")

        Raises:
            JobNotFoundError: Unknown job
            JobCancellationError: Job is not QUEUED
        """
        with self._lock:
            job = self._repository.get_job_or_raise(job_id)
            if job.state != JobState.QUEUED or self._current_job_id == job_id:
                state = JobState.RUNNING if self._current_job_id == job_id else job.state
                raise JobCancellationError(job_id, state.value)
            try:
                self._queue.remove(job_id)
            except ValueError:
                pass

        return self._lifecycle.cancel(job)

    def retry_job(self, job_id: str, user_id: Optional[str] = None) -> Job:
        """
        Re-run a FAILED job as a new job.

        The original job is left untouched. The new job copies preset,
        parameters, inputs and project, and links back via retried_from_id.

        Args:
            job_id: FAILED job to retry
            user_id: Creator of the new job (defaults to the original creator)

        Returns:
            The new job as stored after admission

        Raises:
            JobNotFoundError: Unknown job
            JobRetryError: Job is not FAILED
            AdmissionError: The new job failed admission (it is now FAILED)
        """
        original = self._repository.get_job_or_raise(job_id)
        if original.state != JobState.FAILED:
            raise JobRetryError(job_id, original.state.value)

        retry = Job(
            project_id=original.project_id,
            created_by_id=user_id or original.created_by_id,
            preset_id=original.preset_id,
            parameters=dict(original.parameters),
            input_asset_ids=list(original.input_asset_ids),
            retried_from_id=original.id,
        )
        self._repository.add_job(retry)
        logger.info(f"[JobQueue] Job {job_id} retried as {retry.id}")

        self.enqueue_job(retry.id)
        return self._repository.get_job_or_raise(retry.id)
