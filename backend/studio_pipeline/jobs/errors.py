"""
Job-specific error types.

All errors inherit from JobError for easy catching.
Errors are explicit and provide actionable messages.
"""

from .models import ErrorCategory


class JobError(Exception):
    """Base exception for all job-related failures."""
    pass


class JobNotFoundError(JobError):
    """Raised when a job cannot be found in the repository."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class InvalidStateTransitionError(JobError):
    """Raised when attempting an illegal state transition."""

    def __init__(self, entity_type: str, current_state: str, target_state: str):
        self.entity_type = entity_type
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid {entity_type} state transition: "
            f"{current_state} -> {target_state}"
        )


class AdmissionError(JobError):
    """
    Raised when a job is rejected at admission.

    The job has already been marked FAILED with this category and message
    by the time the caller sees the exception.
    """

    def __init__(self, job_id: str, category: ErrorCategory, message: str):
        self.job_id = job_id
        self.category = category
        self.message = message
        super().__init__(message)


class JobCancellationError(JobError):
    """Raised when a job cannot be cancelled in its current state."""

    def __init__(self, job_id: str, state: str):
        self.job_id = job_id
        self.state = state
        super().__init__(f"Cannot cancel job in {state.upper()} state")


class JobRetryError(JobError):
    """Raised when retry is requested for a job that did not fail."""

    def __init__(self, job_id: str, state: str):
        self.job_id = job_id
        self.state = state
        super().__init__(f"Can only retry FAILED jobs (job {job_id} is {state.upper()})")


class JobNotQueuedError(JobError):
    """Raised when admission is requested for a job that is not QUEUED."""

    def __init__(self, job_id: str, state: str):
        self.job_id = job_id
        self.state = state
        super().__init__(f"Job {job_id} is not in QUEUED state (current: {state.upper()})")
