"""
Job pipeline core: job model, state machine and error taxonomy.

The queue (queue.py) and lifecycle (lifecycle.py) modules are imported
directly by callers; this package root only exposes the leaf modules so
that execution and reporting code can depend on job types without
pulling in the queue.
"""

from .errors import (
    JobError,
    JobNotFoundError,
    InvalidStateTransitionError,
    AdmissionError,
    JobCancellationError,
    JobRetryError,
    JobNotQueuedError,
)
from .models import (
    JobState,
    ErrorCategory,
    Job,
)
from .state import (
    TERMINAL_JOB_STATES,
    is_job_terminal,
    can_transition_job,
    validate_job_transition,
)
from .failures import categorize_error, classify_error_message

__all__ = [
    # Errors
    "JobError",
    "JobNotFoundError",
    "InvalidStateTransitionError",
    "AdmissionError",
    "JobCancellationError",
    "JobRetryError",
    "JobNotQueuedError",
    # Models
    "JobState",
    "ErrorCategory",
    "Job",
    # State validation
    "TERMINAL_JOB_STATES",
    "is_job_terminal",
    "can_transition_job",
    "validate_job_transition",
    # Classification
    "categorize_error",
    "classify_error_message",
]
