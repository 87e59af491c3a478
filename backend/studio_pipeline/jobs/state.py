"""
State transition validation for jobs.

Job lifecycle: QUEUED → RUNNING → COMPLETED | FAILED
A QUEUED job may also go straight to FAILED (rejected at admission, or
cancelled before the worker picked it up).

INVARIANT: Terminal job states (COMPLETED, FAILED) are immutable. Retrying
a failed job creates a new job; the failed one never moves again.
"""

from typing import FrozenSet, Set, Tuple

from .errors import InvalidStateTransitionError
from .models import JobState


TERMINAL_JOB_STATES: FrozenSet[JobState] = frozenset({
    JobState.COMPLETED,
    JobState.FAILED,
})


def is_job_terminal(state: JobState) -> bool:
    """
    Check if a job state is terminal (immutable).

    Args:
        state: The job state to check

    Returns:
        True if the state is terminal, False otherwise
    """
    return state in TERMINAL_JOB_STATES


_JOB_TRANSITIONS: Set[Tuple[JobState, JobState]] = {
    # Worker picks the job up
    (JobState.QUEUED, JobState.RUNNING),

    # Execution outcome
    (JobState.RUNNING, JobState.COMPLETED),
    (JobState.RUNNING, JobState.FAILED),

    # Admission rejection or cancellation
    (JobState.QUEUED, JobState.FAILED),
}


def can_transition_job(from_state: JobState, to_state: JobState) -> bool:
    """
    Check if a job state transition is legal.

    Staying in the same non-terminal state is allowed (idempotent saves).
    Terminal states cannot transition to anything, themselves included.

    Args:
        from_state: Current job state
        to_state: Target job state

    Returns:
        True if the transition is allowed, False otherwise
    """
    if is_job_terminal(from_state):
        return False

    if from_state == to_state:
        return True

    return (from_state, to_state) in _JOB_TRANSITIONS


def validate_job_transition(from_state: JobState, to_state: JobState) -> None:
    """
    Validate a job state transition, raising an exception if illegal.

    Args:
        from_state: Current job state
        to_state: Target job state

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_job(from_state, to_state):
        raise InvalidStateTransitionError("job", from_state.value, to_state.value)
