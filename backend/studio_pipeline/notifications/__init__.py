"""
Job progress notifications.

JobNotifier is the hook interface the pipeline calls. JobEventEmitter
publishes those hooks as JobEvents to subscribed listeners. The pipeline
wraps whatever notifier it is given in GuardedNotifier, so notification
failures never change a job's outcome.
"""

from .models import JobEvent, JobEventType, JobPhase
from .emitter import (
    JobNotifier,
    JobEventEmitter,
    JobEventListener,
    NullNotifier,
    GuardedNotifier,
    guard_notifier,
)
from .recorder import JobEventRecorder

__all__ = [
    "JobEvent",
    "JobEventType",
    "JobPhase",
    "JobNotifier",
    "JobEventEmitter",
    "JobEventListener",
    "NullNotifier",
    "GuardedNotifier",
    "guard_notifier",
    "JobEventRecorder",
]
