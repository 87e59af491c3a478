"""
Job notification emitter.

The pipeline reports progress through the JobNotifier hooks. The default
implementation, JobEventEmitter, turns each hook into a JobEvent and fans
it out to subscribed listeners (per job, per project, or global).

Design rules:
- Emission NEVER gates execution
- A failing listener is logged and skipped; other listeners still run
- Listeners run synchronously on the worker thread and should be quick
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..jobs.models import Job
from .models import JobEvent, JobEventType, JobPhase

logger = logging.getLogger(__name__)


JobEventListener = Callable[[JobEvent], None]

# Transform step progress (0-100) maps onto this slice of overall progress
TRANSFORM_PROGRESS_START = 40
TRANSFORM_PROGRESS_SPAN = 40


class JobNotifier(ABC):
    """Progress hooks called by the queue, lifecycle and dispatcher."""

    @abstractmethod
    def created(self, job: Job) -> None: ...

    @abstractmethod
    def started(self, job: Job) -> None: ...

    @abstractmethod
    def analyzing(self, job: Job) -> None: ...

    @abstractmethod
    def analysis_complete(self, job: Job, metrics: Dict[str, Any]) -> None: ...

    @abstractmethod
    def transforming(self, job: Job, operation: str) -> None: ...

    @abstractmethod
    def transform_progress(self, job: Job, percent: int, label: str) -> None: ...

    @abstractmethod
    def finalizing(self, job: Job) -> None: ...

    @abstractmethod
    def completed(self, job: Job, metrics: Optional[Dict[str, Any]] = None) -> None: ...

    @abstractmethod
    def failed(self, job: Job, message: str) -> None: ...

    @abstractmethod
    def cancelled(self, job: Job) -> None: ...


class JobEventEmitter(JobNotifier):
    """Builds JobEvents and delivers them to subscribed listeners."""

    def __init__(self):
        self._lock = threading.Lock()
        # token -> (listener, job_id filter, project_id filter)
        self._listeners: Dict[str, Tuple[JobEventListener, Optional[str], Optional[str]]] = {}

    # =========================================================================
    # Subscription
    # =========================================================================

    def subscribe(
        self,
        listener: JobEventListener,
        job_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> str:
        """
        Register a listener.

        With no filters the listener receives every event. With job_id or
        project_id it receives only matching events.

        Returns:
            Subscription token for unsubscribe()
        """
        token = str(uuid.uuid4())
        with self._lock:
            self._listeners[token] = (listener, job_id, project_id)
        return token

    def unsubscribe(self, token: str) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    # =========================================================================
    # Delivery
    # =========================================================================

    def emit(self, event: JobEvent) -> None:
        """Deliver an event to every matching listener. Never raises."""
        with self._lock:
            targets = list(self._listeners.values())

        for listener, job_filter, project_filter in targets:
            if job_filter is not None and job_filter != event.job_id:
                continue
            if project_filter is not None and project_filter != event.project_id:
                continue
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    f"[Notify] Listener failed on {event.event_type.value} "
                    f"for job {event.job_id}: {e}"
                )

    def _emit(
        self,
        job: Job,
        event_type: JobEventType,
        phase: JobPhase,
        progress: int,
        message: str,
        metrics: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            event = JobEvent(
                event_type=event_type,
                job_id=job.id,
                project_id=job.project_id,
                state=job.state,
                phase=phase,
                progress=max(0, min(100, progress)),
                preset_id=job.preset_id,
                message=message,
                metrics=metrics,
            )
        except Exception as e:
            logger.warning(f"[Notify] Could not build {event_type.value} event for job {job.id}: {e}")
            return
        self.emit(event)

    # =========================================================================
    # JobNotifier hooks
    # =========================================================================

    def created(self, job: Job) -> None:
        self._emit(job, JobEventType.CREATED, JobPhase.QUEUED, 0, "Job queued for processing")

    def started(self, job: Job) -> None:
        self._emit(job, JobEventType.STARTED, JobPhase.ANALYZING, 5, "Starting job processing")

    def analyzing(self, job: Job) -> None:
        self._emit(
            job, JobEventType.ANALYZING, JobPhase.ANALYZING, 15,
            "Analyzing input audio characteristics",
        )

    def analysis_complete(self, job: Job, metrics: Dict[str, Any]) -> None:
        self._emit(
            job, JobEventType.ANALYSIS_COMPLETE, JobPhase.ANALYZING, 30,
            "Analysis complete", metrics=metrics,
        )

    def transforming(self, job: Job, operation: str) -> None:
        self._emit(
            job, JobEventType.TRANSFORMING, JobPhase.TRANSFORMING,
            TRANSFORM_PROGRESS_START, operation,
        )

    def transform_progress(self, job: Job, percent: int, label: str) -> None:
        overall = TRANSFORM_PROGRESS_START + round(percent * TRANSFORM_PROGRESS_SPAN / 100)
        self._emit(job, JobEventType.TRANSFORM_PROGRESS, JobPhase.TRANSFORMING, overall, label)

    def finalizing(self, job: Job) -> None:
        self._emit(
            job, JobEventType.FINALIZING, JobPhase.FINALIZING, 85,
            "Writing output and generating report",
        )

    def completed(self, job: Job, metrics: Optional[Dict[str, Any]] = None) -> None:
        self._emit(
            job, JobEventType.COMPLETED, JobPhase.COMPLETE, 100,
            "Job completed successfully", metrics=metrics,
        )

    def failed(self, job: Job, message: str) -> None:
        self._emit(job, JobEventType.FAILED, JobPhase.FAILED, 0, message)

    def cancelled(self, job: Job) -> None:
        self._emit(job, JobEventType.CANCELLED, JobPhase.FAILED, 0, "Job cancelled by user")


class NullNotifier(JobNotifier):
    """Discards every notification."""

    def created(self, job: Job) -> None:
        pass

    def started(self, job: Job) -> None:
        pass

    def analyzing(self, job: Job) -> None:
        pass

    def analysis_complete(self, job: Job, metrics: Dict[str, Any]) -> None:
        pass

    def transforming(self, job: Job, operation: str) -> None:
        pass

    def transform_progress(self, job: Job, percent: int, label: str) -> None:
        pass

    def finalizing(self, job: Job) -> None:
        pass

    def completed(self, job: Job, metrics: Optional[Dict[str, Any]] = None) -> None:
        pass

    def failed(self, job: Job, message: str) -> None:
        pass

    def cancelled(self, job: Job) -> None:
        pass


class GuardedNotifier(JobNotifier):
    """
    Wraps any JobNotifier so that a failing hook is logged and skipped.

    The pipeline only ever talks to notifiers through this wrapper.
    """

    def __init__(self, inner: JobNotifier):
        self.inner = inner

    def _call(self, hook: str, job: Job, *args: Any) -> None:
        try:
            getattr(self.inner, hook)(job, *args)
        except Exception as e:
            logger.warning(f"[Notify] {hook} notification failed for job {job.id}: {e}")

    def created(self, job: Job) -> None:
        self._call("created", job)

    def started(self, job: Job) -> None:
        self._call("started", job)

    def analyzing(self, job: Job) -> None:
        self._call("analyzing", job)

    def analysis_complete(self, job: Job, metrics: Dict[str, Any]) -> None:
        self._call("analysis_complete", job, metrics)

    def transforming(self, job: Job, operation: str) -> None:
        self._call("transforming", job, operation)

    def transform_progress(self, job: Job, percent: int, label: str) -> None:
        self._call("transform_progress", job, percent, label)

    def finalizing(self, job: Job) -> None:
        self._call("finalizing", job)

    def completed(self, job: Job, metrics: Optional[Dict[str, Any]] = None) -> None:
        self._call("completed", job, metrics)

    def failed(self, job: Job, message: str) -> None:
        self._call("failed", job, message)

    def cancelled(self, job: Job) -> None:
        self._call("cancelled", job)


def guard_notifier(notifier: Optional[JobNotifier]) -> GuardedNotifier:
    """Wrap a notifier (or None) so hooks never raise into the pipeline."""
    if isinstance(notifier, GuardedNotifier):
        return notifier
    return GuardedNotifier(notifier if notifier is not None else NullNotifier())
