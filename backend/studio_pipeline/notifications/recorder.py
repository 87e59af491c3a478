"""
In-memory job event timeline.

A listener that keeps every event it receives, in order. Used by tests and
by the status endpoint to show recent progress.
"""

import threading
from typing import List, Optional

from .models import JobEvent, JobEventType


class JobEventRecorder:
    """
    Append-only event timeline.

    Attach with emitter.subscribe(recorder). Recording never raises.
    """

    def __init__(self, max_events: Optional[int] = None):
        self._events: List[JobEvent] = []
        self._lock = threading.Lock()
        self._max_events = max_events

    def __call__(self, event: JobEvent) -> None:
        self.record(event)

    def record(self, event: JobEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self._max_events is not None and len(self._events) > self._max_events:
                del self._events[0]

    def get_events(self, job_id: Optional[str] = None) -> List[JobEvent]:
        """
        Get recorded events in order.

        Args:
            job_id: Only return events for this job

        Returns:
            List of JobEvent objects (chronologically ordered)
        """
        with self._lock:
            events = list(self._events)
        if job_id is None:
            return events
        return [e for e in events if e.job_id == job_id]

    def event_types(self, job_id: Optional[str] = None) -> List[JobEventType]:
        return [e.event_type for e in self.get_events(job_id)]

    def clear(self) -> None:
        """Clear all events (for testing only)."""
        with self._lock:
            self._events.clear()
