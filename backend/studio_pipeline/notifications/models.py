"""
Job progress event model.

Events describe what the pipeline is doing. They never control it.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..jobs.models import JobState


class JobEventType(str, Enum):
    """Progress events in lifecycle order."""

    CREATED = "created"
    STARTED = "started"
    ANALYZING = "analyzing"
    ANALYSIS_COMPLETE = "analysis_complete"
    TRANSFORMING = "transforming"
    TRANSFORM_PROGRESS = "transform_progress"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class JobPhase(str, Enum):
    """Coarse phase shown to users alongside overall progress."""

    QUEUED = "queued"
    ANALYZING = "analyzing"
    TRANSFORMING = "transforming"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


class JobEvent(BaseModel):
    """
    Single job progress event.

    progress is overall job progress 0-100, not step progress.
    """

    model_config = ConfigDict(extra="forbid")

    event_type: JobEventType
    job_id: str
    project_id: str
    state: JobState
    phase: JobPhase
    progress: int = Field(ge=0, le=100)
    preset_id: str
    message: str
    metrics: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    def __str__(self) -> str:
        return (
            f"[{self.timestamp.isoformat()}] {self.event_type.value} "
            f"(job: {self.job_id[:8]}) {self.progress}% - {self.message}"
        )
