"""
Job data model.

A job is one transformation request: a preset applied to an ordered list
of input assets. Jobs are created QUEUED by the caller, admitted by the
queue, run once, and end COMPLETED or FAILED.

State transitions are validated externally (see state.py).

Invariants held by the lifecycle, not by the model:
- error_category/error_message are set iff state is FAILED
- completed_at is set iff state is terminal
- started_at is set once the job has actually begun running
- input_asset_ids never change after admission
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class JobState(str, Enum):
    """Job lifecycle state."""

    QUEUED = "queued"  # Created, waiting for the worker
    RUNNING = "running"  # Picked up by the worker
    COMPLETED = "completed"  # Outputs and report written
    FAILED = "failed"  # Carries error_category and error_message


class ErrorCategory(str, Enum):
    """
    Failure taxonomy recorded on FAILED jobs.

    INGESTION: bad or missing input
    PROCESSING: preset/parameter problems or transformation failure
    OUTPUT: writing results failed
    DELIVERY: network or upload failure
    SYSTEM: everything else, including user cancellation
    """

    INGESTION = "INGESTION"
    PROCESSING = "PROCESSING"
    OUTPUT = "OUTPUT"
    DELIVERY = "DELIVERY"
    SYSTEM = "SYSTEM"


class Job(BaseModel):
    """A single transformation request and its outcome."""

    model_config = ConfigDict(extra="forbid")

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    created_by_id: Optional[str] = None

    # Request
    preset_id: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    input_asset_ids: List[str] = Field(default_factory=list)

    # State
    state: JobState = JobState.QUEUED
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Outcome
    output_asset_ids: List[str] = Field(default_factory=list)
    report_id: Optional[str] = None
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None

    # Audit link from a retry back to the job it replaces
    retried_from_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)
