"""
Immutable report data model.

One report is written per COMPLETED job, describing what was done, why,
and with what confidence. Reports are never updated after creation.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..presets.models import PresetCategory


class Report(BaseModel):
    """Human-readable account of a completed transformation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_id: str
    type: PresetCategory

    summary: str
    changes_applied: str
    rationale: str
    impact_assessment: str
    confidence: float = Field(ge=0.0, le=1.0)  # Fraction, rendered as a percentage
    limitations: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def confidence_label(self) -> str:
        return f"{round(self.confidence * 100)}%"
