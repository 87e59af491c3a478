"""
Asset data model.

An asset is an audio (or analysis) file belonging to a project. Inputs are
uploaded as RAW; jobs produce DERIVED or FINAL assets that point back at
their source through parent_id.

Assets are created once and never mutated.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AssetCategory(str, Enum):
    RAW = "RAW"  # Uploaded source material
    DERIVED = "DERIVED"  # Intermediate output, may be processed further
    FINAL = "FINAL"  # Delivery master, never a job input


class Asset(BaseModel):
    """A stored audio file and its lineage back-reference."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    category: AssetCategory = AssetCategory.RAW
    file_key: str  # Storage key, relative to the storage root unless absolute
    mime_type: str = "audio/wav"
    size_bytes: int = Field(default=0, ge=0)

    # Lineage
    parent_id: Optional[str] = None  # Weak reference, parent may be deleted
    project_id: str
    output_job_id: Optional[str] = None  # Job that produced this asset

    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
