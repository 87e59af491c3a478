"""
Transformation strategy abstraction.

One strategy per preset category. A strategy turns one job's primary input
into metrics and (optionally) output files, using the audio tool client.
Strategies are stateless; everything they need arrives in the context.

Design rules:
- Strategies never touch the repository or job state
- Strategies report step progress through the context, never directly
- Strategies raise ExecutionError subclasses for expected failures
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..presets.models import PresetCategory

if TYPE_CHECKING:
    from ..assets.models import Asset
    from ..jobs.models import Job
    from ..notifications.emitter import JobNotifier
    from ..presets.models import PresetDefinition
    from .audio_tool import AudioTool


MIME_TYPES: Dict[str, str] = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "flac": "audio/flac",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
}


def mime_type_for(extension: str) -> str:
    return MIME_TYPES.get(extension.lower().lstrip("."), "application/octet-stream")


class OutputFile(BaseModel):
    """A file written by a transformation."""

    model_config = ConfigDict(extra="forbid")

    path: str  # Absolute path on disk
    file_key: str  # Storage key recorded on the output asset
    mime_type: str


class TransformationResult(BaseModel):
    """
    Outcome of running one job's transformation.

    simulated is True when no external tool ran; such results carry no
    output files and their metrics are placeholders.
    """

    model_config = ConfigDict(extra="forbid")

    category: PresetCategory
    preset_id: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    input_count: int
    processed_at: datetime = Field(default_factory=datetime.now)
    metrics: Dict[str, Any] = Field(default_factory=dict)
    output_files: List[OutputFile] = Field(default_factory=list)
    simulated: bool = False

    @property
    def confidence(self) -> float:
        value = self.metrics.get("confidence", 0.0)
        return float(value) if isinstance(value, (int, float)) else 0.0

    @property
    def duration_ms(self) -> int:
        value = self.metrics.get("duration_ms", 0)
        return int(value) if isinstance(value, (int, float)) else 0


class TransformationContext:
    """Everything a strategy needs for one run."""

    def __init__(
        self,
        job: "Job",
        preset: "PresetDefinition",
        parameters: Dict[str, Any],
        inputs: List["Asset"],
        input_path: Path,
        output_dir: Path,
        tool: "AudioTool",
        notifier: Optional["JobNotifier"] = None,
    ):
        self.job = job
        self.preset = preset
        self.parameters = parameters
        self.inputs = inputs
        self.input_path = input_path
        self.output_dir = output_dir
        self.tool = tool
        self.notifier = notifier

    @property
    def input_stem(self) -> str:
        return self.input_path.stem

    def output_file(self, filename: str, mime_type: str) -> OutputFile:
        """Describe an output file under this job's output directory."""
        return OutputFile(
            path=str(self.output_dir / filename),
            file_key=f"outputs/{self.job.id}/{filename}",
            mime_type=mime_type,
        )

    def report_progress(self, percent: int, label: str) -> None:
        if self.notifier is not None:
            self.notifier.transform_progress(self.job, percent, label)

    def report_analysis(self, metrics: Dict[str, Any]) -> None:
        if self.notifier is not None:
            self.notifier.analysis_complete(self.job, metrics)

    def result(
        self,
        metrics: Dict[str, Any],
        output_files: Optional[List[OutputFile]] = None,
    ) -> TransformationResult:
        return TransformationResult(
            category=self.preset.category,
            preset_id=self.preset.id,
            parameters=dict(self.parameters),
            input_count=len(self.inputs),
            metrics=metrics,
            output_files=output_files or [],
        )


class TransformationStrategy(ABC):
    """Live execution for one preset category."""

    @property
    @abstractmethod
    def category(self) -> PresetCategory:
        """The preset category this strategy executes."""
        pass

    @abstractmethod
    def execute(self, context: TransformationContext) -> TransformationResult:
        """
        Run the transformation.

        Raises:
            ExecutionError: On any expected failure
        """
        pass
