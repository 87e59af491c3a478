"""
Report generation for completed jobs.

Each COMPLETED job gets exactly one report explaining what was applied,
why, what changed, and what the automated result cannot guarantee.

Reports are deterministic: the same job, parameters, result and outputs
always produce the same text.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..presets.models import PresetCategory
from .errors import ReportWriteError
from .models import Report

if TYPE_CHECKING:
    from ..assets.models import Asset
    from ..execution.base import TransformationResult
    from ..jobs.models import Job
    from ..persistence.repository import JobRepository
    from ..presets.models import PresetDefinition

logger = logging.getLogger(__name__)


DEFAULT_CHANGES = "Default preset parameters applied."
DEFAULT_RATIONALE = "Standard processing applied per preset definition."
SIMULATION_LIMITATION = "Results were simulated; no audio was processed."

_RATIONALES: Dict[PresetCategory, str] = {
    PresetCategory.ANALYSIS: (
        "Full spectral and loudness analysis performed to provide "
        "comprehensive audio metrics."
    ),
    PresetCategory.CONVERSION: (
        "Format conversion applied to meet delivery requirements with "
        "specified quality settings."
    ),
    PresetCategory.EDITING: (
        "Stem separation applied using AI-based source separation for "
        "maximum isolation quality."
    ),
    PresetCategory.MIXING: (
        "Loudness normalization applied to achieve consistent perceived "
        "volume across tracks."
    ),
}

_LIMITATIONS: Dict[PresetCategory, str] = {
    PresetCategory.MASTERING: (
        "Automated mastering may not capture all artistic nuances. "
        "Review output for quality."
    ),
    PresetCategory.ANALYSIS: "Analysis accuracy depends on input audio quality and format.",
    PresetCategory.EDITING: "Stem separation quality varies with source material complexity.",
    PresetCategory.CONVERSION: "Lossy format conversion may reduce audio fidelity.",
}


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_summary(preset: "PresetDefinition", input_count: int, output_count: int) -> str:
    return (
        f'Applied "{preset.name}" transformation to {input_count} input asset(s), '
        f"producing {output_count} output asset(s)."
    )


def build_changes_applied(preset: "PresetDefinition", parameters: Dict[str, Any]) -> str:
    """One 'key: value unit' line per schema parameter, in parameter order."""
    lines = []
    for key, value in parameters.items():
        spec = preset.parameters.get(key)
        if spec is None:
            continue
        unit = f" {spec.unit}" if spec.unit else ""
        lines.append(f"{key}: {format_value(value)}{unit}")
    return "\n".join(lines) or DEFAULT_CHANGES


def build_rationale(preset: "PresetDefinition", parameters: Dict[str, Any]) -> str:
    if preset.category == PresetCategory.MASTERING:
        loudness = format_value(parameters.get("loudness", -14))
        return (
            f"Target loudness set to {loudness} LUFS to meet streaming platform "
            f"standards while preserving dynamic range."
        )
    return _RATIONALES.get(preset.category, DEFAULT_RATIONALE)


def build_impact_assessment(input_count: int, result: "TransformationResult") -> str:
    return (
        f"Processing completed in {result.duration_ms}ms. "
        f"{input_count} input(s) processed with {round(result.confidence * 100)}% confidence. "
        f"Output assets created and linked to source lineage."
    )


def build_limitations(preset: "PresetDefinition", simulated: bool) -> Optional[str]:
    limitation = _LIMITATIONS.get(preset.category)
    if simulated:
        return f"{limitation} {SIMULATION_LIMITATION}" if limitation else SIMULATION_LIMITATION
    return limitation


class ReportGenerator:
    """Builds the report for a completed job and stores it with the outputs."""

    def __init__(self, repository: "JobRepository"):
        self._repository = repository

    def build_report(
        self,
        job: "Job",
        preset: "PresetDefinition",
        parameters: Dict[str, Any],
        result: "TransformationResult",
        outputs: List["Asset"],
    ) -> Report:
        """Build a report without persisting it."""
        input_count = len(job.input_asset_ids)
        return Report(
            job_id=job.id,
            type=preset.category,
            summary=build_summary(preset, input_count, len(outputs)),
            changes_applied=build_changes_applied(preset, parameters),
            rationale=build_rationale(preset, parameters),
            impact_assessment=build_impact_assessment(input_count, result),
            confidence=min(1.0, max(0.0, result.confidence)),
            limitations=build_limitations(preset, result.simulated),
        )

    def generate_report(
        self,
        job: "Job",
        preset: "PresetDefinition",
        parameters: Dict[str, Any],
        result: "TransformationResult",
        outputs: List["Asset"],
    ) -> Report:
        """
        Build the job's report and persist it together with the outputs.

        Outputs and report are stored in one repository write, so a failed
        write leaves neither behind.

        Args:
            job: RUNNING job about to complete
            preset: The job's preset
            parameters: Effective parameters
            result: Transformation result
            outputs: Output assets built for the job, not yet stored

        Returns:
            The persisted Report

        Raises:
            ReportWriteError: If the outputs and report cannot be stored
        """
        report = self.build_report(job, preset, parameters, result, outputs)
        try:
            self._repository.add_outputs(outputs, report)
        except Exception as e:
            raise ReportWriteError(job.id, str(e)) from e
        logger.info(f"[Report] Report {report.id} written for job {job.id}")
        return report


def render_text(report: Report) -> str:
    """Plain-text rendering for logs and downloads."""
    sections = [
        f"{report.type.value} REPORT",
        f"Job: {report.job_id}",
        f"Generated: {report.created_at.isoformat()}",
        "",
        "Summary",
        report.summary,
        "",
        "Changes applied",
        report.changes_applied,
        "",
        "Rationale",
        report.rationale,
        "",
        "Impact",
        report.impact_assessment,
        "",
        f"Confidence: {report.confidence_label}",
    ]
    if report.limitations:
        sections.extend(["", "Limitations", report.limitations])
    return "\n".join(sections) + "\n"
