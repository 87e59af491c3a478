"""
Output asset creation and lineage queries.

Every asset a job produces points back at its source through parent_id
and at the job through output_job_id. Output category is FINAL for
mastering presets and DERIVED for everything else; stems are always
DERIVED.

Three output shapes:
- Real files: one asset per file the transformation wrote, parented to
  the first input
- Placeholders: when nothing was written (simulated runs, analysis), one
  asset per input, parented to that input
- Stems: for separation presets, one extra asset per stem, parented to
  the first input
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from .models import Asset, AssetCategory

if TYPE_CHECKING:
    from ..execution.base import TransformationResult
    from ..jobs.models import Job
    from ..persistence.repository import JobRepository
    from ..presets.models import PresetDefinition

logger = logging.getLogger(__name__)


def _scalar_metrics(metrics: Dict[str, Any]) -> Dict[str, Any]:
    """Top-level scalar metrics only; nested measurement blocks stay on the report."""
    return {
        key: value for key, value in metrics.items()
        if isinstance(value, (int, float, str, bool)) or value is None
    }


def output_name(input_name: str, suffix: str) -> str:
    """Input name with its extension replaced by the preset suffix."""
    return Path(input_name).stem + suffix


class AssetLineageTracker:
    """Creates output assets for a completed transformation."""

    def __init__(self, repository: "JobRepository"):
        self._repository = repository

    def create_output_assets(
        self,
        job: "Job",
        inputs: List[Asset],
        preset: "PresetDefinition",
        result: "TransformationResult",
    ) -> List[Asset]:
        """
        Build the job's output assets.

        Nothing is stored here; the report generator persists the outputs
        together with the report.

        Args:
            job: RUNNING job
            inputs: Input assets in job order (at least one)
            preset: The job's preset
            result: Transformation result

        Returns:
            Every asset created, stems included, in creation order
        """
        category = AssetCategory.FINAL if preset.produces_final_assets else AssetCategory.DERIVED
        base_metadata = {
            "source_job_id": job.id,
            "preset": preset.id,
            "processed_at": result.processed_at.isoformat(),
            "confidence": result.confidence,
        }

        outputs: List[Asset] = []

        if result.output_files:
            for output_file in result.output_files:
                metadata = dict(base_metadata)
                metadata.update(_scalar_metrics(result.metrics))
                outputs.append(Asset(
                    name=Path(output_file.path).name,
                    category=category,
                    file_key=output_file.file_key,
                    mime_type=output_file.mime_type,
                    size_bytes=self._file_size(output_file.path),
                    parent_id=inputs[0].id,
                    project_id=job.project_id,
                    output_job_id=job.id,
                    metadata=metadata,
                ))
        else:
            for source in inputs:
                name = output_name(source.name, preset.output_suffix)
                outputs.append(Asset(
                    name=name,
                    category=category,
                    file_key=f"outputs/{job.id}/{name}",
                    mime_type=preset.output_mime_type,
                    size_bytes=source.size_bytes,
                    parent_id=source.id,
                    project_id=job.project_id,
                    output_job_id=job.id,
                    metadata=dict(base_metadata),
                ))

        outputs.extend(self._stem_assets(job, inputs[0], preset, result))

        logger.info(f"[Lineage] Job {job.id} built {len(outputs)} output asset(s)")
        return outputs

    def _stem_assets(
        self,
        job: "Job",
        source: Asset,
        preset: "PresetDefinition",
        result: "TransformationResult",
    ) -> List[Asset]:
        if not preset.stems:
            return []

        stem_count = int(result.parameters.get("stemCount", len(preset.stems)))
        base = Path(source.name).stem
        stems = []
        for stem in preset.stems[:stem_count]:
            name = f"{base}_{stem}"
            stems.append(Asset(
                name=name,
                category=AssetCategory.DERIVED,
                file_key=f"outputs/{job.id}/{name}.wav",
                mime_type="audio/wav",
                size_bytes=0,
                parent_id=source.id,
                project_id=job.project_id,
                output_job_id=job.id,
                metadata={"stem": stem, "source_job_id": job.id},
            ))
        return stems

    @staticmethod
    def _file_size(path: str) -> int:
        try:
            return Path(path).stat().st_size
        except OSError:
            return 0

    # =========================================================================
    # Lineage queries
    # =========================================================================

    def get_lineage(self, asset_id: str) -> List[Asset]:
        """
        Walk parent links from an asset back to its root.

        Returns:
            [asset, parent, grandparent, ...]; stops at a missing parent
            (parent links are weak) or a cycle
        """
        chain: List[Asset] = []
        seen = set()
        current: Optional[str] = asset_id
        while current is not None and current not in seen:
            asset = self._repository.get_asset(current)
            if asset is None:
                break
            chain.append(asset)
            seen.add(current)
            current = asset.parent_id
        return chain

    def get_derivatives(self, asset_id: str) -> List[Asset]:
        """Direct children of an asset."""
        return self._repository.list_derivatives(asset_id)
