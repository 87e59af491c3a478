"""
Transformation dispatcher.

Routes a RUNNING job to the executor for its preset category and returns
a TransformationResult. Which executor runs is decided explicitly:

- LIVE: the live strategy runs; a missing input file fails the job (INGESTION)
- FALLBACK: the live strategy runs when the input file exists, the
  simulator otherwise
- DRY_RUN: the simulator always runs

Categories with no live strategy are simulated in every mode, with a
warning, so their results are always marked simulated.

Design rules:
- The dispatcher never changes job state; the queue owns that
- Expected failures surface as ExecutionError subclasses with a category
- Anything else a strategy raises is wrapped in TransformationError
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..assets.models import Asset
from ..config import ExecutionMode
from ..notifications.emitter import guard_notifier
from .base import TransformationContext, TransformationResult, TransformationStrategy
from .errors import ExecutionError, InputNotFoundError, TransformationError
from .simulated import SimulatedExecutor
from .strategies import default_strategies

if TYPE_CHECKING:
    from ..jobs.models import Job
    from ..notifications.emitter import JobNotifier
    from ..persistence.repository import JobRepository
    from ..presets.models import PresetCategory
    from ..presets.registry import PresetRegistry
    from .audio_tool import AudioTool

logger = logging.getLogger(__name__)


class TransformationDispatcher:
    """Category-based executor selection for one job at a time."""

    def __init__(
        self,
        tool: "AudioTool",
        preset_registry: "PresetRegistry",
        repository: "JobRepository",
        notifier: Optional["JobNotifier"] = None,
        mode: ExecutionMode = ExecutionMode.LIVE,
        strategies: Optional[Dict["PresetCategory", TransformationStrategy]] = None,
        simulator: Optional[SimulatedExecutor] = None,
    ):
        self._tool = tool
        self._presets = preset_registry
        self._repository = repository
        self._notifier = guard_notifier(notifier)
        self.mode = mode
        self._strategies = strategies if strategies is not None else default_strategies()
        self._simulator = simulator or SimulatedExecutor()

    def load_inputs(self, job: "Job") -> List[Asset]:
        """
        Job input assets in job order.

        Raises:
            InputNotFoundError: An input id has no asset record
        """
        inputs: List[Asset] = []
        for asset_id in job.input_asset_ids:
            asset = self._repository.get_asset(asset_id)
            if asset is None:
                raise InputNotFoundError(asset_id, "<no asset record>")
            inputs.append(asset)
        return inputs

    def execute_transformation(
        self,
        job: "Job",
        parameters: Dict[str, Any],
        inputs: Optional[List[Asset]] = None,
    ) -> TransformationResult:
        """
        Run the job's transformation.

        Only the first input is transformed; the rest are carried through
        to lineage and reporting.

        Args:
            job: RUNNING job
            parameters: Effective parameters (defaults merged with overrides)
            inputs: Input assets in job order (loaded from the repository if omitted)

        Returns:
            TransformationResult

        Raises:
            ExecutionError: Categorized failure (missing input, tool failure, ...)
        """
        preset = self._presets.require_preset(job.preset_id)
        if inputs is None:
            inputs = self.load_inputs(job)
        if not inputs:
            raise TransformationError("No input assets specified")

        if self.mode == ExecutionMode.DRY_RUN:
            return self._simulator.execute(job, preset, parameters, inputs, "dry run")

        primary = inputs[0]
        input_path = self._tool.resolve_file_path(primary.file_key)
        if not self._tool.file_exists(input_path):
            if self.mode == ExecutionMode.FALLBACK:
                logger.warning(
                    f"[Dispatch] Input file {input_path} missing for job {job.id}, simulating"
                )
                return self._simulator.execute(
                    job, preset, parameters, inputs, f"input file missing: {input_path}"
                )
            raise InputNotFoundError(primary.id, str(input_path))

        strategy = self._strategies.get(preset.category)
        if strategy is None:
            logger.warning(
                f"[Dispatch] No live strategy for {preset.category.value}, simulating job {job.id}"
            )
            return self._simulator.execute(
                job, preset, parameters, inputs,
                f"no live strategy for {preset.category.value}",
            )

        self._notifier.transforming(job, f"Starting {preset.category.value.lower()} processing")

        context = TransformationContext(
            job=job,
            preset=preset,
            parameters=parameters,
            inputs=inputs,
            input_path=Path(input_path),
            output_dir=self._tool.resolve_file_path(f"outputs/{job.id}"),
            tool=self._tool,
            notifier=self._notifier,
        )

        logger.info(f"[Dispatch] Job {job.id}: {preset.category.value} via {type(strategy).__name__}")
        start = time.monotonic()
        try:
            result = strategy.execute(context)
        except ExecutionError:
            raise
        except Exception as e:
            raise TransformationError(str(e)) from e

        result.metrics.setdefault("duration_ms", int((time.monotonic() - start) * 1000))
        return result
