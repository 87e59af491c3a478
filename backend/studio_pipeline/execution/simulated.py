"""
Simulated transformation executor.

Stands in for live execution in dry runs, in fallback mode when an input
file is missing, and for categories with no live strategy. It waits a
fixed per-category delay and returns placeholder metrics marked mock=True.
It never writes files.
"""

import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..presets.models import PresetCategory
from .base import TransformationResult

if TYPE_CHECKING:
    from ..jobs.models import Job
    from ..presets.models import PresetDefinition

logger = logging.getLogger(__name__)


# Milliseconds
SIMULATED_DELAYS_MS: Dict[PresetCategory, int] = {
    PresetCategory.ANALYSIS: 500,
    PresetCategory.MASTERING: 1000,
    PresetCategory.MIXING: 800,
    PresetCategory.EDITING: 1200,
    PresetCategory.CONVERSION: 600,
}
DEFAULT_DELAY_MS = 600


class SimulatedExecutor:
    """Fake executor with injectable clock and randomness for tests."""

    def __init__(
        self,
        delay_scale: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[Callable[[], float]] = None,
    ):
        self.delay_scale = delay_scale
        self._sleep = sleep
        self._rng = rng or random.random

    def execute(
        self,
        job: "Job",
        preset: "PresetDefinition",
        parameters: Dict[str, Any],
        inputs: List[Any],
        reason: str,
    ) -> TransformationResult:
        """
        Produce a simulated result.

        Args:
            job: Job being processed
            preset: Its preset definition
            parameters: Effective parameters
            inputs: Input assets
            reason: Why live execution was skipped (logged)
        """
        delay_ms = SIMULATED_DELAYS_MS.get(preset.category, DEFAULT_DELAY_MS)
        logger.info(
            f"[Simulated] Job {job.id} ({preset.id}) simulated for {delay_ms}ms: {reason}"
        )
        self._sleep(delay_ms * self.delay_scale / 1000)

        return TransformationResult(
            category=preset.category,
            preset_id=preset.id,
            parameters=dict(parameters),
            input_count=len(inputs),
            metrics={
                "duration_ms": delay_ms,
                "confidence": 0.95 + self._rng() * 0.04,
                "mock": True,
            },
            simulated=True,
        )
