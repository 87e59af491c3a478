"""
Pipeline assembly.

Builds one fully wired pipeline instance from settings. Nothing here is
global; the HTTP app stores the instance on app.state and tests build
their own.
"""

import logging
from typing import Optional

from .assets.lineage import AssetLineageTracker
from .config import PipelineSettings
from .execution.audio_tool import AudioTool
from .execution.dispatcher import TransformationDispatcher
from .execution.simulated import SimulatedExecutor
from .jobs.queue import JobQueue
from .notifications.emitter import JobEventEmitter
from .notifications.recorder import JobEventRecorder
from .persistence.repository import JobRepository
from .persistence.sqlite import SQLiteRepository
from .presets.registry import PresetRegistry
from .reporting.generator import ReportGenerator

logger = logging.getLogger(__name__)


# Recent events kept for the status endpoint
RECENT_EVENT_LIMIT = 1000


class Pipeline:
    """Every collaborator of one job pipeline, wired together."""

    def __init__(
        self,
        settings: PipelineSettings,
        repository: Optional[JobRepository] = None,
        tool: Optional[AudioTool] = None,
        autostart: bool = True,
    ):
        self.settings = settings
        self.repository = repository or SQLiteRepository(settings.database_path)
        self.presets = PresetRegistry()
        self.events = JobEventEmitter()
        self.recorder = JobEventRecorder(max_events=RECENT_EVENT_LIMIT)
        self.events.subscribe(self.recorder)

        self.tool = tool or AudioTool.from_settings(settings)
        self.dispatcher = TransformationDispatcher(
            tool=self.tool,
            preset_registry=self.presets,
            repository=self.repository,
            notifier=self.events,
            mode=settings.execution_mode,
            simulator=SimulatedExecutor(delay_scale=settings.mock_delay_scale),
        )
        self.lineage = AssetLineageTracker(self.repository)
        self.reports = ReportGenerator(self.repository)
        self.queue = JobQueue(
            repository=self.repository,
            preset_registry=self.presets,
            dispatcher=self.dispatcher,
            lineage=self.lineage,
            reports=self.reports,
            notifier=self.events,
            autostart=autostart,
        )

        if not self.tool.available:
            logger.warning(
                f"[Pipeline] FFmpeg/ffprobe not found; execution mode is "
                f"{settings.execution_mode.value}"
            )
