"""
Pytest configuration and shared fixtures for the pipeline test suite.

All fixtures are in-memory and deterministic: no FFmpeg, no sleeping,
no background threads unless a test asks for them.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from studio_pipeline.assets.lineage import AssetLineageTracker
from studio_pipeline.assets.models import Asset, AssetCategory
from studio_pipeline.config import ExecutionMode
from studio_pipeline.execution.audio_tool import AudioTool
from studio_pipeline.execution.dispatcher import TransformationDispatcher
from studio_pipeline.execution.simulated import SimulatedExecutor
from studio_pipeline.jobs.models import Job
from studio_pipeline.jobs.queue import JobQueue
from studio_pipeline.notifications.emitter import JobEventEmitter
from studio_pipeline.notifications.recorder import JobEventRecorder
from studio_pipeline.persistence.memory import InMemoryRepository
from studio_pipeline.presets.registry import PresetRegistry
from studio_pipeline.reporting.generator import ReportGenerator


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: requires FFmpeg on PATH"
    )


# =============================================================================
# Fakes
# =============================================================================

class FakeAudioTool(AudioTool):
    """
    AudioTool that never spawns a process.

    Files under storage_path are real (tests create them with tmp_path);
    measurements and renders return canned values and write small output
    files so lineage can stat them.
    """

    def __init__(self, storage_path: str):
        super().__init__(ffmpeg_path="ffmpeg", ffprobe_path="ffprobe", storage_path=storage_path)
        self.calls: List[str] = []
        self.fail_with: Optional[Exception] = None

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _write(self, path, payload: bytes = b"RIFF0000WAVE") -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(payload)

    def get_audio_info(self, path) -> Dict[str, Any]:
        self._check("get_audio_info")
        return {
            "duration": 12.5,
            "bit_rate": 1411200,
            "sample_rate": 44100,
            "channels": 2,
            "codec": "pcm_s16le",
            "codec_long": "PCM signed 16-bit little-endian",
            "bit_depth": 16,
            "file_size": 2205000,
            "format_name": "wav",
        }

    def analyze_audio(self, path) -> Dict[str, Any]:
        self._check("analyze_audio")
        return {
            "info": self.get_audio_info(path),
            "loudness": {
                "integrated_loudness": -18.2,
                "true_peak": -0.4,
                "loudness_range": 7.1,
                "threshold": -28.4,
                "target_offset": 0.1,
            },
            "peaks": {"peak_level": -0.5, "rms_level": -20.1, "dynamic_range": 19.6},
            "analysis_time_ms": 42,
            "analyzed_at": "2024-01-01T00:00:00",
        }

    def master_audio(self, input_path, output_path, target_lufs=-14, true_peak=-1,
                     output_format="wav", sample_rate=48000, bit_depth=24):
        self._check("master_audio")
        self._write(output_path)
        return {
            "input_loudness": -18.2,
            "input_peak": -0.4,
            "output_loudness": target_lufs + 0.3,
            "output_peak": true_peak - 0.1,
        }

    def convert_format(self, input_path, output_path, output_format,
                       sample_rate=48000, bit_depth=24, bitrate_kbps=320):
        self._check("convert_format")
        self._write(output_path)
        return {"sample_rate": sample_rate, "bit_rate": bitrate_kbps * 1000, "format_name": output_format}

    def normalize_loudness(self, input_path, output_path, target_lufs=-16,
                           true_peak=-1, loudness_range=11):
        self._check("normalize_loudness")
        self._write(output_path)
        return {
            "input_loudness": -20.0,
            "input_peak": -2.0,
            "output_loudness": target_lufs,
            "output_peak": -1.2,
            "output_threshold": -26.0,
        }


def no_sleep(seconds: float) -> None:
    pass


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def presets():
    return PresetRegistry()


@pytest.fixture
def emitter():
    return JobEventEmitter()


@pytest.fixture
def recorder(emitter):
    recorder = JobEventRecorder()
    emitter.subscribe(recorder)
    return recorder


@pytest.fixture
def storage(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def fake_tool(storage):
    return FakeAudioTool(str(storage))


@pytest.fixture
def simulator():
    return SimulatedExecutor(sleep=no_sleep, rng=lambda: 0.5)


@pytest.fixture
def make_asset(repository, storage):
    """Factory: register an asset; with_file=True also writes it under storage."""

    def _make(
        name: str = "song.wav",
        category: AssetCategory = AssetCategory.RAW,
        project_id: str = "project-1",
        size_bytes: int = 2048,
        with_file: bool = False,
    ) -> Asset:
        file_key = f"uploads/{name}"
        if with_file:
            path = storage / file_key
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"\0" * size_bytes)
        asset = Asset(
            name=name,
            category=category,
            file_key=file_key,
            size_bytes=size_bytes,
            project_id=project_id,
        )
        repository.add_asset(asset)
        return asset

    return _make


@pytest.fixture
def make_job(repository):
    """Factory: store a QUEUED job (not admitted)."""

    def _make(
        preset_id: str = "master-standard",
        input_asset_ids: Optional[List[str]] = None,
        parameters: Optional[Dict[str, Any]] = None,
        project_id: str = "project-1",
    ) -> Job:
        job = Job(
            project_id=project_id,
            preset_id=preset_id,
            input_asset_ids=input_asset_ids or [],
            parameters=parameters or {},
            created_by_id="user-1",
        )
        repository.add_job(job)
        return job

    return _make


def build_queue(repository, presets, emitter, tool, simulator, mode=ExecutionMode.DRY_RUN):
    dispatcher = TransformationDispatcher(
        tool=tool,
        preset_registry=presets,
        repository=repository,
        notifier=emitter,
        mode=mode,
        simulator=simulator,
    )
    return JobQueue(
        repository=repository,
        preset_registry=presets,
        dispatcher=dispatcher,
        lineage=AssetLineageTracker(repository),
        reports=ReportGenerator(repository),
        notifier=emitter,
        autostart=False,
    )


@pytest.fixture
def queue(repository, presets, emitter, recorder, fake_tool, simulator):
    """Dry-run queue, drained explicitly with process_queue()."""
    return build_queue(repository, presets, emitter, fake_tool, simulator)


@pytest.fixture
def live_queue(repository, presets, emitter, recorder, fake_tool, simulator):
    """Live-mode queue backed by FakeAudioTool."""
    return build_queue(repository, presets, emitter, fake_tool, simulator, mode=ExecutionMode.LIVE)


@pytest.fixture
def fallback_queue(repository, presets, emitter, recorder, fake_tool, simulator):
    """Fallback-mode queue: live when the input file exists, simulated otherwise."""
    return build_queue(repository, presets, emitter, fake_tool, simulator, mode=ExecutionMode.FALLBACK)
