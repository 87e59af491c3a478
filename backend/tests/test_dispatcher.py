"""
Tests for transformation dispatch.

Executor choice is explicit: LIVE never silently simulates a missing
input, FALLBACK does, DRY_RUN always simulates.
"""

from pathlib import Path

import pytest

from studio_pipeline.config import ExecutionMode
from studio_pipeline.execution import (
    InputNotFoundError,
    ToolTimeoutError,
    TransformationDispatcher,
    TransformationError,
)
from studio_pipeline.jobs.models import Job
from studio_pipeline.notifications import JobEventType
from studio_pipeline.presets.models import PresetCategory


def _dispatcher(repository, presets, emitter, tool, simulator, mode):
    return TransformationDispatcher(
        tool=tool,
        preset_registry=presets,
        repository=repository,
        notifier=emitter,
        mode=mode,
        simulator=simulator,
    )


def _job(preset_id, asset):
    return Job(project_id="project-1", preset_id=preset_id, input_asset_ids=[asset.id])


class TestModeSelection:

    def test_dry_run_always_simulates(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=True)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.DRY_RUN)

        result = dispatcher.execute_transformation(_job("master-standard", asset), {"loudness": -14})

        assert result.simulated
        assert result.metrics["mock"] is True
        assert result.output_files == []
        assert fake_tool.calls == []

    def test_live_missing_file_fails_as_ingestion(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=False)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        with pytest.raises(InputNotFoundError) as exc_info:
            dispatcher.execute_transformation(_job("master-standard", asset), {})

        assert exc_info.value.asset_id == asset.id
        assert exc_info.value.category.value == "INGESTION"

    def test_fallback_missing_file_simulates(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=False)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.FALLBACK)

        result = dispatcher.execute_transformation(_job("master-standard", asset), {})

        assert result.simulated
        assert fake_tool.calls == []

    def test_fallback_existing_file_runs_live(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=True)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.FALLBACK)

        result = dispatcher.execute_transformation(
            _job("master-standard", asset), presets.effective_parameters("master-standard", {})
        )

        assert not result.simulated
        assert "master_audio" in fake_tool.calls

    def test_category_without_strategy_is_simulated(self, repository, presets, emitter, fake_tool, simulator, make_asset, caplog):
        asset = make_asset(with_file=True)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        result = dispatcher.execute_transformation(
            _job("split-stems", asset), presets.effective_parameters("split-stems", {})
        )

        assert result.simulated
        assert result.category == PresetCategory.EDITING
        assert "No live strategy for EDITING" in caplog.text


class TestLiveStrategies:

    def test_mastering(self, repository, presets, emitter, recorder, fake_tool, simulator, make_asset, storage):
        asset = make_asset("song.wav", with_file=True)
        job = _job("master-standard", asset)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        result = dispatcher.execute_transformation(
            job, presets.effective_parameters("master-standard", {"loudness": -12})
        )

        assert len(result.output_files) == 1
        output = result.output_files[0]
        assert output.file_key == f"outputs/{job.id}/song_mastered.wav"
        assert output.mime_type == "audio/wav"
        assert Path(output.path) == storage / "outputs" / job.id / "song_mastered.wav"
        assert result.metrics["confidence"] == 0.95
        assert result.metrics["output_loudness"] == pytest.approx(-11.7)
        assert result.metrics["improvement"]["reached_target"] is True
        assert "duration_ms" in result.metrics

        labels = [e.message for e in recorder.get_events() if e.event_type == JobEventType.TRANSFORM_PROGRESS]
        assert labels == ["Analyzing input audio", "Applying mastering chain", "Finalizing output"]
        transforming = [e for e in recorder.get_events() if e.event_type == JobEventType.TRANSFORMING]
        assert transforming[0].message == "Starting mastering processing"

    def test_mastering_honours_format(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset("song.wav", with_file=True)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)
        result = dispatcher.execute_transformation(
            _job("master-standard", asset),
            presets.effective_parameters("master-standard", {"format": "FLAC"}),
        )
        assert result.output_files[0].file_key.endswith("song_mastered.flac")
        assert result.output_files[0].mime_type == "audio/flac"

    def test_analysis_emits_analysis_complete(self, repository, presets, emitter, recorder, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=True)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        result = dispatcher.execute_transformation(
            _job("analyze-full", asset), presets.effective_parameters("analyze-full", {})
        )

        assert result.output_files == []
        assert result.metrics["duration_ms"] == 42
        assert result.metrics["integrated_loudness"] == -18.2
        complete = [e for e in recorder.get_events() if e.event_type == JobEventType.ANALYSIS_COMPLETE]
        assert complete[0].metrics == {"duration": 12.5, "sample_rate": 44100, "loudness": -18.2}

    @pytest.mark.parametrize("preset_id,extension,mime", [
        ("convert-mp3", "mp3", "audio/mpeg"),
        ("convert-wav", "wav", "audio/wav"),
    ])
    def test_conversion(self, repository, presets, emitter, fake_tool, simulator, make_asset, preset_id, extension, mime):
        asset = make_asset("take.flac", with_file=True)
        job = _job(preset_id, asset)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        result = dispatcher.execute_transformation(job, presets.effective_parameters(preset_id, {}))

        assert result.output_files[0].file_key == f"outputs/{job.id}/take.{extension}"
        assert result.output_files[0].mime_type == mime
        assert result.metrics["output_format"] == extension
        assert result.metrics["input_format"] == "wav"

    def test_mixing(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset("song.wav", with_file=True)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        result = dispatcher.execute_transformation(
            _job("normalize-loudness", asset),
            presets.effective_parameters("normalize-loudness", {"targetLufs": -20}),
        )

        assert result.output_files[0].file_key.endswith("song_normalized.wav")
        assert result.metrics["target_lufs"] == -20
        assert result.metrics["output_loudness"] == -20


class TestErrors:

    def test_execution_errors_pass_through(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=True)
        fake_tool.fail_with = ToolTimeoutError("ffmpeg", 5)
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        with pytest.raises(ToolTimeoutError):
            dispatcher.execute_transformation(
                _job("normalize-loudness", asset), presets.effective_parameters("normalize-loudness", {})
            )

    def test_unexpected_errors_are_wrapped(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        asset = make_asset(with_file=True)
        fake_tool.fail_with = KeyError("sample_rate")
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.LIVE)

        with pytest.raises(TransformationError, match="Processing failed"):
            dispatcher.execute_transformation(
                _job("analyze-full", asset), presets.effective_parameters("analyze-full", {})
            )

    def test_missing_asset_record(self, repository, presets, emitter, fake_tool, simulator):
        job = Job(project_id="project-1", preset_id="analyze-full", input_asset_ids=["ghost"])
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.DRY_RUN)
        with pytest.raises(InputNotFoundError):
            dispatcher.execute_transformation(job, {})

    def test_load_inputs_keeps_job_order(self, repository, presets, emitter, fake_tool, simulator, make_asset):
        first = make_asset("b.wav")
        second = make_asset("a.wav")
        job = Job(project_id="project-1", preset_id="analyze-full", input_asset_ids=[first.id, second.id])
        dispatcher = _dispatcher(repository, presets, emitter, fake_tool, simulator, ExecutionMode.DRY_RUN)

        assert dispatcher.load_inputs(job) == [first, second]


class TestSimulator:

    def test_delay_and_confidence(self, presets):
        from studio_pipeline.execution import SimulatedExecutor

        slept = []
        simulator = SimulatedExecutor(delay_scale=0.5, sleep=slept.append, rng=lambda: 1.0)
        preset = presets.get_preset_definition("split-stems")
        job = Job(project_id="p", preset_id=preset.id, input_asset_ids=["a"])

        result = simulator.execute(job, preset, {}, ["a"], "test")

        assert slept == [pytest.approx(0.6)]
        assert result.metrics["duration_ms"] == 1200
        assert result.metrics["confidence"] == pytest.approx(0.99)
        assert result.simulated

    @pytest.mark.parametrize("preset_id,delay_ms", [
        ("analyze-full", 500),
        ("master-standard", 1000),
        ("normalize-loudness", 800),
        ("convert-wav", 600),
    ])
    def test_category_delays(self, presets, preset_id, delay_ms):
        from studio_pipeline.execution import SimulatedExecutor

        slept = []
        simulator = SimulatedExecutor(sleep=slept.append, rng=lambda: 0.0)
        preset = presets.get_preset_definition(preset_id)
        job = Job(project_id="p", preset_id=preset_id)
        result = simulator.execute(job, preset, {}, [], "test")
        assert slept == [pytest.approx(delay_ms / 1000)]
        assert result.metrics["confidence"] == pytest.approx(0.95)
