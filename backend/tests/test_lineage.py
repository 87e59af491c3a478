"""
Tests for output asset creation and lineage queries.
"""

from studio_pipeline.assets import AssetCategory, AssetLineageTracker, output_name
from studio_pipeline.execution.base import OutputFile, TransformationResult
from studio_pipeline.jobs.models import Job


def _result(preset, parameters=None, output_files=None, simulated=True):
    return TransformationResult(
        category=preset.category,
        preset_id=preset.id,
        parameters=parameters or preset.default_parameters(),
        input_count=1,
        metrics={"duration_ms": 600, "confidence": 0.97, "mock": simulated},
        output_files=output_files or [],
        simulated=simulated,
    )


def _job(preset_id, inputs):
    return Job(project_id="project-1", preset_id=preset_id, input_asset_ids=[a.id for a in inputs])


def test_output_name_replaces_extension():
    assert output_name("song.wav", "_mastered") == "song_mastered"
    assert output_name("song.flac", ".wav") == "song.wav"
    assert output_name("take.final.aiff", "_stems") == "take.final_stems"


class TestPlaceholders:

    def test_one_placeholder_per_input(self, repository, presets, make_asset):
        inputs = [make_asset("a.wav", size_bytes=100), make_asset("b.wav", size_bytes=200)]
        preset = presets.get_preset_definition("normalize-loudness")
        job = _job(preset.id, inputs)

        outputs = AssetLineageTracker(repository).create_output_assets(
            job, inputs, preset, _result(preset)
        )

        assert [o.name for o in outputs] == ["a_normalized", "b_normalized"]
        assert [o.parent_id for o in outputs] == [inputs[0].id, inputs[1].id]
        assert [o.size_bytes for o in outputs] == [100, 200]
        assert all(o.category == AssetCategory.DERIVED for o in outputs)
        assert all(o.output_job_id == job.id for o in outputs)
        assert outputs[0].file_key == f"outputs/{job.id}/a_normalized"

    def test_mastering_outputs_are_final(self, repository, presets, make_asset):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("master-streaming")
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, _result(preset)
        )
        assert outputs[0].category == AssetCategory.FINAL
        assert outputs[0].name == "song_streaming"

    def test_analysis_placeholder_is_json(self, repository, presets, make_asset):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("analyze-full")
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, _result(preset)
        )
        assert outputs[0].mime_type == "application/json"
        assert outputs[0].name == "song_analysis"

    def test_mp3_placeholder_mime(self, repository, presets, make_asset):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("convert-mp3")
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, _result(preset)
        )
        assert outputs[0].mime_type == "audio/mpeg"
        assert outputs[0].name == "song.mp3"

    def test_outputs_are_not_stored(self, repository, presets, make_asset):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("convert-wav")
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, _result(preset)
        )
        assert repository.get_asset(outputs[0].id) is None
        assert repository.list_derivatives(inputs[0].id) == []

    def test_metadata(self, repository, presets, make_asset):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("convert-wav")
        job = _job(preset.id, inputs)
        outputs = AssetLineageTracker(repository).create_output_assets(
            job, inputs, preset, _result(preset)
        )
        metadata = outputs[0].metadata
        assert metadata["source_job_id"] == job.id
        assert metadata["preset"] == "convert-wav"
        assert metadata["confidence"] == 0.97
        assert "processed_at" in metadata


class TestRealFiles:

    def test_one_asset_per_file(self, repository, presets, make_asset, tmp_path):
        inputs = [make_asset("a.wav"), make_asset("b.wav")]
        preset = presets.get_preset_definition("master-standard")
        job = _job(preset.id, inputs)
        path = tmp_path / "a_mastered.wav"
        path.write_bytes(b"x" * 321)

        result = _result(
            preset,
            output_files=[OutputFile(
                path=str(path),
                file_key=f"outputs/{job.id}/a_mastered.wav",
                mime_type="audio/wav",
            )],
            simulated=False,
        )
        result.metrics.update({"output_loudness": -14.2, "improvement": {"reached_target": True}})

        outputs = AssetLineageTracker(repository).create_output_assets(job, inputs, preset, result)

        assert len(outputs) == 1
        output = outputs[0]
        assert output.name == "a_mastered.wav"
        assert output.size_bytes == 321
        assert output.parent_id == inputs[0].id
        assert output.category == AssetCategory.FINAL
        assert output.metadata["output_loudness"] == -14.2
        # Nested measurement blocks are not copied onto assets
        assert "improvement" not in output.metadata

    def test_missing_file_has_zero_size(self, repository, presets, make_asset, tmp_path):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("normalize-loudness")
        job = _job(preset.id, inputs)
        result = _result(
            preset,
            output_files=[OutputFile(
                path=str(tmp_path / "gone.wav"),
                file_key="outputs/x/gone.wav",
                mime_type="audio/wav",
            )],
            simulated=False,
        )
        outputs = AssetLineageTracker(repository).create_output_assets(job, inputs, preset, result)
        assert outputs[0].size_bytes == 0


class TestStems:

    def test_default_four_stems(self, repository, presets, make_asset):
        inputs = [make_asset("mix.wav")]
        preset = presets.get_preset_definition("split-stems")
        job = _job(preset.id, inputs)

        outputs = AssetLineageTracker(repository).create_output_assets(
            job, inputs, preset, _result(preset)
        )

        stems = [o for o in outputs if "stem" in o.metadata]
        assert [o.metadata["stem"] for o in stems] == ["vocals", "drums", "bass", "other"]
        assert [o.name for o in stems] == ["mix_vocals", "mix_drums", "mix_bass", "mix_other"]
        assert all(o.category == AssetCategory.DERIVED for o in stems)
        assert all(o.parent_id == inputs[0].id for o in stems)
        assert all(o.mime_type == "audio/wav" for o in stems)
        assert stems[0].file_key == f"outputs/{job.id}/mix_vocals.wav"
        # Placeholder plus four stems
        assert len(outputs) == 5

    def test_stem_count_parameter(self, repository, presets, make_asset):
        inputs = [make_asset("mix.wav")]
        preset = presets.get_preset_definition("split-stems")
        result = _result(preset, parameters={"stemCount": 2, "quality": "fast"})
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, result
        )
        assert [o.metadata.get("stem") for o in outputs if "stem" in o.metadata] == ["vocals", "drums"]

    def test_integral_float_stem_count(self, repository, presets, make_asset):
        inputs = [make_asset("mix.wav")]
        preset = presets.get_preset_definition("split-stems")
        result = _result(preset, parameters={"stemCount": 3.0, "quality": "high"})
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, result
        )
        assert [o.metadata["stem"] for o in outputs if "stem" in o.metadata] == ["vocals", "drums", "bass"]

    def test_five_stems(self, repository, presets, make_asset):
        inputs = [make_asset("mix.wav")]
        preset = presets.get_preset_definition("split-stems")
        result = _result(preset, parameters={"stemCount": 5, "quality": "high"})
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, result
        )
        assert sum(1 for o in outputs if "stem" in o.metadata) == 5

    def test_non_stem_presets_create_no_stems(self, repository, presets, make_asset):
        inputs = [make_asset()]
        preset = presets.get_preset_definition("master-standard")
        outputs = AssetLineageTracker(repository).create_output_assets(
            _job(preset.id, inputs), inputs, preset, _result(preset)
        )
        assert len(outputs) == 1


class TestLineageQueries:

    def test_ancestor_chain(self, repository, presets, make_asset):
        source = make_asset("raw.wav")
        tracker = AssetLineageTracker(repository)

        normalize = presets.get_preset_definition("normalize-loudness")
        first = tracker.create_output_assets(
            _job(normalize.id, [source]), [source], normalize, _result(normalize)
        )[0]
        repository.add_asset(first)
        master = presets.get_preset_definition("master-standard")
        second = tracker.create_output_assets(
            _job(master.id, [first]), [first], master, _result(master)
        )[0]
        repository.add_asset(second)

        chain = tracker.get_lineage(second.id)
        assert [a.id for a in chain] == [second.id, first.id, source.id]
        assert [a.id for a in tracker.get_derivatives(source.id)] == [first.id]

    def test_unknown_asset(self, repository):
        assert AssetLineageTracker(repository).get_lineage("missing") == []
