"""
Live transformation strategies, one per preset category.

Each strategy runs the primary input through the audio tool and reports
step progress (0-100) through the context. Categories without a strategy
here are executed by the simulator (see dispatcher.py).
"""

import logging
from typing import Dict, Optional

from ..presets.models import PresetCategory
from .base import TransformationContext, TransformationResult, TransformationStrategy, mime_type_for

logger = logging.getLogger(__name__)


def _deviation(actual: Optional[float], target: float) -> Optional[float]:
    if actual is None:
        return None
    return round(abs(actual - target), 2)


class AnalysisStrategy(TransformationStrategy):
    """Measure format, loudness and peaks. Writes no files."""

    @property
    def category(self) -> PresetCategory:
        return PresetCategory.ANALYSIS

    def execute(self, context: TransformationContext) -> TransformationResult:
        context.report_progress(20, "Analyzing audio file")
        analysis = context.tool.analyze_audio(context.input_path)

        info = analysis["info"]
        loudness = analysis["loudness"]
        context.report_analysis({
            "duration": info.get("duration"),
            "sample_rate": info.get("sample_rate"),
            "loudness": loudness.get("integrated_loudness"),
        })

        return context.result({
            "duration_ms": analysis["analysis_time_ms"],
            "confidence": 0.99,
            "info": info,
            "loudness": loudness,
            "peaks": analysis["peaks"],
            "integrated_loudness": loudness.get("integrated_loudness"),
            "true_peak": loudness.get("true_peak"),
        })


class MasteringStrategy(TransformationStrategy):
    """Full mastering chain to a loudness target and true-peak ceiling."""

    @property
    def category(self) -> PresetCategory:
        return PresetCategory.MASTERING

    def execute(self, context: TransformationContext) -> TransformationResult:
        params = context.parameters
        target_lufs = params.get("loudness", -14)
        true_peak = params.get("truePeak", -1)
        output_format = str(params.get("format", "WAV")).lower()

        output = context.output_file(
            f"{context.input_stem}_mastered.{output_format}",
            mime_type_for(output_format),
        )

        context.report_progress(10, "Analyzing input audio")
        context.report_progress(40, "Applying mastering chain")
        levels = context.tool.master_audio(
            context.input_path,
            output.path,
            target_lufs=target_lufs,
            true_peak=true_peak,
            output_format=output_format,
        )
        context.report_progress(90, "Finalizing output")

        deviation = _deviation(levels["output_loudness"], target_lufs)
        loudness_change = None
        if levels["input_loudness"] is not None and levels["output_loudness"] is not None:
            loudness_change = round(levels["output_loudness"] - levels["input_loudness"], 2)

        return context.result(
            {
                "confidence": 0.95,
                "input_loudness": levels["input_loudness"],
                "output_loudness": levels["output_loudness"],
                "input_peak": levels["input_peak"],
                "output_peak": levels["output_peak"],
                "improvement": {
                    "reached_target": deviation is not None and deviation < 1,
                    "target_deviation": deviation,
                    "loudness_change": loudness_change,
                },
            },
            output_files=[output],
        )


class ConversionStrategy(TransformationStrategy):
    """Re-encode to the format named by the preset id."""

    @property
    def category(self) -> PresetCategory:
        return PresetCategory.CONVERSION

    @staticmethod
    def target_format(preset_id: str) -> str:
        if "mp3" in preset_id:
            return "mp3"
        if "flac" in preset_id:
            return "flac"
        return "wav"

    def execute(self, context: TransformationContext) -> TransformationResult:
        params = context.parameters
        output_format = self.target_format(context.preset.id)
        output = context.output_file(
            f"{context.input_stem}.{output_format}",
            mime_type_for(output_format),
        )

        context.report_progress(20, "Preparing format conversion")
        input_info = context.tool.get_audio_info(context.input_path)

        context.report_progress(50, f"Converting to {output_format.upper()}")
        output_info = context.tool.convert_format(
            context.input_path,
            output.path,
            output_format,
            sample_rate=params.get("sampleRate", 48000),
            bit_depth=params.get("bitDepth", 24),
            bitrate_kbps=params.get("bitrate", 320),
        )
        context.report_progress(95, "Conversion complete")

        return context.result(
            {
                "confidence": 0.99,
                "input_format": input_info.get("format_name"),
                "output_format": output_format,
                "output_sample_rate": output_info.get("sample_rate"),
                "output_bit_rate": output_info.get("bit_rate"),
            },
            output_files=[output],
        )


class MixingStrategy(TransformationStrategy):
    """Loudness normalization to a target LUFS."""

    @property
    def category(self) -> PresetCategory:
        return PresetCategory.MIXING

    def execute(self, context: TransformationContext) -> TransformationResult:
        target_lufs = context.parameters.get("targetLufs", -16)
        output = context.output_file(f"{context.input_stem}_normalized.wav", "audio/wav")

        context.report_progress(15, "Analyzing input loudness")
        context.report_progress(50, "Normalizing loudness")
        levels = context.tool.normalize_loudness(
            context.input_path,
            output.path,
            target_lufs=target_lufs,
            true_peak=-1,
            loudness_range=11,
        )
        context.report_progress(95, "Normalization complete")

        return context.result(
            {
                "confidence": 0.98,
                "input_loudness": levels["input_loudness"],
                "output_loudness": levels["output_loudness"],
                "target_lufs": target_lufs,
            },
            output_files=[output],
        )


def default_strategies() -> Dict[PresetCategory, TransformationStrategy]:
    """Strategies registered by default. EDITING has none and is simulated."""
    strategies = [
        AnalysisStrategy(),
        MasteringStrategy(),
        ConversionStrategy(),
        MixingStrategy(),
    ]
    return {strategy.category: strategy for strategy in strategies}
