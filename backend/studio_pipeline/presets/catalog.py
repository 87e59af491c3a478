"""
Built-in preset catalog.

These are the transformations the studio offers out of the box. The
registry loads this list once at construction.
"""

from typing import List

from .models import ParameterSpec, ParameterType, PresetCategory, PresetDefinition


BUILTIN_PRESETS: List[PresetDefinition] = [
    PresetDefinition(
        id="master-standard",
        name="Standard Mastering",
        category=PresetCategory.MASTERING,
        description="Balanced master for general distribution",
        parameters={
            "loudness": ParameterSpec(default=-14, min=-24, max=-6, unit="LUFS"),
            "truePeak": ParameterSpec(default=-1, min=-3, max=0, unit="dBTP"),
            "format": ParameterSpec(default="WAV", options=["WAV", "FLAC", "MP3"]),
        },
        output_suffix="_mastered",
    ),
    PresetDefinition(
        id="master-streaming",
        name="Streaming Optimized",
        category=PresetCategory.MASTERING,
        description="Master tuned for streaming platform loudness targets",
        parameters={
            "loudness": ParameterSpec(default=-14, min=-16, max=-12, unit="LUFS"),
            "truePeak": ParameterSpec(default=-1, min=-2, max=-1, unit="dBTP"),
            "format": ParameterSpec(default="MP3", options=["MP3", "AAC"]),
        },
        output_suffix="_streaming",
    ),
    PresetDefinition(
        id="analyze-full",
        name="Full Analysis",
        category=PresetCategory.ANALYSIS,
        description="Loudness, peak and format analysis",
        parameters={
            "includeSpectral": ParameterSpec(default=True, type=ParameterType.BOOLEAN),
            "includeLoudness": ParameterSpec(default=True, type=ParameterType.BOOLEAN),
            "includePitch": ParameterSpec(default=True, type=ParameterType.BOOLEAN),
        },
        output_suffix="_analysis",
        output_mime_type="application/json",
    ),
    PresetDefinition(
        id="convert-wav",
        name="Convert to WAV",
        category=PresetCategory.CONVERSION,
        parameters={
            "sampleRate": ParameterSpec(default=48000, options=[44100, 48000, 96000]),
            "bitDepth": ParameterSpec(default=24, options=[16, 24, 32]),
        },
        output_suffix=".wav",
    ),
    PresetDefinition(
        id="convert-mp3",
        name="Convert to MP3",
        category=PresetCategory.CONVERSION,
        parameters={
            "bitrate": ParameterSpec(default=320, options=[128, 192, 256, 320], unit="kbps"),
        },
        output_suffix=".mp3",
        output_mime_type="audio/mpeg",
    ),
    PresetDefinition(
        id="split-stems",
        name="Split Stems",
        category=PresetCategory.EDITING,
        description="Source separation into individual instrument stems",
        parameters={
            "stemCount": ParameterSpec(default=4, options=[2, 4, 5]),
            "quality": ParameterSpec(default="high", options=["fast", "balanced", "high"]),
        },
        output_suffix="_stems",
        stems=["vocals", "drums", "bass", "other", "piano"],
    ),
    PresetDefinition(
        id="normalize-loudness",
        name="Loudness Normalization",
        category=PresetCategory.MIXING,
        parameters={
            "targetLufs": ParameterSpec(default=-16, min=-24, max=-6, unit="LUFS"),
        },
        output_suffix="_normalized",
    ),
]
