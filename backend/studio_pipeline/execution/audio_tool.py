"""
FFmpeg / ffprobe client for audio measurement and rendering.

All audio work is delegated to the external tools, run via
subprocess.Popen. Every call has a hard wall-clock limit: on expiry the
process is killed and ToolTimeoutError is raised. Nothing here retries.

Measurement helpers (analyze_loudness, detect_peaks) degrade to empty
values when the tool reports an error, so one bad measurement does not
sink a whole analysis. Timeouts and missing binaries always propagate.
"""

import json
import logging
import math
import os
import re
import subprocess
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import (
    OutputWriteError,
    ToolExecutionError,
    ToolNotFoundError,
    ToolTimeoutError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_SECONDS = 600.0

# Lossy encoders do not accept rates above this
LOSSY_MAX_SAMPLE_RATE = 48000

_PEAK_RE = re.compile(r"Peak level dB:\s*(-?[\d.]+|-inf)")
_RMS_RE = re.compile(r"RMS level dB:\s*(-?[\d.]+|-inf)")
_DYNAMIC_RANGE_RE = re.compile(r"Dynamic range:\s*(-?[\d.]+)")
_JSON_BLOCK_RE = re.compile(r"\{[^{}]*\}", re.DOTALL)


def _to_float(value: Any) -> Optional[float]:
    """Parse a tool-reported number. Non-finite and unparseable values become None."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _last_json_block(text: str) -> Optional[Dict[str, Any]]:
    """loudnorm prints its JSON summary at the end of stderr."""
    blocks = _JSON_BLOCK_RE.findall(text or "")
    if not blocks:
        return None
    try:
        return json.loads(blocks[-1])
    except json.JSONDecodeError:
        return None


def _last_match(pattern: "re.Pattern", text: str) -> Optional[float]:
    # astats prints per-channel blocks first, then the overall block
    matches = pattern.findall(text or "")
    return _to_float(matches[-1]) if matches else None


def codec_args(
    output_format: str,
    sample_rate: int = 48000,
    bit_depth: int = 24,
    bitrate_kbps: int = 320,
) -> List[str]:
    """
    Encoder arguments for an output format.

    Raises:
        UnsupportedFormatError: If the format has no encoder mapping
    """
    fmt = output_format.lower()
    sample_rate = int(sample_rate)
    bit_depth = int(bit_depth)
    bitrate_kbps = int(bitrate_kbps)

    if fmt == "wav":
        codec = {16: "pcm_s16le", 24: "pcm_s24le", 32: "pcm_s32le"}.get(bit_depth, "pcm_s24le")
        return ["-c:a", codec, "-ar", str(sample_rate)]

    if fmt == "flac":
        return ["-c:a", "flac", "-compression_level", "8", "-ar", str(sample_rate)]

    if fmt == "mp3":
        return [
            "-c:a", "libmp3lame",
            "-b:a", f"{bitrate_kbps}k",
            "-ar", str(min(sample_rate, LOSSY_MAX_SAMPLE_RATE)),
        ]

    if fmt == "aac":
        return [
            "-c:a", "aac",
            "-b:a", f"{bitrate_kbps}k",
            "-ar", str(min(sample_rate, LOSSY_MAX_SAMPLE_RATE)),
        ]

    raise UnsupportedFormatError(output_format)


class AudioTool:
    """
    Thin, stateless wrapper over ffmpeg and ffprobe.

    Relative file keys are resolved against storage_path.
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        ffprobe_path: Optional[str] = None,
        storage_path: str = "./storage",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._ffmpeg_path = ffmpeg_path
        self._ffprobe_path = ffprobe_path
        self.storage_root = Path(storage_path)
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings) -> "AudioTool":
        return cls(
            ffmpeg_path=settings.resolved_ffmpeg_path(),
            ffprobe_path=settings.resolved_ffprobe_path(),
            storage_path=settings.storage_path,
            timeout_seconds=settings.tool_timeout_seconds,
        )

    @property
    def available(self) -> bool:
        return bool(self._ffmpeg_path and self._ffprobe_path)

    # =========================================================================
    # Files
    # =========================================================================

    def resolve_file_path(self, file_key: str) -> Path:
        """Absolute keys pass through; relative keys live under the storage root."""
        path = Path(file_key)
        if path.is_absolute():
            return path
        return self.storage_root / path

    def file_exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def ensure_output_dir(self, path: Path) -> Path:
        """
        Create an output directory.

        Raises:
            OutputWriteError: If the directory cannot be created
        """
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise OutputWriteError(str(path), str(e)) from e
        return Path(path)

    # =========================================================================
    # Process execution
    # =========================================================================

    def _run(self, tool: str, binary: Optional[str], args: List[str]) -> Tuple[str, str]:
        """
        Run a tool to completion.

        Returns:
            (stdout, stderr)

        Raises:
            ToolNotFoundError: Binary missing
            ToolTimeoutError: Exceeded timeout_seconds; process was killed
            ToolExecutionError: Non-zero exit code
        """
        if not binary:
            raise ToolNotFoundError(tool)

        cmd = [binary] + args
        logger.debug(f"[FFmpeg] Executing: {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(tool) from e

        try:
            stdout, stderr = process.communicate(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired:
            logger.warning(
                f"[FFmpeg] {tool} PID {process.pid} exceeded {self.timeout_seconds}s, sending SIGKILL"
            )
            process.kill()
            process.communicate()
            raise ToolTimeoutError(tool, self.timeout_seconds)

        if process.returncode != 0:
            logger.warning(f"[FFmpeg] {tool} PID {process.pid} exited with code {process.returncode}")
            raise ToolExecutionError(tool, process.returncode, stderr)

        return stdout, stderr

    def _ffmpeg(self, args: List[str]) -> Tuple[str, str]:
        return self._run("ffmpeg", self._ffmpeg_path, ["-hide_banner"] + args)

    def _ffprobe(self, args: List[str]) -> Tuple[str, str]:
        return self._run("ffprobe", self._ffprobe_path, args)

    # =========================================================================
    # Measurement
    # =========================================================================

    def get_audio_info(self, path: Path) -> Dict[str, Any]:
        """
        Probe container and first audio stream.

        Returns:
            Dict with duration, bit_rate, sample_rate, channels, codec,
            codec_long, bit_depth, file_size, format_name
        """
        stdout, _ = self._ffprobe([
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path),
        ])
        try:
            probe = json.loads(stdout or "{}")
        except json.JSONDecodeError as e:
            raise ToolExecutionError("ffprobe", 0, f"Unparseable ffprobe output: {e}") from e

        fmt = probe.get("format", {})
        stream = next(
            (s for s in probe.get("streams", []) if s.get("codec_type") == "audio"),
            {},
        )

        return {
            "duration": _to_float(fmt.get("duration")),
            "bit_rate": _to_int(fmt.get("bit_rate")),
            "sample_rate": _to_int(stream.get("sample_rate")),
            "channels": stream.get("channels"),
            "codec": stream.get("codec_name"),
            "codec_long": stream.get("codec_long_name"),
            "bit_depth": _to_int(stream.get("bits_per_raw_sample") or stream.get("bits_per_sample")),
            "file_size": _to_int(fmt.get("size")),
            "format_name": fmt.get("format_name"),
        }

    def analyze_loudness(self, path: Path) -> Dict[str, Optional[float]]:
        """
        Measure integrated loudness (EBU R128) with loudnorm.

        Returns:
            Dict with integrated_loudness, true_peak, loudness_range,
            threshold, target_offset (None where unavailable)
        """
        empty = {
            "integrated_loudness": None,
            "true_peak": None,
            "loudness_range": None,
            "threshold": None,
            "target_offset": None,
        }
        try:
            _, stderr = self._ffmpeg([
                "-i", str(path),
                "-af", "loudnorm=print_format=json",
                "-f", "null", "-",
            ])
        except ToolExecutionError as e:
            logger.warning(f"[FFmpeg] Loudness analysis failed for {path}: {e}")
            return empty

        data = _last_json_block(stderr)
        if data is None:
            logger.warning(f"[FFmpeg] No loudnorm summary in output for {path}")
            return empty

        return {
            "integrated_loudness": _to_float(data.get("input_i")),
            "true_peak": _to_float(data.get("input_tp")),
            "loudness_range": _to_float(data.get("input_lra")),
            "threshold": _to_float(data.get("input_thresh")),
            "target_offset": _to_float(data.get("target_offset")),
        }

    def detect_peaks(self, path: Path) -> Dict[str, Optional[float]]:
        """
        Measure sample peak, RMS and dynamic range with astats.

        Returns:
            Dict with peak_level, rms_level, dynamic_range (dB, None where unavailable)
        """
        empty = {"peak_level": None, "rms_level": None, "dynamic_range": None}
        try:
            _, stderr = self._ffmpeg([
                "-i", str(path),
                "-af", "astats=metadata=1:reset=1",
                "-f", "null", "-",
            ])
        except ToolExecutionError as e:
            logger.warning(f"[FFmpeg] Peak detection failed for {path}: {e}")
            return empty

        return {
            "peak_level": _last_match(_PEAK_RE, stderr),
            "rms_level": _last_match(_RMS_RE, stderr),
            "dynamic_range": _last_match(_DYNAMIC_RANGE_RE, stderr),
        }

    def analyze_audio(self, path: Path) -> Dict[str, Any]:
        """
        Full analysis: probe, loudness and peaks run concurrently, then joined.

        Returns:
            Dict with info, loudness, peaks, analysis_time_ms, analyzed_at
        """
        start = time.monotonic()
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="analyze") as pool:
            info_future = pool.submit(self.get_audio_info, path)
            loudness_future = pool.submit(self.analyze_loudness, path)
            peaks_future = pool.submit(self.detect_peaks, path)

            info = info_future.result()
            loudness = loudness_future.result()
            peaks = peaks_future.result()

        return {
            "info": info,
            "loudness": loudness,
            "peaks": peaks,
            "analysis_time_ms": int((time.monotonic() - start) * 1000),
            "analyzed_at": datetime.now().isoformat(),
        }

    # =========================================================================
    # Rendering
    # =========================================================================

    def normalize_loudness(
        self,
        input_path: Path,
        output_path: Path,
        target_lufs: float = -16,
        true_peak: float = -1,
        loudness_range: float = 11,
    ) -> Dict[str, Optional[float]]:
        """
        Single-pass loudnorm to a target integrated loudness.

        Output is 48 kHz, 24-bit PCM WAV.

        Returns:
            Dict with input_loudness, input_peak, output_loudness,
            output_peak, output_threshold
        """
        self.ensure_output_dir(Path(output_path).parent)
        _, stderr = self._ffmpeg([
            "-y",
            "-i", str(input_path),
            "-af", f"loudnorm=I={target_lufs}:TP={true_peak}:LRA={loudness_range}:print_format=json",
            "-ar", "48000",
            "-c:a", "pcm_s24le",
            str(output_path),
        ])
        data = _last_json_block(stderr) or {}
        return {
            "input_loudness": _to_float(data.get("input_i")),
            "input_peak": _to_float(data.get("input_tp")),
            "output_loudness": _to_float(data.get("output_i")),
            "output_peak": _to_float(data.get("output_tp")),
            "output_threshold": _to_float(data.get("output_thresh")),
        }

    def convert_format(
        self,
        input_path: Path,
        output_path: Path,
        output_format: str,
        sample_rate: int = 48000,
        bit_depth: int = 24,
        bitrate_kbps: int = 320,
    ) -> Dict[str, Any]:
        """
        Re-encode to another format.

        Returns:
            ffprobe info for the written file

        Raises:
            UnsupportedFormatError: If output_format has no encoder mapping
        """
        args = codec_args(output_format, sample_rate, bit_depth, bitrate_kbps)
        self.ensure_output_dir(Path(output_path).parent)
        self._ffmpeg(["-y", "-i", str(input_path)] + args + [str(output_path)])
        return self.get_audio_info(output_path)

    def master_audio(
        self,
        input_path: Path,
        output_path: Path,
        target_lufs: float = -14,
        true_peak: float = -1,
        output_format: str = "wav",
        sample_rate: int = 48000,
        bit_depth: int = 24,
    ) -> Dict[str, Optional[float]]:
        """
        Mastering chain: rumble filter, gentle compression, loudness
        normalization, then a brickwall limiter at the true-peak ceiling.

        Input and output are both measured so the caller can report the change.

        Returns:
            Dict with input_loudness, input_peak, output_loudness, output_peak
        """
        before = self.analyze_loudness(input_path)

        limit = 10 ** (true_peak / 20)
        chain = ",".join([
            "highpass=f=30",
            "acompressor=threshold=-18dB:ratio=2:attack=20:release=250:makeup=2dB",
            f"loudnorm=I={target_lufs}:TP={true_peak}:LRA=11",
            f"alimiter=limit={limit:.4f}:attack=0.1:release=50",
        ])

        args = codec_args(output_format, sample_rate, bit_depth)
        self.ensure_output_dir(Path(output_path).parent)
        self._ffmpeg(["-y", "-i", str(input_path), "-af", chain] + args + [str(output_path)])

        after = self.analyze_loudness(output_path)
        return {
            "input_loudness": before["integrated_loudness"],
            "input_peak": before["true_peak"],
            "output_loudness": after["integrated_loudness"],
            "output_peak": after["true_peak"],
        }
