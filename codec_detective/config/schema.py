"""Configuration dataclasses for Codec Detective."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

DEFAULT_MIN_VALUES_PER_FRAME = 10
DEFAULT_MAX_LINE_BYTES = 10 * 1024 * 1024
DEFAULT_CHANNEL_CAPACITY = 64


@dataclass(frozen=True)
class AnalyzerConfig:
    """Controls how FFmpeg is invoked and how its debug output is parsed."""

    ffmpeg_exe: str = 'ffmpeg'
    ffprobe_exe: str = 'ffprobe'
    min_values_per_frame: int = DEFAULT_MIN_VALUES_PER_FRAME
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    decoder_threads: int = 1
    terminate_timeout: float = 5.0
    send_poll_interval: float = 0.05


@dataclass(frozen=True)
class ReportConfig:
    """High-level knobs for report generation."""

    percentiles: Tuple[int, ...] = (10, 50, 90)
    include_frames: bool = False
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY
