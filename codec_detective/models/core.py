"""Shared data structures used across the analysis pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from statistics import fmean
from typing import List, Optional, Sequence, Tuple


class FrameType(str, Enum):
    """Coarse picture type reported for a decoded frame."""

    I = 'I'
    P = 'P'
    B = 'B'
    UNKNOWN = '?'


class MetricKind(str, Enum):
    """Which per-block value the analyzer extracts."""

    QP = 'qp'
    CU = 'cu'


@dataclass(frozen=True)
class FrameMetric:
    """Per-frame record emitted by the analyzer.

    `raw_values` holds QP values or coding-unit areas depending on the
    metric kind.  When a frame carried too few values of its own and an
    earlier qualifying frame exists, `raw_values`/`average_value` are copied
    from that frame and `is_estimated` is set.
    """

    frame_number: int
    original_frame_number: int
    frame_type: FrameType
    codec_type: str
    raw_values: Tuple[int, ...]
    average_value: float
    is_estimated: bool = False


@dataclass
class FrameHeader:
    """Identity of the frame currently being assembled."""

    frame_number: int
    original_frame_number: int
    frame_type: FrameType
    codec_type: str
    order_seen: bool = False


@dataclass(frozen=True)
class VideoStream:
    """Subset of ffprobe stream fields the compatibility gate relies on."""

    index: int
    format: str
    format_full: str = ''
    profile: str = ''
    width: int = 0
    height: int = 0


@dataclass
class ContainerInfo:
    """Container metadata returned by the prober."""

    path: str
    format_name: str = ''
    duration: Optional[float] = None
    video_streams: List[VideoStream] = field(default_factory=list)


def mean_of(values: Sequence[int]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""

    if not values:
        return 0.0
    return fmean(values)
