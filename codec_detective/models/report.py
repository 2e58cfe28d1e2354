"""Data structures describing an aggregated frame-metric report."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from .core import FrameMetric, FrameType, MetricKind


@dataclass
class Report:
    """Summary of a fully drained frame stream."""

    filename: str
    metric: MetricKind
    total_frames: int
    average_value: float
    min_value: float
    max_value: float
    codec_type: str = ''
    estimated_frames: int = 0
    average_by_type: Dict[FrameType, float] = field(default_factory=dict)
    percentiles: Dict[str, float] = field(default_factory=dict)
    frames_by_type: Dict[FrameType, List[FrameMetric]] = field(default_factory=dict)
