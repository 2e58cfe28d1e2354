"""Aggregate a frame stream into a `Report`."""
from __future__ import annotations

import logging
import math
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..analyzer.channel import FrameChannel
from ..analyzer.context import Context
from ..analyzer.engine import FrameMetricAnalyzer
from ..analyzer.errors import EmptyResultError
from ..config.schema import ReportConfig
from ..models.core import FrameMetric, FrameType, MetricKind
from ..models.report import Report

logger = logging.getLogger(__name__)


class ReportAggregator:
    """Running totals over the frames of one analysis."""

    def __init__(
        self,
        filename: str,
        kind: MetricKind,
        percentiles: Sequence[int] = (10, 50, 90),
    ) -> None:
        self.filename = filename
        self.kind = kind
        self.percentiles = tuple(percentiles)
        self.count = 0
        self.estimated = 0
        self.codec_type = ''
        self._sum = 0.0
        self._min = math.inf
        self._max = -math.inf
        self._type_sums: Dict[FrameType, float] = {}
        self._type_counts: Dict[FrameType, int] = {}
        self._by_type: Dict[FrameType, List[FrameMetric]] = {}
        self._population: List[int] = []

    def add(self, frame: FrameMetric) -> None:
        self.count += 1
        self._sum += frame.average_value
        self._min = min(self._min, frame.average_value)
        self._max = max(self._max, frame.average_value)
        ftype = frame.frame_type
        self._type_sums[ftype] = self._type_sums.get(ftype, 0.0) + frame.average_value
        self._type_counts[ftype] = self._type_counts.get(ftype, 0) + 1
        self._by_type.setdefault(ftype, []).append(frame)
        self._population.extend(frame.raw_values)
        if frame.is_estimated:
            self.estimated += 1
        if not self.codec_type and frame.codec_type and frame.codec_type != 'unknown':
            self.codec_type = frame.codec_type

    def build(self) -> Report:
        if self.count == 0:
            raise EmptyResultError(f"No frames were extracted from {self.filename}")
        population = sorted(self._population)
        return Report(
            filename=self.filename,
            metric=self.kind,
            total_frames=self.count,
            average_value=self._sum / self.count,
            min_value=self._min,
            max_value=self._max,
            codec_type=self.codec_type,
            estimated_frames=self.estimated,
            average_by_type={
                ftype: self._type_sums[ftype] / self._type_counts[ftype] for ftype in self._type_counts
            },
            percentiles={f"p{p}": percentile(population, p) for p in self.percentiles} if population else {},
            frames_by_type={ftype: list(frames) for ftype, frames in self._by_type.items()},
        )


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Linear-interpolated percentile of an already sorted, non-empty sequence."""

    if not sorted_values:
        raise ValueError('percentile of empty sequence')
    rank = (len(sorted_values) - 1) * max(0.0, min(100.0, pct)) / 100.0
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(sorted_values[lo])
    return sorted_values[lo] + (sorted_values[hi] - sorted_values[lo]) * (rank - lo)


def collect_report(
    frames: Iterable[FrameMetric],
    filename: str,
    kind: MetricKind,
    percentiles: Sequence[int] = (10, 50, 90),
) -> Report:
    aggregator = ReportAggregator(filename, kind, percentiles)
    for frame in frames:
        aggregator.add(frame)
    return aggregator.build()


def generate_report(
    analyzer: FrameMetricAnalyzer,
    ctx: Context,
    file_path: Union[str, Path],
    config: Optional[ReportConfig] = None,
    *,
    log_path: Optional[Union[str, Path]] = None,
    codec: Optional[str] = None,
) -> Report:
    """Run `analyzer` while a collector thread drains its channel.

    With `log_path`, the saved debug log is parsed instead of launching
    FFmpeg on `file_path`.  The analysis error, if any, is raised once the
    collector has consumed every delivered frame.
    """

    cfg = config or ReportConfig()
    channel: FrameChannel[FrameMetric] = FrameChannel(cfg.channel_capacity)
    aggregator = ReportAggregator(Path(file_path).name, analyzer.kind, cfg.percentiles)

    def collect() -> None:
        for frame in channel:
            aggregator.add(frame)

    collector = threading.Thread(target=collect, name='codec-detective-report', daemon=True)
    collector.start()
    try:
        if log_path is not None:
            with Path(log_path).open('rb') as handle:
                analyzer.analyze_stream(ctx, handle, channel, codec=codec)
        else:
            analyzer.analyze(ctx, file_path, channel)
    finally:
        # The analyzer never ran if the log could not be opened.
        if not channel.closed:
            channel.close()
        collector.join()
    logger.info('Collected %d frame(s) for %s', aggregator.count, file_path)
    return aggregator.build()
