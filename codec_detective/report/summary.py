"""Text-based report summary writer."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..models.core import FrameType, MetricKind
from ..models.report import Report

logger = logging.getLogger(__name__)

_METRIC_LABELS = {
    MetricKind.QP: 'Quantization parameter',
    MetricKind.CU: 'Coding-unit area',
}


def format_text_summary(report: Report) -> str:
    lines: List[str] = []
    lines.append('Codec Detective Frame Metric Summary')
    lines.append(f'Source: {report.filename}')
    lines.append(f'Metric: {_METRIC_LABELS[report.metric]} ({report.metric.value})')
    lines.append(f'Codec: {report.codec_type or "unknown"}')
    lines.append(
        'Frames: total={total} | estimated={estimated}'.format(
            total=report.total_frames,
            estimated=report.estimated_frames,
        )
    )
    lines.append(
        f'Average: {report.average_value:.2f} (min {report.min_value:.2f}, max {report.max_value:.2f})'
    )
    lines.append('')
    lines.append('By frame type:')
    for ftype in (FrameType.I, FrameType.P, FrameType.B, FrameType.UNKNOWN):
        if ftype not in report.average_by_type:
            continue
        count = len(report.frames_by_type.get(ftype, []))
        lines.append(f'  {ftype.value}: {count:6d} frame(s), average {report.average_by_type[ftype]:.2f}')
    if report.percentiles:
        lines.append('')
        lines.append(
            'Percentiles: ' + ' | '.join(f'{key}={value:.2f}' for key, value in report.percentiles.items())
        )
    return '\n'.join(lines) + '\n'


def write_text_summary(path: Path, report: Report) -> None:
    """Write a human-readable summary of `report`."""

    path.write_text(format_text_summary(report), encoding='utf-8')
    logger.info('Wrote text summary to %s', path)
