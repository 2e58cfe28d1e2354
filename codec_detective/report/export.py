"""JSON serialization of frame-metric reports."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict

from ..models.core import FrameMetric, FrameType
from ..models.report import Report

logger = logging.getLogger(__name__)

_TYPE_ORDER = (FrameType.I, FrameType.P, FrameType.B, FrameType.UNKNOWN)


def report_to_dict(report: Report, *, include_frames: bool = False) -> Dict[str, object]:
    """Stable, JSON-ready view of `report`."""

    payload: Dict[str, object] = {
        'filename': report.filename,
        'metric': report.metric.value,
    }
    if report.codec_type:
        payload['codec_type'] = report.codec_type
    payload.update(
        {
            'total_frames': report.total_frames,
            'estimated_frames': report.estimated_frames,
            'average_value': report.average_value,
            'min_value': report.min_value,
            'max_value': report.max_value,
            'average_by_type': {
                ftype.value: report.average_by_type[ftype]
                for ftype in _TYPE_ORDER
                if ftype in report.average_by_type
            },
        }
    )
    if report.percentiles:
        payload['percentiles'] = dict(report.percentiles)
    if include_frames:
        frames = [frame for frames in report.frames_by_type.values() for frame in frames]
        frames.sort(key=lambda frame: frame.frame_number)
        payload['frames'] = [_frame_to_dict(frame) for frame in frames]
    return payload


def write_report_json(path: Path, report: Report, *, include_frames: bool = False) -> None:
    payload = report_to_dict(report, include_frames=include_frames)
    path.write_text(json.dumps(payload, indent=2), encoding='utf-8')
    logger.info('Wrote report JSON to %s', path)


def _frame_to_dict(frame: FrameMetric) -> Dict[str, object]:
    return {
        'frame_number': frame.frame_number,
        'original_frame_number': frame.original_frame_number,
        'frame_type': frame.frame_type.value,
        'codec_type': frame.codec_type,
        'average_value': frame.average_value,
        'value_count': len(frame.raw_values),
        'is_estimated': frame.is_estimated,
    }
