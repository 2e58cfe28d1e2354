"""Minimal ffprobe wrapper used by the codec compatibility gate."""
from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..analyzer.errors import ProbeError
from ..models.core import ContainerInfo, VideoStream

logger = logging.getLogger(__name__)


class Prober:
    """Reads container and stream metadata through `ffprobe -print_format json`."""

    def __init__(self, ffprobe_exe: str) -> None:
        self.ffprobe_exe = ffprobe_exe

    def get_extended_container_info(self, file_path: Union[str, Path]) -> ContainerInfo:
        cmd = [
            self.ffprobe_exe,
            '-loglevel',
            'error',
            '-hide_banner',
            '-print_format',
            'json',
            '-show_format',
            '-show_streams',
            str(file_path),
        ]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise ProbeError(f"Could not run ffprobe: {exc}") from exc
        if proc.returncode != 0:
            raise ProbeError(
                f"ffprobe failed (rc={proc.returncode}) for {file_path}: {proc.stderr.strip()}"
            )
        try:
            data = json.loads(proc.stdout or '{}')
        except ValueError as exc:
            raise ProbeError(f"Unparseable ffprobe JSON for {file_path}") from exc
        return parse_probe_output(data, str(file_path))


def parse_probe_output(data: Dict[str, Any], path: str) -> ContainerInfo:
    """Build a `ContainerInfo` from decoded ffprobe JSON."""

    fmt = data.get('format') or {}
    info = ContainerInfo(
        path=path,
        format_name=str(fmt.get('format_name') or ''),
        duration=_float_or_none(fmt.get('duration')),
    )
    for stream in data.get('streams') or []:
        if stream.get('codec_type') != 'video':
            continue
        info.video_streams.append(
            VideoStream(
                index=int(stream.get('index', len(info.video_streams))),
                format=str(stream.get('codec_name') or '').lower(),
                format_full=str(stream.get('codec_long_name') or ''),
                profile=str(stream.get('profile') or ''),
                width=int(stream.get('width') or 0),
                height=int(stream.get('height') or 0),
            )
        )
    logger.debug(
        'Probed %s: format=%s video_streams=%s',
        path,
        info.format_name,
        [stream.format for stream in info.video_streams],
    )
    return info


def _float_or_none(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
