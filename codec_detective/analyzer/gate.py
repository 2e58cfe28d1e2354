"""Codec compatibility check performed before FFmpeg is launched."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Union

from ..ffmpeg.probe import Prober
from ..models.core import MetricKind
from ..parse.strategies import normalize_codec
from .errors import UnsupportedCodecError

logger = logging.getLogger(__name__)

SUPPORTED_CODECS: Dict[MetricKind, FrozenSet[str]] = {
    MetricKind.QP: frozenset({'h264', 'hevc'}),
    MetricKind.CU: frozenset({'hevc', 'av1'}),
}


class CodecGate:
    """Confirms the input carries a video stream this metric can be read from."""

    def __init__(self, prober: Prober, kind: MetricKind) -> None:
        self.prober = prober
        self.kind = kind

    @property
    def supported(self) -> FrozenSet[str]:
        return SUPPORTED_CODECS[self.kind]

    def check(self, file_path: Union[str, Path]) -> str:
        """Return the normalized codec of the first supported video stream."""

        info = self.prober.get_extended_container_info(file_path)
        if not info.video_streams:
            raise UnsupportedCodecError(f"No video stream found in {file_path}")
        seen = []
        for stream in info.video_streams:
            codec = normalize_codec(stream.format)
            if codec in self.supported:
                logger.debug('Stream #%d of %s uses %s', stream.index, file_path, codec)
                return codec
            seen.append(stream.format or 'unknown')
        raise UnsupportedCodecError(
            f"{self.kind.value.upper()} analysis supports {', '.join(sorted(self.supported))}; "
            f"{file_path} has {', '.join(seen)}"
        )
