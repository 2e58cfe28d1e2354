"""Single-line classification for the debug-log state machine."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .strategies import CodecStrategy, split_prefix


class LineKind(Enum):
    BOUNDARY = 'boundary'
    DATA = 'data'
    IGNORED = 'ignored'


@dataclass(frozen=True)
class ClassifiedLine:
    """Outcome of matching one diagnostic line against a strategy."""

    kind: LineKind
    codec_tag: Optional[str] = None
    token: str = ''
    offset: int = 0
    values: Tuple[int, ...] = ()
    order: Optional[int] = None


def classify_line(line: str, strategy: CodecStrategy) -> ClassifiedLine:
    """Classify `line` as a frame boundary, a positional data line or noise.

    Boundary matching wins over data matching.  Order tokens (POC and
    friends) are reported on any line so the caller can attach them to the
    frame being built.
    """

    codec_tag, content = split_prefix(line)
    order = strategy.order(content)
    token = strategy.boundary(content)
    if token is not None:
        return ClassifiedLine(LineKind.BOUNDARY, codec_tag=codec_tag, token=token, order=order)
    extracted = strategy.extract(content)
    if extracted is not None:
        offset, values = extracted
        return ClassifiedLine(
            LineKind.DATA,
            codec_tag=codec_tag,
            offset=offset,
            values=tuple(values),
            order=order,
        )
    return ClassifiedLine(LineKind.IGNORED, codec_tag=codec_tag, order=order)
