"""Incremental parser that turns an FFmpeg debug stream into frame records."""
from __future__ import annotations

import logging
import sys
from collections import deque
from pathlib import Path
from typing import BinaryIO, Deque, List, Optional, Union

from ..analyzer.channel import FrameChannel
from ..analyzer.context import Context
from ..analyzer.errors import ParseError
from ..config.schema import AnalyzerConfig
from ..models.core import FrameHeader, FrameMetric, MetricKind
from .builder import FrameBuilder
from .classifier import LineKind, classify_line
from .finalize import finalize_and_send
from .strategies import CodecStrategy, has_specific_strategy, select_strategy, split_prefix

logger = logging.getLogger(__name__)

_TAIL_LINES = 5


class DebugLogParser:
    """Line-driven state machine over one diagnostic stream.

    Idle until the first frame boundary, then accumulates positional data
    into a `FrameBuilder` and finalizes it on the next boundary or at end of
    stream.  Emitted frames are numbered 1..N without gaps; a boundary that
    collected no values does not use up a number.
    """

    def __init__(
        self,
        ctx: Context,
        channel: FrameChannel[FrameMetric],
        *,
        kind: MetricKind,
        codec: Optional[str] = None,
        config: Optional[AnalyzerConfig] = None,
    ) -> None:
        self._ctx = ctx
        self._channel = channel
        self._config = config or AnalyzerConfig()
        self._kind = kind
        self._strategy = select_strategy(kind, codec)
        self._codec_locked = not self._strategy.generic
        self._builder = FrameBuilder()
        self._last_good: Optional[FrameMetric] = None
        self._emitted = 0
        self._tail: Deque[str] = deque(maxlen=_TAIL_LINES)

    @property
    def strategy(self) -> CodecStrategy:
        return self._strategy

    @property
    def frames_emitted(self) -> int:
        return self._emitted

    @property
    def tail(self) -> List[str]:
        """Last few non-empty lines seen, for error messages."""

        return list(self._tail)

    def run(self, stream: BinaryIO) -> int:
        """Consume `stream` to EOF; returns the number of frames emitted.

        Raises the context's error when cancelled and `ParseError` when the
        stream cannot be read.
        """

        while True:
            self._ctx.raise_if_done()
            raw = self._read_line(stream)
            if not raw:
                break
            self.feed_line(raw.decode('utf-8', errors='replace').rstrip('\r\n'))
        self._ctx.raise_if_done()
        self.finish()
        self._ctx.raise_if_done()
        logger.info('Parsed %d %s frame(s)', self._emitted, self._kind.value.upper())
        return self._emitted

    def feed_line(self, line: str) -> None:
        if line.strip():
            self._tail.append(line)
        if not self._codec_locked:
            self._maybe_lock_codec(line)
        classified = classify_line(line, self._strategy)
        if classified.kind is LineKind.BOUNDARY:
            self._flush()
            header = FrameHeader(
                frame_number=self._emitted + 1,
                original_frame_number=self._emitted + 1,
                frame_type=self._strategy.classify(classified.token),
                codec_type=classified.codec_tag or self._strategy.codec or 'unknown',
            )
            self._builder.begin(header)
            if classified.order is not None:
                self._builder.note_order(classified.order)
            return
        if not self._builder.building:
            return
        if classified.order is not None:
            self._builder.note_order(classified.order)
        if classified.kind is LineKind.DATA:
            self._builder.store(classified.offset, classified.values)

    def finish(self) -> None:
        """Finalize the frame in progress, if any."""

        self._flush()

    def _flush(self) -> None:
        if not self._builder.building:
            return
        result = finalize_and_send(
            self._ctx,
            self._builder,
            self._last_good,
            self._channel,
            threshold=self._config.min_values_per_frame,
            poll_interval=self._config.send_poll_interval,
        )
        self._last_good = result.last_good
        if result.emitted is not None:
            self._emitted += 1

    def _maybe_lock_codec(self, line: str) -> None:
        codec, _ = split_prefix(line)
        if codec and has_specific_strategy(self._kind, codec):
            self._strategy = select_strategy(self._kind, codec)
            self._codec_locked = True
            logger.info('Detected %s stream; switching to its %s patterns', codec, self._kind.value.upper())

    def _read_line(self, stream: BinaryIO) -> bytes:
        limit = self._config.max_line_bytes
        try:
            raw = stream.readline(limit + 1)
        except (OSError, ValueError) as exc:
            if self._ctx.done:
                # Pipe closed underneath us by cancellation.
                return b''
            raise ParseError(f"Error reading FFmpeg output: {exc}") from exc
        if len(raw) > limit and not raw.endswith(b'\n'):
            raise ParseError(f"Diagnostic line exceeds {limit} bytes")
        return raw


def parse_stream(
    ctx: Context,
    stream: BinaryIO,
    channel: FrameChannel[FrameMetric],
    *,
    kind: MetricKind,
    codec: Optional[str] = None,
    config: Optional[AnalyzerConfig] = None,
) -> int:
    parser = DebugLogParser(ctx, channel, kind=kind, codec=codec, config=config)
    return parser.run(stream)


def parse_log_file(
    path: Union[str, Path],
    kind: MetricKind,
    codec: Optional[str] = None,
    *,
    config: Optional[AnalyzerConfig] = None,
) -> List[FrameMetric]:
    """Parse a saved FFmpeg debug log synchronously."""

    channel: FrameChannel[FrameMetric] = FrameChannel(capacity=sys.maxsize)
    try:
        with Path(path).open('rb') as handle:
            parse_stream(Context.background(), handle, channel, kind=kind, codec=codec, config=config)
    finally:
        channel.close()
    return list(channel)
