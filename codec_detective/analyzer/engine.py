"""Frame-metric analyzer: gate, launch FFmpeg, parse its stderr concurrently."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from ..config.schema import AnalyzerConfig
from ..ffmpeg.commands import DebugProcess, DebugStreamLauncher
from ..ffmpeg.probe import Prober
from ..models.core import FrameMetric, MetricKind
from ..parse.stream import DebugLogParser
from .channel import FrameChannel
from .context import Context
from .errors import ProcessExitError
from .gate import CodecGate

logger = logging.getLogger(__name__)


class FrameMetricAnalyzer:
    """Extracts per-frame QP or CU values from a video file.

    One analysis runs at a time per instance.  `analyze` closes the channel
    it is given exactly once, whatever the outcome, and raises the terminal
    error after the channel is closed.
    """

    def __init__(
        self,
        kind: MetricKind,
        prober: Prober,
        config: Optional[AnalyzerConfig] = None,
        launcher: Optional[DebugStreamLauncher] = None,
    ) -> None:
        self.kind = kind
        self.config = config or AnalyzerConfig()
        self.gate = CodecGate(prober, kind)
        self.launcher = launcher or DebugStreamLauncher(self.config)
        self._lock = threading.Lock()

    def check_codec_compatibility(self, file_path: Union[str, Path]) -> str:
        return self.gate.check(file_path)

    def analyze(
        self,
        ctx: Context,
        file_path: Union[str, Path],
        channel: FrameChannel[FrameMetric],
    ) -> None:
        with self._lock:
            try:
                ctx.raise_if_done()
                codec = self.gate.check(file_path)
                logger.info('Analyzing %s (%s, %s)', file_path, codec, self.kind.value.upper())
                process = self.launcher.launch(file_path, self.kind)
                self._run_process(ctx, process, channel, codec)
            finally:
                channel.close()

    def analyze_stream(
        self,
        ctx: Context,
        stream: BinaryIO,
        channel: FrameChannel[FrameMetric],
        codec: Optional[str] = None,
    ) -> None:
        """Parse an already-open diagnostic stream, e.g. a saved debug log."""

        with self._lock:
            try:
                parser = DebugLogParser(ctx, channel, kind=self.kind, codec=codec, config=self.config)
                parser.run(stream)
            finally:
                channel.close()

    def _run_process(
        self,
        ctx: Context,
        process: DebugProcess,
        channel: FrameChannel[FrameMetric],
        codec: str,
    ) -> None:
        parser = DebugLogParser(ctx, channel, kind=self.kind, codec=codec, config=self.config)
        errors: List[BaseException] = []

        def worker() -> None:
            try:
                parser.run(process.stream)
            except Exception as exc:  # handed to the calling thread
                errors.append(exc)

        # Runs on the cancelling thread, so it only signals FFmpeg.
        unregister = ctx.add_done_callback(process.interrupt)
        thread = threading.Thread(target=worker, name='codec-detective-parse', daemon=True)
        thread.start()
        try:
            thread.join()
            if errors or ctx.done:
                process.terminate()
            returncode = process.wait()
        except BaseException:
            process.terminate()
            thread.join()
            raise
        finally:
            unregister()
            process.close()

        if ctx.done:
            raise ctx.error  # type: ignore[misc]
        if errors:
            raise errors[0]
        if returncode != 0:
            raise ProcessExitError(returncode, ' | '.join(parser.tail))
        logger.debug('FFmpeg exited cleanly after %d frame(s)', parser.frames_emitted)


def new_qp_analyzer(prober: Prober, config: Optional[AnalyzerConfig] = None) -> FrameMetricAnalyzer:
    return FrameMetricAnalyzer(MetricKind.QP, prober, config)


def new_cu_analyzer(prober: Prober, config: Optional[AnalyzerConfig] = None) -> FrameMetricAnalyzer:
    return FrameMetricAnalyzer(MetricKind.CU, prober, config)
