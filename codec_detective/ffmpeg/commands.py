"""Helpers that wrap FFmpeg invocations for debug-log extraction."""
from __future__ import annotations

import logging
import shutil
import subprocess
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from ..analyzer.errors import ProcessLaunchError
from ..config.schema import AnalyzerConfig
from ..models.core import MetricKind

logger = logging.getLogger(__name__)


def which_or_die(name: str) -> str:
    path = shutil.which(name)
    if not path:
        raise RuntimeError(f"Required executable not found in PATH: {name}")
    return path


def build_debug_command(
    ffmpeg_exe: str,
    video_path: Union[str, Path],
    kind: MetricKind,
    *,
    decoder_threads: int = 1,
) -> List[str]:
    """Return an FFmpeg command that decodes to null with per-frame debug logging.

    A single decoder thread keeps each frame's log lines contiguous on stderr.
    """

    cmd = [
        ffmpeg_exe,
        '-hide_banner',
        '-nostdin',
        '-loglevel',
        'debug' if kind is MetricKind.QP else 'trace',
        '-threads',
        str(decoder_threads),
    ]
    if kind is MetricKind.QP:
        cmd += ['-debug', 'qp']
    cmd += [
        '-i',
        str(video_path),
        '-an',
        '-f',
        'null',
        '-',
    ]
    return cmd


class DebugProcess:
    """Running FFmpeg process whose stderr carries the diagnostic stream."""

    def __init__(self, proc: subprocess.Popen, *, terminate_timeout: float = 5.0) -> None:
        if proc.stderr is None:
            raise ProcessLaunchError('FFmpeg did not expose a stderr pipe')
        self._proc = proc
        self._terminate_timeout = terminate_timeout
        self._kill_timer: Optional[threading.Timer] = None

    @property
    def stream(self) -> BinaryIO:
        return self._proc.stderr  # type: ignore[return-value]

    @property
    def pid(self) -> int:
        return self._proc.pid

    def terminate(self) -> None:
        """Stop FFmpeg so a pending read on `stream` returns EOF."""

        if self._proc.poll() is not None:
            return
        logger.debug('Terminating FFmpeg (pid=%d)', self._proc.pid)
        try:
            self._proc.terminate()
            self._proc.wait(timeout=self._terminate_timeout)
        except subprocess.TimeoutExpired:
            self._proc.kill()
            self._proc.wait()
        except OSError:
            pass

    def interrupt(self) -> None:
        """Ask FFmpeg to stop without blocking; kill it if it lingers."""

        if self._proc.poll() is not None:
            return
        logger.debug('Interrupting FFmpeg (pid=%d)', self._proc.pid)
        try:
            self._proc.terminate()
        except OSError:
            return
        timer = threading.Timer(self._terminate_timeout, self._kill_if_running)
        timer.daemon = True
        self._kill_timer = timer
        timer.start()

    def _kill_if_running(self) -> None:
        if self._proc.poll() is not None:
            return
        logger.debug('FFmpeg ignored terminate; killing pid=%d', self._proc.pid)
        try:
            self._proc.kill()
        except OSError:
            pass

    def wait(self, timeout: Optional[float] = None) -> int:
        return self._proc.wait(timeout=timeout)

    def close(self) -> None:
        if self._kill_timer is not None:
            self._kill_timer.cancel()
        if self._proc.stderr:
            self._proc.stderr.close()


class DebugStreamLauncher:
    """Starts FFmpeg with the flags needed for per-frame QP/CU diagnostics."""

    def __init__(self, config: Optional[AnalyzerConfig] = None) -> None:
        self.config = config or AnalyzerConfig()

    def launch(self, video_path: Union[str, Path], kind: MetricKind) -> DebugProcess:
        cmd = build_debug_command(
            self.config.ffmpeg_exe,
            video_path,
            kind,
            decoder_threads=self.config.decoder_threads,
        )
        logger.debug('Launching: %s', ' '.join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            raise ProcessLaunchError(f"Failed to start FFmpeg: {exc}") from exc
        logger.info('Started FFmpeg %s analysis of %s (pid=%d)', kind.value.upper(), video_path, proc.pid)
        return DebugProcess(proc, terminate_timeout=self.config.terminate_timeout)
