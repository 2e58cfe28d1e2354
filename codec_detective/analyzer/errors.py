"""Exception taxonomy for frame-metric analysis."""
from __future__ import annotations

from typing import Optional


class CodecDetectiveError(RuntimeError):
    """Base class for every error raised by the analyzer."""


class UnsupportedCodecError(CodecDetectiveError):
    """No video stream uses a codec supported for the requested metric."""


class ProbeError(CodecDetectiveError):
    """ffprobe could not be run or returned unusable output."""


class ProcessLaunchError(CodecDetectiveError):
    """FFmpeg could not be started or its stderr pipe was not created."""


class ParseError(CodecDetectiveError):
    """The diagnostic stream could not be read or had an unexpected shape."""


class ProcessExitError(CodecDetectiveError):
    """FFmpeg exited with a non-zero status after the stream was parsed."""

    def __init__(self, returncode: int, detail: str = '') -> None:
        message = f"FFmpeg failed (rc={returncode})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.returncode = returncode


class CancellationError(CodecDetectiveError):
    """The execution context was cancelled."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or 'context canceled')


class DeadlineExceededError(CancellationError):
    """The execution context reached its deadline."""

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or 'context deadline exceeded')


class EmptyResultError(CodecDetectiveError):
    """The stream completed without producing a single frame."""


class ChannelClosedError(CodecDetectiveError):
    """A frame channel was used after it had been closed."""
