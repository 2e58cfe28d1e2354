"""Transient per-frame accumulation of positional values."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..models.core import FrameHeader


class FrameBuilder:
    """Collects raw values for the frame currently being assembled.

    Values are keyed by spatial offset; storing at an offset that already
    holds values replaces them.  The buffer belongs to a single parse run
    and is emptied on every `reset()`.
    """

    def __init__(self) -> None:
        self.header: Optional[FrameHeader] = None
        self._offsets: Dict[int, List[int]] = {}

    @property
    def building(self) -> bool:
        return self.header is not None

    def begin(self, header: FrameHeader) -> None:
        self.header = header
        self._offsets.clear()

    def store(self, offset: int, values: Iterable[int]) -> None:
        self._offsets[offset] = list(values)

    def note_order(self, order: int) -> None:
        """Attach the first decoder-reported order value seen for this frame."""

        if self.header is None or self.header.order_seen:
            return
        self.header.original_frame_number = order
        self.header.order_seen = True

    def flatten(self) -> List[int]:
        values: List[int] = []
        for chunk in self._offsets.values():
            values.extend(chunk)
        return values

    def reset(self) -> None:
        self.header = None
        self._offsets.clear()
