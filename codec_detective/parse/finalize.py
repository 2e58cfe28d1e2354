"""Frame finalization with the sparse-data fallback policy."""
from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Sequence, Tuple

from ..analyzer.channel import FrameChannel
from ..analyzer.context import Context
from ..config.schema import DEFAULT_MIN_VALUES_PER_FRAME
from ..models.core import FrameHeader, FrameMetric, mean_of
from .builder import FrameBuilder

logger = logging.getLogger(__name__)


class FinalizeResult(NamedTuple):
    last_good: Optional[FrameMetric]
    emitted: Optional[FrameMetric]


def finalize_frame(
    header: FrameHeader,
    values: Sequence[int],
    last_good: Optional[FrameMetric],
    *,
    threshold: int = DEFAULT_MIN_VALUES_PER_FRAME,
) -> Tuple[Optional[FrameMetric], Optional[FrameMetric]]:
    """Turn accumulated values into a record.

    Returns ``(record, last_good)``.  A frame without values produces no
    record.  A frame with fewer than `threshold` values reuses the values of
    `last_good` when one exists and never replaces it.
    """

    if not values:
        return None, last_good
    if len(values) < threshold and last_good is not None:
        record = FrameMetric(
            frame_number=header.frame_number,
            original_frame_number=header.original_frame_number,
            frame_type=header.frame_type,
            codec_type=header.codec_type,
            raw_values=last_good.raw_values,
            average_value=last_good.average_value,
            is_estimated=True,
        )
        return record, last_good
    record = FrameMetric(
        frame_number=header.frame_number,
        original_frame_number=header.original_frame_number,
        frame_type=header.frame_type,
        codec_type=header.codec_type,
        raw_values=tuple(values),
        average_value=mean_of(values),
    )
    if len(values) < threshold:
        return record, last_good
    return record, record


def finalize_and_send(
    ctx: Context,
    builder: FrameBuilder,
    last_good: Optional[FrameMetric],
    channel: FrameChannel[FrameMetric],
    *,
    threshold: int = DEFAULT_MIN_VALUES_PER_FRAME,
    poll_interval: float = 0.05,
) -> FinalizeResult:
    """Finalize the builder's frame and hand it to `channel`.

    The builder is reset in every case.  If `ctx` is done before or during
    the send, nothing is emitted and `last_good` is returned unchanged.
    """

    header = builder.header
    values = builder.flatten()
    builder.reset()
    if header is None or ctx.done:
        return FinalizeResult(last_good, None)
    record, candidate = finalize_frame(header, values, last_good, threshold=threshold)
    if record is None:
        logger.debug('Frame %d carried no values; discarded', header.frame_number)
        return FinalizeResult(last_good, None)
    if not channel.send(record, ctx, poll_interval=poll_interval):
        return FinalizeResult(last_good, None)
    if record.is_estimated:
        logger.debug(
            'Frame %d had %d value(s); reused frame %d data',
            record.frame_number,
            len(values),
            last_good.frame_number if last_good else -1,
        )
    return FinalizeResult(candidate, record)
