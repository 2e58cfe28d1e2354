import dataclasses

import pytest

from codec_detective.models.core import FrameMetric, FrameType, MetricKind, mean_of


def test_mean_of_handles_empty_sequences() -> None:
    assert mean_of([]) == 0.0
    assert mean_of([4096, 1024, 256]) == pytest.approx(1792.0)


def test_frame_metric_is_immutable() -> None:
    frame = FrameMetric(1, 1, FrameType.I, 'h264', (26,), 26.0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        frame.average_value = 1.0  # type: ignore[misc]


def test_enum_values_serialize_as_strings() -> None:
    assert FrameType.UNKNOWN.value == '?'
    assert MetricKind('cu') is MetricKind.CU
