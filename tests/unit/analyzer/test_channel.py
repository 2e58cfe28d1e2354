import threading

import pytest

from codec_detective.analyzer.channel import FrameChannel
from codec_detective.analyzer.context import Context
from codec_detective.analyzer.errors import ChannelClosedError


def test_zero_capacity_behaves_as_single_slot() -> None:
    ctx = Context.background()
    channel = FrameChannel(0)
    assert channel.send('a', ctx)
    assert channel.receive(timeout=1) == 'a'


def test_send_on_full_channel_returns_false_when_cancelled() -> None:
    ctx = Context.background()
    channel = FrameChannel(1)
    assert channel.send(1, ctx)

    timer = threading.Timer(0.05, ctx.cancel)
    timer.start()
    try:
        assert channel.send(2, ctx, poll_interval=0.01) is False
    finally:
        timer.cancel()
    assert channel.receive(timeout=1) == 1


def test_blocked_send_resumes_when_reader_drains() -> None:
    ctx = Context.background()
    channel = FrameChannel(1)
    channel.send(1, ctx)
    results = []
    writer = threading.Thread(target=lambda: results.append(channel.send(2, ctx)))
    writer.start()

    assert channel.receive(timeout=1) == 1
    assert channel.receive(timeout=1) == 2
    writer.join(timeout=1)
    assert results == [True]


def test_iteration_drains_then_stops_after_close() -> None:
    ctx = Context.background()
    channel = FrameChannel(3)
    for item in (1, 2, 3):
        channel.send(item, ctx)
    channel.close()

    assert channel.closed
    assert list(channel) == [1, 2, 3]
    with pytest.raises(ChannelClosedError):
        channel.receive(timeout=0.01)


def test_close_twice_and_send_after_close_raise() -> None:
    channel = FrameChannel(1)
    channel.close()
    with pytest.raises(ChannelClosedError):
        channel.close()
    with pytest.raises(ChannelClosedError):
        channel.send(1, Context.background())


def test_receive_times_out_on_open_empty_channel() -> None:
    with pytest.raises(TimeoutError):
        FrameChannel(1).receive(timeout=0.01)
