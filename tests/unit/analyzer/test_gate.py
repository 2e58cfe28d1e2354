import pytest

from codec_detective.analyzer.errors import UnsupportedCodecError
from codec_detective.analyzer.gate import CodecGate
from codec_detective.models.core import ContainerInfo, MetricKind, VideoStream


class FakeProber:
    def __init__(self, *codecs: str) -> None:
        self.codecs = codecs
        self.calls = []

    def get_extended_container_info(self, file_path):
        self.calls.append(file_path)
        return ContainerInfo(
            path=str(file_path),
            video_streams=[VideoStream(index=idx, format=codec) for idx, codec in enumerate(self.codecs)],
        )


def test_gate_accepts_supported_codec() -> None:
    gate = CodecGate(FakeProber('h264'), MetricKind.QP)
    assert gate.check('clip.mp4') == 'h264'


def test_gate_normalizes_aliases_and_skips_unsupported_streams() -> None:
    gate = CodecGate(FakeProber('mjpeg', 'H265'), MetricKind.CU)
    assert gate.check('clip.mkv') == 'hevc'


def test_gate_rejects_codec_outside_whitelist() -> None:
    with pytest.raises(UnsupportedCodecError) as exc:
        CodecGate(FakeProber('av1'), MetricKind.QP).check('clip.webm')
    assert 'av1' in str(exc.value)


def test_gate_rejects_files_without_video() -> None:
    with pytest.raises(UnsupportedCodecError):
        CodecGate(FakeProber(), MetricKind.CU).check('audio.m4a')
