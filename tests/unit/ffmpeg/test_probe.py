import json
import subprocess

import pytest

from codec_detective.analyzer.errors import ProbeError
from codec_detective.ffmpeg import probe
from codec_detective.ffmpeg.probe import Prober, parse_probe_output


def _completed(stdout: str, returncode: int = 0, stderr: str = '') -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=['ffprobe'], returncode=returncode, stdout=stdout, stderr=stderr)


def test_parse_probe_output_keeps_video_streams() -> None:
    data = {
        'format': {'format_name': 'mov,mp4,m4a', 'duration': '12.5'},
        'streams': [
            {'index': 0, 'codec_type': 'video', 'codec_name': 'HEVC', 'width': 1920, 'height': 1080},
            {'index': 1, 'codec_type': 'audio', 'codec_name': 'aac'},
        ],
    }
    info = parse_probe_output(data, 'clip.mp4')

    assert info.duration == pytest.approx(12.5)
    assert [stream.format for stream in info.video_streams] == ['hevc']
    assert info.video_streams[0].width == 1920


def test_prober_runs_ffprobe_json(monkeypatch) -> None:
    seen = {}

    def fake_run(cmd, **kwargs):
        seen['cmd'] = cmd
        return _completed(json.dumps({'streams': [{'index': 0, 'codec_type': 'video', 'codec_name': 'h264'}]}))

    monkeypatch.setattr(probe.subprocess, 'run', fake_run)
    info = Prober('ffprobe').get_extended_container_info('clip.mp4')

    assert seen['cmd'][0] == 'ffprobe'
    assert '-show_streams' in seen['cmd']
    assert seen['cmd'][-1] == 'clip.mp4'
    assert info.video_streams[0].format == 'h264'


def test_prober_failure_raises_probe_error(monkeypatch) -> None:
    monkeypatch.setattr(probe.subprocess, 'run', lambda cmd, **kwargs: _completed('', 1, 'No such file'))
    with pytest.raises(ProbeError) as exc:
        Prober('ffprobe').get_extended_container_info('missing.mp4')
    assert 'No such file' in str(exc.value)


def test_prober_rejects_bad_json(monkeypatch) -> None:
    monkeypatch.setattr(probe.subprocess, 'run', lambda cmd, **kwargs: _completed('{not json'))
    with pytest.raises(ProbeError):
        Prober('ffprobe').get_extended_container_info('clip.mp4')
