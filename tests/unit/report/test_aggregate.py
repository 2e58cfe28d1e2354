import io
from pathlib import Path

import pytest

from codec_detective.analyzer.context import Context
from codec_detective.analyzer.engine import FrameMetricAnalyzer
from codec_detective.analyzer.errors import EmptyResultError, ParseError
from codec_detective.config.schema import AnalyzerConfig, ReportConfig
from codec_detective.models.core import ContainerInfo, FrameMetric, FrameType, MetricKind, VideoStream
from codec_detective.report.aggregate import ReportAggregator, collect_report, generate_report, percentile

FIXTURE_DIR = Path(__file__).resolve().parents[2] / 'fixtures'


def _frame(number: int, ftype: FrameType, values, *, estimated: bool = False) -> FrameMetric:
    return FrameMetric(
        frame_number=number,
        original_frame_number=number,
        frame_type=ftype,
        codec_type='h264',
        raw_values=tuple(values),
        average_value=sum(values) / len(values),
        is_estimated=estimated,
    )


class FakeProber:
    def get_extended_container_info(self, file_path):
        return ContainerInfo(path=str(file_path), video_streams=[VideoStream(index=0, format='hevc')])


class FakeProcess:
    def __init__(self, data: bytes) -> None:
        self.stream = io.BytesIO(data)

    def terminate(self) -> None:
        pass

    def interrupt(self) -> None:
        pass

    def wait(self, timeout=None) -> int:
        return 0

    def close(self) -> None:
        pass


class FakeLauncher:
    def __init__(self, data: bytes) -> None:
        self.data = data

    def launch(self, video_path, kind):
        return FakeProcess(self.data)


def test_percentile_interpolates_linearly() -> None:
    values = [10, 20, 30, 40]
    assert percentile(values, 0) == 10
    assert percentile(values, 100) == 40
    assert percentile(values, 50) == pytest.approx(25.0)
    assert percentile(values, 10) == pytest.approx(13.0)
    assert percentile([7], 90) == 7


def test_collect_report_totals() -> None:
    frames = [
        _frame(1, FrameType.I, [20, 22]),
        _frame(2, FrameType.P, [30, 30]),
        _frame(3, FrameType.P, [30, 30], estimated=True),
        _frame(4, FrameType.B, [40, 44]),
    ]
    report = collect_report(frames, 'clip.mp4', MetricKind.QP)

    assert report.total_frames == 4
    assert report.estimated_frames == 1
    assert report.codec_type == 'h264'
    assert report.average_value == pytest.approx((21 + 30 + 30 + 42) / 4)
    assert report.min_value == pytest.approx(21.0)
    assert report.max_value == pytest.approx(42.0)
    assert report.average_by_type == {FrameType.I: 21.0, FrameType.P: 30.0, FrameType.B: 42.0}
    assert [frame.frame_number for frame in report.frames_by_type[FrameType.P]] == [2, 3]
    assert set(report.percentiles) == {'p10', 'p50', 'p90'}
    assert report.percentiles['p50'] == pytest.approx(30.0)


def test_empty_stream_raises_empty_result() -> None:
    with pytest.raises(EmptyResultError):
        ReportAggregator('clip.mp4', MetricKind.CU).build()


def test_generate_report_runs_analyzer() -> None:
    data = (FIXTURE_DIR / 'hevc_cu_debug.txt').read_bytes()
    analyzer = FrameMetricAnalyzer(MetricKind.CU, FakeProber(), launcher=FakeLauncher(data))

    report = generate_report(analyzer, Context.background(), 'videos/clip.mkv', ReportConfig(channel_capacity=1))

    assert report.filename == 'clip.mkv'
    assert report.total_frames == 3
    assert report.codec_type == 'hevc'
    assert report.min_value == pytest.approx(640.0)
    assert report.max_value == pytest.approx(4096.0)
    assert report.average_by_type[FrameType.I] == pytest.approx(1792.0)
    assert report.average_by_type[FrameType.P] == pytest.approx((640.0 + 4096.0) / 2)


def test_generate_report_from_saved_log() -> None:
    analyzer = FrameMetricAnalyzer(MetricKind.QP, FakeProber())
    report = generate_report(
        analyzer,
        Context.background(),
        'clip.mp4',
        log_path=FIXTURE_DIR / 'h264_qp_debug.txt',
        codec='h264',
    )
    assert report.total_frames == 3
    assert report.estimated_frames == 1


def test_generate_report_propagates_analysis_error() -> None:
    data = b'[hevc @ 0x1] nal_unit_type: 19(IDR_W_RADL)\n' + b'0 ' + b'1' * 64 + b'\n'
    analyzer = FrameMetricAnalyzer(
        MetricKind.CU,
        FakeProber(),
        AnalyzerConfig(max_line_bytes=48),
        launcher=FakeLauncher(data),
    )

    with pytest.raises(ParseError):
        generate_report(analyzer, Context.background(), 'clip.mkv')


def test_generate_report_missing_log_does_not_hang(tmp_path: Path) -> None:
    analyzer = FrameMetricAnalyzer(MetricKind.QP, FakeProber())
    with pytest.raises(OSError):
        generate_report(analyzer, Context.background(), 'clip.mp4', log_path=tmp_path / 'nope.log')
