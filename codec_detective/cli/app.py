"""Command-line entry points for Codec Detective."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from ..analyzer.context import Context
from ..analyzer.engine import FrameMetricAnalyzer
from ..analyzer.errors import CodecDetectiveError, EmptyResultError, UnsupportedCodecError
from ..config.schema import DEFAULT_MIN_VALUES_PER_FRAME, AnalyzerConfig, ReportConfig
from ..ffmpeg.commands import which_or_die
from ..ffmpeg.probe import Prober
from ..models.core import MetricKind
from ..report.aggregate import generate_report
from ..report.export import write_report_json
from ..report.summary import format_text_summary, write_text_summary

_VIDEO_EXTENSIONS = ('.mp4', '.mkv', '.mov', '.webm', '.ts', '.ivf', '.h264', '.264', '.hevc', '.265')

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_UNSUPPORTED = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Per-frame QP / coding-unit statistics from FFmpeg debug output',
    )
    parser.add_argument(
        'metric',
        choices=[kind.value for kind in MetricKind],
        help='qp: quantization parameters (H.264, HEVC); cu: coding-unit areas (HEVC, AV1)',
    )
    parser.add_argument(
        'file',
        nargs='?',
        type=Path,
        help='Input video (defaults to the lone video file in the working directory)',
    )
    parser.add_argument(
        '--from-log',
        type=Path,
        default=None,
        help='Parse a saved FFmpeg debug log instead of running FFmpeg',
    )
    parser.add_argument(
        '--codec',
        default=None,
        help='Codec of the stream in --from-log (h264, hevc, av1); auto-detected when omitted',
    )
    parser.add_argument('--json', dest='json_path', type=Path, default=None, help='Write the report as JSON')
    parser.add_argument('--summary', dest='summary_path', type=Path, default=None, help='Write a text summary')
    parser.add_argument(
        '--include-frames',
        action='store_true',
        help='Include every frame record in the JSON report',
    )
    parser.add_argument(
        '--min-values',
        type=_parse_positive_int,
        default=DEFAULT_MIN_VALUES_PER_FRAME,
        help='Frames with fewer values reuse the previous qualifying frame (default: %(default)s)',
    )
    parser.add_argument(
        '--timeout',
        type=_parse_duration,
        default=None,
        help='Abort the analysis after this long (seconds or HH:MM:SS.mmm)',
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        help='Logging level (DEBUG, INFO, WARNING, ...)',
    )
    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))
    logger = logging.getLogger(__name__)

    kind = MetricKind(args.metric)
    if args.from_log is not None:
        file_path = args.file or args.from_log
        ffmpeg_exe, ffprobe_exe = 'ffmpeg', 'ffprobe'
    else:
        file_path = args.file or _auto_detect_input(Path.cwd())
        ffmpeg_exe = which_or_die('ffmpeg')
        ffprobe_exe = which_or_die('ffprobe')

    config = AnalyzerConfig(
        ffmpeg_exe=ffmpeg_exe,
        ffprobe_exe=ffprobe_exe,
        min_values_per_frame=args.min_values,
    )
    report_cfg = ReportConfig(include_frames=args.include_frames)
    logger.debug('Analyzer config: %s', config)

    analyzer = FrameMetricAnalyzer(kind, Prober(ffprobe_exe), config)
    root = Context.background()
    ctx = root.with_timeout(args.timeout) if args.timeout else root.with_cancel()
    try:
        report = generate_report(
            analyzer,
            ctx,
            file_path,
            report_cfg,
            log_path=args.from_log,
            codec=args.codec,
        )
    except KeyboardInterrupt:
        ctx.cancel('interrupted')
        logger.warning('Interrupted; analysis cancelled')
        return EXIT_INTERRUPTED
    except (UnsupportedCodecError, EmptyResultError) as exc:
        logger.error('%s', exc)
        return EXIT_UNSUPPORTED
    except CodecDetectiveError as exc:
        logger.error('Analysis failed: %s', exc)
        return EXIT_FAILURE
    finally:
        root.cancel()

    logger.info(
        'Analyzed %d frame(s) | average %s %.2f',
        report.total_frames,
        kind.value.upper(),
        report.average_value,
    )
    if args.json_path is not None:
        write_report_json(args.json_path, report, include_frames=report_cfg.include_frames)
    if args.summary_path is not None:
        write_text_summary(args.summary_path, report)
    print(format_text_summary(report), end='')
    return EXIT_OK


def _auto_detect_input(workdir: Path) -> Path:
    candidates = sorted(
        path.name
        for path in workdir.iterdir()
        if path.is_file() and path.suffix.lower() in _VIDEO_EXTENSIONS
    )
    if not candidates:
        raise SystemExit(
            f"No video file with extensions {', '.join(_VIDEO_EXTENSIONS)} found in {workdir}. "
            'Specify FILE explicitly.'
        )
    if len(candidates) > 1:
        raise SystemExit(
            "Multiple video files found ({files}). Specify FILE explicitly.".format(
                files=', '.join(candidates)
            )
        )
    return workdir / candidates[0]


def _parse_positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'.") from exc
    if number < 1:
        raise argparse.ArgumentTypeError('Value must be at least 1.')
    return number


def _parse_duration(value: str) -> float:
    stripped = value.strip()
    if not stripped:
        raise argparse.ArgumentTypeError('Timeout must be non-empty.')
    try:
        total = float(stripped)
    except ValueError:
        parts = stripped.split(':')
        if len(parts) not in (2, 3):
            raise argparse.ArgumentTypeError(
                f"Invalid time format '{value}'. Use seconds or HH:MM:SS.mmm."
            )
        try:
            seconds = float(parts[-1])
            minutes = int(parts[-2])
            hours = int(parts[-3]) if len(parts) == 3 else 0
        except ValueError as exc:
            raise argparse.ArgumentTypeError(
                f"Invalid numeric component in '{value}'."
            ) from exc
        total = hours * 3600 + minutes * 60 + seconds
    if total <= 0:
        raise argparse.ArgumentTypeError('Timeout must be positive.')
    return total
