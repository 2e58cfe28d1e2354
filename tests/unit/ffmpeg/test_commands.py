import io
import subprocess
import time

import pytest

from codec_detective.analyzer.errors import ProcessLaunchError
from codec_detective.config.schema import AnalyzerConfig
from codec_detective.ffmpeg import commands
from codec_detective.ffmpeg.commands import DebugProcess, DebugStreamLauncher, build_debug_command, which_or_die
from codec_detective.models.core import MetricKind


def test_qp_command_enables_qp_debug() -> None:
    cmd = build_debug_command('ffmpeg', 'in.mp4', MetricKind.QP)
    assert cmd[:4] == ['ffmpeg', '-hide_banner', '-nostdin', '-loglevel']
    assert cmd[4] == 'debug'
    assert cmd[cmd.index('-threads') + 1] == '1'
    assert cmd[cmd.index('-debug') + 1] == 'qp'
    assert cmd[-6:] == ['-i', 'in.mp4', '-an', '-f', 'null', '-']


def test_cu_command_uses_trace_without_qp_flag() -> None:
    cmd = build_debug_command('/usr/bin/ffmpeg', 'in.mkv', MetricKind.CU, decoder_threads=2)
    assert cmd[4] == 'trace'
    assert '-debug' not in cmd
    assert cmd[cmd.index('-threads') + 1] == '2'


def test_which_or_die_reports_missing_binary(monkeypatch) -> None:
    monkeypatch.setattr(commands.shutil, 'which', lambda name: None)
    with pytest.raises(RuntimeError) as exc:
        which_or_die('ffmpeg')
    assert 'ffmpeg' in str(exc.value)


def test_launch_failure_is_wrapped(monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise FileNotFoundError('ffmpeg')

    monkeypatch.setattr(commands.subprocess, 'Popen', boom)
    launcher = DebugStreamLauncher(AnalyzerConfig(ffmpeg_exe='missing-ffmpeg'))
    with pytest.raises(ProcessLaunchError):
        launcher.launch('in.mp4', MetricKind.QP)


class FakePopen:
    def __init__(self, hang: bool = False) -> None:
        self.stderr = io.BytesIO()
        self.pid = 4242
        self.hang = hang
        self.calls = []
        self.returncode = None

    def poll(self):
        return self.returncode

    def terminate(self) -> None:
        self.calls.append('terminate')

    def kill(self) -> None:
        self.calls.append('kill')
        self.returncode = -9

    def wait(self, timeout=None):
        self.calls.append('wait')
        if self.hang and 'kill' not in self.calls:
            raise subprocess.TimeoutExpired('ffmpeg', timeout)
        if self.returncode is None:
            self.returncode = -15
        return self.returncode


def test_terminate_escalates_to_kill() -> None:
    popen = FakePopen(hang=True)
    DebugProcess(popen, terminate_timeout=0.01).terminate()
    assert popen.calls == ['terminate', 'wait', 'kill', 'wait']


def test_terminate_is_noop_after_exit() -> None:
    popen = FakePopen()
    popen.returncode = 0
    DebugProcess(popen).terminate()
    assert popen.calls == []


def test_process_without_stderr_is_rejected() -> None:
    popen = FakePopen()
    popen.stderr = None
    with pytest.raises(ProcessLaunchError):
        DebugProcess(popen)


def test_interrupt_signals_without_waiting() -> None:
    popen = FakePopen(hang=True)
    process = DebugProcess(popen, terminate_timeout=60.0)
    process.interrupt()
    assert popen.calls == ['terminate']
    process.close()
    assert popen.calls == ['terminate']


def test_interrupt_kills_process_that_ignores_terminate() -> None:
    popen = FakePopen(hang=True)
    process = DebugProcess(popen, terminate_timeout=0.01)
    process.interrupt()
    deadline = time.monotonic() + 2.0
    while 'kill' not in popen.calls and time.monotonic() < deadline:
        time.sleep(0.005)
    assert popen.calls == ['terminate', 'kill']
    process.close()


def test_interrupt_is_noop_after_exit() -> None:
    popen = FakePopen()
    popen.returncode = 0
    DebugProcess(popen).interrupt()
    assert popen.calls == []
