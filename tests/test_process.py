"""Tests for process.py — spawning, draining, exit-code policy."""

import sys
import threading

import pytest

from genkey.commandline import CommandLine, Invocation
from genkey.errors import (
    ProcessExecutionError,
    ProcessLaunchError,
    ProcessTimeoutError,
    StreamIOError,
)
from genkey.log import Severity
from genkey.process import ProcessExecutor, ProcessOutcome, State, invoke


def _sh(script):
    return CommandLine("sh", ("-c", script))


def _py(script):
    return CommandLine(sys.executable, ("-c", script))


def test_outcome_dataclass():
    o = ProcessOutcome(exit_code=3)
    assert o.exit_code == 3
    assert o.failed is False


def test_lines_routed_by_stream(sink):
    script = "for i in 1 2 3; do echo out$i; done; echo err1 >&2; echo err2 >&2"
    outcome = ProcessExecutor(sink, Severity.INFO, Severity.WARN).run(_sh(script))
    assert outcome == ProcessOutcome(0, False)
    assert sink.lines(Severity.INFO) == ["out1", "out2", "out3"]
    assert sink.lines(Severity.WARN) == ["err1", "err2"]
    assert len(sink.records) == 5
    assert outcome.out_lines == 3
    assert outcome.err_lines == 2


def test_large_output_on_both_streams_does_not_deadlock(sink):
    # each stream alone is bigger than a pipe buffer
    script = (
        "import sys\n"
        "for i in range(5000):\n"
        "    sys.stderr.write('e' * 60 + '\\n')\n"
        "for i in range(5000):\n"
        "    sys.stdout.write('o' * 60 + '\\n')\n"
    )
    outcome = ProcessExecutor(sink, Severity.INFO, Severity.ERROR, timeout=60).run(_py(script))
    assert outcome.exit_code == 0
    assert len(sink.lines(Severity.INFO)) == 5000
    assert len(sink.lines(Severity.ERROR)) == 5000


def test_partial_trailing_line_forwarded_once(sink):
    ProcessExecutor(sink).run(_sh("printf 'a\\nb'"))
    assert sink.lines() == ["a", "b"]


def test_nonzero_exit_raises_when_failing(sink):
    with pytest.raises(ProcessExecutionError) as exc:
        ProcessExecutor(sink, fail_on_error=True).run(_sh("echo bye; exit 1"))
    assert exc.value.exit_code == 1
    assert exc.value.outcome == ProcessOutcome(1, True)
    assert "code 1" in str(exc.value)
    # output still drained before the error
    assert sink.lines() == ["bye"]


def test_nonzero_exit_returned_when_not_failing(sink):
    outcome = ProcessExecutor(sink, fail_on_error=False).run(_sh("exit 1"))
    assert outcome == ProcessOutcome(1, False)


def test_exit_code_passed_through(sink):
    outcome = ProcessExecutor(sink, fail_on_error=False).run(_sh("exit 42"))
    assert outcome.exit_code == 42


def test_missing_executable_is_launch_error(sink):
    executor = ProcessExecutor(sink)
    with pytest.raises(ProcessLaunchError) as exc:
        executor.run(CommandLine("genkey-no-such-binary-xyz", ("-genkey",)))
    assert exc.value.executable == "genkey-no-such-binary-xyz"
    assert sink.records == []
    assert executor.state is State.BUILT


def test_launch_error_is_not_execution_error(sink):
    with pytest.raises(ProcessLaunchError):
        try:
            ProcessExecutor(sink).run(CommandLine("genkey-no-such-binary-xyz"))
        except ProcessExecutionError:
            pytest.fail("launch failure reported as nonzero exit")


def test_state_sequence(sink):
    executor = ProcessExecutor(sink)
    executor.run(_sh("true"))
    assert executor.history == [
        State.BUILT,
        State.SPAWNED,
        State.STREAMS_ACTIVE,
        State.PROCESS_EXITED,
        State.STREAMS_DRAINED,
        State.DONE,
    ]


def test_state_reaches_done_on_failure(sink):
    executor = ProcessExecutor(sink)
    with pytest.raises(ProcessExecutionError):
        executor.run(_sh("exit 3"))
    assert executor.history[-2:] == [State.STREAMS_DRAINED, State.DONE]


def test_executor_is_single_use(sink):
    executor = ProcessExecutor(sink)
    executor.run(_sh("true"))
    with pytest.raises(RuntimeError):
        executor.run(_sh("true"))


def test_timeout_kills_and_still_drains(sink):
    script = "import sys, time\nprint('started', flush=True)\ntime.sleep(30)\n"
    executor = ProcessExecutor(sink, timeout=1)
    with pytest.raises(ProcessTimeoutError) as exc:
        executor.run(_py(script))
    assert exc.value.timeout == 1
    assert exc.value.outcome.failed is True
    assert sink.lines() == ["started"]
    assert executor.state is State.DONE


def test_env_merged_over_environ(sink, monkeypatch):
    monkeypatch.setenv("GENKEY_BASE", "base")
    ProcessExecutor(sink, env={"GENKEY_EXTRA": "extra"}).run(
        _sh('echo "$GENKEY_BASE $GENKEY_EXTRA"')
    )
    assert sink.lines() == ["base extra"]


def test_cwd(sink, tmp_path):
    ProcessExecutor(sink, cwd=str(tmp_path)).run(_sh("pwd"))
    assert sink.lines() == [str(tmp_path.resolve())]


def test_arguments_not_shell_interpreted(sink):
    cmd = CommandLine("printf", ("%s\\n", "$HOME; echo pwned"))
    ProcessExecutor(sink).run(cmd)
    assert sink.lines() == ["$HOME; echo pwned"]


def test_invoke_uses_invocation_settings(sink):
    inv = Invocation(
        command=_sh("echo o; echo e >&2; exit 5"),
        fail_on_error=False,
        out_level=Severity.VERBOSE,
        err_level=Severity.ERROR,
    )
    outcome = invoke(inv, sink)
    assert outcome == ProcessOutcome(5, False)
    assert sink.lines(Severity.VERBOSE) == ["o"]
    assert sink.lines(Severity.ERROR) == ["e"]


class BrokenSink:
    def write(self, level, line):
        raise RuntimeError("sink unavailable")


def test_sink_failure_with_large_output_still_finishes():
    # far more than a pipe buffer, all on one stream
    script = "import sys\nfor i in range(20000):\n    sys.stdout.write('x' * 60 + '\\n')\n"
    errors = []

    def run():
        try:
            ProcessExecutor(BrokenSink()).run(_py(script))
        except StreamIOError as e:
            errors.append(e)

    worker = threading.Thread(target=run, daemon=True)
    worker.start()
    worker.join(30)
    assert not worker.is_alive()
    assert len(errors) == 1
    assert "stdout" in str(errors[0])
    assert isinstance(errors[0].cause, RuntimeError)
