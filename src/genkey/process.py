"""Subprocess execution — the single mock seam for all tests."""

import os
import subprocess
from dataclasses import dataclass, field
from enum import Enum

from genkey.commandline import CommandLine, Invocation
from genkey.errors import ProcessExecutionError, ProcessLaunchError, ProcessTimeoutError
from genkey.log import Severity
from genkey.pump import Sink, StreamMultiplexer


@dataclass(frozen=True)
class ProcessOutcome:
    exit_code: int
    failed: bool = False
    out_lines: int = field(default=0, compare=False)
    err_lines: int = field(default=0, compare=False)


class State(Enum):
    BUILT = "built"
    SPAWNED = "spawned"
    STREAMS_ACTIVE = "streams_active"
    PROCESS_EXITED = "process_exited"
    STREAMS_DRAINED = "streams_drained"
    DONE = "done"


class ProcessExecutor:
    """Run one command with its output pumped into *sink*.

    The exit code is only reported after both pumps have been joined, so
    every line the process wrote is in the sink before the caller sees the
    result.
    """

    def __init__(
        self,
        sink: Sink,
        out_level: Severity = Severity.INFO,
        err_level: Severity = Severity.WARN,
        fail_on_error: bool = True,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
    ):
        self.sink = sink
        self.out_level = out_level
        self.err_level = err_level
        self.fail_on_error = fail_on_error
        self.timeout = timeout
        self.env = env
        self.cwd = cwd
        self.state = State.BUILT
        self.history: list[State] = [State.BUILT]

    def _advance(self, state: State) -> None:
        self.state = state
        self.history.append(state)

    def _spawn(self, command: CommandLine) -> subprocess.Popen:
        merged_env = None
        if self.env is not None:
            merged_env = {**os.environ, **self.env}
        try:
            return subprocess.Popen(
                command.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=merged_env,
                cwd=self.cwd,
            )
        except OSError as e:
            raise ProcessLaunchError(command.executable, e) from e

    def run(self, command: CommandLine) -> ProcessOutcome:
        if self.state is not State.BUILT:
            raise RuntimeError("executor already used; create one per invocation")

        proc = self._spawn(command)
        self._advance(State.SPAWNED)

        mux = StreamMultiplexer(
            proc.stdout, proc.stderr, self.sink, self.out_level, self.err_level
        )
        mux.start()
        self._advance(State.STREAMS_ACTIVE)

        timed_out = False
        try:
            proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
        finally:
            # timeout or interrupt: kill, reap, and still drain below
            if proc.returncode is None:
                proc.kill()
                proc.wait()
            self._advance(State.PROCESS_EXITED)
            mux.stop()
            self._advance(State.STREAMS_DRAINED)

        exit_code = proc.returncode
        self._advance(State.DONE)

        counts = {"out_lines": mux.out.lines, "err_lines": mux.err.lines}
        if timed_out:
            raise ProcessTimeoutError(
                self.timeout, exit_code, ProcessOutcome(exit_code, failed=True, **counts)
            )
        if exit_code != 0 and self.fail_on_error:
            raise ProcessExecutionError(
                exit_code, ProcessOutcome(exit_code, failed=True, **counts)
            )
        return ProcessOutcome(exit_code, failed=False, **counts)


def invoke(invocation: Invocation, sink: Sink) -> ProcessOutcome:
    """Run *invocation*, forwarding stdout/stderr lines to *sink*."""
    executor = ProcessExecutor(
        sink,
        out_level=invocation.out_level,
        err_level=invocation.err_level,
        fail_on_error=invocation.fail_on_error,
        timeout=invocation.timeout,
        env=invocation.env,
        cwd=invocation.cwd,
    )
    return executor.run(invocation.command)
