"""Drain subprocess stdout/stderr into a log sink on two worker threads.

stdout and stderr are separate OS pipes with bounded buffers. Reading one
to EOF before touching the other deadlocks as soon as the child fills the
unread pipe, so each stream gets its own thread and both are joined
together once the child has exited.
"""

import threading
from enum import Enum
from typing import BinaryIO, Protocol

from genkey.errors import StreamCloseError, StreamIOError
from genkey.log import Severity


class StreamChannel(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


class Sink(Protocol):
    def write(self, level: Severity, line: str) -> None: ...


def _strip_newline(raw: bytes) -> str:
    if raw.endswith(b"\r\n"):
        raw = raw[:-2]
    elif raw.endswith(b"\n"):
        raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")


class StreamPump:
    """Copy lines from one stream to the sink until EOF. Runs once."""

    def __init__(self, stream: BinaryIO, sink: Sink, level: Severity, channel: StreamChannel):
        self.stream = stream
        self.sink = sink
        self.level = level
        self.channel = channel
        self.lines = 0
        self.error: StreamIOError | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self.channel.value} pump already started")
        self._thread = threading.Thread(
            target=self._run, name=f"pump-{self.channel.value}", daemon=True
        )
        self._thread.start()

    def join(self) -> None:
        if self._thread is not None:
            self._thread.join()

    @property
    def finished(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def _run(self) -> None:
        # readline() hands back a trailing partial line once, then b"" at EOF
        try:
            for raw in iter(self.stream.readline, b""):
                if self.error is not None:
                    # sink is broken: keep reading so the child never blocks on a full pipe
                    continue
                try:
                    self.sink.write(self.level, _strip_newline(raw))
                except Exception as e:
                    self.error = StreamIOError(self.channel, e)
                    continue
                self.lines += 1
        except (OSError, ValueError) as e:
            self.error = self.error or StreamIOError(self.channel, e)


class StreamMultiplexer:
    """Two pumps, one per stream, started together and stopped together."""

    def __init__(
        self,
        stdout: BinaryIO,
        stderr: BinaryIO,
        sink: Sink,
        out_level: Severity = Severity.INFO,
        err_level: Severity = Severity.WARN,
    ):
        self.out = StreamPump(stdout, sink, out_level, StreamChannel.STDOUT)
        self.err = StreamPump(stderr, sink, err_level, StreamChannel.STDERR)
        self._stopped = False

    @property
    def pumps(self) -> tuple[StreamPump, StreamPump]:
        return self.out, self.err

    def start(self) -> None:
        for pump in self.pumps:
            pump.start()

    def stop(self) -> None:
        """Wait for both pumps to hit EOF, then close both streams.

        Raises StreamCloseError if a stream won't close, or the first pump's
        StreamIOError if one ended on a read or sink failure.
        """
        if self._stopped:
            raise RuntimeError("stream multiplexer already stopped")
        self._stopped = True

        for pump in self.pumps:
            pump.join()

        close_error = None
        for pump in (self.err, self.out):
            try:
                pump.stream.close()
            except OSError as e:
                close_error = close_error or StreamCloseError(pump.channel, e)
        if close_error is not None:
            raise close_error

        for pump in self.pumps:
            if pump.error is not None:
                raise pump.error

    def __enter__(self) -> "StreamMultiplexer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.stop()
            return
        # already failing: still join and close, but keep the original error
        try:
            self.stop()
        except StreamIOError:
            pass
