"""Error kinds raised by the invocation core."""


class GenkeyError(Exception):
    """Base for everything the CLI reports as a failed invocation."""


class ConfigurationError(GenkeyError):
    """A required field is missing or invalid. Raised before anything is spawned."""

    def __init__(self, message: str, fields: list[str] | None = None):
        super().__init__(message)
        self.fields = fields or []

    @classmethod
    def missing(cls, fields: list[str]) -> "ConfigurationError":
        noun = "attribute" if len(fields) == 1 else "attributes"
        verb = "must be" if len(fields) == 1 else "must all be"
        return cls(f"{', '.join(fields)} {noun} {verb} set", fields=list(fields))


class ProcessLaunchError(GenkeyError):
    """The OS could not create the process."""

    def __init__(self, executable: str, cause: OSError):
        super().__init__(f"Could not launch {executable}: {cause.strerror or cause}")
        self.executable = executable
        self.cause = cause


class ProcessExecutionError(GenkeyError):
    """The process ran and exited nonzero while fail-on-error was set."""

    def __init__(self, exit_code: int, outcome=None, message: str | None = None):
        super().__init__(message or f"Process exited with code {exit_code}")
        self.exit_code = exit_code
        self.outcome = outcome


class ProcessTimeoutError(ProcessExecutionError):
    """The process outlived its timeout and was killed."""

    def __init__(self, timeout: float, exit_code: int, outcome=None):
        super().__init__(
            exit_code, outcome, message=f"Process killed after {timeout:g}s timeout"
        )
        self.timeout = timeout


class StreamIOError(GenkeyError):
    """Reading a subprocess stream, or writing to the sink, failed."""

    def __init__(self, channel, cause: BaseException):
        name = getattr(channel, "value", channel)
        super().__init__(f"{name} stream failed: {cause}")
        self.channel = channel
        self.cause = cause


class StreamCloseError(StreamIOError):
    """Closing a drained subprocess stream failed."""

    def __init__(self, channel, cause: BaseException):
        super().__init__(channel, cause)
        name = getattr(channel, "value", channel)
        self.args = (f"could not close {name} stream: {cause}",)
