"""Command line assembly — executable plus discrete argument tokens."""

import shlex
from dataclasses import dataclass, field

from genkey.dname import DistinguishedName
from genkey.errors import ConfigurationError
from genkey.log import Severity


@dataclass(frozen=True)
class CommandLine:
    executable: str
    arguments: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        """The list handed to the OS. Never joined into a shell string."""
        return [self.executable, *self.arguments]

    def render(self, mask: frozenset[str] = frozenset()) -> str:
        """Shell-quoted form for display only.

        Values following any flag in *mask* are replaced by ``****``.
        """
        shown = [self.executable]
        hide_next = False
        for arg in self.arguments:
            shown.append("****" if hide_next else arg)
            hide_next = arg in mask
        return " ".join(shlex.quote(a) for a in shown)


class CommandLineBuilder:
    """Accumulates flags, options and required-field checks, then builds once.

    Missing required fields are collected rather than raised one at a time so
    the error names all of them.
    """

    def __init__(self, executable: str):
        self.executable = executable
        self._arguments: list[str] = []
        self._missing: list[str] = []

    def flag(self, name: str, enabled: bool = True) -> "CommandLineBuilder":
        if enabled:
            self._arguments.append(name)
        return self

    def option(self, name: str, value) -> "CommandLineBuilder":
        """Append *name* and *value* as two tokens; skip when value is None."""
        if value is not None:
            self._arguments.extend([name, str(value)])
        return self

    def require(self, field_name: str, value) -> "CommandLineBuilder":
        if value is None or value == "":
            self._missing.append(field_name)
        return self

    def build(self) -> CommandLine:
        if not self.executable:
            self._missing.insert(0, "executable")
        if self._missing:
            raise ConfigurationError.missing(self._missing)
        return CommandLine(self.executable, tuple(self._arguments))


@dataclass(frozen=True)
class Invocation:
    """Everything needed to run one command and route its output."""

    command: CommandLine
    fail_on_error: bool = True
    out_level: Severity = Severity.INFO
    err_level: Severity = Severity.WARN
    timeout: float | None = None
    env: dict[str, str] | None = field(default=None, hash=False)
    cwd: str | None = None

    @classmethod
    def from_flags(
        cls,
        executable: str,
        flags: list[tuple[str, str | None]],
        parameters: DistinguishedName | None = None,
        parameter_flag: str = "-dname",
        **kwargs,
    ) -> "Invocation":
        """Build from ordered ``(flag, value)`` pairs; ``None`` means a bare flag.

        A parameter set, when given, is rendered and appended after the flags
        as ``parameter_flag <rendered>``.
        """
        builder = CommandLineBuilder(executable)
        for name, value in flags:
            if value is None:
                builder.flag(name)
            else:
                builder.option(name, value)
        if parameters is not None:
            builder.option(parameter_flag, parameters.render())
        return cls(command=builder.build(), **kwargs)
