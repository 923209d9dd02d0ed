"""keytool -genkey: argument assembly + run."""

import time

from genkey import config, log, process
from genkey.commandline import CommandLine, CommandLineBuilder, Invocation
from genkey.errors import GenkeyError, ProcessExecutionError
from genkey.log import Severity

SECRET_FLAGS = frozenset({"-storepass", "-keypass"})


def build_command(cfg: config.KeyConfig, executable: str | None = None) -> CommandLine:
    """Turn a KeyConfig into keytool arguments. Raises ConfigurationError."""
    builder = CommandLineBuilder(executable or config.resolve_executable())
    builder.require("alias", cfg.alias)
    builder.require("storepass", cfg.storepass)
    builder.require("dname", cfg.effective_dname)

    builder.flag("-genkey")
    builder.flag("-v", cfg.verbose)
    builder.option("-alias", cfg.alias)
    builder.option("-dname", cfg.effective_dname)
    builder.option("-keystore", cfg.keystore)
    builder.option("-storepass", cfg.storepass)
    builder.option("-storetype", cfg.storetype)
    builder.option("-keypass", cfg.effective_keypass)
    builder.option("-sigalg", cfg.sigalg)
    builder.option("-keyalg", cfg.keyalg)
    builder.option("-keysize", cfg.keysize)
    builder.option("-validity", cfg.validity)
    return builder.build()


def generate(
    cfg: config.KeyConfig,
    dry_run: bool = False,
    timeout: float | None = None,
    sink=None,
    executable: str | None = None,
) -> int:
    """Generate a key pair. Returns exit code (0=success, keytool's code on failure)."""
    try:
        command = build_command(cfg, executable)
    except GenkeyError as e:
        log.error(str(e))
        return 1

    if dry_run:
        log.header("genkey (dry-run)")
        log.info(f"would run: {command.render(mask=SECRET_FLAGS)}")
        log.footer("dry-run complete")
        return 0

    log.header("genkey")
    log.info(f"Generating Key for {cfg.alias}")
    log.step(command.render(mask=SECRET_FLAGS))
    start_time = time.time()

    invocation = Invocation(
        command=command,
        fail_on_error=True,
        out_level=Severity.INFO,
        err_level=Severity.WARN,
        timeout=timeout,
    )
    try:
        outcome = process.invoke(invocation, sink or log.ConsoleSink())
    except ProcessExecutionError as e:
        log.error(str(e))
        log.footer("FAILED")
        # killed by a signal → negative code
        return e.exit_code if e.exit_code > 0 else 1
    except GenkeyError as e:
        log.error(str(e))
        log.footer("FAILED")
        return 1

    log.step(f"keytool wrote {outcome.out_lines} stdout / {outcome.err_lines} stderr lines")
    log.success(f"key {cfg.alias} generated")
    log.footer(f"complete ({time.time() - start_time:.1f}s)")
    return 0
