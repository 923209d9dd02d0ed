"""Click entry point — all commands."""

import sys

import click

from genkey import __version__, config, keytool, log, process
from genkey.commandline import Invocation
from genkey.dname import DistinguishedName
from genkey.errors import GenkeyError, ProcessExecutionError

LEVELS = click.Choice([s.name.lower() for s in log.Severity], case_sensitive=False)


def _parse_pairs(pairs: tuple[str, ...]) -> DistinguishedName | None:
    if not pairs:
        return None
    parsed = []
    for item in pairs:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got {item!r}")
        parsed.append((name, value))
    return DistinguishedName.of(*parsed)


@click.group()
@click.version_option(version=__version__, prog_name="genkey")
def main():
    """Generate keystore keys with keytool, logging its output as it runs."""


@main.command()
@click.option("--config", "config_path", default=None, help="Settings file (default: ./genkey.yml)")
@click.option("--alias", default=None, help="Alias to add the key under")
@click.option("--dname", default=None, help="Distinguished name, e.g. 'CN=Jane Doe, O=Acme'")
@click.option("--dname-param", multiple=True, metavar="NAME=VALUE", help="Structured dname part, in order")
@click.option("--keystore", default=None, help="Keystore location")
@click.option("--storepass", default=None, help="Password for keystore integrity")
@click.option("--storetype", default=None, help="Keystore type")
@click.option("--keypass", default=None, help="Password for the private key (default: storepass)")
@click.option("--sigalg", default=None, help="Signature algorithm")
@click.option("--keyalg", default=None, help="Key algorithm")
@click.option("--keysize", default=None, help="Key size in bits")
@click.option("--validity", default=None, help="Days the certificate is valid")
@click.option("--verbose/--no-verbose", "-v", default=None, help="Verbose keytool output")
@click.option("--timeout", default=None, type=float, help="Kill keytool after this many seconds")
@click.option("--dry-run", is_flag=True, help="Show the command without running it")
def generate(config_path, dname_param, timeout, dry_run, **settings):
    """Generate a key pair into a keystore."""
    try:
        dname_params = _parse_pairs(dname_param)
    except click.BadParameter as e:
        log.error(str(e))
        sys.exit(1)
    try:
        cfg = config.load_config(config_path)
        cfg = config.apply_overrides(cfg, dname_params=dname_params, **settings)
    except GenkeyError as e:
        log.error(str(e))
        sys.exit(1)
    code = keytool.generate(cfg, dry_run=dry_run, timeout=timeout)
    sys.exit(code)


@main.command()
@click.argument("pairs", nargs=-1, required=True)
def dname(pairs):
    """Render NAME=VALUE pairs as an escaped distinguished name."""
    try:
        rendered = _parse_pairs(pairs)
    except click.BadParameter as e:
        log.error(str(e))
        sys.exit(1)
    click.echo(rendered.render())


@main.command(
    name="exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("--no-fail", is_flag=True, help="Report a nonzero exit code instead of failing")
@click.option("--out-level", default="info", type=LEVELS, help="Level for stdout lines")
@click.option("--err-level", default="warn", type=LEVELS, help="Level for stderr lines")
@click.option("--timeout", default=None, type=float, help="Kill the command after this many seconds")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
def exec_cmd(no_fail, out_level, err_level, timeout, command):
    """Run any command with its output routed through the log."""
    if not command:
        click.echo("Error: No command specified", err=True)
        sys.exit(1)
    invocation = Invocation.from_flags(
        command[0],
        [(arg, None) for arg in command[1:]],
        fail_on_error=not no_fail,
        out_level=log.parse_severity(out_level),
        err_level=log.parse_severity(err_level),
        timeout=timeout,
    )
    try:
        outcome = process.invoke(invocation, log.ConsoleSink())
    except ProcessExecutionError as e:
        log.error(str(e))
        sys.exit(e.exit_code if e.exit_code > 0 else 1)
    except GenkeyError as e:
        log.error(str(e))
        sys.exit(1)
    sys.exit(outcome.exit_code)


if __name__ == "__main__":
    main()
