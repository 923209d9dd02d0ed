"""Parse genkey.yml / CLI overrides into a KeyConfig."""

import os
from dataclasses import dataclass, fields, replace

import yaml

from genkey.dname import DistinguishedName
from genkey.errors import ConfigurationError

CONFIG_FILE = "genkey.yml"


@dataclass(frozen=True)
class KeyConfig:
    alias: str | None = None
    storepass: str | None = None
    dname: str | None = None
    dname_params: DistinguishedName | None = None
    keystore: str | None = None
    storetype: str | None = None
    keypass: str | None = None
    sigalg: str | None = None
    keyalg: str | None = None
    keysize: int | None = None
    validity: int | None = None
    verbose: bool = False

    @property
    def effective_keypass(self) -> str | None:
        return self.keypass if self.keypass is not None else self.storepass

    @property
    def effective_dname(self) -> str | None:
        if self.dname_params is not None:
            return self.dname_params.render()
        return self.dname


_FIELD_NAMES = {f.name for f in fields(KeyConfig)}


def _str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _parse_positive_int(name: str, value) -> int | None:
    """Integers only; unset stays None, zero or negative is rejected."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} should be an integer", fields=[name])
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} should be an integer", fields=[name]) from None
    if number <= 0:
        raise ConfigurationError(f"{name} must be a positive integer, got {number}", fields=[name])
    return number


def _parse_dname_params(value) -> DistinguishedName:
    """Structured dname: a mapping, or a list of {name, value} entries."""
    if isinstance(value, dict):
        return DistinguishedName.of(*((str(k), _str(v) or "") for k, v in value.items()))
    if isinstance(value, list):
        pairs = []
        for item in value:
            if not isinstance(item, dict) or "name" not in item:
                raise ConfigurationError(
                    "dname entries need a name (and usually a value)", fields=["dname"]
                )
            pairs.append((str(item["name"]), _str(item.get("value")) or ""))
        return DistinguishedName.of(*pairs)
    raise ConfigurationError("dname must be a string, mapping or list", fields=["dname"])


def parse_config(data: dict | None) -> KeyConfig:
    """Parse a config dict (as loaded from YAML) into a KeyConfig."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError("config must be a mapping of settings")

    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ConfigurationError(f"Unknown setting(s): {', '.join(unknown)}", fields=unknown)

    if data.get("dname") is not None and data.get("dname_params") is not None:
        raise ConfigurationError(
            "It is not possible to specify dname both as a string and as parameters",
            fields=["dname"],
        )

    raw_dname = data.get("dname")
    dname = None
    dname_params = None
    if isinstance(raw_dname, (dict, list)):
        dname_params = _parse_dname_params(raw_dname)
    else:
        dname = _str(raw_dname)
    if data.get("dname_params") is not None:
        dname_params = _parse_dname_params(data["dname_params"])

    return KeyConfig(
        alias=_str(data.get("alias")),
        storepass=_str(data.get("storepass")),
        dname=dname,
        dname_params=dname_params,
        keystore=_str(data.get("keystore")),
        storetype=_str(data.get("storetype")),
        keypass=_str(data.get("keypass")),
        sigalg=_str(data.get("sigalg")),
        keyalg=_str(data.get("keyalg")),
        keysize=_parse_positive_int("keysize", data.get("keysize")),
        validity=_parse_positive_int("validity", data.get("validity")),
        verbose=bool(data.get("verbose", False)),
    )


def load_config(path: str | None = None) -> KeyConfig:
    """Load *path*, or genkey.yml from the working directory if present."""
    if path is None:
        if not os.path.isfile(CONFIG_FILE):
            return KeyConfig()
        path = CONFIG_FILE
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from None
    return parse_config(data)


def apply_overrides(config: KeyConfig, **overrides) -> KeyConfig:
    """Return *config* with every non-None override applied.

    Setting either form of dname replaces both forms from the file; setting
    both forms at once is an error.
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if "dname" in overrides and "dname_params" in overrides:
        raise ConfigurationError(
            "It is not possible to specify dname both as a string and as parameters",
            fields=["dname"],
        )
    if "dname" in overrides:
        overrides["dname_params"] = None
    elif "dname_params" in overrides:
        overrides["dname"] = None
    for name in ("keysize", "validity"):
        if name in overrides:
            overrides[name] = _parse_positive_int(name, overrides[name])
    return replace(config, **overrides)


def resolve_executable() -> str:
    """Resolve the keytool executable.

    Order: KEYTOOL env → $JAVA_HOME/bin/keytool (if executable) → keytool.
    """
    env_cmd = os.environ.get("KEYTOOL")
    if env_cmd:
        return env_cmd

    java_home = os.environ.get("JAVA_HOME")
    if java_home:
        candidate = os.path.join(java_home, "bin", "keytool")
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate

    return "keytool"
