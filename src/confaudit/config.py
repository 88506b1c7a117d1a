"""Configuration loading and defaults."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from confaudit.errors import ConfigError

DEFAULT_CONFIG_FILE = "confaudit.toml"
PASSWORD_ENV_VAR = "BITBUCKET_PASSWORD"


@dataclass
class BitbucketConfig:
    username: str = ""
    password: str = ""
    owner: str = ""

    def resolve_password(self) -> str:
        """Get password from config or the BITBUCKET_PASSWORD env var."""
        if self.password:
            return self.password
        return os.environ.get(PASSWORD_ENV_VAR, "")


@dataclass
class AuditConfig:
    clone_dir: str = ""
    pattern: str = ""
    checkpoint_file: str = "check.txt"
    result_dir: str = "result"


@dataclass
class ConfauditConfig:
    bitbucket: BitbucketConfig = field(default_factory=BitbucketConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    base_dir: Path = field(default_factory=Path)

    @property
    def clone_path(self) -> Path:
        return self.base_dir / self.audit.clone_dir

    @property
    def checkpoint_path(self) -> Path:
        return self.base_dir / self.audit.checkpoint_file

    @property
    def result_path(self) -> Path:
        return self.base_dir / self.audit.result_dir

    @classmethod
    def load(cls, path: Path | None = None) -> ConfauditConfig:
        """Load config from confaudit.toml.

        Relative paths in the ``[audit]`` table resolve against the directory
        holding the config file. Unlike most settings files a missing config
        is an error: there is no sensible default account to audit.
        """
        if path is None:
            path = Path(DEFAULT_CONFIG_FILE)
        if not path.exists():
            raise ConfigError(f"config file {path} not found")

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"config file {path} is not valid TOML: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc

        config = cls(base_dir=path.resolve().parent)

        b = _table(raw, "bitbucket")
        config.bitbucket = BitbucketConfig(
            username=_string(b, "bitbucket.username", ""),
            password=_string(b, "bitbucket.password", ""),
            owner=_string(b, "bitbucket.owner", ""),
        )

        a = _table(raw, "audit")
        config.audit = AuditConfig(
            clone_dir=_string(a, "audit.clone_dir", ""),
            pattern=_string(a, "audit.pattern", ""),
            checkpoint_file=_string(a, "audit.checkpoint_file", config.audit.checkpoint_file),
            result_dir=_string(a, "audit.result_dir", config.audit.result_dir),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigError naming every required setting that is empty."""
        missing = []
        if not self.bitbucket.username:
            missing.append("bitbucket.username")
        if not self.bitbucket.resolve_password():
            missing.append(f"bitbucket.password (or {PASSWORD_ENV_VAR})")
        if not self.bitbucket.owner:
            missing.append("bitbucket.owner")
        if not self.audit.clone_dir:
            missing.append("audit.clone_dir")
        if not self.audit.pattern:
            missing.append("audit.pattern")
        if missing:
            raise ConfigError("missing required settings: " + ", ".join(missing))


def _table(raw: dict, name: str) -> dict:
    value = raw.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _string(table: dict, dotted: str, default: str) -> str:
    key = dotted.rsplit(".", 1)[-1]
    value = table.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"{dotted} must be a string, got {type(value).__name__}")
    return value


DEFAULT_CONFIG_TEMPLATE = """\
[bitbucket]
username = ""
# password from BITBUCKET_PASSWORD env (or .env) when left empty
password = ""
owner = ""

[audit]
# local directory the repositories are cloned into, removed after each run
clone_dir = "repos"
# files whose path contains this text are audited
pattern = "conf"
checkpoint_file = "check.txt"
result_dir = "result"
"""
