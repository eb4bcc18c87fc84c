"""Where plugin parameters come from.

Each parameter is resolved from, in order: the command line flag, a chain of
environment variables, then secret/parameter files mounted by the CI system,
and finally an optional YAML parameters file. The first source holding a
value wins.
"""
from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .config import DEFAULT_REGISTRY, NONE, Config


PARAMETERS_DIR = Path("/vela/parameters/npm")
SECRETS_DIR = Path("/vela/secrets/npm")
MANAGED_AUTH_DIR = Path("/vela/secrets/managed-auth")

TRUE_STRINGS = {"1", "t", "true", "y", "yes", "on"}
FALSE_STRINGS = {"0", "f", "false", "n", "no", "off"}


class Source(ABC):
    """A single place a value may be read from."""

    @abstractmethod
    def get(self) -> Optional[str]:
        """The value, or None when this source holds nothing."""

    @abstractmethod
    def describe(self) -> str:
        """Where the value came from, for log messages."""


class EnvVar(Source):
    def __init__(self, name: str) -> None:
        self.name = name

    def get(self) -> Optional[str]:
        value = os.environ.get(self.name)
        if value is None or value.strip() == "":
            return None
        return value

    def describe(self) -> str:
        return f"environment variable {self.name}"


class File(Source):
    """Contents of a file, surrounding whitespace stripped."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def get(self) -> Optional[str]:
        try:
            value = self.path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return value or None

    def describe(self) -> str:
        return f"file {self.path}"


class YamlKey(Source):
    """A top-level key of a YAML parameters file."""

    def __init__(self, path: Union[str, Path], key: str) -> None:
        self.path = Path(path)
        self.key = key

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            raise RuntimeError(f"Failed to load parameters from {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise RuntimeError(f"Parameters file {self.path} must contain a mapping")
        return data

    def get(self) -> Optional[str]:
        data = self._load()
        # YAML keys may use dashes or underscores
        for key in (self.key, self.key.replace("-", "_"), self.key.replace("_", "-")):
            if key in data and data[key] is not None:
                value = data[key]
                if isinstance(value, bool):
                    return "true" if value else "false"
                return str(value)
        return None

    def describe(self) -> str:
        return f"key {self.key} in {self.path}"


class ValueSourceChain:
    """Ordered sources; lookup() returns the first one that has a value."""

    def __init__(self, *sources: Source) -> None:
        self.sources: List[Source] = list(sources)

    def extended(self, *sources: Source) -> "ValueSourceChain":
        return ValueSourceChain(*self.sources, *sources)

    def lookup(self) -> Optional[Tuple[str, str]]:
        for source in self.sources:
            value = source.get()
            if value is not None:
                return value, source.describe()
        return None


def parse_bool(value: str, origin: str = "value") -> bool:
    v = value.strip().lower()
    if v in TRUE_STRINGS:
        return True
    if v in FALSE_STRINGS:
        return False
    raise ValueError(f"invalid boolean {value!r} from {origin}")


def resolve_string(flag_value: Optional[str], chain: ValueSourceChain, default: str = "") -> str:
    if flag_value is not None:
        return flag_value
    found = chain.lookup()
    return found[0] if found else default


def resolve_bool(flag_value: Optional[bool], chain: ValueSourceChain, default: bool = False) -> Tuple[bool, bool]:
    """Return (value, was_set) for a boolean parameter."""
    if flag_value is not None:
        return flag_value, True
    found = chain.lookup()
    if found is None:
        return default, False
    value, origin = found
    return parse_bool(value, origin), True


def _chain(env: Iterable[str], files: Iterable[str] = (), extra_files: Iterable[Path] = ()) -> ValueSourceChain:
    sources: List[Source] = [EnvVar(name) for name in env]
    for name in files:
        sources.append(File(PARAMETERS_DIR / name))
        sources.append(File(SECRETS_DIR / name))
    sources.extend(File(p) for p in extra_files)
    return ValueSourceChain(*sources)


SOURCES: Dict[str, ValueSourceChain] = {
    "token": _chain(["PARAMETER_TOKEN", "PLUGIN_TOKEN", "NPM_TOKEN"], ["token"]),
    "username": _chain(
        ["PARAMETER_USERNAME", "PLUGIN_USERNAME", "NPM_USERNAME"],
        ["username"],
        [MANAGED_AUTH_DIR / "username"],
    ),
    "password": _chain(
        ["PARAMETER_PASSWORD", "PLUGIN_PASSWORD", "NPM_PASSWORD"],
        ["password"],
        [MANAGED_AUTH_DIR / "password"],
    ),
    "registry": _chain(["PARAMETER_REGISTRY", "PLUGIN_REGISTRY", "NPM_REGISTRY"], ["registry"]),
    "email": _chain(["PARAMETER_EMAIL", "PLUGIN_EMAIL", "NPM_EMAIL"], ["email"]),
    "strict-ssl": _chain(["PARAMETER_STRICT_SSL", "PLUGIN_STRICT_SSL", "STRICT_SSL"], ["strict_ssl"]),
    "always-auth": _chain(["PARAMETER_ALWAYS_AUTH", "PLUGIN_ALWAYS_AUTH", "ALWAYS_AUTH"], ["always_auth"]),
    "skip-ping": _chain(["PARAMETER_SKIP_PING", "PLUGIN_SKIP_PING", "SKIP_PING"], ["skip_ping"]),
    "dry-run": _chain(["PARAMETER_DRY_RUN", "PLUGIN_DRY_RUN", "DRY_RUN"], ["dry_run"]),
    "tag": _chain(["PARAMETER_TAG", "PLUGIN_TAG", "TAG"], ["tag"]),
    "audit-level": _chain(
        ["PARAMETER_AUDIT_LEVEL", "PARAMETER_AUDIT", "PLUGIN_AUDIT_LEVEL", "PLUGIN_AUDIT", "AUDIT_LEVEL", "AUDIT"],
        ["audit_level"],
    ),
    "access": _chain(["PARAMETER_ACCESS", "PLUGIN_ACCESS", "ACCESS"], ["access"]),
    "workspaces": _chain(["PARAMETER_WORKSPACES", "PLUGIN_WORKSPACES", "WORKSPACES", "WS"], ["workspaces"]),
    "workspace": _chain(["PARAMETER_WORKSPACE", "PLUGIN_WORKSPACE", "WORKSPACE", "W"], ["workspace"]),
    "log-level": _chain(
        ["PARAMETER_LOG", "PARAMETER_LOG_LEVEL", "PLUGIN_LOG", "PLUGIN_LOG_LEVEL", "LOG_LEVEL", "LOG"],
        ["log_level"],
    ),
    "ci": _chain(["CI"], ["ci"]),
}


def chain_for(name: str, params_file: Optional[Union[str, Path]] = None) -> ValueSourceChain:
    chain = SOURCES[name]
    if params_file:
        chain = chain.extended(YamlKey(params_file, name))
    return chain


def load_config(flags: Optional[Dict[str, Any]] = None, params_file: Optional[Union[str, Path]] = None) -> Config:
    """Build a Config from flags (None meaning "not given") and the source chains.

    Raises:
        ValueError: a boolean parameter holds something that is not a boolean
        RuntimeError: the YAML parameters file cannot be loaded
    """
    flags = flags or {}

    def s(name: str, default: str = "") -> str:
        return resolve_string(flags.get(name), chain_for(name, params_file), default)

    def b(name: str) -> Tuple[bool, bool]:
        return resolve_bool(flags.get(name), chain_for(name, params_file))

    strict_ssl, strict_ssl_set = b("strict-ssl")
    always_auth, always_auth_set = b("always-auth")
    return Config(
        token=s("token"),
        username=s("username"),
        password=s("password"),
        registry=s("registry", DEFAULT_REGISTRY),
        email=s("email"),
        strict_ssl=strict_ssl,
        strict_ssl_set=strict_ssl_set,
        always_auth=always_auth,
        always_auth_set=always_auth_set,
        skip_ping=b("skip-ping")[0],
        dry_run=b("dry-run")[0],
        tag=s("tag"),
        audit_level=s("audit-level", NONE),
        access=s("access"),
        workspaces=b("workspaces")[0],
        workspace=s("workspace"),
    )
