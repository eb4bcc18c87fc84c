"""Generate the .npmrc used by every npm command of a publish run."""
from __future__ import annotations

import base64
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple, Union
from urllib.parse import urlsplit, urlunsplit

from .config import Config
from .errors import ConfigRestoreError, ConfigWriteError


logger = logging.getLogger(__name__)

NPMRC = ".npmrc"
# Name a pre-existing .npmrc is moved to for the duration of a run.
NPMRC_BACKUP = ".tmp-npmrc"

# JSON output, no colour, no chatter: the plugin parses what npm prints.
DEFAULTS = (
    "json=true",
    "color=false",
    "loglevel=silent",
    "update-notifier=false",
)

PathLike = Union[str, Path]


def registry_auth_prefix(registry: str) -> str:
    """Registry URL in the protocol-relative form npm scopes tokens by.

    >>> registry_auth_prefix("https://registry.npmjs.org")
    '//registry.npmjs.org/'
    """
    parts = urlsplit(registry)
    prefix = urlunsplit(("", parts.netloc, parts.path, parts.query, parts.fragment))
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


def _bool(value: bool) -> str:
    return "true" if value else "false"


def build_npmrc(config: Config) -> str:
    """Return .npmrc content for config; the same config gives the same bytes."""
    lines: List[str] = list(DEFAULTS)

    if config.token:
        prefix = registry_auth_prefix(config.registry)
        logger.debug(f"_authToken registry string: {prefix}")
        lines.append(f'{prefix}:_authToken="{config.token}"')
    else:
        creds = f"{config.username}:{config.password}".encode("utf-8")
        lines.append("_auth=" + base64.b64encode(creds).decode("ascii"))

    if config.registry:
        lines.append(f"registry={config.registry}")
    if config.email:
        lines.append(f"email={config.email}")
    # left unset, npm defaults strict-ssl to true and always-auth to false
    if config.strict_ssl_set:
        lines.append(f"strict-ssl={_bool(config.strict_ssl)}")
    if config.always_auth_set:
        lines.append(f"always-auth={_bool(config.always_auth)}")

    return "\n".join(lines) + "\n"


def write_npmrc(config: Config, home: PathLike) -> Path:
    """Write .npmrc into ``home`` and return its path.

    Raises:
        ConfigWriteError: the directory or file could not be written
    """
    path = Path(home) / NPMRC
    logger.info(f"Creating .npmrc configuration file at {path}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(build_npmrc(config))
    except OSError as e:
        raise ConfigWriteError(f"failed to write {path}: {e}") from e
    logger.debug(".npmrc successfully written")
    return path


@contextmanager
def preserved(*paths: PathLike) -> Iterator[List[Path]]:
    """Move existing files at ``paths`` aside and put them back on exit.

    Each file is renamed to ``.tmp-npmrc`` in its own directory. Restoration
    runs whether the body succeeds or raises. Yields the paths that were
    moved.
    """
    moved: List[Tuple[Path, Path]] = []
    seen = set()
    try:
        for p in paths:
            path = Path(p)
            key = os.path.abspath(path)
            if key in seen:
                continue
            seen.add(key)
            if not path.is_file():
                continue
            backup = path.with_name(NPMRC_BACKUP)
            if os.path.lexists(backup):
                raise ConfigWriteError(f"refusing to move {path} aside: {backup} already exists")
            logger.debug(f"Moving existing {path} aside")
            try:
                os.replace(path, backup)
            except OSError as e:
                raise ConfigWriteError(f"failed to rename {path}: {e}") from e
            moved.append((path, backup))
        yield [original for original, _ in moved]
    finally:
        failures: List[str] = []
        for original, backup in reversed(moved):
            logger.debug(f"Restoring {original}")
            try:
                os.replace(backup, original)
            except OSError as e:
                failures.append(f"{original}: {e}")
        if failures:
            raise ConfigRestoreError("failed to restore " + "; ".join(failures))
