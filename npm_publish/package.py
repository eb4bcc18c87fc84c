from __future__ import annotations

import glob
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import (
    InvalidVersionFormat,
    MissingName,
    MissingVersion,
    PackageValidationError,
    RegistryMismatch,
)
from .versioning import is_constraint


logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"

PathLike = Union[str, Path]


@dataclass
class PackageJSON:
    """The parts of a package.json the publish run cares about."""

    name: str = ""
    version: str = ""
    publish_registry: str = ""
    workspaces: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageJSON":
        if not isinstance(data, dict):
            raise PackageValidationError("package.json must contain a JSON object")
        publish_config = data.get("publishConfig") or {}
        workspaces = data.get("workspaces") or []
        # yarn style: {"packages": [...], "nohoist": [...]}
        if isinstance(workspaces, dict):
            workspaces = workspaces.get("packages") or []
        if not isinstance(workspaces, list):
            raise PackageValidationError("workspaces in package.json must be a list")
        return cls(
            name=str(data.get("name") or ""),
            version=str(data.get("version") or ""),
            publish_registry=str(publish_config.get("registry") or "") if isinstance(publish_config, dict) else "",
            workspaces=[str(w) for w in workspaces],
        )

    def validate(self, registry: str) -> None:
        """Make sure basic package information is present.

        Args:
            registry: registry the run publishes to; when both it and
                publishConfig.registry are set they must be identical.
        """
        if not self.name:
            raise MissingName("Name not found in package.json")
        if not self.version:
            raise MissingVersion("Version not found in package.json")
        if not is_constraint(self.version):
            raise InvalidVersionFormat(f"Package version error: invalid version {self.version!r}")
        if self.publish_registry and registry:
            if self.publish_registry != registry:
                raise RegistryMismatch(
                    f"PublishConfig registry {self.publish_registry} does not match given registry {registry}"
                )
            logger.debug("Registry matches the registry parameter")


def load_package(directory: PathLike) -> PackageJSON:
    """Read ``<directory>/package.json``.

    Raises:
        PackageValidationError: the file is missing, unreadable or not JSON
    """
    path = Path(directory) / PACKAGE_JSON
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise PackageValidationError(f"failed to read {path}: {e}") from e
    except ValueError as e:
        raise PackageValidationError(f"failed to parse {path}: {e}") from e
    return PackageJSON.from_dict(data)


def expand_workspaces(root: PathLike, patterns: List[str]) -> List[str]:
    """Resolve workspace entries to directories relative to ``root``.

    Plain entries are kept as given. Glob entries (``packages/*``) expand to
    the matching directories that hold a package.json, sorted.
    """
    root = str(root)
    found: List[str] = []
    for pattern in patterns:
        if any(ch in pattern for ch in "*?[]"):
            matches = sorted(glob.glob(os.path.join(root, pattern)))
            for m in matches:
                if os.path.isfile(os.path.join(m, PACKAGE_JSON)):
                    found.append(os.path.relpath(m, root))
        else:
            found.append(pattern)
    # keep first occurrence
    return list(dict.fromkeys(found))
