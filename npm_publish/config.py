"""Publish configuration and its validation rules."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import (
    ConflictingWorkspaceSelection,
    InvalidAccess,
    InvalidTag,
    MissingCredential,
)
from .versioning import is_version


logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://registry.npmjs.org"

LOW = "low"
MODERATE = "moderate"
HIGH = "high"
CRITICAL = "critical"
# Skips the audit entirely.
NONE = "none"

AUDIT_LEVEL_ALIASES = {
    "l": LOW,
    "low": LOW,
    "all": LOW,
    "m": MODERATE,
    "mod": MODERATE,
    "moderate": MODERATE,
    "h": HIGH,
    "high": HIGH,
    "c": CRITICAL,
    "crit": CRITICAL,
    "critical": CRITICAL,
    "n": NONE,
    "no": NONE,
    "none": NONE,
}

ACCESS_LEVELS = ("public", "restricted")


def normalize_audit_level(level: str) -> str:
    """Map any audit level spelling onto one of the five canonical levels.

    Unrecognized input maps to ``low``, which is what npm itself defaults to.
    """
    return AUDIT_LEVEL_ALIASES.get((level or "").strip().lower(), LOW)


@dataclass
class Config:
    """Inputs for a publish run.

    ``strict_ssl`` and ``always_auth`` each carry a ``*_set`` companion: when
    the flag was never given, npm's own default must win, so the value is
    only written to .npmrc when explicitly set.
    """

    token: str = ""
    username: str = ""
    password: str = ""
    registry: str = ""
    email: str = ""
    strict_ssl: bool = False
    strict_ssl_set: bool = False
    always_auth: bool = False
    always_auth_set: bool = False
    skip_ping: bool = False
    dry_run: bool = False
    tag: str = ""
    audit_level: str = NONE
    access: str = ""
    workspaces: bool = False
    workspace: str = ""

    @property
    def workspace_mode(self) -> bool:
        return self.workspaces or bool(self.workspace)

    def validate(self) -> None:
        """Check inputs and normalize the audit level.

        Raises:
            ConfigurationError subclass for the first rule that fails.
        """
        if not self.token:
            if not self.username:
                raise MissingCredential("UserName not provided")
            # some test registries accept a bare username
            if not self.password:
                logger.warning("Password not provided")

        if not self.registry:
            logger.info(f"Registry not provided, using default registry {DEFAULT_REGISTRY}")

        if not self.email:
            logger.warning("Email not provided")

        if self.skip_ping:
            logger.warning("Pre-publish auth check with registry will be skipped")

        # npm dist-tags cannot look like versions
        if self.tag and is_version(self.tag):
            raise InvalidTag("tags should not have semantic versioning")

        if (self.audit_level or "").strip().lower() not in AUDIT_LEVEL_ALIASES:
            logger.warning(f"audit_level {self.audit_level!r} is not recognized, using the npm default ({LOW})")
        self.audit_level = normalize_audit_level(self.audit_level)
        logger.debug(f"audit level set to {self.audit_level}")

        if self.access and self.access not in ACCESS_LEVELS:
            raise InvalidAccess("access is not recognized, use 'public' or 'restricted'")

        if self.workspace and self.workspaces:
            raise ConflictingWorkspaceSelection(
                "you must either specify a workspace or all workspaces, but not both"
            )
