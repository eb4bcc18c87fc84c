"""Exceptions raised while validating and publishing a package."""
from __future__ import annotations


class NpmPublishError(Exception):
    """Base class for every plugin failure."""


class ConfigurationError(NpmPublishError):
    """Raised when plugin inputs are invalid, before anything is executed"""


class MissingCredential(ConfigurationError):
    pass


class InvalidTag(ConfigurationError):
    pass


class InvalidAccess(ConfigurationError):
    pass


class ConflictingWorkspaceSelection(ConfigurationError):
    pass


class ToolUnavailable(NpmPublishError):
    """Raised when `npm version` fails or returns something that is not JSON"""


class ConfigWriteError(NpmPublishError):
    pass


class ConfigRestoreError(NpmPublishError):
    """Raised when a preserved .npmrc cannot be moved back into place"""


class AuthenticationFailed(NpmPublishError):
    pass


class PingFailed(NpmPublishError):
    pass


class WorkspaceDiscoveryFailed(NpmPublishError):
    """Workspaces could not be read from the root package.json.

    Never fatal: the orchestrator logs it and carries on as if there were no
    workspaces.
    """


class AmbiguousWorkspaceTarget(NpmPublishError):
    pass


class PackageValidationError(NpmPublishError):
    """Raised when a package.json is unreadable or fails validation"""


class MissingName(PackageValidationError):
    pass


class MissingVersion(PackageValidationError):
    pass


class InvalidVersionFormat(PackageValidationError):
    pass


class RegistryMismatch(PackageValidationError):
    pass


class RegistryLookupFailed(NpmPublishError):
    """Raised when `npm view` fails for a reason other than an unknown package"""


class VersionAlreadyPublished(NpmPublishError):
    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version
        super().__init__(f"Package {name} of version {version} already exists")


class AuditFailed(NpmPublishError):
    pass


class PublishFailed(NpmPublishError):
    pass
