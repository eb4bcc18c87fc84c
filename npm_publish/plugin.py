"""Publish orchestration.

A run goes through these phases, each one finishing before the next starts:

1. move any existing .npmrc files aside (restored on every exit path)
2. verify npm is installed
3. write the generated .npmrc
4. check authentication (whoami, then ping unless skipped)
5. discover workspaces from the root package.json
6. refuse to publish versions that already exist in the registry
7. run npm audit at the configured level
8. npm publish

The first fatal error stops the run and propagates to the caller.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .classify import AUDIT, VIEW, Outcome, classify
from .config import NONE, Config
from .errors import (
    AmbiguousWorkspaceTarget,
    AuditFailed,
    AuthenticationFailed,
    ConfigurationError,
    PackageValidationError,
    PingFailed,
    PublishFailed,
    RegistryLookupFailed,
    ToolUnavailable,
    VersionAlreadyPublished,
    WorkspaceDiscoveryFailed,
)
from .npmrc import NPMRC, preserved, write_npmrc
from .package import PackageJSON, expand_workspaces, load_package
from .shell import FALLBACK_HOME, CommandError, LocalOSContext, OSContext


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

NPM = "npm"


def build_publish_args(config: Config) -> List[str]:
    """Arguments for ``npm publish``, always in the same order."""
    args = ["publish", "--quiet"]
    if config.dry_run:
        args.append("--dry-run")
    if config.tag:
        args += ["--tag", config.tag]
    if config.access:
        args += ["--access", config.access]
    if config.workspaces:
        args.append("--workspaces")
    if config.workspace:
        args += ["--workspace", config.workspace]
    if config.registry:
        args += ["--registry", config.registry]
    return args


def audit_args(level: str) -> List[str]:
    return ["audit", "--production", f"--audit-level={level}"]


class Plugin:
    """Publishes the package (or workspaces) found in ``workdir``.

    Args:
        config: publish inputs; validated by ``validate()``
        cli: command runner, LocalOSContext by default
        workdir: project directory holding package.json, cwd by default
    """

    def __init__(self, config: Config, cli: Optional[OSContext] = None, workdir: Optional[PathLike] = None) -> None:
        self.config = config
        self.cli = cli if cli is not None else LocalOSContext(cwd=workdir)
        self.workdir = Path(workdir) if workdir is not None else Path.cwd()

    def validate(self) -> None:
        if self.cli is None:
            raise ConfigurationError("no shell handler provided")
        self.config.validate()

    def exec(self) -> List[Tuple[str, str]]:
        """Run every phase; returns the (name, version) pairs npm reported."""
        home = self._home()
        logger.debug("Checking for existing .npmrc files")
        with preserved(self.workdir / NPMRC, home / NPMRC):
            return self._run_steps(home)

    def _run_steps(self, home: Path) -> List[Tuple[str, str]]:
        self.verify_npm()
        self.create_npmrc(home)
        self.authenticate()

        try:
            workspaces = self.check_for_workspaces()
        except WorkspaceDiscoveryFailed as e:
            logger.debug(f"Failed to get workspaces: {e}")
            workspaces = []

        for target in self.publish_targets(workspaces):
            package = self.verify_package(target)
            self.validate_package_version(package)

        self.audit()
        return self.publish()

    def _home(self) -> Path:
        try:
            home = self.cli.home_dir()
        except OSError as e:
            logger.debug(f"Could not determine home directory: {e}")
            home = ""
        return Path(home or FALLBACK_HOME)

    def _registry_args(self) -> List[str]:
        return ["--registry", self.config.registry] if self.config.registry else []

    def verify_npm(self) -> Dict[str, Any]:
        """Make sure npm can be run and log its version."""
        try:
            out = self.cli.run(NPM, "version", "--json")
        except CommandError as e:
            raise ToolUnavailable(f"npm version command failed: {e}") from e
        try:
            versions = json.loads(out)
        except ValueError as e:
            raise ToolUnavailable(f"failed to convert npm version response to JSON: {e}") from e
        if not isinstance(versions, dict):
            raise ToolUnavailable("failed to convert npm version response to JSON")
        logger.info(f"Verifying npm command: npm={versions.get('npm')} node={versions.get('node')}")
        return versions

    def create_npmrc(self, home: Path) -> Path:
        path = write_npmrc(self.config, home)
        # diagnostics only
        try:
            listing = self.cli.run_string(NPM, "config", "list")
            logger.debug(f"npm config list:\n{listing}")
        except CommandError as e:
            logger.debug(f"npm config list failed: {e}")
        return path

    def authenticate(self) -> None:
        logger.info("Checking connection and authentication")
        try:
            self.cli.run_string(NPM, "whoami", *self._registry_args())
        except CommandError as e:
            raise AuthenticationFailed("npm authentication failed") from e

        # not every registry implements ping
        if self.config.skip_ping:
            logger.warning("Skipping auth ping")
        else:
            logger.debug("Attempting ping")
            try:
                self.cli.run(NPM, "ping", *self._registry_args())
            except CommandError as e:
                raise PingFailed("ping failed, authentication unsuccessful") from e

        logger.debug(f"Authentication completed for {self.config.username or 'token'}")

    def check_for_workspaces(self) -> List[str]:
        """Workspaces declared by the root package.json, globs expanded.

        Raises:
            WorkspaceDiscoveryFailed: no readable package.json, or no workspaces
        """
        logger.debug("Checking for workspaces...")
        try:
            root = load_package(self.workdir)
        except PackageValidationError as e:
            raise WorkspaceDiscoveryFailed(str(e)) from e
        if not root.workspaces:
            raise WorkspaceDiscoveryFailed("no workspaces found")
        workspaces = expand_workspaces(self.workdir, root.workspaces)
        logger.debug(f"Workspaces: {workspaces}")
        return workspaces

    def publish_targets(self, workspaces: List[str]) -> List[str]:
        """Directories whose package.json must be checked before publishing."""
        if not self.config.workspace_mode:
            if workspaces:
                raise AmbiguousWorkspaceTarget("using workspaces but none are specified")
            return ["."]
        if self.config.workspace:
            return [self.config.workspace]
        return list(workspaces)

    def verify_package(self, directory: PathLike) -> PackageJSON:
        logger.debug(f"Verifying node package in {directory}")
        package = load_package(self.workdir / directory)
        package.validate(self.config.registry)
        logger.debug("... node package verified")
        return package

    def validate_package_version(self, package: PackageJSON) -> None:
        """Fail if package.version is already in the registry."""
        logger.info(f"Checking registry for the current version: {package.name}@{package.version}")

        out: bytes = b""
        error: Optional[CommandError] = None
        try:
            out = self.cli.run(NPM, "view", package.name, "versions", *self._registry_args())
        except CommandError as e:
            logger.debug(f"versions command failed: {e}")
            out, error = e.output, e

        result = classify(VIEW, out, error)
        if result.outcome is Outcome.BENIGN:
            logger.info(f"Package does not already exist in the registry, publish will claim `{package.name}`")
            return
        if result.outcome is Outcome.FATAL_UNSTRUCTURED:
            raise RegistryLookupFailed(f"failed to convert npm error response: {error}") from error
        if result.fatal:
            raise RegistryLookupFailed(result.message or f"npm view failed with {result.code}") from error
        if result.outcome is Outcome.WARNING:
            logger.warning(f"Could not list versions of {package.name}: {result.message}")
            return

        versions = parse_versions(out)
        logger.debug(f"Versions found: {versions}")
        if package.version in versions:
            raise VersionAlreadyPublished(package.name, package.version)
        logger.debug("Version does not already exist in registry")

    def audit(self) -> None:
        level = self.config.audit_level
        if level == NONE:
            logger.warning("Audit level set to NONE, skipping audit check")
            return

        logger.info("Running audit check")
        args = audit_args(level)
        out: bytes = b""
        error: Optional[CommandError] = None
        try:
            out = self.cli.run(NPM, *args)
        except CommandError as e:
            logger.debug(f"audit command failed: {e}")
            out, error = e.output, e

        result = classify(AUDIT, out, error)
        if result.outcome is Outcome.WARNING:
            logger.warning(
                f"{result.message} Try adding a .npmrc to your project directory or set `audit-level: none`."
            )
            return
        if result.fatal:
            hint = (
                f"audit failed for audit-level={level}, run `npm {' '.join(args)}` "
                "to view vulnerabilities that need fixed"
            )
            if result.response:
                hint = f"{result.message}: {hint}"
            raise AuditFailed(hint) from error

    def publish(self) -> List[Tuple[str, str]]:
        logger.info("Building publish command")
        config = self.config
        if config.dry_run:
            logger.info("Doing a dry run")
        if config.tag:
            logger.info(f"Tagging package: {config.tag}")
        if config.access:
            logger.info(f"Setting package access: {config.access}")
        if config.workspaces:
            logger.info("Publishing all workspaces")
        if config.workspace:
            logger.info(f"Publishing workspace {config.workspace}")

        try:
            out = self.cli.run(NPM, *build_publish_args(config))
        except CommandError as e:
            raise PublishFailed(f"publish failed: {e}") from e

        try:
            published = parse_publish_response(out, config.workspace_mode)
        except (ValueError, TypeError) as e:
            logger.debug(f"Failed to convert npm publish response: {e}")
            published = []

        names = ", ".join(f"{name}@{version}" for name, version in published)
        logger.info(f"Successfully published node package! {names}".rstrip())
        return published


def parse_versions(out: Union[bytes, str]) -> List[str]:
    """Versions from ``npm view <pkg> versions``.

    npm prints a JSON list, except when only one version exists, in which
    case it prints that version as a bare (possibly quoted) string.
    """
    text = out.decode("utf-8", "replace") if isinstance(out, bytes) else out
    try:
        versions = json.loads(text)
    except ValueError:
        versions = None
    if isinstance(versions, list):
        return [str(v) for v in versions]
    single = text.replace('"', "").rstrip("\n")
    logger.debug(f"Possibly only one version in registry: {single}")
    return [single]


def parse_publish_response(out: Union[bytes, str], workspaces: bool) -> List[Tuple[str, str]]:
    """(name, version) pairs from ``npm publish --json`` output.

    Raises:
        ValueError: output is not the expected JSON shape
    """
    text = out.decode("utf-8", "replace") if isinstance(out, bytes) else out
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("publish response is not a JSON object")
    entries = list(payload.values()) if workspaces else [payload]
    published: List[Tuple[str, str]] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError("publish response entry is not a JSON object")
        published.append((str(entry.get("name", "")), str(entry.get("version", ""))))
    return published


def run(config: Config, cli: Optional[OSContext] = None, workdir: Optional[PathLike] = None) -> List[Tuple[str, str]]:
    """Validate config, then publish."""
    plugin = Plugin(config, cli=cli, workdir=workdir)
    plugin.validate()
    return plugin.exec()
