"""
npm_publish: CI plugin that publishes NodeJS packages to an npm registry.

The package drives the `npm` command-line tool:
- Config: validated publish inputs (credentials, registry, audit level, tag...).
- npmrc: generation of the .npmrc every npm command of the run reads.
- PackageJSON: package.json fields checked before publishing.
- classify: how npm's JSON error codes are treated at each call site.
- Plugin / run: the publish workflow itself.
"""

__version__ = "1.0.0"

from .config import Config, DEFAULT_REGISTRY, normalize_audit_level
from .errors import NpmPublishError, ConfigurationError
from .shell import OSContext, LocalOSContext, CommandError, CommandFailed, CommandSpawnError, NpmErrorResponse
from .npmrc import build_npmrc, write_npmrc, preserved
from .package import PackageJSON, load_package
from .classify import Outcome, Classification, register_rule
from .plugin import Plugin, build_publish_args, run
from .sources import load_config

__all__ = [
    "Config",
    "DEFAULT_REGISTRY",
    "normalize_audit_level",
    "NpmPublishError",
    "ConfigurationError",
    # Command runner
    "OSContext",
    "LocalOSContext",
    "CommandError",
    "CommandFailed",
    "CommandSpawnError",
    "NpmErrorResponse",
    # .npmrc
    "build_npmrc",
    "write_npmrc",
    "preserved",
    # package.json
    "PackageJSON",
    "load_package",
    # Error classification
    "Outcome",
    "Classification",
    "register_rule",
    # Workflow
    "Plugin",
    "build_publish_args",
    "run",
    "load_config",
]
