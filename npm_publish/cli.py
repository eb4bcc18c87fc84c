from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .errors import NpmPublishError
from .plugin import run
from .sources import chain_for, load_config, resolve_string


DOCS_URL = "https://go-vela.github.io/docs/plugins/registry/pipeline/npm/"

LOG_LEVELS = {
    "t": logging.DEBUG,
    "trace": logging.DEBUG,
    "d": logging.DEBUG,
    "debug": logging.DEBUG,
    "i": logging.INFO,
    "info": logging.INFO,
    "w": logging.WARNING,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "e": logging.ERROR,
    "error": logging.ERROR,
    "f": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "p": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

logger = logging.getLogger("npm_publish")

app = typer.Typer(name="npm-publish", help="Publish NodeJS packages to an npm registry.", add_completion=False)


def configure_logging(level: str = "info", ci: bool = False) -> None:
    """Set up the package logger.

    In CI, plain lines with full timestamps; otherwise coloured output
    through rich.
    """
    log_level = LOG_LEVELS.get((level or "").strip().lower(), logging.INFO)
    if ci:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-8s %(message)s"))
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(log_level)
    logger.propagate = False


@app.command()
def main(
    token: Optional[str] = typer.Option(None, "--token", "-t", help="auth token"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="name of user"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="password for user"),
    registry: Optional[str] = typer.Option(None, "--registry", "-r", help="npm registry"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="email for user"),
    strict_ssl: Optional[bool] = typer.Option(None, "--strict-ssl/--no-strict-ssl", help="enables strict SSL"),
    always_auth: Optional[bool] = typer.Option(None, "--always-auth/--no-always-auth", help="enables always auth"),
    skip_ping: Optional[bool] = typer.Option(None, "--skip-ping/--no-skip-ping", help="skips auth ping"),
    dry_run: Optional[bool] = typer.Option(None, "--dry-run/--no-dry-run", help="publish command will only do dry run"),
    tag: Optional[str] = typer.Option(None, "--tag", help="publish package with given tag"),
    audit_level: Optional[str] = typer.Option(
        None, "--audit-level", help="level at which npm audit fails: none|low|moderate|high|critical"
    ),
    access: Optional[str] = typer.Option(None, "--access", help="publish scoped packages as 'public' or 'restricted'"),
    workspaces: Optional[bool] = typer.Option(None, "--workspaces/--no-workspaces", help="publish all workspaces"),
    workspace: Optional[str] = typer.Option(None, "--workspace", help="publish a specific workspace"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="trace|debug|info|warn|error|fatal|panic"),
    ci: Optional[str] = typer.Option(None, "--ci", help="set to CI environment"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="YAML parameters file"),
    first_publish: bool = typer.Option(
        False, "--first-publish", hidden=True, help="(DEPRECATED) no longer has any effect"
    ),
) -> None:
    """Validate inputs, write .npmrc and publish the package in the current directory."""
    level = resolve_string(log_level, chain_for("log-level", config_file), "info")
    ci_value = resolve_string(ci, chain_for("ci", config_file), "")
    configure_logging(level, ci=bool(ci_value))

    logger.info(f"npm publish plugin {__version__} (docs: {DOCS_URL})")
    if first_publish:
        logger.warning("--first-publish is deprecated and has no effect")

    flags = {
        "token": token,
        "username": username,
        "password": password,
        "registry": registry,
        "email": email,
        "strict-ssl": strict_ssl,
        "always-auth": always_auth,
        "skip-ping": skip_ping,
        "dry-run": dry_run,
        "tag": tag,
        "audit-level": audit_level,
        "access": access,
        "workspaces": workspaces,
        "workspace": workspace,
    }
    try:
        config = load_config(flags, params_file=config_file)
        run(config, workdir=os.getcwd())
    except (NpmPublishError, ValueError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
