"""Pytest configuration and fixtures for npm_publish tests"""
import json
import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pytest

from npm_publish.config import Config
from npm_publish.shell import CommandFailed, OSContext


class FakeOSContext(OSContext):
    """Scripted command runner.

    Responses are keyed by the full argument tuple after the command name,
    e.g. ("view", "pkg", "versions"). A response is either bytes (success)
    or a (bytes, returncode) tuple, which raises CommandFailed with that
    output. Unscripted commands succeed with empty output.
    """

    def __init__(self, home: Union[str, Path] = "/root") -> None:
        self.home = str(home)
        self.calls: List[Tuple[str, ...]] = []
        self.responses: Dict[Tuple[str, ...], Union[bytes, Tuple[bytes, int]]] = {}

    def on(self, *args: str, out: Union[bytes, str] = b"", fail: Optional[int] = None) -> "FakeOSContext":
        data = out.encode() if isinstance(out, str) else out
        self.responses[tuple(args)] = (data, fail) if fail is not None else data
        return self

    def run(self, name: str, *args: str) -> bytes:
        self.calls.append((name, *args))
        resp = self.responses.get(tuple(args), b"")
        if isinstance(resp, tuple):
            out, rc = resp
            raise CommandFailed([name, *args], rc, out)
        return resp

    def home_dir(self) -> str:
        return self.home

    def ran(self, *args: str) -> bool:
        return ("npm", *args) in self.calls

    def commands(self) -> List[str]:
        """First argument of every npm call, in order."""
        return [c[1] for c in self.calls if len(c) > 1]


def npm_error(code: str, summary: str = "", detail: str = "") -> str:
    return json.dumps({"error": {"code": code, "summary": summary, "detail": detail}})


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo handler changes made by configure_logging so caplog keeps working"""
    yield
    pkg_logger = logging.getLogger("npm_publish")
    pkg_logger.handlers[:] = []
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def home_dir(temp_dir):
    """Home directory of the fake npm user"""
    home = temp_dir / "home"
    home.mkdir()
    return home


@pytest.fixture
def project(temp_dir):
    """A project directory holding a single package"""
    root = temp_dir / "project"
    root.mkdir()
    (root / "package.json").write_text(json.dumps({"name": "vela-npm", "version": "1.0.0"}))
    return root


@pytest.fixture
def workspace_project(temp_dir):
    """A project directory whose root package.json declares two workspaces"""
    root = temp_dir / "monorepo"
    root.mkdir()
    (root / "package.json").write_text(
        json.dumps({"name": "root", "version": "0.0.0", "workspaces": ["packages/a", "packages/b"]})
    )
    for name, version in (("a", "1.0.0"), ("b", "2.0.0")):
        pkg = root / "packages" / name
        pkg.mkdir(parents=True)
        (pkg / "package.json").write_text(json.dumps({"name": f"@scope/{name}", "version": version}))
    return root


@pytest.fixture
def fake_cli(home_dir):
    """Command runner where npm version, whoami and ping succeed"""
    cli = FakeOSContext(home=home_dir)
    cli.on("version", "--json", out='{"npm": "10.2.0", "node": "20.9.0"}')
    return cli


@pytest.fixture
def config():
    """Username/password config against a test registry"""
    return Config(username="testuser", password="testpass", registry="http://registry.test.com")
