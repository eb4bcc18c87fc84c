"""Running external commands and reading npm's JSON error envelope."""
from __future__ import annotations

import json
import logging
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union


logger = logging.getLogger(__name__)

# Used when the current user's home directory cannot be determined.
FALLBACK_HOME = "/root"

_NPM_ERR_LINE_RE = re.compile(r"(?m)^.*npm ERR+.*$")


class CommandError(Exception):
    """A command could not produce a successful result.

    ``output`` holds whatever the command printed that is most useful for
    diagnosing the failure (stderr if non-empty, else stdout).
    """

    def __init__(self, cmd: Sequence[str], message: str, output: bytes = b"") -> None:
        self.cmd = list(cmd)
        self.output = output
        super().__init__(message)


class CommandFailed(CommandError):
    """The command ran and exited with a non-zero status."""

    def __init__(self, cmd: Sequence[str], returncode: int, output: bytes = b"") -> None:
        self.returncode = returncode
        super().__init__(cmd, f"command failed (exit status {returncode})", output)


class CommandSpawnError(CommandError):
    """The command could not be started at all (missing binary, permissions)."""


class OSContext(ABC):
    """Boundary between the plugin and the operating system."""

    @abstractmethod
    def run(self, name: str, *args: str) -> bytes:
        """Run a command and return its stdout.

        Raises:
            CommandFailed: non-zero exit status
            CommandSpawnError: the command could not be started
        """

    def run_string(self, name: str, *args: str) -> str:
        return self.run(name, *args).decode("utf-8", "replace")

    @abstractmethod
    def home_dir(self) -> str:
        """Home directory of the user running commands."""


class LocalOSContext(OSContext):
    """OSContext backed by subprocess; blocks until the command exits."""

    def __init__(self, cwd: Optional[Union[str, Path]] = None) -> None:
        self.cwd = cwd

    def run(self, name: str, *args: str) -> bytes:
        cmd: List[str] = [name, *args]
        logger.debug(f"running command: {' '.join(cmd)}")
        try:
            cp = subprocess.run(cmd, capture_output=True, cwd=self.cwd, check=False)
        except OSError as e:
            raise CommandSpawnError(cmd, f"failed to start {name}: {e}") from e

        logger.debug(f"stdout: {cp.stdout.decode('utf-8', 'replace')}")
        logger.debug(f"stderr: {cp.stderr.decode('utf-8', 'replace')}")

        if cp.returncode != 0:
            if cp.stderr:
                resp = NpmErrorResponse.parse(cp.stderr)
                if resp:
                    logger.debug(f"{resp.code}: {resp.summary}: {resp.detail}")
                raise CommandFailed(cmd, cp.returncode, cp.stderr)
            raise CommandFailed(cmd, cp.returncode, cp.stdout)
        return cp.stdout

    def home_dir(self) -> str:
        try:
            return str(Path.home())
        except RuntimeError:
            return FALLBACK_HOME


@dataclass(frozen=True)
class NpmErrorResponse:
    """The ``{"error": {"code", "summary", "detail"}}`` envelope npm prints
    when json=true and a command fails."""

    code: str
    summary: str = ""
    detail: str = ""

    @classmethod
    def parse(cls, output: Union[bytes, str, None]) -> Optional["NpmErrorResponse"]:
        """Return the parsed envelope, or None when output is not one.

        Human-readable ``npm ERR!`` lines are dropped before parsing.
        """
        if output is None:
            return None
        text = output.decode("utf-8", "replace") if isinstance(output, bytes) else output
        text = _NPM_ERR_LINE_RE.sub("", text).strip()
        if not text:
            return None
        try:
            payload = json.loads(text)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        block = payload.get("error")
        if not isinstance(block, dict) or not block.get("code"):
            return None
        return cls(
            code=str(block.get("code")),
            summary=str(block.get("summary") or ""),
            detail=str(block.get("detail") or ""),
        )
