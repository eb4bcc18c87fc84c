"""Tests for the command runner and npm error envelope"""
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from npm_publish.shell import (
    FALLBACK_HOME,
    CommandError,
    CommandFailed,
    CommandSpawnError,
    LocalOSContext,
    NpmErrorResponse,
)


class TestNpmErrorResponse:
    """Test parsing npm's JSON error envelope"""

    def test_parse_envelope(self):
        """Test a well-formed envelope is parsed"""
        out = b'{"error": {"code": "E404", "summary": "Not Found", "detail": "pkg is not in this registry"}}'
        resp = NpmErrorResponse.parse(out)
        assert resp == NpmErrorResponse("E404", "Not Found", "pkg is not in this registry")

    def test_parse_strips_npm_err_lines(self):
        """Test human-readable npm ERR! lines around the JSON are ignored"""
        out = (
            "npm ERR! code ENOLOCK\n"
            '{"error": {"code": "ENOLOCK", "summary": "audit requires a lockfile", "detail": ""}}\n'
            "npm ERR! A complete log of this run can be found in: /tmp/x.log\n"
        )
        resp = NpmErrorResponse.parse(out)
        assert resp is not None
        assert resp.code == "ENOLOCK"

    @pytest.mark.parametrize(
        "out",
        [None, b"", b"not json", b"[1, 2]", b'{"foo": "bar"}', b'{"error": "boom"}', b'{"error": {"summary": "x"}}'],
    )
    def test_parse_rejects_non_envelopes(self, out):
        """Test anything that is not a coded envelope gives None"""
        assert NpmErrorResponse.parse(out) is None


class TestLocalOSContext:
    """Test the subprocess-backed runner"""

    @patch("npm_publish.shell.subprocess.run")
    def test_run_success(self, mock_run):
        """Test stdout is returned on success"""
        mock_run.return_value = MagicMock(returncode=0, stdout=b'{"npm": "10.0.0"}', stderr=b"")

        out = LocalOSContext().run("npm", "version")

        assert out == b'{"npm": "10.0.0"}'
        assert mock_run.call_args[0][0] == ["npm", "version"]

    @patch("npm_publish.shell.subprocess.run")
    def test_run_string(self, mock_run):
        """Test run_string decodes stdout"""
        mock_run.return_value = MagicMock(returncode=0, stdout=b"testuser\n", stderr=b"")
        assert LocalOSContext().run_string("npm", "whoami") == "testuser\n"

    @patch("npm_publish.shell.subprocess.run")
    def test_nonzero_exit_prefers_stderr(self, mock_run):
        """Test a failing command raises CommandFailed carrying stderr"""
        mock_run.return_value = MagicMock(returncode=1, stdout=b"ignored", stderr=b'{"error": {"code": "E404"}}')

        with pytest.raises(CommandFailed) as exc_info:
            LocalOSContext().run("npm", "view", "pkg", "versions")

        assert exc_info.value.returncode == 1
        assert exc_info.value.output == b'{"error": {"code": "E404"}}'
        assert exc_info.value.cmd == ["npm", "view", "pkg", "versions"]

    @patch("npm_publish.shell.subprocess.run")
    def test_nonzero_exit_falls_back_to_stdout(self, mock_run):
        """Test stdout is carried when stderr is empty"""
        mock_run.return_value = MagicMock(returncode=2, stdout=b"some output", stderr=b"")

        with pytest.raises(CommandFailed) as exc_info:
            LocalOSContext().run("npm", "audit")

        assert exc_info.value.output == b"some output"

    @patch("npm_publish.shell.subprocess.run", side_effect=FileNotFoundError("npm"))
    def test_spawn_failure_is_distinct(self, mock_run):
        """Test a missing binary raises CommandSpawnError, not CommandFailed"""
        with pytest.raises(CommandSpawnError) as exc_info:
            LocalOSContext().run("npm", "version")

        assert not isinstance(exc_info.value, CommandFailed)
        assert isinstance(exc_info.value, CommandError)

    @patch("npm_publish.shell.Path.home", side_effect=RuntimeError("no home"))
    def test_home_dir_fallback(self, mock_home):
        """Test the home directory falls back to /root"""
        assert LocalOSContext().home_dir() == FALLBACK_HOME

    def test_run_real_process(self):
        """Test a real command runs through subprocess"""
        ctx = LocalOSContext()
        with pytest.raises(CommandError):
            ctx.run("this-command-does-not-exist-npm-publish")
