"""Tests for npm error classification"""
import inspect

import pytest

from conftest import npm_error
import npm_publish.classify as classifier
from npm_publish.classify import AUDIT, VIEW, Outcome, classify, register_rule
from npm_publish.shell import CommandFailed


def failure(output=b""):
    return CommandFailed(["npm"], 1, output)


class TestClassify:
    """Test the (call site, code) table"""

    def test_no_error_is_success(self):
        """Test output is ignored when the command succeeded"""
        result = classify(VIEW, npm_error("ENOTFOUND"), None)
        assert result.outcome is Outcome.SUCCESS
        assert not result.fatal

    @pytest.mark.parametrize(
        "site, code, expected",
        [
            (VIEW, "ENOTFOUND", Outcome.FATAL),
            (VIEW, "E404", Outcome.BENIGN),
            (VIEW, "E500", Outcome.FATAL),
            (AUDIT, "ENOLOCK", Outcome.FATAL),
            (AUDIT, "ENOAUDIT", Outcome.WARNING),
            (AUDIT, "E404", Outcome.FATAL),
            (AUDIT, "EAUDITFOO", Outcome.FATAL),
        ],
    )
    def test_table(self, site, code, expected):
        """Test each site treats codes as configured"""
        out = npm_error(code, "summary text", "detail text")
        result = classify(site, out, failure(out))
        assert result.outcome is expected
        assert result.code == code

    def test_unparseable_output_is_fatal_unstructured(self):
        """Test output that is not an envelope is always fatal"""
        err = failure(b"Segmentation fault")
        result = classify(VIEW, b"Segmentation fault", err)
        assert result.outcome is Outcome.FATAL_UNSTRUCTURED
        assert result.fatal
        assert result.error is err
        assert result.response is None

    def test_message_joins_summary_and_detail(self):
        """Test the message carries summary then detail"""
        out = npm_error("ENOLOCK", "This command requires an existing lockfile.", "Try creating one first.")
        result = classify(AUDIT, out, failure(out))
        assert result.message == "This command requires an existing lockfile. Try creating one first."

    def test_register_rule_extends_table(self, monkeypatch):
        """Test new codes can be tolerated without changing the workflow"""
        monkeypatch.setattr(classifier, "RULES", dict(classifier.RULES))
        out = npm_error("E403")
        assert classify(VIEW, out, failure(out)).outcome is Outcome.FATAL

        register_rule(VIEW, "E403", Outcome.BENIGN)

        assert classify(VIEW, out, failure(out)).outcome is Outcome.BENIGN
        assert classify(AUDIT, out, failure(out)).outcome is Outcome.FATAL


class TestPackageLayout:
    def test_classify_submodule_not_shadowed(self):
        """Test the package attribute still refers to the classify module"""
        import npm_publish
        import npm_publish.plugin as plugin

        assert inspect.ismodule(npm_publish.classify)
        assert plugin.classify is classify
