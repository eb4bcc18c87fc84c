"""Decide what an npm failure means for the publish run.

npm reports failures as a JSON envelope with a short code (``E404``,
``ENOLOCK``...), but the same code can be fatal for one command and harmless
for another. ``RULES`` is keyed by (call site, code) so that tolerating a new
registry error only means adding an entry here.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .shell import NpmErrorResponse


# Call sites
VIEW = "view"
AUDIT = "audit"


class Outcome(str, Enum):
    SUCCESS = "success"
    # Expected failure that means nothing is wrong, e.g. E404 on a first publish.
    BENIGN = "benign"
    WARNING = "warning"
    FATAL = "fatal"
    # The command failed and its output was not an npm error envelope.
    FATAL_UNSTRUCTURED = "fatal_unstructured"


RULES: Dict[Tuple[str, str], Outcome] = {
    # not a valid registry
    (VIEW, "ENOTFOUND"): Outcome.FATAL,
    # valid registry, package does not exist yet
    (VIEW, "E404"): Outcome.BENIGN,
    # audit requires a lockfile
    (AUDIT, "ENOLOCK"): Outcome.FATAL,
    # registry does not support audits
    (AUDIT, "ENOAUDIT"): Outcome.WARNING,
}

DEFAULT_OUTCOME = Outcome.FATAL


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    response: Optional[NpmErrorResponse] = None
    error: Optional[Exception] = None

    @property
    def fatal(self) -> bool:
        return self.outcome in (Outcome.FATAL, Outcome.FATAL_UNSTRUCTURED)

    @property
    def code(self) -> str:
        return self.response.code if self.response else ""

    @property
    def message(self) -> str:
        """Summary and detail of the npm error, or the tool error text."""
        if self.response:
            return " ".join(p for p in (self.response.summary, self.response.detail) if p)
        return str(self.error) if self.error else ""


def register_rule(site: str, code: str, outcome: Outcome) -> None:
    """Add or override how ``code`` is treated at ``site``."""
    RULES[(site, code)] = outcome


def classify(site: str, output: Union[bytes, str, None], error: Optional[Exception]) -> Classification:
    """Classify the result of an npm command run at ``site``.

    Args:
        site: call site name, one of VIEW or AUDIT (or any registered site)
        output: raw command output
        error: the exception raised by the command runner, None on success
    """
    if error is None:
        return Classification(Outcome.SUCCESS)

    response = NpmErrorResponse.parse(output)
    if response is None:
        return Classification(Outcome.FATAL_UNSTRUCTURED, error=error)

    outcome = RULES.get((site, response.code), DEFAULT_OUTCOME)
    return Classification(outcome, response=response, error=error)
