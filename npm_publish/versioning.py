from __future__ import annotations

import re


# Loose semantic version: minor and patch are optional, a leading "v" is allowed.
SEMVER_RE = re.compile(
    r"^v?(\d+)(\.\d+)?(\.\d+)?"
    r"(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?"
    r"(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$"
)

# A single comparison inside a range, e.g. ">=1.2.3", "^2", "~1.x", "*".
CONSTRAINT_TERM_RE = re.compile(
    r"^(=|!=|>=|<=|=>|=<|~>|>|<|~|\^)?"
    r"v?(\d+|[xX*])(\.(\d+|[xX*]))?(\.(\d+|[xX*]))?"
    r"(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?"
    r"(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$"
)

_OPERATOR_GAP_RE = re.compile(r"(!=|>=|<=|=>|=<|~>|[=<>~^])\s+")
_HYPHEN_RANGE_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")


def is_version(value: str) -> bool:
    """Return True if value reads as a semantic version (e.g. 1, 1.0, v1.0.0-rc.1)."""
    return bool(SEMVER_RE.match(value.strip()))


def is_constraint(value: str) -> bool:
    """Return True if value is a valid semantic version constraint.

    Accepts plain versions, comparison operators, x/X/* wildcards, hyphen
    ranges ("1.0.0 - 2.0.0"), AND via commas or spaces and OR via "||".
    """
    if not value or not value.strip():
        return False
    for alternative in value.split("||"):
        alternative = alternative.strip()
        if not alternative:
            return False
        hyphen = _HYPHEN_RANGE_RE.match(alternative)
        if hyphen:
            terms = [hyphen.group(1), hyphen.group(2)]
        else:
            alternative = _OPERATOR_GAP_RE.sub(r"\1", alternative)
            terms = [t for t in re.split(r"[\s,]+", alternative) if t]
        if not terms:
            return False
        for term in terms:
            if not CONSTRAINT_TERM_RE.match(term):
                return False
    return True
