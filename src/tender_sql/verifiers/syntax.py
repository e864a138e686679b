"""
Syntax Guard
============

Heuristic second pass that catches malformed statement shapes produced by
model drift. These statements are not malicious, only non-executable, so
the Safety Validator's chaining rules do not necessarily see them.
"""

import re
from typing import Optional

from tender_sql.models import VerificationResult
from tender_sql.verifiers.base import Verifier

_CLAUSE = r"(?:SELECT|FROM|WHERE|ORDER\s+BY|GROUP\s+BY|HAVING)"

MALFORMED_SHAPES = [
    (
        re.compile(
            rf"\b{_CLAUSE}\b[^;]*;\s*(?:SELECT|FROM|WHERE|ORDER|GROUP|HAVING)\b",
            re.IGNORECASE,
        ),
        "Clause fragments joined by a semicolon",
    ),
    (
        re.compile(r";\s*(?:WHERE|ORDER|GROUP|HAVING)\b", re.IGNORECASE),
        "Semicolon before a clause keyword",
    ),
]

LEFTOVER_PROSE = re.compile(r"\b(?:this query|the query|explanation)\b", re.IGNORECASE)

_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")


def _parentheses_balanced(sql: str) -> bool:
    depth = 0
    for char in _STRING_LITERAL.sub("''", sql):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


class SyntaxGuard(Verifier):
    """Rejects statements whose shape cannot be executed."""

    @property
    def name(self) -> str:
        return "SyntaxGuard"

    def verify(self, sql: str, context: Optional[dict] = None) -> VerificationResult:
        """
        Check the policy-applied statement for known malformed shapes.

        Args:
            sql: Statement after soft-delete injection
            context: Unused for this verifier

        Returns:
            VerificationResult with PASSED or FAILED status
        """
        for pattern, description in MALFORMED_SHAPES:
            match = pattern.search(sql)
            if match:
                return self._failed(description, fragment=match.group(0))

        prose = LEFTOVER_PROSE.search(sql)
        if prose:
            return self._failed(
                "Explanatory text left in statement", fragment=prose.group(0)
            )

        if not _parentheses_balanced(sql):
            return self._failed("Unbalanced parentheses")

        return self._passed("Statement shape looks executable")

    def check(self, sql: str) -> bool:
        """Pure predicate form of :meth:`verify`."""
        return self.verify(sql).passed
