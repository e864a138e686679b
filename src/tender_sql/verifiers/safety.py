"""
Safety Validator
================

Whitelist/blacklist gate that only lets read-only statements through.
"""

import re
from typing import Optional

from tender_sql.models import VerificationResult
from tender_sql.verifiers.base import Verifier

ALLOWED_PREFIX = re.compile(r"^(?:SELECT|WITH)\b", re.IGNORECASE)

BLOCKED_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "CREATE",
    "ALTER",
    "EXEC",
    "EXECUTE",
    "TRUNCATE",
    "BACKUP",
    "RESTORE",
    "GRANT",
    "REVOKE",
    "DENY",
    "MERGE",
    # SELECT ... INTO creates a table
    "INTO",
    "OPENROWSET",
    "OPENQUERY",
    "OPENDATASOURCE",
    # Server commands that run without a semicolon
    "DBCC",
    "KILL",
    "SHUTDOWN",
    "WAITFOR",
)

_KEYWORD_PATTERNS = [
    (keyword, re.compile(rf"\b{keyword}\b", re.IGNORECASE))
    for keyword in BLOCKED_KEYWORDS
]

# Evaluated on the upper-cased statement, so [A-Z] covers any letter.
STATEMENT_CHAINING = [
    (re.compile(r";\s*$"), "Semicolon at end of statement"),
    (re.compile(r";\s*--"), "Semicolon followed by line comment"),
    (re.compile(r";\s*/\*"), "Semicolon followed by block comment"),
    (re.compile(r";\s*[A-Z]"), "Semicolon followed by another statement"),
]


class SafetyValidator(Verifier):
    """
    Accepts only SELECT/WITH statements free of mutating keywords.

    Rules are applied in order and the first violation rejects the
    statement. Callers must not try to repair a rejected statement.
    """

    @property
    def name(self) -> str:
        return "SafetyValidator"

    def verify(self, sql: str, context: Optional[dict] = None) -> VerificationResult:
        """
        Verify SQL is a read-only statement.

        Args:
            sql: Normalized SQL statement
            context: Unused for this verifier

        Returns:
            VerificationResult with PASSED or FAILED status
        """
        if not sql or not isinstance(sql, str):
            return self._failed("Statement is empty", rule="allowed_prefix")

        statement = sql.strip()

        if not ALLOWED_PREFIX.match(statement):
            return self._failed(
                "Statement does not start with SELECT or WITH",
                rule="allowed_prefix",
            )

        for keyword, pattern in _KEYWORD_PATTERNS:
            if pattern.search(statement):
                return self._failed(
                    f"Statement contains blocked keyword: {keyword}",
                    rule="blocked_keyword",
                    keyword=keyword,
                )

        upper = statement.upper()
        for pattern, description in STATEMENT_CHAINING:
            if pattern.search(upper):
                return self._failed(description, rule="statement_chaining")

        return self._passed("Statement is read-only")

    def validate(self, sql: str) -> bool:
        """Pure predicate form of :meth:`verify`."""
        return self.verify(sql).passed
