"""
Query Normalizer
================

Strips formatting artifacts from raw model output to isolate a candidate
SQL statement.
"""

import re

# Opening and closing fences alike. Any tag is dropped when it ends the
# line; SQL tags are also dropped inline ("```sql SELECT ...```").
_FENCE = re.compile(
    r"```(?:[ \t]*[\w+.-]+[ \t]*(?=\r|\n)|[ \t]*(?:sql|tsql|t-sql|mssql|sqlserver)\b)?",
    re.IGNORECASE,
)
_BACKTICK = re.compile(r"`")
_WHITESPACE = re.compile(r"\s+")

LEADING_PHRASES = [
    re.compile(r"^here(?:'s| is) the (?:sql )?query:\s*", re.IGNORECASE),
    re.compile(r"^the (?:sql )?query is:\s*", re.IGNORECASE),
    re.compile(r"^sql query:\s*", re.IGNORECASE),
    re.compile(r"^query:\s*", re.IGNORECASE),
    re.compile(r"^sql:\s*", re.IGNORECASE),
]

TRAILING_PHRASES = [
    re.compile(r"\s*this query will.*$", re.IGNORECASE),
    re.compile(r"\s*the above query.*$", re.IGNORECASE),
    re.compile(r"\s*this sql.*$", re.IGNORECASE),
    re.compile(r"\s*explanation:.*$", re.IGNORECASE),
]


def _normalize_once(text: str) -> str:
    cleaned = _FENCE.sub(" ", text)
    cleaned = _BACKTICK.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    for pattern in LEADING_PHRASES:
        cleaned = pattern.sub("", cleaned)
    for pattern in TRAILING_PHRASES:
        cleaned = pattern.sub("", cleaned)

    return cleaned.strip()


def normalize(raw: str | None) -> str:
    """
    Isolate the SQL statement in a raw model response.

    Removes code fences (any language tag), explanatory lead-ins and
    trailers, and collapses all whitespace runs to a single space. The
    cleanup is repeated until the text stops changing, so the function is
    idempotent.

    Args:
        raw: Text returned by the language model

    Returns:
        The normalized statement, or an empty string when nothing remains
    """
    if not raw or not isinstance(raw, str):
        return ""

    text = raw
    while True:
        cleaned = _normalize_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned
