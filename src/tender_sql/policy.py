"""
Policy Injector
===============

Guarantees the soft-delete predicate is present in a validated statement.

This is a textual rewrite, not SQL parsing. Known limitations:

- The predicate is placed right after the first ``WHERE`` and joined with
  ``AND``; an existing condition of the form ``a OR b`` then reads as
  ``(pred AND a) OR b``.
- When the first ``WHERE`` belongs to a subquery or CTE, that is where the
  predicate lands.

Without a ``WHERE``, only clauses outside parentheses count as trailing,
so ``OVER (ORDER BY ...)`` and select-list subqueries are left intact.
"""

import re
from typing import Optional

_WHERE = re.compile(r"\bWHERE\b", re.IGNORECASE)
_JOIN = re.compile(r"\bJOIN\b", re.IGNORECASE)
_TRAILING_CLAUSE = re.compile(
    r"\b(?:GROUP\s+BY|HAVING|ORDER\s+BY|LIMIT|UNION|EXCEPT|INTERSECT)\b|\bOPTION\s*\(",
    re.IGNORECASE,
)
_FIRST_FROM = re.compile(
    r"\bFROM\s+(?P<table>[\w.\[\]]+)(?:\s+(?:AS\s+)?(?P<alias>[\w\[\]]+))?",
    re.IGNORECASE,
)
_NOT_AN_ALIAS = {
    "where", "join", "inner", "left", "right", "full", "cross", "outer",
    "on", "order", "group", "having", "union", "with", "option", "limit",
    "except", "intersect",
}

_STRING_LITERAL = re.compile(r"'(?:[^']|'')*'")


def _top_level(pattern: re.Pattern, sql: str) -> Optional[re.Match]:
    """First match of ``pattern`` outside parentheses and string literals."""
    masked = _STRING_LITERAL.sub(lambda m: " " * len(m.group(0)), sql)
    depth = 0
    depths = []
    for char in masked:
        if char == ")":
            depth = max(depth - 1, 0)
        depths.append(depth)
        if char == "(":
            depth += 1
    for match in pattern.finditer(masked):
        if depths[match.start()] == 0:
            return match
    return None


class SoftDeletePolicy:
    """
    Soft-delete filter for a flag column (``IsDeleted`` by default).

    A statement already comparing the column (qualified or not) to ``0`` or
    ``NULL`` is returned unchanged.
    """

    def __init__(self, column: str = "IsDeleted") -> None:
        self.column = column
        name = re.escape(column)
        self._existing = re.compile(
            rf"(?<![\w])(?:[\w\[\]]+\.)?\[?{name}\]?\s*(?:=\s*0\b|IS\s+NULL\b)",
            re.IGNORECASE,
        )

    def predicate(self, qualifier: Optional[str] = None) -> str:
        column = f"{qualifier}.{self.column}" if qualifier else self.column
        return f"({column} = 0 OR {column} IS NULL)"

    def has_predicate(self, sql: str) -> bool:
        return bool(self._existing.search(sql))

    def _qualifier(self, sql: str) -> Optional[str]:
        """Alias (or name) of the first FROM table, only needed with joins."""
        if not _JOIN.search(sql):
            return None
        match = _top_level(_FIRST_FROM, sql)
        if not match:
            return None
        alias = match.group("alias")
        if alias and alias.lower() not in _NOT_AN_ALIAS:
            return alias
        return match.group("table")

    def inject(self, sql: str) -> str:
        """
        Add the soft-delete predicate when it is missing.

        Args:
            sql: Statement that passed the Safety Validator

        Returns:
            Statement guaranteed to carry the predicate once
        """
        if self.has_predicate(sql):
            return sql

        predicate = self.predicate(self._qualifier(sql))

        where = _WHERE.search(sql)
        if where:
            return f"{sql[:where.end()]} {predicate} AND{sql[where.end():]}"

        trailing = _top_level(_TRAILING_CLAUSE, sql)
        if trailing:
            head = sql[:trailing.start()].rstrip()
            return f"{head} WHERE {predicate} {sql[trailing.start():]}"

        return f"{sql.rstrip()} WHERE {predicate}"


def inject_soft_delete_filter(sql: str, column: str = "IsDeleted") -> str:
    """Functional form of :meth:`SoftDeletePolicy.inject`."""
    return SoftDeletePolicy(column).inject(sql)
