"""
Fallback Selector
=================

Deterministic, keyword-driven mapping from a question to a pre-audited
query. Rules are evaluated top to bottom and the first match wins, so the
most specific rules come first and the catch-all comes last.

Tender statuses are free text typed by users, so the status filters match a
deliberately broad set of spellings rather than a single value.
"""

import re
from dataclasses import dataclass
from typing import Callable

SOFT_DELETE = "(IsDeleted = 0 OR IsDeleted IS NULL)"

POSITIVE_STATUS = (
    "(Status LIKE '%approved%' OR Status LIKE '%awarded%' OR Status LIKE '%won%'"
    " OR Status LIKE '%success%' OR Status LIKE '%accepted%')"
)

YEAR = re.compile(r"\b(?:19|20)\d{2}\b")

_BIGGEST = ("biggest", "largest", "highest value", "most valuable")
_POSITIVE = ("approved", "awarded", "won", "successful", "accepted")
_RECENT = ("recent", "latest", "newest")
_COUNT = ("count", "how many", "number of")


def _any(question: str, words: tuple[str, ...]) -> bool:
    return any(word in question for word in words)


def _year(question: str) -> int | None:
    match = YEAR.search(question)
    return int(match.group(0)) if match else None


@dataclass(frozen=True)
class FallbackRule:
    """
    A keyword predicate paired with a fixed query template.

    ``predicate`` receives the lower-cased question. A template may contain
    a ``{year}`` placeholder, which is only ever filled with a four-digit
    integer matched from the question.
    """

    name: str
    predicate: Callable[[str], bool]
    template: str

    def render(self, question: str) -> str:
        if "{year}" not in self.template:
            return self.template
        return self.template.format(year=_year(question))


YEAR_FILTER = "(YEAR(OpenDate) = {year} OR YEAR(ReturnDate) = {year} OR YEAR(CreatedAt) = {year})"

TENDER_COLUMNS = "ProjectName, Value, Status, Type, OpenDate"

DEFAULT_RULES: list[FallbackRule] = [
    FallbackRule(
        name="biggest_positive_in_year",
        predicate=lambda q: _any(q, _BIGGEST) and _any(q, _POSITIVE) and _year(q) is not None,
        template=(
            f"SELECT TOP 1 {TENDER_COLUMNS}, ReturnDate FROM tenderTender"
            f" WHERE {SOFT_DELETE} AND {POSITIVE_STATUS} AND {YEAR_FILTER}"
            " ORDER BY Value DESC"
        ),
    ),
    FallbackRule(
        name="biggest_positive",
        predicate=lambda q: _any(q, _BIGGEST) and _any(q, _POSITIVE),
        template=(
            f"SELECT TOP 1 {TENDER_COLUMNS} FROM tenderTender"
            f" WHERE {SOFT_DELETE} AND {POSITIVE_STATUS} ORDER BY Value DESC"
        ),
    ),
    FallbackRule(
        name="biggest_in_year",
        predicate=lambda q: _any(q, _BIGGEST) and _year(q) is not None,
        template=(
            f"SELECT TOP 1 {TENDER_COLUMNS}, ReturnDate FROM tenderTender"
            f" WHERE {SOFT_DELETE} AND {YEAR_FILTER} ORDER BY Value DESC"
        ),
    ),
    FallbackRule(
        name="biggest",
        predicate=lambda q: _any(q, _BIGGEST),
        template=(
            f"SELECT TOP 1 {TENDER_COLUMNS} FROM tenderTender"
            f" WHERE {SOFT_DELETE} ORDER BY Value DESC"
        ),
    ),
    FallbackRule(
        name="recent",
        predicate=lambda q: _any(q, _RECENT),
        template=(
            "SELECT TOP 10 ProjectName, Value, Status, Type, CreatedAt FROM tenderTender"
            f" WHERE {SOFT_DELETE} ORDER BY CreatedAt DESC"
        ),
    ),
    FallbackRule(
        name="count_users",
        predicate=lambda q: _any(q, _COUNT) and _any(q, ("user", "employee")),
        template="SELECT COUNT(*) AS TotalUsers FROM tenderEmployee",
    ),
    FallbackRule(
        name="count_contacts",
        predicate=lambda q: _any(q, _COUNT) and "contact" in q,
        template=f"SELECT COUNT(*) AS TotalContacts FROM tenderContact WHERE {SOFT_DELETE}",
    ),
    FallbackRule(
        name="count_companies",
        predicate=lambda q: _any(q, _COUNT) and _any(q, ("company", "companies")),
        template="SELECT COUNT(*) AS TotalCompanies FROM tenderCompany",
    ),
    FallbackRule(
        name="count_tenders",
        predicate=lambda q: _any(q, _COUNT),
        template=f"SELECT COUNT(*) AS TotalTenders FROM tenderTender WHERE {SOFT_DELETE}",
    ),
    FallbackRule(
        name="tenders_by_type",
        predicate=lambda q: _any(q, ("by type", "per type", "each type")),
        template=(
            "SELECT Type AS TenderType, COUNT(*) AS TenderCount FROM tenderTender"
            f" WHERE {SOFT_DELETE} GROUP BY Type ORDER BY TenderCount DESC"
        ),
    ),
    FallbackRule(
        name="tenders_by_status",
        predicate=lambda q: _any(q, ("by status", "per status", "each status")),
        template=(
            "SELECT Status AS TenderStatus, COUNT(*) AS TenderCount FROM tenderTender"
            f" WHERE {SOFT_DELETE} GROUP BY Status ORDER BY TenderCount DESC"
        ),
    ),
    FallbackRule(
        name="users",
        predicate=lambda q: _any(q, ("user", "employee")),
        template="SELECT TOP 20 UserID, Name, Email, LastLogin FROM tenderEmployee ORDER BY LastLogin DESC",
    ),
    FallbackRule(
        name="contacts",
        predicate=lambda q: "contact" in q,
        template=(
            "SELECT TOP 20 FirstName, Surname, Email, Phone, Status FROM tenderContact"
            f" WHERE {SOFT_DELETE} ORDER BY CreatedAt DESC"
        ),
    ),
    FallbackRule(
        name="companies",
        predicate=lambda q: _any(q, ("company", "companies")),
        template="SELECT TOP 20 Name, Phone, Email FROM tenderCompany ORDER BY CreatedAt DESC",
    ),
    FallbackRule(
        name="recent_tenders",
        predicate=lambda q: True,
        template=(
            f"SELECT TOP 10 {TENDER_COLUMNS} FROM tenderTender"
            f" WHERE {SOFT_DELETE} ORDER BY CreatedAt DESC"
        ),
    ),
]


class FallbackSelector:
    """Total function from a question to a pre-audited query."""

    def __init__(self, rules: list[FallbackRule] | None = None) -> None:
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        if not self.rules:
            raise ValueError("FallbackSelector needs at least one rule")

    def match(self, question: str | None) -> FallbackRule:
        lowered = (question or "").lower()
        for rule in self.rules:
            if rule.predicate(lowered):
                return rule
        return self.rules[-1]

    def select(self, question: str | None) -> str:
        """Return the query of the first matching rule."""
        return self.match(question).render((question or "").lower())


def select_fallback(question: str | None) -> str:
    """Select a fallback query using the default rules."""
    return FallbackSelector().select(question)
