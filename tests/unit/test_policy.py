"""
Unit Tests for the Policy Injector
==================================
"""

import re

import pytest

from tender_sql.policy import SoftDeletePolicy, inject_soft_delete_filter

PREDICATE = "(IsDeleted = 0 OR IsDeleted IS NULL)"


def _predicate_count(sql: str) -> int:
    return len(re.findall(r"IsDeleted\]?\s*(?:=\s*0|IS\s+NULL)", sql, re.IGNORECASE))


class TestSoftDeletePolicy:
    """Tests for SoftDeletePolicy.inject()."""

    def test_appends_where_when_missing(self, policy: SoftDeletePolicy) -> None:
        assert policy.inject("SELECT Name FROM tenderContact") == (
            f"SELECT Name FROM tenderContact WHERE {PREDICATE}"
        )

    def test_inserts_after_first_where(self, policy: SoftDeletePolicy) -> None:
        sql = "SELECT ProjectName FROM tenderTender WHERE Type = 'Pharma' ORDER BY Value DESC"
        assert policy.inject(sql) == (
            f"SELECT ProjectName FROM tenderTender WHERE {PREDICATE} AND Type = 'Pharma' "
            "ORDER BY Value DESC"
        )

    def test_where_goes_before_order_by(self, policy: SoftDeletePolicy) -> None:
        """Top-N query keeps its ORDER BY after the injected filter."""
        sql = "SELECT TOP 1 ProjectName, Value FROM tenderTender ORDER BY Value DESC"
        result = policy.inject(sql)
        assert result == (
            f"SELECT TOP 1 ProjectName, Value FROM tenderTender WHERE {PREDICATE} "
            "ORDER BY Value DESC"
        )

    def test_where_goes_before_group_by(self, policy: SoftDeletePolicy) -> None:
        sql = "SELECT Type, COUNT(*) AS TenderCount FROM tenderTender GROUP BY Type"
        assert policy.inject(sql) == (
            f"SELECT Type, COUNT(*) AS TenderCount FROM tenderTender WHERE {PREDICATE} "
            "GROUP BY Type"
        )

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT ProjectName FROM tenderTender WHERE IsDeleted = 0",
            "SELECT ProjectName FROM tenderTender WHERE isdeleted=0 AND Value > 10",
            "SELECT ProjectName FROM tenderTender WHERE IsDeleted IS NULL",
            f"SELECT ProjectName FROM tenderTender WHERE {PREDICATE}",
            "SELECT t.ProjectName FROM tenderTender t WHERE t.IsDeleted = 0",
            "SELECT t.ProjectName FROM tenderTender t WHERE [t].[IsDeleted] = 0",
        ],
    )
    def test_existing_predicate_is_left_alone(
        self, policy: SoftDeletePolicy, sql: str
    ) -> None:
        assert policy.inject(sql) == sql

    def test_join_qualifies_predicate_with_alias(self, policy: SoftDeletePolicy) -> None:
        sql = (
            "SELECT t.ProjectName, e.Name FROM tenderTender t "
            "JOIN tenderEmployee e ON t.AddBy = e.UserID WHERE e.Name LIKE '%Sarah%'"
        )
        result = policy.inject(sql)
        assert "WHERE (t.IsDeleted = 0 OR t.IsDeleted IS NULL) AND e.Name LIKE '%Sarah%'" in result

    def test_join_with_as_alias(self, policy: SoftDeletePolicy) -> None:
        sql = (
            "SELECT t.ProjectName FROM tenderTender AS t "
            "INNER JOIN tenderContact c ON t.KeyContact = c.ContactID"
        )
        assert policy.inject(sql).endswith("WHERE (t.IsDeleted = 0 OR t.IsDeleted IS NULL)")

    def test_join_without_alias_uses_table_name(self, policy: SoftDeletePolicy) -> None:
        sql = (
            "SELECT tenderTender.ProjectName FROM tenderTender "
            "JOIN tenderContact ON tenderTender.KeyContact = tenderContact.ContactID"
        )
        assert "tenderTender.IsDeleted = 0" in policy.inject(sql)

    def test_single_table_is_not_qualified(self, policy: SoftDeletePolicy) -> None:
        assert "t.IsDeleted" not in policy.inject("SELECT t.Name FROM tenderContact t")

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT Name FROM tenderContact",
            "SELECT ProjectName FROM tenderTender WHERE Status = 'Won'",
            "SELECT ProjectName FROM tenderTender WHERE IsDeleted = 0",
            "SELECT TOP 5 ProjectName FROM tenderTender ORDER BY CreatedAt DESC",
            "SELECT t.ProjectName FROM tenderTender t JOIN tenderContact c ON t.KeyContact = c.ContactID",
        ],
    )
    def test_predicate_present_exactly_once(
        self, policy: SoftDeletePolicy, sql: str
    ) -> None:
        once = policy.inject(sql)
        assert policy.has_predicate(once)
        assert policy.inject(once) == once
        # One predicate: either the caller's comparison or the injected pair
        assert _predicate_count(once) in (1, 2)
        assert once.count("IS NULL)") <= 1

    def test_custom_column(self) -> None:
        policy = SoftDeletePolicy(column="Archived")
        assert policy.inject("SELECT Name FROM tenderCompany") == (
            "SELECT Name FROM tenderCompany WHERE (Archived = 0 OR Archived IS NULL)"
        )

    def test_functional_form(self) -> None:
        assert inject_soft_delete_filter("SELECT Name FROM tenderContact") == (
            f"SELECT Name FROM tenderContact WHERE {PREDICATE}"
        )


class TestNestedClauses:
    """Clauses inside parentheses are not part of the outer statement."""

    def test_window_order_by_is_left_intact(self, policy: SoftDeletePolicy) -> None:
        sql = "SELECT ProjectName, RANK() OVER (ORDER BY Value DESC) AS r FROM tenderTender"
        assert policy.inject(sql) == f"{sql} WHERE {PREDICATE}"

    def test_window_and_outer_order_by(self, policy: SoftDeletePolicy) -> None:
        sql = (
            "SELECT ProjectName, ROW_NUMBER() OVER (PARTITION BY Type ORDER BY Value DESC) AS n "
            "FROM tenderTender ORDER BY n"
        )
        assert policy.inject(sql) == (
            "SELECT ProjectName, ROW_NUMBER() OVER (PARTITION BY Type ORDER BY Value DESC) AS n "
            f"FROM tenderTender WHERE {PREDICATE} ORDER BY n"
        )

    def test_select_list_subquery_group_by(self, policy: SoftDeletePolicy) -> None:
        sql = (
            "SELECT Name, (SELECT TOP 1 Type FROM tenderTender GROUP BY Type) AS TopType "
            "FROM tenderCompany"
        )
        assert policy.inject(sql) == f"{sql} WHERE {PREDICATE}"

    def test_clause_keyword_in_string_literal(self, policy: SoftDeletePolicy) -> None:
        sql = "SELECT 'ORDER BY' AS Label, ProjectName FROM tenderTender"
        assert policy.inject(sql) == f"{sql} WHERE {PREDICATE}"

    def test_join_qualifier_skips_subquery_from(self, policy: SoftDeletePolicy) -> None:
        sql = (
            "SELECT t.ProjectName, (SELECT COUNT(*) FROM tenderContact x) AS Contacts "
            "FROM tenderTender t JOIN tenderEmployee e ON t.AddBy = e.UserID"
        )
        assert policy.inject(sql).endswith("WHERE (t.IsDeleted = 0 OR t.IsDeleted IS NULL)")

    def test_similarly_named_column_does_not_count(self, policy: SoftDeletePolicy) -> None:
        sql = "SELECT Name FROM tenderContact WHERE ContactIsDeleted = 0"
        assert not policy.has_predicate(sql)
        assert policy.inject(sql) == (
            f"SELECT Name FROM tenderContact WHERE {PREDICATE} AND ContactIsDeleted = 0"
        )
