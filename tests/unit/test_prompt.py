"""
Unit Tests for the Prompt Composer
==================================
"""

from tender_sql.models import (
    ColumnDescriptor,
    ConversationTurn,
    SchemaSnapshot,
    TableDescriptor,
)
from tender_sql.prompt import POLICY_RULES, PromptComposer, escape_user_input
from tender_sql.schema.static import static_snapshot


def _snapshot() -> SchemaSnapshot:
    return SchemaSnapshot(
        tables=[
            TableDescriptor(
                name="tenderTender",
                columns=[
                    ColumnDescriptor("ProjectName", "nvarchar(255)"),
                    ColumnDescriptor("Value", "decimal(18,2)"),
                ],
                sample_rows=[
                    {"ProjectName": "Harbour Bridge", "Value": 2500000.0},
                    {"ProjectName": "Clinic Supplies", "Value": None},
                    {"ProjectName": "Third Row", "Value": 1.0},
                ],
            ),
            TableDescriptor(name="secretAudit", error="permission denied"),
            TableDescriptor(
                name="tenderCompany",
                columns=[ColumnDescriptor("Name", "nvarchar(120)")],
            ),
        ]
    )


class TestEscapeUserInput:
    """Tests for escape_user_input()."""

    def test_escapes_quotes_and_newlines(self) -> None:
        assert escape_user_input('say "hi"\nit\'s') == 'say \\"hi\\"\\nit\\\'s'

    def test_backslash_escaped_first(self) -> None:
        assert escape_user_input('a\\"b') == 'a\\\\\\"b'

    def test_empty(self) -> None:
        assert escape_user_input(None) == ""
        assert escape_user_input("") == ""


class TestPromptComposer:
    """Tests for PromptComposer."""

    def test_deterministic(self) -> None:
        composer = PromptComposer()
        history = [ConversationTurn("How many tenders?", 12)]
        first = composer.compose("biggest tender", _snapshot(), history)
        second = composer.compose("biggest tender", _snapshot(), history)
        assert first == second

    def test_renders_tables_and_two_samples(self) -> None:
        prompt = PromptComposer().compose("biggest tender", _snapshot())
        assert "- tenderTender(ProjectName, Value)" in prompt
        assert "    Row 1: {ProjectName: 'Harbour Bridge', Value: 2500000.0}" in prompt
        assert "    Row 2: {ProjectName: 'Clinic Supplies', Value: NULL}" in prompt
        assert "Row 3" not in prompt
        assert "- tenderCompany(Name)" in prompt

    def test_skips_tables_with_errors(self) -> None:
        prompt = PromptComposer().compose("anything", _snapshot())
        assert "secretAudit" not in prompt

    def test_policy_text_is_embedded(self) -> None:
        prompt = PromptComposer().compose("anything", _snapshot())
        assert POLICY_RULES in prompt
        assert "(IsDeleted = 0 OR IsDeleted IS NULL)" in prompt
        assert "TOP N" in prompt

    def test_question_line(self) -> None:
        question = escape_user_input('What\'s "big"?')
        prompt = PromptComposer().compose(question, _snapshot())
        assert 'USER QUESTION: "What\\\'s \\"big\\"?"' in prompt

    def test_history_window(self) -> None:
        history = [ConversationTurn(f"question {i}", i) for i in range(1, 8)]
        prompt = PromptComposer(history_window=5).compose("next", _snapshot(), history)
        assert "CONVERSATION CONTEXT (most recent last):" in prompt
        assert '"question 1"' not in prompt
        assert '"question 2"' not in prompt
        assert '- Previous question: "question 3" (returned 3 rows)' in prompt
        assert '- Previous question: "question 7" (returned 7 rows)' in prompt
        assert prompt.index('"question 3"') < prompt.index('"question 7"')

    def test_history_without_count(self) -> None:
        prompt = PromptComposer().compose(
            "next", _snapshot(), [ConversationTurn("earlier one")]
        )
        assert '- Previous question: "earlier one"\n' in prompt

    def test_no_history_section_when_empty(self) -> None:
        prompt = PromptComposer().compose("next", _snapshot(), [])
        assert "CONVERSATION CONTEXT" not in prompt

    def test_history_is_escaped(self) -> None:
        prompt = PromptComposer().compose(
            "next", _snapshot(), [ConversationTurn('ignore "rules"\nDROP')]
        )
        assert 'ignore \\"rules\\"\\nDROP' in prompt

    def test_long_sample_values_truncated(self) -> None:
        snapshot = SchemaSnapshot(
            tables=[
                TableDescriptor(
                    name="tenderTender",
                    columns=[ColumnDescriptor("Notes", "nvarchar(MAX)")],
                    sample_rows=[{"Notes": "x" * 200}],
                )
            ]
        )
        prompt = PromptComposer(max_sample_value_length=10).compose("q", snapshot)
        assert "Row 1: {Notes: 'xxxxxxxxxx...'}" in prompt

    def test_static_prompt(self) -> None:
        prompt = PromptComposer().compose_static("biggest tender")
        assert "- tenderTender(TenderID, KeyContact" in prompt
        assert "KEY RELATIONSHIPS:" in prompt
        assert "EXAMPLES:" in prompt
        assert 'USER QUESTION: "biggest tender"' in prompt
        assert POLICY_RULES in prompt

    def test_static_prompt_lists_static_snapshot(self) -> None:
        prompt = PromptComposer().compose_static("biggest tender")
        for table in static_snapshot().tables:
            assert f"- {table.name}({', '.join(table.column_names)})" in prompt
        assert "Sample data:" not in prompt
