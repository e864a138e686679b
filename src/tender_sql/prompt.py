"""
Prompt Composer
===============

Renders a schema snapshot, the escaped question and a bounded window of
conversation history into one instruction prompt. Output is deterministic:
identical inputs give byte-identical prompts.
"""

from typing import Any, Iterable, Sequence

from tender_sql.models import ConversationTurn, SchemaSnapshot, TableDescriptor
from tender_sql.schema.static import STATIC_EXAMPLES, STATIC_RELATIONSHIPS, static_snapshot

PREAMBLE = (
    "You are an expert SQL Server database analyst for a tender management "
    "system. Your task is to understand natural language questions and convert "
    "them into precise, efficient SQL queries."
)

POLICY_RULES = """IMPORTANT GUIDELINES:
- Generate a single read-only statement: SELECT, or WITH ... SELECT. Never INSERT, UPDATE, DELETE, MERGE, DROP, CREATE, ALTER, EXEC or any other statement that changes data or schema.
- Always filter out deleted records: WHERE (IsDeleted = 0 OR IsDeleted IS NULL) on every table that has an IsDeleted column.
- List the columns you need explicitly instead of SELECT *, and give computed columns meaningful aliases (e.g. COUNT(*) AS TenderCount, Type AS TenderType).
- Use table aliases when joining and qualify every column with its alias.
- For "biggest", "largest", "most recent" or "latest" questions use a bounded result set: SELECT TOP N with a matching ORDER BY.
- Limit list results with TOP 20 unless the question asks for a specific number.
- Do not end the statement with a semicolon and do not chain statements."""

TASK = (
    "TASK: Generate a single, optimized SQL query that best answers the user's "
    "question. Return ONLY the SQL query wrapped in ```sql blocks, with no "
    "explanations or comments."
)


def escape_user_input(text: str | None) -> str:
    """
    Escape free text before it is embedded in a quoted prompt line.

    Backslashes go first so the escapes added afterwards are not doubled.
    """
    if not text or not isinstance(text, str):
        return ""
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


class PromptComposer:
    """Builds the model prompt for one request."""

    def __init__(
        self,
        history_window: int = 5,
        prompt_sample_rows: int = 2,
        max_sample_value_length: int = 80,
    ) -> None:
        """
        Initialize the composer.

        Args:
            history_window: Number of most recent turns passed to the model
            prompt_sample_rows: Sample rows rendered per table (at most 2)
            max_sample_value_length: Longer sample strings are truncated
        """
        self.history_window = history_window
        self.prompt_sample_rows = max(0, min(prompt_sample_rows, 2))
        self.max_sample_value_length = max_sample_value_length

    def _format_value(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, str):
            if len(value) > self.max_sample_value_length:
                value = value[: self.max_sample_value_length] + "..."
            return f"'{escape_user_input(value)}'"
        return str(value)

    def _render_table(self, table: TableDescriptor) -> list[str]:
        lines = [f"- {table.name}({', '.join(table.column_names)})"]
        samples = table.sample_rows[: self.prompt_sample_rows]
        if samples:
            lines.append("  Sample data:")
            for index, row in enumerate(samples, start=1):
                pairs = ", ".join(
                    f"{key}: {self._format_value(value)}" for key, value in row.items()
                )
                lines.append(f"    Row {index}: {{{pairs}}}")
        return lines

    def _render_history(self, history: Sequence[ConversationTurn] | None) -> list[str]:
        if not history or self.history_window <= 0:
            return []
        lines = ["CONVERSATION CONTEXT (most recent last):"]
        for turn in list(history)[-self.history_window:]:
            line = f'- Previous question: "{escape_user_input(turn.question)}"'
            if turn.result_count is not None:
                line += f" (returned {turn.result_count} rows)"
            lines.append(line)
        return lines + [""]

    def _assemble(
        self,
        schema_lines: Iterable[str],
        question: str,
        history: Sequence[ConversationTurn] | None,
        extra: Iterable[str] = (),
    ) -> str:
        lines = [PREAMBLE, "", "DATABASE SCHEMA:", ""]
        lines.extend(schema_lines)
        lines.append("")
        lines.extend(extra)
        lines.extend(self._render_history(history))
        lines.append(f'USER QUESTION: "{question}"')
        lines.append("")
        lines.append(POLICY_RULES)
        lines.append("")
        lines.append(TASK)
        return "\n".join(lines)

    def compose(
        self,
        question: str,
        snapshot: SchemaSnapshot,
        history: Sequence[ConversationTurn] | None = None,
    ) -> str:
        """
        Build the prompt from a live schema snapshot.

        Args:
            question: Question already passed through escape_user_input
            snapshot: Introspected schema; failed tables are skipped
            history: Prior turns, most recent last

        Returns:
            Prompt text
        """
        schema_lines: list[str] = []
        for table in snapshot.usable_tables():
            schema_lines.extend(self._render_table(table))
        return self._assemble(schema_lines, question, history)

    def compose_static(
        self,
        question: str,
        history: Sequence[ConversationTurn] | None = None,
    ) -> str:
        """Build the degraded-mode prompt from the static tender schema."""
        schema_lines: list[str] = []
        for table in static_snapshot().usable_tables():
            schema_lines.extend(self._render_table(table))
        extra = ["KEY RELATIONSHIPS:"]
        extra.extend(f"- {relation}" for relation in STATIC_RELATIONSHIPS)
        extra.extend(["", "EXAMPLES:"])
        extra.extend(f'- "{asked}" -> {sql}' for asked, sql in STATIC_EXAMPLES)
        extra.append("")
        return self._assemble(schema_lines, question, history, extra)
