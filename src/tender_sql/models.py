"""
Data Models
===========

Core data structures for the tender natural-language query pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from tender_sql.errors import StageOrderError


class VerificationStatus(Enum):
    """Status of a verification check."""

    PASSED = "passed"
    FAILED = "failed"


@dataclass
class VerificationResult:
    """Result of a single verification step."""

    verifier_name: str
    status: VerificationStatus
    message: str
    details: dict = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status == VerificationStatus.PASSED


@dataclass
class LLMResponse:
    """Response from an LLM call."""

    content: str
    model: str
    tokens_used: int = 0


@dataclass(frozen=True)
class ColumnDescriptor:
    """A single column as reported by the database catalog."""

    name: str
    logical_type: str
    nullable: bool = True


@dataclass
class TableDescriptor:
    """
    One introspected table.

    A table whose introspection failed carries an ``error`` and no columns
    or samples; it contributes nothing to the prompt.
    """

    name: str
    columns: list[ColumnDescriptor] = field(default_factory=list)
    sample_rows: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.error is None and bool(self.columns)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]


@dataclass
class SchemaSnapshot:
    """Point-in-time structural description of the database."""

    tables: list[TableDescriptor] = field(default_factory=list)
    introspected_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def usable_tables(self) -> list[TableDescriptor]:
        return [table for table in self.tables if table.usable]

    def table(self, name: str) -> Optional[TableDescriptor]:
        lowered = name.lower()
        for table in self.tables:
            if table.name.lower() == lowered:
                return table
        return None


@dataclass(frozen=True)
class ConversationTurn:
    """A prior question and, when known, how many rows it returned."""

    question: str
    result_count: Optional[int] = None


class QueryStage(Enum):
    """Stages a translated query passes through, in order."""

    NORMALIZED = 1
    VALIDATED = 2
    POLICY_APPLIED = 3
    SYNTAX_CHECKED = 4
    FINAL = 5


@dataclass
class QueryCandidate:
    """
    The evolving representation of one translation attempt.

    ``raw_model_output`` is kept verbatim for the audit record. Each call to
    :meth:`advance` must move exactly one stage forward.
    """

    raw_model_output: str
    normalized_text: str
    stage: QueryStage = QueryStage.NORMALIZED
    text: str = ""

    def __post_init__(self) -> None:
        if not self.text:
            self.text = self.normalized_text

    def advance(self, stage: QueryStage, text: Optional[str] = None) -> None:
        if stage.value != self.stage.value + 1:
            raise StageOrderError(
                f"Cannot move query from {self.stage.name} to {stage.name}"
            )
        self.stage = stage
        if text is not None:
            self.text = text

    @property
    def is_executable(self) -> bool:
        return self.stage is QueryStage.FINAL

    @property
    def final_sql(self) -> str:
        if not self.is_executable:
            raise StageOrderError(
                f"Query is not executable at stage {self.stage.name}"
            )
        return self.text


class PipelineState(str, Enum):
    """States of the per-request pipeline state machine."""

    START = "start"
    PROMPTED = "prompted"
    MODEL_CALLED = "model_called"
    MODEL_FAILED = "model_failed"
    NORMALIZED = "normalized"
    EMPTY = "empty"
    VALIDATED = "validated"
    REJECTED = "rejected"
    POLICY_APPLIED = "policy_applied"
    SYNTAX_CHECKED = "syntax_checked"
    BAD_SYNTAX = "bad_syntax"
    FALLBACK = "fallback"
    EXECUTING = "executing"
    EXEC_ERROR = "exec_error"
    FALLBACK_EXECUTING = "fallback_executing"
    DONE = "done"
    FAILED = "failed"


class FallbackReason(str, Enum):
    """Why the pipeline switched to a fallback query."""

    MODEL_UNAVAILABLE = "model_unavailable"
    NO_QUERY_GENERATED = "no_query_generated"
    UNSAFE_QUERY = "unsafe_query"
    BAD_SYNTAX = "bad_syntax"
    EXECUTION_ERROR = "execution_error"


@dataclass
class ExecutionRecord:
    """
    Audit record for one request.

    Created at request start, filled in as the pipeline advances and
    persisted exactly once by :class:`tender_sql.audit.AuditLogger`.
    """

    question: str
    escaped_question: str
    request_id: Optional[str] = None
    generated_sql: Optional[str] = None
    cleaned_sql: Optional[str] = None
    final_sql: Optional[str] = None
    result_count: int = 0
    fallback_used: bool = False
    fallback_reason: Optional[FallbackReason] = None
    success: bool = False
    error: Optional[str] = None
    recovered_errors: list[str] = field(default_factory=list)
    execution_time_ms: float = 0.0
    states: list[PipelineState] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    persisted_at: Optional[str] = None

    def enter(self, state: PipelineState) -> None:
        self.states.append(state)

    @property
    def state(self) -> PipelineState:
        return self.states[-1] if self.states else PipelineState.START

    def to_dict(self) -> dict[str, Any]:
        """Serialisable audit entry."""
        return {
            "timestamp": self.timestamp,
            "request_id": self.request_id,
            "question": self.question,
            "escaped_question": self.escaped_question,
            "generated_sql": self.generated_sql,
            "cleaned_sql": self.cleaned_sql,
            "final_sql": self.final_sql,
            "result_count": self.result_count,
            "fallback_used": self.fallback_used,
            "fallback_reason": (
                self.fallback_reason.value if self.fallback_reason else None
            ),
            "success": self.success,
            "error": self.error,
            "recovered_errors": list(self.recovered_errors),
            "execution_time_ms": round(self.execution_time_ms, 2),
            "states": [state.value for state in self.states],
        }


@dataclass
class PipelineResult:
    """Final outcome of one request, as handed back to the caller."""

    success: bool
    question: str
    query: Optional[str]
    rows: list[dict[str, Any]]
    fallback_used: bool
    record: ExecutionRecord
    error: Optional[str] = None

    def to_response(self) -> dict[str, Any]:
        if not self.success:
            return {"error": self.error, "question": self.question}
        return {
            "question": self.question,
            "query": self.query,
            "result": self.rows,
            "fallbackUsed": self.fallback_used,
        }
