"""
Errors
======

Error taxonomy for the query pipeline. Recoverable errors are raised by the
individual stages and absorbed by :class:`tender_sql.pipeline.QueryPipeline`,
which turns them into fallback attempts.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tender_sql.models import VerificationResult


class TenderSQLError(Exception):
    """Base class for all pipeline errors."""


class InvalidQuestionError(TenderSQLError, ValueError):
    """The question is missing or blank."""


class IntrospectionError(TenderSQLError):
    """Schema discovery failed entirely."""


class ModelUnavailableError(TenderSQLError):
    """The language model call failed (timeout, quota, transport)."""


class NoQueryGenerated(TenderSQLError):
    """Normalisation left nothing that could be executed."""


class UnsafeQueryRejected(TenderSQLError):
    """The Safety Validator or the Syntax Guard rejected the candidate."""

    def __init__(self, result: "VerificationResult") -> None:
        super().__init__(result.message)
        self.result = result


class ExecutionError(TenderSQLError):
    """The database rejected a statement."""

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        super().__init__(message)
        self.sql = sql


class FallbackExhaustedError(TenderSQLError):
    """Both the primary and the fallback execution failed."""


class StageOrderError(TenderSQLError):
    """A query candidate skipped or repeated a stage."""


class AuditError(TenderSQLError):
    """An execution record could not be persisted."""
