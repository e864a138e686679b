"""
API Schemas
===========

Pydantic models for API request/response validation.

Request bodies accept camelCase (as sent by the web client) or
snake_case field names; responses use the client's camelCase names.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tender_sql.models import ConversationTurn


class HistoryTurn(BaseModel):
    """One earlier question in the conversation."""

    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., max_length=1000)
    result_count: int | None = Field(
        default=None,
        ge=0,
        alias="resultCount",
        description="Rows the earlier question returned, if known",
    )

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(question=self.question, result_count=self.result_count)


class AskRequest(BaseModel):
    """Request body for a natural-language question."""

    model_config = ConfigDict(populate_by_name=True)

    question: str | None = Field(
        default=None,
        max_length=1000,
        description="Natural-language question about tenders",
        examples=["What is the biggest tender we won in 2023?"],
    )
    history: list[HistoryTurn] = Field(
        default_factory=list,
        alias="conversationHistory",
        description="Earlier questions, most recent last",
    )
    use_schema_introspection: bool = Field(
        default=True,
        alias="useSchemaIntrospection",
        description="Ground the prompt in the live schema instead of the static one",
    )

    @field_validator("question")
    @classmethod
    def strip_question(cls, value: str | None) -> str | None:
        return value.strip() if isinstance(value, str) else value

    @field_validator("history", mode="before")
    @classmethod
    def accept_plain_questions(cls, value: Any) -> Any:
        """Allow history entries sent as bare strings."""
        if isinstance(value, list):
            return [{"question": item} if isinstance(item, str) else item for item in value]
        return value


class AskResponse(BaseModel):
    """Answer to a question."""

    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., description="The question as received")
    query: str = Field(..., description="Statement that produced the rows")
    result: list[dict[str, Any]] = Field(default_factory=list, description="Result rows")
    fallback_used: bool = Field(
        ..., alias="fallbackUsed", description="Whether a fallback query was used"
    )
    request_id: str = Field(..., alias="requestId", description="Unique request identifier")
    processing_time_ms: float = Field(
        ..., alias="processingTimeMs", description="Processing time in milliseconds"
    )


class AskErrorResponse(BaseModel):
    """Question that could not be answered."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(..., description="User-facing error message")
    question: str | None = Field(None, description="The question as received")
    request_id: str | None = Field(None, alias="requestId", description="Request ID")


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to handle requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: str | None = Field(None, description="Request ID if available")
