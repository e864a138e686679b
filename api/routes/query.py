"""
Query Routes
============

Natural-language question endpoint used by the tender web client.
"""

import time
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.schemas import AskErrorResponse, AskRequest, AskResponse, ErrorResponse
from observability.metrics import track_query_metrics
from tender_sql.errors import InvalidQuestionError
from tender_sql.pipeline import QueryPipeline

router = APIRouter(prefix="/api/ai", tags=["Query"])


def get_pipeline(request: Request) -> QueryPipeline:
    """Dependency to get the configured pipeline from app state."""
    return request.app.state.pipeline


def get_request_id(request: Request) -> str:
    """Request ID assigned by TelemetryMiddleware, or a fresh one."""
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _error(status_code: int, message: str, question: str | None, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=AskErrorResponse(
            error=message, question=question, request_id=request_id
        ).model_dump(by_alias=True),
    )


@router.post(
    "/ask",
    response_model=AskResponse,
    responses={
        400: {"model": AskErrorResponse, "description": "Question could not be answered"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Answer a natural-language question about tenders",
    description=(
        "Translates the question into a validated read-only query, runs it "
        "and returns the rows. Falls back to a pre-audited query when the "
        "generated one is unusable."
    ),
)
async def ask(
    body: AskRequest,
    pipeline: QueryPipeline = Depends(get_pipeline),
    request_id: str = Depends(get_request_id),
):
    """
    Answer one question.

    Args:
        body: Question, optional conversation history and grounding mode
        pipeline: Injected QueryPipeline instance
        request_id: Correlation ID for logs and the audit record

    Returns:
        AskResponse on success, AskErrorResponse (400) otherwise
    """
    start_time = time.perf_counter()

    try:
        result = await pipeline.ask(
            body.question,
            history=[turn.to_turn() for turn in body.history],
            use_schema_introspection=body.use_schema_introspection,
            request_id=request_id,
        )
    except InvalidQuestionError as e:
        return _error(400, str(e), body.question, request_id)

    track_query_metrics(result.record)
    processing_time_ms = (time.perf_counter() - start_time) * 1000

    if not result.success:
        return _error(400, result.error, result.question, request_id)

    return AskResponse(
        question=result.question,
        query=result.query,
        result=result.rows,
        fallback_used=result.fallback_used,
        request_id=request_id,
        processing_time_ms=round(processing_time_ms, 2),
    )
