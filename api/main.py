"""
FastAPI Application
===================

Main FastAPI application for the tender question-answering service.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.middleware.telemetry import TelemetryMiddleware
from api.routes.health import router as health_router
from api.routes.query import router as query_router
from api.schemas import ErrorResponse
from observability.logging_config import get_logger, setup_logging
from observability.metrics import metrics_endpoint, setup_metrics
from observability.tracing import setup_tracing
from tender_sql.audit import AuditLogger, AuditSink, JsonlAuditSink, LogAuditSink
from tender_sql.config import Settings, get_settings
from tender_sql.executor import EnginePool, create_pool
from tender_sql.llm import LLMInterface, MockLLM, OpenAICompatibleLLM
from tender_sql.pipeline import QueryPipeline
from tender_sql.prompt import PromptComposer
from tender_sql.schema import SchemaIntrospector, SnapshotCache

# Canned answers for demo mode (TENDER_SQL_LLM_PROVIDER=mock)
DEMO_RESPONSES = {
    "biggest": [
        "SELECT TOP 1 ProjectName, Value, Status, Type, OpenDate "
        "FROM tenderTender ORDER BY Value DESC"
    ],
    "how many tenders": ["SELECT COUNT(*) AS TotalTenders FROM tenderTender"],
    "by type": [
        "SELECT Type, COUNT(*) AS TenderCount FROM tenderTender "
        "GROUP BY Type ORDER BY TenderCount DESC"
    ],
    "recent": [
        "SELECT TOP 10 ProjectName, Value, Status, OpenDate "
        "FROM tenderTender ORDER BY OpenDate DESC"
    ],
    "companies": ["SELECT TOP 20 Name, Industry FROM tenderCompany ORDER BY Name"],
}


def create_llm(settings: Settings) -> LLMInterface:
    """Create the completion client selected by configuration."""
    if settings.llm_provider == "mock":
        return MockLLM(responses=DEMO_RESPONSES)
    return OpenAICompatibleLLM(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.llm_timeout_seconds,
    )


def create_database_pool(settings: Settings) -> EnginePool:
    """Create the shared connection pool."""
    engine_kwargs = {}
    if not settings.database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.pool_size
    return create_pool(settings.database_url, **engine_kwargs)


def create_pipeline(
    settings: Settings, pool: EnginePool, llm: LLMInterface
) -> QueryPipeline:
    """Wire the pipeline components from configuration."""
    sinks: list[AuditSink] = [LogAuditSink(verbose=not settings.is_production)]
    if settings.audit_log_path:
        sinks.append(JsonlAuditSink(settings.audit_log_path))

    return QueryPipeline(
        llm=llm,
        pool=pool,
        audit=AuditLogger(sinks),
        introspector=SchemaIntrospector(
            pool.engine, schema=settings.db_schema, sample_rows=settings.sample_rows
        ),
        cache=SnapshotCache(ttl_seconds=settings.schema_cache_ttl_seconds),
        composer=PromptComposer(
            history_window=settings.history_window,
            prompt_sample_rows=settings.prompt_sample_rows,
        ),
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        degrade_on_introspection_error=settings.degrade_on_introspection_error,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json" or None,
        environment=settings.environment,
    )
    logger = get_logger(__name__)
    logger.info(
        "Starting Tender SQL API",
        version=__version__,
        environment=settings.environment,
        llm_provider=settings.llm_provider,
    )

    # Built once; requests share the pool, cache and audit sinks
    pool = create_database_pool(settings)
    llm = create_llm(settings)
    app.state.pool = pool
    app.state.llm = llm
    app.state.pipeline = create_pipeline(settings, pool, llm)

    try:
        yield
    finally:
        logger.info("Shutting down Tender SQL API")
        await llm.aclose()
        await pool.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Tender SQL API",
        description=(
            "Answers natural-language questions about tenders with "
            "schema-grounded, validated, read-only SQL."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(query_router)

    setup_metrics(app, version=__version__, environment=settings.environment)
    app.add_route("/metrics", metrics_endpoint)

    if settings.tracing_enabled:
        setup_tracing(
            app,
            version=__version__,
            environment=settings.environment,
            otlp_endpoint=settings.otlp_endpoint,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions without leaking internal text."""
        request_id = getattr(request.state, "request_id", None)
        get_logger(__name__).exception("Unhandled error", request_id=request_id)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
