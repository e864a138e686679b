"""
Query Pipeline
==============

Orchestrates one natural-language question end to end:

1. Ground a prompt in the live schema (or the static tender schema)
2. Ask the model for a query and normalise its output
3. Validate, apply the soft-delete policy and run the syntax guard
4. Execute, switching to a rule-based fallback query when any step fails
5. Persist exactly one execution record

Requests share nothing mutable except the connection pool, the schema
cache and the audit sinks.
"""

import asyncio
import time
import uuid
from typing import Callable, Optional, Sequence

import structlog
from opentelemetry import trace

from tender_sql.audit import AuditLogger
from tender_sql.errors import (
    ExecutionError,
    FallbackExhaustedError,
    IntrospectionError,
    InvalidQuestionError,
    ModelUnavailableError,
    NoQueryGenerated,
    TenderSQLError,
    UnsafeQueryRejected,
)
from tender_sql.executor import ConnectionPool
from tender_sql.fallback import FallbackSelector
from tender_sql.llm.base import LLMInterface
from tender_sql.models import (
    ConversationTurn,
    ExecutionRecord,
    FallbackReason,
    PipelineResult,
    PipelineState,
    QueryCandidate,
    QueryStage,
)
from tender_sql.normalizer import normalize
from tender_sql.policy import SoftDeletePolicy
from tender_sql.prompt import PromptComposer, escape_user_input
from tender_sql.schema.cache import SnapshotCache
from tender_sql.schema.introspector import SchemaIntrospector
from tender_sql.verifiers.safety import SafetyValidator
from tender_sql.verifiers.syntax import SyntaxGuard

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

GENERIC_FAILURE_MESSAGE = (
    "Sorry, I couldn't answer that question. "
    "Please try rephrasing it or ask something more specific."
)


class QueryPipeline:
    """
    Translates a question into a safe query, executes it and audits the run.

    The pipeline never surfaces a raw database or model error to the
    caller. Every outcome, including terminal failure, is returned as a
    :class:`PipelineResult` whose record has already been persisted.
    """

    def __init__(
        self,
        llm: LLMInterface,
        pool: ConnectionPool,
        audit: Optional[AuditLogger] = None,
        introspector: Optional[SchemaIntrospector] = None,
        cache: Optional[SnapshotCache] = None,
        composer: Optional[PromptComposer] = None,
        validator: Optional[SafetyValidator] = None,
        policy: Optional[SoftDeletePolicy] = None,
        guard: Optional[SyntaxGuard] = None,
        fallback: Optional[FallbackSelector] = None,
        temperature: float = 0.2,
        max_tokens: int = 1000,
        degrade_on_introspection_error: bool = True,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            llm: Completion client
            pool: Connection pool used for every statement
            audit: Audit logger (defaults to structlog output only)
            introspector: Live schema source; None means static schema only
            cache: Snapshot cache wrapped around the introspector
            composer: Prompt composer
            validator: Safety validator run on the normalised text
            policy: Soft-delete policy applied after validation
            guard: Syntax guard run on the policy-applied text
            fallback: Rule-based fallback selector
            temperature: Sampling temperature for SQL generation
            max_tokens: Completion length limit
            degrade_on_introspection_error: Use the static schema when
                introspection fails instead of failing the request
            clock: Monotonic clock in seconds, for timing
        """
        self.llm = llm
        self.pool = pool
        self.audit = audit or AuditLogger()
        self.introspector = introspector
        self.cache = cache
        self.composer = composer or PromptComposer()
        self.validator = validator or SafetyValidator()
        self.policy = policy or SoftDeletePolicy()
        self.guard = guard or SyntaxGuard()
        self.fallback = fallback or FallbackSelector()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.degrade_on_introspection_error = degrade_on_introspection_error
        self._clock = clock

    async def ask(
        self,
        question: str,
        history: Sequence[ConversationTurn] | None = None,
        use_schema_introspection: bool = True,
        request_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Answer one question.

        Args:
            question: Natural-language question from the user
            history: Prior turns, most recent last
            use_schema_introspection: Ground the prompt in the live schema
            request_id: Correlation id; generated when omitted

        Returns:
            PipelineResult with rows on success, or a generic error message

        Raises:
            InvalidQuestionError: If the question is blank
        """
        if question is None or not str(question).strip():
            raise InvalidQuestionError("Question is required.")

        # The record keeps the question as asked; only the prompt sees it trimmed.
        record = ExecutionRecord(
            question=str(question),
            escaped_question=escape_user_input(str(question).strip()),
            request_id=request_id or str(uuid.uuid4()),
        )
        record.enter(PipelineState.START)
        log = logger.bind(request_id=record.request_id)
        started = self._clock()

        with tracer.start_as_current_span("tender_sql.ask") as span:
            span.set_attribute("tender_sql.request_id", record.request_id)
            try:
                result = await self._run(
                    record, history, use_schema_introspection, log
                )
            except asyncio.CancelledError:
                # Caller went away; no partial record is persisted.
                log.info("Request cancelled", state=record.state.value)
                raise
            except TenderSQLError as e:
                result = self._fail(record, str(e), log)
            except Exception as e:
                record.error = f"{type(e).__name__}: {e}"
                record.enter(PipelineState.FAILED)
                record.execution_time_ms = (self._clock() - started) * 1000
                log.exception("Pipeline crashed", state=record.state.value)
                await self.audit.record(record)
                raise

            record.execution_time_ms = (self._clock() - started) * 1000
            span.set_attribute("tender_sql.success", record.success)
            span.set_attribute("tender_sql.fallback_used", record.fallback_used)
            span.set_attribute("tender_sql.result_count", record.result_count)
            await self.audit.record(record)

        return result

    async def _run(
        self,
        record: ExecutionRecord,
        history: Sequence[ConversationTurn] | None,
        use_schema_introspection: bool,
        log,
    ) -> PipelineResult:
        prompt = await self._build_prompt(record, history, use_schema_introspection, log)
        record.enter(PipelineState.PROMPTED)

        sql: Optional[str] = None
        reason: Optional[FallbackReason] = None
        try:
            with tracer.start_as_current_span("tender_sql.model_call"):
                response = await self.llm.complete(
                    prompt, temperature=self.temperature, max_tokens=self.max_tokens
                )
            record.enter(PipelineState.MODEL_CALLED)
            record.generated_sql = response.content
            sql = self._translate(record, response.content).final_sql
        except ModelUnavailableError as e:
            record.enter(PipelineState.MODEL_FAILED)
            reason = FallbackReason.MODEL_UNAVAILABLE
            self._note(record, reason, str(e), log)
        except NoQueryGenerated as e:
            reason = FallbackReason.NO_QUERY_GENERATED
            self._note(record, reason, str(e), log)
        except UnsafeQueryRejected as e:
            if e.result.verifier_name == self.guard.name:
                reason = FallbackReason.BAD_SYNTAX
            else:
                reason = FallbackReason.UNSAFE_QUERY
            self._note(record, reason, str(e), log)

        if sql is None:
            rows = await self._execute_fallback(record, reason, log)
        else:
            rows = await self._execute_primary(record, sql, log)

        record.result_count = len(rows)
        record.success = True
        record.enter(PipelineState.DONE)
        log.info(
            "Question answered",
            result_count=record.result_count,
            fallback_used=record.fallback_used,
        )
        return PipelineResult(
            success=True,
            question=record.question,
            query=record.final_sql,
            rows=rows,
            fallback_used=record.fallback_used,
            record=record,
        )

    async def _build_prompt(
        self,
        record: ExecutionRecord,
        history: Sequence[ConversationTurn] | None,
        use_schema_introspection: bool,
        log,
    ) -> str:
        if use_schema_introspection and self.introspector is not None:
            try:
                with tracer.start_as_current_span("tender_sql.introspect"):
                    if self.cache is not None:
                        snapshot = await self.cache.get_or_load(
                            self.introspector.introspect
                        )
                    else:
                        snapshot = await self.introspector.introspect()
                return self.composer.compose(
                    record.escaped_question, snapshot, history
                )
            except IntrospectionError as e:
                if not self.degrade_on_introspection_error:
                    raise
                record.recovered_errors.append(f"introspection: {e}")
                log.warning("Introspection failed, using static schema", error=str(e))
        return self.composer.compose_static(record.escaped_question, history)

    def _translate(self, record: ExecutionRecord, raw: str) -> QueryCandidate:
        """Carry raw model output through every stage up to FINAL."""
        normalized = normalize(raw)
        record.cleaned_sql = normalized
        if not normalized:
            record.enter(PipelineState.EMPTY)
            raise NoQueryGenerated("Model output contained no query")
        record.enter(PipelineState.NORMALIZED)
        candidate = QueryCandidate(raw_model_output=raw, normalized_text=normalized)

        result = self.validator.verify(candidate.text)
        if not result.passed:
            record.enter(PipelineState.REJECTED)
            raise UnsafeQueryRejected(result)
        candidate.advance(QueryStage.VALIDATED)
        record.enter(PipelineState.VALIDATED)

        candidate.advance(QueryStage.POLICY_APPLIED, self.policy.inject(candidate.text))
        record.enter(PipelineState.POLICY_APPLIED)

        result = self.guard.verify(candidate.text)
        if not result.passed:
            record.enter(PipelineState.BAD_SYNTAX)
            raise UnsafeQueryRejected(result)
        candidate.advance(QueryStage.SYNTAX_CHECKED)
        record.enter(PipelineState.SYNTAX_CHECKED)

        candidate.advance(QueryStage.FINAL)
        return candidate

    async def _execute_primary(
        self, record: ExecutionRecord, sql: str, log
    ) -> list[dict]:
        record.enter(PipelineState.EXECUTING)
        record.final_sql = sql
        try:
            return await self._execute(sql)
        except ExecutionError as e:
            record.enter(PipelineState.EXEC_ERROR)
            reason = FallbackReason.EXECUTION_ERROR
            self._note(record, reason, str(e), log)
            return await self._execute_fallback(record, reason, log)

    async def _execute_fallback(
        self, record: ExecutionRecord, reason: FallbackReason, log
    ) -> list[dict]:
        rule = self.fallback.match(record.question)
        sql = rule.render(record.question)
        record.enter(PipelineState.FALLBACK)
        record.fallback_used = True
        record.fallback_reason = reason
        record.final_sql = sql
        log.info("Using fallback query", rule=rule.name, reason=reason.value)

        record.enter(PipelineState.FALLBACK_EXECUTING)
        try:
            return await self._execute(sql)
        except ExecutionError as e:
            raise FallbackExhaustedError(str(e)) from e

    async def _execute(self, sql: str) -> list[dict]:
        with tracer.start_as_current_span("tender_sql.execute") as span:
            rows = await self.pool.fetch_all(sql)
            span.set_attribute("tender_sql.rows", len(rows))
            return rows

    def _note(
        self, record: ExecutionRecord, reason: FallbackReason, message: str, log
    ) -> None:
        record.recovered_errors.append(f"{reason.value}: {message}")
        log.warning("Primary query abandoned", reason=reason.value, error=message)

    def _fail(self, record: ExecutionRecord, message: str, log) -> PipelineResult:
        record.success = False
        record.error = message
        record.enter(PipelineState.FAILED)
        log.error("Question could not be answered", error=message)
        return PipelineResult(
            success=False,
            question=record.question,
            query=None,
            rows=[],
            fallback_used=record.fallback_used,
            record=record,
            error=GENERIC_FAILURE_MESSAGE,
        )
