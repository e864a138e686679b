"""
Tender SQL Assistant
====================

Natural-language questions over the tender database, answered with
schema-grounded, validated and audited read-only SQL.
"""

from tender_sql.models import (
    ConversationTurn,
    ExecutionRecord,
    FallbackReason,
    LLMResponse,
    PipelineResult,
    PipelineState,
    QueryCandidate,
    QueryStage,
    SchemaSnapshot,
    TableDescriptor,
    VerificationResult,
    VerificationStatus,
)
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
from tender_sql.audit import AuditLogger, InMemoryAuditSink, JsonlAuditSink, LogAuditSink
from tender_sql.executor import ConnectionPool, EnginePool, create_pool
from tender_sql.fallback import FallbackSelector, select_fallback
from tender_sql.llm import LLMInterface, MockLLM, OpenAICompatibleLLM
from tender_sql.normalizer import normalize
from tender_sql.pipeline import GENERIC_FAILURE_MESSAGE, QueryPipeline
from tender_sql.policy import SoftDeletePolicy, inject_soft_delete_filter
from tender_sql.prompt import PromptComposer, escape_user_input
from tender_sql.schema import SchemaIntrospector, SnapshotCache, static_snapshot
from tender_sql.verifiers import SafetyValidator, SyntaxGuard

__version__ = "0.1.0"

__all__ = [
    # Models
    "ConversationTurn",
    "ExecutionRecord",
    "FallbackReason",
    "LLMResponse",
    "PipelineResult",
    "PipelineState",
    "QueryCandidate",
    "QueryStage",
    "SchemaSnapshot",
    "TableDescriptor",
    "VerificationResult",
    "VerificationStatus",
    # Errors
    "TenderSQLError",
    "InvalidQuestionError",
    "IntrospectionError",
    "ModelUnavailableError",
    "NoQueryGenerated",
    "UnsafeQueryRejected",
    "ExecutionError",
    "FallbackExhaustedError",
    # Pipeline
    "QueryPipeline",
    "GENERIC_FAILURE_MESSAGE",
    "PromptComposer",
    "escape_user_input",
    "normalize",
    "SafetyValidator",
    "SoftDeletePolicy",
    "inject_soft_delete_filter",
    "SyntaxGuard",
    "FallbackSelector",
    "select_fallback",
    # Schema
    "SchemaIntrospector",
    "SnapshotCache",
    "static_snapshot",
    # Infrastructure
    "ConnectionPool",
    "EnginePool",
    "create_pool",
    "AuditLogger",
    "LogAuditSink",
    "JsonlAuditSink",
    "InMemoryAuditSink",
    # LLM
    "LLMInterface",
    "MockLLM",
    "OpenAICompatibleLLM",
]
