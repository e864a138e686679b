"""
Pytest Fixtures
===============

Shared fixtures for tender SQL pipeline tests.
"""

import os

# Settings are read when api.main is imported; keep tests offline.
os.environ.setdefault("TENDER_SQL_TRACING_ENABLED", "false")
os.environ.setdefault("TENDER_SQL_LLM_PROVIDER", "mock")

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from tender_sql.audit import AuditLogger, InMemoryAuditSink
from tender_sql.errors import ExecutionError
from tender_sql.llm.mock import MockLLM
from tender_sql.pipeline import QueryPipeline
from tender_sql.policy import SoftDeletePolicy
from tender_sql.verifiers.safety import SafetyValidator
from tender_sql.verifiers.syntax import SyntaxGuard

TENDER_ROWS = [
    {"ProjectName": "Harbour Bridge Refit", "Value": 2500000.0, "Status": "Awarded"},
    {"ProjectName": "Clinic Supplies", "Value": 120000.0, "Status": "Pending"},
]


class FakePool:
    """
    ConnectionPool stand-in.

    Every statement is recorded; a statement containing one of the
    ``failing`` fragments raises ExecutionError with the mapped message.
    """

    def __init__(
        self,
        rows: list[dict] | None = None,
        failing: dict[str, str] | None = None,
        healthy: bool = True,
    ) -> None:
        self.rows = rows if rows is not None else TENDER_ROWS
        self.failing = failing or {}
        self.healthy = healthy
        self.statements: list[str] = []

    async def fetch_all(self, sql: str) -> list[dict]:
        self.statements.append(sql)
        for fragment, message in self.failing.items():
            if fragment in sql:
                raise ExecutionError(message, sql=sql)
        return [dict(row) for row in self.rows]

    async def ping(self) -> bool:
        return self.healthy


@pytest.fixture
def safety_validator() -> SafetyValidator:
    """Create a SafetyValidator instance."""
    return SafetyValidator()


@pytest.fixture
def syntax_guard() -> SyntaxGuard:
    """Create a SyntaxGuard instance."""
    return SyntaxGuard()


@pytest.fixture
def policy() -> SoftDeletePolicy:
    """Create the default soft-delete policy."""
    return SoftDeletePolicy()


@pytest.fixture
def fake_pool() -> FakePool:
    """Pool that answers every statement with two tender rows."""
    return FakePool()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    """Collects persisted audit entries."""
    return InMemoryAuditSink()


@pytest.fixture
def audit_logger(audit_sink: InMemoryAuditSink) -> AuditLogger:
    return AuditLogger([audit_sink])


@pytest.fixture
def mock_llm() -> MockLLM:
    """Mock model covering the common tender questions."""
    return MockLLM(
        responses={
            "biggest tender": [
                "```sql\nSELECT TOP 1 ProjectName, Value FROM tenderTender ORDER BY Value DESC\n```"
            ],
            "drop": ["DROP TABLE tenderTender"],
            "say nothing": [""],
            "employees": ["SELECT Name FROM tenderEmployee; WHERE Status=1"],
            "active tenders": [
                "SELECT ProjectName FROM tenderTender WHERE IsDeleted = 0"
            ],
            "missing column": ["SELECT NoSuchColumn FROM tenderTender"],
            "contacts": [
                "Here's the SQL query: SELECT TOP 20 FirstName, Surname FROM tenderContact"
                " ORDER BY CreatedAt DESC This query will list recent contacts."
            ],
        }
    )


@pytest.fixture
def pipeline(mock_llm: MockLLM, fake_pool: FakePool, audit_logger: AuditLogger) -> QueryPipeline:
    """Pipeline on the static schema with in-memory audit."""
    return QueryPipeline(llm=mock_llm, pool=fake_pool, audit=audit_logger)


@pytest_asyncio.fixture
async def sqlite_engine():
    """In-memory SQLite database with a small tender schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.execute(text(
            "CREATE TABLE tenderTender ("
            " TenderID INTEGER PRIMARY KEY,"
            " ProjectName VARCHAR(255) NOT NULL,"
            " Value DECIMAL(18, 2),"
            " Status VARCHAR(50),"
            " OpenDate DATE,"
            " IsDeleted BOOLEAN)"
        ))
        await conn.execute(text(
            "CREATE TABLE tenderCompany ("
            " CompanyID INTEGER PRIMARY KEY,"
            " Name VARCHAR(120))"
        ))
        await conn.execute(text(
            "INSERT INTO tenderTender (TenderID, ProjectName, Value, Status, OpenDate, IsDeleted) VALUES"
            " (1, 'Harbour Bridge Refit', 2500000, 'Awarded', '2023-03-01', 0),"
            " (2, 'Clinic Supplies', 120000, 'Pending', '2024-01-15', NULL),"
            " (3, 'Old Depot', 900000, 'Lost', '2021-06-30', 1)"
        ))
        await conn.execute(text(
            "INSERT INTO tenderCompany (CompanyID, Name) VALUES (1, 'Acme Pharma')"
        ))
    yield engine
    await engine.dispose()

