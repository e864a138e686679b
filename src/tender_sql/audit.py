"""
Audit Logger
============

Write-once persistence of execution records. Every request produces
exactly one record, persisted before the response is returned.
"""

import asyncio
import hashlib
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from tender_sql.errors import AuditError
from tender_sql.models import ExecutionRecord

logger = structlog.get_logger(__name__)


def _entry_hash(entry: dict[str, Any]) -> str:
    content = json.dumps(entry, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()


class AuditSink(ABC):
    """Append-only destination for audit entries."""

    @abstractmethod
    async def write(self, entry: dict[str, Any]) -> None:
        pass


class LogAuditSink(AuditSink):
    """
    Emits audit entries through structlog.

    The info line carries only the summary fields; SQL text and error
    details are logged at debug level unless ``verbose`` is set.
    """

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose

    async def write(self, entry: dict[str, Any]) -> None:
        logger.info(
            "Query execution",
            request_id=entry.get("request_id"),
            question=entry.get("question"),
            result_count=entry.get("result_count"),
            fallback_used=entry.get("fallback_used"),
            success=entry.get("success"),
            execution_time_ms=entry.get("execution_time_ms"),
        )
        if self.verbose:
            logger.info("Query execution detail", **entry)
        else:
            logger.debug("Query execution detail", **entry)


class JsonlAuditSink(AuditSink):
    """
    Appends entries to a JSON Lines file with a sha256 hash chain.

    Each line carries ``record_hash`` and ``previous_hash`` so tampering
    or truncation can be detected with :func:`verify_audit_chain`.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()
        self._last_hash: str | None = self._read_last_hash()

    def _read_last_hash(self) -> str | None:
        if not self.path.exists():
            return None
        last_line = None
        with open(self.path, encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    last_line = line
        if last_line is None:
            return None
        return json.loads(last_line).get("record_hash")

    def _append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def write(self, entry: dict[str, Any]) -> None:
        async with self._lock:
            chained = {**entry, "previous_hash": self._last_hash}
            chained["record_hash"] = _entry_hash(chained)
            await asyncio.to_thread(self._append, json.dumps(chained, default=str))
            self._last_hash = chained["record_hash"]


class InMemoryAuditSink(AuditSink):
    """Keeps entries in a list; used by tests and demo mode."""

    def __init__(self) -> None:
        self.entries: list[dict[str, Any]] = []

    async def write(self, entry: dict[str, Any]) -> None:
        self.entries.append(entry)


class AuditLogger:
    """Fans a record out to every configured sink, exactly once."""

    def __init__(self, sinks: list[AuditSink] | None = None) -> None:
        self.sinks = sinks if sinks is not None else [LogAuditSink()]

    async def record(self, record: ExecutionRecord) -> dict[str, Any]:
        """
        Persist an execution record.

        Args:
            record: Completed record for one request

        Returns:
            The entry written to the sinks

        Raises:
            AuditError: If the record was already persisted
        """
        if record.persisted_at is not None:
            raise AuditError(
                f"Execution record {record.request_id} was already persisted"
            )
        record.persisted_at = datetime.now(timezone.utc).isoformat()
        entry = record.to_dict()
        for sink in self.sinks:
            await sink.write(dict(entry))
        return entry


def verify_audit_chain(entries: list[dict[str, Any]]) -> tuple[bool, list[str]]:
    """
    Verify the integrity of a JSONL audit chain.

    Args:
        entries: Parsed lines of a JsonlAuditSink file, in order

    Returns:
        Tuple of (is_valid, list of errors)
    """
    errors = []
    previous_hash = None

    for i, entry in enumerate(entries):
        if entry.get("previous_hash") != previous_hash:
            errors.append(
                f"Entry {i}: Chain broken - expected previous_hash "
                f"{previous_hash}, got {entry.get('previous_hash')}"
            )

        unhashed = {k: v for k, v in entry.items() if k != "record_hash"}
        if entry.get("record_hash") != _entry_hash(unhashed):
            errors.append(f"Entry {i}: Hash mismatch - entry may have been tampered with")

        previous_hash = entry.get("record_hash")

    return len(errors) == 0, errors
