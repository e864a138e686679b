"""
Unit Tests for the Audit Logger
===============================
"""

import json

import pytest

from tender_sql.audit import (
    AuditLogger,
    InMemoryAuditSink,
    JsonlAuditSink,
    _entry_hash,
    verify_audit_chain,
)
from tender_sql.errors import AuditError
from tender_sql.models import ExecutionRecord, FallbackReason, PipelineState


def _record(question: str = "biggest tender", **overrides) -> ExecutionRecord:
    record = ExecutionRecord(question=question, escaped_question=question, request_id="req-1")
    for key, value in overrides.items():
        setattr(record, key, value)
    return record


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_record_writes_entry_to_every_sink(self) -> None:
        first, second = InMemoryAuditSink(), InMemoryAuditSink()
        record = _record(
            final_sql="SELECT 1",
            result_count=1,
            success=True,
            fallback_used=True,
            fallback_reason=FallbackReason.UNSAFE_QUERY,
            execution_time_ms=12.3456,
        )
        record.enter(PipelineState.START)
        record.enter(PipelineState.DONE)

        entry = await AuditLogger([first, second]).record(record)

        assert first.entries == [entry]
        assert second.entries == [entry]
        assert entry["fallback_reason"] == "unsafe_query"
        assert entry["execution_time_ms"] == 12.35
        assert entry["states"] == ["start", "done"]
        assert record.persisted_at is not None

    @pytest.mark.asyncio
    async def test_record_is_write_once(self) -> None:
        sink = InMemoryAuditSink()
        audit = AuditLogger([sink])
        record = _record()

        await audit.record(record)
        with pytest.raises(AuditError):
            await audit.record(record)
        assert len(sink.entries) == 1

    @pytest.mark.asyncio
    async def test_default_sink_logs(self) -> None:
        entry = await AuditLogger().record(_record(success=True))
        assert entry["success"] is True


class TestJsonlAuditSink:
    """Tests for the hash-chained JSON Lines sink."""

    @pytest.mark.asyncio
    async def test_chain_verifies(self, tmp_path) -> None:
        path = tmp_path / "audit" / "queries.jsonl"
        audit = AuditLogger([JsonlAuditSink(path)])
        for question in ("one", "two", "three"):
            await audit.record(_record(question))

        entries = [json.loads(line) for line in path.read_text().splitlines()]
        assert [e["question"] for e in entries] == ["one", "two", "three"]
        assert entries[0]["previous_hash"] is None
        assert entries[1]["previous_hash"] == entries[0]["record_hash"]

        is_valid, errors = verify_audit_chain(entries)
        assert is_valid, errors

    @pytest.mark.asyncio
    async def test_chain_continues_across_instances(self, tmp_path) -> None:
        path = tmp_path / "queries.jsonl"
        await AuditLogger([JsonlAuditSink(path)]).record(_record("one"))
        await AuditLogger([JsonlAuditSink(path)]).record(_record("two"))

        entries = [json.loads(line) for line in path.read_text().splitlines()]
        assert verify_audit_chain(entries)[0]

    @pytest.mark.asyncio
    async def test_tampering_is_detected(self, tmp_path) -> None:
        path = tmp_path / "queries.jsonl"
        audit = AuditLogger([JsonlAuditSink(path)])
        await audit.record(_record("one"))
        await audit.record(_record("two"))

        entries = [json.loads(line) for line in path.read_text().splitlines()]
        entries[0]["final_sql"] = "SELECT secret FROM somewhere"

        is_valid, errors = verify_audit_chain(entries)
        assert not is_valid
        assert any("Hash mismatch" in error for error in errors)

    def test_removed_entry_breaks_chain(self) -> None:
        entries = [
            {"question": "a", "previous_hash": None},
            {"question": "b"},
            {"question": "c"},
        ]
        entries[0]["record_hash"] = _entry_hash(entries[0])
        entries[1]["previous_hash"] = entries[0]["record_hash"]
        entries[1]["record_hash"] = _entry_hash(entries[1])
        entries[2]["previous_hash"] = entries[1]["record_hash"]
        entries[2]["record_hash"] = _entry_hash(entries[2])

        is_valid, errors = verify_audit_chain([entries[0], entries[2]])
        assert not is_valid
        assert "Chain broken" in errors[0]
