"""
Unit tests for AuditTrail

Tests entries are persisted in their own transaction and that a failing
write never propagates to the caller.
"""
import pytest
from sqlalchemy import select

from coursehub import database
from coursehub.models import AuditAction, AuditEntry
from coursehub.services.audit_trail import AuditTrail


@pytest.fixture
async def audit_db(tmp_path):
    database.init_engine(f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}")
    await database.create_all()
    yield database.get_session_factory()
    await database.dispose_engine()


async def test_record_persists_entry(audit_db):
    trail = AuditTrail()

    await trail.record(None, AuditAction.RATE_LIMIT_EXCEEDED, "request", None, "10.0.0.1")

    async with audit_db() as session:
        entry = (await session.execute(select(AuditEntry))).scalar_one()

    assert entry.action == "RATE_LIMIT_EXCEEDED"
    assert entry.user_id is None
    assert entry.resource_type == "request"
    assert entry.resource_id is None
    assert entry.client_address == "10.0.0.1"
    assert entry.timestamp is not None


async def test_entries_are_append_only_in_order(audit_db):
    trail = AuditTrail(session_factory=audit_db)

    await trail.record(None, AuditAction.LOGIN_FAILED, "user", None, "10.0.0.1")
    await trail.record(None, AuditAction.AUTHENTICATION_FAILED, "request", None, "10.0.0.2")

    async with audit_db() as session:
        result = await session.execute(select(AuditEntry.action).order_by(AuditEntry.id))
        actions = list(result.scalars().all())

    assert actions == ["LOGIN_FAILED", "AUTHENTICATION_FAILED"]


async def test_write_failure_is_logged_not_raised(caplog):
    def broken_factory():
        raise RuntimeError("database unavailable")

    trail = AuditTrail(session_factory=broken_factory)

    await trail.record(7, AuditAction.COURSE_CREATED, "course", 3, "10.0.0.1")

    assert "Audit log write failed" in caplog.text
    assert "COURSE_CREATED" in caplog.text


async def test_unknown_actor_violating_foreign_key_is_swallowed(audit_db):
    trail = AuditTrail()

    # user 999 does not exist; the foreign key rejects the row
    await trail.record(999, AuditAction.ACCESS_DENIED, "course", 1, "10.0.0.1")

    async with audit_db() as session:
        result = await session.execute(select(AuditEntry))
        assert result.scalars().all() == []
