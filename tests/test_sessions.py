"""Session lifecycle and cleanup."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from models.session import SessionActivity, create_session, is_active, should_cleanup

NOW = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def test_session_helpers():
    session = create_session(1, "tok", "sid", expiration_hours=24, metadata={"deviceType": "mobile"}, now=NOW)

    assert session.session_meta == {"loginMethod": "password", "deviceType": "mobile"}
    assert is_active(session, NOW + timedelta(hours=23))
    assert not is_active(session, NOW + timedelta(hours=25))
    assert not should_cleanup(session, now=NOW + timedelta(hours=1))
    assert should_cleanup(session, inactive_days=7, now=NOW + timedelta(days=8))

    session.is_active = False
    assert should_cleanup(session, now=NOW)


async def test_start_and_end_session_log_activities(sessions, database):
    await sessions.start_session(1, "tok", "sid-1", user_agent="pytest", ip_address="127.0.0.1")
    assert await sessions.is_session_active("sid-1")

    assert await sessions.end_session("sid-1")
    assert not await sessions.is_session_active("sid-1")
    assert not await sessions.end_session("unknown")

    async with database.get_session() as session:
        result = await session.execute(select(SessionActivity.action).order_by(SessionActivity.id))
        assert result.scalars().all() == ["login", "logout"]


async def test_session_expires(sessions, clock):
    await sessions.start_session(1, "tok", "sid-1")
    clock.advance(hours=25)
    assert not await sessions.is_session_active("sid-1")


async def test_cleanup_removes_stale_sessions(sessions, clock):
    await sessions.start_session(1, "tok", "live")
    await sessions.start_session(2, "tok", "closed")
    await sessions.end_session("closed")

    assert await sessions.count_inactive() == 1
    assert await sessions.cleanup() == 1
    assert await sessions.get_session("live") is not None

    clock.advance(hours=30)
    assert await sessions.cleanup() == 1
    assert await sessions.get_session("live") is None


async def test_touch_refreshes_last_activity(sessions, clock):
    await sessions.start_session(1, "tok", "sid-1")
    clock.advance(minutes=10)

    assert await sessions.touch("sid-1")
    row = await sessions.get_session("sid-1")
    assert row.last_activity.replace(tzinfo=timezone.utc) == clock.now
    assert not await sessions.touch("missing")


async def test_record_activity_rejects_unknown_action(sessions):
    activity = await sessions.record_activity("sid-1", 1, "workflow_run", {"run": "r1"})
    assert activity.details == {"run": "r1"}

    with pytest.raises(ValueError):
        await sessions.record_activity("sid-1", 1, "teleport")
