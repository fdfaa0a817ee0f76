import asyncio

import pytest

from mission_control.attendance.manager import AttendanceSessionManager
from mission_control.attendance.models import AttendanceRecord
from mission_control.attendance.sessions import SessionRegistry
from mission_control.realtime.auth import ConnectionIdentity
from mission_control.realtime.events.attendance import AUTHENTICATED_ROOM
from mission_control.realtime.messages import SubmitOtp

pytestmark = [pytest.mark.asyncio, pytest.mark.django_db(transaction=True)]


def identity_for(user) -> ConnectionIdentity:
    role = "admin" if user.is_admin else "member"
    return ConnectionIdentity(user_id=user.pk, name=user.display_name, role=role)


def connect_all(server, *sids):
    server.connected.update(sids)
    server.room_members[AUTHENTICATED_ROOM].update(sids)


async def test_start_session_broadcasts_code(manager, fake_server, admin_user):
    connect_all(fake_server, "admin-sid", "member-sid")

    session = await manager.start_session("admin-sid", identity_for(admin_user))

    assert session is not None
    assert session.timer is not None
    started = fake_server.received("member-sid", "attendance-started")
    assert [d.data for d in started] == [
        {"sessionId": session.session_id, "windowSeconds": 60, "code": session.code}
    ]
    generated = fake_server.received("admin-sid", "otp-generated")
    assert generated[0].data["code"] == session.code
    assert not fake_server.received("member-sid", "otp-generated")


async def test_start_session_skips_unauthenticated_connections(
    manager, fake_server, admin_user
):
    connect_all(fake_server, "admin-sid", "member-sid")
    fake_server.connected.add("pending-sid")

    await manager.start_session("admin-sid", identity_for(admin_user))

    assert fake_server.received("member-sid", "attendance-started")
    assert fake_server.received("pending-sid") == []


async def test_start_session_without_broadcast_keeps_code_private(
    fake_server, registry, admin_user
):
    manager = AttendanceSessionManager(fake_server, registry, broadcast_code=False)
    connect_all(fake_server, "admin-sid", "member-sid")
    try:
        session = await manager.start_session("admin-sid", identity_for(admin_user))
    finally:
        manager.shutdown()

    started = fake_server.received("member-sid", "attendance-started")[0].data
    assert "code" not in started
    assert started["sessionId"] == session.session_id
    assert fake_server.received("admin-sid", "otp-generated")[0].data["code"] == session.code


async def test_member_cannot_start_session(manager, fake_server, user):
    connect_all(fake_server, "member-sid", "other-sid")

    session = await manager.start_session("member-sid", identity_for(user))

    assert session is None
    failed = fake_server.received("member-sid", "attendance-session-failed")
    assert failed[0].data == {"message": "Only admins can start an attendance session."}
    assert not fake_server.received("other-sid")
    assert len(manager.registry) == 0


async def test_second_start_while_active_is_rejected(manager, fake_server, admin_user):
    connect_all(fake_server, "admin-sid")
    first = await manager.start_session("admin-sid", identity_for(admin_user))
    second = await manager.start_session("admin-sid", identity_for(admin_user))

    assert first is not None
    assert second is None
    failed = fake_server.received("admin-sid", "attendance-session-failed")
    assert failed[0].data["message"] == "An attendance session is already running."


async def test_code_scenario_success_then_already_marked_then_expired(
    manager, fake_server, registry, clock, admin_user, user, other_user
):
    connect_all(fake_server, "admin-sid", "member-sid", "other-sid")
    session = await manager.start_session("admin-sid", identity_for(admin_user))
    session.code = "4821"

    clock.advance(30)
    ok = await manager.submit_code(
        "member-sid",
        identity_for(user),
        SubmitOtp(session_id=session.session_id, code="4821"),
    )
    assert ok is True
    assert fake_server.received("member-sid", "attendance-success")[0].data == {
        "message": "Attendance marked successfully."
    }
    record = await AttendanceRecord.objects.aget(user_id=user.pk)
    assert record.status == AttendanceRecord.Status.PRESENT
    assert record.session_id == session.session_id

    clock.advance(10)
    again = await manager.submit_code(
        "member-sid",
        identity_for(user),
        SubmitOtp(session_id=session.session_id, code="4821"),
    )
    assert again is False
    assert fake_server.received("member-sid", "attendance-failed")[-1].data == {
        "message": "Attendance already marked today."
    }

    clock.advance(21)
    late = await manager.submit_code(
        "other-sid",
        identity_for(other_user),
        SubmitOtp(session_id=session.session_id, code="4821"),
    )
    assert late is False
    assert fake_server.received("other-sid", "attendance-failed")[-1].data == {
        "message": "Attendance session expired or not found."
    }
    # results are never broadcast
    assert not fake_server.received("admin-sid", "attendance-success")
    assert not fake_server.received("admin-sid", "attendance-failed")
    assert await AttendanceRecord.objects.acount() == 1


async def test_wrong_code_is_rejected(manager, fake_server, admin_user, user):
    connect_all(fake_server, "admin-sid", "member-sid")
    session = await manager.start_session("admin-sid", identity_for(admin_user))
    session.code = "4821"

    ok = await manager.submit_code(
        "member-sid",
        identity_for(user),
        SubmitOtp(session_id=session.session_id, code="1234"),
    )

    assert ok is False
    assert fake_server.received("member-sid", "attendance-failed")[0].data == {
        "message": "Incorrect code, try again."
    }
    assert await AttendanceRecord.objects.acount() == 0


async def test_submission_for_someone_else_is_rejected(
    manager, fake_server, admin_user, user, other_user
):
    connect_all(fake_server, "admin-sid", "member-sid")
    session = await manager.start_session("admin-sid", identity_for(admin_user))

    ok = await manager.submit_code(
        "member-sid",
        identity_for(user),
        SubmitOtp(session_id=session.session_id, code=session.code, user_id=other_user.pk),
    )

    assert ok is False
    assert await AttendanceRecord.objects.acount() == 0


async def test_concurrent_submissions_mark_once(manager, fake_server, admin_user, user):
    connect_all(fake_server, "admin-sid", "tab-1", "tab-2")
    session = await manager.start_session("admin-sid", identity_for(admin_user))
    event = SubmitOtp(session_id=session.session_id, code=session.code)

    results = await asyncio.gather(
        manager.submit_code("tab-1", identity_for(user), event),
        manager.submit_code("tab-2", identity_for(user), event),
    )

    assert sorted(results) == [False, True]
    assert await AttendanceRecord.objects.filter(user_id=user.pk).acount() == 1


async def test_persistence_failure_is_generic(
    manager, fake_server, admin_user, user, monkeypatch
):
    connect_all(fake_server, "admin-sid", "member-sid")
    session = await manager.start_session("admin-sid", identity_for(admin_user))

    def broken(*args, **kwargs):
        msg = "database is locked"
        raise RuntimeError(msg)

    monkeypatch.setattr("mission_control.attendance.services.mark_present", broken)
    ok = await manager.submit_code(
        "member-sid",
        identity_for(user),
        SubmitOtp(session_id=session.session_id, code=session.code),
    )

    assert ok is False
    assert fake_server.received("member-sid", "attendance-failed")[0].data == {
        "message": "Internal error. Try again."
    }


async def test_active_session_recovery(manager, fake_server, admin_user, user):
    connect_all(fake_server, "admin-sid", "member-sid")

    assert await manager.active_session("member-sid", identity_for(user)) is False
    assert not fake_server.received("member-sid", "active-session-data")

    session = await manager.start_session("admin-sid", identity_for(admin_user))
    assert await manager.active_session("member-sid", identity_for(user)) is True
    data = fake_server.received("member-sid", "active-session-data")[0].data
    assert data == {
        "sessionId": session.session_id,
        "expiresAt": session.expires_at.isoformat(),
        "code": session.code,
    }


async def test_active_session_hides_code_from_members_when_not_broadcast(
    fake_server, registry, admin_user, user
):
    manager = AttendanceSessionManager(fake_server, registry, broadcast_code=False)
    connect_all(fake_server, "admin-sid", "member-sid")
    try:
        await manager.start_session("admin-sid", identity_for(admin_user))
        await manager.active_session("member-sid", identity_for(user))
        await manager.active_session("admin-sid", identity_for(admin_user))
    finally:
        manager.shutdown()

    assert "code" not in fake_server.received("member-sid", "active-session-data")[0].data
    assert "code" in fake_server.received("admin-sid", "active-session-data")[0].data


async def test_expiry_timer_marks_absentees(fake_server, admin_user, user, other_user):
    manager = AttendanceSessionManager(
        fake_server,
        SessionRegistry(window_seconds=0),
        broadcast_code=True,
    )
    connect_all(fake_server, "admin-sid", "member-sid")
    try:
        session = await manager.start_session("admin-sid", identity_for(admin_user))
        assert session is not None
        await asyncio.sleep(0.05)
        await manager.drain()
    finally:
        manager.shutdown()

    absent = AttendanceRecord.objects.filter(status=AttendanceRecord.Status.ABSENT)
    assert await absent.acount() == 2
    assert not await AttendanceRecord.objects.filter(user_id=admin_user.pk).aexists()
    assert len(manager.registry) == 0


async def test_sweep_after_expiry_leaves_present_records(
    manager, fake_server, admin_user, user, other_user
):
    connect_all(fake_server, "admin-sid", "member-sid")
    session = await manager.start_session("admin-sid", identity_for(admin_user))
    await manager.submit_code(
        "member-sid",
        identity_for(user),
        SubmitOtp(session_id=session.session_id, code=session.code),
    )

    result = await manager.mark_absentees(session)
    rerun = await manager.mark_absentees(session)

    assert result.created == 1
    assert rerun.created == 0
    present = await AttendanceRecord.objects.aget(user_id=user.pk)
    assert present.status == AttendanceRecord.Status.PRESENT
    absent = await AttendanceRecord.objects.aget(user_id=other_user.pk)
    assert absent.status == AttendanceRecord.Status.ABSENT


async def test_shutdown_cancels_pending_timer(manager, fake_server, admin_user):
    connect_all(fake_server, "admin-sid")
    session = await manager.start_session("admin-sid", identity_for(admin_user))
    timer = session.timer

    manager.shutdown()

    assert timer.cancelled()
    assert session.timer is None
