"""Tests for PresenceHeartbeat."""

import asyncio
import logging
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio

from page_telemetry.application import ActivityTracker, IdentityStore, PresenceHeartbeat
from tests.conftest import FakeClock, RecordingSink

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def _make_heartbeat(
    sink: RecordingSink,
    activity: ActivityTracker,
    identity: IdentityStore,
    ping_interval_seconds: float = 20.0,
    enabled: bool = True,
) -> PresenceHeartbeat:
    return PresenceHeartbeat(
        sink,
        activity,
        identity,
        ping_interval_seconds=ping_interval_seconds,
        enabled=enabled,
        now=lambda: FIXED_NOW,
    )


@pytest_asyncio.fixture
async def heartbeat(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> AsyncIterator[PresenceHeartbeat]:
    hb = _make_heartbeat(sink, activity, identity)
    yield hb
    hb.teardown()


@pytest.mark.asyncio
async def test_when_eligible_then_ping_upserts_active_record(
    heartbeat: PresenceHeartbeat, sink: RecordingSink, identity: IdentityStore
) -> None:
    """Given a visible, recently active page, when pinging, then an active record is upserted."""
    identity.set_user_name("Asha")

    sent = await heartbeat.send_ping()

    assert sent is True
    assert sink.count_calls("upsert", "live_users") == 1
    rows = sink.rows("live_users")
    assert len(rows) == 1
    assert rows[0]["device_id"] == identity.get_device_id()
    assert rows[0]["user_name"] == "Asha"
    assert rows[0]["is_active"] is True
    assert datetime.fromisoformat(rows[0]["last_ping"]) == FIXED_NOW


@pytest.mark.asyncio
async def test_when_tab_hidden_then_ping_is_skipped(
    heartbeat: PresenceHeartbeat, sink: RecordingSink, activity: ActivityTracker
) -> None:
    """Given a hidden tab with fresh input, when pinging, then nothing is sent."""
    activity.set_visibility(False)
    activity.record_input()

    assert await heartbeat.send_ping() is False
    assert sink.calls == []


@pytest.mark.asyncio
async def test_when_idle_past_gap_then_ping_is_skipped(
    heartbeat: PresenceHeartbeat,
    sink: RecordingSink,
    clock: FakeClock,
) -> None:
    """Given a visible tab idle for more than 10s, when pinging, then nothing is sent."""
    clock.advance(10.5)

    assert await heartbeat.send_ping() is False
    assert sink.calls == []


@pytest.mark.asyncio
async def test_repeated_pings_keep_one_row_per_device(
    heartbeat: PresenceHeartbeat, sink: RecordingSink
) -> None:
    """Given several pings, when inspecting the sink, then one row exists for the device."""
    for _ in range(3):
        await heartbeat.send_ping()

    assert sink.count_calls("upsert") == 3
    assert len(sink.rows("live_users")) == 1


@pytest.mark.asyncio
async def test_when_sink_fails_then_ping_error_is_logged_and_swallowed(
    activity: ActivityTracker, identity: IdentityStore, caplog: pytest.LogCaptureFixture
) -> None:
    """Given a failing sink, when pinging, then the error is logged and False is returned."""
    sink = RecordingSink(fail_collections={"live_users"})
    hb = _make_heartbeat(sink, activity, identity)

    with caplog.at_level(logging.ERROR):
        assert await hb.send_ping() is False

    assert "Error sending ping" in caplog.text


@pytest.mark.asyncio
async def test_when_disabled_then_start_makes_no_calls_and_no_task(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given analytics disabled, when starting and pinging, then nothing is sent or scheduled."""
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.01, enabled=False)

    await hb.start_live_tracking()
    assert await hb.send_ping() is False
    await asyncio.sleep(0.03)

    assert not hb.is_running
    assert sink.calls == []

    hb.teardown()
    assert sink.calls == []


@pytest.mark.asyncio
async def test_start_sends_immediate_ping_and_schedules_recurring(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given live tracking started, when the interval passes, then another ping is sent."""
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.05)

    await hb.start_live_tracking()
    assert sink.count_calls("upsert") == 1
    assert hb.is_running

    await asyncio.sleep(0.075)
    assert sink.count_calls("upsert") == 2
    hb.teardown()


@pytest.mark.asyncio
async def test_start_twice_keeps_single_recurring_schedule(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given start called twice, when one interval passes, then only one scheduled ping fires."""
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.05)

    await hb.start_live_tracking()
    first_task = hb._task
    await hb.start_live_tracking()
    assert hb._task is not first_task

    await asyncio.sleep(0.075)

    # Two immediate pings plus exactly one scheduled ping
    assert sink.count_calls("upsert") == 3
    assert first_task is not None and first_task.cancelled()
    hb.teardown()


@pytest.mark.asyncio
async def test_skipped_cycles_do_not_stop_the_schedule(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given a hidden tab during one tick, when it becomes visible again, then later ticks ping."""
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.05)
    await hb.start_live_tracking()

    activity.set_visibility(False)
    await asyncio.sleep(0.07)
    assert sink.count_calls("upsert") == 1

    activity.set_visibility(True)
    await asyncio.sleep(0.05)
    assert sink.count_calls("upsert") == 2
    hb.teardown()


@pytest.mark.asyncio
async def test_teardown_cancels_schedule_and_dispatches_inactive_record(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given live tracking, when tearing down, then pings stop and an inactive record is dispatched."""
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.03)
    await hb.start_live_tracking()

    hb.teardown()
    await asyncio.sleep(0.05)

    assert not hb.is_running
    assert sink.count_calls("upsert") == 1
    assert sink.count_calls("dispatch", "live_users") == 1
    collection, records, on_conflict = sink.dispatched[0]
    assert on_conflict == "device_id"
    assert records[0]["is_active"] is False
    assert sink.rows("live_users")[0]["is_active"] is False


@pytest.mark.asyncio
async def test_teardown_before_start_dispatches_nothing(
    heartbeat: PresenceHeartbeat, sink: RecordingSink
) -> None:
    """Given tracking never started, when tearing down, then nothing is sent."""
    heartbeat.teardown()

    assert sink.calls == []


@pytest.mark.asyncio
async def test_teardown_during_first_ping_prevents_recurring_schedule(
    activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given teardown while the first ping is in flight, when the ping completes, then no loop starts."""
    release = asyncio.Event()

    class BlockingSink(RecordingSink):
        async def upsert(self, collection: str, record: dict[str, Any], on_conflict: str) -> None:
            await release.wait()
            await super().upsert(collection, record, on_conflict)

    sink = BlockingSink()
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.02)

    start = asyncio.create_task(hb.start_live_tracking())
    await asyncio.sleep(0)
    hb.teardown()
    release.set()
    await start
    await asyncio.sleep(0.07)

    assert not hb.is_running
    assert sink.count_calls("upsert") == 1
    assert sink.count_calls("dispatch", "live_users") == 1
    assert sink.dispatched[0][1][0]["is_active"] is False


@pytest.mark.asyncio
async def test_start_after_teardown_does_nothing(
    sink: RecordingSink, activity: ActivityTracker, identity: IdentityStore
) -> None:
    """Given a torn-down heartbeat, when starting again, then nothing is sent or scheduled."""
    hb = _make_heartbeat(sink, activity, identity, ping_interval_seconds=0.02)
    hb.teardown()

    await hb.start_live_tracking()

    assert not hb.is_running
    assert sink.calls == []
