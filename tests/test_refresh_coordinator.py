import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from app.application.use_cases.notifications import NotificationFeedCoordinator
from app.domain.entities import RefreshState
from app.domain.errors import SourceUnavailable
from app.infrastructure.notifications import ReadWatermarkStore
from app.utils import EPOCH
from tests.fakes import FakeLikeSource, FixedClock, T0, at, like, scenario_events, wait_until

VIEWER = "viewer-1"
NOW = at(30)


def _coordinator(source, store, **kwargs):
    kwargs.setdefault("clock", FixedClock(NOW))
    return NotificationFeedCoordinator(VIEWER, source, store, **kwargs)


def _actor_names(group):
    return [entry.actor.name for entry in group.actors]


@pytest.mark.anyio
async def test_scenario_refresh_groups_and_counts_unread(watermark_store):
    await watermark_store.set(VIEWER, T0)
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)

    snapshot = await coordinator.on_external_invalidation()

    assert source.calls == [(VIEWER, T0, 40)]
    assert [group.post_id for group in snapshot.groups] == ["P2", "P1"]
    assert _actor_names(snapshot.groups[0]) == ["Carol"]
    assert snapshot.groups[0].latest_event_at == at(3)
    assert _actor_names(snapshot.groups[1]) == ["Bob", "Alice"]
    assert snapshot.groups[1].latest_event_at == at(2)
    assert snapshot.unread_count == 3
    assert snapshot.state is RefreshState.IDLE
    assert await watermark_store.get(VIEWER) == T0


@pytest.mark.anyio
async def test_activate_fetches_since_previous_watermark_then_marks_read(watermark_store):
    await watermark_store.set(VIEWER, T0)
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)

    snapshot = await coordinator.activate()

    assert source.calls[0][1] == T0
    assert len(snapshot.groups) == 2
    assert snapshot.unread_count == 0
    assert snapshot.last_read_at == NOW
    assert snapshot.state is RefreshState.IDLE
    assert await watermark_store.get(VIEWER) == NOW


@pytest.mark.anyio
async def test_activate_with_explicit_read_time(watermark_store):
    coordinator = _coordinator(FakeLikeSource(scenario_events()), watermark_store)

    await coordinator.activate(read_time=at(2))

    assert await watermark_store.get(VIEWER) == at(2)


@pytest.mark.anyio
async def test_activate_never_moves_watermark_backwards(watermark_store):
    await watermark_store.set(VIEWER, at(10))
    coordinator = _coordinator(FakeLikeSource(), watermark_store)

    snapshot = await coordinator.activate(read_time=at(5))

    assert await watermark_store.get(VIEWER) == at(10)
    assert snapshot.last_read_at == at(10)


@pytest.mark.anyio
async def test_manual_refresh_does_not_mark_read(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)

    snapshot = await coordinator.manual_refresh()

    assert snapshot.unread_count == 3
    assert await watermark_store.get(VIEWER) == EPOCH


@pytest.mark.anyio
async def test_event_at_watermark_is_not_fetched_again(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)

    await coordinator.activate(read_time=at(3))
    snapshot = await coordinator.manual_refresh()

    assert source.calls[-1][1] == at(3)
    assert snapshot.groups == ()
    assert snapshot.unread_count == 0


@pytest.mark.anyio
async def test_activation_failure_enters_error_but_still_marks_read(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)
    await coordinator.manual_refresh()
    previous_groups = coordinator.groups

    source.error = SourceUnavailable("backend offline")
    snapshot = await coordinator.activate()

    assert snapshot.state is RefreshState.ERROR
    assert snapshot.error == "backend offline"
    assert snapshot.groups == previous_groups
    assert snapshot.unread_count == 0
    assert await watermark_store.get(VIEWER) == NOW


@pytest.mark.anyio
async def test_refresh_failure_returns_to_idle_and_keeps_badge(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)
    await coordinator.on_external_invalidation()

    source.error = SourceUnavailable("backend offline")
    snapshot = await coordinator.manual_refresh()

    assert snapshot.state is RefreshState.IDLE
    assert snapshot.error == "backend offline"
    assert snapshot.unread_count == 3
    assert len(snapshot.groups) == 2


@pytest.mark.anyio
async def test_successful_refresh_clears_previous_error(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)
    source.error = SourceUnavailable("backend offline")
    await coordinator.activate()
    assert coordinator.state is RefreshState.ERROR

    source.error = None
    snapshot = await coordinator.manual_refresh()

    assert snapshot.state is RefreshState.IDLE
    assert snapshot.error is None


@pytest.mark.anyio
async def test_fetch_timeout_is_treated_as_unavailable(watermark_store):
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    coordinator = _coordinator(source, watermark_store, timeout=0.05)

    snapshot = await coordinator.activate()

    assert snapshot.state is RefreshState.ERROR
    assert "too long" in snapshot.error


@pytest.mark.anyio
async def test_rapid_activations_share_one_fetch(watermark_store):
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    coordinator = _coordinator(source, watermark_store)

    first = asyncio.create_task(coordinator.activate())
    second = asyncio.create_task(coordinator.activate())
    await wait_until(lambda: source.calls)
    await asyncio.sleep(0.01)

    assert coordinator.is_fetching
    assert len(source.calls) == 1

    source.gate.set()
    snapshots = await asyncio.gather(first, second)

    assert len(source.calls) == 1
    assert source.max_in_flight == 1
    assert snapshots[0] == snapshots[1]


@pytest.mark.anyio
async def test_invalidation_during_fetch_queues_one_follow_up(watermark_store):
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    coordinator = _coordinator(source, watermark_store)

    activation = asyncio.create_task(coordinator.activate())
    await wait_until(lambda: source.calls)
    invalidations = [
        asyncio.create_task(coordinator.on_external_invalidation()) for _ in range(3)
    ]
    await asyncio.sleep(0.01)
    source.gate.set()
    await asyncio.gather(activation, *invalidations)

    assert len(source.calls) == 2
    assert source.max_in_flight == 1
    assert source.calls[0][1] == EPOCH
    assert source.calls[1][1] == NOW


@pytest.mark.anyio
async def test_activation_during_refresh_runs_after_it(watermark_store):
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    coordinator = _coordinator(source, watermark_store)

    refresh = asyncio.create_task(coordinator.manual_refresh())
    await wait_until(lambda: source.calls)
    activation = asyncio.create_task(coordinator.activate())
    await asyncio.sleep(0.01)

    assert await watermark_store.get(VIEWER) == EPOCH

    source.gate.set()
    await asyncio.gather(refresh, activation)

    assert len(source.calls) == 2
    assert source.max_in_flight == 1
    assert coordinator.unread_count == 0
    assert await watermark_store.get(VIEWER) == NOW


@pytest.mark.anyio
async def test_disposed_consumer_discards_fetch_result(watermark_store):
    await watermark_store.set(VIEWER, T0)
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    coordinator = _coordinator(source, watermark_store)

    refresh = asyncio.create_task(coordinator.on_external_invalidation())
    await wait_until(lambda: source.calls)
    coordinator.dispose()
    source.gate.set()
    snapshot = await refresh

    assert snapshot.groups == ()
    assert snapshot.unread_count == 0
    assert await watermark_store.get(VIEWER) == T0


@pytest.mark.anyio
async def test_dispose_drops_queued_activation(watermark_store):
    await watermark_store.set(VIEWER, T0)
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    coordinator = _coordinator(source, watermark_store)

    refresh = asyncio.create_task(coordinator.manual_refresh())
    await wait_until(lambda: source.calls)
    activation = asyncio.create_task(coordinator.activate())
    await asyncio.sleep(0.01)
    coordinator.dispose()
    source.gate.set()
    await asyncio.gather(refresh, activation)

    assert len(source.calls) == 1
    assert coordinator.unread_count == 0
    assert await watermark_store.get(VIEWER) == T0


@pytest.mark.anyio
async def test_triggers_after_dispose_do_nothing(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)
    coordinator.dispose()

    await coordinator.activate()

    assert source.calls == []
    assert await watermark_store.get(VIEWER) == EPOCH


@pytest.mark.anyio
async def test_persistence_failure_does_not_break_activation(state_sessions):
    class FailingWriteStore(ReadWatermarkStore):
        def _write(self, viewer_id, value):
            raise OperationalError("UPDATE", {}, Exception("read-only file system"))

    store = FailingWriteStore(state_sessions)
    coordinator = _coordinator(FakeLikeSource(scenario_events()), store)

    snapshot = await coordinator.activate()

    assert snapshot.state is RefreshState.IDLE
    assert snapshot.unread_count == 0
    assert snapshot.last_read_at == NOW
    assert store.peek(VIEWER) == NOW


@pytest.mark.anyio
async def test_listeners_receive_loading_then_result(watermark_store):
    coordinator = _coordinator(FakeLikeSource(scenario_events()), watermark_store)
    received = []

    async def listener(snapshot):
        received.append(snapshot)

    unsubscribe = coordinator.subscribe(listener)
    await coordinator.activate()

    assert [snapshot.state for snapshot in received] == [RefreshState.LOADING, RefreshState.IDLE]
    assert received[0].unread_count == 0
    assert len(received[-1].groups) == 2

    unsubscribe()
    await coordinator.manual_refresh()
    assert len(received) == 2


@pytest.mark.anyio
async def test_polling_refreshes_until_disposed(watermark_store):
    source = FakeLikeSource([like("e1", "P1", "alice", at(1))])
    coordinator = _coordinator(source, watermark_store)

    coordinator.start_polling(0.01)
    await wait_until(lambda: len(source.calls) >= 2)
    coordinator.dispose()
    calls = len(source.calls)
    await asyncio.sleep(0.05)

    assert len(source.calls) <= calls + 1
    assert coordinator.unread_count == 1


def test_rejects_invalid_limit(watermark_store):
    with pytest.raises(ValueError):
        NotificationFeedCoordinator(VIEWER, FakeLikeSource(), watermark_store, limit=0)


@pytest.mark.anyio
async def test_unexpected_source_error_on_refresh_returns_to_idle(watermark_store):
    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, watermark_store)
    await coordinator.manual_refresh()

    source.error = ConnectionResetError("socket reset")
    snapshot = await coordinator.manual_refresh()

    assert snapshot.state is RefreshState.IDLE
    assert snapshot.error == "Notifications could not be loaded"
    assert len(snapshot.groups) == 2
    assert snapshot.unread_count == 3


@pytest.mark.anyio
async def test_unexpected_source_error_on_activation_enters_error(watermark_store):
    source = FakeLikeSource(scenario_events())
    source.error = ConnectionResetError("socket reset")
    coordinator = _coordinator(source, watermark_store)

    snapshot = await coordinator.activate()

    assert snapshot.state is RefreshState.ERROR
    assert snapshot.error == "Notifications could not be loaded"
    assert await watermark_store.get(VIEWER) == NOW


@pytest.mark.anyio
async def test_watermark_read_failure_is_reported_not_raised(state_sessions):
    class BrokenStore(ReadWatermarkStore):
        async def get(self, viewer_id):
            raise RuntimeError("state store offline")

    source = FakeLikeSource(scenario_events())
    coordinator = _coordinator(source, BrokenStore(state_sessions))

    snapshot = await coordinator.on_external_invalidation()

    assert snapshot.state is RefreshState.IDLE
    assert snapshot.error == "Notifications could not be loaded"
    assert snapshot.hydrated is False
    assert source.calls == []

    follow_up = await coordinator.activate()
    assert follow_up.state is RefreshState.ERROR


@pytest.mark.anyio
async def test_snapshot_reports_hydration(watermark_store):
    await watermark_store.set(VIEWER, T0)
    coordinator = _coordinator(FakeLikeSource(scenario_events()), watermark_store)

    assert coordinator.snapshot().hydrated is False

    snapshot = await coordinator.manual_refresh()

    assert snapshot.hydrated is True
    assert snapshot.last_read_at == T0


@pytest.mark.anyio
async def test_first_fetch_waits_for_predecessor(watermark_store):
    source = FakeLikeSource(scenario_events())
    source.gate = asyncio.Event()
    previous = _coordinator(source, watermark_store)
    running = asyncio.create_task(previous.manual_refresh())
    await wait_until(lambda: source.calls)
    inflight = previous.inflight
    previous.dispose()

    replacement = _coordinator(source, watermark_store, predecessor=inflight)
    refresh = asyncio.create_task(replacement.manual_refresh())
    await asyncio.sleep(0.02)

    assert len(source.calls) == 1

    source.gate.set()
    await asyncio.gather(running, refresh)

    assert len(source.calls) == 2
    assert source.max_in_flight == 1
    assert replacement.unread_count == 3
