from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from adapters.graphql_client import GraphQLRequestError
from adapters.state_store import JsonStateStore
from conftest import FakeSource, SlowSource, docker_payload
from core.services.sync_engine import SyncEngine


def payload(*containers: str, time: str = "2024-05-01T10:00:00Z") -> dict:
    return {"info": {"time": time}, **docker_payload(*containers)}


@pytest.mark.asyncio
async def test_configure_builds_selection_and_query(runtime_config, store):
    engine = SyncEngine(runtime_config, FakeSource(payload()), store)

    selection = engine.configure()

    assert selection == {"info.time", "docker.containers"}
    assert [definition.id for definition in engine.definitions] == ["info.time", "docker.containers"]
    assert engine.query is not None
    assert "    docker {" in engine.query
    assert "    info {" in engine.query


@pytest.mark.asyncio
async def test_initialize_creates_static_states(runtime_config, store):
    engine = SyncEngine(runtime_config, FakeSource(payload()), store)

    await engine.initialize()

    assert "info.time" in store.ids()
    assert await store.get_state("info.time") is None


@pytest.mark.asyncio
async def test_poll_once_maps_fixed_and_dynamic_data(runtime_config, store):
    source = FakeSource(payload("web", "db"))
    engine = SyncEngine(runtime_config, source, store)
    await engine.initialize()

    assert await engine.poll_once() is True

    assert source.queries == [engine.query]
    assert await store.get_state("info.time") == "2024-05-01T10:00:00Z"
    assert await store.get_state("docker.containers.count") == 2
    assert await store.get_state("docker.containers.web.image") == "web:latest"
    assert engine.statistics().tree.by_category["docker"] > 0


@pytest.mark.asyncio
async def test_failed_cycle_is_logged_and_counted(runtime_config, store, log_messages):
    source = FakeSource(GraphQLRequestError("GraphQL request failed: timeout"))
    engine = SyncEngine(runtime_config, source, store)
    await engine.initialize()

    await engine.run(once=True)

    stats = engine.statistics()
    assert stats.cycles == 1
    assert stats.failures == 1
    assert stats.last_success is None
    assert "timeout" in (stats.last_error or "")
    assert any("Poll cycle failed" in message for message in log_messages)


@pytest.mark.asyncio
async def test_run_keeps_polling_after_failures_until_stopped(runtime_config, store):
    engine: SyncEngine

    def on_query(count: int) -> None:
        if count == 4:
            engine.stop()

    source = FakeSource(
        payload("web"),
        GraphQLRequestError("boom"),
        payload("web", "db"),
        payload("db"),
        on_query=on_query,
    )
    engine = SyncEngine(runtime_config, source, store)
    await engine.initialize()

    await asyncio.wait_for(engine.run(), timeout=5)

    stats = engine.statistics()
    assert stats.cycles == 4
    assert stats.failures == 1
    assert await store.get_object("docker.containers.web") is None
    assert await store.get_state("docker.containers.db.state") == "RUNNING"


@pytest.mark.asyncio
async def test_trigger_poll_outside_the_loop_runs_a_cycle(runtime_config, store):
    source = FakeSource(payload("web"))
    engine = SyncEngine(runtime_config, source, store)
    await engine.initialize()

    assert await engine.trigger_poll() is True
    assert len(source.queries) == 1


@pytest.mark.asyncio
async def test_trigger_poll_wakes_the_running_loop(runtime_config, store):
    config = replace(runtime_config, poll_interval_seconds=60)
    engine: SyncEngine

    def on_query(count: int) -> None:
        if count == 2:
            engine.stop()

    source = FakeSource(payload("web"), on_query=on_query)
    engine = SyncEngine(config, source, store)
    await engine.initialize()

    task = asyncio.create_task(engine.run())
    while not source.queries:
        await asyncio.sleep(0)
    assert await engine.trigger_poll() is True
    await asyncio.wait_for(task, timeout=5)

    assert len(source.queries) == 2


@pytest.mark.asyncio
async def test_aclose_is_best_effort(runtime_config, store, log_messages):
    source = FakeSource(payload())

    async def broken_close() -> None:
        raise RuntimeError("socket already closed")

    source.aclose = broken_close
    engine = SyncEngine(runtime_config, source, store)

    await engine.aclose()

    assert any("socket already closed" in message for message in log_messages)


@pytest.mark.asyncio
async def test_smaller_selection_prunes_previous_objects(runtime_config, store):
    first = SyncEngine(runtime_config, FakeSource(payload("web")), store)
    await first.initialize()
    await first.poll_once()
    await first.aclose()

    second = SyncEngine(runtime_config, FakeSource(payload("web")), store)
    second.configure(["info.time"])
    await second.initialize()

    assert store.ids() == ["info", "info.time"]
    assert await store.get_state("info.time") == "2024-05-01T10:00:00Z"


@pytest.mark.asyncio
async def test_reconfigure_resets_deselected_categories(runtime_config, store):
    engine = SyncEngine(runtime_config, FakeSource(payload("web")), store)
    await engine.initialize()
    await engine.poll_once()
    assert engine.reconciler.states["docker"].detected is True

    engine.configure(["info"])

    assert engine.reconciler.states["docker"].detected is False
    assert engine.selection == {"info.time", "info.os"}


@pytest.mark.asyncio
async def test_stop_lets_the_running_cycle_finish_and_flush(runtime_config, tmp_path):
    path = tmp_path / "state.json"
    source = SlowSource(payload("web"))
    engine = SyncEngine(runtime_config, source, JsonStateStore(path))
    await engine.initialize()

    task = asyncio.create_task(engine.run())
    await source.started.wait()
    engine.stop()
    await asyncio.wait_for(task, timeout=5)

    stats = engine.statistics()
    assert stats.cycles == 1
    assert stats.failures == 0
    persisted = JsonStateStore.open(path)
    assert await persisted.get_state("info.time") == "2024-05-01T10:00:00Z"
    assert await persisted.get_state("docker.containers.web.state") == "RUNNING"


@pytest.mark.asyncio
async def test_stop_before_run_skips_polling(runtime_config, store):
    source = FakeSource(payload())
    engine = SyncEngine(runtime_config, source, store)
    await engine.initialize()

    engine.stop()
    await asyncio.wait_for(engine.run(), timeout=5)

    assert source.queries == []
    assert engine.statistics().cycles == 0
