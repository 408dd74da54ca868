"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from typing import Any, Callable

import pytest
from loguru import logger

from adapters.state_store import MemoryStateStore
from core.config import RuntimeConfig
from core.domain.models import ObjectCommon, ObjectKind, StoredObject
from core.interfaces.state_store import StateStoreError
from core.services.dynamic_resources import DynamicResourceReconciler
from core.services.object_tree import ObjectTreeManager
from core.services.state_sync import StateSynchronizer

pytest_plugins = ("pytest_asyncio",)


class FakeSource:
    """Remote data source replaying canned responses (dicts or exceptions)."""

    def __init__(self, *responses: Any, on_query: Callable[[int], None] | None = None) -> None:
        self.responses = list(responses)
        self.queries: list[str] = []
        self.closed = 0
        self.on_query = on_query

    async def query(self, text: str) -> dict[str, Any]:
        self.queries.append(text)
        if self.on_query is not None:
            self.on_query(len(self.queries))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def aclose(self) -> None:
        self.closed += 1


class SlowSource(FakeSource):
    """Fake source whose answer arrives after `delay`; `started` is set on entry."""

    def __init__(self, *responses: Any, delay: float = 0.05, on_query: Callable[[int], None] | None = None) -> None:
        super().__init__(*responses, on_query=on_query)
        self.delay = delay
        self.started = asyncio.Event()

    async def query(self, text: str) -> dict[str, Any]:
        self.started.set()
        await asyncio.sleep(self.delay)
        return await super().query(text)


class FailingDeleteStore(MemoryStateStore):
    """Memory store whose recursive deletes fail for chosen ids."""

    def __init__(self, failing: set[str]) -> None:
        super().__init__()
        self.failing = failing

    async def del_object(self, object_id: str, *, recursive: bool = False) -> None:
        if object_id in self.failing:
            raise StateStoreError(f"cannot delete {object_id}")
        await super().del_object(object_id, recursive=recursive)


def container(name: str) -> StoredObject:
    return StoredObject(kind=ObjectKind.CONTAINER, common=ObjectCommon(name=name))


def leaf(name: str) -> StoredObject:
    return StoredObject(kind=ObjectKind.LEAF, common=ObjectCommon(name=name))


async def seed(store: MemoryStateStore, values: dict[str, Any]) -> None:
    """Create leaves (with values) and every missing parent container."""

    for object_id, value in values.items():
        parts = object_id.split(".")
        for index in range(1, len(parts)):
            parent = ".".join(parts[:index])
            await store.set_object_not_exists(parent, container(parent))
        await store.set_object(object_id, leaf(object_id))
        await store.set_state(object_id, value)


def docker_payload(*names: str, **overrides: Any) -> dict[str, Any]:
    containers = []
    for name in names:
        item = {
            "id": f"id-{name}",
            "names": [f"/{name}"],
            "image": f"{name}:latest",
            "state": "RUNNING",
            "status": "Up 2 hours",
            "autoStart": True,
            "sizeRootFs": 1073741824,
        }
        item.update(overrides.get(name, {}))
        containers.append(item)
    return {"docker": {"containers": containers}}


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def object_tree(store: MemoryStateStore) -> ObjectTreeManager:
    return ObjectTreeManager(store)


@pytest.fixture
def synchronizer(store: MemoryStateStore, object_tree: ObjectTreeManager) -> StateSynchronizer:
    return StateSynchronizer(store, object_tree)


@pytest.fixture
def reconciler(synchronizer: StateSynchronizer, object_tree: ObjectTreeManager) -> DynamicResourceReconciler:
    return DynamicResourceReconciler(synchronizer, object_tree)


@pytest.fixture
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        base_url="http://tower.local/",
        api_token="secret-token",
        poll_interval_seconds=0.01,
        allow_self_signed=False,
        enabled_domains=("info.time", "docker.containers"),
    )


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Messages logged at WARNING or above while the test runs."""

    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="WARNING", format="{message}")
    yield messages
    logger.remove(handler_id)
