"""Fixed-field state mapping.

Writes the values of one poll response into the state tree:
- creating a backing object is kept apart from writing its value;
- every parent segment of an id exists as a container before the leaf;
- a domain whose root is missing from the response is skipped for the cycle,
  last known values stay in place.
"""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger

from core.domain.models import (
    DomainDefinition,
    ObjectCommon,
    ObjectKind,
    StateCommon,
    StateMapping,
    StoredObject,
)
from core.domain.transforms import resolve_value
from core.interfaces.state_store import StateStore
from core.services.object_tree import ObjectTreeManager, expected_container_label, id_prefixes


def evaluate_mapping(mapping: StateMapping, source: Any) -> Any:
    """Resolve `mapping.path` inside `source` and apply its transform.

    An empty path hands `source` itself to the transform.
    """

    raw = resolve_value(source, mapping.path) if mapping.path else source
    if mapping.transform is None:
        return raw
    return mapping.transform(raw)


def leaf_object(object_id: str, common: StateCommon) -> StoredObject:
    return StoredObject(
        kind=ObjectKind.LEAF,
        common=ObjectCommon(name=object_id, role=common.role, type=common.type, unit=common.unit),
    )


def container_object(object_id: str) -> StoredObject:
    return StoredObject(kind=ObjectKind.CONTAINER, common=ObjectCommon(name=expected_container_label(object_id)))


class StateSynchronizer:
    def __init__(self, store: StateStore, object_tree: ObjectTreeManager | None = None) -> None:
        self._store = store
        self._object_tree = object_tree

    async def initialize_static_states(self, definitions: Iterable[DomainDefinition]) -> int:
        """Create every mapped state of `definitions`; new ones start as None.

        Returns how many states were created.
        """

        created = 0
        for definition in definitions:
            for mapping in definition.states:
                if await self.ensure_state(mapping.id, mapping.common):
                    created += 1
        if created:
            logger.debug(f"Created {created} static states")
        return created

    async def apply_definition(self, definition: DomainDefinition, data: dict[str, Any]) -> bool:
        """Write the states of `definition` from `data`.

        Returns False when the definition was skipped because a root it needs
        is not in the response.
        """

        roots = definition.roots
        if not roots or any(root not in data for root in roots):
            logger.debug(f"Domain {definition.id} not answered, keeping last known values")
            return False

        for mapping in definition.states:
            await self.write_state(mapping.id, mapping.common, evaluate_mapping(mapping, data))
        return True

    async def write_state(self, object_id: str, common: StateCommon, value: Any) -> None:
        """Create or refresh the leaf metadata, then write `value`."""

        await self.ensure_container_hierarchy(object_id)
        await self._store.set_object(object_id, leaf_object(object_id, common))
        await self._store.set_state(object_id, value)
        self._mark(object_id, ObjectKind.LEAF)

    async def ensure_state(self, object_id: str, common: StateCommon) -> bool:
        """Create the leaf when missing (value None). True when it was created."""

        await self.ensure_container_hierarchy(object_id)
        created = await self._store.set_object_not_exists(object_id, leaf_object(object_id, common))
        if created:
            await self._store.set_state(object_id, None)
        self._mark(object_id, ObjectKind.LEAF)
        return created

    async def update_state(self, object_id: str, value: Any) -> None:
        await self._store.set_state(object_id, value)
        self._mark(object_id, ObjectKind.LEAF)

    async def ensure_container_hierarchy(self, object_id: str) -> None:
        for container_id in id_prefixes(object_id)[:-1]:
            await self._store.set_object_not_exists(container_id, container_object(container_id))
            self._mark(container_id, ObjectKind.CONTAINER)

    def _mark(self, object_id: str, kind: ObjectKind) -> None:
        if self._object_tree is not None:
            self._object_tree.mark_seen(object_id, kind)
