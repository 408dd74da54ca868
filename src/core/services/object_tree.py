"""Inventory of mirrored objects.

Responsibilities:
- Keep one `TrackedObject` per existing container/leaf, tagged static (comes
  from the catalog) or dynamic (belongs to one resource instance).
- Delete the sub-tree of a resource instance once its key disappears.
- Prune every object left behind by a broader, previous selection.

Deletions are best-effort: a failure on one object is logged and the batch
goes on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from loguru import logger

from core.domain.catalog import DOMAIN_DEFINITION_BY_ID, node_label
from core.domain.models import DomainDefinition, ObjectKind, StoredObject, TrackedObject
from core.domain.resources import ResourceCategory, classify_object
from core.interfaces.state_store import StateStore, StateStoreError


def id_prefixes(object_id: str) -> list[str]:
    """`a.b.c` -> [`a`, `a.b`, `a.b.c`]."""

    parts = object_id.split(".")
    return [".".join(parts[:index]) for index in range(1, len(parts) + 1)]


def is_same_or_descendant(object_id: str, ancestor: str) -> bool:
    return object_id == ancestor or object_id.startswith(f"{ancestor}.")


def expected_container_label(object_id: str) -> str:
    """Display name a container should carry.

    Resource instance containers are named after their key (`Disk 1`,
    `Core 0`, container/share/VM name); catalog nodes use their label.
    """

    owner = classify_object(object_id)
    if owner is not None:
        category, key = owner
        if object_id == category.instance_prefix(key):
            return category.container_label(key)
    return node_label(object_id) or object_id


def collect_static_ids(definitions: Iterable[DomainDefinition]) -> set[str]:
    ids: set[str] = set()
    for definition in definitions:
        ids.update(id_prefixes(definition.id))
        for mapping in definition.states:
            ids.update(id_prefixes(mapping.id))
    return ids


def owned_prefixes(selection: Iterable[str]) -> set[str]:
    """Id prefixes whose sub-trees belong to the selected domains."""

    prefixes: set[str] = set()
    for domain_id in selection:
        definition = DOMAIN_DEFINITION_BY_ID.get(domain_id)
        if definition is None:
            continue
        prefixes.add(definition.id)
        prefixes.update(mapping.id for mapping in definition.states)
        prefixes.update(definition.resource_prefixes)
    return prefixes


def is_allowed(object_id: str, prefixes: Iterable[str]) -> bool:
    """True when `object_id` lies on the path to, or under, an owned prefix."""

    for prefix in prefixes:
        if is_same_or_descendant(object_id, prefix) or prefix.startswith(f"{object_id}."):
            return True
    return False


@dataclass(frozen=True)
class TreeStatistics:
    total: int = 0
    static: int = 0
    dynamic: int = 0
    by_category: dict[str, int] = field(default_factory=dict)


class ObjectTreeManager:
    def __init__(self, store: StateStore) -> None:
        self._store = store
        self._tracked: dict[str, TrackedObject] = {}
        self._static_ids: set[str] = set()
        self._cycle = 0

    @property
    def tracked(self) -> Mapping[str, TrackedObject]:
        return self._tracked

    @property
    def cycle(self) -> int:
        return self._cycle

    async def initialize(self, definitions: Iterable[DomainDefinition]) -> None:
        """Seed the inventory from the store and repair dynamic container labels."""

        self._static_ids = collect_static_ids(definitions)
        self._tracked.clear()

        objects = await self._store.get_objects()
        for object_id, obj in objects.items():
            self._tracked[object_id] = self._new_entry(object_id, obj.kind)
        logger.debug(f"Synchronized {len(self._tracked)} existing objects")

        await self._repair_container_labels(objects)

    def begin_poll_cycle(self) -> int:
        self._cycle += 1
        return self._cycle

    def mark_seen(self, object_id: str, kind: ObjectKind) -> None:
        entry = self._tracked.get(object_id)
        if entry is None:
            self._tracked[object_id] = self._new_entry(object_id, kind)
            return
        entry.last_seen_cycle = self._cycle

    def tracked_keys(self, category: ResourceCategory) -> set[str]:
        return {
            entry.resource_key
            for entry in self._tracked.values()
            if entry.resource_category == category.name and entry.resource_key is not None
        }

    async def handle_dynamic_resources(
        self,
        category: ResourceCategory,
        current_keys: Iterable[str],
    ) -> list[str]:
        """Delete every tracked instance of `category` whose key is not current.

        Returns the keys whose sub-tree was removed.
        """

        seen = set(current_keys)
        removed: list[str] = []
        for key in sorted(self.tracked_keys(category) - seen):
            instance_id = category.instance_prefix(key)
            logger.info(f"Resource {category.name}/{key} no longer exists, removing objects")
            try:
                await self._store.del_object(instance_id, recursive=True)
            except StateStoreError as exc:
                logger.warning(f"Failed to remove objects for {instance_id}: {exc}")
                continue

            for object_id in [
                oid
                for oid, entry in self._tracked.items()
                if entry.resource_category == category.name and entry.resource_key == key
            ]:
                del self._tracked[object_id]
            removed.append(key)
        return removed

    async def cleanup_unselected_domains(self, selection: Iterable[str]) -> list[str]:
        """Recursively delete every object outside the selection's prefixes.

        Returns the ids that were deleted (sub-tree roots only).
        """

        prefixes = owned_prefixes(selection)
        objects = await self._store.get_objects()

        deleted: list[str] = []
        for object_id in sorted(objects):
            if is_allowed(object_id, prefixes):
                continue
            if any(is_same_or_descendant(object_id, root) for root in deleted):
                continue
            try:
                await self._store.del_object(object_id, recursive=True)
            except StateStoreError as exc:
                logger.warning(f"Failed to remove object {object_id}: {exc}")
                continue

            deleted.append(object_id)
            for tracked_id in [oid for oid in self._tracked if is_same_or_descendant(oid, object_id)]:
                del self._tracked[tracked_id]
            logger.debug(f"Removed object from unselected domain: {object_id}")

        if deleted:
            logger.info(f"Removed {len(deleted)} object trees outside the selected domains")
        return deleted

    def statistics(self) -> TreeStatistics:
        by_category: dict[str, int] = {}
        static = 0
        for entry in self._tracked.values():
            if entry.is_static:
                static += 1
            if entry.resource_category:
                by_category[entry.resource_category] = by_category.get(entry.resource_category, 0) + 1
        return TreeStatistics(
            total=len(self._tracked),
            static=static,
            dynamic=len(self._tracked) - static,
            by_category=dict(sorted(by_category.items())),
        )

    def _new_entry(self, object_id: str, kind: ObjectKind) -> TrackedObject:
        owner = classify_object(object_id)
        return TrackedObject(
            id=object_id,
            kind=kind,
            last_seen_cycle=self._cycle,
            is_static=object_id in self._static_ids,
            resource_category=owner[0].name if owner else None,
            resource_key=owner[1] if owner else None,
        )

    async def _repair_container_labels(self, objects: Mapping[str, StoredObject]) -> None:
        checked = 0
        updated = 0
        for object_id, obj in sorted(objects.items()):
            if obj.kind is not ObjectKind.CONTAINER:
                continue
            owner = classify_object(object_id)
            if owner is None or object_id != owner[0].instance_prefix(owner[1]):
                continue

            checked += 1
            label = expected_container_label(object_id)
            if obj.common.name == label:
                continue
            repaired = obj.model_copy(update={"common": obj.common.model_copy(update={"name": label})})
            try:
                await self._store.set_object(object_id, repaired)
            except StateStoreError as exc:
                logger.warning(f"Failed to update label of {object_id}: {exc}")
                continue
            updated += 1
            logger.debug(f"Updated container label for {object_id} to {label!r}")

        if updated:
            logger.info(f"Fixed {updated} of {checked} dynamic container labels")
        elif checked:
            logger.debug(f"All {checked} dynamic container labels are correct")
