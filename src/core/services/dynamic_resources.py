"""Reconciliation of variable-cardinality collections.

Per cycle and per selected category:
1. extract the collection and key its items;
2. on a structural change (first detection, different size, unknown key)
   adopt the new key set, write the count leaf and create missing sub-trees;
3. refresh values, only for keys of the adopted set;
4. sweep: every previously tracked key that is gone loses its whole sub-tree.

A removed key that comes back later is created again from scratch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from loguru import logger

from core.domain.models import StateCommon, ValueType
from core.domain.resources import CATEGORIES, ResourceCategory
from core.services.object_tree import ObjectTreeManager
from core.services.state_sync import StateSynchronizer, evaluate_mapping

COUNT_COMMON = StateCommon(type=ValueType.NUMBER, role="value")


@dataclass
class CategoryState:
    """Tracking state of one category for the running session."""

    detected: bool = False
    keys: frozenset[str] = frozenset()

    def reset(self) -> None:
        self.detected = False
        self.keys = frozenset()

    def is_structural_change(self, current: frozenset[str]) -> bool:
        if not self.detected:
            return True
        if len(current) != len(self.keys):
            return True
        return not current <= self.keys


class DynamicResourceReconciler:
    def __init__(
        self,
        synchronizer: StateSynchronizer,
        object_tree: ObjectTreeManager,
        categories: Iterable[ResourceCategory] = CATEGORIES,
    ) -> None:
        self._synchronizer = synchronizer
        self._object_tree = object_tree
        self._categories = tuple(categories)
        self._states: dict[str, CategoryState] = {category.name: CategoryState() for category in self._categories}

    @property
    def states(self) -> Mapping[str, CategoryState]:
        return self._states

    def reset_tracking(self, selection: Iterable[str]) -> None:
        """Forget every category whose domain left the selection."""

        selected = set(selection)
        for category in self._categories:
            state = self._states[category.name]
            if category.domain_id not in selected and (state.detected or state.keys):
                logger.debug(f"Category {category.name} deselected, clearing its tracking")
                state.reset()

    async def reconcile(self, data: dict[str, Any], selection: Iterable[str]) -> None:
        selected = set(selection)
        for category in self._categories:
            if category.domain_id in selected:
                await self.reconcile_category(category, data)

    async def reconcile_category(self, category: ResourceCategory, data: dict[str, Any]) -> None:
        items = category.extract(data)
        if items is None:
            logger.debug(f"Category {category.name} not answered, keeping tracked resources")
            return

        keyed = category.keyed_items(items)
        current = frozenset(keyed)
        state = self._states[category.name]

        if state.is_structural_change(current):
            self._log_change(category, state, current)
            state.detected = True
            state.keys = current
            await self._synchronizer.write_state(category.count_id, COUNT_COMMON, len(current))
            for key in sorted(keyed):
                await self._ensure_instance(category, key)

        for key in sorted(keyed):
            if key in state.keys:
                await self._update_instance(category, key, keyed[key])

        await self._object_tree.handle_dynamic_resources(category, current)

    async def _ensure_instance(self, category: ResourceCategory, key: str) -> None:
        prefix = category.instance_prefix(key)
        for leaf in category.leaves:
            await self._synchronizer.ensure_state(f"{prefix}.{leaf.id}", leaf.common)

    async def _update_instance(self, category: ResourceCategory, key: str, item: dict[str, Any]) -> None:
        prefix = category.instance_prefix(key)
        for leaf in category.leaves:
            await self._synchronizer.update_state(f"{prefix}.{leaf.id}", evaluate_mapping(leaf, item))

    @staticmethod
    def _log_change(category: ResourceCategory, state: CategoryState, current: frozenset[str]) -> None:
        if not state.detected:
            logger.info(f"Detected {len(current)} {category.name} resources")
            return
        added = sorted(current - state.keys)
        gone = sorted(state.keys - current)
        logger.info(
            f"{category.name} resources changed: {len(state.keys)} -> {len(current)}"
            + (f", added {', '.join(added)}" if added else "")
            + (f", removed {', '.join(gone)}" if gone else "")
        )
