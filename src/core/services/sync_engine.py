"""Poll loop orchestration.

Why:
- Ties selection, query plan, state mapping and reconciliation into one
  session with one remote source and one state store.
- Cycles never overlap: the wait before the next cycle starts only after the
  current one finished, error path included.

Flow per cycle: fetch -> reconcile dynamic categories -> apply definitions
-> flush.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from loguru import logger

from core.config import DEFAULT_POLL_INTERVAL_SECONDS, RuntimeConfig
from core.domain.models import DomainDefinition
from core.interfaces.data_source import RemoteDataSource
from core.interfaces.state_store import StateStore
from core.services.dynamic_resources import DynamicResourceReconciler
from core.services.object_tree import ObjectTreeManager, TreeStatistics
from core.services.query_plan import build_query
from core.services.selection import definitions_for, expand_selection, normalize_selection
from core.services.state_sync import StateSynchronizer

RESPONSE_LOG_LIMIT = 3000
CLOSE_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class EngineStatistics:
    cycles: int
    failures: int
    last_success: datetime | None
    last_error: str | None
    tree: TreeStatistics


def _truncate(text: str, limit: int = RESPONSE_LOG_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... ({len(text) - limit} more chars)"


class SyncEngine:
    """One mirroring session."""

    def __init__(
        self,
        config: RuntimeConfig,
        source: RemoteDataSource,
        store: StateStore,
    ) -> None:
        self._config = config
        self._source = source
        self._store = store

        self._object_tree = ObjectTreeManager(store)
        self._synchronizer = StateSynchronizer(store, self._object_tree)
        self._reconciler = DynamicResourceReconciler(self._synchronizer, self._object_tree)

        self._selection: frozenset[str] = frozenset()
        self._definitions: tuple[DomainDefinition, ...] = ()
        self._query: str | None = None
        self._configured = False

        self._wake = asyncio.Event()
        self._stopping = False
        self._running = False

        self._cycles = 0
        self._failures = 0
        self._last_success: datetime | None = None
        self._last_error: str | None = None

    @property
    def selection(self) -> frozenset[str]:
        return self._selection

    @property
    def definitions(self) -> tuple[DomainDefinition, ...]:
        return self._definitions

    @property
    def query(self) -> str | None:
        return self._query

    @property
    def reconciler(self) -> DynamicResourceReconciler:
        return self._reconciler

    def configure(self, raw_ids: Iterable[str] | None = None) -> frozenset[str]:
        """(Re)compute the effective selection and the query plan.

        Both replace the previous values wholesale. Categories that left the
        selection lose their tracking state.
        """

        raw = self._config.enabled_domains if raw_ids is None else tuple(raw_ids)
        selection = expand_selection(normalize_selection(raw))

        self._selection = selection
        self._definitions = definitions_for(selection)
        self._query = build_query(self._definitions)
        self._reconciler.reset_tracking(selection)
        self._configured = True

        logger.info(f"Tracking {len(selection)} domains: {', '.join(sorted(selection)) or '-'}")
        return selection

    async def initialize(self) -> None:
        """Prepare the state tree before the first cycle."""

        if not self._configured:
            self.configure()

        await self._object_tree.initialize(self._definitions)
        await self._object_tree.cleanup_unselected_domains(self._selection)
        await self._synchronizer.initialize_static_states(self._definitions)
        await self._store.flush()

    async def poll_once(self) -> bool:
        """Run one cycle. Errors propagate; returns False when there is nothing to poll."""

        if self._query is None:
            logger.warning("No domain selected, nothing to poll")
            return False

        cycle = self._object_tree.begin_poll_cycle()
        logger.debug(f"Starting poll cycle {cycle}")

        data = await self._source.query(self._query)
        logger.debug(f"Response: {_truncate(repr(data))}")

        await self._reconciler.reconcile(data, self._selection)
        for definition in self._definitions:
            await self._synchronizer.apply_definition(definition, data)
        await self._store.flush()

        self._last_success = datetime.now(timezone.utc)
        return True

    async def _guarded_cycle(self) -> bool:
        self._cycles += 1
        try:
            return await self.poll_once()
        except Exception as exc:
            self._failures += 1
            self._last_error = str(exc) or type(exc).__name__
            logger.error(f"Poll cycle failed: {self._last_error}")
            return False

    async def run(self, *, once: bool = False) -> None:
        """Poll until `stop()` is called (or a single cycle when `once`).

        A stop requested before the loop starts is honoured: no cycle runs.
        """

        if self._running:
            raise RuntimeError("SyncEngine is already running")

        self._running = True
        interval = self._config.poll_interval_seconds or DEFAULT_POLL_INTERVAL_SECONDS
        try:
            while not self._stopping:
                self._wake.clear()
                await self._guarded_cycle()
                if once or self._stopping:
                    break
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False

    async def trigger_poll(self) -> bool:
        """Ask for an extra cycle.

        While the loop runs, the pending wait is cut short and the loop runs
        the cycle itself; otherwise the cycle runs here.
        """

        if self._running:
            self._wake.set()
            return True
        return await self._guarded_cycle()

    def stop(self) -> None:
        """Cancel the pending wait; an in-flight cycle completes first."""

        self._stopping = True
        self._wake.set()

    async def aclose(self, timeout: float = CLOSE_TIMEOUT_SECONDS) -> None:
        self.stop()
        try:
            await asyncio.wait_for(self._source.aclose(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Closing the remote client timed out after {timeout:.0f}s")
        except Exception as exc:
            logger.warning(f"Failed to close the remote client: {exc}")

    def statistics(self) -> EngineStatistics:
        return EngineStatistics(
            cycles=self._cycles,
            failures=self._failures,
            last_success=self._last_success,
            last_error=self._last_error,
            tree=self._object_tree.statistics(),
        )
