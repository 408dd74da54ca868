"""Domain selection expansion.

Turns the user's raw domain ids into the effective selection: the set of
queryable domain ids reached by walking each selected node's subtree.
Ancestors are never added here.
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from core.domain.catalog import (
    ALL_DOMAIN_IDS,
    DEFAULT_DOMAIN_IDS,
    DOMAIN_DEFINITION_BY_ID,
    DOMAIN_NODE_BY_ID,
)
from core.domain.models import DomainDefinition, DomainNode


def normalize_selection(raw_ids: Iterable[str] | None) -> tuple[str, ...]:
    """Validate raw ids against the catalog.

    Unknown ids are dropped. A missing or empty result falls back to the
    catalog's default selection.
    """

    if raw_ids is None:
        return DEFAULT_DOMAIN_IDS

    known: list[str] = []
    unknown: list[str] = []
    for raw in raw_ids:
        domain_id = raw.strip()
        if domain_id in DOMAIN_NODE_BY_ID:
            if domain_id not in known:
                known.append(domain_id)
        elif domain_id:
            unknown.append(domain_id)

    if unknown:
        logger.warning(f"Ignoring unknown domain ids: {', '.join(sorted(unknown))}")
    if not known:
        logger.info("No valid domain selected, using the default selection.")
        return DEFAULT_DOMAIN_IDS
    return tuple(known)


def _collect_queryable(node: DomainNode, acc: set[str]) -> None:
    if node.id in DOMAIN_DEFINITION_BY_ID:
        acc.add(node.id)
    for child in node.children:
        _collect_queryable(child, acc)


def expand_selection(selection: Iterable[str]) -> frozenset[str]:
    """Subtree closure of `selection` restricted to ids with a definition.

    Idempotent: expanding an expanded selection returns the same set.
    """

    result: set[str] = set()
    for domain_id in selection:
        node = DOMAIN_NODE_BY_ID.get(domain_id)
        if node is None:
            continue
        _collect_queryable(node, result)
    return frozenset(result)


def definitions_for(selection: Iterable[str]) -> tuple[DomainDefinition, ...]:
    """Definitions of an effective selection, in catalog order."""

    wanted = set(selection)
    return tuple(
        DOMAIN_DEFINITION_BY_ID[domain_id]
        for domain_id in ALL_DOMAIN_IDS
        if domain_id in wanted and domain_id in DOMAIN_DEFINITION_BY_ID
    )
