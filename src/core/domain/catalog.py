"""Catálogo estático de dominios.

Contiene:
- El árbol de dominios seleccionables (`DOMAIN_TREE`) y sus índices.
- Las definiciones consultables: qué campos GraphQL necesita cada dominio y
  qué estados rellena.

Solo los nodos con definición son consultables; los nodos categoría (`info`,
`array`, ...) existen para agrupar hijos en el árbol de selección.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from core.domain.models import (
    DomainDefinition,
    DomainNode,
    FieldSpec,
    RootSelection,
    StateCommon,
    StateMapping,
    ValueType,
)
from core.domain.transforms import (
    bytes_to_gigabytes,
    capacity_percent_used,
    kilobytes_to_gigabytes,
    to_number_or_none,
)


def _fields(*names: str) -> tuple[FieldSpec, ...]:
    return tuple(FieldSpec(name=name) for name in names)


def _nested(name: str, *children: FieldSpec) -> FieldSpec:
    return FieldSpec(name=name, selection=tuple(children))


def _state(
    state_id: str,
    path: Iterable[str],
    value_type: ValueType,
    role: str,
    *,
    unit: str | None = None,
    transform: Callable[[Any], Any] | None = None,
) -> StateMapping:
    return StateMapping(
        id=state_id,
        path=tuple(path),
        common=StateCommon(type=value_type, role=role, unit=unit),
        transform=transform,
    )


def _leaf(name: str, *, default: bool = False) -> DomainNode:
    return DomainNode(id=name, label=f"domains.{name}", default_selected=default)


def _category(name: str, *children: DomainNode) -> DomainNode:
    return DomainNode(id=name, label=f"domains.{name}", children=tuple(children))


DOMAIN_TREE: tuple[DomainNode, ...] = (
    _category(
        "info",
        _leaf("info.time", default=True),
        _leaf("info.os"),
    ),
    _category(
        "server",
        _leaf("server.status", default=True),
    ),
    _category(
        "metrics",
        _leaf("metrics.cpu", default=True),
        _leaf("metrics.memory", default=True),
    ),
    _category(
        "array",
        _leaf("array.status", default=True),
        _leaf("array.disks", default=True),
        _leaf("array.parities"),
        _leaf("array.caches"),
    ),
    _category(
        "docker",
        _leaf("docker.containers", default=True),
    ),
    _category(
        "shares",
        _leaf("shares.list"),
    ),
    _category(
        "vms",
        _leaf("vms.list"),
    ),
)

# Campos pedidos para cada miembro del array (discos de datos, paridades, cachés).
ARRAY_MEMBER_FIELDS: tuple[FieldSpec, ...] = _fields(
    "critical",
    "device",
    "fsFree",
    "fsSize",
    "fsType",
    "fsUsed",
    "idx",
    "isSpinning",
    "name",
    "numErrors",
    "numReads",
    "numWrites",
    "rotational",
    "size",
    "status",
    "temp",
    "transport",
    "type",
    "warning",
)

_GB = "GB"
_PERCENT = "%"

DOMAIN_DEFINITIONS: tuple[DomainDefinition, ...] = (
    DomainDefinition(
        id="info.time",
        selection=(RootSelection(root="info", fields=_fields("time")),),
        states=(_state("info.time", ("info", "time"), ValueType.STRING, "value.datetime"),),
    ),
    DomainDefinition(
        id="info.os",
        selection=(
            RootSelection(
                root="info",
                fields=(_nested("os", *_fields("distro", "release", "kernel")),),
            ),
        ),
        states=(
            _state("info.os.distro", ("info", "os", "distro"), ValueType.STRING, "text"),
            _state("info.os.release", ("info", "os", "release"), ValueType.STRING, "info.version"),
            _state("info.os.kernel", ("info", "os", "kernel"), ValueType.STRING, "info.version"),
        ),
    ),
    DomainDefinition(
        id="server.status",
        selection=(
            RootSelection(
                root="server",
                fields=_fields("name", "status", "lanip", "wanip", "localurl", "remoteurl"),
            ),
        ),
        states=(
            _state("server.name", ("server", "name"), ValueType.STRING, "text"),
            _state("server.status", ("server", "status"), ValueType.STRING, "indicator.status"),
            _state("server.lanip", ("server", "lanip"), ValueType.STRING, "info.ip"),
            _state("server.wanip", ("server", "wanip"), ValueType.STRING, "info.ip"),
            _state("server.localurl", ("server", "localurl"), ValueType.STRING, "url"),
            _state("server.remoteurl", ("server", "remoteurl"), ValueType.STRING, "url"),
        ),
    ),
    DomainDefinition(
        id="metrics.cpu",
        selection=(
            RootSelection(
                root="metrics",
                fields=(
                    _nested(
                        "cpu",
                        FieldSpec(name="percentTotal"),
                        _nested(
                            "cpus",
                            *_fields(
                                "percentTotal",
                                "percentUser",
                                "percentSystem",
                                "percentNice",
                                "percentIdle",
                                "percentIrq",
                            ),
                        ),
                    ),
                ),
            ),
        ),
        states=(
            _state(
                "metrics.cpu.percentTotal",
                ("metrics", "cpu", "percentTotal"),
                ValueType.NUMBER,
                "value.percent",
                unit=_PERCENT,
                transform=to_number_or_none,
            ),
        ),
        resource_prefixes=("metrics.cpu.cores",),
    ),
    DomainDefinition(
        id="metrics.memory",
        selection=(
            RootSelection(
                root="metrics",
                fields=(
                    _nested(
                        "memory",
                        *_fields(
                            "percentTotal",
                            "total",
                            "used",
                            "free",
                            "available",
                            "active",
                            "buffcache",
                            "swapTotal",
                            "swapUsed",
                            "swapFree",
                            "percentSwapTotal",
                        ),
                    ),
                ),
            ),
        ),
        states=(
            _state(
                "metrics.memory.percentTotal",
                ("metrics", "memory", "percentTotal"),
                ValueType.NUMBER,
                "value.percent",
                unit=_PERCENT,
                transform=to_number_or_none,
            ),
            *(
                _state(
                    f"metrics.memory.{state_name}",
                    ("metrics", "memory", field_name),
                    ValueType.NUMBER,
                    "value",
                    unit=_GB,
                    transform=bytes_to_gigabytes,
                )
                for state_name, field_name in (
                    ("totalGb", "total"),
                    ("usedGb", "used"),
                    ("freeGb", "free"),
                    ("availableGb", "available"),
                    ("activeGb", "active"),
                    ("buffcacheGb", "buffcache"),
                    ("swap.totalGb", "swapTotal"),
                    ("swap.usedGb", "swapUsed"),
                    ("swap.freeGb", "swapFree"),
                )
            ),
            _state(
                "metrics.memory.swap.percentTotal",
                ("metrics", "memory", "percentSwapTotal"),
                ValueType.NUMBER,
                "value.percent",
                unit=_PERCENT,
                transform=to_number_or_none,
            ),
        ),
    ),
    DomainDefinition(
        id="array.status",
        selection=(
            RootSelection(
                root="array",
                fields=(
                    FieldSpec(name="state"),
                    _nested("capacity", _nested("kilobytes", *_fields("total", "used", "free"))),
                ),
            ),
        ),
        states=(
            _state("array.state", ("array", "state"), ValueType.STRING, "indicator.status"),
            _state(
                "array.capacity.totalGb",
                ("array", "capacity", "kilobytes", "total"),
                ValueType.NUMBER,
                "value",
                unit=_GB,
                transform=kilobytes_to_gigabytes,
            ),
            _state(
                "array.capacity.usedGb",
                ("array", "capacity", "kilobytes", "used"),
                ValueType.NUMBER,
                "value",
                unit=_GB,
                transform=kilobytes_to_gigabytes,
            ),
            _state(
                "array.capacity.freeGb",
                ("array", "capacity", "kilobytes", "free"),
                ValueType.NUMBER,
                "value",
                unit=_GB,
                transform=kilobytes_to_gigabytes,
            ),
            _state(
                "array.capacity.percentUsed",
                ("array", "capacity"),
                ValueType.NUMBER,
                "value.percent",
                unit=_PERCENT,
                transform=capacity_percent_used,
            ),
        ),
    ),
    DomainDefinition(
        id="array.disks",
        selection=(RootSelection(root="array", fields=(_nested("disks", *ARRAY_MEMBER_FIELDS),)),),
        resource_prefixes=("array.disks",),
    ),
    DomainDefinition(
        id="array.parities",
        selection=(RootSelection(root="array", fields=(_nested("parities", *ARRAY_MEMBER_FIELDS),)),),
        resource_prefixes=("array.parities",),
    ),
    DomainDefinition(
        id="array.caches",
        selection=(RootSelection(root="array", fields=(_nested("caches", *ARRAY_MEMBER_FIELDS),)),),
        resource_prefixes=("array.caches",),
    ),
    DomainDefinition(
        id="docker.containers",
        selection=(
            RootSelection(
                root="docker",
                fields=(
                    _nested(
                        "containers",
                        *_fields("id", "names", "image", "state", "status", "autoStart", "sizeRootFs"),
                    ),
                ),
            ),
        ),
        resource_prefixes=("docker.containers",),
    ),
    DomainDefinition(
        id="shares.list",
        selection=(
            RootSelection(
                root="shares",
                fields=_fields("name", "free", "used", "size", "comment", "allocator", "cow", "color"),
            ),
        ),
        resource_prefixes=("shares",),
    ),
    DomainDefinition(
        id="vms.list",
        selection=(
            RootSelection(
                root="vms",
                fields=(_nested("domains", *_fields("id", "name", "state", "uuid")),),
            ),
        ),
        resource_prefixes=("vms",),
    ),
)


def _index_nodes(nodes: Iterable[DomainNode], acc: dict[str, DomainNode]) -> dict[str, DomainNode]:
    for node in nodes:
        acc[node.id] = node
        _index_nodes(node.children, acc)
    return acc


def _index_ancestors(
    nodes: Iterable[DomainNode],
    parents: tuple[str, ...],
    acc: dict[str, tuple[str, ...]],
) -> dict[str, tuple[str, ...]]:
    for node in nodes:
        acc[node.id] = parents
        _index_ancestors(node.children, (*parents, node.id), acc)
    return acc


def collect_node_ids(node: DomainNode) -> tuple[str, ...]:
    """Ids de `node` y de todos sus descendientes, en profundidad."""

    ids = [node.id]
    for child in node.children:
        ids.extend(collect_node_ids(child))
    return tuple(ids)


DOMAIN_NODE_BY_ID: Mapping[str, DomainNode] = MappingProxyType(_index_nodes(DOMAIN_TREE, {}))
DOMAIN_DEFINITION_BY_ID: Mapping[str, DomainDefinition] = MappingProxyType(
    {definition.id: definition for definition in DOMAIN_DEFINITIONS}
)
ALL_DOMAIN_IDS: tuple[str, ...] = tuple(
    domain_id for node in DOMAIN_TREE for domain_id in collect_node_ids(node)
)
DEFAULT_DOMAIN_IDS: tuple[str, ...] = tuple(
    domain_id for domain_id in ALL_DOMAIN_IDS if DOMAIN_NODE_BY_ID[domain_id].default_selected
)

_ANCESTORS: Mapping[str, tuple[str, ...]] = MappingProxyType(_index_ancestors(DOMAIN_TREE, (), {}))


def domain_ancestors(domain_id: str) -> tuple[str, ...]:
    """Ids de los ancestros, desde la raíz del árbol hasta el padre directo."""

    return _ANCESTORS.get(domain_id, ())


def node_label(node_id: str) -> str | None:
    node = DOMAIN_NODE_BY_ID.get(node_id)
    return node.label if node else None
