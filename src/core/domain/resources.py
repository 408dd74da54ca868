"""Categorías de recursos dinámicos.

Un recurso dinámico es un miembro de una colección de cardinalidad variable
(cores de CPU, miembros del array, contenedores, shares, VMs). Cada categoría
se describe una vez en `CATEGORIES`; el reconciliador y el árbol de objetos
despachan a través de esta tabla en vez de ramificar por nombre de categoría.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from core.domain.models import StateCommon, StateMapping, ValueType
from core.domain.transforms import (
    bytes_to_gigabytes,
    counter_to_number,
    kilobytes_to_gigabytes,
    resolve_value,
    sanitize_resource_name,
    share_usage_percent,
    to_bool_or_none,
    to_number_or_none,
    to_string_or_none,
    usage_percent,
)

COUNT_LEAF = "count"
RESERVED_KEYS: frozenset[str] = frozenset({COUNT_LEAF})


class ResourceKind(str, Enum):
    PER_CORE = "per_core"
    ARRAY_MEMBER = "array_member"
    WORKLOAD = "workload"
    VOLUME = "volume"
    VIRTUAL_MACHINE = "virtual_machine"


KeyedItems = dict[str, dict[str, Any]]


def _positional_keys(items: list[dict[str, Any]]) -> KeyedItems:
    return {str(index): item for index, item in enumerate(items)}


def _array_member_keys(items: list[dict[str, Any]]) -> KeyedItems:
    keyed: KeyedItems = {}
    for index, item in enumerate(items):
        raw = to_string_or_none(item.get("idx"))
        key = sanitize_resource_name(raw) if raw else ""
        if not key or key in RESERVED_KEYS:
            key = str(index)
        keyed.setdefault(key, item)
    return keyed


def _disambiguated_keys(named: Iterable[tuple[str, dict[str, Any]]]) -> KeyedItems:
    """Indexa los items por nombre saneado, con sufijo `_2`, `_3`, ... si colisionan.

    Los nombres ya limpios reclaman primero su propia clave, después el resto
    en orden alfabético: el resultado no depende del orden de `named`.
    """

    first_by_name: dict[str, dict[str, Any]] = {}
    for name, item in named:
        first_by_name.setdefault(name, item)

    used: set[str] = set(RESERVED_KEYS)
    keyed: KeyedItems = {}
    for name in sorted(first_by_name, key=lambda raw: (sanitize_resource_name(raw) != raw, raw)):
        base = sanitize_resource_name(name)
        candidate = base
        suffix = 1
        while candidate in used:
            suffix += 1
            candidate = f"{base}_{suffix}"
        used.add(candidate)
        keyed[candidate] = first_by_name[name]
    return keyed


def container_name(item: Any) -> str | None:
    """Primer nombre del contenedor sin la barra inicial."""

    if not isinstance(item, dict):
        return None
    names = item.get("names")
    if not isinstance(names, list) or not names or not isinstance(names[0], str):
        return None
    return names[0].removeprefix("/") or None


def _item_name(item: Any) -> str | None:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    return name if isinstance(name, str) and name else None


def _workload_keys(items: list[dict[str, Any]]) -> KeyedItems:
    return _disambiguated_keys(
        (name, item) for item in items if (name := container_name(item)) is not None
    )


def _named_keys(items: list[dict[str, Any]]) -> KeyedItems:
    return _disambiguated_keys(
        (name, item) for item in items if (name := _item_name(item)) is not None
    )


KEY_STRATEGIES: Mapping[ResourceKind, Callable[[list[dict[str, Any]]], KeyedItems]] = MappingProxyType(
    {
        ResourceKind.PER_CORE: _positional_keys,
        ResourceKind.ARRAY_MEMBER: _array_member_keys,
        ResourceKind.WORKLOAD: _workload_keys,
        ResourceKind.VOLUME: _named_keys,
        ResourceKind.VIRTUAL_MACHINE: _named_keys,
    }
)


@dataclass(frozen=True)
class ResourceCategory:
    """Una fila de la tabla de despacho."""

    name: str
    kind: ResourceKind
    domain_id: str
    prefix: str
    collection_path: tuple[str, ...]
    leaves: tuple[StateMapping, ...]
    label_template: str = "{key}"

    @property
    def root(self) -> str:
        return self.collection_path[0]

    @property
    def count_id(self) -> str:
        return f"{self.prefix}.{COUNT_LEAF}"

    def instance_prefix(self, key: str) -> str:
        return f"{self.prefix}.{key}"

    def container_label(self, key: str) -> str:
        return self.label_template.format(key=key)

    def extract(self, data: dict[str, Any]) -> list[dict[str, Any]] | None:
        """Colección cruda de una respuesta.

        None cuando la raíz no vino en la respuesta; lista vacía cuando la raíz
        está pero la colección falta o está mal formada.
        """

        if self.root not in data:
            return None
        raw = resolve_value(data, self.collection_path)
        if not isinstance(raw, list):
            return []
        return [item for item in raw if isinstance(item, dict)]

    def keyed_items(self, items: list[dict[str, Any]]) -> KeyedItems:
        return KEY_STRATEGIES[self.kind](items)


def _leaf(
    name: str,
    value_type: ValueType,
    role: str,
    *,
    field: str | None = None,
    unit: str | None = None,
    transform: Callable[[Any], Any] | None = None,
) -> StateMapping:
    """Mapping de hoja cuya ruta es relativa a un item de la colección.

    Una ruta vacía pasa el item entero a `transform`.
    """

    path: tuple[str, ...] = () if field is None and transform is not None else (field or name,)
    return StateMapping(
        id=name,
        path=path,
        common=StateCommon(type=value_type, role=role, unit=unit),
        transform=transform,
    )


def _text(name: str, role: str = "text") -> StateMapping:
    return _leaf(name, ValueType.STRING, role, transform=to_string_or_none, field=name)


def _flag(name: str) -> StateMapping:
    return _leaf(name, ValueType.BOOLEAN, "indicator", transform=to_bool_or_none, field=name)


def _percent(name: str, *, field: str | None = None, transform: Callable[[Any], Any]) -> StateMapping:
    return _leaf(name, ValueType.NUMBER, "value.percent", unit="%", field=field, transform=transform)


def _gigabytes(name: str, field: str, transform: Callable[[Any], Any]) -> StateMapping:
    return _leaf(name, ValueType.NUMBER, "value", unit="GB", field=field, transform=transform)


def _temperature(name: str) -> StateMapping:
    return _leaf(
        name, ValueType.NUMBER, "value.temperature", unit="°C", field=name, transform=to_number_or_none
    )


def _counter(name: str) -> StateMapping:
    return _leaf(name, ValueType.NUMBER, "value", field=name, transform=counter_to_number)


CPU_CORE_LEAVES: tuple[StateMapping, ...] = tuple(
    _percent(name, field=name, transform=to_number_or_none)
    for name in (
        "percentTotal",
        "percentUser",
        "percentSystem",
        "percentNice",
        "percentIdle",
        "percentIrq",
    )
)

ARRAY_MEMBER_LEAVES: tuple[StateMapping, ...] = (
    _text("name"),
    _text("device"),
    _text("status", "indicator.status"),
    _temperature("temp"),
    _text("type"),
    _gigabytes("sizeGb", "size", kilobytes_to_gigabytes),
    _gigabytes("fsSizeGb", "fsSize", kilobytes_to_gigabytes),
    _gigabytes("fsUsedGb", "fsUsed", kilobytes_to_gigabytes),
    _gigabytes("fsFreeGb", "fsFree", kilobytes_to_gigabytes),
    _percent("fsUsedPercent", transform=lambda item: usage_percent(item.get("fsUsed"), item.get("fsSize"))),
    _text("fsType"),
    _flag("isSpinning"),
    _counter("numReads"),
    _counter("numWrites"),
    _counter("numErrors"),
    _temperature("warning"),
    _temperature("critical"),
    _flag("rotational"),
    _text("transport"),
)

CONTAINER_LEAVES: tuple[StateMapping, ...] = (
    _leaf("name", ValueType.STRING, "text", transform=container_name),
    _text("image"),
    _text("state", "indicator.status"),
    _text("status"),
    _flag("autoStart"),
    _gigabytes("sizeGb", "sizeRootFs", bytes_to_gigabytes),
)

SHARE_LEAVES: tuple[StateMapping, ...] = (
    _text("name"),
    _gigabytes("freeGb", "free", kilobytes_to_gigabytes),
    _gigabytes("usedGb", "used", kilobytes_to_gigabytes),
    _gigabytes("sizeGb", "size", kilobytes_to_gigabytes),
    _percent("usedPercent", transform=lambda item: share_usage_percent(item.get("used"), item.get("free"))),
    _text("comment"),
    _text("allocator"),
    _text("cow"),
    _text("color"),
)

VM_LEAVES: tuple[StateMapping, ...] = (
    _text("name"),
    _text("state", "indicator.status"),
    _text("uuid"),
)


CATEGORIES: tuple[ResourceCategory, ...] = (
    ResourceCategory(
        name="cpu",
        kind=ResourceKind.PER_CORE,
        domain_id="metrics.cpu",
        prefix="metrics.cpu.cores",
        collection_path=("metrics", "cpu", "cpus"),
        leaves=CPU_CORE_LEAVES,
        label_template="Core {key}",
    ),
    ResourceCategory(
        name="disk",
        kind=ResourceKind.ARRAY_MEMBER,
        domain_id="array.disks",
        prefix="array.disks",
        collection_path=("array", "disks"),
        leaves=ARRAY_MEMBER_LEAVES,
        label_template="Disk {key}",
    ),
    ResourceCategory(
        name="parity",
        kind=ResourceKind.ARRAY_MEMBER,
        domain_id="array.parities",
        prefix="array.parities",
        collection_path=("array", "parities"),
        leaves=ARRAY_MEMBER_LEAVES,
        label_template="Parity {key}",
    ),
    ResourceCategory(
        name="cache",
        kind=ResourceKind.ARRAY_MEMBER,
        domain_id="array.caches",
        prefix="array.caches",
        collection_path=("array", "caches"),
        leaves=ARRAY_MEMBER_LEAVES,
        label_template="Cache {key}",
    ),
    ResourceCategory(
        name="docker",
        kind=ResourceKind.WORKLOAD,
        domain_id="docker.containers",
        prefix="docker.containers",
        collection_path=("docker", "containers"),
        leaves=CONTAINER_LEAVES,
    ),
    ResourceCategory(
        name="share",
        kind=ResourceKind.VOLUME,
        domain_id="shares.list",
        prefix="shares",
        collection_path=("shares",),
        leaves=SHARE_LEAVES,
    ),
    ResourceCategory(
        name="vm",
        kind=ResourceKind.VIRTUAL_MACHINE,
        domain_id="vms.list",
        prefix="vms",
        collection_path=("vms", "domains"),
        leaves=VM_LEAVES,
    ),
)

CATEGORY_BY_NAME: Mapping[str, ResourceCategory] = MappingProxyType(
    {category.name: category for category in CATEGORIES}
)


def classify_object(object_id: str) -> tuple[ResourceCategory, str] | None:
    """Categoría y clave del recurso dueño de `object_id`, si cuelga de una instancia."""

    for category in CATEGORIES:
        head = f"{category.prefix}."
        if not object_id.startswith(head):
            continue
        key = object_id[len(head):].split(".", 1)[0]
        if not key or key in RESERVED_KEYS:
            return None
        return category, key
    return None
