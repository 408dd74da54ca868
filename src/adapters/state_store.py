"""Implementaciones de la capa de estado.

- `MemoryStateStore`: store en diccionarios; el comportamiento de referencia
  del contrato `StateStore`.
- `JsonStateStore`: el mismo store persistido en un JSON UTF-8 con formato
  estable, escrito en `flush()`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from core.domain.models import ObjectKind, StoredObject
from core.interfaces.state_store import StateStoreError


def _is_same_or_descendant(object_id: str, ancestor: str) -> bool:
    return object_id == ancestor or object_id.startswith(f"{ancestor}.")


class MemoryStateStore:
    """Objetos y valores en memoria indexados por ids separados por puntos."""

    def __init__(self, namespace: str = "unraid.0") -> None:
        self.namespace = namespace
        self._objects: dict[str, StoredObject] = {}
        self._states: dict[str, Any] = {}

    async def set_object_not_exists(self, object_id: str, obj: StoredObject) -> bool:
        if object_id in self._objects:
            return False
        self._objects[object_id] = obj.model_copy(deep=True)
        return True

    async def set_object(self, object_id: str, obj: StoredObject) -> None:
        self._objects[object_id] = obj.model_copy(deep=True)

    async def get_object(self, object_id: str) -> StoredObject | None:
        obj = self._objects.get(object_id)
        return obj.model_copy(deep=True) if obj is not None else None

    async def get_objects(self) -> dict[str, StoredObject]:
        return {object_id: obj.model_copy(deep=True) for object_id, obj in self._objects.items()}

    async def set_state(self, object_id: str, value: Any) -> None:
        if object_id not in self._objects:
            raise StateStoreError(f"Cannot set value of unknown object {object_id!r}")
        self._states[object_id] = value

    async def get_state(self, object_id: str) -> Any:
        return self._states.get(object_id)

    async def del_object(self, object_id: str, *, recursive: bool = False) -> None:
        if recursive:
            doomed = [oid for oid in self._objects if _is_same_or_descendant(oid, object_id)]
        else:
            doomed = [object_id] if object_id in self._objects else []
        for oid in doomed:
            self._objects.pop(oid, None)
            self._states.pop(oid, None)

    async def flush(self) -> None:
        return None

    def snapshot(self) -> dict[str, Any]:
        """Valores de todas las hojas por id (síncrono, para mostrar/tests)."""

        return {
            object_id: self._states.get(object_id)
            for object_id, obj in sorted(self._objects.items())
            if obj.kind is ObjectKind.LEAF
        }

    def ids(self) -> list[str]:
        return sorted(self._objects)


class JsonStateStore(MemoryStateStore):
    """`MemoryStateStore` persistido en un fichero JSON."""

    def __init__(self, path: Path, namespace: str = "unraid.0") -> None:
        super().__init__(namespace=namespace)
        self.path = path

    @classmethod
    def open(cls, path: Path, namespace: str = "unraid.0") -> JsonStateStore:
        """Carga `path` si existe; si no, arranca vacío."""

        store = cls(path, namespace=namespace)
        if not path.exists():
            return store
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StateStoreError(f"Cannot read state file {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise StateStoreError(f"State file {path} does not contain an object")
        if payload.get("namespace") not in (None, namespace):
            logger.warning(
                f"State file {path} belongs to namespace {payload.get('namespace')!r}, "
                f"loading it into {namespace!r}"
            )

        objects = payload.get("objects") or {}
        states = payload.get("states") or {}
        for object_id, raw in objects.items():
            try:
                store._objects[object_id] = StoredObject.model_validate(raw)
            except ValidationError as exc:
                logger.warning(f"Skipping invalid object {object_id} in {path}: {exc}")
                continue
            store._states[object_id] = states.get(object_id)
        logger.debug(f"Loaded {len(store._objects)} objects from {path}")
        return store

    async def flush(self) -> None:
        payload = {
            "namespace": self.namespace,
            "objects": {oid: obj.model_dump(mode="json") for oid, obj in self._objects.items()},
            "states": {oid: self._states.get(oid) for oid in self._objects},
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
            tmp.replace(self.path)
        except OSError as exc:
            raise StateStoreError(f"Cannot write state file {self.path}: {exc}") from exc
