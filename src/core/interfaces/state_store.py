"""Contrato de la capa de persistencia/estado.

Los objetos se direccionan con ids jerárquicos separados por puntos
(`array.disks.1.temp`). Un contenedor agrupa hijos; una hoja lleva un valor.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.domain.models import StoredObject


class StateStoreError(RuntimeError):
    """La capa de estado no pudo completar una operación."""


@runtime_checkable
class StateStore(Protocol):
    async def set_object_not_exists(self, object_id: str, obj: StoredObject) -> bool:
        """Crea `object_id` si no existe; True cuando lo ha creado."""

        ...

    async def set_object(self, object_id: str, obj: StoredObject) -> None:
        """Crea o sobrescribe `object_id`."""

        ...

    async def get_object(self, object_id: str) -> StoredObject | None: ...

    async def get_objects(self) -> dict[str, StoredObject]:
        """Todos los objetos del namespace, indexados por id."""

        ...

    async def set_state(self, object_id: str, value: Any) -> None: ...

    async def get_state(self, object_id: str) -> Any: ...

    async def del_object(self, object_id: str, *, recursive: bool = False) -> None:
        """Borra `object_id` (y sus descendientes si `recursive`)."""

        ...

    async def flush(self) -> None:
        """Persiste los cambios pendientes."""

        ...
