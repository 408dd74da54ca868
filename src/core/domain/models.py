"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- El catálogo (`DomainNode`, `DomainDefinition`, `RootSelection`, `FieldSpec`,
  `StateMapping`) y los objetos persistidos (`StoredObject`, `ObjectCommon`)
  comparten las mismas garantías.

Nota:
- Estos modelos describen *qué* se replica, no *cómo* se obtiene o se guarda.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class ValueType(str, Enum):
    """Tipo de valor que guarda una hoja."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    MIXED = "mixed"


class ObjectKind(str, Enum):
    """Tipo de objeto replicado: un contenedor agrupa hijos, una hoja lleva un valor."""

    CONTAINER = "container"
    LEAF = "leaf"


class StateCommon(BaseModel):
    """Tipo de valor, rol semántico y unidad de un estado."""

    model_config = ConfigDict(frozen=True)

    type: ValueType = Field(..., description="Tipo de valor guardado en el estado.")
    role: str = Field(..., min_length=1, description="Rol semántico (p.ej. 'value.percent').")
    unit: str | None = Field(default=None, description="Unidad para mostrar, si la hay.")


class FieldSpec(BaseModel):
    """Campo remoto pedido, opcionalmente con una sub-selección anidada."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    selection: tuple[FieldSpec, ...] = Field(default=())


class RootSelection(BaseModel):
    """Campos pedidos bajo un campo raíz remoto."""

    model_config = ConfigDict(frozen=True)

    root: str = Field(..., min_length=1)
    fields: tuple[FieldSpec, ...] = Field(default=())


class StateMapping(BaseModel):
    """Asocia el valor encontrado en `path` de la respuesta al estado `id`.

    `transform` debe ser total: devuelve None para cualquier entrada que no
    sepa tratar y nunca lanza excepciones.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., min_length=1, description="Ruta del estado separada por puntos.")
    path: tuple[str, ...] = Field(default=(), description="Claves recorridas dentro de la respuesta.")
    common: StateCommon
    transform: Callable[[Any], Any] | None = Field(default=None, exclude=True)


class DomainNode(BaseModel):
    """Nodo seleccionable del árbol de dominios."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    default_selected: bool = False
    children: tuple[DomainNode, ...] = Field(default=())


class DomainDefinition(BaseModel):
    """Definición declarativa de un dominio consultable."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    selection: tuple[RootSelection, ...] = Field(default=())
    states: tuple[StateMapping, ...] = Field(default=())
    resource_prefixes: tuple[str, ...] = Field(
        default=(),
        description="Prefijos de estado que este dominio rellena dinámicamente.",
    )

    @property
    def roots(self) -> tuple[str, ...]:
        return tuple(selection.root for selection in self.selection)


class ObjectCommon(BaseModel):
    """Metadatos de presentación de un objeto persistido."""

    name: str = Field(..., min_length=1)
    role: str | None = None
    type: ValueType | None = None
    unit: str | None = None
    read: bool = True
    write: bool = False


class StoredObject(BaseModel):
    """Objeto persistido por la capa de estado."""

    kind: ObjectKind
    common: ObjectCommon
    native: dict[str, Any] = Field(default_factory=dict)


class TrackedObject(BaseModel):
    """Entrada del inventario que mantiene el gestor del árbol de objetos."""

    id: str
    kind: ObjectKind
    last_seen_cycle: int = Field(default=0, ge=0)
    is_static: bool = False
    resource_category: str | None = None
    resource_key: str | None = None


FieldSpec.model_rebuild()
DomainNode.model_rebuild()
