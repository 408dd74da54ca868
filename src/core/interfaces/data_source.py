"""Contrato de la fuente de datos remota.

Reglas de diseño:
- `query` es asíncrono porque hace I/O de red.
- Una consulta textual por ciclo; el resultado es el mapping `data` anidado
  cuyas claves de primer nivel coinciden con los campos raíz pedidos.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RemoteDataSource(Protocol):
    """Contrato mínimo para una API de datos jerárquica consultable."""

    async def query(self, text: str) -> dict[str, Any]:
        """Ejecuta una consulta y devuelve su mapping `data`."""

        ...

    async def aclose(self) -> None:
        """Libera los recursos de conexión subyacentes."""

        ...
