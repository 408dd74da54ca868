"""Adaptador GraphQL sobre httpx.

Implementa `RemoteDataSource`:
- Hace POST de `{"query": text}` a `<base_url>/graphql`.
- Se reutiliza un único `httpx.AsyncClient` en todos los ciclos y se cierra una vez.

Errores:
- `GraphQLHttpError`: status no 2xx (se guardan el body y el JSON parseado).
- `GraphQLRequestError`: fallo de transporte, JSON inválido, falta `data`.
- `GraphQLResponseError`: `errors` remotos sin `data` utilizable.

Un payload con `data` y `errors` a la vez es una respuesta parcial: se
loguean los errores y se devuelve `data`.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger

from adapters.http_client import build_async_client
from core.config import RuntimeConfig

_BODY_PREVIEW = 500


class GraphQLError(Exception):
    """Error base del adaptador GraphQL."""


class GraphQLHttpError(GraphQLError):
    def __init__(self, status: int, body: str, payload: Any = None) -> None:
        suffix = f": {body[:_BODY_PREVIEW]}" if body else ""
        super().__init__(f"HTTP {status}{suffix}")
        self.status = status
        self.body = body
        self.payload = payload


class GraphQLRequestError(GraphQLError):
    pass


def _error_messages(errors: list[Any]) -> str:
    return "; ".join(
        str(error.get("message")) for error in errors if isinstance(error, dict) and error.get("message")
    ) or "GraphQL response contained errors"


class GraphQLResponseError(GraphQLError):
    def __init__(self, errors: list[Any]) -> None:
        super().__init__(_error_messages(errors))
        self.errors = errors


class GraphQLClient:
    """Fuente de datos remota respaldada por un endpoint GraphQL."""

    def __init__(self, config: RuntimeConfig, *, client: httpx.AsyncClient | None = None) -> None:
        self._endpoint = config.endpoint
        self._client = client or build_async_client(config)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def query(self, text: str) -> dict[str, Any]:
        try:
            response = await self._client.post(self._endpoint, json={"query": text})
        except httpx.HTTPError as exc:
            raise GraphQLRequestError(f"GraphQL request failed: {exc}") from exc

        if response.is_error:
            body = response.text.strip()
            try:
                payload = response.json() if body else None
            except ValueError:
                payload = None
            raise GraphQLHttpError(response.status_code, body, payload)

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise GraphQLRequestError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(payload, dict):
            raise GraphQLRequestError("Response payload is not an object")

        data = payload.get("data")
        errors = payload.get("errors") or []
        if errors and not isinstance(errors, list):
            errors = [errors]

        if errors:
            if isinstance(data, dict) and data:
                logger.warning(f"Partial GraphQL response: {_error_messages(errors)}")
                return data
            raise GraphQLResponseError(errors)

        if not isinstance(data, dict):
            raise GraphQLRequestError("Empty response payload")
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
