"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y política TLS en un solo sitio.
- Facilita testeo: se puede inyectar un `transport` (p.ej. `httpx.MockTransport`).
"""

from __future__ import annotations

import httpx

from core.config import RuntimeConfig

API_KEY_HEADER = "x-api-key"


def build_async_client(
    config: RuntimeConfig,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea el `httpx.AsyncClient` de larga vida de una sesión.

    - Headers JSON de request/response más la cabecera de la API key.
    - `verify=False` solo si se permiten certificados autofirmados.
    """

    headers: dict[str, str] = {
        "User-Agent": config.user_agent,
        "Accept": "application/json",
        "Content-Type": "application/json",
        API_KEY_HEADER: config.api_token,
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        verify=not config.allow_self_signed,
        transport=transport,
    )
