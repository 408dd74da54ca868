"""Transformaciones entre valores de la API remota y valores de estado.

Todas las funciones son totales: una entrada inválida da None, nunca una
excepción.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

GIGABYTE_DECIMALS = 2
PERCENT_DECIMALS = 2

# Mayor entero que un double representa exactamente (2**53 - 1).
MAX_SAFE_INTEGER = 9_007_199_254_740_991

_KIB_PER_GIB = 1024 * 1024
_BYTES_PER_GIB = 1024 * 1024 * 1024


def to_number_or_none(value: Any) -> float | int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def to_string_or_none(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return None


def to_bool_or_none(value: Any) -> bool | None:
    return value if isinstance(value, bool) else None


def counter_to_number(value: Any) -> float | int | None:
    """Convierte un contador (posiblemente enorme) en un número plano.

    Los contadores por encima de `MAX_SAFE_INTEGER` pasan a float y pierden
    precisión en sus dígitos bajos.
    """

    numeric = to_number_or_none(value)
    if numeric is None:
        return None
    if isinstance(numeric, int) and abs(numeric) > MAX_SAFE_INTEGER:
        try:
            return float(numeric)
        except OverflowError:
            return None
    return numeric


def _scaled(value: Any, divisor: int) -> float | None:
    numeric = to_number_or_none(value)
    if numeric is None:
        return None
    try:
        scaled = numeric / divisor
    except OverflowError:
        return None
    if not math.isfinite(scaled):
        return None
    return round(scaled, GIGABYTE_DECIMALS)


def kilobytes_to_gigabytes(value: Any) -> float | None:
    return _scaled(value, _KIB_PER_GIB)


def bytes_to_gigabytes(value: Any) -> float | None:
    return _scaled(value, _BYTES_PER_GIB)


def usage_percent(used: Any, total: Any) -> float | None:
    """`used / total` en porcentaje; None si total es 0 o una entrada no es numérica."""

    used_numeric = to_number_or_none(used)
    total_numeric = to_number_or_none(total)
    if used_numeric is None or total_numeric is None or total_numeric == 0:
        return None
    try:
        percent = used_numeric / total_numeric * 100
    except OverflowError:
        return None
    if not math.isfinite(percent):
        return None
    return round(percent, PERCENT_DECIMALS)


def share_usage_percent(used: Any, free: Any) -> float | None:
    """Uso de un share, cuya API da usado y libre pero no el total."""

    used_numeric = to_number_or_none(used)
    free_numeric = to_number_or_none(free)
    if used_numeric is None or free_numeric is None:
        return None
    return usage_percent(used_numeric, used_numeric + free_numeric)


def capacity_percent_used(value: Any) -> float | None:
    """Porcentaje usado de un objeto `capacity` del array (`{"kilobytes": {...}}`)."""

    if not isinstance(value, dict):
        return None
    kilobytes = value.get("kilobytes")
    if not isinstance(kilobytes, dict):
        return None
    return usage_percent(kilobytes.get("used"), kilobytes.get("total"))


def resolve_value(source: Any, path: Iterable[str]) -> Any:
    """Recorre claves anidadas; None si falta una clave o un intermedio no es mapping."""

    current = source
    for segment in path:
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
    return current


def sanitize_resource_name(name: str) -> str:
    """Sustituye por `_` todo carácter que no sea letra, dígito, `-` o `_`."""

    out: list[str] = []
    for ch in name:
        if ch.isascii() and (ch.isalnum() or ch in ("-", "_")):
            out.append(ch)
        else:
            out.append("_")
    return "".join(out)
