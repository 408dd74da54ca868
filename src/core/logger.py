"""Configuración de logging (loguru).

Reglas:
- CONSOLA: INFO+ a stderr, DEBUG+ en modo verbose.
- FICHERO: opcional, DEBUG+ con rotación.
- Los secretos (API token) se ocultan en cada mensaje antes de llegar a un sink.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterable

from loguru import logger

REDACTED = "[REDACTED]"

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def redact(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def setup_logger(
    verbose: bool = False,
    log_file: Path | None = None,
    secrets: Iterable[str] = (),
) -> None:
    """Sustituye los sinks por defecto por los de la CLI."""

    logger.remove()

    logger.add(
        sys.stderr,
        format=_CONSOLE_FORMAT,
        level="DEBUG" if verbose else "INFO",
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="10 MB",
            retention="1 week",
            level="DEBUG",
            format=_FILE_FORMAT,
            enqueue=True,
        )

    hidden = tuple(secret for secret in secrets if secret)

    def _redaction_patcher(record) -> None:
        try:
            record["message"] = redact(record["message"], hidden)
        except Exception:
            record["message"] = REDACTED

    logger.configure(patcher=_redaction_patcher)
