"""
logger.py

Padroniza os logs do cold-chain-monitor.

- Respeita `settings.LOG_LEVEL` e `settings.LOG_JSON`.
- Anexa ao log os campos de contexto passados via `extra=`
  (device_id, log_id, chunk, operation...), tanto em texto quanto em JSON.
- Configura um handler de console único para evitar handlers duplicados.
- Exponibiliza `get_logger(name)` para uso nos módulos.

Exemplo:

    logger.warning("Leitura rejeitada", extra={"device_id": "abc", "reason": "NaN"})
"""

import json
import logging
from typing import Any, Dict, Tuple

from cold_chain_monitor.config.settings import settings

CONTEXT_KEYS: Tuple[str, ...] = (
    "device_id",
    "log_id",
    "operation",
    "chunk",
    "row_count",
    "reason",
)

_CONFIGURED = False


def _contexto(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        chave: getattr(record, chave)
        for chave in CONTEXT_KEYS
        if getattr(record, chave, None) is not None
    }


class ContextFormatter(logging.Formatter):
    """
    Formato texto; campos de contexto vão ao final como `chave=valor`.
    """

    def format(self, record: logging.LogRecord) -> str:
        mensagem = super().format(record)
        contexto = _contexto(record)
        if not contexto:
            return mensagem
        partes = " ".join(f"{k}={v}" for k, v in contexto.items())
        return f"{mensagem} | {partes}"


class JSONFormatter(logging.Formatter):
    """
    Formata logs como JSON, incluindo campos básicos e de contexto.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
        }
        payload.update(_contexto(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _configure_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)

    handler = logging.StreamHandler()

    if settings.LOG_JSON:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = ContextFormatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    handler.setFormatter(formatter)

    # Evita acumular handlers se o módulo for importado várias vezes
    root.handlers.clear()
    root.addHandler(handler)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """
    Retorna um logger configurado.
    """
    if not _CONFIGURED:
        _configure_logging()
    return logging.getLogger(name)
