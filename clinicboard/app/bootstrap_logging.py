"""
Logging de la aplicación.

- app.log: operación normal (rotativo).
- crash_soft.log: fallos recuperables con traza completa (`log_soft_exception`).
- Cada registro lleva el run_id de la sesión y la fecha del tablero abierto.
- Mensajes y contexto pasan por `ocultar_valor` antes de escribirse.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import date
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from clinicboard.app.common.log_redaction import ocultar_texto, ocultar_valor

_RUN_ID: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")
_FECHA_TABLERO: contextvars.ContextVar[str] = contextvars.ContextVar("fecha_tablero", default="-")
_MARCA_SOFT = "fallo_recuperable"


def _es_soft(record: logging.LogRecord) -> bool:
    return bool(getattr(record, _MARCA_SOFT, False))


class _ContextoSesion(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID.get()
        record.fecha_tablero = _FECHA_TABLERO.get()
        return True


class _SoloSoft(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return _es_soft(record)


class _SinSoft(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return not _es_soft(record)


class _FormatoTablero(logging.Formatter):
    def __init__(self, *, json_mode: bool) -> None:
        super().__init__()
        self._json_mode = json_mode

    def format(self, record: logging.LogRecord) -> str:
        campos: dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "nivel": record.levelname,
            "logger": record.name,
            "mensaje": ocultar_texto(record.getMessage()),
            "run_id": getattr(record, "run_id", "-"),
            "fecha_tablero": getattr(record, "fecha_tablero", "-"),
            "origen": f"{record.funcName}:{record.lineno}",
        }
        contexto = getattr(record, "context", None)
        if contexto:
            campos["context"] = ocultar_valor(contexto)
        if record.exc_info:
            campos["traceback"] = ocultar_texto(self.formatException(record.exc_info))
        if self._json_mode:
            return json.dumps(campos, ensure_ascii=False, default=str)
        return " ".join(f"{clave}={valor}" for clave, valor in campos.items())


class ContextLoggerAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        kwargs["extra"] = ocultar_valor(dict(kwargs.get("extra", {})))
        return ocultar_valor(msg), kwargs


def _handler(destino: logging.Handler, formato: logging.Formatter, *filtros: logging.Filter) -> logging.Handler:
    destino.setFormatter(formato)
    for filtro in filtros:
        destino.addFilter(filtro)
    return destino


def configure_logging(app_name: str, log_dir: Path, level: str = "INFO", json: bool = True) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    raiz = logging.getLogger()
    raiz.handlers.clear()
    raiz.setLevel(getattr(logging, level.upper(), logging.INFO))

    formato = _FormatoTablero(json_mode=json)
    contexto = _ContextoSesion()
    raiz.addHandler(_handler(logging.StreamHandler(stream=sys.__stderr__), formato, contexto, _SinSoft()))
    raiz.addHandler(
        _handler(
            RotatingFileHandler(log_dir / "app.log", maxBytes=2_000_000, backupCount=5, encoding="utf-8"),
            formato,
            contexto,
            _SinSoft(),
        )
    )
    raiz.addHandler(
        _handler(
            RotatingFileHandler(log_dir / "crash_soft.log", maxBytes=1_000_000, backupCount=3, encoding="utf-8"),
            formato,
            contexto,
            _SoloSoft(),
        )
    )
    logging.captureWarnings(True)
    get_logger(__name__).info("logging_configured app=%s dir=%s", app_name, log_dir)


def get_logger(name: str) -> logging.LoggerAdapter:
    return ContextLoggerAdapter(logging.getLogger(name), {})


def set_run_context(run_id: str, fecha_tablero: date | None = None) -> None:
    _RUN_ID.set(run_id)
    _FECHA_TABLERO.set(fecha_tablero.isoformat() if fecha_tablero else "-")


def log_soft_exception(logger: logging.LoggerAdapter, exc: Exception, context: dict[str, Any]) -> None:
    """La traza va a crash_soft.log; app.log solo recibe el aviso con el tipo de error."""
    logger.error(
        "soft_exception",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={_MARCA_SOFT: True, "context": context},
    )
    logger.warning("soft_exception_operational error=%s", type(exc).__name__, extra={"context": context})
