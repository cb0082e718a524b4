# config.py
"""
Configuración de ClinicBoard desde variables de entorno.

Variables:
- CLINICBOARD_DB_PATH: ruta SQLite (":memory:" permitido).
- CLINICBOARD_LOG_DIR / CLINICBOARD_LOG_LEVEL / CLINICBOARD_LOG_JSON.
- CLINICBOARD_CHECKIN_PACIENTE_NUEVO: abre el check-in de paciente nuevo antes de mover.
- CLINICBOARD_CHECKIN_MULTISECCION: pregunta si hacer check-in en todas las secciones.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from clinicboard.app.bootstrap_logging import get_logger

LOGGER = get_logger(__name__)

_VALORES_VERDADEROS = {"1", "true", "yes", "si", "sí", "on"}


def _is_special_sqlite_path(raw_path: str) -> bool:
    return raw_path == ":memory:" or raw_path.startswith("file:")


def _flag(env: Mapping[str, str], nombre: str, default: str = "0") -> bool:
    return env.get(nombre, default).strip().lower() in _VALORES_VERDADEROS


@dataclass(frozen=True, slots=True)
class PoliticaCheckIn:
    """Modales opcionales que se abren antes de confirmar un check-in."""

    confirmar_paciente_nuevo: bool = False
    confirmar_multiples_secciones: bool = False


@dataclass(frozen=True, slots=True)
class ConfiguracionTablero:
    db_path: Path
    log_dir: Path
    log_level: str = "INFO"
    log_json: bool = True
    politica_check_in: PoliticaCheckIn = PoliticaCheckIn()


def data_dir() -> Path:
    """Directorio donde se guarda la base de datos."""
    return Path("./data")


def resolve_db_path(raw: Optional[str] = None, *, env: Optional[Mapping[str, str]] = None) -> Path:
    """Resuelve la ruta SQLite desde argumento/entorno/default."""
    entorno = os.environ if env is None else env
    configurada = raw or entorno.get("CLINICBOARD_DB_PATH")
    if configurada:
        if _is_special_sqlite_path(configurada):
            return Path(configurada)
        return Path(configurada).expanduser().resolve()
    return (data_dir() / "clinicboard.db").expanduser().resolve()


def cargar_configuracion(env: Optional[Mapping[str, str]] = None) -> ConfiguracionTablero:
    entorno = os.environ if env is None else env
    config = ConfiguracionTablero(
        db_path=resolve_db_path(env=entorno),
        log_dir=Path(entorno.get("CLINICBOARD_LOG_DIR", "./logs")),
        log_level=entorno.get("CLINICBOARD_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        log_json=_flag(entorno, "CLINICBOARD_LOG_JSON", "1"),
        politica_check_in=PoliticaCheckIn(
            confirmar_paciente_nuevo=_flag(entorno, "CLINICBOARD_CHECKIN_PACIENTE_NUEVO"),
            confirmar_multiples_secciones=_flag(entorno, "CLINICBOARD_CHECKIN_MULTISECCION"),
        ),
    )
    LOGGER.debug("config_loaded db_path=%s log_level=%s", config.db_path, config.log_level)
    return config
