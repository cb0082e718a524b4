from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from clinicboard.app.application.estado.contenedor import ContenedorEstado
from clinicboard.app.application.fin_dia.usecases import FinalizarDia
from clinicboard.app.application.modales.store import ModalesStore
from clinicboard.app.application.tablero.alta import RegistrarPacienteSinCita
from clinicboard.app.application.tablero.motor import MotorTransiciones, ResultadoMovimiento
from clinicboard.app.bootstrap_logging import get_logger, log_soft_exception
from clinicboard.app.config import ConfiguracionTablero, cargar_configuracion
from clinicboard.app.domain.tablero import Tablero
from clinicboard.app.infrastructure.sqlite.repos_atenciones import RepositorioAtenciones

LOGGER = get_logger(__name__)


def _ahora() -> datetime:
    return datetime.now().replace(microsecond=0)


@dataclass(slots=True)
class AppContainer:
    connection: sqlite3.Connection
    config: ConfiguracionTablero
    fecha: date
    atenciones_repo: RepositorioAtenciones
    tablero: ContenedorEstado[Tablero]
    modales: ModalesStore
    motor: MotorTransiciones
    finalizar_dia: FinalizarDia
    registrar_sin_cita: RegistrarPacienteSinCita

    def recargar_tablero(self) -> Tablero:
        return self.tablero.reemplazar(self.atenciones_repo.cargar_tablero(self.fecha))

    def close(self) -> None:
        try:
            self.connection.close()
        except sqlite3.Error as exc:
            LOGGER.warning("db_close_failed error=%s", type(exc).__name__)


def build_container(
    connection: sqlite3.Connection,
    config: Optional[ConfiguracionTablero] = None,
    *,
    fecha: Optional[date] = None,
    reloj: Optional[Callable[[], datetime]] = None,
) -> AppContainer:
    connection.row_factory = sqlite3.Row
    config = config or cargar_configuracion()
    fecha = fecha or date.today()
    reloj = reloj or _ahora

    atenciones_repo = RepositorioAtenciones(connection)
    tablero = ContenedorEstado(atenciones_repo.cargar_tablero(fecha), nombre="tablero")
    modales = ModalesStore()

    def _guardar_orden(resultado: ResultadoMovimiento) -> None:
        # Inmediato o tras el modal: cada movimiento confirmado deja el orden persistido.
        if not resultado.sincronizado:
            return
        try:
            atenciones_repo.guardar_orden(tablero.get_state())
        except sqlite3.Error as exc:
            log_soft_exception(LOGGER, exc, {"operacion": "guardar_orden", "ids": list(resultado.atencion_ids)})

    motor = MotorTransiciones(
        tablero,
        modales,
        atenciones_repo,
        politica=config.politica_check_in,
        reloj=reloj,
        al_confirmar=_guardar_orden,
    )
    return AppContainer(
        connection=connection,
        config=config,
        fecha=fecha,
        atenciones_repo=atenciones_repo,
        tablero=tablero,
        modales=modales,
        motor=motor,
        finalizar_dia=FinalizarDia(atenciones_repo),
        registrar_sin_cita=RegistrarPacienteSinCita(atenciones_repo, motor, fecha, reloj),
    )
