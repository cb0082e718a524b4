"""
Orquesta el cierre del día sobre el store de modales.

endOfDay (resumen) -> absenceJustification (si hay faltas) -> FinalizarDia.
Cerrar cualquiera de los dos modales deja el día sin finalizar.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from clinicboard.app.application.estado.contenedor import ContenedorEstado
from clinicboard.app.application.fin_dia.usecases import (
    AsistenteFinDia,
    FinalizarDia,
    FlujoJustificacionAusencias,
    PasoFinDia,
    ResultadoFinDia,
    ResumenFinDia,
)
from clinicboard.app.application.modales.store import ModalesStore
from clinicboard.app.application.tablero.enrutamiento import enrutar_ausencias
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.domain.exceptions import FinalizacionDiaError
from clinicboard.app.domain.tablero import Tablero

LOGGER = get_logger(__name__)


class ControladorFinDia:
    def __init__(
        self,
        tablero: ContenedorEstado[Tablero],
        modales: ModalesStore,
        finalizar: FinalizarDia,
        fecha: date,
        *,
        al_terminar: Optional[Callable[[ResultadoFinDia], None]] = None,
        al_fallar: Optional[Callable[[FinalizacionDiaError], None]] = None,
    ) -> None:
        self._tablero = tablero
        self._modales = modales
        self._finalizar = finalizar
        self._fecha = fecha
        self._al_terminar = al_terminar
        self._al_fallar = al_fallar
        self.asistente: Optional[AsistenteFinDia] = None
        self.resultado: Optional[ResultadoFinDia] = None

    @property
    def flujo_activo(self) -> Optional[FlujoJustificacionAusencias]:
        return self.asistente.flujo if self.asistente is not None else None

    def iniciar(self) -> AsistenteFinDia:
        self.asistente = AsistenteFinDia(ResumenFinDia.desde_tablero(self._tablero.get_state()))
        self.resultado = None
        LOGGER.info(
            "fin_dia_iniciado incompletas=%s ausencias=%s",
            len(self.asistente.resumen.incompletas),
            len(self.asistente.resumen.ausencias),
        )
        self._modales.abrir_fin_dia(self._tras_resumen, self._fecha)
        return self.asistente

    def _tras_resumen(self) -> None:
        asistente = self.asistente
        if asistente is None:
            return
        asistente.siguiente()
        modal = enrutar_ausencias(asistente.resumen.ausencias)
        if modal is None:
            asistente.siguiente()
            self._confirmar()
            return
        self._modales.abrir_justificacion_ausencias(
            asistente.resumen.ausencias,
            fecha=self._fecha,
            on_complete=self._tras_justificar,
        )

    def _tras_justificar(self, exito: bool) -> None:
        asistente = self.asistente
        if asistente is None:
            return
        if not exito:
            asistente.atras()
            LOGGER.info("fin_dia_interrumpido paso=%s", asistente.paso.value)
            return
        if not asistente.flujo.terminado:
            asistente.flujo.omitir_todas()
        asistente.siguiente()
        self._confirmar()

    def _confirmar(self) -> None:
        asistente = self.asistente
        if asistente is None or asistente.paso != PasoFinDia.CONFIRM:
            return
        try:
            self.resultado = self._finalizar.execute(
                self._fecha,
                asistente.resumen,
                asistente.flujo.justificaciones,
            )
        except FinalizacionDiaError as exc:
            LOGGER.warning("fin_dia_fallido fallidas=%s", exc.fallidas)
            if self._al_fallar is None:
                raise
            self._al_fallar(exc)
            return
        self.asistente = None
        if self._al_terminar is not None:
            self._al_terminar(self.resultado)
