"""
Muestra el diálogo de cada modal cuando el store lo abre.

El diálogo se lanza en el siguiente ciclo del event loop: el listener corre
dentro de `set_state` y no debe bloquear con `exec()`.
Aceptar -> resolver_modal(tipo, True); rechazar -> cerrar_modal(tipo),
salvo multiSection, donde rechazar es la opción "solo esta sección".
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from PySide6.QtCore import QObject, QTimer
from PySide6.QtWidgets import QDialog, QWidget

from clinicboard.app.application.fin_dia.controlador import ControladorFinDia
from clinicboard.app.application.fin_dia.usecases import FlujoJustificacionAusencias
from clinicboard.app.application.modales.estado import EstadoModales
from clinicboard.app.application.modales.store import ModalesStore
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.domain.enums import TipoModal
from clinicboard.app.pages.tablero.dialogs.confirmaciones import (
    CancelacionDialog,
    CheckInPacienteNuevoDialog,
    MultiSeccionDialog,
)
from clinicboard.app.pages.tablero.dialogs.fin_dia import FinDiaDialog, JustificacionAusenciasDialog
from clinicboard.app.pages.tablero.dialogs.post_atencion import PostAtencionDialog
from clinicboard.app.pages.tablero.dialogs.post_tratamiento import PostTratamientoDialog

LOGGER = get_logger(__name__)


class ModalesHost(QObject):
    def __init__(
        self,
        modales: ModalesStore,
        fin_dia: ControladorFinDia,
        parent: Optional[QWidget] = None,
        *,
        al_cancelar_atencion: Optional[Callable[[int], None]] = None,
    ) -> None:
        super().__init__(parent)
        self._modales = modales
        self._fin_dia = fin_dia
        self._al_cancelar_atencion = al_cancelar_atencion
        self._parent_widget = parent
        self._aperturas: Dict[TipoModal, int] = {}
        self._activos: Dict[TipoModal, QDialog] = {}
        self._unsubscribe: Optional[Callable[[], None]] = modales.subscribe(self._on_cambio)

    def desconectar(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_cambio(self, nuevo: EstadoModales, anterior: EstadoModales) -> None:
        for tipo in TipoModal:
            abierto = nuevo.sub_estado(tipo).is_open
            estaba_abierto = anterior.sub_estado(tipo).is_open
            if abierto and not estaba_abierto:
                apertura = self._aperturas.get(tipo, 0) + 1
                self._aperturas[tipo] = apertura
                QTimer.singleShot(0, lambda tipo=tipo, apertura=apertura: self._mostrar(tipo, apertura))
            elif estaba_abierto and not abierto:
                dialogo = self._activos.pop(tipo, None)
                if dialogo is not None:
                    dialogo.reject()

    def _vigente(self, tipo: TipoModal, apertura: int) -> bool:
        return self._aperturas.get(tipo) == apertura and self._modales.is_open(tipo)

    def _mostrar(self, tipo: TipoModal, apertura: int) -> None:
        if not self._vigente(tipo, apertura):
            return
        sub = self._modales.estado.sub_estado(tipo)
        dialog = self._crear_dialogo(tipo, sub)
        if dialog is None:
            self._modales.cerrar_modal(tipo)
            return
        self._activos[tipo] = dialog
        aceptado = dialog.exec() == QDialog.Accepted
        if self._activos.get(tipo) is dialog:
            del self._activos[tipo]
        LOGGER.debug("modal_dialog_closed tipo=%s aceptado=%s", tipo.value, aceptado)
        # Cerrado o reabierto mientras el diálogo estaba en pantalla: su respuesta ya no aplica.
        if not self._vigente(tipo, apertura):
            return
        if aceptado and tipo == TipoModal.CANCELLATION:
            self._cancelar(sub.atencion_id)
        elif aceptado:
            self._modales.resolver_modal(tipo, True)
        elif tipo == TipoModal.MULTI_SECTION:
            self._modales.resolver_modal(tipo, False)
        else:
            self._modales.cerrar_modal(tipo)

    def _cancelar(self, atencion_id: Optional[int]) -> None:
        self._modales.set_cancelacion_cargando(True)
        if self._al_cancelar_atencion is not None and atencion_id is not None:
            self._al_cancelar_atencion(atencion_id)
        self._modales.resolver_modal(TipoModal.CANCELLATION, True)

    def _crear_dialogo(self, tipo: TipoModal, sub) -> Optional[QDialog]:
        parent = self._parent_widget
        if tipo == TipoModal.POST_ATTENDANCE:
            return PostAtencionDialog(parent, datos=sub)
        if tipo == TipoModal.POST_TREATMENT:
            return PostTratamientoDialog(parent, datos=sub)
        if tipo == TipoModal.MULTI_SECTION:
            return MultiSeccionDialog(parent, paciente_nombre=sub.paciente_nombre)
        if tipo == TipoModal.NEW_PATIENT_CHECK_IN:
            return CheckInPacienteNuevoDialog(parent, paciente=sub.paciente)
        if tipo == TipoModal.END_OF_DAY:
            asistente = self._fin_dia.asistente
            if asistente is None:
                return None
            return FinDiaDialog(parent, resumen=asistente.resumen, fecha=sub.fecha)
        if tipo == TipoModal.ABSENCE_JUSTIFICATION:
            flujo = self._fin_dia.flujo_activo or FlujoJustificacionAusencias(sub.ausencias)
            return JustificacionAusenciasDialog(parent, flujo=flujo)
        return CancelacionDialog(parent, paciente_nombre=sub.paciente_nombre)
