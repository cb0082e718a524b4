# application/modales/store.py
"""
Store de modales del tablero.

Reglas:
- Cada tipo de modal tiene su propio sub-estado; abrir/cerrar uno nunca toca otro.
- `cerrar_modal` limpia todos los datos del tipo para que no se filtren a la siguiente apertura.
- El callback `on_complete` se invoca como mucho una vez por ciclo de vida:
  `resolver_modal(tipo, exito)` lo llama con `exito`; cerrar sin resolver lo llama con False.
- Las mutaciones son síncronas; el trabajo asíncrono (envío de formularios) vive en quien llama.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from clinicboard.app.application.estado.contenedor import ContenedorEstado
from clinicboard.app.application.modales.estado import (
    ATRIBUTO_POR_MODAL,
    EstadoModales,
    OnComplete,
    PacienteBasico,
    SesionTratamiento,
    copiar_estado_modales,
    sub_estado_vacio,
)
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import TipoAtencion, TipoModal

LOGGER = get_logger(__name__)


class ModalesStore:
    def __init__(self, contenedor: Optional[ContenedorEstado[EstadoModales]] = None) -> None:
        self._contenedor = contenedor or ContenedorEstado(
            EstadoModales(),
            nombre="modales",
            copiar=copiar_estado_modales,
        )

    # --------------------------------------------------------------
    # Lectura / suscripción
    # --------------------------------------------------------------

    @property
    def estado(self) -> EstadoModales:
        return self._contenedor.get_state()

    def get_state(self) -> EstadoModales:
        return self._contenedor.get_state()

    def subscribe(self, listener: Callable[[EstadoModales, EstadoModales], None]) -> Callable[[], None]:
        return self._contenedor.subscribe(listener)

    def is_open(self, tipo: TipoModal | str) -> bool:
        return bool(self.estado.sub_estado(tipo).is_open)

    # --------------------------------------------------------------
    # Apertura
    # --------------------------------------------------------------

    def abrir_cancelacion(self, atencion_id: int, paciente_nombre: str) -> None:
        self._abrir(
            TipoModal.CANCELLATION,
            atencion_id=atencion_id,
            paciente_nombre=paciente_nombre,
            cargando=False,
        )

    def abrir_multi_seccion(
        self,
        on_confirm: Callable[[], None],
        on_cancel: Callable[[], None],
        *,
        paciente_nombre: Optional[str] = None,
    ) -> None:
        self._abrir(
            TipoModal.MULTI_SECTION,
            on_confirm=on_confirm,
            on_cancel=on_cancel,
            paciente_nombre=paciente_nombre,
        )

    def abrir_check_in_paciente_nuevo(
        self,
        paciente: PacienteBasico,
        atencion_id: Optional[int] = None,
        on_complete: Optional[OnComplete] = None,
    ) -> None:
        self._abrir(
            TipoModal.NEW_PATIENT_CHECK_IN,
            paciente=paciente,
            atencion_id=atencion_id,
            on_complete=on_complete,
        )

    def abrir_post_tratamiento(
        self,
        *,
        atencion_id: int,
        paciente_id: int,
        paciente_nombre: str,
        tipo_atencion: TipoAtencion | str,
        on_complete: Optional[OnComplete] = None,
    ) -> None:
        self._abrir(
            TipoModal.POST_TREATMENT,
            atencion_id=atencion_id,
            paciente_id=paciente_id,
            paciente_nombre=paciente_nombre,
            tipo_atencion=tipo_atencion,
            sesiones_tratamiento=[],
            cargando_sesiones=False,
            on_complete=on_complete,
        )

    def abrir_post_atencion(
        self,
        *,
        atencion_id: int,
        paciente_id: int,
        paciente_nombre: str,
        tipo_atencion: TipoAtencion | str,
        es_primera_atencion: bool,
        estado_tratamiento_actual: str = "T",
        fecha_inicio_actual: Optional[date] = None,
        semanas_retorno_actual: Optional[int] = None,
        cargando: bool = False,
        datos_iniciales: Optional[Dict[str, Any]] = None,
        on_complete: Optional[OnComplete] = None,
    ) -> None:
        self._abrir(
            TipoModal.POST_ATTENDANCE,
            atencion_id=atencion_id,
            paciente_id=paciente_id,
            paciente_nombre=paciente_nombre,
            tipo_atencion=tipo_atencion,
            estado_tratamiento_actual=estado_tratamiento_actual,
            fecha_inicio_actual=fecha_inicio_actual,
            semanas_retorno_actual=semanas_retorno_actual,
            es_primera_atencion=es_primera_atencion,
            cargando=cargando,
            datos_iniciales=datos_iniciales,
            on_complete=on_complete,
        )

    def abrir_fin_dia(self, on_finalizar: Callable[[], None], fecha: Optional[date] = None) -> None:
        self._abrir(TipoModal.END_OF_DAY, fecha=fecha, on_finalizar=on_finalizar)

    def abrir_justificacion_ausencias(
        self,
        ausencias: Sequence[Atencion],
        *,
        fecha: Optional[date] = None,
        on_complete: Optional[OnComplete] = None,
    ) -> None:
        self._abrir(
            TipoModal.ABSENCE_JUSTIFICATION,
            ausencias=list(ausencias),
            fecha=fecha,
            on_complete=on_complete,
        )

    def _abrir(self, tipo: TipoModal, **datos: Any) -> None:
        """Reabrir un tipo ya abierto cierra antes el anterior (su `on_complete` recibe False)."""
        atributo = ATRIBUTO_POR_MODAL[tipo]
        if self.is_open(tipo):
            LOGGER.info("modal_replaced tipo=%s", tipo.value)
            self.cerrar_modal(tipo)

        def _updater(estado: EstadoModales) -> None:
            sub = getattr(estado, atributo)
            sub.is_open = True
            for nombre, valor in datos.items():
                setattr(sub, nombre, valor)

        self._contenedor.set_state(_updater)
        LOGGER.debug("modal_opened tipo=%s", tipo.value)

    # --------------------------------------------------------------
    # Cierre / resolución
    # --------------------------------------------------------------

    def cerrar_modal(self, tipo: TipoModal | str) -> None:
        """
        Cierra y limpia el modal. Un `on_complete` aún pendiente recibe False:
        cerrar sin enviar equivale a cancelar.
        """
        sub = self._limpiar(TipoModal(tipo))
        callback = getattr(sub, "on_complete", None)
        if callback is not None:
            LOGGER.info("modal_cancelled tipo=%s", TipoModal(tipo).value)
            callback(False)

    def resolver_modal(self, tipo: TipoModal | str, exito: bool = True) -> None:
        """El usuario envió (o falló al enviar) el modal: se cierra y se notifica una sola vez."""
        tipo_modal = TipoModal(tipo)
        sub = self._limpiar(tipo_modal)
        LOGGER.info("modal_resolved tipo=%s exito=%s", tipo_modal.value, exito)
        for callback in _callbacks_de_resolucion(tipo_modal, sub, exito):
            callback()

    def _limpiar(self, tipo: TipoModal) -> Any:
        atributo = ATRIBUTO_POR_MODAL[tipo]
        anterior = getattr(self.estado, atributo)

        def _updater(estado: EstadoModales) -> None:
            setattr(estado, atributo, sub_estado_vacio(tipo))

        self._contenedor.set_state(_updater)
        return anterior

    # --------------------------------------------------------------
    # Setters auxiliares
    # --------------------------------------------------------------

    def set_cancelacion_cargando(self, cargando: bool) -> None:
        self._actualizar(TipoModal.CANCELLATION, cargando=cargando)

    def set_sesiones_post_tratamiento(self, sesiones: Iterable[SesionTratamiento]) -> None:
        self._actualizar(TipoModal.POST_TREATMENT, sesiones_tratamiento=list(sesiones))

    def set_post_tratamiento_cargando(self, cargando: bool) -> None:
        self._actualizar(TipoModal.POST_TREATMENT, cargando_sesiones=cargando)

    def set_post_atencion_cargando(self, cargando: bool) -> None:
        self._actualizar(TipoModal.POST_ATTENDANCE, cargando=cargando)

    def _actualizar(self, tipo: TipoModal, **datos: Any) -> None:
        atributo = ATRIBUTO_POR_MODAL[tipo]

        def _updater(estado: EstadoModales) -> None:
            sub = getattr(estado, atributo)
            for nombre, valor in datos.items():
                setattr(sub, nombre, valor)

        self._contenedor.set_state(_updater)


def _callbacks_de_resolucion(tipo: TipoModal, sub: Any, exito: bool) -> list[Callable[[], None]]:
    if tipo == TipoModal.MULTI_SECTION:
        elegido = sub.on_confirm if exito else sub.on_cancel
        return [elegido] if elegido is not None else []
    if tipo == TipoModal.END_OF_DAY:
        return [sub.on_finalizar] if exito and sub.on_finalizar is not None else []
    callback = getattr(sub, "on_complete", None)
    if callback is None:
        return []
    return [lambda: callback(exito)]
