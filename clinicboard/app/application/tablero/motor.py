# application/tablero/motor.py
"""
Motor de transiciones del tablero (arrastrar y soltar).

Reglas principales:
- Solo se avanza un paso (scheduled → checkedIn → onGoing → completed) o se
  deshace un paso hacia atrás. Cualquier otro salto lanza InvalidTransitionError
  y el tablero no cambia.
- Pasar a completed exige el modal que decida `enrutar_modal`. Mientras el modal
  está abierto el movimiento queda aplicado de forma provisional (sin marca de
  hora). Si el modal termina con éxito se confirma; si falla o se cierra, la
  atención vuelve a su columna y posición de origen.
- El resto de movimientos se confirma en el acto. Avanzar escribe la marca de
  hora del nuevo estado si aún no la tiene; deshacer solo sincroniza el estado
  y no toca ninguna marca.
- Las marcas salen del reloj del motor, nunca de quien llama.

Tratamiento combinado:
- Si el paciente tiene lightBath y rod en la misma columna, arrastrar una de
  las tarjetas mueve ambas (un solo modal, un solo rollback).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from clinicboard.app.application.estado.contenedor import ContenedorEstado
from clinicboard.app.application.modales.estado import PacienteBasico
from clinicboard.app.application.modales.store import ModalesStore
from clinicboard.app.application.ports.atenciones_port import ActualizadorEstadoAtencionPort
from clinicboard.app.application.tablero.enrutamiento import enrutar_modal
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.config import PoliticaCheckIn
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import (
    ESTADO_CANCELADA,
    ORDEN_ESTADOS,
    TIPOS_CONOCIDOS,
    TIPOS_TRATAMIENTO,
    EstadoAtencion,
    EstadoPaciente,
    Prioridad,
    TipoAtencion,
    TipoModal,
    parse_estado,
)
from clinicboard.app.domain.exceptions import AttendanceNotFoundError, InvalidTransitionError
from clinicboard.app.domain.tablero import Tablero

LOGGER = get_logger(__name__)

CONFIRMADO = "committed"
PENDIENTE = "pending"


def _ahora() -> datetime:
    return datetime.now().replace(microsecond=0)


# ---------------------------------------------------------------------
# Tipos auxiliares
# ---------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SolicitudMovimiento:
    atencion_id: int
    tipo_atencion: TipoAtencion | str
    paciente_nombre: str
    paciente_id: int
    estado_origen: EstadoAtencion | str
    estado_destino: EstadoAtencion | str
    es_primera_atencion: bool = False
    prioridad: Prioridad | str = Prioridad.NORMAL
    indice_destino: Optional[int] = None

    @classmethod
    def desde_atencion(
        cls,
        atencion: Atencion,
        estado_destino: EstadoAtencion | str,
        indice_destino: Optional[int] = None,
    ) -> "SolicitudMovimiento":
        return cls(
            atencion_id=atencion.id,
            tipo_atencion=atencion.tipo,
            paciente_nombre=atencion.paciente_nombre,
            paciente_id=atencion.paciente_id,
            estado_origen=atencion.estado,
            estado_destino=estado_destino,
            es_primera_atencion=atencion.es_primera_atencion,
            prioridad=atencion.prioridad,
            indice_destino=indice_destino,
        )


@dataclass(frozen=True, slots=True)
class ResultadoMovimiento:
    estado: str
    atencion_ids: Tuple[int, ...]
    modal: Optional[TipoModal] = None
    sincronizado: bool = True
    errores: Tuple[str, ...] = ()

    @property
    def confirmado(self) -> bool:
        return self.estado == CONFIRMADO

    @property
    def pendiente(self) -> bool:
        return self.estado == PENDIENTE


@dataclass(slots=True)
class MovimientoPendiente:
    atencion_ids: Tuple[int, ...]
    origen: EstadoAtencion
    destino: EstadoAtencion
    modal: TipoModal
    indices_originales: Dict[int, int] = field(default_factory=dict)
    provisional: bool = True


def validar_transicion(
    desde: EstadoAtencion | str,
    hacia: EstadoAtencion | str,
) -> Tuple[EstadoAtencion, EstadoAtencion]:
    """Un paso adelante o un paso atrás; nada más."""
    estado_desde = parse_estado(desde)
    estado_hacia = parse_estado(hacia)
    if estado_desde is None or estado_hacia is None:
        raise InvalidTransitionError(str(desde), str(hacia), "estado desconocido")
    salto = ORDEN_ESTADOS.index(estado_hacia) - ORDEN_ESTADOS.index(estado_desde)
    if salto not in (1, -1):
        raise InvalidTransitionError(estado_desde.value, estado_hacia.value)
    return estado_desde, estado_hacia


def es_avance(desde: EstadoAtencion, hacia: EstadoAtencion) -> bool:
    return ORDEN_ESTADOS.index(hacia) > ORDEN_ESTADOS.index(desde)


# ---------------------------------------------------------------------
# Motor
# ---------------------------------------------------------------------


class MotorTransiciones:
    def __init__(
        self,
        tablero: ContenedorEstado[Tablero],
        modales: ModalesStore,
        actualizador: Optional[ActualizadorEstadoAtencionPort] = None,
        *,
        politica: PoliticaCheckIn = PoliticaCheckIn(),
        reloj: Callable[[], datetime] = _ahora,
        al_confirmar: Optional[Callable[[ResultadoMovimiento], None]] = None,
    ) -> None:
        self._tablero = tablero
        self._modales = modales
        self._actualizador = actualizador
        self._politica = politica
        self._reloj = reloj
        self._al_confirmar = al_confirmar
        self._pendientes: Dict[int, MovimientoPendiente] = {}
        self.ultimo_resultado: Optional[ResultadoMovimiento] = None

    @property
    def tablero(self) -> Tablero:
        return self._tablero.get_state()

    def esta_pendiente(self, atencion_id: int) -> bool:
        return atencion_id in self._pendientes

    def pendientes(self) -> List[MovimientoPendiente]:
        unicos: List[MovimientoPendiente] = []
        for pendiente in self._pendientes.values():
            if not any(p is pendiente for p in unicos):
                unicos.append(pendiente)
        return unicos

    # -----------------------------------------------------------------
    # API pública
    # -----------------------------------------------------------------

    def soltar(self, solicitud: SolicitudMovimiento) -> ResultadoMovimiento:
        try:
            desde, hacia = validar_transicion(solicitud.estado_origen, solicitud.estado_destino)
            atencion = self._atencion_en(solicitud.atencion_id, desde)
            if self.esta_pendiente(atencion.id):
                raise InvalidTransitionError(desde.value, hacia.value, "pendiente de confirmación")
        except (InvalidTransitionError, AttendanceNotFoundError) as exc:
            LOGGER.debug("movimiento_rechazado atencion_id=%s motivo=%s", solicitud.atencion_id, exc)
            raise

        grupo = self._grupo_a_mover(atencion, desde)

        if hacia == EstadoAtencion.COMPLETED:
            modal = enrutar_modal(atencion.tipo, solicitud.es_primera_atencion, solicitud.prioridad)
            if modal is not None:
                return self._mover_provisional(solicitud, atencion, grupo, desde, hacia, modal)

        if desde == EstadoAtencion.SCHEDULED and hacia == EstadoAtencion.CHECKED_IN:
            resultado = self._aplicar_politica_check_in(solicitud, atencion, grupo)
            if resultado is not None:
                return resultado

        return self._confirmar(grupo, desde, hacia, solicitud.indice_destino)

    def registrar_atencion(self, atencion: Atencion, indice: Optional[int] = None) -> None:
        """Alta en el tablero (agenda o paciente sin cita)."""
        self._tablero.set_state(lambda tablero: tablero.agregar(atencion.copiar(), indice))
        LOGGER.info("atencion_registrada atencion_id=%s tipo=%s", atencion.id, atencion.tipo)

    def cancelar_atencion(self, atencion_id: int) -> Optional[Atencion]:
        """
        Cancelación explícita: quita la atención (idempotente) y olvida cualquier
        movimiento pendiente que la incluya.
        """
        eliminada: List[Optional[Atencion]] = [None]

        def _updater(tablero: Tablero) -> None:
            eliminada[0] = tablero.eliminar_atencion(atencion_id)

        self._tablero.set_state(_updater)
        pendiente = self._pendientes.get(atencion_id)
        if pendiente is not None:
            self._olvidar(pendiente)
        if eliminada[0] is None:
            return None
        LOGGER.info("atencion_cancelada atencion_id=%s", atencion_id)
        self._sincronizar((atencion_id,), ESTADO_CANCELADA, self._reloj())
        return eliminada[0]

    # -----------------------------------------------------------------
    # Internos
    # -----------------------------------------------------------------

    def _atencion_en(self, atencion_id: int, estado: EstadoAtencion) -> Atencion:
        ubicacion = self.tablero.localizar(atencion_id)
        if ubicacion is None or ubicacion[1] != estado:
            raise AttendanceNotFoundError(atencion_id, estado.value)
        return self.tablero.obtener(atencion_id)

    def _grupo_a_mover(self, atencion: Atencion, desde: EstadoAtencion) -> List[Atencion]:
        if atencion.tipo not in TIPOS_TRATAMIENTO:
            return [atencion]
        tratamientos = self.tablero.atenciones_de_paciente(atencion.paciente_id, desde, TIPOS_TRATAMIENTO)
        tipos = {a.tipo for a in tratamientos}
        if len(tipos) < 2:
            return [atencion]
        # El arrastrado primero: es el único que respeta indice_destino.
        return [atencion] + [a for a in tratamientos if a.id != atencion.id]

    def _confirmar(
        self,
        grupo: List[Atencion],
        desde: EstadoAtencion,
        hacia: EstadoAtencion,
        indice_destino: Optional[int] = None,
    ) -> ResultadoMovimiento:
        ids = tuple(a.id for a in grupo)
        ahora = self._reloj()
        avanza = es_avance(desde, hacia)

        def _updater(tablero: Tablero) -> None:
            for posicion, atencion_id in enumerate(ids):
                movida = tablero.mover_atencion(
                    atencion_id, desde, hacia, indice_destino if posicion == 0 else None
                )
                if avanza:
                    movida.registrar_marca(hacia, ahora)

        self._tablero.set_state(_updater)
        LOGGER.info("movimiento_confirmado ids=%s desde=%s hacia=%s", list(ids), desde.value, hacia.value)
        sincronizado = self._sincronizar(ids, hacia.value, ahora if avanza else None)
        return self._publicar(CONFIRMADO, ids, None, *sincronizado)

    def _mover_provisional(
        self,
        solicitud: SolicitudMovimiento,
        atencion: Atencion,
        grupo: List[Atencion],
        desde: EstadoAtencion,
        hacia: EstadoAtencion,
        modal: TipoModal,
    ) -> ResultadoMovimiento:
        if self._modales.is_open(modal):
            # Un modal por tipo: el movimiento que lo tenía abierto vuelve a su origen.
            self._modales.cerrar_modal(modal)
        ids = tuple(a.id for a in grupo)
        indices = {atencion_id: self.tablero.localizar(atencion_id)[2] for atencion_id in ids}
        pendiente = MovimientoPendiente(
            atencion_ids=ids,
            origen=desde,
            destino=hacia,
            modal=modal,
            indices_originales=indices,
        )

        def _updater(tablero: Tablero) -> None:
            for posicion, atencion_id in enumerate(ids):
                tablero.mover_atencion(
                    atencion_id, desde, hacia, solicitud.indice_destino if posicion == 0 else None
                )

        self._tablero.set_state(_updater)
        for atencion_id in ids:
            self._pendientes[atencion_id] = pendiente
        LOGGER.info("movimiento_pendiente ids=%s modal=%s", list(ids), modal.value)

        def _al_completar(exito: bool) -> None:
            self._finalizar_pendiente(pendiente, exito)

        if modal == TipoModal.POST_ATTENDANCE:
            self._modales.abrir_post_atencion(
                atencion_id=atencion.id,
                paciente_id=atencion.paciente_id,
                paciente_nombre=atencion.paciente_nombre,
                tipo_atencion=atencion.tipo,
                es_primera_atencion=solicitud.es_primera_atencion,
                on_complete=_al_completar,
            )
        else:
            self._modales.abrir_post_tratamiento(
                atencion_id=atencion.id,
                paciente_id=atencion.paciente_id,
                paciente_nombre=atencion.paciente_nombre,
                tipo_atencion=atencion.tipo,
                on_complete=_al_completar,
            )
        return self._publicar(PENDIENTE, ids, modal)

    def _finalizar_pendiente(self, pendiente: MovimientoPendiente, exito: bool) -> None:
        if not any(p is pendiente for p in self._pendientes.values()):
            return
        self._olvidar(pendiente)
        vigentes = [
            atencion_id
            for atencion_id in pendiente.atencion_ids
            if self._en_estado(atencion_id, pendiente.destino)
        ]
        if exito:
            ahora = self._reloj()

            def _confirmar(tablero: Tablero) -> None:
                for atencion_id in vigentes:
                    tablero.obtener(atencion_id).registrar_marca(pendiente.destino, ahora)

            self._tablero.set_state(_confirmar)
            LOGGER.info("movimiento_confirmado ids=%s hacia=%s", vigentes, pendiente.destino.value)
            self._publicar(
                CONFIRMADO,
                tuple(vigentes),
                pendiente.modal,
                *self._sincronizar(tuple(vigentes), pendiente.destino.value, ahora),
            )
            return

        orden = sorted(vigentes, key=lambda atencion_id: pendiente.indices_originales[atencion_id])

        def _revertir(tablero: Tablero) -> None:
            for atencion_id in orden:
                tablero.mover_atencion(
                    atencion_id,
                    pendiente.destino,
                    pendiente.origen,
                    pendiente.indices_originales[atencion_id],
                )

        self._tablero.set_state(_revertir)
        LOGGER.info("movimiento_revertido ids=%s origen=%s", orden, pendiente.origen.value)

    def _aplicar_politica_check_in(
        self,
        solicitud: SolicitudMovimiento,
        atencion: Atencion,
        grupo: List[Atencion],
    ) -> Optional[ResultadoMovimiento]:
        desde, hacia = EstadoAtencion.SCHEDULED, EstadoAtencion.CHECKED_IN
        ids = tuple(a.id for a in grupo)

        if self._politica.confirmar_paciente_nuevo and solicitud.es_primera_atencion:
            pendiente = MovimientoPendiente(
                atencion_ids=ids,
                origen=desde,
                destino=hacia,
                modal=TipoModal.NEW_PATIENT_CHECK_IN,
                provisional=False,
            )
            for atencion_id in ids:
                self._pendientes[atencion_id] = pendiente

            def _al_completar_check_in(exito: bool) -> None:
                if not any(p is pendiente for p in self._pendientes.values()):
                    return
                self._olvidar(pendiente)
                if exito:
                    self._confirmar_vigentes(ids, desde, hacia, solicitud.indice_destino)

            self._modales.abrir_check_in_paciente_nuevo(
                PacienteBasico(
                    id=atencion.paciente_id,
                    nombre=atencion.paciente_nombre,
                    prioridad=atencion.prioridad,
                    estado=EstadoPaciente.NUEVO,
                ),
                atencion_id=atencion.id,
                on_complete=_al_completar_check_in,
            )
            return self._publicar(PENDIENTE, ids, TipoModal.NEW_PATIENT_CHECK_IN)

        if self._politica.confirmar_multiples_secciones:
            agendadas = self.tablero.atenciones_de_paciente(atencion.paciente_id, desde, TIPOS_CONOCIDOS)
            tiene_espiritual = any(a.tipo == TipoAtencion.SPIRITUAL for a in agendadas)
            tiene_tratamiento = any(a.tipo in TIPOS_TRATAMIENTO for a in agendadas)
            if tiene_espiritual and tiene_tratamiento:
                todas = tuple(a.id for a in agendadas)

                def _confirmar_todas() -> None:
                    self._confirmar_vigentes(todas, desde, hacia, None)

                def _solo_arrastrada() -> None:
                    self._confirmar_vigentes(ids, desde, hacia, solicitud.indice_destino)

                self._modales.abrir_multi_seccion(
                    _confirmar_todas,
                    _solo_arrastrada,
                    paciente_nombre=atencion.paciente_nombre,
                )
                return self._publicar(PENDIENTE, ids, TipoModal.MULTI_SECTION)
        return None

    def _confirmar_vigentes(
        self,
        ids: Tuple[int, ...],
        desde: EstadoAtencion,
        hacia: EstadoAtencion,
        indice_destino: Optional[int],
    ) -> None:
        """Confirma diferido: ignora las atenciones que ya no están en `desde`."""
        grupo = [self.tablero.obtener(i) for i in ids if self._en_estado(i, desde)]
        if grupo:
            self._confirmar(grupo, desde, hacia, indice_destino)

    def _en_estado(self, atencion_id: int, estado: EstadoAtencion) -> bool:
        ubicacion = self.tablero.localizar(atencion_id)
        return ubicacion is not None and ubicacion[1] == estado

    def _olvidar(self, pendiente: MovimientoPendiente) -> None:
        for atencion_id in pendiente.atencion_ids:
            if self._pendientes.get(atencion_id) is pendiente:
                del self._pendientes[atencion_id]

    def _sincronizar(
        self, ids: Tuple[int, ...], estado: str, marca: Optional[datetime]
    ) -> Tuple[bool, Tuple[str, ...]]:
        if self._actualizador is None:
            return True, ()
        errores: List[str] = []
        for atencion_id in ids:
            resultado = self._actualizador.actualizar_estado(atencion_id, estado, marca)
            if not resultado.success:
                LOGGER.warning(
                    "sincronizacion_fallida atencion_id=%s estado=%s error=%s",
                    atencion_id,
                    estado,
                    resultado.error,
                )
                errores.append(f"{atencion_id}: {resultado.error or 'error desconocido'}")
        return not errores, tuple(errores)

    def _publicar(
        self,
        estado: str,
        ids: Tuple[int, ...],
        modal: Optional[TipoModal],
        sincronizado: bool = True,
        errores: Tuple[str, ...] = (),
    ) -> ResultadoMovimiento:
        resultado = ResultadoMovimiento(
            estado=estado,
            atencion_ids=ids,
            modal=modal,
            sincronizado=sincronizado,
            errores=errores,
        )
        self.ultimo_resultado = resultado
        if resultado.confirmado and self._al_confirmar is not None:
            self._al_confirmar(resultado)
        return resultado
