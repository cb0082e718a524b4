from __future__ import annotations

from datetime import datetime

import pytest

from clinicboard.app.application.tablero.motor import (
    CONFIRMADO,
    PENDIENTE,
    MotorTransiciones,
    SolicitudMovimiento,
    validar_transicion,
)
from clinicboard.app.config import PoliticaCheckIn
from clinicboard.app.domain.enums import ORDEN_ESTADOS, EstadoAtencion, TipoAtencion, TipoModal
from clinicboard.app.domain.exceptions import (
    AttendanceNotFoundError,
    InvalidTransitionError,
    ValidationError,
)


def _soltar(motor, atencion_id: int, destino, indice=None):
    atencion = motor.tablero.obtener(atencion_id)
    return motor.soltar(SolicitudMovimiento.desde_atencion(atencion, destino, indice))


def _ubicacion(motor, atencion_id: int):
    return motor.tablero.localizar(atencion_id)


# ---------------------------------------------------------------------
# Orden de transiciones
# ---------------------------------------------------------------------


@pytest.mark.parametrize("desde", ORDEN_ESTADOS)
@pytest.mark.parametrize("hacia", ORDEN_ESTADOS)
def test_solo_se_permite_un_paso_adelante_o_atras(desde, hacia) -> None:
    salto = ORDEN_ESTADOS.index(hacia) - ORDEN_ESTADOS.index(desde)

    if salto in (1, -1):
        assert validar_transicion(desde, hacia) == (desde, hacia)
    else:
        with pytest.raises(InvalidTransitionError):
            validar_transicion(desde, hacia)


def test_validar_transicion_rechaza_estados_desconocidos() -> None:
    with pytest.raises(InvalidTransitionError):
        validar_transicion("scheduled", "cancelled")


def test_salto_de_dos_pasos_no_modifica_el_tablero(motor, actualizador) -> None:
    antes = motor.tablero.snapshot()

    with pytest.raises(InvalidTransitionError):
        _soltar(motor, 1, EstadoAtencion.ON_GOING)

    assert motor.tablero.snapshot() == antes
    assert actualizador.llamadas == []


def test_origen_que_no_coincide_lanza_not_found(motor) -> None:
    solicitud = SolicitudMovimiento(
        atencion_id=1,
        tipo_atencion=TipoAtencion.SPIRITUAL,
        paciente_nombre="Ana",
        paciente_id=1,
        estado_origen=EstadoAtencion.CHECKED_IN,
        estado_destino=EstadoAtencion.ON_GOING,
    )

    with pytest.raises(AttendanceNotFoundError):
        motor.soltar(solicitud)


# ---------------------------------------------------------------------
# Movimientos confirmados
# ---------------------------------------------------------------------


def test_check_in_confirma_marca_y_sincroniza(motor, actualizador, reloj) -> None:
    resultado = _soltar(motor, 1, EstadoAtencion.CHECKED_IN)

    assert resultado.estado == CONFIRMADO
    assert resultado.atencion_ids == (1,)
    assert resultado.sincronizado is True
    assert _ubicacion(motor, 1) == (TipoAtencion.SPIRITUAL, EstadoAtencion.CHECKED_IN, 1)
    assert motor.tablero.obtener(1).hora_check_in == reloj.ahora
    assert actualizador.llamadas == [(1, "checkedIn", reloj.ahora)]


def test_la_atencion_queda_en_un_solo_bucket(motor) -> None:
    _soltar(motor, 1, EstadoAtencion.CHECKED_IN)
    _soltar(motor, 1, EstadoAtencion.ON_GOING)

    apariciones = [a for a in motor.tablero if a.id == 1]
    assert len(apariciones) == 1
    assert apariciones[0].estado == EstadoAtencion.ON_GOING


def test_deshacer_un_paso_conserva_las_marcas(motor, actualizador) -> None:
    marca_original = motor.tablero.obtener(3).hora_check_in

    resultado = _soltar(motor, 3, EstadoAtencion.SCHEDULED, 0)

    assert resultado.confirmado
    assert _ubicacion(motor, 3) == (TipoAtencion.SPIRITUAL, EstadoAtencion.SCHEDULED, 0)
    assert motor.tablero.obtener(3).hora_check_in == marca_original
    assert actualizador.llamadas[-1] == (3, "scheduled", None)


def test_avanzar_tras_deshacer_dos_pasos_conserva_las_marcas_en_orden(motor, reloj, actualizador) -> None:
    llegada = motor.tablero.obtener(3).hora_check_in
    en_curso = reloj.ahora
    _soltar(motor, 3, EstadoAtencion.ON_GOING)
    reloj.avanzar(5)
    _soltar(motor, 3, EstadoAtencion.CHECKED_IN)
    _soltar(motor, 3, EstadoAtencion.SCHEDULED)
    regreso = reloj.avanzar(30)

    _soltar(motor, 3, EstadoAtencion.CHECKED_IN)
    _soltar(motor, 3, EstadoAtencion.ON_GOING)

    atencion = motor.tablero.obtener(3)
    assert (atencion.hora_check_in, atencion.hora_en_curso) == (llegada, en_curso)
    atencion.validar()
    assert [llamada[2] for llamada in actualizador.llamadas] == [en_curso, None, None, regreso, regreso]


def test_fallo_de_sincronizacion_no_revierte_ni_reintenta(motor, actualizador) -> None:
    actualizador.fallar = {1}

    resultado = _soltar(motor, 1, EstadoAtencion.CHECKED_IN)

    assert resultado.confirmado
    assert resultado.sincronizado is False
    assert resultado.errores == ("1: db_caida",)
    assert _ubicacion(motor, 1)[1] == EstadoAtencion.CHECKED_IN
    assert len(actualizador.llamadas) == 1


def test_marca_anterior_a_la_previa_aborta_sin_cambios(motor, reloj, actualizador) -> None:
    reloj.ahora = datetime(2026, 3, 10, 8, 0)
    antes = motor.tablero.snapshot()

    with pytest.raises(ValidationError):
        _soltar(motor, 3, EstadoAtencion.ON_GOING)

    assert motor.tablero.snapshot() == antes
    assert actualizador.llamadas == []


def test_tipo_desconocido_se_completa_sin_modal(motor, modales, nueva_atencion, reloj) -> None:
    motor.registrar_atencion(
        nueva_atencion(70, tipo="reiki", estado=EstadoAtencion.ON_GOING, hora_check_in=datetime(2026, 3, 10, 8, 0))
    )

    resultado = _soltar(motor, 70, EstadoAtencion.COMPLETED)

    assert resultado.confirmado
    assert resultado.modal is None
    assert modales.estado.abiertos() == []
    assert motor.tablero.obtener(70).hora_completada == reloj.ahora


# ---------------------------------------------------------------------
# Completar con modal
# ---------------------------------------------------------------------


def test_escenario_completar_consulta_espiritual_cancelando_el_modal(motor, modales, actualizador) -> None:
    antes = motor.tablero.snapshot()

    resultado = _soltar(motor, 101, EstadoAtencion.COMPLETED)

    assert resultado.estado == PENDIENTE
    assert resultado.modal == TipoModal.POST_ATTENDANCE
    post = modales.estado.post_atencion
    assert post.is_open is True
    assert post.atencion_id == 101
    assert post.es_primera_atencion is True
    assert _ubicacion(motor, 101)[1] == EstadoAtencion.COMPLETED
    assert motor.tablero.obtener(101).hora_completada is None
    assert actualizador.llamadas == []

    modales.cerrar_modal(TipoModal.POST_ATTENDANCE)

    assert motor.tablero.snapshot() == antes
    assert _ubicacion(motor, 101) == (TipoAtencion.SPIRITUAL, EstadoAtencion.ON_GOING, 0)
    assert motor.esta_pendiente(101) is False
    assert actualizador.llamadas == []
    assert modales.is_open(TipoModal.POST_ATTENDANCE) is False


def test_escenario_completar_consulta_espiritual_enviando_el_modal(motor, modales, actualizador, reloj) -> None:
    _soltar(motor, 101, EstadoAtencion.COMPLETED)
    commit = reloj.avanzar(7)

    modales.resolver_modal(TipoModal.POST_ATTENDANCE, True)

    atencion = motor.tablero.obtener(101)
    assert atencion.estado == EstadoAtencion.COMPLETED
    assert atencion.hora_completada == commit
    assert actualizador.llamadas == [(101, "completed", commit)]
    assert motor.ultimo_resultado.confirmado
    assert motor.esta_pendiente(101) is False


def test_modal_resuelto_con_fallo_revierte(motor, modales) -> None:
    antes = motor.tablero.snapshot()
    _soltar(motor, 102, EstadoAtencion.COMPLETED)

    modales.resolver_modal(TipoModal.POST_ATTENDANCE, False)

    assert motor.tablero.snapshot() == antes


def test_completar_otra_atencion_con_el_modal_abierto_revierte_la_primera(motor, modales, actualizador) -> None:
    _soltar(motor, 101, EstadoAtencion.COMPLETED)

    resultado = _soltar(motor, 102, EstadoAtencion.COMPLETED)

    assert resultado.pendiente
    assert motor.esta_pendiente(101) is False
    assert _ubicacion(motor, 101) == (TipoAtencion.SPIRITUAL, EstadoAtencion.ON_GOING, 0)
    assert modales.estado.post_atencion.atencion_id == 102

    modales.cerrar_modal(TipoModal.POST_ATTENDANCE)

    assert motor.pendientes() == []
    assert [a.id for a in motor.tablero.listar_en_orden(TipoAtencion.SPIRITUAL, EstadoAtencion.ON_GOING)] == [101, 102]
    assert actualizador.llamadas == []


def test_al_confirmar_avisa_movimientos_inmediatos_y_tras_el_modal(contenedor_tablero, modales, reloj) -> None:
    avisos = []
    motor = MotorTransiciones(contenedor_tablero, modales, reloj=reloj, al_confirmar=avisos.append)

    _soltar(motor, 1, EstadoAtencion.CHECKED_IN)
    _soltar(motor, 101, EstadoAtencion.COMPLETED)

    assert [r.atencion_ids for r in avisos] == [(1,)]

    modales.resolver_modal(TipoModal.POST_ATTENDANCE, True)

    assert [r.atencion_ids for r in avisos] == [(1,), (101,)]
    assert all(r.confirmado for r in avisos)


def test_revertir_dos_veces_no_cambia_nada(motor, modales) -> None:
    antes = motor.tablero.snapshot()
    _soltar(motor, 101, EstadoAtencion.COMPLETED)

    modales.cerrar_modal(TipoModal.POST_ATTENDANCE)
    modales.cerrar_modal(TipoModal.POST_ATTENDANCE)

    assert motor.tablero.snapshot() == antes


def test_atencion_pendiente_rechaza_nuevos_arrastres(motor) -> None:
    _soltar(motor, 101, EstadoAtencion.COMPLETED)

    with pytest.raises(InvalidTransitionError):
        _soltar(motor, 101, EstadoAtencion.ON_GOING)

    assert motor.esta_pendiente(101)


def test_cancelar_atencion_pendiente_olvida_el_movimiento(motor, modales, actualizador) -> None:
    _soltar(motor, 101, EstadoAtencion.COMPLETED)

    eliminada = motor.cancelar_atencion(101)
    modales.cerrar_modal(TipoModal.POST_ATTENDANCE)

    assert eliminada is not None
    assert motor.tablero.localizar(101) is None
    assert motor.pendientes() == []
    assert [llamada[:2] for llamada in actualizador.llamadas] == [(101, "cancelled")]


def test_cancelar_atencion_es_idempotente(motor, actualizador) -> None:
    assert motor.cancelar_atencion(2) is not None
    assert motor.cancelar_atencion(2) is None
    assert len(actualizador.llamadas) == 1


# ---------------------------------------------------------------------
# Tratamiento combinado
# ---------------------------------------------------------------------


def test_tratamiento_combinado_mueve_ambas_tarjetas(motor, actualizador) -> None:
    resultado = _soltar(motor, 20, EstadoAtencion.CHECKED_IN)

    assert resultado.atencion_ids == (20, 21)
    assert _ubicacion(motor, 20)[1] == EstadoAtencion.CHECKED_IN
    assert _ubicacion(motor, 21)[1] == EstadoAtencion.CHECKED_IN
    assert _ubicacion(motor, 22)[1] == EstadoAtencion.SCHEDULED
    assert sorted(llamada[0] for llamada in actualizador.llamadas) == [20, 21]


def test_tratamiento_combinado_revierte_en_bloque(motor, modales) -> None:
    _soltar(motor, 20, EstadoAtencion.CHECKED_IN)
    _soltar(motor, 21, EstadoAtencion.ON_GOING)
    antes = motor.tablero.snapshot()

    resultado = _soltar(motor, 20, EstadoAtencion.COMPLETED)

    assert resultado.modal == TipoModal.POST_TREATMENT
    assert resultado.atencion_ids == (20, 21)
    assert modales.estado.post_tratamiento.atencion_id == 20

    modales.cerrar_modal(TipoModal.POST_TREATMENT)

    assert motor.tablero.snapshot() == antes


def test_tratamiento_simple_solo_mueve_su_tarjeta(motor) -> None:
    resultado = _soltar(motor, 22, EstadoAtencion.CHECKED_IN)

    assert resultado.atencion_ids == (22,)


# ---------------------------------------------------------------------
# Políticas de check-in
# ---------------------------------------------------------------------


def test_check_in_de_paciente_nuevo_espera_confirmacion(crear_motor, modales, nueva_atencion, reloj) -> None:
    motor = crear_motor(PoliticaCheckIn(confirmar_paciente_nuevo=True))
    motor.registrar_atencion(nueva_atencion(30, es_primera_atencion=True))
    antes = motor.tablero.snapshot()

    resultado = _soltar(motor, 30, EstadoAtencion.CHECKED_IN)

    assert resultado.pendiente
    assert resultado.modal == TipoModal.NEW_PATIENT_CHECK_IN
    assert modales.estado.check_in_paciente_nuevo.paciente.id == 30
    assert motor.tablero.snapshot() == antes

    modales.resolver_modal(TipoModal.NEW_PATIENT_CHECK_IN, True)

    assert _ubicacion(motor, 30)[1] == EstadoAtencion.CHECKED_IN
    assert motor.tablero.obtener(30).hora_check_in == reloj.ahora
    assert motor.esta_pendiente(30) is False


def test_check_in_de_paciente_nuevo_cancelado_no_mueve(crear_motor, modales, nueva_atencion) -> None:
    motor = crear_motor(PoliticaCheckIn(confirmar_paciente_nuevo=True))
    motor.registrar_atencion(nueva_atencion(30, es_primera_atencion=True))
    antes = motor.tablero.snapshot()

    _soltar(motor, 30, EstadoAtencion.CHECKED_IN)
    modales.cerrar_modal(TipoModal.NEW_PATIENT_CHECK_IN)

    assert motor.tablero.snapshot() == antes
    assert motor.esta_pendiente(30) is False


def test_check_in_multiseccion_confirma_todas_las_secciones(crear_motor, modales, nueva_atencion) -> None:
    motor = crear_motor(PoliticaCheckIn(confirmar_multiples_secciones=True))
    motor.registrar_atencion(nueva_atencion(40, paciente_id=50, nombre="Fabio"))

    resultado = _soltar(motor, 40, EstadoAtencion.CHECKED_IN)
    assert resultado.modal == TipoModal.MULTI_SECTION

    modales.resolver_modal(TipoModal.MULTI_SECTION, True)

    for atencion_id in (40, 20, 21):
        assert _ubicacion(motor, atencion_id)[1] == EstadoAtencion.CHECKED_IN


def test_check_in_multiseccion_solo_la_arrastrada(crear_motor, modales, nueva_atencion) -> None:
    motor = crear_motor(PoliticaCheckIn(confirmar_multiples_secciones=True))
    motor.registrar_atencion(nueva_atencion(40, paciente_id=50, nombre="Fabio"))

    _soltar(motor, 40, EstadoAtencion.CHECKED_IN)
    modales.resolver_modal(TipoModal.MULTI_SECTION, False)

    assert _ubicacion(motor, 40)[1] == EstadoAtencion.CHECKED_IN
    assert _ubicacion(motor, 20)[1] == EstadoAtencion.SCHEDULED
    assert _ubicacion(motor, 21)[1] == EstadoAtencion.SCHEDULED


def test_sin_politicas_el_check_in_es_inmediato(motor, modales, nueva_atencion) -> None:
    motor.registrar_atencion(nueva_atencion(30, es_primera_atencion=True))

    resultado = _soltar(motor, 30, EstadoAtencion.CHECKED_IN)

    assert resultado.confirmado
    assert modales.estado.abiertos() == []
