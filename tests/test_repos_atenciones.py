from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from clinicboard.app.application.tablero.motor import SolicitudMovimiento
from clinicboard.app.config import ConfiguracionTablero
from clinicboard.app.container import build_container
from clinicboard.app.domain.enums import EstadoAtencion, Prioridad, TipoAtencion, TipoModal
from clinicboard.app.domain.exceptions import ValidationError
from clinicboard.app.infrastructure.sqlite.repos_atenciones import RepositorioAtenciones

FECHA = date(2026, 3, 10)


def _fila(con, atencion_id: int):
    return con.execute("SELECT * FROM atenciones WHERE id = ?", (atencion_id,)).fetchone()


def test_crear_agenda_al_final_de_su_columna(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)

    ana = repo.crear(FECHA, paciente_id=1, paciente_nombre=" Ana ", tipo=TipoAtencion.SPIRITUAL)
    bruno = repo.crear(FECHA, paciente_id=2, paciente_nombre="Bruno", tipo="spiritual", prioridad="1")
    repo.crear(FECHA, paciente_id=3, paciente_nombre="Carla", tipo=TipoAtencion.ROD)

    assert ana.paciente_nombre == "Ana"
    assert ana.estado == EstadoAtencion.SCHEDULED
    assert bruno.prioridad == Prioridad.EMERGENCIA
    assert (_fila(db_connection, ana.id)["orden"], _fila(db_connection, bruno.id)["orden"]) == (0, 1)


def test_crear_rechaza_nombre_vacio(db_connection) -> None:
    with pytest.raises(ValidationError):
        RepositorioAtenciones(db_connection).crear(FECHA, paciente_id=1, paciente_nombre="  ", tipo="rod")


def test_cargar_tablero_solo_incluye_el_dia_pedido(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    repo.crear(date(2026, 3, 11), paciente_id=2, paciente_nombre="Otro día", tipo="spiritual")

    tablero = repo.cargar_tablero(FECHA)

    assert tablero.fecha == FECHA
    assert [x.id for x in tablero] == [a.id]


def test_guardar_orden_persiste_la_posicion_en_columna(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    b = repo.crear(FECHA, paciente_id=2, paciente_nombre="Bruno", tipo="spiritual")
    tablero = repo.cargar_tablero(FECHA)
    tablero.mover_atencion(b.id, EstadoAtencion.SCHEDULED, EstadoAtencion.SCHEDULED, 0)

    repo.guardar_orden(tablero)

    assert [x.id for x in repo.listar_por_fecha(FECHA)] == [b.id, a.id]


def test_actualizar_estado_guarda_la_marca_del_estado(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    marca = datetime(2026, 3, 10, 9, 15, 0)

    resultado = repo.actualizar_estado(a.id, "checkedIn", marca)

    assert resultado.success is True
    leida = repo.get_by_id(a.id)
    assert leida.estado == EstadoAtencion.CHECKED_IN
    assert leida.hora_check_in == marca


def test_actualizar_estado_sin_marca_no_toca_las_horas(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    llegada = datetime(2026, 3, 10, 9, 0)
    repo.actualizar_estado(a.id, "checkedIn", llegada)
    repo.actualizar_estado(a.id, "onGoing", llegada + timedelta(minutes=5))

    resultado = repo.actualizar_estado(a.id, "checkedIn", None)

    assert resultado.success is True
    leida = repo.get_by_id(a.id)
    assert leida.estado == EstadoAtencion.CHECKED_IN
    assert (leida.hora_check_in, leida.hora_en_curso) == (llegada, llegada + timedelta(minutes=5))
    assert _fila(db_connection, a.id)["actualizado_en"] is not None


def test_actualizar_estado_no_pisa_una_hora_ya_registrada(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    repo.actualizar_estado(a.id, "checkedIn", datetime(2026, 3, 10, 9, 0))
    repo.actualizar_estado(a.id, "onGoing", datetime(2026, 3, 10, 9, 5))
    repo.actualizar_estado(a.id, "scheduled", None)

    repo.actualizar_estado(a.id, "checkedIn", datetime(2026, 3, 10, 9, 30))

    leida = repo.get_by_id(a.id)
    assert leida.estado == EstadoAtencion.CHECKED_IN
    assert (leida.hora_check_in, leida.hora_en_curso) == (datetime(2026, 3, 10, 9, 0), datetime(2026, 3, 10, 9, 5))


def test_actualizar_estado_cancelada_sale_del_tablero(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")

    resultado = repo.actualizar_estado(a.id, "cancelled", datetime(2026, 3, 10, 9, 0))

    assert resultado.success is True
    assert repo.get_by_id(a.id) is None
    assert _fila(db_connection, a.id)["hora_cancelada"] is not None


def test_actualizar_estado_devuelve_fallo_sin_lanzar(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)

    desconocido = repo.actualizar_estado(1, "archivado", datetime(2026, 3, 10, 9, 0))
    inexistente = repo.actualizar_estado(999, "checkedIn", datetime(2026, 3, 10, 9, 0))

    assert desconocido.success is False and desconocido.error.startswith("estado_desconocido")
    assert inexistente.success is False and inexistente.error == "atencion_no_encontrada"


def test_marcar_falta_solo_afecta_a_agendadas(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    b = repo.crear(FECHA, paciente_id=2, paciente_nombre="Bruno", tipo="spiritual")
    repo.actualizar_estado(b.id, "checkedIn", datetime(2026, 3, 10, 9, 0))

    ok = repo.marcar_falta(a.id, True, "  médico ")
    rechazada = repo.marcar_falta(b.id, False, "")

    assert ok.success is True
    assert rechazada.success is False and rechazada.error == "atencion_no_agendada"
    fila = _fila(db_connection, a.id)
    assert (fila["estado"], fila["falta_justificada"], fila["notas_falta"]) == ("missed", 1, "médico")
    assert [x.id for x in repo.listar_por_fecha(FECHA)] == [b.id]


def test_dias_finalizados(db_connection) -> None:
    repo = RepositorioAtenciones(db_connection)

    assert repo.dia_finalizado(FECHA) is False
    repo.marcar_dia_finalizado(FECHA)
    repo.marcar_dia_finalizado(FECHA)
    repo.marcar_dia_finalizado(date(2026, 3, 9))

    assert repo.dia_finalizado(FECHA) is True
    assert repo.dias_finalizados() == [date(2026, 3, 9), FECHA]


def test_contenedor_sincroniza_el_movimiento_con_la_base(db_connection, reloj, tmp_path) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    config = ConfiguracionTablero(db_path=tmp_path / "x.sqlite", log_dir=tmp_path / "logs")
    container = build_container(db_connection, config, fecha=FECHA, reloj=reloj)

    resultado = container.motor.soltar(
        SolicitudMovimiento.desde_atencion(container.tablero.get_state().obtener(a.id), EstadoAtencion.CHECKED_IN)
    )

    assert resultado.confirmado and resultado.sincronizado
    leida = repo.get_by_id(a.id)
    assert leida.estado == EstadoAtencion.CHECKED_IN
    assert leida.hora_check_in == reloj.ahora
    assert container.recargar_tablero().localizar(a.id)[1] == EstadoAtencion.CHECKED_IN


def _contenedor(db_connection, reloj, tmp_path):
    config = ConfiguracionTablero(db_path=tmp_path / "x.sqlite", log_dir=tmp_path / "logs")
    return build_container(db_connection, config, fecha=FECHA, reloj=reloj)


def _mover(container, atencion_id: int, destino, indice=None):
    atencion = container.tablero.get_state().obtener(atencion_id)
    return container.motor.soltar(SolicitudMovimiento.desde_atencion(atencion, destino, indice))


def test_deshacer_en_curso_y_recargar_conserva_las_horas(db_connection, reloj, tmp_path) -> None:
    a = RepositorioAtenciones(db_connection).crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    container = _contenedor(db_connection, reloj, tmp_path)
    llegada = reloj.ahora
    _mover(container, a.id, EstadoAtencion.CHECKED_IN)
    en_curso = reloj.avanzar(5)
    _mover(container, a.id, EstadoAtencion.ON_GOING)
    reloj.avanzar(5)

    resultado = _mover(container, a.id, EstadoAtencion.CHECKED_IN)

    assert resultado.sincronizado
    recargada = container.recargar_tablero().obtener(a.id)
    assert recargada.estado == EstadoAtencion.CHECKED_IN
    assert (recargada.hora_check_in, recargada.hora_en_curso) == (llegada, en_curso)


def test_volver_a_llegar_tras_deshacer_dos_pasos_recarga_sin_errores(db_connection, reloj, tmp_path) -> None:
    a = RepositorioAtenciones(db_connection).crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    container = _contenedor(db_connection, reloj, tmp_path)
    llegada = reloj.ahora
    _mover(container, a.id, EstadoAtencion.CHECKED_IN)
    en_curso = reloj.avanzar(5)
    _mover(container, a.id, EstadoAtencion.ON_GOING)
    _mover(container, a.id, EstadoAtencion.CHECKED_IN)
    _mover(container, a.id, EstadoAtencion.SCHEDULED)
    reloj.avanzar(30)

    _mover(container, a.id, EstadoAtencion.CHECKED_IN)
    _mover(container, a.id, EstadoAtencion.ON_GOING)

    recargada = container.recargar_tablero().obtener(a.id)
    assert recargada.estado == EstadoAtencion.ON_GOING
    assert (recargada.hora_check_in, recargada.hora_en_curso) == (llegada, en_curso)


def test_completar_tras_el_modal_persiste_el_orden_de_la_columna(db_connection, reloj, tmp_path) -> None:
    repo = RepositorioAtenciones(db_connection)
    a = repo.crear(FECHA, paciente_id=1, paciente_nombre="Ana", tipo="spiritual")
    b = repo.crear(FECHA, paciente_id=2, paciente_nombre="Bruno", tipo="spiritual")
    container = _contenedor(db_connection, reloj, tmp_path)
    for atencion_id, indice in ((a.id, None), (b.id, 0)):
        _mover(container, atencion_id, EstadoAtencion.CHECKED_IN)
        _mover(container, atencion_id, EstadoAtencion.ON_GOING)
        assert _mover(container, atencion_id, EstadoAtencion.COMPLETED, indice).pendiente
        container.modales.resolver_modal(TipoModal.POST_ATTENDANCE, True)

    recargado = container.recargar_tablero()

    completadas = recargado.listar_en_orden(TipoAtencion.SPIRITUAL, EstadoAtencion.COMPLETED)
    assert [x.id for x in completadas] == [b.id, a.id]
