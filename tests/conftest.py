from __future__ import annotations

import difflib
import pprint
import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Iterable, List, Optional, Set, Tuple

import pytest

from clinicboard.app.application.estado.contenedor import ContenedorEstado
from clinicboard.app.application.modales.store import ModalesStore
from clinicboard.app.application.ports.atenciones_port import ResultadoOperacion
from clinicboard.app.application.tablero.motor import MotorTransiciones
from clinicboard.app.config import PoliticaCheckIn
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import EstadoAtencion, Prioridad, TipoAtencion
from clinicboard.app.domain.tablero import Tablero
from clinicboard.app.infrastructure.sqlite.db import bootstrap


FECHA_TEST = date(2026, 3, 10)


def hacer_atencion(
    atencion_id: int,
    *,
    paciente_id: Optional[int] = None,
    nombre: Optional[str] = None,
    tipo: TipoAtencion | str = TipoAtencion.SPIRITUAL,
    estado: EstadoAtencion = EstadoAtencion.SCHEDULED,
    prioridad: Prioridad = Prioridad.NORMAL,
    es_primera_atencion: bool = False,
    hora_check_in: Optional[datetime] = None,
    hora_en_curso: Optional[datetime] = None,
) -> Atencion:
    return Atencion(
        id=atencion_id,
        paciente_id=paciente_id if paciente_id is not None else atencion_id,
        paciente_nombre=nombre or f"Paciente {atencion_id}",
        tipo=tipo,
        prioridad=prioridad,
        es_primera_atencion=es_primera_atencion,
        estado=estado,
        hora_check_in=hora_check_in,
        hora_en_curso=hora_en_curso,
    )


class RelojFijo:
    def __init__(self, inicio: datetime) -> None:
        self.ahora = inicio

    def __call__(self) -> datetime:
        return self.ahora

    def avanzar(self, minutos: int) -> datetime:
        self.ahora = self.ahora + timedelta(minutes=minutos)
        return self.ahora


class ActualizadorFalso:
    """Registra cada sincronización; los ids de `fallar` devuelven error."""

    def __init__(self, fallar: Iterable[int] = ()) -> None:
        self.fallar: Set[int] = set(fallar)
        self.llamadas: List[Tuple[int, str, Optional[datetime]]] = []

    def actualizar_estado(
        self, atencion_id: int, nuevo_estado: str, marca: Optional[datetime]
    ) -> ResultadoOperacion:
        self.llamadas.append((atencion_id, nuevo_estado, marca))
        if atencion_id in self.fallar:
            return ResultadoOperacion.fallo("db_caida")
        return ResultadoOperacion.ok()


@pytest.fixture()
def db_connection(tmp_path: Path) -> sqlite3.Connection:
    con = bootstrap(tmp_path / "clinicboard_test.sqlite")
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def reloj() -> RelojFijo:
    return RelojFijo(datetime(2026, 3, 10, 9, 0, 0))


@pytest.fixture()
def tablero_ejemplo() -> Tablero:
    primera_llegada = datetime(2026, 3, 10, 8, 30)
    return Tablero(
        [
            hacer_atencion(1, nombre="Ana", estado=EstadoAtencion.SCHEDULED),
            hacer_atencion(2, nombre="Bruno", estado=EstadoAtencion.SCHEDULED),
            hacer_atencion(3, nombre="Carla", estado=EstadoAtencion.CHECKED_IN, hora_check_in=primera_llegada),
            hacer_atencion(
                101,
                nombre="Diego",
                estado=EstadoAtencion.ON_GOING,
                es_primera_atencion=True,
                hora_check_in=primera_llegada,
                hora_en_curso=primera_llegada + timedelta(minutes=10),
            ),
            hacer_atencion(102, nombre="Elisa", estado=EstadoAtencion.ON_GOING, hora_check_in=primera_llegada),
            hacer_atencion(20, paciente_id=50, nombre="Fabio", tipo=TipoAtencion.LIGHT_BATH),
            hacer_atencion(21, paciente_id=50, nombre="Fabio", tipo=TipoAtencion.ROD),
            hacer_atencion(22, paciente_id=60, nombre="Gala", tipo=TipoAtencion.ROD),
        ],
        fecha=date(2026, 3, 10),
    )


@pytest.fixture()
def nueva_atencion():
    return hacer_atencion


@pytest.fixture()
def actualizador() -> ActualizadorFalso:
    return ActualizadorFalso()


@pytest.fixture()
def modales() -> ModalesStore:
    return ModalesStore()


@pytest.fixture()
def contenedor_tablero(tablero_ejemplo: Tablero) -> ContenedorEstado[Tablero]:
    return ContenedorEstado(tablero_ejemplo, nombre="tablero")


@pytest.fixture()
def motor(contenedor_tablero, modales, actualizador, reloj) -> MotorTransiciones:
    return MotorTransiciones(contenedor_tablero, modales, actualizador, reloj=reloj)


@pytest.fixture()
def crear_motor(contenedor_tablero, modales, actualizador, reloj):
    def _crear(politica: PoliticaCheckIn) -> MotorTransiciones:
        return MotorTransiciones(contenedor_tablero, modales, actualizador, politica=politica, reloj=reloj)

    return _crear


@pytest.fixture()
def assert_expected_actual():
    def _assert(expected: Any, actual: Any, *, message: str) -> None:
        expected_str = pprint.pformat(expected, width=120)
        actual_str = pprint.pformat(actual, width=120)
        diff = "\n".join(
            difflib.unified_diff(
                expected_str.splitlines(),
                actual_str.splitlines(),
                fromfile="expected",
                tofile="actual",
                lineterm="",
            )
        )
        assert expected == actual, (
            f"{message}\nExpected:\n{expected_str}\nActual:\n{actual_str}\nDiff:\n{diff}"
        )

    return _assert
