# infrastructure/sqlite/repos_atenciones.py
"""
Repositorio SQLite para Atenciones.

Responsabilidades:
- Alta y consulta de atenciones por día.
- Cargar el tablero de un día (orden de columna incluido).
- Sincronizar cambios de estado confirmados en el tablero.
- Registrar faltas y días finalizados.

Los fallos de almacenamiento en la sincronización se devuelven en el
ResultadoOperacion; nunca se relanzan hacia el motor del tablero.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import List, Optional, Tuple

from clinicboard.app.application.ports.atenciones_port import ResultadoOperacion
from clinicboard.app.bootstrap_logging import get_logger, log_soft_exception
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import ESTADO_CANCELADA, ORDEN_ESTADOS, EstadoAtencion, Prioridad, TipoAtencion
from clinicboard.app.domain.exceptions import ValidationError
from clinicboard.app.domain.tablero import Tablero
from clinicboard.app.domain.value_objects import _require_non_empty, _strip_or_none
from clinicboard.app.infrastructure.sqlite.sqlite_datetime_codecs import (
    deserialize_date,
    deserialize_datetime,
)

LOGGER = get_logger(__name__)

ESTADO_FALTA = "missed"

_COLUMNA_MARCA: dict[str, str] = {
    EstadoAtencion.CHECKED_IN.value: "hora_check_in",
    EstadoAtencion.ON_GOING.value: "hora_en_curso",
    EstadoAtencion.COMPLETED.value: "hora_completada",
    ESTADO_CANCELADA: "hora_cancelada",
}
_ESTADOS_PERMITIDOS = {estado.value for estado in ORDEN_ESTADOS} | {ESTADO_CANCELADA}


def _row_to_atencion(row: sqlite3.Row) -> Atencion:
    return Atencion(
        id=row["id"],
        paciente_id=row["paciente_id"],
        paciente_nombre=row["paciente_nombre"],
        tipo=row["tipo"],
        prioridad=Prioridad(row["prioridad"]),
        es_primera_atencion=bool(row["es_primera_atencion"]),
        estado=EstadoAtencion(row["estado"]),
        hora_check_in=deserialize_datetime(row["hora_check_in"]),
        hora_en_curso=deserialize_datetime(row["hora_en_curso"]),
        hora_completada=deserialize_datetime(row["hora_completada"]),
    )


class RepositorioAtenciones:
    """
    Acceso a datos de atenciones. Implementa ActualizadorEstadoAtencionPort,
    RegistroFaltasPort, TableroReadPort y AltaAtencionesPort.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._con = connection

    # --------------------------------------------------------------
    # Alta / lectura
    # --------------------------------------------------------------

    def crear(
        self,
        fecha: date,
        *,
        paciente_id: int,
        paciente_nombre: str,
        tipo: TipoAtencion | str,
        prioridad: Prioridad | str = Prioridad.NORMAL,
        es_primera_atencion: bool = False,
    ) -> Atencion:
        """Agenda una atención para `fecha` al final de su columna."""
        nombre = _require_non_empty(paciente_nombre, "paciente_nombre")
        tipo_valor = getattr(tipo, "value", tipo)
        orden = self._con.execute(
            "SELECT COALESCE(MAX(orden), -1) + 1 FROM atenciones WHERE fecha = ? AND tipo = ? AND estado = ?",
            (fecha, tipo_valor, EstadoAtencion.SCHEDULED.value),
        ).fetchone()[0]
        cur = self._con.execute(
            """
            INSERT INTO atenciones (
                fecha, paciente_id, paciente_nombre, tipo, prioridad,
                es_primera_atencion, estado, orden
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                fecha,
                paciente_id,
                nombre,
                tipo_valor,
                Prioridad(prioridad).value,
                int(es_primera_atencion),
                EstadoAtencion.SCHEDULED.value,
                orden,
            ),
        )
        self._con.commit()
        atencion_id = int(cur.lastrowid)
        LOGGER.info("atencion_creada atencion_id=%s tipo=%s", atencion_id, tipo_valor)
        atencion = self.get_by_id(atencion_id)
        if atencion is None:
            raise ValidationError(f"No se pudo leer la atención {atencion_id}.")
        return atencion

    def get_by_id(self, atencion_id: int) -> Optional[Atencion]:
        row = self._con.execute(
            "SELECT * FROM atenciones WHERE id = ? AND estado IN (?, ?, ?, ?)",
            (atencion_id, *(estado.value for estado in ORDEN_ESTADOS)),
        ).fetchone()
        return _row_to_atencion(row) if row else None

    def paciente_id_para(self, nombre: str) -> Tuple[int, bool]:
        """
        Resuelve el paciente por nombre (sin distinguir mayúsculas) en el histórico
        de atenciones. Un nombre desconocido recibe el siguiente id libre.
        """
        buscado = _require_non_empty(nombre, "paciente_nombre").lower()
        rows = self._con.execute("SELECT DISTINCT paciente_id, paciente_nombre FROM atenciones").fetchall()
        for row in rows:
            if row["paciente_nombre"].lower() == buscado:
                return int(row["paciente_id"]), False
        siguiente = self._con.execute("SELECT COALESCE(MAX(paciente_id), 0) + 1 FROM atenciones").fetchone()[0]
        return int(siguiente), True

    def listar_por_fecha(self, fecha: date) -> List[Atencion]:
        """Atenciones del día que siguen en el tablero, en orden de columna."""
        rows = self._con.execute(
            """
            SELECT * FROM atenciones
            WHERE fecha = ? AND estado IN (?, ?, ?, ?)
            ORDER BY orden, id
            """,
            (fecha, *(estado.value for estado in ORDEN_ESTADOS)),
        ).fetchall()
        return [_row_to_atencion(row) for row in rows]

    def cargar_tablero(self, fecha: date) -> Tablero:
        atenciones = self.listar_por_fecha(fecha)
        LOGGER.info("tablero_cargado fecha=%s total=%s", fecha.isoformat(), len(atenciones))
        return Tablero(atenciones, fecha=fecha)

    def guardar_orden(self, tablero: Tablero) -> None:
        """Persiste la posición de cada tarjeta dentro de su columna."""
        filas = []
        for tipo in tablero.tipos:
            for estado in ORDEN_ESTADOS:
                for posicion, atencion in enumerate(tablero.listar_en_orden(tipo, estado)):
                    filas.append((posicion, atencion.id))
        self._con.executemany("UPDATE atenciones SET orden = ? WHERE id = ?", filas)
        self._con.commit()

    # --------------------------------------------------------------
    # Sincronización de estado
    # --------------------------------------------------------------

    def actualizar_estado(
        self,
        atencion_id: int,
        nuevo_estado: str,
        marca: Optional[datetime],
    ) -> ResultadoOperacion:
        """
        Sin `marca` solo cambia el estado (deshacer). Con marca se rellena la
        columna del estado si aún está vacía; una hora ya registrada no se pisa.
        """
        if nuevo_estado not in _ESTADOS_PERMITIDOS:
            return ResultadoOperacion.fallo(f"estado_desconocido:{nuevo_estado}")
        asignaciones = ["estado = ?", "actualizado_en = ?"]
        parametros: list = [nuevo_estado, marca or datetime.now().replace(microsecond=0)]
        columna = _COLUMNA_MARCA.get(nuevo_estado) if marca is not None else None
        if columna:
            asignaciones.append(f"{columna} = COALESCE({columna}, ?)")
            parametros.append(marca)
        try:
            cur = self._con.execute(
                f"UPDATE atenciones SET {', '.join(asignaciones)} WHERE id = ?",
                (*parametros, atencion_id),
            )
            self._con.commit()
        except sqlite3.Error as exc:
            self._con.rollback()
            log_soft_exception(
                LOGGER,
                exc,
                {"operacion": "actualizar_estado", "atencion_id": atencion_id, "estado": nuevo_estado},
            )
            return ResultadoOperacion.fallo(str(exc))
        if cur.rowcount == 0:
            return ResultadoOperacion.fallo("atencion_no_encontrada")
        LOGGER.debug("estado_sincronizado atencion_id=%s estado=%s", atencion_id, nuevo_estado)
        return ResultadoOperacion.ok()

    # --------------------------------------------------------------
    # Fin de día
    # --------------------------------------------------------------

    def marcar_falta(self, atencion_id: int, justificada: bool, notas: str) -> ResultadoOperacion:
        try:
            cur = self._con.execute(
                """
                UPDATE atenciones SET
                    estado = ?,
                    falta_justificada = ?,
                    notas_falta = ?
                WHERE id = ? AND estado = ?
                """,
                (
                    ESTADO_FALTA,
                    int(justificada),
                    _strip_or_none(notas),
                    atencion_id,
                    EstadoAtencion.SCHEDULED.value,
                ),
            )
            self._con.commit()
        except sqlite3.Error as exc:
            self._con.rollback()
            log_soft_exception(LOGGER, exc, {"operacion": "marcar_falta", "atencion_id": atencion_id})
            return ResultadoOperacion.fallo(str(exc))
        if cur.rowcount == 0:
            return ResultadoOperacion.fallo("atencion_no_agendada")
        return ResultadoOperacion.ok()

    def marcar_dia_finalizado(self, fecha: date) -> None:
        self._con.execute(
            "INSERT OR REPLACE INTO dias_finalizados (fecha, finalizado_en) VALUES (?, ?)",
            (fecha, datetime.now().replace(microsecond=0)),
        )
        self._con.commit()

    def dia_finalizado(self, fecha: date) -> bool:
        row = self._con.execute("SELECT 1 FROM dias_finalizados WHERE fecha = ?", (fecha,)).fetchone()
        return row is not None

    def dias_finalizados(self) -> List[date]:
        rows = self._con.execute("SELECT fecha FROM dias_finalizados ORDER BY fecha").fetchall()
        return [deserialize_date(row["fecha"]) for row in rows]
