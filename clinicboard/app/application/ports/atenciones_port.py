from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Protocol, Tuple

from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import Prioridad, TipoAtencion
from clinicboard.app.domain.tablero import Tablero


@dataclass(frozen=True, slots=True)
class ResultadoOperacion:
    """Sobre de respuesta de los colaboradores de persistencia."""

    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ResultadoOperacion":
        return cls(success=True)

    @classmethod
    def fallo(cls, error: str) -> "ResultadoOperacion":
        return cls(success=False, error=error)


class ActualizadorEstadoAtencionPort(Protocol):
    """Sincroniza un cambio de estado confirmado en el tablero."""

    def actualizar_estado(self, atencion_id: int, nuevo_estado: str, marca: Optional[datetime]) -> ResultadoOperacion:
        """
        Persiste el estado; nunca lanza por fallos de almacenamiento, los devuelve en el sobre.

        `marca` None: el estado cambia sin tocar ninguna hora registrada.
        """


class RegistroFaltasPort(Protocol):
    """Registra las faltas detectadas al cerrar el día."""

    def marcar_falta(self, atencion_id: int, justificada: bool, notas: str) -> ResultadoOperacion:
        ...

    def marcar_dia_finalizado(self, fecha: date) -> None:
        ...


class TableroReadPort(Protocol):
    def cargar_tablero(self, fecha: date) -> Tablero:
        """Atenciones del día agrupadas en su tablero."""


class AltaAtencionesPort(Protocol):
    """Alta de atenciones del día (agenda o paciente sin cita)."""

    def paciente_id_para(self, nombre: str) -> Tuple[int, bool]:
        """Id del paciente con ese nombre y si es nuevo (sin atenciones previas)."""

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
        ...

    def actualizar_estado(self, atencion_id: int, nuevo_estado: str, marca: Optional[datetime]) -> ResultadoOperacion:
        ...

    def guardar_orden(self, tablero: Tablero) -> None:
        ...
