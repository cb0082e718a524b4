# application/fin_dia/usecases.py
"""
Cierre del día.

Pasos del asistente:
- incomplete: no se avanza mientras queden atenciones en checkedIn/onGoing.
- absences: cada falta (atención que sigue en scheduled) necesita decisión
  justificada/no justificada; se recorren de una en una o se omiten todas.
- confirm: se registran las faltas y el día queda finalizado.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from clinicboard.app.application.ports.atenciones_port import RegistroFaltasPort
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.exceptions import FinalizacionDiaError, ValidationError
from clinicboard.app.domain.tablero import Tablero

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResumenFinDia:
    incompletas: Tuple[Atencion, ...]
    completadas: Tuple[Atencion, ...]
    ausencias: Tuple[Atencion, ...]

    @classmethod
    def desde_tablero(cls, tablero: Tablero) -> "ResumenFinDia":
        return cls(
            incompletas=tuple(tablero.incompletas()),
            completadas=tuple(tablero.completadas()),
            ausencias=tuple(tablero.ausencias_agendadas()),
        )

    @property
    def puede_cerrar(self) -> bool:
        return not self.incompletas


@dataclass(frozen=True, slots=True)
class JustificacionAusencia:
    atencion_id: int
    paciente_id: int
    paciente_nombre: str
    tipo_atencion: str
    justificada: bool
    notas: str = ""


def _justificacion(atencion: Atencion, justificada: bool, notas: str) -> JustificacionAusencia:
    return JustificacionAusencia(
        atencion_id=atencion.id,
        paciente_id=atencion.paciente_id,
        paciente_nombre=atencion.paciente_nombre,
        tipo_atencion=str(getattr(atencion.tipo, "value", atencion.tipo)),
        justificada=justificada,
        notas=notas.strip() if justificada else "",
    )


class FlujoJustificacionAusencias:
    """Recorre las faltas de una en una; guarda la decisión de cada paciente."""

    def __init__(self, ausencias: Sequence[Atencion]) -> None:
        self._ausencias = list(ausencias)
        self._decisiones: List[Optional[JustificacionAusencia]] = [None] * len(self._ausencias)
        self._indice = 0
        self._terminado = not self._ausencias

    @property
    def actual(self) -> Optional[Atencion]:
        if self._terminado:
            return None
        return self._ausencias[self._indice]

    @property
    def decision_actual(self) -> Optional[JustificacionAusencia]:
        if self._terminado:
            return None
        return self._decisiones[self._indice]

    @property
    def progreso(self) -> Tuple[int, int]:
        total = len(self._ausencias)
        if total == 0:
            return 0, 0
        return min(self._indice + 1, total), total

    @property
    def terminado(self) -> bool:
        return self._terminado

    @property
    def justificaciones(self) -> List[JustificacionAusencia]:
        return [d for d in self._decisiones if d is not None]

    def registrar(self, justificada: bool, notas: str = "") -> None:
        """Guarda la decisión del paciente actual y pasa al siguiente."""
        atencion = self.actual
        if atencion is None:
            raise ValidationError("No quedan faltas por justificar.")
        self._decisiones[self._indice] = _justificacion(atencion, justificada, notas)
        if self._indice == len(self._ausencias) - 1:
            self._terminado = True
        else:
            self._indice += 1

    def anterior(self) -> None:
        if self._terminado and self._ausencias:
            self._terminado = False
            return
        if self._indice > 0:
            self._indice -= 1

    def omitir_todas(self) -> List[JustificacionAusencia]:
        """Marca como no justificadas todas las faltas aún sin decisión."""
        for posicion, atencion in enumerate(self._ausencias):
            if self._decisiones[posicion] is None:
                self._decisiones[posicion] = _justificacion(atencion, False, "")
        self._terminado = True
        LOGGER.info("ausencias_omitidas total=%s", len(self._ausencias))
        return self.justificaciones


class PasoFinDia(str, Enum):
    INCOMPLETE = "incomplete"
    ABSENCES = "absences"
    CONFIRM = "confirm"


_PASOS = (PasoFinDia.INCOMPLETE, PasoFinDia.ABSENCES, PasoFinDia.CONFIRM)


@dataclass(slots=True)
class AsistenteFinDia:
    resumen: ResumenFinDia
    flujo: FlujoJustificacionAusencias = field(init=False)
    paso: PasoFinDia = PasoFinDia.INCOMPLETE

    def __post_init__(self) -> None:
        self.flujo = FlujoJustificacionAusencias(self.resumen.ausencias)

    @property
    def puede_avanzar(self) -> bool:
        if self.paso == PasoFinDia.INCOMPLETE:
            return self.resumen.puede_cerrar
        if self.paso == PasoFinDia.ABSENCES:
            return len(self.flujo.justificaciones) == len(self.resumen.ausencias)
        return False

    def siguiente(self) -> PasoFinDia:
        if not self.puede_avanzar:
            raise ValidationError(f"No se puede salir del paso '{self.paso.value}' todavía.")
        self.paso = _PASOS[_PASOS.index(self.paso) + 1]
        return self.paso

    def atras(self) -> PasoFinDia:
        indice = _PASOS.index(self.paso)
        if indice > 0:
            self.paso = _PASOS[indice - 1]
        return self.paso


# ---------------------------------------------------------------------
# Caso de uso
# ---------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ResultadoFinDia:
    fecha: date
    faltas_registradas: int
    justificadas: int


class FinalizarDia:
    def __init__(self, registro: RegistroFaltasPort) -> None:
        self._registro = registro

    def execute(
        self,
        fecha: date,
        resumen: ResumenFinDia,
        justificaciones: Sequence[JustificacionAusencia],
    ) -> ResultadoFinDia:
        if not resumen.puede_cerrar:
            raise FinalizacionDiaError(
                "Quedan atenciones en curso; termínalas antes de cerrar el día.",
                [a.id for a in resumen.incompletas],
            )
        por_id = {j.atencion_id: j for j in justificaciones}
        fallidas: List[int] = []
        for ausencia in resumen.ausencias:
            decision = por_id.get(ausencia.id)
            justificada = decision.justificada if decision else False
            notas = decision.notas if decision else ""
            resultado = self._registro.marcar_falta(ausencia.id, justificada, notas)
            if not resultado.success:
                LOGGER.warning("falta_no_registrada atencion_id=%s error=%s", ausencia.id, resultado.error)
                fallidas.append(ausencia.id)
        if fallidas:
            raise FinalizacionDiaError(f"No se pudieron registrar {len(fallidas)} faltas.", fallidas)

        self._registro.marcar_dia_finalizado(fecha)
        justificadas = sum(1 for a in resumen.ausencias if por_id.get(a.id) and por_id[a.id].justificada)
        LOGGER.info(
            "dia_finalizado fecha=%s faltas=%s justificadas=%s",
            fecha.isoformat(),
            len(resumen.ausencias),
            justificadas,
        )
        return ResultadoFinDia(fecha=fecha, faltas_registradas=len(resumen.ausencias), justificadas=justificadas)
