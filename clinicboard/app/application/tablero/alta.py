# application/tablero/alta.py
"""
Alta de pacientes sin cita.

El paciente llega sin agenda: se crea una atención por tipo elegido y entra
directamente en checkedIn (o en scheduled si se desactiva el check-in).
No se admite un segundo registro del mismo nombre en esos tipos el mismo día.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Sequence

from clinicboard.app.application.ports.atenciones_port import AltaAtencionesPort
from clinicboard.app.application.tablero.motor import MotorTransiciones
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import EstadoAtencion, Prioridad, TipoAtencion, normalizar_tipo
from clinicboard.app.domain.exceptions import ValidationError
from clinicboard.app.domain.value_objects import _require_non_empty

LOGGER = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SolicitudSinCita:
    paciente_nombre: str
    tipos: Sequence[TipoAtencion | str]
    prioridad: Prioridad | str = Prioridad.NORMAL
    check_in: bool = True


class RegistrarPacienteSinCita:
    def __init__(
        self,
        repo: AltaAtencionesPort,
        motor: MotorTransiciones,
        fecha: date,
        reloj: Callable[[], datetime],
    ) -> None:
        self._repo = repo
        self._motor = motor
        self._fecha = fecha
        self._reloj = reloj

    def execute(self, solicitud: SolicitudSinCita) -> List[Atencion]:
        nombre = _require_non_empty(solicitud.paciente_nombre, "paciente_nombre")
        tipos = list(dict.fromkeys(normalizar_tipo(t) for t in solicitud.tipos))
        if not tipos:
            raise ValidationError("Selecciona al menos un tipo de atención.")
        if self._motor.tablero.paciente_ya_agendado(nombre, tipos):
            raise ValidationError(f'"{nombre}" ya tiene atención hoy en los tipos seleccionados.')

        paciente_id, es_nuevo = self._repo.paciente_id_para(nombre)
        creadas: List[Atencion] = []
        for tipo in tipos:
            atencion = self._repo.crear(
                self._fecha,
                paciente_id=paciente_id,
                paciente_nombre=nombre,
                tipo=tipo,
                prioridad=solicitud.prioridad,
                es_primera_atencion=es_nuevo,
            )
            if solicitud.check_in:
                self._registrar_llegada(atencion)
            self._motor.registrar_atencion(atencion)
            creadas.append(atencion)
        self._repo.guardar_orden(self._motor.tablero)
        LOGGER.info(
            "paciente_sin_cita_registrado paciente_id=%s atenciones=%s nuevo=%s",
            paciente_id,
            [a.id for a in creadas],
            es_nuevo,
        )
        return creadas

    def _registrar_llegada(self, atencion: Atencion) -> None:
        ahora = self._reloj()
        resultado = self._repo.actualizar_estado(atencion.id, EstadoAtencion.CHECKED_IN.value, ahora)
        if not resultado.success:
            # Queda agendada: el check-in se puede hacer arrastrando la tarjeta.
            LOGGER.warning("check_in_sin_cita_fallido atencion_id=%s error=%s", atencion.id, resultado.error)
            return
        atencion.estado = EstadoAtencion.CHECKED_IN
        atencion.registrar_marca(EstadoAtencion.CHECKED_IN, ahora)
