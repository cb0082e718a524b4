# domain/enums.py
from __future__ import annotations
from enum import Enum


class TipoAtencion(str, Enum):
    SPIRITUAL = "spiritual"
    LIGHT_BATH = "lightBath"
    ROD = "rod"


class EstadoAtencion(str, Enum):
    SCHEDULED = "scheduled"
    CHECKED_IN = "checkedIn"
    ON_GOING = "onGoing"
    COMPLETED = "completed"


# Fuera del tablero: solo se usa al sincronizar una cancelación.
ESTADO_CANCELADA = "cancelled"

ORDEN_ESTADOS: tuple[EstadoAtencion, ...] = (
    EstadoAtencion.SCHEDULED,
    EstadoAtencion.CHECKED_IN,
    EstadoAtencion.ON_GOING,
    EstadoAtencion.COMPLETED,
)

TIPOS_CONOCIDOS: tuple[TipoAtencion, ...] = (
    TipoAtencion.SPIRITUAL,
    TipoAtencion.LIGHT_BATH,
    TipoAtencion.ROD,
)

TIPOS_TRATAMIENTO: tuple[TipoAtencion, ...] = (TipoAtencion.LIGHT_BATH, TipoAtencion.ROD)


class Prioridad(str, Enum):
    EMERGENCIA = "1"
    INTERMEDIA = "2"
    NORMAL = "3"


class EstadoPaciente(str, Enum):
    NUEVO = "N"
    TRATAMIENTO = "T"
    ALTA_MEDICA = "A"
    FALTAS = "F"


class TipoModal(str, Enum):
    CANCELLATION = "cancellation"
    POST_TREATMENT = "postTreatment"
    MULTI_SECTION = "multiSection"
    NEW_PATIENT_CHECK_IN = "newPatientCheckIn"
    POST_ATTENDANCE = "postAttendance"
    END_OF_DAY = "endOfDay"
    ABSENCE_JUSTIFICATION = "absenceJustification"


def parse_estado(valor: str | EstadoAtencion) -> EstadoAtencion | None:
    """Devuelve el estado de progresión o None si el valor no es uno de los cuatro."""
    if isinstance(valor, EstadoAtencion):
        return valor
    try:
        return EstadoAtencion(valor)
    except ValueError:
        return None


def normalizar_tipo(valor: str | TipoAtencion) -> TipoAtencion | str:
    """Tipos conocidos -> enum; cualquier otro valor se conserva tal cual."""
    if isinstance(valor, TipoAtencion):
        return valor
    try:
        return TipoAtencion(valor)
    except ValueError:
        return valor
