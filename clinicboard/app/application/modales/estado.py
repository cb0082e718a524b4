"""Estado de cada modal: bandera `is_open`, datos propios y callback opcional."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import EstadoPaciente, Prioridad, TipoAtencion, TipoModal

OnComplete = Callable[[bool], None]


@dataclass(frozen=True, slots=True)
class PacienteBasico:
    id: int
    nombre: str
    telefono: str = ""
    prioridad: Prioridad = Prioridad.NORMAL
    estado: EstadoPaciente = EstadoPaciente.NUEVO


@dataclass(frozen=True, slots=True)
class SesionTratamiento:
    id: int
    tipo_tratamiento: str  # "light_bath" | "rod"
    zonas_cuerpo: tuple[str, ...]
    fecha_inicio: date
    sesiones_planificadas: int
    sesiones_completadas: int = 0
    estado: str = "scheduled"
    color: Optional[str] = None
    duracion_minutos: Optional[int] = None


@dataclass(slots=True)
class ModalCancelacion:
    is_open: bool = False
    atencion_id: Optional[int] = None
    paciente_nombre: Optional[str] = None
    cargando: bool = False


@dataclass(slots=True)
class ModalPostTratamiento:
    is_open: bool = False
    atencion_id: Optional[int] = None
    paciente_id: Optional[int] = None
    paciente_nombre: Optional[str] = None
    tipo_atencion: Optional[TipoAtencion | str] = None
    sesiones_tratamiento: List[SesionTratamiento] = field(default_factory=list)
    cargando_sesiones: bool = False
    on_complete: Optional[OnComplete] = None


@dataclass(slots=True)
class ModalMultiSeccion:
    is_open: bool = False
    paciente_nombre: Optional[str] = None
    on_confirm: Optional[Callable[[], None]] = None
    on_cancel: Optional[Callable[[], None]] = None


@dataclass(slots=True)
class ModalCheckInPacienteNuevo:
    is_open: bool = False
    paciente: Optional[PacienteBasico] = None
    atencion_id: Optional[int] = None
    on_complete: Optional[OnComplete] = None


@dataclass(slots=True)
class ModalPostAtencion:
    is_open: bool = False
    atencion_id: Optional[int] = None
    paciente_id: Optional[int] = None
    paciente_nombre: Optional[str] = None
    tipo_atencion: Optional[TipoAtencion | str] = None
    estado_tratamiento_actual: Optional[str] = None
    fecha_inicio_actual: Optional[date] = None
    semanas_retorno_actual: Optional[int] = None
    es_primera_atencion: Optional[bool] = None
    cargando: Optional[bool] = None
    datos_iniciales: Optional[Dict[str, Any]] = None
    on_complete: Optional[OnComplete] = None


@dataclass(slots=True)
class ModalFinDia:
    is_open: bool = False
    fecha: Optional[date] = None
    on_finalizar: Optional[Callable[[], None]] = None


@dataclass(slots=True)
class ModalJustificacionAusencias:
    is_open: bool = False
    ausencias: List[Atencion] = field(default_factory=list)
    fecha: Optional[date] = None
    on_complete: Optional[OnComplete] = None


@dataclass(slots=True)
class EstadoModales:
    cancelacion: ModalCancelacion = field(default_factory=ModalCancelacion)
    post_tratamiento: ModalPostTratamiento = field(default_factory=ModalPostTratamiento)
    multi_seccion: ModalMultiSeccion = field(default_factory=ModalMultiSeccion)
    check_in_paciente_nuevo: ModalCheckInPacienteNuevo = field(default_factory=ModalCheckInPacienteNuevo)
    post_atencion: ModalPostAtencion = field(default_factory=ModalPostAtencion)
    fin_dia: ModalFinDia = field(default_factory=ModalFinDia)
    justificacion_ausencias: ModalJustificacionAusencias = field(default_factory=ModalJustificacionAusencias)

    def sub_estado(self, tipo: TipoModal | str) -> Any:
        return getattr(self, ATRIBUTO_POR_MODAL[TipoModal(tipo)])

    def abiertos(self) -> List[TipoModal]:
        return [tipo for tipo in TipoModal if self.sub_estado(tipo).is_open]


ATRIBUTO_POR_MODAL: dict[TipoModal, str] = {
    TipoModal.CANCELLATION: "cancelacion",
    TipoModal.POST_TREATMENT: "post_tratamiento",
    TipoModal.MULTI_SECTION: "multi_seccion",
    TipoModal.NEW_PATIENT_CHECK_IN: "check_in_paciente_nuevo",
    TipoModal.POST_ATTENDANCE: "post_atencion",
    TipoModal.END_OF_DAY: "fin_dia",
    TipoModal.ABSENCE_JUSTIFICATION: "justificacion_ausencias",
}

_FABRICA_POR_MODAL: dict[TipoModal, Callable[[], Any]] = {
    TipoModal.CANCELLATION: ModalCancelacion,
    TipoModal.POST_TREATMENT: ModalPostTratamiento,
    TipoModal.MULTI_SECTION: ModalMultiSeccion,
    TipoModal.NEW_PATIENT_CHECK_IN: ModalCheckInPacienteNuevo,
    TipoModal.POST_ATTENDANCE: ModalPostAtencion,
    TipoModal.END_OF_DAY: ModalFinDia,
    TipoModal.ABSENCE_JUSTIFICATION: ModalJustificacionAusencias,
}


def sub_estado_vacio(tipo: TipoModal) -> Any:
    return _FABRICA_POR_MODAL[tipo]()


def copiar_estado_modales(estado: EstadoModales) -> EstadoModales:
    """Copia por sub-estado; los callbacks y payloads se comparten, no se duplican."""
    copia = EstadoModales()
    for atributo in ATRIBUTO_POR_MODAL.values():
        sub = getattr(estado, atributo)
        nuevo = replace(sub)
        for nombre in ("sesiones_tratamiento", "ausencias"):
            if hasattr(nuevo, nombre):
                setattr(nuevo, nombre, list(getattr(sub, nombre)))
        setattr(copia, atributo, nuevo)
    return copia
