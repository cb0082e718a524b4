"""Qué modal de seguimiento hay que abrir al completar una atención."""

from __future__ import annotations

from typing import Optional, Sequence

from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import Prioridad, TipoAtencion, TipoModal, normalizar_tipo

LOGGER = get_logger(__name__)

_MODAL_POR_TIPO: dict[TipoAtencion, TipoModal] = {
    TipoAtencion.SPIRITUAL: TipoModal.POST_ATTENDANCE,
    TipoAtencion.LIGHT_BATH: TipoModal.POST_TREATMENT,
    TipoAtencion.ROD: TipoModal.POST_TREATMENT,
}


def enrutar_modal(
    tipo_atencion: TipoAtencion | str,
    es_primera_atencion: bool = False,
    prioridad: Prioridad | str | None = None,
) -> Optional[TipoModal]:
    """
    Modal obligatorio antes de confirmar el paso a `completed`.

    - spiritual -> postAttendance (el formulario usa `es_primera_atencion` para sus valores iniciales)
    - lightBath / rod -> postTreatment
    - cualquier otro tipo -> None: el movimiento se confirma sin modal
    """
    tipo = normalizar_tipo(tipo_atencion)
    modal = _MODAL_POR_TIPO.get(tipo) if isinstance(tipo, TipoAtencion) else None
    if modal is None:
        LOGGER.warning("tipo_atencion_sin_modal tipo=%s", tipo_atencion)
    return modal


def enrutar_ausencias(ausencias: Sequence[Atencion]) -> Optional[TipoModal]:
    """Las faltas van a la justificación de ausencias; sin faltas no hay modal."""
    if not ausencias:
        return None
    return TipoModal.ABSENCE_JUSTIFICATION
