"""Textos y codificación de arrastre del tablero; sin dependencias de Qt."""

from __future__ import annotations

import json
from typing import Optional, Tuple

from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.enums import EstadoAtencion, Prioridad, TipoAtencion, parse_estado

MIME_ATENCION = "application/x-clinicboard-atencion"

TITULO_COLUMNA: dict[EstadoAtencion, str] = {
    EstadoAtencion.SCHEDULED: "Agendados",
    EstadoAtencion.CHECKED_IN: "Check-in",
    EstadoAtencion.ON_GOING: "En atención",
    EstadoAtencion.COMPLETED: "Atendidos",
}

TITULO_TIPO: dict[TipoAtencion, str] = {
    TipoAtencion.SPIRITUAL: "Consulta espiritual",
    TipoAtencion.LIGHT_BATH: "Baño de luz",
    TipoAtencion.ROD: "Bastão",
}

_ETIQUETA_PRIORIDAD: dict[Prioridad, str] = {
    Prioridad.EMERGENCIA: "P1",
    Prioridad.INTERMEDIA: "P2",
    Prioridad.NORMAL: "P3",
}


def titulo_tipo(tipo: TipoAtencion | str) -> str:
    if isinstance(tipo, TipoAtencion):
        return TITULO_TIPO[tipo]
    return str(tipo)


def texto_tarjeta(atencion: Atencion) -> str:
    partes = [atencion.paciente_nombre, _ETIQUETA_PRIORIDAD[atencion.prioridad]]
    if atencion.es_primera_atencion:
        partes.append("nuevo")
    marca = atencion.marca_de(atencion.estado)
    if marca is not None:
        partes.append(marca.strftime("%H:%M"))
    return " · ".join(partes)


def codificar_arrastre(atencion: Atencion) -> bytes:
    carga = {
        "id": atencion.id,
        "tipo": getattr(atencion.tipo, "value", atencion.tipo),
        "estado": atencion.estado.value,
    }
    return json.dumps(carga).encode("utf-8")


def decodificar_arrastre(raw: bytes) -> Optional[Tuple[int, str, EstadoAtencion]]:
    """(id, tipo, estado_origen) o None si la carga no es una tarjeta válida."""
    try:
        carga = json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(carga, dict):
        return None
    estado = parse_estado(str(carga.get("estado", "")))
    atencion_id = carga.get("id")
    if estado is None or not isinstance(atencion_id, int):
        return None
    return atencion_id, str(carga.get("tipo", "")), estado


def indice_soltado(fila: int) -> Optional[int]:
    """Fila bajo el cursor al soltar; -1 (zona vacía) significa al final."""
    return fila if fila >= 0 else None


def texto_progreso(posicion: int, total: int) -> str:
    if total == 0:
        return "Sin faltas"
    return f"Paciente {posicion} de {total}"
