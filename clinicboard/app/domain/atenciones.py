"""Entidad Atencion: una visita agendada, en curso o completada."""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

from clinicboard.app.domain.enums import (
    EstadoAtencion,
    Prioridad,
    TipoAtencion,
    normalizar_tipo,
)
from clinicboard.app.domain.exceptions import ValidationError
from clinicboard.app.domain.value_objects import _ensure_positive_id, _require_non_empty

# Marca que se escribe al entrar en cada estado (scheduled no tiene marca).
_CAMPO_MARCA: dict[EstadoAtencion, str] = {
    EstadoAtencion.CHECKED_IN: "hora_check_in",
    EstadoAtencion.ON_GOING: "hora_en_curso",
    EstadoAtencion.COMPLETED: "hora_completada",
}
_MARCAS_EN_ORDEN = ("hora_check_in", "hora_en_curso", "hora_completada")


@dataclass(slots=True)
class Atencion:
    id: int
    paciente_id: int
    paciente_nombre: str
    tipo: TipoAtencion | str = TipoAtencion.SPIRITUAL
    prioridad: Prioridad = Prioridad.NORMAL
    es_primera_atencion: bool = False
    estado: EstadoAtencion = EstadoAtencion.SCHEDULED
    hora_check_in: Optional[datetime] = None
    hora_en_curso: Optional[datetime] = None
    hora_completada: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.tipo = normalizar_tipo(self.tipo)
        self.prioridad = Prioridad(self.prioridad)
        self.estado = EstadoAtencion(self.estado)

    def validar(self) -> None:
        _ensure_positive_id(self.id, "id")
        _ensure_positive_id(self.paciente_id, "paciente_id")
        self.paciente_nombre = _require_non_empty(self.paciente_nombre, "paciente_nombre")
        self._validar_marcas()

    def _validar_marcas(self) -> None:
        anterior: Optional[datetime] = None
        for campo in _MARCAS_EN_ORDEN:
            valor = getattr(self, campo)
            if valor is None:
                continue
            if anterior is not None and valor < anterior:
                raise ValidationError(f"{campo} no puede ser anterior a la marca previa.")
            anterior = valor

    def registrar_marca(self, estado: EstadoAtencion, ahora: datetime) -> None:
        """
        Escribe la marca de entrada en `estado`.

        Las marcas solo avanzan: si una etapa previa tiene marca posterior a `ahora`
        se lanza ValidationError y la atención no cambia. Una marca ya escrita se
        conserva: volver a entrar en una etapa (tras deshacer) no la reescribe.
        """
        campo = _CAMPO_MARCA.get(estado)
        if campo is None or getattr(self, campo) is not None:
            return
        for previo in _MARCAS_EN_ORDEN[: _MARCAS_EN_ORDEN.index(campo)]:
            valor = getattr(self, previo)
            if valor is not None and valor > ahora:
                raise ValidationError(f"{campo} no puede ser anterior a {previo}.")
        setattr(self, campo, ahora)

    def marca_de(self, estado: EstadoAtencion) -> Optional[datetime]:
        campo = _CAMPO_MARCA.get(estado)
        return getattr(self, campo) if campo else None

    def copiar(self) -> "Atencion":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["tipo"] = getattr(self.tipo, "value", self.tipo)
        data["prioridad"] = self.prioridad.value
        data["estado"] = self.estado.value
        for campo in _MARCAS_EN_ORDEN:
            valor = data[campo]
            data[campo] = valor.isoformat(sep=" ", timespec="seconds") if valor else None
        return data
