# domain/exceptions.py
"""
Excepciones del dominio.

Propósito:
- Distinguir errores de reglas del tablero (dominio) de errores técnicos (DB/UI).
- Permitir que la capa de aplicación/UI traduzca errores a un "snap-back" silencioso.
"""


class DomainError(Exception):
    """Error base del dominio."""


class ValidationError(DomainError):
    """Entidad en estado inválido o violación de invariantes."""


class InvalidMoveError(DomainError):
    """Movimiento imposible sobre el tablero (estado destino inválido, atención ausente...)."""


class AttendanceNotFoundError(InvalidMoveError):
    """La atención no está en el bucket de origen indicado."""

    def __init__(self, atencion_id: int, estado: str | None = None) -> None:
        donde = f" en '{estado}'" if estado else ""
        super().__init__(f"Atención {atencion_id} no encontrada{donde}.")
        self.atencion_id = atencion_id
        self.estado = estado


class InvalidTransitionError(InvalidMoveError):
    """La transición viola el orden scheduled → checkedIn → onGoing → completed."""

    def __init__(self, desde: str, hacia: str, motivo: str | None = None) -> None:
        detalle = f": {motivo}" if motivo else ""
        super().__init__(f"Transición no permitida {desde} → {hacia}{detalle}.")
        self.desde = desde
        self.hacia = hacia


class FinalizacionDiaError(DomainError):
    """Fallo al cerrar el día (faltas sin registrar, atenciones abiertas...)."""

    def __init__(self, mensaje: str, fallidas: list[int] | None = None) -> None:
        super().__init__(mensaje)
        self.fallidas = list(fallidas or [])
