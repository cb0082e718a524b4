"""Utilidades internas de dominio."""

from __future__ import annotations

from typing import Optional

from clinicboard.app.domain.exceptions import ValidationError


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    """Normaliza strings opcionales: devuelve None si queda vacío tras strip()."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def _require_non_empty(value: str, field_name: str) -> str:
    """Exige string no vacío; lanza ValidationError si no cumple."""
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"Campo obligatorio: {field_name}.")
    return v


def _ensure_positive_id(value: int, field_name: str) -> None:
    """Exige id > 0; lanza ValidationError si no cumple."""
    if value <= 0:
        raise ValidationError(f"{field_name} inválido.")
