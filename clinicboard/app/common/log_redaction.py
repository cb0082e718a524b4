"""
Ocultación de datos de pacientes en los logs.

Dos niveles: patrones sobre texto libre (email, CPF, teléfono) y claves de
contexto cuyo valor se oculta entero (nombres, contacto, notas de faltas).
Las fechas ISO y los ids numéricos cortos se conservan.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

OCULTO = "***"

_PATRONES = (
    re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    re.compile(r"\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b"),
    # Teléfono: 9+ dígitos con separadores; una fecha AAAA-MM-DD no cuenta.
    re.compile(r"(?<!\w)(?!\d{4}-\d{2}-\d{2})(?:\+?\d[\d\s().-]{7,}\d)"),
)

_CLAVE_SENSIBLE = re.compile(r"nombre|name|telefono|phone|email|correo|cpf|notas|justificacion", re.IGNORECASE)


def ocultar_texto(texto: str) -> str:
    for patron in _PATRONES:
        texto = patron.sub(OCULTO, texto)
    return texto


def ocultar_valor(valor: Any, *, clave: str | None = None) -> Any:
    if isinstance(valor, str):
        if clave is not None and _CLAVE_SENSIBLE.search(clave):
            return OCULTO
        return ocultar_texto(valor)
    if isinstance(valor, Mapping):
        return {k: ocultar_valor(v, clave=str(k)) for k, v in valor.items()}
    if isinstance(valor, Sequence) and not isinstance(valor, (bytes, bytearray)):
        return [ocultar_valor(item, clave=clave) for item in valor]
    return valor
