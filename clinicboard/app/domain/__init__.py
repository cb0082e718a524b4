from clinicboard.app.domain.atenciones import Atencion
from clinicboard.app.domain.tablero import Tablero, ordenar_por_prioridad
from clinicboard.app.domain.enums import *  # noqa: F401,F403
from clinicboard.app.domain.exceptions import *  # noqa: F401,F403

__all__ = [
    "Atencion",
    "Tablero",
    "ordenar_por_prioridad",
]
