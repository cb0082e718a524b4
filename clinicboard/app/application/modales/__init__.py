from clinicboard.app.application.modales.estado import EstadoModales, PacienteBasico, SesionTratamiento
from clinicboard.app.application.modales.store import ModalesStore

__all__ = [
    "EstadoModales",
    "ModalesStore",
    "PacienteBasico",
    "SesionTratamiento",
]
