from clinicboard.app.application.tablero.alta import RegistrarPacienteSinCita, SolicitudSinCita
from clinicboard.app.application.tablero.enrutamiento import enrutar_ausencias, enrutar_modal
from clinicboard.app.application.tablero.motor import (
    CONFIRMADO,
    PENDIENTE,
    MotorTransiciones,
    ResultadoMovimiento,
    SolicitudMovimiento,
    validar_transicion,
)

__all__ = [
    "CONFIRMADO",
    "PENDIENTE",
    "MotorTransiciones",
    "RegistrarPacienteSinCita",
    "ResultadoMovimiento",
    "SolicitudMovimiento",
    "SolicitudSinCita",
    "enrutar_ausencias",
    "enrutar_modal",
    "validar_transicion",
]
