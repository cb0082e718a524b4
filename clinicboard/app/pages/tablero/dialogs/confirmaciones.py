from __future__ import annotations

from typing import Optional

from PySide6.QtWidgets import QDialog, QDialogButtonBox, QLabel, QVBoxLayout, QWidget

from clinicboard.app.application.modales.estado import PacienteBasico


class _ConfirmacionDialog(QDialog):
    def __init__(
        self,
        parent: Optional[QWidget],
        *,
        titulo: str,
        mensaje: str,
        texto_aceptar: str,
        texto_rechazar: str,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle(titulo)
        layout = QVBoxLayout(self)
        self.lbl_mensaje = QLabel(mensaje)
        self.lbl_mensaje.setWordWrap(True)
        layout.addWidget(self.lbl_mensaje)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.button(QDialogButtonBox.Ok).setText(texto_aceptar)
        buttons.button(QDialogButtonBox.Cancel).setText(texto_rechazar)
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)


class MultiSeccionDialog(_ConfirmacionDialog):
    def __init__(self, parent: Optional[QWidget] = None, *, paciente_nombre: Optional[str] = None) -> None:
        super().__init__(
            parent,
            titulo="Check-in",
            mensaje=f"{paciente_nombre or 'El paciente'} tiene atenciones en varias secciones. "
            "¿Hacer check-in en todas?",
            texto_aceptar="Todas",
            texto_rechazar="Solo esta",
        )


class CheckInPacienteNuevoDialog(_ConfirmacionDialog):
    def __init__(self, parent: Optional[QWidget] = None, *, paciente: Optional[PacienteBasico] = None) -> None:
        nombre = paciente.nombre if paciente else "Paciente"
        super().__init__(
            parent,
            titulo="Paciente nuevo",
            mensaje=f"{nombre} viene por primera vez. Confirma sus datos antes del check-in.",
            texto_aceptar="Confirmar",
            texto_rechazar="Cancelar",
        )


class CancelacionDialog(_ConfirmacionDialog):
    def __init__(self, parent: Optional[QWidget] = None, *, paciente_nombre: Optional[str] = None) -> None:
        super().__init__(
            parent,
            titulo="Cancelar atención",
            mensaje=f"¿Cancelar la atención de {paciente_nombre or 'este paciente'}?",
            texto_aceptar="Cancelar atención",
            texto_rechazar="Volver",
        )
