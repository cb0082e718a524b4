from __future__ import annotations

from typing import Optional, Sequence

from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

from clinicboard.app.application.tablero.alta import SolicitudSinCita
from clinicboard.app.domain.enums import Prioridad, TipoAtencion
from clinicboard.app.pages.tablero.presentacion import titulo_tipo

_PRIORIDADES = (
    (Prioridad.NORMAL, "Normal"),
    (Prioridad.INTERMEDIA, "Intermedia"),
    (Prioridad.EMERGENCIA, "Emergencia"),
)


class PacienteSinCitaDialog(QDialog):
    """Paciente que llega sin agenda: nombre, secciones y prioridad."""

    def __init__(self, parent: Optional[QWidget] = None, *, tipos: Sequence[TipoAtencion | str]) -> None:
        super().__init__(parent)
        self.setWindowTitle("Nuevo paciente sin cita")

        self.txt_nombre = QLineEdit()
        self.cbo_prioridad = QComboBox()
        for prioridad, texto in _PRIORIDADES:
            self.cbo_prioridad.addItem(texto, prioridad.value)
        self.chk_check_in = QCheckBox("Hacer check-in ahora")
        self.chk_check_in.setChecked(True)

        tipos_box = QWidget()
        tipos_layout = QVBoxLayout(tipos_box)
        tipos_layout.setContentsMargins(0, 0, 0, 0)
        self.chk_tipos: list[tuple[TipoAtencion | str, QCheckBox]] = []
        for tipo in tipos:
            chk = QCheckBox(titulo_tipo(tipo))
            tipos_layout.addWidget(chk)
            self.chk_tipos.append((tipo, chk))

        form = QFormLayout(self)
        form.addRow("Paciente", self.txt_nombre)
        form.addRow("Secciones", tipos_box)
        form.addRow("Prioridad", self.cbo_prioridad)
        form.addRow("", self.chk_check_in)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        buttons.button(QDialogButtonBox.Ok).setText("Registrar")
        buttons.button(QDialogButtonBox.Cancel).setText("Cancelar")
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        form.addRow(buttons)

    def get_data(self) -> SolicitudSinCita:
        return SolicitudSinCita(
            paciente_nombre=self.txt_nombre.text(),
            tipos=[tipo for tipo, chk in self.chk_tipos if chk.isChecked()],
            prioridad=Prioridad(self.cbo_prioridad.currentData()),
            check_in=self.chk_check_in.isChecked(),
        )
