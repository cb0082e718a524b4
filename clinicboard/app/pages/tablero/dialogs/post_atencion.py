from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from PySide6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QPlainTextEdit,
    QSpinBox,
    QWidget,
)

from clinicboard.app.application.modales.estado import ModalPostAtencion
from clinicboard.app.domain.enums import EstadoPaciente

_ESTADOS_TRATAMIENTO = (
    (EstadoPaciente.TRATAMIENTO, "En tratamiento"),
    (EstadoPaciente.ALTA_MEDICA, "Alta médica"),
    (EstadoPaciente.NUEVO, "Nuevo"),
)


@dataclass(slots=True)
class PostAtencionFormData:
    estado_tratamiento: EstadoPaciente
    semanas_retorno: int
    notas: str


class PostAtencionDialog(QDialog):
    """Formulario tras la consulta espiritual; aceptar confirma el paso a completed."""

    def __init__(self, parent: Optional[QWidget] = None, *, datos: ModalPostAtencion) -> None:
        super().__init__(parent)
        self.setWindowTitle("Registrar atención")

        self.lbl_paciente = QLabel(datos.paciente_nombre or "")
        self.lbl_primera = QLabel("Sí" if datos.es_primera_atencion else "No")

        self.cbo_estado = QComboBox()
        for estado, texto in _ESTADOS_TRATAMIENTO:
            self.cbo_estado.addItem(texto, estado.value)
        actual = self.cbo_estado.findData(datos.estado_tratamiento_actual or EstadoPaciente.TRATAMIENTO.value)
        self.cbo_estado.setCurrentIndex(max(actual, 0))

        self.spin_semanas = QSpinBox()
        self.spin_semanas.setRange(0, 52)
        self.spin_semanas.setValue(datos.semanas_retorno_actual or (1 if datos.es_primera_atencion else 0))

        self.txt_notas = QPlainTextEdit()
        if datos.datos_iniciales:
            self.txt_notas.setPlainText(str(datos.datos_iniciales.get("notas", "")))

        form = QFormLayout(self)
        form.addRow("Paciente", self.lbl_paciente)
        form.addRow("Primera atención", self.lbl_primera)
        form.addRow("Estado del tratamiento", self.cbo_estado)
        form.addRow("Retorno (semanas)", self.spin_semanas)
        form.addRow("Notas", self.txt_notas)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.button(QDialogButtonBox.Save).setText("Guardar")
        buttons.button(QDialogButtonBox.Cancel).setText("Cancelar")
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        form.addRow(buttons)

    def get_data(self) -> PostAtencionFormData:
        return PostAtencionFormData(
            estado_tratamiento=EstadoPaciente(self.cbo_estado.currentData()),
            semanas_retorno=self.spin_semanas.value(),
            notas=self.txt_notas.toPlainText().strip(),
        )
