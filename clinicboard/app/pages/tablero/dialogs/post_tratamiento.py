from __future__ import annotations

from typing import List, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
    QWidget,
)

from clinicboard.app.application.modales.estado import ModalPostTratamiento, SesionTratamiento
from clinicboard.app.pages.tablero.presentacion import titulo_tipo


def texto_sesion(sesion: SesionTratamiento) -> str:
    zonas = ", ".join(sesion.zonas_cuerpo) or "-"
    return f"{zonas} ({sesion.sesiones_completadas}/{sesion.sesiones_planificadas})"


class PostTratamientoDialog(QDialog):
    def __init__(self, parent: Optional[QWidget] = None, *, datos: ModalPostTratamiento) -> None:
        super().__init__(parent)
        self.setWindowTitle("Registrar tratamiento")

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(f"{datos.paciente_nombre or ''} · {titulo_tipo(datos.tipo_atencion or '')}"))

        self.lst_sesiones = QListWidget()
        for sesion in datos.sesiones_tratamiento:
            item = QListWidgetItem(texto_sesion(sesion))
            item.setData(Qt.UserRole, sesion.id)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Checked)
            self.lst_sesiones.addItem(item)
        if datos.cargando_sesiones:
            layout.addWidget(QLabel("Cargando sesiones…"))
        elif not datos.sesiones_tratamiento:
            layout.addWidget(QLabel("Sin sesiones planificadas."))
        layout.addWidget(self.lst_sesiones)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.button(QDialogButtonBox.Save).setText("Guardar")
        buttons.button(QDialogButtonBox.Cancel).setText("Cancelar")
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def sesiones_realizadas(self) -> List[int]:
        ids: List[int] = []
        for fila in range(self.lst_sesiones.count()):
            item = self.lst_sesiones.item(fila)
            if item.checkState() == Qt.Checked:
                ids.append(int(item.data(Qt.UserRole)))
        return ids
