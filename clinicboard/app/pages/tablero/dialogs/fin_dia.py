from __future__ import annotations

from datetime import date
from typing import Optional

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from clinicboard.app.application.fin_dia.usecases import FlujoJustificacionAusencias, ResumenFinDia
from clinicboard.app.pages.tablero.presentacion import texto_progreso, texto_tarjeta, titulo_tipo


class FinDiaDialog(QDialog):
    """Resumen del día. No deja continuar mientras queden atenciones sin terminar."""

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        *,
        resumen: ResumenFinDia,
        fecha: Optional[date] = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Finalizar día")
        layout = QVBoxLayout(self)

        if fecha is not None:
            layout.addWidget(QLabel(fecha.strftime("%d/%m/%Y")))
        layout.addWidget(QLabel(f"Atendidos: {len(resumen.completadas)}"))
        layout.addWidget(QLabel(f"Faltas: {len(resumen.ausencias)}"))

        if resumen.incompletas:
            layout.addWidget(QLabel("Termina estas atenciones antes de cerrar el día:"))
            self.lst_incompletas = QListWidget()
            for atencion in resumen.incompletas:
                self.lst_incompletas.addItem(f"{titulo_tipo(atencion.tipo)} · {texto_tarjeta(atencion)}")
            layout.addWidget(self.lst_incompletas)

        buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.btn_continuar = buttons.button(QDialogButtonBox.Ok)
        self.btn_continuar.setText("Continuar")
        self.btn_continuar.setEnabled(resumen.puede_cerrar)
        buttons.button(QDialogButtonBox.Cancel).setText("Cancelar")
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)


class JustificacionAusenciasDialog(QDialog):
    """Una falta cada vez; aceptar solo cuando todas tienen decisión."""

    def __init__(self, parent: Optional[QWidget] = None, *, flujo: FlujoJustificacionAusencias) -> None:
        super().__init__(parent)
        self.setWindowTitle("Justificar faltas")
        self.flujo = flujo

        layout = QVBoxLayout(self)
        self.lbl_progreso = QLabel("")
        self.lbl_paciente = QLabel("")
        self.chk_justificada = QCheckBox("Falta justificada")
        self.txt_notas = QLineEdit()
        self.txt_notas.setPlaceholderText("Motivo (opcional)")
        self.chk_justificada.toggled.connect(self.txt_notas.setEnabled)

        layout.addWidget(self.lbl_progreso)
        layout.addWidget(self.lbl_paciente)
        layout.addWidget(self.chk_justificada)
        layout.addWidget(self.txt_notas)

        nav = QHBoxLayout()
        self.btn_anterior = QPushButton("Anterior")
        self.btn_siguiente = QPushButton("Siguiente")
        self.btn_omitir = QPushButton("Omitir todas")
        self.btn_anterior.clicked.connect(self._on_anterior)
        self.btn_siguiente.clicked.connect(self._on_siguiente)
        self.btn_omitir.clicked.connect(self._on_omitir)
        nav.addWidget(self.btn_anterior)
        nav.addStretch(1)
        nav.addWidget(self.btn_omitir)
        nav.addWidget(self.btn_siguiente)
        layout.addLayout(nav)

        buttons = QDialogButtonBox(QDialogButtonBox.Cancel)
        buttons.button(QDialogButtonBox.Cancel).setText("Cancelar")
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        if not flujo.terminado:
            self._refresh()

    def _avanzar(self) -> None:
        if self.flujo.terminado:
            self.accept()
            return
        self._refresh()

    def _refresh(self) -> None:
        posicion, total = self.flujo.progreso
        atencion = self.flujo.actual
        decision = self.flujo.decision_actual
        self.lbl_progreso.setText(texto_progreso(posicion, total))
        self.lbl_paciente.setText(f"{atencion.paciente_nombre} · {titulo_tipo(atencion.tipo)}")
        self.chk_justificada.setChecked(bool(decision and decision.justificada))
        self.txt_notas.setText(decision.notas if decision else "")
        self.txt_notas.setEnabled(self.chk_justificada.isChecked())
        self.btn_anterior.setEnabled(posicion > 1)

    def _on_siguiente(self) -> None:
        self.flujo.registrar(self.chk_justificada.isChecked(), self.txt_notas.text())
        self._avanzar()

    def _on_anterior(self) -> None:
        self.flujo.anterior()
        self._refresh()

    def _on_omitir(self) -> None:
        self.flujo.omitir_todas()
        self._avanzar()
