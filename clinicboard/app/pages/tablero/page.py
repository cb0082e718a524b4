from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from PySide6.QtCore import QMimeData, Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMenu,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from clinicboard.app.application.fin_dia.controlador import ControladorFinDia
from clinicboard.app.application.fin_dia.usecases import ResultadoFinDia
from clinicboard.app.application.tablero.motor import SolicitudMovimiento
from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.container import AppContainer
from clinicboard.app.domain.enums import ORDEN_ESTADOS, EstadoAtencion, TipoAtencion
from clinicboard.app.domain.exceptions import FinalizacionDiaError, InvalidMoveError, ValidationError
from clinicboard.app.domain.tablero import Tablero
from clinicboard.app.pages.tablero.dialogs.sin_cita import PacienteSinCitaDialog
from clinicboard.app.pages.tablero.modales_host import ModalesHost
from clinicboard.app.pages.tablero.presentacion import (
    MIME_ATENCION,
    TITULO_COLUMNA,
    codificar_arrastre,
    decodificar_arrastre,
    indice_soltado,
    texto_tarjeta,
    titulo_tipo,
)

LOGGER = get_logger(__name__)


class ColumnaAtenciones(QListWidget):
    """Una columna (tipo, estado). No reordena por sí misma: emite `soltada` y el tablero se repinta."""

    soltada = Signal(int, str, str, object)  # atencion_id, estado_origen, estado_destino, indice

    def __init__(self, tipo: TipoAtencion | str, estado: EstadoAtencion, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.tipo = tipo
        self.estado = estado
        self._atenciones: Dict[int, object] = {}
        self.setDragEnabled(True)
        self.setAcceptDrops(True)
        self.setDragDropMode(QAbstractItemView.DragDrop)
        self.setDefaultDropAction(Qt.MoveAction)
        self.setSelectionMode(QAbstractItemView.SingleSelection)

    def pintar(self, atenciones: List) -> None:
        self.clear()
        self._atenciones = {}
        for atencion in atenciones:
            item = QListWidgetItem(texto_tarjeta(atencion))
            item.setData(Qt.UserRole, atencion.id)
            self._atenciones[atencion.id] = atencion
            self.addItem(item)

    def mimeTypes(self) -> List[str]:
        return [MIME_ATENCION]

    def mimeData(self, items: List[QListWidgetItem]) -> QMimeData:
        mime = QMimeData()
        if items:
            atencion = self._atenciones.get(items[0].data(Qt.UserRole))
            if atencion is not None:
                mime.setData(MIME_ATENCION, codificar_arrastre(atencion))
        return mime

    def _carga(self, mime: QMimeData) -> Optional[Tuple[int, str, EstadoAtencion]]:
        if not mime.hasFormat(MIME_ATENCION):
            return None
        carga = decodificar_arrastre(mime.data(MIME_ATENCION).data())
        if carga is None or carga[1] != str(getattr(self.tipo, "value", self.tipo)):
            return None
        return carga

    def dragEnterEvent(self, event) -> None:
        if self._carga(event.mimeData()) is None:
            event.ignore()
            return
        event.acceptProposedAction()

    def dragMoveEvent(self, event) -> None:
        if self._carga(event.mimeData()) is None:
            event.ignore()
            return
        event.acceptProposedAction()

    def dropEvent(self, event) -> None:
        carga = self._carga(event.mimeData())
        if carga is None:
            event.ignore()
            return
        atencion_id, _tipo, origen = carga
        fila = self.indexAt(event.position().toPoint()).row()
        event.setDropAction(Qt.IgnoreAction)
        event.accept()
        self.soltada.emit(atencion_id, origen.value, self.estado.value, indice_soltado(fila))


class PageTablero(QWidget):
    def __init__(self, container: AppContainer, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._container = container
        self._columnas: Dict[Tuple[TipoAtencion | str, EstadoAtencion], ColumnaAtenciones] = {}
        self._fin_dia = ControladorFinDia(
            container.tablero,
            container.modales,
            container.finalizar_dia,
            container.fecha,
            al_terminar=self._on_dia_finalizado,
            al_fallar=self._on_fin_dia_fallido,
        )
        self._host = ModalesHost(
            container.modales,
            self._fin_dia,
            parent=self,
            al_cancelar_atencion=container.motor.cancelar_atencion,
        )

        self._build_ui()
        self._unsubscribe: Callable[[], None] = container.tablero.subscribe(self._on_tablero_cambiado)
        self._render(container.tablero.get_state())

    @property
    def page_id(self) -> str:
        return "tablero"

    @property
    def title(self) -> str:
        return "Tablero"

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)

        actions = QHBoxLayout()
        self.lbl_fecha = QLabel(self._container.fecha.strftime("%d/%m/%Y"))
        self.lbl_estado = QLabel("")
        self.btn_sin_cita = QPushButton("Nuevo paciente sin cita")
        self.btn_recargar = QPushButton("Recargar")
        self.btn_fin_dia = QPushButton("Finalizar día")
        self.btn_sin_cita.clicked.connect(self._on_sin_cita)
        self.btn_recargar.clicked.connect(self._on_recargar)
        self.btn_fin_dia.clicked.connect(self._on_fin_dia)
        actions.addWidget(self.lbl_fecha)
        actions.addWidget(self.lbl_estado, 1)
        actions.addWidget(self.btn_sin_cita)
        actions.addWidget(self.btn_recargar)
        actions.addWidget(self.btn_fin_dia)
        root.addLayout(actions)

        for tipo in self._container.tablero.get_state().tipos:
            root.addWidget(self._build_seccion(tipo), 1)

    def _build_seccion(self, tipo: TipoAtencion | str) -> QGroupBox:
        box = QGroupBox(titulo_tipo(tipo))
        fila = QHBoxLayout(box)
        for estado in ORDEN_ESTADOS:
            columna_box = QVBoxLayout()
            columna_box.addWidget(QLabel(TITULO_COLUMNA[estado]))
            columna = ColumnaAtenciones(tipo, estado)
            columna.soltada.connect(self._on_soltada)
            columna.setContextMenuPolicy(Qt.CustomContextMenu)
            columna.customContextMenuRequested.connect(
                lambda pos, columna=columna: self._open_context_menu(columna, pos)
            )
            columna_box.addWidget(columna)
            fila.addLayout(columna_box)
            self._columnas[(tipo, estado)] = columna
        return box

    def on_show(self) -> None:
        self._on_recargar()

    # --------------------------------------------------------------
    # Render
    # --------------------------------------------------------------

    def _on_tablero_cambiado(self, nuevo: Tablero, _anterior: Tablero) -> None:
        self._render(nuevo)

    def _render(self, tablero: Tablero) -> None:
        for (tipo, estado), columna in self._columnas.items():
            columna.pintar(tablero.listar(tipo, estado))

    # --------------------------------------------------------------
    # Acciones
    # --------------------------------------------------------------

    def _on_soltada(self, atencion_id: int, origen: str, destino: str, indice: Optional[int]) -> None:
        if origen == destino:
            return
        atencion = self._container.tablero.get_state().obtener(atencion_id)
        if atencion is None:
            self._render(self._container.tablero.get_state())
            return
        solicitud = SolicitudMovimiento.desde_atencion(atencion, destino, indice)
        try:
            resultado = self._container.motor.soltar(solicitud)
        except (InvalidMoveError, ValidationError) as exc:
            LOGGER.debug("drop_descartado atencion_id=%s motivo=%s", atencion_id, exc)
            self._render(self._container.tablero.get_state())
            return
        if not resultado.sincronizado:
            self.lbl_estado.setText("No se pudo guardar el último cambio en la base de datos.")
        else:
            self.lbl_estado.setText("")

    def _open_context_menu(self, columna: ColumnaAtenciones, pos) -> None:
        item = columna.itemAt(pos)
        if item is None:
            return
        atencion = self._container.tablero.get_state().obtener(item.data(Qt.UserRole))
        if atencion is None or self._container.motor.esta_pendiente(atencion.id):
            return
        menu = QMenu(self)
        action_cancelar = menu.addAction("Cancelar atención…")
        if menu.exec(columna.viewport().mapToGlobal(pos)) == action_cancelar:
            self._container.modales.abrir_cancelacion(atencion.id, atencion.paciente_nombre)

    def _on_sin_cita(self) -> None:
        dialogo = PacienteSinCitaDialog(self, tipos=self._container.tablero.get_state().tipos)
        if dialogo.exec() != QDialog.Accepted:
            return
        try:
            creadas = self._container.registrar_sin_cita.execute(dialogo.get_data())
        except ValidationError as exc:
            QMessageBox.warning(self, "Paciente sin cita", str(exc))
            return
        self.lbl_estado.setText(f"{creadas[0].paciente_nombre}: {len(creadas)} atención(es) registrada(s).")

    def _on_recargar(self) -> None:
        self._container.recargar_tablero()
        self.lbl_estado.setText("")

    def _on_fin_dia(self) -> None:
        if self._container.atenciones_repo.dia_finalizado(self._container.fecha):
            QMessageBox.information(self, "Finalizar día", "El día ya está finalizado.")
            return
        self._fin_dia.iniciar()

    def _on_dia_finalizado(self, resultado: ResultadoFinDia) -> None:
        self._container.recargar_tablero()
        QMessageBox.information(
            self,
            "Finalizar día",
            f"Día finalizado. Faltas registradas: {resultado.faltas_registradas} "
            f"(justificadas: {resultado.justificadas}).",
        )

    def _on_fin_dia_fallido(self, exc: FinalizacionDiaError) -> None:
        QMessageBox.warning(self, "Finalizar día", str(exc))

    def closeEvent(self, event) -> None:
        self._unsubscribe()
        self._host.desconectar()
        super().closeEvent(event)
