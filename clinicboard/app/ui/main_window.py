from __future__ import annotations

from PySide6.QtWidgets import QMainWindow

from clinicboard.app.container import AppContainer
from clinicboard.app.pages.tablero.page import PageTablero


class MainWindow(QMainWindow):
    def __init__(self, container: AppContainer) -> None:
        super().__init__()
        self.container = container
        self.setWindowTitle(f"ClinicBoard · {container.fecha.strftime('%d/%m/%Y')}")
        self.resize(1280, 820)

        self.page = PageTablero(container)
        self.setCentralWidget(self.page)

    def closeEvent(self, event) -> None:
        self.page.close()
        self.container.close()
        super().closeEvent(event)
