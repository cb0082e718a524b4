from __future__ import annotations

import sys
import uuid
from datetime import date

from PySide6.QtWidgets import QApplication

from clinicboard.app.bootstrap_logging import configure_logging, get_logger, set_run_context
from clinicboard.app.config import cargar_configuracion
from clinicboard.app.container import build_container
from clinicboard.app.crash_handler import install_global_exception_hook
from clinicboard.app.infrastructure.sqlite.db import bootstrap
from clinicboard.app.ui.main_window import MainWindow


LOGGER = get_logger(__name__)


def main() -> int:
    config = cargar_configuracion()
    configure_logging("clinicboard-ui", config.log_dir, level=config.log_level, json=config.log_json)
    set_run_context(uuid.uuid4().hex[:8], date.today())
    install_global_exception_hook(LOGGER)

    app = QApplication(sys.argv)
    con = bootstrap(config.db_path)
    container = build_container(con, config)
    LOGGER.info("app_started db_path=%s fecha=%s", config.db_path, container.fecha.isoformat())

    window = MainWindow(container)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
