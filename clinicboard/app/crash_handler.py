from __future__ import annotations

import logging
import sys
import threading
from types import TracebackType


def install_global_exception_hook(logger: logging.LoggerAdapter) -> None:
    """Excepciones no capturadas (hilo principal o secundarios) -> log crítico."""

    def _handle_exception(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical(
            "unhandled_exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = _handle_exception

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        _handle_exception(args.exc_type, args.exc_value, args.exc_traceback)

    threading.excepthook = _thread_hook
