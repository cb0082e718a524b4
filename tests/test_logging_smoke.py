from __future__ import annotations

import json
from datetime import date
from pathlib import Path

from clinicboard.app.bootstrap_logging import configure_logging, get_logger, log_soft_exception, set_run_context


def test_configure_logging_creates_operational_log(tmp_path: Path) -> None:
    configure_logging("test-app", tmp_path, json=False)
    set_run_context("run-test")
    logger = get_logger("tests.logging")

    logger.info("tablero_cargado total=%s", 3)

    content = (tmp_path / "app.log").read_text(encoding="utf-8")
    assert "tablero_cargado total=3" in content
    assert "run_id=run-test" in content


def test_json_mode_writes_one_object_per_line(tmp_path: Path) -> None:
    configure_logging("test-app", tmp_path, json=True)
    set_run_context("run-json", date(2026, 3, 10))
    logger = get_logger("tests.logging")

    logger.warning("falta_no_registrada atencion_id=%s", 7)

    lines = (tmp_path / "app.log").read_text(encoding="utf-8").splitlines()
    registro = json.loads(lines[-1])
    assert registro["nivel"] == "WARNING"
    assert registro["fecha_tablero"] == "2026-03-10"
    assert registro["mensaje"] == "falta_no_registrada atencion_id=7"


def test_log_soft_exception_writes_soft_file(tmp_path: Path) -> None:
    configure_logging("test-app", tmp_path, json=False)
    set_run_context("run-soft")
    logger = get_logger("tests.logging")

    try:
        raise ValueError("esperable")
    except ValueError as exc:
        log_soft_exception(logger, exc, {"operacion": "actualizar_estado", "atencion_id": 5})

    soft = (tmp_path / "crash_soft.log").read_text(encoding="utf-8")
    app = (tmp_path / "app.log").read_text(encoding="utf-8")
    assert "ValueError: esperable" in soft
    assert "soft_exception_operational" in app
    assert "ValueError: esperable" not in app


def test_logging_redacts_pii_in_message(tmp_path: Path) -> None:
    configure_logging("test-app", tmp_path, json=False)
    set_run_context("run-redact")
    logger = get_logger("tests.logging")

    logger.info("Paciente email ana.souza@example.com cpf 123.456.789-09 teléfono +55 11 5555 6666")

    content = (tmp_path / "app.log").read_text(encoding="utf-8")
    assert "ana.souza@example.com" not in content
    assert "123.456.789-09" not in content
    assert "+55 11 5555 6666" not in content
    assert "***" in content


def test_logging_redacts_sensitive_context_keys(tmp_path: Path) -> None:
    configure_logging("test-app", tmp_path, json=False)
    set_run_context("run-redact-soft")
    logger = get_logger("tests.logging")

    try:
        raise RuntimeError("fallo marcando falta")
    except RuntimeError as exc:
        log_soft_exception(logger, exc, {"paciente_nombre": "Ana Souza", "notas_falta": "cita médica"})

    content = (tmp_path / "crash_soft.log").read_text(encoding="utf-8")
    assert "Ana Souza" not in content
    assert "cita médica" not in content
