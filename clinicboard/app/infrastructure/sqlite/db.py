# infrastructure/sqlite/db.py
"""
Conexión y bootstrap de SQLite.

Responsabilidades:
- Abrir conexión con SQLite con PRAGMAs recomendados.
- Aplicar el schema desde un archivo .sql (idempotente: CREATE IF NOT EXISTS).

Notas:
- foreign_keys debe activarse por conexión en SQLite.
- WAL no aplica a ":memory:"; SQLite lo ignora sin error.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from clinicboard.app.bootstrap_logging import get_logger
from clinicboard.app.infrastructure.sqlite.sqlite_datetime_codecs import (
    register_sqlite_datetime_codecs,
)

LOGGER = get_logger(__name__)


def default_schema_path() -> Path:
    return Path(__file__).resolve().parent / "schema.sql"


@dataclass(frozen=True)
class SqliteConfig:
    """
    Configuración para SQLite.
    - db_path: ruta al archivo .db o ":memory:"
    - schema_path: ruta al schema.sql
    """
    db_path: Path
    schema_path: Path


def _es_ruta_especial(db_path: Path) -> bool:
    raw = db_path.as_posix()
    return raw == ":memory:" or raw.startswith("file:")


def connect(config: SqliteConfig) -> sqlite3.Connection:
    """Abre conexión SQLite y aplica PRAGMAs."""
    if not _es_ruta_especial(config.db_path):
        config.db_path.parent.mkdir(parents=True, exist_ok=True)
    register_sqlite_datetime_codecs()

    con = sqlite3.connect(config.db_path.as_posix(), uri=config.db_path.as_posix().startswith("file:"))
    con.row_factory = sqlite3.Row
    _apply_pragmas(con)
    return con


def _apply_pragmas(con: sqlite3.Connection) -> None:
    con.execute("PRAGMA foreign_keys = ON;")
    con.execute("PRAGMA journal_mode = WAL;")
    con.execute("PRAGMA synchronous = NORMAL;")
    con.execute("PRAGMA temp_store = MEMORY;")
    con.execute("PRAGMA busy_timeout = 5000;")


def apply_schema(con: sqlite3.Connection, schema_path: Path) -> None:
    if not schema_path.exists():
        raise FileNotFoundError(f"No existe schema.sql en: {schema_path}")
    con.executescript(schema_path.read_text(encoding="utf-8"))
    con.commit()


def bootstrap(
    db_path: str | Path,
    schema_path: str | Path | None = None,
    *,
    apply: bool = True,
) -> sqlite3.Connection:
    """
    Atajo para:
    - conectar
    - aplicar schema (si apply=True)
    """
    cfg = SqliteConfig(db_path=Path(db_path), schema_path=Path(schema_path or default_schema_path()))
    con = connect(cfg)
    if apply:
        apply_schema(con, cfg.schema_path)
    LOGGER.info("db_ready path=%s schema_applied=%s", cfg.db_path, apply)
    return con
