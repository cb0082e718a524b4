from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Optional


_CODECS_REGISTERED = False


def register_sqlite_datetime_codecs() -> None:
    """Registra adapters explícitos para evitar los adapters por defecto deprecados."""
    global _CODECS_REGISTERED
    if _CODECS_REGISTERED:
        return
    sqlite3.register_adapter(datetime, adapt_datetime)
    sqlite3.register_adapter(date, adapt_date)
    _CODECS_REGISTERED = True


def adapt_datetime(value: datetime) -> str:
    return value.isoformat(sep=" ", timespec="seconds")


def adapt_date(value: date) -> str:
    return value.isoformat()


def deserialize_datetime(value: datetime | str | None) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def deserialize_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
