from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DomainError, StoreConflictError, StoreUnavailableError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "No se pudo cargar la información de asistencia"

_CONFLICT_ERRNOS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT})

# mysql client-side error codes (CR_*): connection lost, server gone, ...
_CLIENT_ERRNO_RANGE = range(2000, 3000)


def translate_mysql_error(exc: mysql.connector.Error) -> Optional[DomainError]:
    """Map connector errors onto store error kinds; None means propagate as-is."""

    if exc.errno in _CONFLICT_ERRNOS:
        return StoreConflictError("Otro registro de asistencia está en curso para este grupo y fecha")
    if isinstance(exc, (mysql.connector.errors.InterfaceError, mysql.connector.errors.OperationalError)) or (
        exc.errno in _CLIENT_ERRNO_RANGE
    ):
        return StoreUnavailableError(UNAVAILABLE_MESSAGE, detail=str(exc))
    return None


def _rollback_quietly(conn) -> None:
    try:
        conn.rollback()
    except mysql.connector.Error:
        # The original error is re-raised by the caller; a dead connection cannot roll back.
        logger.warning("rollback failed on a broken connection", exc_info=True)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as exc:
        logger.error("database unreachable: %s", exc)
        raise StoreUnavailableError(UNAVAILABLE_MESSAGE, detail=str(exc)) from exc

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        _rollback_quietly(conn)
        translated = translate_mysql_error(exc)
        if translated is None:
            raise
        if isinstance(translated, StoreUnavailableError):
            logger.error("database error: %s", exc)
        raise translated from exc
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def in_clause(values) -> str:
    """Placeholder list for ``IN (...)``; callers guarantee a non-empty sequence."""
    return ", ".join(["%s"] * len(values))
