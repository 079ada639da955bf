"""
Transaction helpers for the workflow services.

Wraps ``transaction.atomic`` with the isolation and timeout settings the
workflow needs and turns contention failures into ConcurrencyException.
"""

import logging
from contextlib import contextmanager

from django.db import OperationalError, transaction

from .exceptions import ConcurrencyException

logger = logging.getLogger(__name__)


@contextmanager
def translate_concurrency_errors(operation: str = ""):
    """Re-raise lock timeouts, deadlocks and serialization failures as ConcurrencyException."""
    try:
        yield
    except OperationalError as exc:
        logger.warning(f"Transaction aborted by the database during {operation or 'operation'}: {exc}")
        raise ConcurrencyException(details={"operation": operation}) from exc


@contextmanager
def serializable_atomic(operation: str = "", using=None):
    """
    Open a transaction at the strictest isolation level the backend offers.

    PostgreSQL is switched to SERIALIZABLE when this block starts the
    outermost transaction. SQLite transactions are already serializable.
    """
    connection = transaction.get_connection(using)
    outermost = not connection.in_atomic_block

    with translate_concurrency_errors(operation):
        with transaction.atomic(using=using):
            if outermost and connection.vendor == 'postgresql':
                with connection.cursor() as cursor:
                    cursor.execute('SET TRANSACTION ISOLATION LEVEL SERIALIZABLE')
            yield


@contextmanager
def bounded_atomic(operation: str = "", lock_timeout_ms: int = None,
                   statement_timeout_ms: int = None, using=None):
    """
    Open a transaction that fails fast under lock contention.

    Args:
        operation: Name used in logs and error details
        lock_timeout_ms: Longest wait for a row lock
        statement_timeout_ms: Longest run time of any single statement
        using: Database alias
    """
    connection = transaction.get_connection(using)

    with translate_concurrency_errors(operation):
        with transaction.atomic(using=using):
            if connection.vendor == 'postgresql':
                with connection.cursor() as cursor:
                    if lock_timeout_ms:
                        cursor.execute("SELECT set_config('lock_timeout', %s, true)",
                                       [f'{int(lock_timeout_ms)}ms'])
                    if statement_timeout_ms:
                        cursor.execute("SELECT set_config('statement_timeout', %s, true)",
                                       [f'{int(statement_timeout_ms)}ms'])
            yield
