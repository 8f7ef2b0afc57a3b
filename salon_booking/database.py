"""Transaction boundary: one unit of work per call, store errors translated on the way out"""
import logging
import sqlite3
import time

from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm.exc import StaleDataError

from salon_booking.errors import (
    AppError,
    ConflictError,
    DataAccessError,
    ErrorCode,
    TransientDataError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PG_FOREIGN_KEY_VIOLATION = '23503'
PG_UNIQUE_VIOLATION = '23505'
PG_CHECK_VIOLATION = '23514'


@event.listens_for(Engine, 'connect')
def _configure_sqlite_connection(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        # pysqlite only issues BEGIN before a write; transactions start in _begin_sqlite_transaction instead
        dbapi_connection.isolation_level = None
        # SQLite ignores foreign keys (and ON DELETE CASCADE) unless asked per connection
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


@event.listens_for(Engine, 'begin')
def _begin_sqlite_transaction(conn):
    # Write lock from the first statement, so read-check-write units run one at a time
    if conn.dialect.name == 'sqlite':
        conn.exec_driver_sql('BEGIN IMMEDIATE')


def translate_database_error(exc):
    """Map a SQLAlchemy exception onto the API error taxonomy"""
    if isinstance(exc, IntegrityError):
        pgcode = getattr(exc.orig, 'pgcode', None)
        message = str(exc.orig).lower()
        if pgcode == PG_FOREIGN_KEY_VIOLATION or 'foreign key' in message:
            return ConflictError(code=ErrorCode.FOREIGN_KEY_CONSTRAINT_VIOLATION)
        if pgcode == PG_UNIQUE_VIOLATION or 'unique' in message:
            return ConflictError(code=ErrorCode.UNIQUE_CONSTRAINT_VIOLATION)
        if pgcode == PG_CHECK_VIOLATION or 'check constraint' in message:
            return ValidationError(code=ErrorCode.INVALID_INPUT)
        return ConflictError()
    if isinstance(exc, (OperationalError, PoolTimeoutError, DisconnectionError, StaleDataError)):
        return TransientDataError()
    return DataAccessError()


class TransactionManager:
    """
    Runs a callable as a single database transaction.

    The callable receives the session and must not commit; commit and rollback
    happen here. Read-only units are retried on transient failures, writes are not.
    """

    def __init__(self, db, timeout=5.0, read_retries=2):
        self.db = db
        self.timeout = timeout
        self.read_retries = read_retries

    def run(self, operation, read_only=False, timeout=None):
        timeout = timeout or self.timeout
        attempts = 1 + (self.read_retries if read_only else 0)

        for attempt in range(1, attempts + 1):
            try:
                return self._run_once(operation, timeout)
            except TransientDataError:
                if attempt >= attempts:
                    raise
                logger.warning(f"Transient database failure, retrying read ({attempt}/{self.read_retries})")

    def _run_once(self, operation, timeout):
        session = self.db.session
        started = time.monotonic()
        try:
            self._apply_timeout(session, timeout)
            result = operation(session)
            session.commit()
        except AppError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            error = translate_database_error(exc)
            if isinstance(error, TransientDataError):
                logger.warning(f"Transient database failure: {exc.__class__.__name__}: {exc}")
            elif isinstance(error, DataAccessError):
                logger.exception('Database error during transaction')
            raise error from exc
        except Exception:
            session.rollback()
            raise

        elapsed = time.monotonic() - started
        if elapsed > timeout:
            logger.warning(f"Slow transaction: {elapsed:.2f}s (limit {timeout:.2f}s)")
        return result

    @staticmethod
    def _apply_timeout(session, timeout):
        if session.get_bind().dialect.name != 'postgresql':
            return
        millis = int(timeout * 1000)
        session.execute(text(f"SET LOCAL statement_timeout = {millis}"))
        session.execute(text(f"SET LOCAL lock_timeout = {millis}"))


def init_app(app):
    from salon_booking import db

    app.extensions['transaction_manager'] = TransactionManager(
        db,
        timeout=app.config['TRANSACTION_TIMEOUT_SECONDS'],
        read_retries=app.config['TRANSACTION_READ_RETRIES'],
    )
