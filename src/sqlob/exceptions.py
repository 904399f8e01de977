"""
Persistence-layer exception classes.
"""
import sqlite3

import psycopg
import sqlalchemy.exc


class SqlobError(Exception):
    """Base class for all sqlob errors.
    """


class UnsupportedTypeError(SqlobError):
    """No SQL type mapping exists for a value kind or SQL type code.
    """


class NoApplicableColumnFactoryError(SqlobError):
    """No registered column factory accepts a persistable attribute.
    """


class InaccessibleFieldError(SqlobError):
    """A mapped attribute cannot be read or written on an instance.
    """


class EmptyRecordSetError(SqlobError, ValueError):
    """A request was built without the records or values it requires.
    """


class DatabaseExecutionError(SqlobError):
    """The driver failed to prepare or execute a statement.

    The original driver exception is available as ``__cause__``.
    """

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class ClosedResourceError(SqlobError):
    """An operation was attempted on a closed execution context or statement.
    """


DRIVER_ERRORS = (
    sqlite3.Error,
    psycopg.Error,
    sqlalchemy.exc.DBAPIError,
    )

DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    sqlalchemy.exc.OperationalError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    )
