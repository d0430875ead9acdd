from .native import (
    load_library, library_version,
    SQLITE_OK, SQLITE_ERROR, SQLITE_INTERNAL, SQLITE_PERM, SQLITE_ABORT,
    SQLITE_BUSY, SQLITE_LOCKED, SQLITE_NOMEM, SQLITE_READONLY,
    SQLITE_INTERRUPT, SQLITE_IOERR, SQLITE_CORRUPT, SQLITE_NOTFOUND,
    SQLITE_FULL, SQLITE_CANTOPEN, SQLITE_PROTOCOL, SQLITE_EMPTY,
    SQLITE_SCHEMA, SQLITE_TOOBIG, SQLITE_CONSTRAINT, SQLITE_MISMATCH,
    SQLITE_MISUSE, SQLITE_NOLFS, SQLITE_AUTH, SQLITE_FORMAT, SQLITE_RANGE,
    SQLITE_NOTADB, SQLITE_NOTICE, SQLITE_ROW, SQLITE_DONE,
)
from .errors import (
    Error, Warning, InterfaceError, DatabaseError, InternalError,
    OperationalError, ProgrammingError, IntegrityError, DataError,
    NotSupportedError, NotConnectedError, ValidationError, RangeError,
    UnimplementedError, Status, report,
)
from .table import Table, decode_table
from .dispatch import Operation, TypedOperation, RawOperation
from .connection import Connection, connect, escape, returns_rows

__version__ = "0.1.0"
