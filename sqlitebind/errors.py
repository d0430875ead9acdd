"""
Exception types and the single place where native result codes are
interpreted.

Every native call made by the binding ends in report(): it either hands the
code back (success, or an informational code the caller expects) or raises
one of the classes below with the decoded engine message attached.
"""

import ctypes
from collections import namedtuple

from . import native


class Error(Exception):
    def __init__(self, message="", code=None):
        super().__init__(message)
        self.message = message
        self.code = code


class Warning(Exception):
    pass


class InterfaceError(Error):
    pass


class DatabaseError(Error):
    pass


class InternalError(DatabaseError):
    pass


class OperationalError(DatabaseError):
    pass


class ProgrammingError(DatabaseError):
    pass


class IntegrityError(DatabaseError):
    pass


class DataError(DatabaseError):
    pass


class NotSupportedError(DatabaseError):
    pass


class NotConnectedError(InterfaceError):
    """Operation needs an open connection handle."""


class ValidationError(InterfaceError, ValueError):
    """Bad argument or configuration value; raised before any native call."""


class RangeError(ValidationError, IndexError):
    """Table accessor called with an out-of-range or wrongly typed index."""


class UnimplementedError(NotSupportedError, AttributeError):
    """Operation has no typed wrapper and raw dispatch cannot serve it."""


class Status(namedtuple("Status", ["code", "message"])):
    """Outcome of the most recent operation on a connection."""

    __slots__ = ()

    @property
    def ok(self):
        return self.code == native.SQLITE_OK


Status.OK = Status(native.SQLITE_OK, "")


PASS_THROUGH_CODES = frozenset({native.SQLITE_ROW, native.SQLITE_DONE})

_ERROR_CLASSES = {
    native.SQLITE_ERROR: ProgrammingError,
    native.SQLITE_INTERNAL: InternalError,
    native.SQLITE_PERM: OperationalError,
    native.SQLITE_ABORT: OperationalError,
    native.SQLITE_BUSY: OperationalError,
    native.SQLITE_LOCKED: OperationalError,
    native.SQLITE_NOMEM: OperationalError,
    native.SQLITE_READONLY: OperationalError,
    native.SQLITE_INTERRUPT: OperationalError,
    native.SQLITE_IOERR: OperationalError,
    native.SQLITE_CORRUPT: DatabaseError,
    native.SQLITE_FULL: OperationalError,
    native.SQLITE_CANTOPEN: OperationalError,
    native.SQLITE_PROTOCOL: OperationalError,
    native.SQLITE_SCHEMA: OperationalError,
    native.SQLITE_TOOBIG: DataError,
    native.SQLITE_CONSTRAINT: IntegrityError,
    native.SQLITE_MISMATCH: DataError,
    native.SQLITE_MISUSE: InterfaceError,
    native.SQLITE_NOLFS: OperationalError,
    native.SQLITE_AUTH: OperationalError,
    native.SQLITE_FORMAT: DatabaseError,
    native.SQLITE_RANGE: DataError,
    native.SQLITE_NOTADB: DatabaseError,
}


# Highest extended-code suffix (code >> 8) per primary code, from sqlite3.h.
_EXTENDED_SUFFIX_MAX = {
    native.SQLITE_ERROR: 3,
    native.SQLITE_ABORT: 1,
    native.SQLITE_BUSY: 3,
    native.SQLITE_LOCKED: 3,
    native.SQLITE_READONLY: 6,
    native.SQLITE_IOERR: 34,
    native.SQLITE_CORRUPT: 3,
    native.SQLITE_CANTOPEN: 7,
    native.SQLITE_CONSTRAINT: 14,
    native.SQLITE_AUTH: 1,
}


def error_class(code):
    code = int(code)
    if code in _ERROR_CLASSES:
        return _ERROR_CLASSES[code]
    primary = native.primary_code(code)
    if 1 <= code >> 8 <= _EXTENDED_SUFFIX_MAX.get(primary, 0):
        return _ERROR_CLASSES[primary]
    return DatabaseError


def decode_message(message):
    """Decode a native UTF-8 message given as bytes, str or a ctypes pointer.

    Returns None when there is no message (None, NULL pointer, 0 address).
    """
    if message is None:
        return None
    if isinstance(message, str):
        return message
    if isinstance(message, (ctypes.c_char_p, ctypes.c_void_p)):
        message = message.value
        if message is None:
            return None
    if isinstance(message, int):
        if not message:
            return None
        message = ctypes.string_at(message)
    # Be defensive: engine messages should be UTF-8, but don't crash if not.
    return bytes(message).decode("utf-8", errors="replace")


def _describe(code):
    try:
        text = native.load_library().sqlite3_errstr(int(code))
    except RuntimeError:
        text = None
    return text.decode("utf-8", errors="replace") if text else f"Unknown error {code}"


def report(code, message=None, target=None):
    """Interpret a native result code.

    Returns ``code`` unchanged on success, or for an informational code when
    no message buffer was supplied. Anything else is a failure: the message
    is decoded (or derived from the code), stored on ``target`` via its
    ``_set_status`` hook when given, and raised.
    """
    code = int(code)
    text = decode_message(message)
    if code == native.SQLITE_OK:
        return code
    if code in PASS_THROUGH_CODES and text is None:
        return code

    if text is None:
        text = _describe(code)
    if target is not None:
        target._set_status(Status(code, text))
    raise error_class(code)(text, code)
