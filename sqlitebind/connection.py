import collections.abc
import ctypes
import logging
import os
import re

from . import config, native
from .dispatch import RawOperation, TypedOperation, invoke_raw
from .errors import (
    Error,
    InterfaceError,
    NotConnectedError,
    Status,
    UnimplementedError,
    ValidationError,
    decode_message,
    report,
)
from .table import decode_table

logger = logging.getLogger(__name__)

# Leading whitespace and SQL comments, skipped before looking at the keyword.
_LEADING_NOISE = re.compile(r"(?:\s+|--[^\n]*(?:\n|\Z)|/\*.*?\*/)*", re.S)
_ROW_KEYWORD = re.compile(r"(?:SELECT|PRAGMA|WITH|VALUES|EXPLAIN)\b", re.I)


def returns_rows(sql):
    """Guess whether ``sql`` produces rows, from its leading keyword."""
    start = _LEADING_NOISE.match(sql).end()
    return _ROW_KEYWORD.match(sql, start) is not None


def escape(text):
    if not isinstance(text, str):
        raise ValidationError(f"escape() expects str, got {type(text).__name__}")
    return text.replace("'", "''")


class Connection:
    """One native sqlite3 database handle.

    ``open``/``close``/``execute`` raise on failure and leave the outcome in
    ``status`` (cleared at the start of every operation). Methods the typed
    surface does not wrap can be reached through ``call(RawOperation(...))``
    or plain attribute access once ``dispatch`` is enabled.
    """

    def __init__(self, path=None, *, auto_escape=None, dispatch=None):
        self._db = None
        self._lib = None
        self._status = Status.OK
        self._callback_ref = None
        self._auto_escape = (
            config.auto_escape_default() if auto_escape is None
            else config.to_bool(auto_escape, "auto_escape")
        )
        self._dispatch = (
            config.dispatch_default() if dispatch is None
            else config.to_bool(dispatch, "dispatch")
        )
        self._lib = native.acquire()
        if path is not None:
            self.open(path)

    # -- error state -----------------------------------------------------

    def _clear(self):
        self._status = Status.OK

    def _set_status(self, status):
        self._status = status

    @property
    def status(self):
        return self._status

    @property
    def last_error_code(self):
        return self._status.code

    @property
    def last_error_message(self):
        return self._status.message

    # -- switches --------------------------------------------------------

    @property
    def auto_escape(self):
        return self._auto_escape

    @auto_escape.setter
    def auto_escape(self, value):
        self._auto_escape = config.to_bool(value, "auto_escape")

    @property
    def dispatch(self):
        return self._dispatch

    @dispatch.setter
    def dispatch(self, value):
        self._dispatch = config.to_bool(value, "dispatch")

    # -- handle ----------------------------------------------------------

    @property
    def handle(self):
        return self._db

    @property
    def is_connected(self):
        return self._db is not None

    def _require(self):
        if self._db is None:
            raise NotConnectedError("Not connected")
        return self._db

    escape = staticmethod(escape)

    # -- typed surface ---------------------------------------------------

    def open(self, path):
        self._clear()
        if self._db is not None:
            raise InterfaceError("Connection is already open")
        try:
            path = os.fspath(path)
        except TypeError:
            raise ValidationError(
                f"Database path must be str, bytes or os.PathLike, got {type(path).__name__}"
            ) from None
        raw = path.encode("utf-8") if isinstance(path, str) else path

        handle = ctypes.c_void_p()
        code = self._lib.sqlite3_open(raw, ctypes.byref(handle))
        if code != native.SQLITE_OK or not handle.value:
            if handle.value:
                reason = decode_message(self._lib.sqlite3_errmsg(handle))
                # A handle is returned even on failure and must be released.
                self._lib.sqlite3_close(handle)
            else:
                reason = "unable to allocate database connection"
                if code == native.SQLITE_OK:
                    code = native.SQLITE_NOMEM
            return report(code, f"Unable to open database {path!r}: {reason}", self)

        self._db = handle
        logger.debug("Opened %r", path)
        return code

    def close(self):
        self._clear()
        if self._db is None:
            return native.SQLITE_OK
        handle, self._db = self._db, None
        code = self._lib.sqlite3_close(handle)
        if code == native.SQLITE_OK:
            logger.debug("Closed connection")
            return code
        # The engine keeps the handle alive while statements are outstanding.
        message = self._lib.sqlite3_errmsg(handle)
        logger.warning("sqlite3_close returned %d; dropping handle", code)
        return report(code, message, self)

    def execute(self, sql, callback=None, *, params=None, rows=None):
        """Run ``sql``.

        Row-returning statements go through sqlite3_get_table and come back
        as a Table; everything else runs through sqlite3_exec and returns the
        result code. ``rows`` forces the route; when omitted, the leading
        keyword decides (SELECT, PRAGMA, WITH, VALUES, EXPLAIN).

        ``callback(values, columns)`` is called once per result row on the
        sqlite3_exec route; a truthy return value aborts the statement.

        ``params`` are interpolated with str.format. With ``auto_escape`` on,
        str values are passed through escape() first. This is text
        substitution, not parameter binding.
        """
        self._clear()
        db = self._require()
        if not isinstance(sql, str):
            raise ValidationError(f"SQL must be str, got {type(sql).__name__}")
        if params is not None:
            sql = self._interpolate(sql, params)

        if rows is None:
            rows = callback is None and returns_rows(sql)
        elif rows and callback is not None:
            raise ValidationError("A row callback cannot be used with rows=True")

        raw = sql.encode("utf-8")
        if rows:
            logger.debug("Executing via get_table: %s", sql)
            return self._get_table(db, raw)
        logger.debug("Executing via exec: %s", sql)
        return self._exec(db, raw, callback)

    def _interpolate(self, sql, params):
        def prepare(value):
            if self._auto_escape and isinstance(value, str):
                return escape(value)
            return value

        is_mapping = isinstance(params, collections.abc.Mapping)
        if not is_mapping and (
            isinstance(params, (str, bytes)) or not isinstance(params, collections.abc.Iterable)
        ):
            raise ValidationError(
                f"params must be a sequence or mapping, got {type(params).__name__}"
            )
        try:
            if is_mapping:
                return sql.format(**{k: prepare(v) for k, v in params.items()})
            return sql.format(*[prepare(v) for v in params])
        except (IndexError, KeyError) as e:
            raise ValidationError(f"Missing parameter {e}") from None
        except ValueError as e:
            # Unbalanced braces or a bad format spec in the SQL text.
            raise ValidationError(f"Cannot interpolate params into SQL: {e}") from None

    def _get_table(self, db, raw):
        result = ctypes.POINTER(ctypes.c_char_p)()
        nrow = ctypes.c_int()
        ncol = ctypes.c_int()
        errmsg = ctypes.c_void_p()
        code = self._lib.sqlite3_get_table(
            db, raw, ctypes.byref(result), ctypes.byref(nrow), ctypes.byref(ncol), ctypes.byref(errmsg)
        )
        try:
            if code != native.SQLITE_OK:
                return report(code, errmsg, self)
            return decode_table(result, nrow.value, ncol.value)
        finally:
            # Engine-owned buffers, released by the engine's own routines.
            if result:
                self._lib.sqlite3_free_table(result)
            if errmsg.value:
                self._lib.sqlite3_free(errmsg)

    def _exec(self, db, raw, callback):
        failures = []

        if callback is None:
            trampoline = native.EXEC_CALLBACK()
        else:
            def on_row(_arg, argc, argv, colnames):
                try:
                    values = [None if argv[i] is None else argv[i].decode("utf-8", errors="replace") for i in range(argc)]
                    columns = [(colnames[i] or b"").decode("utf-8", errors="replace") for i in range(argc)]
                    rv = callback(values, columns)
                    return 0 if rv is None else int(rv)
                except Exception as e:
                    failures.append(e)
                    return 1

            trampoline = native.EXEC_CALLBACK(on_row)

        errmsg = ctypes.c_void_p()
        # Keep the trampoline reachable for the whole native call.
        self._callback_ref = trampoline
        try:
            code = self._lib.sqlite3_exec(db, raw, trampoline, None, ctypes.byref(errmsg))
        finally:
            self._callback_ref = None

        try:
            if failures:
                self._set_status(Status(code, decode_message(errmsg) or ""))
                raise failures[0]
            return report(code, errmsg, self)
        finally:
            if errmsg.value:
                self._lib.sqlite3_free(errmsg)

    @property
    def changes(self):
        self._clear()
        return self._lib.sqlite3_changes(self._require())

    @property
    def total_changes(self):
        self._clear()
        return self._lib.sqlite3_total_changes(self._require())

    @property
    def last_insert_rowid(self):
        self._clear()
        return self._lib.sqlite3_last_insert_rowid(self._require())

    def tables(self):
        t = self.execute(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name",
            rows=True,
        )
        return [r[0] for r in t.rows]

    def columns(self, table):
        t = self.execute(f"PRAGMA table_info('{escape(table)}')", rows=True)
        return [d["name"] for d in t.as_dicts()]

    # -- dispatch --------------------------------------------------------

    def call(self, op):
        """Run a TypedOperation or RawOperation."""
        if isinstance(op, TypedOperation):
            member = getattr(self, op.name)
            return member(*op.args, **op.kwargs) if callable(member) else member
        if isinstance(op, RawOperation):
            if not self._dispatch:
                raise UnimplementedError(
                    f"Unimplemented operation '{op.name}' (raw dispatch is disabled)"
                )
            self._clear()
            result = invoke_raw(self._lib, op)
            if op.reports_status:
                return report(result, target=self)
            return result
        raise ValidationError(f"Not an operation: {op!r}")

    def __getattr__(self, name):
        # Only reached for names the class does not define.
        if name.startswith("_"):
            raise AttributeError(name)
        if not self.__dict__.get("_dispatch", False):
            raise UnimplementedError(f"Unimplemented operation '{name}'")

        def raw_call(*args, restype=ctypes.c_int, check=True):
            return self.call(RawOperation(name, tuple(args), restype=restype, check=check))

        raw_call.__name__ = name
        return raw_call

    # -- lifecycle -------------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        if self.__dict__.get("_lib") is None:
            return
        if self.__dict__.get("_db") is not None:
            try:
                self.close()
            except Error as e:
                logger.warning("Failed to close connection on teardown: %s", e)
        self._lib = None
        native.release()

    def __repr__(self):
        state = "open" if self._db is not None else "closed"
        return f"<sqlitebind.Connection {state}>"


def connect(path, **kwargs):
    return Connection(path, **kwargs)
