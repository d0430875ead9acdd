import atexit
import ctypes
import ctypes.util
import logging
import os
import threading
from ctypes import c_int, c_int64, c_char_p, c_void_p, POINTER, CFUNCTYPE

logger = logging.getLogger(__name__)

# Result codes (must match sqlite3.h).
#
# Extended result codes carry the primary code in the low byte; use
# primary_code() before comparing against these.
SQLITE_OK = 0
SQLITE_ERROR = 1
SQLITE_INTERNAL = 2
SQLITE_PERM = 3
SQLITE_ABORT = 4
SQLITE_BUSY = 5
SQLITE_LOCKED = 6
SQLITE_NOMEM = 7
SQLITE_READONLY = 8
SQLITE_INTERRUPT = 9
SQLITE_IOERR = 10
SQLITE_CORRUPT = 11
SQLITE_NOTFOUND = 12
SQLITE_FULL = 13
SQLITE_CANTOPEN = 14
SQLITE_PROTOCOL = 15
SQLITE_EMPTY = 16
SQLITE_SCHEMA = 17
SQLITE_TOOBIG = 18
SQLITE_CONSTRAINT = 19
SQLITE_MISMATCH = 20
SQLITE_MISUSE = 21
SQLITE_NOLFS = 22
SQLITE_AUTH = 23
SQLITE_FORMAT = 24
SQLITE_RANGE = 25
SQLITE_NOTADB = 26
SQLITE_NOTICE = 27

# Informational codes; callers that expect them pass no message buffer.
SQLITE_ROW = 100
SQLITE_DONE = 101

FUNCTION_PREFIX = "sqlite3_"


def primary_code(code):
    return int(code) & 0xFF


# int (*callback)(void *arg, int argc, char **argv, char **colnames)
EXEC_CALLBACK = CFUNCTYPE(c_int, c_void_p, c_int, POINTER(c_char_p), POINTER(c_char_p))

_lib = None
_refs = 0
_lock = threading.Lock()

_LIB_NAMES = [
    "libsqlite3.so.0",
    "libsqlite3.so",
    "libsqlite3.dylib",
    "sqlite3.dll",
]


def _arch_dir():
    return "x64" if ctypes.sizeof(c_void_p) == 8 else "x86"


def _candidate_paths():
    here = os.path.dirname(os.path.abspath(__file__))
    candidates = []

    # Bundled builds ship one library per pointer width.
    for name in _LIB_NAMES:
        candidates.append(os.path.join(here, "lib", _arch_dir(), name))

    cwd = os.getcwd()
    for name in _LIB_NAMES:
        candidates.append(os.path.join(cwd, "build", name))

    return [p for p in candidates if os.path.exists(p)]


def _resolve_library_names():
    lib_path = os.environ.get("SQLITEBIND_NATIVE_LIB")
    if lib_path:
        return [lib_path]

    names = _candidate_paths()
    found = ctypes.util.find_library("sqlite3")
    if found:
        names.append(found)
    # Let the dynamic loader search its own path last.
    names.extend(_LIB_NAMES)
    return names


def _declare(lib):
    # Memory management for engine-allocated buffers
    lib.sqlite3_free.argtypes = [c_void_p]
    lib.sqlite3_free.restype = None

    # sqlite3_open(const char *filename, sqlite3 **ppDb)
    lib.sqlite3_open.argtypes = [c_char_p, POINTER(c_void_p)]
    lib.sqlite3_open.restype = c_int

    lib.sqlite3_close.argtypes = [c_void_p]
    lib.sqlite3_close.restype = c_int

    # sqlite3_exec(db, sql, callback, arg, char **errmsg)
    lib.sqlite3_exec.argtypes = [c_void_p, c_char_p, EXEC_CALLBACK, c_void_p, POINTER(c_void_p)]
    lib.sqlite3_exec.restype = c_int

    # sqlite3_get_table(db, sql, char ***result, int *nrow, int *ncol, char **errmsg)
    lib.sqlite3_get_table.argtypes = [
        c_void_p,
        c_char_p,
        POINTER(POINTER(c_char_p)),
        POINTER(c_int),
        POINTER(c_int),
        POINTER(c_void_p),
    ]
    lib.sqlite3_get_table.restype = c_int

    lib.sqlite3_free_table.argtypes = [POINTER(c_char_p)]
    lib.sqlite3_free_table.restype = None

    # Diagnostics
    lib.sqlite3_errmsg.argtypes = [c_void_p]
    lib.sqlite3_errmsg.restype = c_char_p

    lib.sqlite3_errstr.argtypes = [c_int]
    lib.sqlite3_errstr.restype = c_char_p

    lib.sqlite3_extended_errcode.argtypes = [c_void_p]
    lib.sqlite3_extended_errcode.restype = c_int

    # Counters
    lib.sqlite3_changes.argtypes = [c_void_p]
    lib.sqlite3_changes.restype = c_int

    lib.sqlite3_total_changes.argtypes = [c_void_p]
    lib.sqlite3_total_changes.restype = c_int

    lib.sqlite3_last_insert_rowid.argtypes = [c_void_p]
    lib.sqlite3_last_insert_rowid.restype = c_int64

    lib.sqlite3_libversion.argtypes = []
    lib.sqlite3_libversion.restype = c_char_p

    lib.sqlite3_libversion_number.argtypes = []
    lib.sqlite3_libversion_number.restype = c_int


def load_library():
    global _lib
    if _lib is not None:
        return _lib

    with _lock:
        if _lib is not None:
            return _lib

        errors = []
        for name in _resolve_library_names():
            try:
                lib = ctypes.CDLL(name)
            except OSError as e:
                errors.append(f"{name}: {e}")
                continue
            _declare(lib)
            logger.debug("Loaded sqlite native library from %s", name)
            _lib = lib
            return _lib

    raise RuntimeError(
        "Could not find sqlite3 native library. Set SQLITEBIND_NATIVE_LIB env var."
        + ("\nTried:\n  " + "\n  ".join(errors) if errors else "")
    )


def acquire():
    """Take a reference on the process-wide library, loading it on first use."""
    global _refs
    lib = load_library()
    with _lock:
        _refs += 1
    return lib


def release():
    global _refs
    with _lock:
        if _refs > 0:
            _refs -= 1


def active_references():
    return _refs


def library_version():
    return load_library().sqlite3_libversion().decode("utf-8")


def _unload():
    global _lib, _refs
    if _lib is not None:
        logger.debug("Dropping sqlite native library (%d live references)", _refs)
    _lib = None
    _refs = 0


atexit.register(_unload)
