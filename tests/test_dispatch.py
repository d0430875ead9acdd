import ctypes

import pytest

import sqlitebind
from sqlitebind import RawOperation, TypedOperation


def test_unknown_attribute_without_dispatch(conn):
    assert conn.dispatch is False
    with pytest.raises(sqlitebind.UnimplementedError) as excinfo:
        conn.busy_timeout((ctypes.c_void_p, conn.handle), (ctypes.c_int, 100))
    assert "busy_timeout" in str(excinfo.value)
    assert not hasattr(conn, "libversion_number")


def test_raw_operation_without_dispatch(conn):
    with pytest.raises(sqlitebind.UnimplementedError):
        conn.call(RawOperation("libversion_number", check=False))


def test_private_names_never_dispatch(conn):
    conn.dispatch = True
    with pytest.raises(AttributeError):
        conn._nothing_here
    assert not hasattr(conn, "__array__")


def test_raw_status_call(conn):
    conn.dispatch = True
    rc = conn.busy_timeout((ctypes.c_void_p, conn.handle), (ctypes.c_int, 100))
    assert rc == sqlitebind.SQLITE_OK
    assert conn.last_error_code == 0


def test_raw_unchecked_call(conn):
    conn.dispatch = True
    version = conn.libversion_number(check=False)
    assert version >= 3000000
    text = conn.libversion(restype=ctypes.c_char_p)
    assert text.decode("ascii") == sqlitebind.library_version()


def test_raw_call_does_not_clobber_typed_signatures(conn):
    conn.dispatch = True
    # Declare sqlite3_changes differently through the raw path...
    conn.call(RawOperation("changes", ((ctypes.c_void_p, conn.handle),), restype=ctypes.c_long, check=False))
    conn.execute("CREATE TABLE t (id INTEGER)")
    conn.execute("INSERT INTO t VALUES (1)")
    # ...and the typed wrapper still works.
    assert conn.changes == 1


def test_sqlite3_complete_via_dispatch(conn):
    conn.dispatch = True
    assert conn.complete((ctypes.c_char_p, b"SELECT 1;"), check=False) == 1
    assert conn.complete((ctypes.c_char_p, b"SELECT 'unterminated"), check=False) == 0


def test_missing_symbol(conn):
    conn.dispatch = True
    with pytest.raises(sqlitebind.UnimplementedError) as excinfo:
        conn.no_such_function_anywhere()
    assert "sqlite3_no_such_function_anywhere" in str(excinfo.value)


@pytest.mark.parametrize("arg", [5, (5,), ("int", 5), (ctypes.c_int, 1, 2)])
def test_arguments_need_type_descriptors(conn, arg):
    conn.dispatch = True
    with pytest.raises(sqlitebind.ValidationError):
        conn.sleep(arg)


def test_raw_failure_is_reported(conn):
    conn.dispatch = True
    stmt = ctypes.c_void_p()
    with pytest.raises(sqlitebind.ProgrammingError):
        conn.prepare_v2(
            (ctypes.c_void_p, conn.handle),
            (ctypes.c_char_p, b"SELEC 1"),
            (ctypes.c_int, -1),
            (ctypes.POINTER(ctypes.c_void_p), ctypes.byref(stmt)),
            (ctypes.c_void_p, None),
        )
    assert conn.last_error_code == sqlitebind.SQLITE_ERROR
    assert not stmt.value


def test_close_busy_then_finalize(db_path):
    conn = sqlitebind.connect(db_path, dispatch=True)
    stmt = ctypes.c_void_p()
    conn.prepare_v2(
        (ctypes.c_void_p, conn.handle),
        (ctypes.c_char_p, b"SELECT 1"),
        (ctypes.c_int, -1),
        (ctypes.POINTER(ctypes.c_void_p), ctypes.byref(stmt)),
        (ctypes.c_void_p, None),
    )
    handle = conn.handle

    with pytest.raises(sqlitebind.OperationalError):
        conn.close()
    assert conn.last_error_code == sqlitebind.SQLITE_BUSY
    assert conn.last_error_message
    assert conn.handle is None

    # The engine still owns the handle; finish it through the raw path.
    assert conn.finalize((ctypes.c_void_p, stmt)) == sqlitebind.SQLITE_OK
    assert conn.call(RawOperation("close", ((ctypes.c_void_p, handle),))) == sqlitebind.SQLITE_OK
    assert conn.last_error_code == 0


def test_typed_operations(conn):
    assert conn.call(TypedOperation("execute", ("CREATE TABLE t (a TEXT)",))) == sqlitebind.SQLITE_OK
    conn.call(TypedOperation("execute", ("INSERT INTO t VALUES ('x')",)))
    t = conn.call(TypedOperation("execute", ("SELECT a FROM t",)))
    assert t.rows == (("x",),)
    assert conn.call(TypedOperation("last_insert_rowid")) == 1


def test_typed_operation_unknown_name():
    with pytest.raises(sqlitebind.UnimplementedError):
        TypedOperation("vacuum")


def test_call_rejects_other_objects(conn):
    with pytest.raises(sqlitebind.ValidationError):
        conn.call("execute")
