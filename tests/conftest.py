import ctypes

import pytest

import sqlitebind


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


@pytest.fixture
def conn(db_path):
    c = sqlitebind.connect(db_path)
    yield c
    c.close()


@pytest.fixture
def native_result():
    """Build native-style char** arrays; arrays stay alive for the test."""
    keepalive = []

    def build(values):
        arr = (ctypes.c_char_p * len(values))(
            *[None if v is None else v.encode("utf-8") for v in values]
        )
        keepalive.append(arr)
        return ctypes.cast(arr, ctypes.POINTER(ctypes.c_char_p))

    return build


class RecordingLib:
    """Wraps the native library and records calls to its release routines."""

    recorded = ("sqlite3_free_table", "sqlite3_free")

    def __init__(self, lib):
        self._lib = lib
        self.calls = []

    def __getattr__(self, name):
        func = getattr(self._lib, name)
        if name not in self.recorded:
            return func

        def record(*args):
            self.calls.append(name)
            return func(*args)

        return record


@pytest.fixture
def recording_lib(conn, monkeypatch):
    lib = RecordingLib(conn._lib)
    monkeypatch.setattr(conn, "_lib", lib)
    return lib
