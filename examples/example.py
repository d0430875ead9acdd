"""Example: basic sqlitebind usage.

Uses the system libsqlite3 by default; point SQLITEBIND_NATIVE_LIB at a
specific build to override:
    SQLITEBIND_NATIVE_LIB=/path/to/libsqlite3.so python example.py
"""

import ctypes
import os
import tempfile

import sqlitebind


def main():
    db_path = os.path.join(tempfile.gettempdir(), "sqlitebind_example.db")
    if os.path.exists(db_path):
        os.remove(db_path)

    with sqlitebind.connect(db_path, auto_escape=True) as conn:
        conn.execute("""
            CREATE TABLE users (
                id    INTEGER PRIMARY KEY,
                name  TEXT NOT NULL,
                email TEXT UNIQUE
            )
        """)

        users = [
            ("Alice", "alice@example.com"),
            ("Bob", "bob@example.com"),
        ]
        for name, email in users:
            conn.execute(
                "INSERT INTO users (name, email) VALUES ('{0}', '{1}')",
                params=[name, email],
            )
        # auto_escape doubles the quote in "O'Neil" before interpolation.
        conn.execute("INSERT INTO users (name) VALUES ('{name}')", params={"name": "Carol O'Neil"})

        table = conn.execute("SELECT id, name, email FROM users ORDER BY id")
        print("All users:")
        for r in range(1, table.row_count + 1):
            print(f"  id={table.field(r, 'id')}  name={table.field(r, 'name')}  email={table.field(r, 'email')}")

        # Row callback on the exec path.
        conn.execute(
            "SELECT name FROM users WHERE email IS NULL",
            lambda values, columns: print(f"No email on file for {values[0]}"),
        )

        try:
            conn.execute("INSERT INTO users (name, email) VALUES ('Dup', 'bob@example.com')")
        except sqlitebind.IntegrityError as e:
            print(f"Rejected duplicate (code {e.code}): {e.message}")

        # Reach an unwrapped C function through raw dispatch.
        conn.dispatch = True
        conn.busy_timeout((ctypes.c_void_p, conn.handle), (ctypes.c_int, 250))
        print(f"SQLite {sqlitebind.library_version()}, tables: {conn.tables()}")

    os.remove(db_path)


if __name__ == "__main__":
    main()
