"""
Decoding of sqlite3_get_table() results.

The engine returns a single ``char **`` array holding ``(nrow + 1) * ncol``
string pointers: the column names first, then every row in order. NULL
values are NULL pointers. decode_table() turns that buffer into a Table;
releasing the buffer stays with the caller.
"""

from .errors import RangeError


def _is_index(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _text(ptr_value):
    # Indexing a POINTER(c_char_p) already yields bytes, or None for NULL.
    # BLOB cells come back as raw bytes; undecodable bytes are replaced.
    if ptr_value is None:
        return None
    return ptr_value.decode("utf-8", errors="replace")


def decode_table(result, nrow, ncol):
    """Build a Table from a ``char **`` buffer of ``(nrow + 1) * ncol`` entries."""
    nrow = int(nrow)
    ncol = int(ncol)
    if ncol <= 0 or not result:
        return Table((), ())

    headers = []
    rows = []
    current = []
    for i in range((nrow + 1) * ncol):
        value = _text(result[i])
        if i < ncol:
            headers.append(value if value is not None else "")
            continue
        current.append(value)
        if len(current) == ncol:
            rows.append(tuple(current))
            current = []

    return Table(headers, rows)


class Table:
    """Immutable row/column view of a query result.

    Row and column indexes on the accessor methods are 1-based; ``headers``,
    ``rows`` and ``fields`` are plain tuples.
    """

    __slots__ = ("_headers", "_rows", "_fields")

    def __init__(self, headers, rows):
        headers = tuple(headers)
        rows = tuple(tuple(r) for r in rows)
        for r in rows:
            if len(r) != len(headers):
                raise RangeError(
                    f"Row has {len(r)} values, expected {len(headers)}"
                )
        object.__setattr__(self, "_headers", headers)
        object.__setattr__(self, "_rows", rows)
        object.__setattr__(self, "_fields", tuple(v for r in rows for v in r))

    def __setattr__(self, name, value):
        raise AttributeError("Table is immutable")

    @property
    def col_count(self):
        return len(self._headers)

    @property
    def row_count(self):
        return len(self._rows)

    @property
    def headers(self):
        return self._headers

    @property
    def rows(self):
        return self._rows

    @property
    def fields(self):
        return self._fields

    def _check_row(self, r):
        if not _is_index(r):
            raise RangeError(f"Row index must be an integer, got {type(r).__name__}")
        if not 1 <= r <= self.row_count:
            raise RangeError(f"Row index {r} out of range [1, {self.row_count}]")
        return r

    def _check_col(self, c):
        if isinstance(c, str):
            return self.header_index(c)
        if not _is_index(c):
            raise RangeError(
                f"Column must be an integer index or a name, got {type(c).__name__}"
            )
        if not 1 <= c <= self.col_count:
            raise RangeError(f"Column index {c} out of range [1, {self.col_count}]")
        return c

    def header(self, index):
        return self._headers[self._check_col(index) - 1]

    def header_index(self, name):
        if not isinstance(name, str):
            raise RangeError(f"Column name must be a string, got {type(name).__name__}")
        for i, h in enumerate(self._headers):
            if h == name:
                return i + 1
        raise RangeError(f"No such column: {name!r}")

    def row(self, r):
        return self._rows[self._check_row(r) - 1]

    def field(self, r, c):
        r = self._check_row(r)
        c = self._check_col(c)
        return self._fields[(r - 1) * self.col_count + (c - 1)]

    def __getitem__(self, key):
        if isinstance(key, tuple):
            if len(key) != 2:
                raise RangeError("Expected table[row, column]")
            return self.field(*key)
        return self.row(key)

    def __len__(self):
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    def __contains__(self, name):
        return name in self._headers

    def __eq__(self, other):
        if not isinstance(other, Table):
            return NotImplemented
        return self._headers == other._headers and self._rows == other._rows

    def __hash__(self):
        return hash((self._headers, self._rows))

    def __repr__(self):
        return f"Table(headers={list(self._headers)!r}, rows={self.row_count})"

    def as_dicts(self):
        return [dict(zip(self._headers, r)) for r in self._rows]
