"""
Operations a Connection can run, as an explicit tagged union.

TypedOperation names one of the wrapped methods and goes through full
marshaling. RawOperation names any ``sqlite3_*`` symbol and carries its
arguments as ``(ctype, value)`` pairs; it is forwarded to the library as-is,
so all the unsafety of raw calls lives in invoke_raw().
"""

import ctypes
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Tuple, Union

from . import native
from .errors import UnimplementedError, ValidationError

logger = logging.getLogger(__name__)

TYPED_OPERATIONS = frozenset({
    "open",
    "close",
    "execute",
    "changes",
    "total_changes",
    "last_insert_rowid",
})

# Restypes whose value is a result code and goes through report().
STATUS_RESTYPES = (ctypes.c_int,)


@dataclass(frozen=True)
class TypedOperation:
    name: str
    args: Tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.name not in TYPED_OPERATIONS:
            raise UnimplementedError(f"No typed operation named '{self.name}'")


@dataclass(frozen=True)
class RawOperation:
    name: str
    args: Tuple[Tuple[Any, Any], ...] = ()
    restype: Any = ctypes.c_int
    check: bool = True

    @property
    def symbol(self):
        return native.FUNCTION_PREFIX + self.name

    @property
    def reports_status(self):
        return self.check and self.restype in STATUS_RESTYPES


Operation = Union[TypedOperation, RawOperation]


def _is_ctype(t):
    # Every ctypes type (simple, pointer, structure, array, CFUNCTYPE) has from_param.
    return isinstance(t, type) and callable(getattr(t, "from_param", None))


def _split_args(op):
    argtypes = []
    values = []
    for i, pair in enumerate(op.args):
        if not isinstance(pair, tuple) or len(pair) != 2:
            raise ValidationError(
                f"Argument {i} of {op.symbol} must be a (ctype, value) pair, got {pair!r}"
            )
        ctype, value = pair
        if not _is_ctype(ctype):
            raise ValidationError(
                f"Argument {i} of {op.symbol} has no native type descriptor: {ctype!r}"
            )
        argtypes.append(ctype)
        values.append(value)
    return argtypes, values


def invoke_raw(lib, op):
    """Call ``op.symbol`` with the caller's typed arguments and return the raw result."""
    argtypes, values = _split_args(op)
    try:
        # Item access builds a fresh function pointer, so the declarations
        # made for the typed surface are left alone.
        func = lib[op.symbol]
    except AttributeError:
        raise UnimplementedError(
            f"Native function '{op.symbol}' is not exported by the library"
        ) from None

    func.argtypes = argtypes
    func.restype = op.restype
    logger.debug("Raw dispatch %s(%d args)", op.symbol, len(values))
    try:
        return func(*values)
    except ctypes.ArgumentError as e:
        raise ValidationError(f"Bad argument for {op.symbol}: {e}") from e
