"""Connection defaults read from the environment."""

import os

from .errors import ValidationError

AUTO_ESCAPE_ENV = "SQLITEBIND_AUTO_ESCAPE"
DISPATCH_ENV = "SQLITEBIND_DISPATCH"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def to_bool(value, name="value"):
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE:
            return True
        if s in _FALSE:
            return False
    raise ValidationError(f"{name} expects a boolean, got {value!r}")


def env_flag(var, default=False):
    raw = os.environ.get(var)
    if raw is None or raw.strip() == "":
        return default
    return to_bool(raw, var)


def auto_escape_default():
    return env_flag(AUTO_ESCAPE_ENV)


def dispatch_default():
    return env_flag(DISPATCH_ENV)
