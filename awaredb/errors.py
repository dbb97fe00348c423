import enum
import itertools

# Exceptions raised by awaredb itself. Errors coming from the DB-API driver
# are never translated into these; they propagate as the driver raised them.
class Error(Exception):
    pass

# Used as a warnings category in ErrorMode.WARNING, so it must derive from
# the builtin warning hierarchy.
class Warning(UserWarning):
    pass

class InterfaceError(Error):
    pass

class DatabaseError(Error):
    pass

class OperationalError(DatabaseError):
    pass

class ProgrammingError(DatabaseError):
    pass

class NotSupportedError(DatabaseError):
    pass


class ErrorMode(enum.Enum):
    """How driver failures are reported back to the caller."""
    SILENT = 0
    WARNING = 1
    EXCEPTION = 2


# Caps for parameter values shown in log context.
MAX_TEXT = 200
MAX_BYTES = 64
MAX_PARAMS = 50


def format_value(value):
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        return {"hex": raw[:MAX_BYTES].hex(), "len": len(raw)}
    text = value if isinstance(value, str) else repr(value)
    if len(text) > MAX_TEXT:
        return text[:MAX_TEXT] + "..."
    return text


def format_params(params):
    """
    Log-friendly copy of a ``{":name": value}`` mapping.

    Long text is cut to ``MAX_TEXT`` characters, bytes are shown as a hex
    prefix, and only the first ``MAX_PARAMS`` entries are kept.
    """
    if not params:
        return params
    keys = list(itertools.islice(params, MAX_PARAMS))
    shown = {key: format_value(params[key]) for key in keys}
    if len(params) > len(keys):
        shown["..."] = f"{len(params) - len(keys)} more"
    return shown


def error_info(exc):
    """
    Summarize a driver exception as ``(kind, code, message)``.

    Most DB-API drivers put a numeric error code first in ``args``
    (PyMySQL, mysqlclient); drivers that don't get ``None`` for the code.
    """
    if exc is None:
        return (None, None, None)
    code = None
    message = str(exc)
    if len(exc.args) >= 2 and isinstance(exc.args[0], int):
        code = exc.args[0]
        message = str(exc.args[1])
    return (type(exc).__name__, code, message)
