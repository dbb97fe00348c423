import enum
import os


class Attr(enum.Enum):
    """Connection attribute keys accepted in the ``options`` mapping."""
    ERRMODE = "errmode"
    STATEMENT_CLASS = "statement_class"
    DEFAULT_FETCH_MODE = "default_fetch_mode"
    FOUND_ROWS_QUERY = "found_rows_query"
    TRACE_QUERIES = "trace_queries"


class ParamType(enum.Enum):
    """Type hints for bound parameters; values are coerced before binding."""
    NULL = 0
    INT = 1
    STR = 2
    LOB = 3
    BOOL = 5


class FetchMode(enum.Enum):
    TUPLE = "tuple"
    DICT = "dict"
    COLUMN = "column"
    CLASS = "class"


FOUND_ROWS_QUERY = "SELECT FOUND_ROWS()"

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY
