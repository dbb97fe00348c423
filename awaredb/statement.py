import logging

from .constants import Attr
from .driver import DriverStatement
from .errors import InterfaceError
from .params import normalize_name, substitute

logger = logging.getLogger(__name__)


def is_select(sql):
    return sql.lstrip()[:6].upper() == "SELECT"


class Variable:
    """
    A mutable value holder for ``Statement.bind_param()``.

    Calling the holder returns its current value, so any zero-argument
    callable can be used in its place.
    """
    __slots__ = ("value",)

    def __init__(self, value=None):
        self.value = value

    def __call__(self):
        return self.value

    def __repr__(self):
        return f"Variable({self.value!r})"


class Statement(DriverStatement):
    """
    Statement that remembers what was bound to it.

    Every bound parameter is tracked so ``get_query()`` can rebuild the
    statement with literal values in place of the placeholders, and the row
    count of SELECT statements is taken from the server's found-rows counter
    instead of the driver, which reports at most the fetched rows.

    ``query`` and ``connection`` are attached once by the creating
    ``Connection``. A statement must not be used after its connection is
    closed.
    """

    def __init__(self, driver, cursor, sql, options=None):
        super().__init__(driver, cursor, sql, options)
        self._query = ""
        self._connection = None
        self._params = {}
        self._by_ref = set()
        self.num_rows = None

    @property
    def query(self):
        return self._query

    @property
    def connection(self):
        return self._connection

    def attach(self, query, connection):
        if self._connection is not None:
            raise InterfaceError("Statement is already attached to a connection")
        self._query = query
        self._connection = connection

    def _track(self, parameter, value, by_ref=False):
        key = normalize_name(parameter)
        self._params[key] = value
        if by_ref:
            self._by_ref.add(key)
        else:
            self._by_ref.discard(key)

    def bind_value(self, parameter, value, param_type=None):
        result = super().bind_value(parameter, value, param_type)
        self._track(parameter, value)
        return result

    def bind_param(self, parameter, variable, param_type=None, max_length=None, driver_data=None):
        result = super().bind_param(parameter, variable, param_type, max_length, driver_data)
        self._track(parameter, variable, by_ref=True)
        return result

    def execute(self, input_parameters=None):
        result = super().execute(input_parameters)
        # Inline values are recorded only once the driver has run them.
        if result is not False and input_parameters is not None:
            for key, value in input_parameters.items():
                self._track(key, value)

        count = None
        if result is not False and self._connection is not None and is_select(self._query):
            count = self._connection.found_rows()
        self.num_rows = count if count is not None else super().row_count()
        self.trace()
        return result

    def trace(self):
        """Log the rebuilt query and its row count if tracing is enabled."""
        if self._connection is not None and self._connection.get_attribute(Attr.TRACE_QUERIES):
            logger.info("%s -- %d row(s)", self.get_query(), self.row_count())

    def row_count(self):
        return int(self.num_rows or 0)

    def get_params(self):
        return {
            key: (value() if key in self._by_ref else value)
            for key, value in self._params.items()
        }

    def get_query(self):
        if self._connection is None:
            raise InterfaceError("Cannot rebuild the query: statement is not attached to a connection")
        literals = {key: self._connection.quote(value) for key, value in self.get_params().items()}
        return substitute(self._query, literals, self._connection.backslash_escapes)
